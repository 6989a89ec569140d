# File: tests/test_sitemap.py
from hugin.parser.sitemap_parser import parse_sitemap

URLSET = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>http://site.ygg/</loc><lastmod>2024-01-01</lastmod></url>
  <url><loc>
      http://site.ygg/about
  </loc></url>
  <url><loc></loc></url>
</urlset>
"""

INDEX = """<?xml version="1.0" encoding="UTF-8"?>
<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <sitemap><loc>http://site.ygg/sitemap-pages.xml</loc></sitemap>
</sitemapindex>
"""


def test_parse_urlset():
    assert parse_sitemap(URLSET) == ["http://site.ygg/", "http://site.ygg/about"]


def test_parse_bytes_without_namespace():
    body = b"<urlset><url><loc>http://site.ygg/x</loc></url></urlset>"
    assert parse_sitemap(body) == ["http://site.ygg/x"]


def test_sitemap_index_locs_are_returned():
    assert parse_sitemap(INDEX) == ["http://site.ygg/sitemap-pages.xml"]


def test_empty_and_garbage_yield_nothing():
    assert parse_sitemap("") == []
    assert parse_sitemap(b"   ") == []
    assert parse_sitemap("this is not a sitemap") == []
    assert parse_sitemap("<html><body>Not found</body></html>") == []
