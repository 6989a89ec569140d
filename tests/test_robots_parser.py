# File: tests/test_robots_parser.py
import pytest

from hugin.parser.robots_parser import RobotsTxtRules

UA = "Hugin-Webcrawler"


@pytest.mark.parametrize(
    "robots,path,allowed",
    [
        ("User-agent: *\nDisallow: /a\nAllow: /a/b", "/a/b/c", True),
        ("User-agent: *\nDisallow: /a\nAllow: /a/b", "/a/c", False),
        ("User-agent: *\nAllow: /p\nDisallow: /p", "/p/x", True),
        ("User-agent: *\nDisallow: /*.pdf$", "/docs/file.pdf", False),
        ("User-agent: *\nDisallow: /*.pdf$", "/docs/file.pdf?v=2", True),
        ("User-agent: *\nDisallow: /*.pdf$", "/docs/file.pdfx", True),
        ("User-agent: *\nDisallow: /search?q=", "/search?q=hugin", False),
        ("User-agent: *\nDisallow:", "/anything", True),
        ("User-agent: *\nDisallow: /", "/", False),
        ("", "/anything", True),
    ],
)
def test_can_fetch(robots, path, allowed):
    assert RobotsTxtRules(robots).can_fetch(UA, path) is allowed


def test_full_url_is_matched_on_path_and_query():
    rules = RobotsTxtRules("User-agent: *\nDisallow: /private")
    assert not rules.can_fetch(UA, "http://site.ygg/private/x?y=1")
    assert rules.can_fetch(UA, "http://site.ygg/public")
    assert rules.can_fetch(UA, "http://site.ygg")


def test_specific_agent_group_wins_over_wildcard():
    text = """
    User-agent: *
    Disallow:

    User-agent: Hugin-Webcrawler
    Disallow: /
    Crawl-delay: 4
    """
    rules = RobotsTxtRules(text)
    assert not rules.can_fetch(UA, "/page")
    assert rules.can_fetch("OtherBot", "/page")
    assert rules.crawl_delay(UA) == 4.0
    assert rules.crawl_delay("OtherBot") is None


def test_grouped_user_agents_share_rules():
    rules = RobotsTxtRules("User-agent: a-bot\nUser-agent: hugin-webcrawler\nDisallow: /x\n")
    assert not rules.can_fetch(UA, "/x")
    assert not rules.can_fetch("a-bot", "/x")
    assert rules.can_fetch("z-bot", "/x")


def test_sitemaps_and_comments():
    text = """
    # comment line
    Sitemap: http://site.ygg/sitemap-a.xml
    User-agent: * # inline comment
    Disallow: /tmp # temp files
    Crawl-delay: not-a-number
    Sitemap: http://site.ygg/sitemap-b.xml
    """
    rules = RobotsTxtRules(text)
    assert rules.sitemaps == ["http://site.ygg/sitemap-a.xml", "http://site.ygg/sitemap-b.xml"]
    assert not rules.can_fetch(UA, "/tmp/file")
    assert rules.crawl_delay(UA) is None


def test_allow_all():
    rules = RobotsTxtRules.allow_all()
    assert rules.can_fetch(UA, "/")
    assert rules.sitemaps == []
    assert rules.crawl_delay(UA) is None


@pytest.mark.parametrize("value", ["inf", "-inf", "nan", "-3", "soon"])
def test_unusable_crawl_delay_is_ignored(value):
    rules = RobotsTxtRules(f"User-agent: *\nCrawl-delay: {value}\n")
    assert rules.crawl_delay(UA) is None


def test_fractional_crawl_delay():
    assert RobotsTxtRules("User-agent: *\nCrawl-delay: 0.5\n").crawl_delay(UA) == 0.5


def test_empty_user_agent_addresses_nobody():
    rules = RobotsTxtRules("User-agent:\nDisallow: /\n\nUser-agent: *\nAllow: /\n")
    assert rules.can_fetch(UA, "/page")
    assert rules.can_fetch("OtherBot", "/page")
