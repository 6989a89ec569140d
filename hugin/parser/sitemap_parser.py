# File: hugin/parser/sitemap_parser.py
"""hugin.parser.sitemap_parser: извлечение URL из sitemap.xml."""

from __future__ import annotations

from typing import List

from lxml import etree


def parse_sitemap(xml_content: str | bytes) -> List[str]:
    """Разбирает XML sitemap и возвращает список URL из тегов <loc>.

    Sitemap index files are handled the same way: their ``<loc>`` values are
    returned as-is. Malformed documents yield whatever the recovering parser
    could salvage, or an empty list.

    Args:
        xml_content: строка или байты с содержимым sitemap.xml.

    Returns:
        Список URL, найденных в <loc> тегах.
    """
    if isinstance(xml_content, str):
        xml_content = xml_content.encode("utf-8")
    if not xml_content.strip():
        return []
    parser = etree.XMLParser(ns_clean=True, recover=True, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(xml_content, parser=parser)
    except etree.XMLSyntaxError:
        return []
    if root is None:
        return []
    locs = root.iterfind(".//{*}loc")
    return [loc.text.strip() for loc in locs if loc.text and loc.text.strip()]


__all__ = ["parse_sitemap"]
