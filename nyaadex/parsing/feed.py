"""RSS feed item extraction.

Nyaa-style feeds carry the standard RSS item fields plus a provider
namespace (``nyaa:seeders``, ``nyaa:infoHash``...). Extraction matches on
local tag names so the namespace URI and prefix do not matter.
"""

import structlog
from lxml import etree

from nyaadex.models import RawItem

logger = structlog.get_logger(__name__)

# RawItem field -> local tag name inside <item>
ITEM_FIELDS = {
    "title": "title",
    "download_url": "link",
    "page_link": "guid",
    "raw_date": "pubDate",
    "seeders": "seeders",
    "leechers": "leechers",
    "downloads": "downloads",
    "info_hash": "infoHash",
    "formatted_size": "size",
}


def _local_name(element: etree._Element) -> str:
    """Return a tag name without namespace URI or prefix."""
    tag = element.tag
    if not isinstance(tag, str):
        return ""
    if "}" in tag:
        tag = tag.split("}", 1)[1]
    return tag.rsplit(":", 1)[-1]


def _item_values(item: etree._Element) -> dict[str, str]:
    """Collect the first text value of every child tag of an item."""
    values: dict[str, str] = {}
    for child in item:
        name = _local_name(child)
        if name and name not in values:
            values[name] = (child.text or "").strip()
    return values


def extract_feed_items(xml_text: str) -> list[RawItem]:
    """Extract raw items from an RSS feed document.

    The parser runs in recovery mode: broken markup around an item does not
    discard the rest of the feed, and an unreadable document yields no items.

    Args:
        xml_text: Feed document as text.

    Returns:
        Raw items in document order. Missing fields are empty strings.
    """
    if not xml_text or not xml_text.strip():
        return []

    parser = etree.XMLParser(recover=True, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(xml_text.encode("utf-8"), parser=parser)
    except etree.XMLSyntaxError as e:
        logger.warning("feed_parse_error", error=str(e))
        return []

    if root is None:
        logger.warning("feed_empty_document", length=len(xml_text))
        return []

    items: list[RawItem] = []
    for element in root.iter(etree.Element):
        if _local_name(element) != "item":
            continue

        values = _item_values(element)
        fields = {field: values.get(tag, "") for field, tag in ITEM_FIELDS.items()}
        if not any(fields.values()):
            continue

        items.append(RawItem(**fields))

    logger.debug("feed_items_extracted", count=len(items))
    return items
