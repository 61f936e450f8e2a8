"""
XML metadata extraction for the Islandora REST ingester.

Provides functions to:
    - Pull single values out of MODS descriptors by XPath
    - Read object and datastream properties from a FOXML export
"""

import logging
from pathlib import Path

from lxml import etree

logger = logging.getLogger("islandora_ingest.metadata")

NAMESPACES = {
    "mods": "http://www.loc.gov/mods/v3",
    "foxml": "info:fedora/fedora-system:def/foxml#",
    "dc": "http://purl.org/dc/elements/1.1/",
}

MODS_TITLE_XPATH = "//mods:titleInfo/mods:title"
MODS_DATE_ISSUED_XPATH = "//mods:originInfo/mods:dateIssued"

# foxml:property NAME URIs are namespaced; keep the local part
_PROPERTY_SEPARATORS = ("#", "/")


def _parse(xml_path: Path) -> etree._ElementTree | None:
    if not xml_path.is_file():
        logger.debug(f"XML file not found: {xml_path}")
        return None
    try:
        return etree.parse(str(xml_path))
    except (etree.XMLSyntaxError, OSError) as e:
        logger.warning(f"Cannot parse {xml_path}: {e}")
        return None


def extract(xml_path: Path, xpath: str) -> str | None:
    """
    Return the text of the first node matching xpath.

    Args:
        xml_path: Path to an XML file (usually MODS.xml)
        xpath: XPath expression; the mods, foxml and dc prefixes are bound

    Returns:
        Stripped text value, or None if the file is missing or unparseable,
        or no non-empty node matches
    """
    tree = _parse(Path(xml_path))
    if tree is None:
        return None

    try:
        nodes = tree.xpath(xpath, namespaces=NAMESPACES)
    except etree.XPathError as e:
        logger.warning(f"Bad XPath expression {xpath!r}: {e}")
        return None

    for node in nodes:
        if isinstance(node, str):
            value = node
        else:
            value = "".join(node.itertext())
        value = " ".join(value.split())
        if value:
            return value

    return None


def title_from_mods(mods_path: Path) -> str | None:
    """First titleInfo/title of a MODS file, or None."""
    return extract(mods_path, MODS_TITLE_XPATH)


def _local_name(name: str) -> str:
    for separator in _PROPERTY_SEPARATORS:
        if separator in name:
            name = name.rsplit(separator, 1)[1]
    return name


def foxml_properties(xml: bytes | str) -> tuple[dict[str, str], dict[str, dict[str, str]]]:
    """
    Read object-level and datastream-level properties from a FOXML export.

    Object properties are keyed by the local part of their NAME URI
    (state, label, ownerId, createdDate, lastModifiedDate). Datastream
    properties are keyed by DSID; each holds the datastream attributes
    (STATE, CONTROL_GROUP, VERSIONABLE) plus the LABEL, MIMETYPE and SIZE
    of its most recent version.

    Args:
        xml: Serialized FOXML document

    Returns:
        Tuple of (object_properties, datastream_properties)

    Raises:
        ValueError: If xml is not well-formed
    """
    if isinstance(xml, str):
        xml = xml.encode("utf-8")

    try:
        root = etree.fromstring(xml)
    except etree.XMLSyntaxError as e:
        raise ValueError(f"Malformed FOXML: {e}") from e

    object_props = {}
    for prop in root.xpath(
        "foxml:objectProperties/foxml:property", namespaces=NAMESPACES
    ):
        name = prop.get("NAME")
        if name:
            object_props[_local_name(name)] = prop.get("VALUE", "")

    datastream_props = {}
    for datastream in root.xpath("foxml:datastream", namespaces=NAMESPACES):
        dsid = datastream.get("ID")
        if not dsid:
            continue

        props = {
            key: datastream.get(key)
            for key in ("STATE", "CONTROL_GROUP", "VERSIONABLE")
            if datastream.get(key) is not None
        }

        versions = datastream.xpath("foxml:datastreamVersion", namespaces=NAMESPACES)
        if versions:
            latest = max(versions, key=lambda v: v.get("CREATED", ""))
            for key in ("ID", "LABEL", "MIMETYPE", "SIZE", "CREATED"):
                if latest.get(key) is not None:
                    props[key] = latest.get(key)

        datastream_props[dsid] = props

    logger.debug(
        f"FOXML properties read: {len(object_props)} object properties, "
        f"{len(datastream_props)} datastreams"
    )
    return object_props, datastream_props
