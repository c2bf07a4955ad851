# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
ElementTree helpers shared by the OMM decoder and encoder.

Tag comparison is case-insensitive and ignores any {namespace} prefix.
External dependencies (xml) are confined to the adapter layer.
"""
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import Any, Iterator

import numpy as np

from orbit_data_messages.domain.ccsds_contracts import FormatError
from orbit_data_messages.domain.epochs import format_timestamp


XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'


def local_tag(node: ET.Element) -> str:
    """Lower-cased tag name without namespace."""
    tag = node.tag
    if not isinstance(tag, str):  # comments and processing instructions
        return ""
    if tag.startswith("{"):
        tag = tag.rsplit("}", 1)[1]
    return tag.lower()


def find_children(node: ET.Element, tag: str) -> list[ET.Element]:
    """Children of ``node`` whose local tag matches ``tag`` (case-insensitive)."""
    tag = tag.lower()
    return [child for child in node if local_tag(child) == tag]


def iter_elements(node: ET.Element) -> Iterator[ET.Element]:
    """Element children of ``node``, skipping comments."""
    for child in node:
        if isinstance(child.tag, str):
            yield child


def read_scalar_child(node: ET.Element) -> str:
    """Text content of a leaf element, verbatim, or '' if it has none."""
    if node.text is None:
        return ""
    return node.text


def render(value: Any) -> str:
    """Render a scalar as XML text.

    Strings pass through, timestamps become yyyy-mm-ddTHH:MM:SS.ffffff,
    everything else uses str().
    """
    if isinstance(value, str):
        return value
    if isinstance(value, (np.datetime64, datetime)):
        return format_timestamp(value)
    return str(value)


def sub_element(parent: ET.Element, tag: str, text: str | None = None, **attribs: str) -> ET.Element:
    """Create a sub-element with optional text and attributes."""
    elem = ET.SubElement(parent, tag, **attribs)
    if text is not None:
        elem.text = text
    return elem


def append_if_present(parent: ET.Element, tag: str, value: Any) -> None:
    """Append ``<tag>value</tag>`` to ``parent`` unless ``value`` is None."""
    if value is None:
        return
    sub_element(parent, tag, render(value))


def parse_xml(text: str | bytes) -> ET.Element:
    """Parse XML text into its root element.

    Raises:
        FormatError: If the text is not well-formed XML.
    """
    try:
        return ET.fromstring(text)
    except ET.ParseError as e:
        raise FormatError("xml", str(e), "well-formed XML") from e


def to_xml_string(root: ET.Element) -> str:
    """Serialise ``root`` as indented UTF-8 XML text with declaration."""
    tree = ET.ElementTree(root)
    ET.indent(tree, space="  ")
    return XML_DECLARATION + ET.tostring(root, encoding="unicode") + "\n"
