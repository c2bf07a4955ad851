# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
OMM XML decoder.

Walks an ElementTree holding an ``<omm>`` message or an ``<ndm>`` container
and builds validated OrbitMeanElementsMessage objects. Each XML group is
scanned once into a dict of found fields, then checked against that
group's required-field list, so every failure names the exact CCSDS tag.

Tag matching is case-insensitive. Unknown tags are ignored. Any missing
or malformed required content aborts the whole decode: an NDM with one
bad OMM yields no messages at all.

Reference: CCSDS 502.0-B-3 (Orbit Data Messages), NDM/XML 505.0-B-3.
"""
import logging
import xml.etree.ElementTree as ET
from collections.abc import Callable
from typing import Any

import numpy as np

from orbit_data_messages.domain.ccsds_contracts import (
    FormatError,
    StructuralError,
    UnsupportedVersionError,
)
from orbit_data_messages.domain.epochs import now_timestamp, parse_timestamp
from orbit_data_messages.domain.odm import MessageKind, OdmVersion
from orbit_data_messages.domain.omm import (
    HEADER_REQUIRED,
    MEAN_ELEMENTS_REQUIRED,
    METADATA_REQUIRED,
    OmmBody,
    OmmData,
    OmmHeader,
    OmmMetadata,
    OmmSegment,
    OrbitMeanElementsMessage,
    check_mean_motion_source,
    check_required,
)
from orbit_data_messages.adapters.xml_tree import (
    find_children,
    iter_elements,
    local_tag,
    parse_xml,
    read_scalar_child,
)


_log = logging.getLogger(__name__)

OMM_ID = "CCSDS_OMM_VERS"
DEFAULT_USER_DEFINED_KEY = "User Defined Parameter"

FloatType = Callable[[Any], Any]


# ── Scalar parsers ──────────────────────────────────────────────────
# Each takes (text, CCSDS tag, float type) and returns the typed value.

def _as_text(text: str, tag: str, float_type: FloatType) -> str:
    return text


def _as_float(text: str, tag: str, float_type: FloatType):
    try:
        return float_type(text.strip())
    except (TypeError, ValueError) as e:
        raise FormatError(tag, text, "floating-point number") from e


def _as_int(text: str, tag: str, float_type: FloatType) -> int:
    try:
        return int(text.strip())
    except ValueError as e:
        raise FormatError(tag, text, "integer") from e


def _as_char(text: str, tag: str, float_type: FloatType) -> str:
    text = text.strip()
    if not text:
        raise FormatError(tag, text, "single character")
    return text[0]


def _as_timestamp(text: str, tag: str, float_type: FloatType) -> np.datetime64:
    text = text.strip()
    if not text:
        # Empty epoch means "now"; the standard gives it no default.
        _log.warning("Empty %s element; using the current time", tag)
        return now_timestamp()
    return parse_timestamp(text, tag)


# Lower-cased tag -> (attribute, canonical tag, parser)
_Field = tuple[str, str, Callable[[str, str, FloatType], Any]]


def _fields(*entries: tuple[str, str, Callable]) -> dict[str, _Field]:
    return {tag.lower(): (attr, tag, parse) for attr, tag, parse in entries}


_HEADER_FIELDS = _fields(
    ("comment", "COMMENT", _as_text),
    ("classification", "CLASSIFICATION", _as_text),
    ("creation_date", "CREATION_DATE", _as_timestamp),
    ("originator", "ORIGINATOR", _as_text),
    ("message_id", "MESSAGE_ID", _as_text),
)

_METADATA_FIELDS = _fields(
    ("comment", "COMMENT", _as_text),
    ("object_name", "OBJECT_NAME", _as_text),
    ("object_id", "OBJECT_ID", _as_text),
    ("center_name", "CENTER_NAME", _as_text),
    ("ref_frame", "REF_FRAME", _as_text),
    ("ref_frame_epoch", "REF_FRAME_EPOCH", _as_timestamp),
    ("time_system", "TIME_SYSTEM", _as_text),
    ("mean_element_theory", "MEAN_ELEMENT_THEORY", _as_text),
)

_MEAN_ELEMENTS_FIELDS = _fields(
    ("data_comment", "COMMENT", _as_text),
    ("epoch", "EPOCH", _as_timestamp),
    ("semi_major_axis", "SEMI_MAJOR_AXIS", _as_float),
    ("mean_motion", "MEAN_MOTION", _as_float),
    ("eccentricity", "ECCENTRICITY", _as_float),
    ("inclination", "INCLINATION", _as_float),
    ("raan", "RA_OF_ASC_NODE", _as_float),
    ("arg_of_pericenter", "ARG_OF_PERICENTER", _as_float),
    ("mean_anomaly", "MEAN_ANOMALY", _as_float),
    ("gm", "GM", _as_float),
)

_SPACECRAFT_FIELDS = _fields(
    ("spacecraft_comment", "COMMENT", _as_text),
    ("mass", "MASS", _as_float),
    ("solar_rad_area", "SOLAR_RAD_AREA", _as_float),
    ("solar_rad_coeff", "SOLAR_RAD_COEFF", _as_float),
    ("drag_area", "DRAG_AREA", _as_float),
    ("drag_coeff", "DRAG_COEFF", _as_float),
)

_TLE_FIELDS = _fields(
    ("tle_parameters_comment", "COMMENT", _as_text),
    ("ephemeris_type", "EPHEMERIS_TYPE", _as_int),
    ("classification_type", "CLASSIFICATION_TYPE", _as_char),
    ("norad_cat_id", "NORAD_CAT_ID", _as_int),
    ("element_set_number", "ELEMENT_SET_NO", _as_int),
    ("element_set_number", "ELEMENT_SET_NUMBER", _as_int),
    ("rev_at_epoch", "REV_AT_EPOCH", _as_int),
    ("bstar", "BSTAR", _as_float),
    ("mean_motion_dot", "MEAN_MOTION_DOT", _as_float),
    ("mean_motion_ddot", "MEAN_MOTION_DDOT", _as_float),
)


def _scan_group(
    node: ET.Element,
    table: dict[str, _Field],
    float_type: FloatType,
    keep_first: frozenset[str] = frozenset(),
) -> dict[str, Any]:
    """Map the leaf children of ``node`` onto attributes via ``table``.

    Later occurrences of a tag overwrite earlier ones, except for the
    attributes listed in ``keep_first``.
    """
    found: dict[str, Any] = {}
    for child in iter_elements(node):
        entry = table.get(local_tag(child))
        if entry is None:
            continue
        attr, tag, parse = entry
        if attr in keep_first and attr in found:
            continue
        found[attr] = parse(read_scalar_child(child), tag, float_type)
    return found


def _attribute(node: ET.Element, name: str) -> str | None:
    """Attribute value by case-insensitive name, ignoring namespaces."""
    name = name.lower()
    for key, value in node.attrib.items():
        if key.rsplit("}", 1)[-1].lower() == name:
            return value
    return None


def _only_child(node: ET.Element, tag: str, parent: str) -> ET.Element:
    matches = find_children(node, tag)
    if not matches:
        raise StructuralError(f"The OMM {parent} is missing the {tag} section.")
    if len(matches) > 1:
        raise StructuralError(f"The OMM {parent} contains {len(matches)} {tag} sections; expected one.")
    return matches[0]


# ── Sections ────────────────────────────────────────────────────────

def _decode_version(node: ET.Element) -> OdmVersion:
    msg_id = _attribute(node, "id")
    if msg_id is None or msg_id.strip().upper() != OMM_ID:
        raise StructuralError(
            f"The OMM element is missing the required `id = {OMM_ID}` attribute."
        )

    text = _attribute(node, "version")
    if text is None:
        raise StructuralError("The OMM element is missing the required `version` attribute.")

    version = OdmVersion.parse(text)
    if not version.is_supported:
        raise UnsupportedVersionError(version)
    return version


def _decode_header(node: ET.Element) -> OmmHeader:
    found = _scan_group(node, _HEADER_FIELDS, float)
    check_required("header", found, HEADER_REQUIRED)
    return OmmHeader(**found)


def _decode_metadata(node: ET.Element) -> OmmMetadata:
    found = _scan_group(node, _METADATA_FIELDS, float)
    check_required("metadata", found, METADATA_REQUIRED)
    return OmmMetadata(**found)


def _decode_user_defined(node: ET.Element) -> tuple[tuple[str, str], ...]:
    pairs = []
    for child in find_children(node, "user_defined"):
        key = _attribute(child, "parameter")
        if key is None:
            key = DEFAULT_USER_DEFINED_KEY
        pairs.append((key, read_scalar_child(child)))
    return tuple(pairs)


def _decode_data(node: ET.Element, float_type: FloatType) -> OmmData:
    found: dict[str, Any] = {}
    mean_elements = spacecraft = tle_parameters = user_defined = None

    for child in iter_elements(node):
        tag = local_tag(child)
        if tag == "comment":
            found["data_comment"] = read_scalar_child(child)
        elif tag == "meanelements":
            mean_elements = child
        elif tag == "spacecraftparameters":
            spacecraft = child
        elif tag == "tleparameters":
            tle_parameters = child
        elif tag == "userdefinedparameters":
            user_defined = child

    if mean_elements is None:
        raise StructuralError("The OMM data is missing the required section `meanElements`.")

    found.update(_scan_group(mean_elements, _MEAN_ELEMENTS_FIELDS, float_type))
    check_required("data", found, MEAN_ELEMENTS_REQUIRED)
    check_mean_motion_source(found)

    if spacecraft is not None:
        found.update(_scan_group(
            spacecraft, _SPACECRAFT_FIELDS, float_type,
            keep_first=frozenset({"spacecraft_comment"}),
        ))

    if tle_parameters is not None:
        found.update(_scan_group(tle_parameters, _TLE_FIELDS, float_type))

    if user_defined is not None:
        found["user_defined_parameters"] = _decode_user_defined(user_defined)

    return OmmData(**found)


def _decode_segment(body: ET.Element, float_type: FloatType) -> OmmSegment:
    segments = find_children(body, "segment")
    if not segments:
        raise StructuralError("The OMM body is missing the segment.")
    if len(segments) > 1:
        raise StructuralError("The OMM body contains multiple segments, which is not supported.")
    segment = segments[0]

    metadata_node = _only_child(segment, "metadata", "segment")
    data_node = _only_child(segment, "data", "segment")
    return OmmSegment(
        metadata=_decode_metadata(metadata_node),
        data=_decode_data(data_node, float_type),
    )


# ── Public decoding API ─────────────────────────────────────────────

def decode_omm(node: ET.Element, float_type: FloatType = float) -> OrbitMeanElementsMessage:
    """
    Decode a single ``<omm>`` element.

    Args:
        node: The ``omm`` element.
        float_type: Type used for every floating-point field
            (float, np.float32, np.float64, ...).

    Raises:
        StructuralError: Wrong root tag, missing/duplicate sections.
        RequiredFieldError: A required field is absent.
        FormatError: A value does not parse.
        UnsupportedVersionError: Version outside 2.0 <= v < 4.0.
    """
    if local_tag(node) != "omm":
        raise StructuralError("The provided XML does not contain an OMM element.")

    version = _decode_version(node)
    header = _decode_header(_only_child(node, "header", "message"))
    body = _only_child(node, "body", "message")
    segment = _decode_segment(body, float_type)

    omm = OrbitMeanElementsMessage(header=header, body=OmmBody(segment), version=version)
    _log.debug("Decoded %s", omm)
    return omm


def _warn_unsupported(kind: MessageKind) -> None:
    _log.warning("Orbit Data Message kind %s is not supported; skipping it", kind.name)


def decode_ndm(node: ET.Element, float_type: FloatType = float) -> list[OrbitMeanElementsMessage]:
    """
    Decode every ``<omm>`` child of an ``<ndm>`` container, in document order.

    OPM, OEM and OCM siblings are skipped with a warning; other tags are
    skipped silently. The first invalid OMM aborts the whole container.
    """
    messages: list[OrbitMeanElementsMessage] = []
    for child in iter_elements(node):
        kind = MessageKind.from_tag(local_tag(child))
        if kind is MessageKind.OMM:
            messages.append(decode_omm(child, float_type))
        elif kind is not None:
            _warn_unsupported(kind)
    return messages


def decode_odm(node: ET.Element, float_type: FloatType = float):
    """
    Decode an Orbit Data Message document root.

    Returns:
        An OrbitMeanElementsMessage for an ``omm`` root, a list of them for
        an ``ndm`` root, or None for an unsupported OPM/OEM/OCM root.

    Raises:
        StructuralError: If the root tag is not an ODM kind or ``ndm``.
    """
    tag = local_tag(node)
    if tag == "ndm":
        return decode_ndm(node, float_type)
    kind = MessageKind.from_tag(tag)
    if kind is MessageKind.OMM:
        return decode_omm(node, float_type)
    if kind is not None:
        _warn_unsupported(kind)
        return None
    raise StructuralError(f"The root tag `{node.tag}` is not recognized.")


def parse_odm(text: str | bytes, float_type: FloatType = float):
    """Parse ODM XML text; see decode_odm for the return value."""
    return decode_odm(parse_xml(text), float_type)


def parse_omms(text: str | bytes, float_type: FloatType = float) -> list[OrbitMeanElementsMessage] | None:
    """Parse every OMM in XML text.

    Returns:
        A list (possibly empty) for an ``omm`` or ``ndm`` root, else None.
    """
    root = parse_xml(text)
    tag = local_tag(root)
    if tag == "ndm":
        return decode_ndm(root, float_type)
    if tag == "omm":
        return [decode_omm(root, float_type)]
    return None


def parse_omm(text: str | bytes, float_type: FloatType = float) -> OrbitMeanElementsMessage | None:
    """Parse the first OMM in XML text, or return None if there is none."""
    root = parse_xml(text)
    if local_tag(root) == "omm":
        return decode_omm(root, float_type)
    if local_tag(root) == "ndm":
        for child in find_children(root, "omm"):
            return decode_omm(child, float_type)
    return None


def _read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def read_odm(path: str, float_type: FloatType = float):
    """Read and decode an ODM XML file; see decode_odm."""
    return parse_odm(_read_bytes(path), float_type)


def read_omm(path: str, float_type: FloatType = float) -> OrbitMeanElementsMessage | None:
    """Read the first OMM from an XML file."""
    return parse_omm(_read_bytes(path), float_type)


def read_omms(path: str, float_type: FloatType = float) -> list[OrbitMeanElementsMessage] | None:
    """Read every OMM from an XML file."""
    return parse_omms(_read_bytes(path), float_type)
