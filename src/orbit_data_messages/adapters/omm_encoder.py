# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
OMM XML encoder.

Serialises OrbitMeanElementsMessage objects into CCSDS NDM/XML. Absent
optional fields are never emitted, and the spacecraft and TLE parameter
groups are left out entirely when all of their fields are absent.

External dependencies (xml, file I/O) are confined to this adapter.
"""
import io
import os
import xml.etree.ElementTree as ET
from collections.abc import Iterable
from typing import IO

from orbit_data_messages.domain.omm import OmmData, OmmHeader, OmmMetadata, OrbitMeanElementsMessage
from orbit_data_messages.adapters.omm_decoder import OMM_ID
from orbit_data_messages.adapters.xml_tree import append_if_present, sub_element, to_xml_string


XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"
SCHEMA_LOCATION = "https://sanaregistry.org/r/ndmxml_unqualified/ndmxml-3.0.0-master-3.0.xsd"

# (attribute, CCSDS tag) in schema order for each group.
_HEADER_TAGS = (
    ("comment", "COMMENT"),
    ("classification", "CLASSIFICATION"),
    ("creation_date", "CREATION_DATE"),
    ("originator", "ORIGINATOR"),
    ("message_id", "MESSAGE_ID"),
)
_METADATA_TAGS = (
    ("comment", "COMMENT"),
    ("object_name", "OBJECT_NAME"),
    ("object_id", "OBJECT_ID"),
    ("center_name", "CENTER_NAME"),
    ("ref_frame", "REF_FRAME"),
    ("ref_frame_epoch", "REF_FRAME_EPOCH"),
    ("time_system", "TIME_SYSTEM"),
    ("mean_element_theory", "MEAN_ELEMENT_THEORY"),
)
_MEAN_ELEMENTS_TAGS = (
    ("data_comment", "COMMENT"),
    ("epoch", "EPOCH"),
    ("semi_major_axis", "SEMI_MAJOR_AXIS"),
    ("mean_motion", "MEAN_MOTION"),
    ("eccentricity", "ECCENTRICITY"),
    ("inclination", "INCLINATION"),
    ("raan", "RA_OF_ASC_NODE"),
    ("arg_of_pericenter", "ARG_OF_PERICENTER"),
    ("mean_anomaly", "MEAN_ANOMALY"),
    ("gm", "GM"),
)
_SPACECRAFT_TAGS = (
    ("spacecraft_comment", "COMMENT"),
    ("mass", "MASS"),
    ("solar_rad_area", "SOLAR_RAD_AREA"),
    ("solar_rad_coeff", "SOLAR_RAD_COEFF"),
    ("drag_area", "DRAG_AREA"),
    ("drag_coeff", "DRAG_COEFF"),
)
_TLE_TAGS = (
    ("tle_parameters_comment", "COMMENT"),
    ("ephemeris_type", "EPHEMERIS_TYPE"),
    ("classification_type", "CLASSIFICATION_TYPE"),
    ("norad_cat_id", "NORAD_CAT_ID"),
    ("element_set_number", "ELEMENT_SET_NO"),
    ("rev_at_epoch", "REV_AT_EPOCH"),
    ("bstar", "BSTAR"),
    ("mean_motion_dot", "MEAN_MOTION_DOT"),
    ("mean_motion_ddot", "MEAN_MOTION_DDOT"),
)


def _append_group(parent: ET.Element, section: object, tags: tuple[tuple[str, str], ...]) -> None:
    for attr, tag in tags:
        append_if_present(parent, tag, getattr(section, attr))


def _has_any(section: object, tags: tuple[tuple[str, str], ...]) -> bool:
    return any(getattr(section, attr) is not None for attr, _ in tags)


def _schema_attributes(node: ET.Element) -> None:
    node.set(f"{{{XSI_NAMESPACE}}}noNamespaceSchemaLocation", SCHEMA_LOCATION)


def _encode_header(parent: ET.Element, header: OmmHeader) -> None:
    _append_group(sub_element(parent, "header"), header, _HEADER_TAGS)


def _encode_metadata(parent: ET.Element, metadata: OmmMetadata) -> None:
    _append_group(sub_element(parent, "metadata"), metadata, _METADATA_TAGS)


def _encode_data(parent: ET.Element, data: OmmData) -> None:
    node = sub_element(parent, "data")
    _append_group(sub_element(node, "meanElements"), data, _MEAN_ELEMENTS_TAGS)

    if _has_any(data, _SPACECRAFT_TAGS):
        _append_group(sub_element(node, "spacecraftParameters"), data, _SPACECRAFT_TAGS)

    if _has_any(data, _TLE_TAGS):
        _append_group(sub_element(node, "tleParameters"), data, _TLE_TAGS)

    if data.user_defined_parameters is not None:
        user = sub_element(node, "userDefinedParameters")
        for key, value in data.user_defined_parameters:
            sub_element(user, "USER_DEFINED", value, parameter=key)


def _build_omm(parent: ET.Element | None, omm: OrbitMeanElementsMessage) -> ET.Element:
    attribs = {"id": OMM_ID, "version": str(omm.version)}
    if parent is None:
        node = ET.Element("omm", attribs)
    else:
        node = sub_element(parent, "omm", **attribs)

    _encode_header(node, omm.header)
    segment = sub_element(sub_element(node, "body"), "segment")
    _encode_metadata(segment, omm.metadata)
    _encode_data(segment, omm.data)
    return node


def encode_omm(omm: OrbitMeanElementsMessage) -> ET.Element:
    """Encode one OMM as a detached ``<omm>`` element."""
    return _build_omm(None, omm)


def encode_ndm(messages: Iterable[OrbitMeanElementsMessage]) -> ET.Element:
    """Encode OMMs inside an ``<ndm>`` container carrying the schema location."""
    root = ET.Element("ndm")
    _schema_attributes(root)
    for omm in messages:
        _build_omm(root, omm)
    return root


def odm_to_string(messages: OrbitMeanElementsMessage | Iterable[OrbitMeanElementsMessage]) -> str:
    """Render one OMM or a sequence of them as an NDM XML document."""
    if isinstance(messages, OrbitMeanElementsMessage):
        messages = [messages]
    return to_xml_string(encode_ndm(messages))


def omm_to_string(omm: OrbitMeanElementsMessage) -> str:
    """Render a single OMM as a standalone ``<omm>`` XML document."""
    root = encode_omm(omm)
    _schema_attributes(root)
    return to_xml_string(root)


def _write_text(target: str | os.PathLike | IO, text: str) -> None:
    if hasattr(target, "write"):
        if isinstance(target, io.TextIOBase):
            target.write(text)
        else:
            target.write(text.encode("utf-8"))
        return
    with open(target, "w", encoding="utf-8") as f:
        f.write(text)


def write_odm(
    target: str | os.PathLike | IO,
    messages: OrbitMeanElementsMessage | Iterable[OrbitMeanElementsMessage],
) -> None:
    """
    Write one or more OMMs to a file path or open stream, wrapped in ``<ndm>``.

    Text streams receive str, any other stream receives UTF-8 bytes.
    """
    _write_text(target, odm_to_string(messages))


def write_omm(target: str | os.PathLike | IO, omm: OrbitMeanElementsMessage) -> None:
    """Write a single OMM as a bare ``<omm>`` document."""
    _write_text(target, omm_to_string(omm))
