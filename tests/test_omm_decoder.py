# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Tests for the OMM XML decoder.

Verifies field mapping, required-field rejection, version checks, NDM
fan-out, case-insensitive tags and the Space-Track sample file.
"""
import logging
import xml.etree.ElementTree as ET
from pathlib import Path

import numpy as np
import pytest

from orbit_data_messages.domain.ccsds_contracts import (
    CcsdsValidationError,
    FormatError,
    RequiredFieldError,
    StructuralError,
    UnsupportedVersionError,
)
from orbit_data_messages.domain.odm import OdmVersion
from orbit_data_messages.domain.omm import OrbitMeanElementsMessage
from orbit_data_messages.adapters.omm_decoder import (
    DEFAULT_USER_DEFINED_KEY,
    decode_ndm,
    decode_odm,
    decode_omm,
    parse_odm,
    parse_omm,
    parse_omms,
    read_odm,
    read_omm,
    read_omms,
)


DATA_DIR = Path(__file__).resolve().parent / "data"
AMAZONIA_FILE = DATA_DIR / "2025-12-30-Amazonia_1.xml"

MINIMAL_OMM = """\
<omm id="CCSDS_OMM_VERS" version="3.0">
  <header>
    <CREATION_DATE>2025-12-30T23:36:37</CREATION_DATE>
    <ORIGINATOR>18 SPCS</ORIGINATOR>
  </header>
  <body>
    <segment>
      <metadata>
        <OBJECT_NAME>AMAZONIA 1</OBJECT_NAME>
        <OBJECT_ID>2021-015A</OBJECT_ID>
        <CENTER_NAME>EARTH</CENTER_NAME>
        <REF_FRAME>TEME</REF_FRAME>
        <TIME_SYSTEM>UTC</TIME_SYSTEM>
        <MEAN_ELEMENT_THEORY>SGP4</MEAN_ELEMENT_THEORY>
      </metadata>
      <data>
        <meanElements>
          <EPOCH>2025-12-30T18:12:04.533984</EPOCH>
          <MEAN_MOTION>14.40772474</MEAN_MOTION>
          <ECCENTRICITY>.00011240</ECCENTRICITY>
          <INCLINATION>98.3721</INCLINATION>
          <RA_OF_ASC_NODE>75.0877</RA_OF_ASC_NODE>
          <ARG_OF_PERICENTER>97.3772</ARG_OF_PERICENTER>
          <MEAN_ANOMALY>262.7545</MEAN_ANOMALY>
        </meanElements>
      </data>
    </segment>
  </body>
</omm>
"""


def _omm_element() -> ET.Element:
    return ET.fromstring(MINIMAL_OMM)


def _remove(root: ET.Element, path: str) -> None:
    parent_path, _, tag = path.rpartition("/")
    parent = root.find(parent_path) if parent_path else root
    parent.remove(parent.find(tag))


def _set_text(root: ET.Element, path: str, text: str) -> None:
    root.find(path).text = text


def _append(root: ET.Element, path: str, xml: str) -> None:
    root.find(path).append(ET.fromstring(xml))


def _ndm(*children: str) -> str:
    return "<ndm>" + "".join(children) + "</ndm>"


def _omm_named(name: str) -> str:
    root = _omm_element()
    _set_text(root, "body/segment/metadata/OBJECT_NAME", name)
    return ET.tostring(root, encoding="unicode")


# ── Sample file ─────────────────────────────────────────────────────

class TestAmazoniaSample:
    """Space-Track output for AMAZONIA 1 decodes field by field."""

    @pytest.fixture
    def omm(self):
        odm = read_odm(str(AMAZONIA_FILE))
        assert isinstance(odm, list)
        assert len(odm) == 1
        return odm[0]

    def test_header(self, omm):
        assert omm.version == OdmVersion(3, 0)
        assert omm.header.comment == "GENERATED VIA SPACE-TRACK.ORG API"
        assert omm.header.classification is None
        assert omm.header.creation_date == np.datetime64("2025-12-30T23:36:37", "ns")
        assert omm.header.originator == "18 SPCS"
        assert omm.header.message_id is None

    def test_metadata(self, omm):
        md = omm.metadata
        assert md.comment is None
        assert md.object_name == "AMAZONIA 1"
        assert md.object_id == "2021-015A"
        assert md.center_name == "EARTH"
        assert md.ref_frame == "TEME"
        assert md.ref_frame_epoch is None
        assert md.time_system == "UTC"
        assert md.mean_element_theory == "SGP4"

    def test_mean_elements(self, omm):
        d = omm.data
        assert d.data_comment is None
        assert d.epoch == np.datetime64("2025-12-30T18:12:04.533984", "ns")
        assert d.semi_major_axis is None
        assert d.mean_motion == pytest.approx(14.40772474, abs=1e-6)
        assert d.eccentricity == pytest.approx(0.00011240, abs=1e-8)
        assert d.inclination == pytest.approx(98.3721, abs=1e-4)
        assert d.raan == pytest.approx(75.0877, abs=1e-4)
        assert d.arg_of_pericenter == pytest.approx(97.3772, abs=1e-4)
        assert d.mean_anomaly == pytest.approx(262.7545, abs=1e-4)
        assert d.gm is None

    def test_spacecraft_parameters_absent(self, omm):
        d = omm.data
        assert d.spacecraft_comment is None
        assert d.mass is None
        assert d.solar_rad_area is None
        assert d.solar_rad_coeff is None
        assert d.drag_area is None
        assert d.drag_coeff is None

    def test_tle_parameters(self, omm):
        d = omm.data
        assert d.tle_parameters_comment is None
        assert d.ephemeris_type == 0
        assert d.classification_type == "U"
        assert d.norad_cat_id == 47699
        assert d.element_set_number == 999
        assert d.rev_at_epoch == 25439
        assert d.bstar == pytest.approx(0.0001533, abs=1e-12)
        assert d.mean_motion_dot == pytest.approx(0.00000447, abs=1e-9)
        assert d.mean_motion_ddot == pytest.approx(0.0, abs=1e-13)

    def test_user_defined_parameters(self, omm):
        params = omm.data.user_defined_parameters
        assert len(params) == 12
        assert params[0] == ("SEMIMAJOR_AXIS", "7134.084")
        assert params[-1] == ("GP_ID", "307230979")
        lookup = dict(params)
        assert lookup["PERIOD"] == "99.946"
        assert lookup["OBJECT_TYPE"] == "PAYLOAD"
        assert lookup["COUNTRY_CODE"] == "BRAZ"
        assert lookup["LAUNCH_DATE"] == "2021-02-28"
        assert lookup["DECAY_DATE"] == ""

    def test_read_omm_returns_first(self):
        omm = read_omm(str(AMAZONIA_FILE))
        assert isinstance(omm, OrbitMeanElementsMessage)
        assert omm.metadata.object_name == "AMAZONIA 1"

    def test_read_omms_returns_list(self):
        omms = read_omms(AMAZONIA_FILE)
        assert [o.data.norad_cat_id for o in omms] == [47699]


# ── Required fields ─────────────────────────────────────────────────

class TestRequiredFields:
    """Removing any required element rejects the message, naming the field."""

    @pytest.mark.parametrize("path,field,tag", [
        ("header/CREATION_DATE", "creation_date", "CREATION_DATE"),
        ("header/ORIGINATOR", "originator", "ORIGINATOR"),
        ("body/segment/metadata/OBJECT_NAME", "object_name", "OBJECT_NAME"),
        ("body/segment/metadata/OBJECT_ID", "object_id", "OBJECT_ID"),
        ("body/segment/metadata/CENTER_NAME", "center_name", "CENTER_NAME"),
        ("body/segment/metadata/REF_FRAME", "ref_frame", "REF_FRAME"),
        ("body/segment/metadata/TIME_SYSTEM", "time_system", "TIME_SYSTEM"),
        ("body/segment/metadata/MEAN_ELEMENT_THEORY", "mean_element_theory", "MEAN_ELEMENT_THEORY"),
        ("body/segment/data/meanElements/EPOCH", "epoch", "EPOCH"),
        ("body/segment/data/meanElements/ECCENTRICITY", "eccentricity", "ECCENTRICITY"),
        ("body/segment/data/meanElements/INCLINATION", "inclination", "INCLINATION"),
        ("body/segment/data/meanElements/RA_OF_ASC_NODE", "raan", "RA_OF_ASC_NODE"),
        ("body/segment/data/meanElements/ARG_OF_PERICENTER", "arg_of_pericenter", "ARG_OF_PERICENTER"),
        ("body/segment/data/meanElements/MEAN_ANOMALY", "mean_anomaly", "MEAN_ANOMALY"),
    ])
    def test_missing_field_rejected(self, path, field, tag):
        root = _omm_element()
        _remove(root, path)
        with pytest.raises(RequiredFieldError) as excinfo:
            decode_omm(root)
        assert excinfo.value.field == field
        assert excinfo.value.tag == tag
        assert tag in str(excinfo.value)

    def test_errors_are_value_errors(self):
        root = _omm_element()
        _remove(root, "header/ORIGINATOR")
        with pytest.raises(ValueError):
            decode_omm(root)

    @pytest.mark.parametrize("path", [
        "header",
        "body",
        "body/segment",
        "body/segment/metadata",
        "body/segment/data",
        "body/segment/data/meanElements",
    ])
    def test_missing_section_rejected(self, path):
        root = _omm_element()
        _remove(root, path)
        with pytest.raises(StructuralError):
            decode_omm(root)

    def test_multiple_segments_rejected(self):
        root = _omm_element()
        body = root.find("body")
        body.append(ET.fromstring(ET.tostring(body.find("segment"))))
        with pytest.raises(StructuralError, match="multiple segments"):
            decode_omm(root)

    def test_duplicate_header_rejected(self):
        root = _omm_element()
        root.insert(0, ET.fromstring(ET.tostring(root.find("header"))))
        with pytest.raises(StructuralError):
            decode_omm(root)


class TestMeanMotionRule:
    """At least one of SEMI_MAJOR_AXIS and MEAN_MOTION must be present."""

    def test_neither_rejected(self):
        root = _omm_element()
        _remove(root, "body/segment/data/meanElements/MEAN_MOTION")
        with pytest.raises(RequiredFieldError) as excinfo:
            decode_omm(root)
        assert excinfo.value.field == "mean_motion"

    def test_semi_major_axis_only_accepted(self):
        root = _omm_element()
        _remove(root, "body/segment/data/meanElements/MEAN_MOTION")
        _append(root, "body/segment/data/meanElements", "<SEMI_MAJOR_AXIS>7134.084</SEMI_MAJOR_AXIS>")
        omm = decode_omm(root)
        assert omm.data.mean_motion is None
        assert omm.data.semi_major_axis == pytest.approx(7134.084)

    def test_both_accepted(self):
        root = _omm_element()
        _append(root, "body/segment/data/meanElements", "<SEMI_MAJOR_AXIS>7134.084</SEMI_MAJOR_AXIS>")
        omm = decode_omm(root)
        assert omm.data.mean_motion == pytest.approx(14.40772474)
        assert omm.data.semi_major_axis == pytest.approx(7134.084)


# ── Version and identity ────────────────────────────────────────────

class TestVersion:
    """The id attribute and version range are enforced."""

    @pytest.mark.parametrize("text,expected", [
        ("2.0", OdmVersion(2, 0)),
        ("3.0", OdmVersion(3, 0)),
        ("3.0.0", OdmVersion(3, 0)),
        ("3", OdmVersion(3, 0)),
    ])
    def test_supported_versions(self, text, expected):
        root = _omm_element()
        root.set("version", text)
        assert decode_omm(root).version == expected

    @pytest.mark.parametrize("text", ["1.0", "4.0", "10.1"])
    def test_unsupported_versions(self, text):
        root = _omm_element()
        root.set("version", text)
        with pytest.raises(UnsupportedVersionError):
            decode_omm(root)

    def test_malformed_version(self):
        root = _omm_element()
        root.set("version", "three")
        with pytest.raises(FormatError):
            decode_omm(root)

    def test_missing_version(self):
        root = _omm_element()
        del root.attrib["version"]
        with pytest.raises(StructuralError):
            decode_omm(root)

    @pytest.mark.parametrize("value", [None, "CCSDS_OPM_VERS"])
    def test_wrong_or_missing_id(self, value):
        root = _omm_element()
        if value is None:
            del root.attrib["id"]
        else:
            root.set("id", value)
        with pytest.raises(StructuralError):
            decode_omm(root)

    def test_id_is_case_insensitive(self):
        root = _omm_element()
        root.set("id", "ccsds_omm_vers")
        assert decode_omm(root).metadata.object_name == "AMAZONIA 1"

    def test_non_omm_element_rejected(self):
        with pytest.raises(StructuralError):
            decode_omm(ET.fromstring("<opm/>"))


# ── Scalars ─────────────────────────────────────────────────────────

class TestScalarParsing:
    """Values are typed and rejected with the offending tag named."""

    def test_bad_float_names_tag(self):
        root = _omm_element()
        _set_text(root, "body/segment/data/meanElements/INCLINATION", "ninety")
        with pytest.raises(FormatError) as excinfo:
            decode_omm(root)
        assert excinfo.value.tag == "INCLINATION"
        assert excinfo.value.text == "ninety"

    def test_bad_integer_names_tag(self):
        root = _omm_element()
        _append(root, "body/segment/data", "<tleParameters><NORAD_CAT_ID>4x</NORAD_CAT_ID></tleParameters>")
        with pytest.raises(FormatError) as excinfo:
            decode_omm(root)
        assert excinfo.value.tag == "NORAD_CAT_ID"

    def test_bad_epoch_names_tag(self):
        root = _omm_element()
        _set_text(root, "body/segment/data/meanElements/EPOCH", "yesterday")
        with pytest.raises(FormatError) as excinfo:
            decode_omm(root)
        assert excinfo.value.tag == "EPOCH"

    def test_typed_values_ignore_surrounding_whitespace(self):
        root = _omm_element()
        _set_text(root, "body/segment/data/meanElements/INCLINATION", "  98.3721 ")
        _set_text(root, "body/segment/data/meanElements/EPOCH", "\n  2025-12-30T18:12:04.533984 \n")
        _append(root, "body/segment/data", "<tleParameters><NORAD_CAT_ID> 47699 </NORAD_CAT_ID></tleParameters>")
        omm = decode_omm(root)
        assert omm.data.inclination == pytest.approx(98.3721)
        assert omm.data.epoch == np.datetime64("2025-12-30T18:12:04.533984", "ns")
        assert omm.data.norad_cat_id == 47699

    def test_string_values_are_verbatim(self):
        root = _omm_element()
        _set_text(root, "body/segment/metadata/OBJECT_NAME", "\n   AMAZONIA 1  \n")
        omm = decode_omm(root)
        assert omm.metadata.object_name == "\n   AMAZONIA 1  \n"

    def test_empty_epoch_falls_back_to_now(self, caplog):
        root = _omm_element()
        _set_text(root, "body/segment/data/meanElements/EPOCH", "")
        before = np.datetime64("now", "ns")
        with caplog.at_level(logging.WARNING, logger="orbit_data_messages.adapters.omm_decoder"):
            omm = decode_omm(root)
        assert omm.data.epoch >= before - np.timedelta64(1, "s")
        assert "EPOCH" in caplog.text

    @pytest.mark.parametrize("float_type", [np.float32, np.float64])
    def test_float_type(self, float_type):
        omm = decode_omm(_omm_element(), float_type=float_type)
        assert isinstance(omm.data.inclination, float_type)
        assert isinstance(omm.data.mean_motion, float_type)

    def test_classification_type_keeps_first_character(self):
        root = _omm_element()
        _append(root, "body/segment/data",
                "<tleParameters><CLASSIFICATION_TYPE>Unclassified</CLASSIFICATION_TYPE></tleParameters>")
        assert decode_omm(root).data.classification_type == "U"

    @pytest.mark.parametrize("tag", ["ELEMENT_SET_NO", "ELEMENT_SET_NUMBER"])
    def test_element_set_spellings(self, tag):
        root = _omm_element()
        _append(root, "body/segment/data", f"<tleParameters><{tag}>999</{tag}></tleParameters>")
        assert decode_omm(root).data.element_set_number == 999

    def test_spacecraft_comment_keeps_first(self):
        root = _omm_element()
        _append(root, "body/segment/data",
                "<spacecraftParameters><COMMENT>first</COMMENT><COMMENT>second</COMMENT>"
                "<MASS>700</MASS></spacecraftParameters>")
        omm = decode_omm(root)
        assert omm.data.spacecraft_comment == "first"
        assert omm.data.mass == pytest.approx(700.0)

    def test_user_defined_default_key(self):
        root = _omm_element()
        _append(root, "body/segment/data",
                "<userDefinedParameters><USER_DEFINED>x</USER_DEFINED>"
                "<USER_DEFINED parameter=\"B\">y</USER_DEFINED></userDefinedParameters>")
        params = decode_omm(root).data.user_defined_parameters
        assert params == ((DEFAULT_USER_DEFINED_KEY, "x"), ("B", "y"))

    def test_empty_user_defined_group(self):
        root = _omm_element()
        _append(root, "body/segment/data", "<userDefinedParameters/>")
        assert decode_omm(root).data.user_defined_parameters == ()

    def test_unknown_tags_ignored(self):
        root = _omm_element()
        _append(root, "body/segment/metadata", "<FAVOURITE_COLOUR>blue</FAVOURITE_COLOUR>")
        _append(root, "body/segment/data", "<extraGroup><X>1</X></extraGroup>")
        assert decode_omm(root).metadata.object_name == "AMAZONIA 1"


class TestCaseInsensitivity:
    """Tag and attribute names match regardless of case."""

    def test_lower_case_document(self):
        text = MINIMAL_OMM
        for tag in ("CREATION_DATE", "ORIGINATOR", "OBJECT_NAME", "EPOCH", "MEAN_MOTION"):
            text = text.replace(f"<{tag}>", f"<{tag.lower()}>").replace(f"</{tag}>", f"</{tag.lower()}>")
        text = text.replace("<meanElements>", "<MEANELEMENTS>").replace("</meanElements>", "</MEANELEMENTS>")
        omm = parse_omm(text)
        assert omm.header.originator == "18 SPCS"
        assert omm.metadata.object_name == "AMAZONIA 1"
        assert omm.data.mean_motion == pytest.approx(14.40772474)

    def test_upper_case_root(self):
        text = MINIMAL_OMM.replace("<omm ", "<OMM ").replace("</omm>", "</OMM>")
        assert isinstance(parse_odm(text), OrbitMeanElementsMessage)


# ── Containers and dispatch ─────────────────────────────────────────

class TestNdmContainer:
    """NDM containers fan out into their OMMs, in document order."""

    def test_fan_out_skips_opm(self, caplog):
        text = _ndm(_omm_named("A"), "<opm/>", _omm_named("B"), _omm_named("C"))
        with caplog.at_level(logging.WARNING, logger="orbit_data_messages.adapters.omm_decoder"):
            omms = parse_odm(text)
        assert [o.metadata.object_name for o in omms] == ["A", "B", "C"]
        assert "OPM" in caplog.text

    def test_other_siblings_skipped_silently(self, caplog):
        text = _ndm("<COMMENT>batch</COMMENT>", _omm_named("A"))
        with caplog.at_level(logging.WARNING, logger="orbit_data_messages.adapters.omm_decoder"):
            omms = decode_ndm(ET.fromstring(text))
        assert len(omms) == 1
        assert caplog.records == []

    def test_one_bad_omm_aborts_all(self):
        bad = _omm_element()
        _remove(bad, "header/ORIGINATOR")
        text = _ndm(_omm_named("A"), ET.tostring(bad, encoding="unicode"))
        with pytest.raises(RequiredFieldError):
            parse_odm(text)

    def test_empty_ndm(self):
        assert parse_odm("<ndm/>") == []

    def test_parse_omm_returns_first(self):
        omm = parse_omm(_ndm("<oem/>", _omm_named("A"), _omm_named("B")))
        assert omm.metadata.object_name == "A"

    def test_parse_omm_without_omm(self):
        assert parse_omm(_ndm("<opm/>")) is None
        assert parse_omm("<something/>") is None

    def test_parse_omms(self):
        assert [o.metadata.object_name for o in parse_omms(_ndm(_omm_named("A"), _omm_named("B")))] == ["A", "B"]
        assert len(parse_omms(MINIMAL_OMM)) == 1
        assert parse_omms("<opm/>") is None


class TestRootDispatch:
    """decode_odm picks the decoder from the root tag."""

    def test_omm_root(self):
        assert isinstance(decode_odm(_omm_element()), OrbitMeanElementsMessage)

    @pytest.mark.parametrize("tag", ["opm", "oem", "ocm"])
    def test_unsupported_kind_returns_none(self, tag, caplog):
        with caplog.at_level(logging.WARNING, logger="orbit_data_messages.adapters.omm_decoder"):
            assert parse_odm(f"<{tag}/>") is None
        assert tag.upper() in caplog.text

    def test_unknown_root_rejected(self):
        with pytest.raises(StructuralError):
            parse_odm("<kml/>")

    def test_malformed_xml(self):
        with pytest.raises(FormatError):
            parse_odm("<omm><header></omm>")

    def test_bytes_input(self):
        omm = parse_odm(AMAZONIA_FILE.read_bytes())
        assert omm[0].data.norad_cat_id == 47699

    def test_all_errors_share_base(self):
        for text in ("<kml/>", "<omm", MINIMAL_OMM.replace('version="3.0"', 'version="9.0"')):
            with pytest.raises(CcsdsValidationError):
                parse_odm(text)
