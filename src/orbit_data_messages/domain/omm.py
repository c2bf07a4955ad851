# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
OMM (Orbit Mean-Elements Message) domain model.

Immutable header, metadata and data sections of a single-segment OMM.
Required fields are checked when each section is constructed, so an
instance can never hold a partially populated message.

Floating-point fields share one type per message (``float`` by default,
or a numpy scalar type such as ``np.float32``); timestamps are
datetime64[ns].

Reference: CCSDS 502.0-B-3 (Orbit Data Messages), section 4.
"""
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, fields
from typing import Any, ClassVar

import numpy as np

from orbit_data_messages.domain.ccsds_contracts import RequiredFieldError
from orbit_data_messages.domain.epochs import as_timestamp, format_timestamp
from orbit_data_messages.domain.odm import MessageKind, OdmVersion, OMM_VERSION_3


# (attribute, CCSDS keyword) pairs, checked in this order.
HEADER_REQUIRED = (
    ("creation_date", "CREATION_DATE"),
    ("originator", "ORIGINATOR"),
)
METADATA_REQUIRED = (
    ("object_name", "OBJECT_NAME"),
    ("object_id", "OBJECT_ID"),
    ("center_name", "CENTER_NAME"),
    ("ref_frame", "REF_FRAME"),
    ("time_system", "TIME_SYSTEM"),
    ("mean_element_theory", "MEAN_ELEMENT_THEORY"),
)
MEAN_ELEMENTS_REQUIRED = (
    ("epoch", "EPOCH"),
    ("eccentricity", "ECCENTRICITY"),
    ("inclination", "INCLINATION"),
    ("raan", "RA_OF_ASC_NODE"),
    ("arg_of_pericenter", "ARG_OF_PERICENTER"),
    ("mean_anomaly", "MEAN_ANOMALY"),
)


def check_required(section: str, values: Mapping[str, Any] | object,
                   required: Iterable[tuple[str, str]]) -> None:
    """Raise RequiredFieldError for the first required field that is None.

    ``values`` may be a mapping or an object with the fields as attributes.
    """
    for name, tag in required:
        if isinstance(values, Mapping):
            value = values.get(name)
        else:
            value = getattr(values, name, None)
        if value is None:
            raise RequiredFieldError(section, name, tag)


def check_mean_motion_source(values: Mapping[str, Any] | object) -> None:
    """At least one of semi-major axis and mean motion must be present."""
    if isinstance(values, Mapping):
        sma, n = values.get("semi_major_axis"), values.get("mean_motion")
    else:
        sma, n = values.semi_major_axis, values.mean_motion
    if sma is None and n is None:
        raise RequiredFieldError("data", "mean_motion", "SEMI_MAJOR_AXIS or MEAN_MOTION")


@dataclass(frozen=True)
class OmmHeader:
    """OMM header section."""
    creation_date: np.datetime64
    originator: str
    comment: str | None = None
    classification: str | None = None
    message_id: str | None = None

    def __post_init__(self) -> None:
        check_required("header", self, HEADER_REQUIRED)


@dataclass(frozen=True)
class OmmMetadata:
    """OMM metadata section of the (single) segment."""
    object_name: str
    object_id: str
    center_name: str
    ref_frame: str
    time_system: str
    mean_element_theory: str
    comment: str | None = None
    ref_frame_epoch: np.datetime64 | None = None

    def __post_init__(self) -> None:
        check_required("metadata", self, METADATA_REQUIRED)


@dataclass(frozen=True)
class OmmData:
    """
    OMM data section of the (single) segment.

    Groups, in document order: mean Keplerian elements, spacecraft
    parameters, TLE-related parameters and user-defined parameters.
    Angles are in degrees, mean motion in rev/day, semi-major axis in km,
    GM in km³/s².
    """
    # Mean Keplerian elements
    epoch: np.datetime64
    eccentricity: float
    inclination: float
    raan: float
    arg_of_pericenter: float
    mean_anomaly: float
    data_comment: str | None = None
    semi_major_axis: float | None = None
    mean_motion: float | None = None
    gm: float | None = None

    # Spacecraft parameters
    spacecraft_comment: str | None = None
    mass: float | None = None
    solar_rad_area: float | None = None
    solar_rad_coeff: float | None = None
    drag_area: float | None = None
    drag_coeff: float | None = None

    # TLE-related parameters
    tle_parameters_comment: str | None = None
    ephemeris_type: int | None = None
    classification_type: str | None = None
    norad_cat_id: int | None = None
    element_set_number: int | None = None
    rev_at_epoch: int | None = None
    bstar: float | None = None
    mean_motion_dot: float | None = None
    mean_motion_ddot: float | None = None

    # Ordered (key, value) pairs; None when the message has no such section.
    user_defined_parameters: tuple[tuple[str, str], ...] | None = None

    def __post_init__(self) -> None:
        check_required("data", self, MEAN_ELEMENTS_REQUIRED)
        check_mean_motion_source(self)


@dataclass(frozen=True)
class OmmSegment:
    metadata: OmmMetadata
    data: OmmData


@dataclass(frozen=True)
class OmmBody:
    segment: OmmSegment


@dataclass(frozen=True)
class OrbitMeanElementsMessage:
    """A complete, validated Orbit Mean-Elements Message."""
    header: OmmHeader
    body: OmmBody
    version: OdmVersion = OMM_VERSION_3

    kind: ClassVar[MessageKind] = MessageKind.OMM

    @property
    def metadata(self) -> OmmMetadata:
        return self.body.segment.metadata

    @property
    def data(self) -> OmmData:
        return self.body.segment.data

    def __str__(self) -> str:
        return (
            f"OMM: {self.metadata.object_name} [{self.metadata.object_id}] "
            f"(Epoch = {format_timestamp(self.data.epoch)})"
        )


# Union of the message kinds that carry a payload; OMM is the only one.
OrbitDataMessage = OrbitMeanElementsMessage


# ── Flat keyword construction ───────────────────────────────────────

_HEADER_KEYWORDS = {
    "header_comment": "comment",
    "classification": "classification",
    "creation_date": "creation_date",
    "originator": "originator",
    "message_id": "message_id",
}
_METADATA_KEYWORDS = {
    "metadata_comment": "comment",
    "object_name": "object_name",
    "object_id": "object_id",
    "center_name": "center_name",
    "ref_frame": "ref_frame",
    "ref_frame_epoch": "ref_frame_epoch",
    "time_system": "time_system",
    "mean_element_theory": "mean_element_theory",
}
_DATA_KEYWORDS = {f.name: f.name for f in fields(OmmData)}

_FLOAT_FIELDS = frozenset({
    "semi_major_axis", "mean_motion", "eccentricity", "inclination", "raan",
    "arg_of_pericenter", "mean_anomaly", "gm", "mass", "solar_rad_area",
    "solar_rad_coeff", "drag_area", "drag_coeff", "bstar", "mean_motion_dot",
    "mean_motion_ddot",
})
_INT_FIELDS = frozenset({
    "ephemeris_type", "norad_cat_id", "element_set_number", "rev_at_epoch",
})
_TIMESTAMP_FIELDS = {
    "creation_date": "CREATION_DATE",
    "ref_frame_epoch": "REF_FRAME_EPOCH",
    "epoch": "EPOCH",
}

OMM_KEYWORDS = frozenset(_HEADER_KEYWORDS) | frozenset(_METADATA_KEYWORDS) | frozenset(_DATA_KEYWORDS)


def _coerce(name: str, value: Any, float_type: Callable[[Any], Any]) -> Any:
    if value is None:
        return None
    if name in _FLOAT_FIELDS:
        return float_type(value)
    if name in _INT_FIELDS:
        if isinstance(value, (float, np.floating)) and not float(value).is_integer():
            raise ValueError(f"{name} must be a whole number, got {value!r}")
        return int(value)
    if name in _TIMESTAMP_FIELDS:
        return as_timestamp(value, _TIMESTAMP_FIELDS[name])
    if name == "classification_type":
        return str(value)[:1] or None
    if name == "user_defined_parameters":
        return tuple((str(k), str(v)) for k, v in value)
    return value


def build_omm(
    *,
    version: OdmVersion = OMM_VERSION_3,
    float_type: Callable[[Any], Any] = float,
    **keywords: Any,
) -> OrbitMeanElementsMessage:
    """
    Build an OMM from flat keyword arguments.

    Header keywords: header_comment, classification, creation_date,
    originator, message_id. Metadata keywords: metadata_comment,
    object_name, object_id, center_name, ref_frame, ref_frame_epoch,
    time_system, mean_element_theory. Data keywords: every OmmData field.

    Floats are converted with ``float_type``, integers with ``int``,
    timestamps accept datetime, ISO strings or datetime64.

    Raises:
        TypeError: On an unknown keyword.
        ValueError: If an integer field is given a fractional number.
        RequiredFieldError: If a required field is missing or None.
    """
    unknown = sorted(set(keywords) - OMM_KEYWORDS)
    if unknown:
        raise TypeError(f"Unknown OMM field(s): {', '.join(unknown)}")

    values = {k: _coerce(k, v, float_type) for k, v in keywords.items()}

    header = OmmHeader(**{
        attr: values.get(kw) for kw, attr in _HEADER_KEYWORDS.items()
    })
    metadata = OmmMetadata(**{
        attr: values.get(kw) for kw, attr in _METADATA_KEYWORDS.items()
    })
    data = OmmData(**{
        attr: values.get(kw) for kw, attr in _DATA_KEYWORDS.items()
    })
    return OrbitMeanElementsMessage(
        header=header,
        body=OmmBody(OmmSegment(metadata, data)),
        version=version,
    )


def omm_fields(omm: OrbitMeanElementsMessage) -> dict[str, Any]:
    """Flatten an OMM into the keyword arguments accepted by build_omm."""
    flat: dict[str, Any] = {}
    for kw, attr in _HEADER_KEYWORDS.items():
        flat[kw] = getattr(omm.header, attr)
    for kw, attr in _METADATA_KEYWORDS.items():
        flat[kw] = getattr(omm.metadata, attr)
    for kw, attr in _DATA_KEYWORDS.items():
        flat[kw] = getattr(omm.data, attr)
    return flat


def replace_fields(omm: OrbitMeanElementsMessage, **overrides: Any) -> OrbitMeanElementsMessage:
    """
    Copy an OMM, replacing any leaf fields given as flat keywords.

    ``version`` may also be overridden. The copy is rebuilt from scratch, so
    setting a required field to None raises RequiredFieldError instead of
    producing a partially valid message. Overriding floats are converted to
    the float type already used by ``omm``.
    """
    version = overrides.pop("version", omm.version)
    flat = omm_fields(omm)
    unknown = sorted(set(overrides) - OMM_KEYWORDS)
    if unknown:
        raise TypeError(f"Unknown OMM field(s): {', '.join(unknown)}")
    flat.update(overrides)
    float_type = type(omm.data.eccentricity)
    if not issubclass(float_type, (float, np.floating)):
        float_type = float
    return build_omm(version=version, float_type=float_type, **flat)
