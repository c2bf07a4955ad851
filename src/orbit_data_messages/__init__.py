# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Orbit Data Messages

Read and write CCSDS Orbit Mean-Elements Messages (OMM) in XML, alone or
inside NDM containers, convert SGP4-theory OMMs into Two-Line Element sets,
and fetch OMMs from CelesTrak and Space-Track.
"""

from orbit_data_messages.domain.ccsds_contracts import (
    CcsdsValidationError,
    StructuralError,
    RequiredFieldError,
    FormatError,
    UnsupportedVersionError,
)
from orbit_data_messages.domain.odm import (
    MessageKind,
    OdmVersion,
    OMM_VERSION_3,
)
from orbit_data_messages.domain.omm import (
    OmmHeader,
    OmmMetadata,
    OmmData,
    OmmSegment,
    OmmBody,
    OrbitMeanElementsMessage,
    OrbitDataMessage,
    build_omm,
    omm_fields,
    replace_fields,
)
from orbit_data_messages.domain.tle import (
    TleRecord,
    omm_to_tle,
    object_id_to_intl_designator,
    format_tle_lines,
    tle_to_satrec,
)
from orbit_data_messages.adapters.omm_decoder import (
    decode_omm,
    decode_ndm,
    decode_odm,
    parse_odm,
    parse_omm,
    parse_omms,
    read_odm,
    read_omm,
    read_omms,
)
from orbit_data_messages.adapters.omm_encoder import (
    encode_omm,
    encode_ndm,
    odm_to_string,
    omm_to_string,
    write_odm,
    write_omm,
)

__version__ = "0.1.0"

__all__ = [
    "CcsdsValidationError",
    "StructuralError",
    "RequiredFieldError",
    "FormatError",
    "UnsupportedVersionError",
    "MessageKind",
    "OdmVersion",
    "OMM_VERSION_3",
    "OmmHeader",
    "OmmMetadata",
    "OmmData",
    "OmmSegment",
    "OmmBody",
    "OrbitMeanElementsMessage",
    "OrbitDataMessage",
    "build_omm",
    "omm_fields",
    "replace_fields",
    "TleRecord",
    "omm_to_tle",
    "object_id_to_intl_designator",
    "format_tle_lines",
    "tle_to_satrec",
    "decode_omm",
    "decode_ndm",
    "decode_odm",
    "parse_odm",
    "parse_omm",
    "parse_omms",
    "read_odm",
    "read_omm",
    "read_omms",
    "encode_omm",
    "encode_ndm",
    "odm_to_string",
    "omm_to_string",
    "write_odm",
    "write_omm",
]
