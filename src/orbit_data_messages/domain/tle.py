# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
OMM to Two-Line Element (TLE) conversion.

Only OMMs whose mean element theory is SGP4 carry elements in the form a
TLE expects, so the conversion refuses any other theory.

The OMM MEAN_MOTION_DOT and MEAN_MOTION_DDOT values are taken as already
divided by 2 and 6 respectively (the TLE line-1 convention). CelesTrak and
Space-Track publish them that way; the ODM standard does not say, so this
assumption is kept explicit here and not corrected anywhere else.

TLE format: https://celestrak.org/NORAD/documentation/tle-fmt.php
"""
import math
import re
from dataclasses import dataclass

import numpy as np

from orbit_data_messages.domain.ccsds_contracts import RequiredFieldError, StructuralError
from orbit_data_messages.domain.epochs import day_of_year_components
from orbit_data_messages.domain.omm import OrbitMeanElementsMessage


SGP4_THEORY = "SGP4"

_SECONDS_PER_DAY = 86400.0

_OBJECT_ID_RE = re.compile(r"^(\d{4})-(\d{1,3})([A-Z]*)$")


@dataclass(frozen=True)
class TleRecord:
    """
    Fields of a Two-Line Element set.

    Angles in degrees, mean motion in rev/day, mean_motion_dot is ṅ/2 in
    rev/day², mean_motion_ddot is n̈/6 in rev/day³, bstar in 1/earth-radii.
    """
    name: str
    satellite_number: int
    classification: str
    international_designator: str
    epoch_year: int
    epoch_day: float
    mean_motion_dot: float
    mean_motion_ddot: float
    bstar: float
    element_set_number: int
    inclination: float
    raan: float
    eccentricity: float
    arg_of_perigee: float
    mean_anomaly: float
    mean_motion: float
    revolution_number: int
    ephemeris_type: int = 0


def object_id_to_intl_designator(object_id: str) -> str:
    """
    Convert an OMM OBJECT_ID (YYYY-NNN[piece]) to a TLE designator (YYNNN[piece]).

    The launch number is zero-padded to three digits and the year reduced to
    its last two digits, e.g. '1998-067A' -> '98067A'. Identifiers that do
    not follow the pattern are returned stripped but otherwise unchanged.
    """
    obj_id = object_id.strip()
    m = _OBJECT_ID_RE.match(obj_id)
    if m is None:
        return obj_id
    year, launch_num, piece = m.groups()
    return f"{year[2:]}{launch_num.zfill(3)}{piece}"


def mean_motion_from_semi_major_axis(semi_major_axis, gm):
    """
    Mean motion in rev/day from semi-major axis (km) and GM (km³/s²).

    n = sqrt(GM / a³) / 2π * 86400
    """
    return np.sqrt(gm / semi_major_axis**3) / (2.0 * np.pi) * _SECONDS_PER_DAY


def omm_to_tle(omm: OrbitMeanElementsMessage) -> TleRecord:
    """
    Convert an SGP4-theory OMM into a TleRecord.

    Absent optional fields default to: satellite number 0, classification
    'U', element set 0, revolution 0, ṅ/2, n̈/6 and B* 0.0.

    Raises:
        StructuralError: If the mean element theory is not SGP4.
        RequiredFieldError: If mean motion must be derived but the semi-major
            axis or GM is missing.
    """
    metadata = omm.metadata
    data = omm.data

    if metadata.mean_element_theory != SGP4_THEORY:
        raise StructuralError(
            "Cannot convert OMM to TLE because the mean element theory is "
            f"{metadata.mean_element_theory!r}, not {SGP4_THEORY!r}."
        )

    year, day_of_year, day_fraction = day_of_year_components(data.epoch)

    mean_motion = data.mean_motion
    if mean_motion is None:
        if data.semi_major_axis is None:
            raise RequiredFieldError("data", "semi_major_axis", "SEMI_MAJOR_AXIS")
        if data.gm is None:
            raise RequiredFieldError("data", "gm", "GM")
        mean_motion = mean_motion_from_semi_major_axis(data.semi_major_axis, data.gm)

    return TleRecord(
        name=metadata.object_name,
        satellite_number=data.norad_cat_id if data.norad_cat_id is not None else 0,
        classification=data.classification_type or "U",
        international_designator=object_id_to_intl_designator(metadata.object_id),
        epoch_year=year % 100,
        epoch_day=day_of_year + day_fraction,
        mean_motion_dot=data.mean_motion_dot if data.mean_motion_dot is not None else 0.0,
        mean_motion_ddot=data.mean_motion_ddot if data.mean_motion_ddot is not None else 0.0,
        bstar=data.bstar if data.bstar is not None else 0.0,
        element_set_number=data.element_set_number if data.element_set_number is not None else 0,
        inclination=data.inclination,
        raan=data.raan,
        eccentricity=data.eccentricity,
        arg_of_perigee=data.arg_of_pericenter,
        mean_anomaly=data.mean_anomaly,
        mean_motion=mean_motion,
        revolution_number=data.rev_at_epoch if data.rev_at_epoch is not None else 0,
        ephemeris_type=data.ephemeris_type if data.ephemeris_type is not None else 0,
    )


# ── Line formatting ─────────────────────────────────────────────────

def _tle_checksum(line: str) -> int:
    """Compute TLE checksum: sum digits ('-' counts as 1), mod 10."""
    total = 0
    for ch in line[:68]:
        if ch.isdigit():
            total += int(ch)
        elif ch == "-":
            total += 1
    return total % 10


def _format_first_derivative(value: float) -> str:
    """ṅ/2 as a 10-character field with implied leading zero: ' .00000447'.

    Raises:
        ValueError: If the rounded magnitude is 1 or more, which the field
            cannot hold.
    """
    digits = f"{abs(float(value)):.8f}"
    if not digits.startswith("0."):
        raise ValueError(f"Mean motion derivative {value} does not fit the TLE ndot/2 field")
    sign = "-" if value < 0 else " "
    return sign + digits[1:]


def _format_packed_exponent(value: float) -> str:
    """
    Format a value in TLE assumed-decimal exponent notation (8 characters).

    0.00015330 -> ' 15330-3', i.e. 0.15330e-3.
    """
    value = float(value)
    if value == 0.0:
        return " 00000-0"
    sign = "-" if value < 0 else " "
    exponent = math.floor(math.log10(abs(value))) + 1
    mantissa = round(abs(value) / 10.0**exponent * 1e5)
    if mantissa >= 100000:
        mantissa //= 10
        exponent += 1
    if not -9 <= exponent <= 9:
        raise ValueError(f"Value {value} cannot be represented in TLE exponent notation")
    exp_sign = "-" if exponent < 0 else "+"
    return f"{sign}{mantissa:05d}{exp_sign}{abs(exponent):d}"


def format_tle_lines(record: TleRecord) -> tuple[str, str]:
    """Format TLE lines 1 and 2 (exactly 69 characters each, with checksum).

    Raises:
        ValueError: If the satellite number does not fit the 5-digit field,
            or a mean motion derivative does not fit its field.
    """
    if not 0 <= record.satellite_number <= 99999:
        raise ValueError(
            f"Satellite number {record.satellite_number} does not fit a 5-digit TLE field"
        )

    line1 = (
        f"1 {record.satellite_number:05d}{record.classification[:1]:1s} "
        f"{record.international_designator:<8.8s} "
        f"{record.epoch_year:02d}{float(record.epoch_day):012.8f} "
        f"{_format_first_derivative(record.mean_motion_dot)} "
        f"{_format_packed_exponent(record.mean_motion_ddot)} "
        f"{_format_packed_exponent(record.bstar)} "
        f"{record.ephemeris_type:1d} "
        f"{record.element_set_number % 10000:4d}"
    )
    line1 += str(_tle_checksum(line1))

    ecc_str = f"{float(record.eccentricity):.7f}"[2:]  # "0.0001124" -> "0001124"

    line2 = (
        f"2 {record.satellite_number:05d} "
        f"{float(record.inclination):8.4f} "
        f"{float(record.raan):8.4f} "
        f"{ecc_str} "
        f"{float(record.arg_of_perigee):8.4f} "
        f"{float(record.mean_anomaly):8.4f} "
        f"{float(record.mean_motion):11.8f}"
        f"{record.revolution_number % 100000:5d}"
    )
    line2 += str(_tle_checksum(line2))
    return line1, line2


def _require_sgp4():
    """Import sgp4 lazily; raise clear error if not installed."""
    try:
        from sgp4.api import Satrec
    except ImportError:
        raise ImportError(
            "sgp4 is required for SGP4 propagation. "
            "Install with: pip install orbit-data-messages[sgp4]"
        ) from None
    return Satrec


def tle_to_satrec(record: TleRecord):
    """Hand a TleRecord to the sgp4 library as a ``Satrec``."""
    Satrec = _require_sgp4()
    line1, line2 = format_tle_lines(record)
    return Satrec.twoline2rv(line1, line2)
