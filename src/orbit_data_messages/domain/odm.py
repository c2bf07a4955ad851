# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Orbit Data Message (ODM) family.

The family is closed: OMM is the only kind with a payload type, the other
kinds are recognised by tag name so containers holding them can be
processed, but their content is not decoded.

Reference: CCSDS 502.0-B-3 (Orbit Data Messages).
"""
import re
from dataclasses import dataclass
from enum import Enum

from orbit_data_messages.domain.ccsds_contracts import FormatError


class MessageKind(Enum):
    """Orbit Data Message kinds, keyed by their XML root tag."""
    OMM = "omm"
    OPM = "opm"
    OEM = "oem"
    OCM = "ocm"

    @property
    def supported(self) -> bool:
        return self is MessageKind.OMM

    @classmethod
    def from_tag(cls, tag: str) -> "MessageKind | None":
        """Return the kind for an XML tag (case-insensitive), or None."""
        try:
            return cls(tag.lower())
        except ValueError:
            return None


_VERSION_RE = re.compile(r"^\s*(\d+)(?:\.(\d+))?(?:\.(\d+))?\s*$")


@dataclass(frozen=True, order=True)
class OdmVersion:
    """Semantic version (major.minor) of the ODM standard a message follows."""
    major: int
    minor: int = 0

    MIN_SUPPORTED = (2, 0)
    MAX_EXCLUSIVE = (4, 0)

    @classmethod
    def parse(cls, text: str) -> "OdmVersion":
        """Parse 'M', 'M.m' or 'M.m.p' (patch is ignored).

        Raises:
            FormatError: If the text is not a version number.
        """
        m = _VERSION_RE.match(text)
        if m is None:
            raise FormatError("version", text, "semantic version")
        return cls(int(m.group(1)), int(m.group(2) or 0))

    @property
    def is_supported(self) -> bool:
        return self.MIN_SUPPORTED <= (self.major, self.minor) < self.MAX_EXCLUSIVE

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


OMM_VERSION_3 = OdmVersion(3, 0)
