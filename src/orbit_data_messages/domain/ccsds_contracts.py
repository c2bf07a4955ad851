# Copyright (c) 2026 Jeroen Visser. All rights reserved.
# Licensed under the MIT License — see LICENSE.
"""
Error contracts for CCSDS Orbit Data Message handling.

Every failure raised while decoding, constructing or converting a message
derives from CcsdsValidationError, itself a ValueError, so callers can catch
either.

Reference: CCSDS 502.0-B-3 (Orbit Data Messages).
"""


class CcsdsValidationError(ValueError):
    """Base class for invalid or unsupported Orbit Data Messages."""


class StructuralError(CcsdsValidationError):
    """A required section is missing or the message layout is not supported."""


class RequiredFieldError(CcsdsValidationError):
    """A required field is absent after scanning its parent group.

    Attributes:
        field: Model attribute name (e.g. ``object_name``).
        tag: CCSDS keyword (e.g. ``OBJECT_NAME``).
    """

    def __init__(self, section: str, field: str, tag: str) -> None:
        self.section = section
        self.field = field
        self.tag = tag
        super().__init__(f"OMM {section} is missing required field `{tag}` ({field}).")


class FormatError(CcsdsValidationError):
    """Text is present but does not parse as the expected type.

    Attributes:
        tag: CCSDS keyword or attribute whose value was rejected.
        text: The offending text.
    """

    def __init__(self, tag: str, text: str, expected: str) -> None:
        self.tag = tag
        self.text = text
        self.expected = expected
        super().__init__(f"Cannot parse `{tag}` value {text!r} as {expected}.")


class UnsupportedVersionError(CcsdsValidationError):
    """The message version lies outside the supported range."""

    def __init__(self, version: object) -> None:
        self.version = version
        super().__init__(f"Unsupported OMM version: {version}.")
