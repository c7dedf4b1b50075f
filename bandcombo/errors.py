"""Exception hierarchy for the band-combination codec.

Validation problems are reported as data (see ``validation.ValidationResult``)
and never raised.
"""

from __future__ import annotations


class BandComboError(Exception):
    """Base class for all codec errors."""


class ParseError(BandComboError, ValueError):
    """A combo text segment does not match the carrier grammar."""

    def __init__(self, message: str, segment: str | None = None) -> None:
        super().__init__(message)
        self.segment = segment


class DecodeError(BandComboError):
    """A descriptor stream could not be decoded past ``offset``."""

    def __init__(self, message: str, offset: int | None = None) -> None:
        super().__init__(message)
        self.offset = offset


class MalformedDescriptor(DecodeError):
    """DL header carrying no downlink carrier."""


class UnknownDescriptorTag(DecodeError):
    def __init__(self, tag: int, offset: int) -> None:
        super().__init__(
            f"Incorrect format: incorrect descriptor type {tag} "
            f"(137, 138, 201, 202, 333 or 334 expected). File offset=0x{offset:x}.",
            offset,
        )
        self.tag = tag


class UnexpectedEndOfFile(DecodeError):
    def __init__(self, offset: int, needed: int = 0) -> None:
        message = "Unexpected end of file"
        if needed:
            message += f" at offset 0x{offset:x} (needed {needed} more bytes)"
        super().__init__(message, offset)
        self.needed = needed


class EncodeError(BandComboError):
    """Encoding cannot produce a buffer."""


class CompressionError(BandComboError):
    pass


class DecompressionError(BandComboError):
    pass


__all__ = [
    "BandComboError",
    "CompressionError",
    "DecodeError",
    "DecompressionError",
    "EncodeError",
    "MalformedDescriptor",
    "ParseError",
    "UnexpectedEndOfFile",
    "UnknownDescriptorTag",
]
