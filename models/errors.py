"""Error types raised by the decal core.

Everything derives from :class:`DecalError`, itself a :class:`ValueError`, so
callers that only care about "bad input" can catch one type.
"""


class DecalError(ValueError):
    """Base class for descriptor, rasterizer and anchor errors."""


class UnsupportedFontError(DecalError):
    """Raised when a font family is not part of the supported registry."""

    def __init__(self, font: str) -> None:
        super().__init__(f"Unsupported font '{font}'")
        self.font = font


class TextTooLongError(DecalError):
    """Raised when text content exceeds the allowed length."""

    def __init__(self, length: int, max_length: int) -> None:
        super().__init__(f"Text is too long ({length} characters, max {max_length})")
        self.length = length
        self.max_length = max_length


class InvalidStyleValueError(DecalError):
    """Raised when a text style field is outside its allowed range."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"Invalid value for '{field}': {message}")
        self.field = field


class InvalidTransformError(DecalError):
    """Raised by strict transform validation for malformed values."""

    def __init__(self, field: str, value: object) -> None:
        super().__init__(f"Invalid transform value for '{field}': {value!r}")
        self.field = field
        self.value = value


class MissingAnchorError(DecalError, LookupError):
    """Raised when a garment type has no entry in the anchor table."""

    def __init__(self, garment_type: str) -> None:
        super().__init__(f"No anchors defined for garment type '{garment_type}'")
        self.garment_type = garment_type


__all__ = [
    "DecalError",
    "UnsupportedFontError",
    "TextTooLongError",
    "InvalidStyleValueError",
    "InvalidTransformError",
    "MissingAnchorError",
]
