"""Exception taxonomy for structure processing and diffraction.

Extended Summary
----------------
Every failure raised by qutility derives from :class:`QutilityError` and
falls in one of three families. Per-item failures (`InputError`,
`DomainError`) are captured by the batch runner into the item's outcome.
`PreconditionError` is raised once, before any item is dispatched.

Routine Listings
----------------
QutilityError : exception
    Base class for all package errors
InputError : exception
    Unreadable or malformed per-item input
ParseError : exception
    A structure file could not be parsed
UnsupportedFormatError : exception
    No reader or writer exists for the requested format
DomainError : exception
    Physically invalid computation request
DegenerateLatticeError : exception
    Lattice determinant is numerically zero
UnknownElementError : exception
    Element symbol has no scattering-factor entry
InvalidWavelengthError : exception
    Wavelength is non-positive or not understood
InvalidBroadeningParameterError : exception
    Broadening width or mixing parameter is invalid
PreconditionError : exception
    Invalid global configuration or inaccessible root path
"""

from beartype.typing import Optional


class QutilityError(Exception):
    """Base class for all qutility errors."""

    family: str = "QutilityError"

    @property
    def kind(self) -> str:
        """Taxonomy family recorded in batch outcomes."""
        return self.family


class InputError(QutilityError):
    family = "InputError"


class ParseError(InputError):
    """A structure file could not be parsed.

    Parameters
    ----------
    fmt : str
        Name of the file format being parsed.
    path : str
        Path or identifier of the offending input.
    reason : str
        Human readable description of what went wrong.
    """

    def __init__(self, fmt: str, path: str, reason: str) -> None:
        self.fmt = fmt
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to parse {fmt} file: {path} ({reason})")


class UnsupportedFormatError(InputError):
    pass


class DomainError(QutilityError, ValueError):
    family = "DomainError"


class DegenerateLatticeError(DomainError):
    pass


class UnknownElementError(DomainError):
    def __init__(self, element: str, label: Optional[str] = None) -> None:
        self.element = element
        shown = element if label is None or label == element else f"{label} -> {element}"
        super().__init__(f"No X-ray scattering factors for element '{shown}'")


class InvalidWavelengthError(DomainError):
    pass


class InvalidBroadeningParameterError(DomainError):
    pass


class PreconditionError(QutilityError):
    family = "PreconditionError"


__all__ = [
    "QutilityError",
    "InputError",
    "ParseError",
    "UnsupportedFormatError",
    "DomainError",
    "DegenerateLatticeError",
    "UnknownElementError",
    "InvalidWavelengthError",
    "InvalidBroadeningParameterError",
    "PreconditionError",
]
