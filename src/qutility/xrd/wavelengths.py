"""Characteristic X-ray wavelengths and wavelength argument parsing.

Routine Listings
----------------
PRESETS : MappingProxyType
    Kα1 wavelengths of the common anode materials, in Å
resolve_wavelength : function
    Turn a preset name, numeric string or number into a wavelength
"""

import math
from types import MappingProxyType

from beartype import beartype
from beartype.typing import Union

from qutility.errors import InvalidWavelengthError

PRESETS = MappingProxyType(
    {
        "cu-ka": 1.5406,
        "mo-ka": 0.7107,
        "co-ka": 1.7890,
        "fe-ka": 1.9360,
        "cr-ka": 2.2897,
        "ag-ka": 0.5594,
    }
)


def _preset_key(name: str) -> str:
    key = name.strip().lower().replace("_", "-").replace(" ", "-")
    key = key.replace("α", "a").replace("alpha", "a")
    if key.endswith("ka1"):
        key = key[:-1]
    if "-" not in key and key.endswith("ka"):
        key = f"{key[:-2]}-ka"
    return key


@beartype
def resolve_wavelength(value: Union[str, int, float]) -> float:
    """Resolve a wavelength argument to a positive value in Å.

    Parameters
    ----------
    value : Union[str, int, float]
        Preset name (``"cu-ka"``, ``"Cu_Ka"``, ``"CuKα"``), a numeric string
        such as ``"1.5406"``, or a number.

    Returns
    -------
    wavelength : float
        Wavelength in Å.

    Raises
    ------
    InvalidWavelengthError
        If the name is not a preset and not a number, or the value is not
        positive and finite.

    Examples
    --------
    >>> resolve_wavelength("Cu-Ka")
    1.5406
    >>> resolve_wavelength(0.7107)
    0.7107
    """
    if isinstance(value, str):
        preset = PRESETS.get(_preset_key(value))
        if preset is not None:
            return preset
        try:
            number = float(value.strip())
        except ValueError:
            raise InvalidWavelengthError(
                f"Unknown wavelength '{value}'; use a number in Å or one of "
                f"{', '.join(PRESETS)}"
            ) from None
    else:
        number = float(value)
    if not math.isfinite(number) or number <= 0.0:
        raise InvalidWavelengthError(
            f"wavelength must be positive and finite, got {number}"
        )
    return number
