"""Tabular export of diffraction patterns.

Extended Summary
----------------
Patterns are turned into pandas DataFrames, one for the sampled profile and
one for the merged stick peaks, and written as CSV or as a two-column XY
file with ``#`` header lines. Every file is written atomically.

Routine Listings
----------------
PATTERN_FORMATS : tuple
    Supported pattern file formats
pattern_to_frame : function
    Profile on the 2θ grid as a DataFrame
peaks_to_frame : function
    Merged stick peaks as a DataFrame
write_csv : function
    Write a DataFrame as CSV
write_xy : function
    Write a pattern profile as an XY file
write_pattern : function
    Write a pattern in a named format
"""

from pathlib import Path

import numpy as np
import pandas as pd
from beartype import beartype
from beartype.typing import Tuple, Union

from qutility.errors import UnsupportedFormatError
from qutility.types import XRDPattern
from qutility.xrd import relative_intensities

from .files import atomic_write_text

PATTERN_FORMATS: Tuple[str, ...] = ("csv", "xy")


@beartype
def pattern_to_frame(pattern: XRDPattern, relative: bool = True) -> pd.DataFrame:
    """Grid profile with columns ``two_theta`` and ``intensity``.

    With ``relative`` the intensities are rescaled to a maximum of 100.
    """
    values = pattern.intensities
    if relative:
        values = relative_intensities(values)
    return pd.DataFrame(
        {
            "two_theta": np.asarray(pattern.two_theta),
            "intensity": np.asarray(values),
        }
    )


@beartype
def peaks_to_frame(pattern: XRDPattern, relative: bool = True) -> pd.DataFrame:
    """Merged peaks with angle, d spacing, intensity, hkl and multiplicity."""
    values = pattern.peak_intensities
    if relative:
        values = relative_intensities(values)
    hkl = np.asarray(pattern.peak_hkl).reshape(-1, 3)
    return pd.DataFrame(
        {
            "two_theta": np.asarray(pattern.peak_two_theta),
            "d_spacing": np.asarray(pattern.peak_d_spacing),
            "intensity": np.asarray(values),
            "h": hkl[:, 0],
            "k": hkl[:, 1],
            "l": hkl[:, 2],
            "multiplicity": np.asarray(pattern.peak_multiplicity),
        }
    )


@beartype
def write_csv(
    frame: pd.DataFrame, path: Union[str, Path], float_format: str = "%.6f"
) -> Path:
    return atomic_write_text(path, frame.to_csv(index=False, float_format=float_format))


@beartype
def write_xy(
    pattern: XRDPattern,
    path: Union[str, Path],
    relative: bool = True,
    peaks: bool = False,
) -> Path:
    """Write tab-separated ``2θ intensity`` lines.

    The file starts with ``#`` lines naming the structure, the wavelength and
    the columns. With ``peaks`` the merged sticks are written instead of the
    grid profile.
    """
    scale = "relative" if relative else "absolute"
    header = (
        f"# XRD Pattern: {pattern.name or 'structure'}\n"
        f"# Wavelength: {pattern.wavelength:.6f} Angstrom\n"
        f"# Columns: 2theta (degrees), Intensity ({scale})\n"
        "#\n"
    )
    if peaks:
        frame = peaks_to_frame(pattern, relative)[["two_theta", "intensity"]]
    else:
        frame = pattern_to_frame(pattern, relative)
    body = frame.to_csv(
        sep="\t", header=False, index=False, float_format="%.4f"
    )
    return atomic_write_text(path, header + body)


@beartype
def write_pattern(
    pattern: XRDPattern,
    path: Union[str, Path],
    fmt: str = "csv",
    peaks: bool = False,
) -> Path:
    """Write a pattern as ``csv`` or ``xy``.

    ``peaks`` selects the merged stick table instead of the grid profile.

    Raises
    ------
    UnsupportedFormatError
        For any other format.
    """
    key = fmt.strip().lower()
    if key == "csv":
        frame = peaks_to_frame(pattern) if peaks else pattern_to_frame(pattern)
        return write_csv(frame, path)
    if key == "xy":
        return write_xy(pattern, path, peaks=peaks)
    raise UnsupportedFormatError(
        f"Unsupported pattern format '{fmt}'; expected one of {', '.join(PATTERN_FORMATS)}"
    )
