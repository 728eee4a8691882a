"""Powder X-ray diffraction.

Extended Summary
----------------
Scattering factor table, wavelength presets, the kinematic diffraction
engine and peak-profile broadening.

Routine Listings
----------------
compute_pattern : function
    Full powder pattern of one crystal
enumerate_reflections : function
    Reflections up to a maximum 2θ, sorted by angle
miller_bounds : function
    Miller index bounding box of the limiting sphere
structure_factors : function
    Complex structure factors of a crystal
structure_factor_kernel : function
    Jittable structure factor sum over sites
lorentz_polarization : function
    Lorentz-polarisation factor
merge_reflections : function
    Cluster reflections within an angular tolerance
relative_intensities : function
    Rescale intensities to a maximum of 100
MergedPeaks : NamedTuple
    Merged peak clusters
EXTINCTION_THRESHOLD : float
    |F|² below which a reflection is extinct
broaden : function
    Project stick peaks onto a 2θ grid
gaussian_profile, lorentzian_profile, pseudo_voigt_profile : function
    Unit-area peak profiles
make_grid : function
    Uniform 2θ grid
ScatteringParams : NamedTuple
    Cromer–Mann coefficients of one element
scattering_table : function
    Shared read-only element table
normalize_element : function
    Reduce site labels to element symbols
scattering_amplitude : function
    Atomic scattering factor f(q)
cromer_mann : function
    Cromer–Mann expansion for coefficient arrays
PRESETS : mapping
    Named anode wavelengths in Å
resolve_wavelength : function
    Preset name, numeric string or number to wavelength
"""

from .broadening import (
                     broaden,
                     gaussian_profile,
                     lorentzian_profile,
                     make_grid,
                     pseudo_voigt_profile,
)
from .calculator import (
                     EXTINCTION_THRESHOLD,
                     MergedPeaks,
                     compute_pattern,
                     enumerate_reflections,
                     lorentz_polarization,
                     merge_reflections,
                     miller_bounds,
                     relative_intensities,
                     structure_factor_kernel,
                     structure_factors,
)
from .scattering import (
                     ScatteringParams,
                     cromer_mann,
                     normalize_element,
                     scattering_amplitude,
                     scattering_table,
                     site_coefficients,
)
from .wavelengths import PRESETS, resolve_wavelength

__all__ = [
    "compute_pattern",
    "enumerate_reflections",
    "miller_bounds",
    "structure_factors",
    "structure_factor_kernel",
    "lorentz_polarization",
    "merge_reflections",
    "relative_intensities",
    "MergedPeaks",
    "EXTINCTION_THRESHOLD",
    "broaden",
    "gaussian_profile",
    "lorentzian_profile",
    "pseudo_voigt_profile",
    "make_grid",
    "ScatteringParams",
    "scattering_table",
    "normalize_element",
    "scattering_amplitude",
    "cromer_mann",
    "site_coefficients",
    "PRESETS",
    "resolve_wavelength",
]
