"""Data structures for X-ray diffraction reflections and patterns.

Extended Summary
----------------
PyTree containers produced by the diffraction engine. `Reflections` holds
the raw enumerated (hkl) set for one crystal, `XRDPattern` the merged stick
peaks together with the profile sampled on a uniform 2θ grid.

Routine Listings
----------------
BROADENING_KINDS : tuple
    Accepted peak-profile names
BroadeningSpec : NamedTuple
    Peak profile kind, full width at half maximum and mixing parameter
Reflections : PyTree
    Enumerated reflections with scattering-vector magnitudes and angles
XRDPattern : PyTree
    Diffraction pattern on a 2θ grid plus the merged stick peaks
create_broadening_spec : function
    Factory that normalises and validates a BroadeningSpec
pattern_points : function
    Ordered (angle, intensity) pairs of a pattern
"""

import math

import jax
import numpy as np
from beartype import beartype
from beartype.typing import Iterator, NamedTuple, Tuple
from jax.tree_util import register_pytree_node_class
from jaxtyping import Array, Float, Int

from qutility.errors import InvalidBroadeningParameterError

from .custom_types import non_jax_number

jax.config.update("jax_enable_x64", True)

BROADENING_KINDS: Tuple[str, ...] = ("none", "gaussian", "lorentzian", "pseudo-voigt")

_KIND_ALIASES = {
    "": "none",
    "stick": "none",
    "gauss": "gaussian",
    "lorentz": "lorentzian",
    "pseudovoigt": "pseudo-voigt",
    "pseudo_voigt": "pseudo-voigt",
    "pv": "pseudo-voigt",
}


class BroadeningSpec(NamedTuple):
    """Peak profile requested for a pattern.

    Attributes
    ----------
    kind : str
        One of `BROADENING_KINDS`.
    fwhm : float
        Full width at half maximum in degrees 2θ.
    eta : float
        Lorentzian fraction of the pseudo-Voigt mixture, in [0, 1].
    """

    kind: str = "none"
    fwhm: float = 0.1
    eta: float = 0.5

    @property
    def enabled(self) -> bool:
        return self.kind != "none"


@beartype
def create_broadening_spec(
    kind: str = "none",
    fwhm: non_jax_number = 0.1,
    eta: non_jax_number = 0.5,
) -> BroadeningSpec:
    """Normalise the profile name and validate the width parameters.

    Parameters
    ----------
    kind : str, optional
        Profile name; case and ``_``/``-`` spelling are forgiven.
        Default: "none"
    fwhm : non_jax_number, optional
        Full width at half maximum in degrees. Must be positive unless the
        kind is ``none``. Default: 0.1
    eta : non_jax_number, optional
        Lorentzian fraction for pseudo-Voigt. Default: 0.5

    Returns
    -------
    spec : BroadeningSpec
        Validated profile settings.

    Raises
    ------
    InvalidBroadeningParameterError
        If the kind is unknown, FWHM is not a positive finite number while
        broadening is requested, or eta lies outside [0, 1].
    """
    key = kind.strip().lower()
    key = _KIND_ALIASES.get(key, key)
    if key not in BROADENING_KINDS:
        raise InvalidBroadeningParameterError(
            f"Unknown broadening kind '{kind}'; expected one of {', '.join(BROADENING_KINDS)}"
        )
    spec = BroadeningSpec(kind=key, fwhm=float(fwhm), eta=float(eta))
    validate_broadening_spec(spec)
    return spec


def validate_broadening_spec(spec: BroadeningSpec) -> None:
    if spec.kind not in BROADENING_KINDS:
        raise InvalidBroadeningParameterError(f"Unknown broadening kind '{spec.kind}'")
    if not spec.enabled:
        return
    if not math.isfinite(spec.fwhm) or spec.fwhm <= 0.0:
        raise InvalidBroadeningParameterError(
            f"FWHM must be positive for {spec.kind} broadening, got {spec.fwhm}"
        )
    if not 0.0 <= spec.eta <= 1.0:
        raise InvalidBroadeningParameterError(
            f"pseudo-Voigt mixing eta must lie in [0, 1], got {spec.eta}"
        )


@register_pytree_node_class
class Reflections(NamedTuple):
    """Enumerated reflections of one crystal, sorted by ascending 2θ.

    Attributes
    ----------
    hkl : Int[Array, "R 3"]
        Miller indices.
    q : Float[Array, "R"]
        Scattering-vector magnitude |G| in 1/Å (includes the 2π factor).
    d_spacing : Float[Array, "R"]
        Interplanar spacing 2π/|G| in Å.
    two_theta : Float[Array, "R"]
        Bragg angle 2θ in degrees.
    """

    hkl: Int[Array, "R 3"]
    q: Float[Array, "R"]
    d_spacing: Float[Array, "R"]
    two_theta: Float[Array, "R"]

    def tree_flatten(self):
        return ((self.hkl, self.q, self.d_spacing, self.two_theta), None)

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        del aux_data
        return cls(*children)

    def __len__(self) -> int:
        return int(self.q.shape[0])


@register_pytree_node_class
class XRDPattern(NamedTuple):
    """Powder X-ray diffraction pattern of one crystal.

    Attributes
    ----------
    two_theta : Float[Array, "M"]
        Uniform grid of angles on [0, max_two_theta], ascending, degrees.
    intensities : Float[Array, "M"]
        Pattern intensity per unit 2θ on the grid. ``sum(intensities) * step``
        equals the total stick intensity.
    peak_two_theta : Float[Array, "K"]
        Angles of the merged stick peaks, ascending.
    peak_d_spacing : Float[Array, "K"]
        d spacing of each merged peak.
    peak_intensities : Float[Array, "K"]
        Summed intensity of each merged peak.
    peak_hkl : Int[Array, "K 3"]
        Representative Miller indices of each merged peak.
    peak_multiplicity : Int[Array, "K"]
        Number of reflections merged into each peak.
    wavelength : float
        Wavelength in Å (static).
    name : str
        Structure name (static).
    hkl_labels : Tuple[Tuple[Tuple[int, int, int], ...], ...]
        Every Miller index merged into each peak (static).
    """

    two_theta: Float[Array, "M"]
    intensities: Float[Array, "M"]
    peak_two_theta: Float[Array, "K"]
    peak_d_spacing: Float[Array, "K"]
    peak_intensities: Float[Array, "K"]
    peak_hkl: Int[Array, "K 3"]
    peak_multiplicity: Int[Array, "K"]
    wavelength: float
    name: str = ""
    hkl_labels: Tuple[Tuple[Tuple[int, int, int], ...], ...] = ()

    def tree_flatten(self):
        return (
            (
                self.two_theta,
                self.intensities,
                self.peak_two_theta,
                self.peak_d_spacing,
                self.peak_intensities,
                self.peak_hkl,
                self.peak_multiplicity,
            ),
            (self.wavelength, self.name, self.hkl_labels),
        )

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        wavelength, name, hkl_labels = aux_data
        return cls(*children, wavelength=wavelength, name=name, hkl_labels=hkl_labels)

    @property
    def step(self) -> float:
        if self.two_theta.shape[0] < 2:
            return 0.0
        return float(self.two_theta[1] - self.two_theta[0])

    @property
    def n_peaks(self) -> int:
        return int(self.peak_two_theta.shape[0])


def pattern_points(pattern: XRDPattern) -> Iterator[Tuple[float, float]]:
    """Yield the (angle, intensity) pairs of the grid in ascending angle."""
    angles = np.asarray(pattern.two_theta)
    values = np.asarray(pattern.intensities)
    for angle, value in zip(angles, values):
        yield float(angle), float(value)
