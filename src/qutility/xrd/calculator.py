"""Kinematic powder X-ray diffraction.

Extended Summary
----------------
Turns a crystal structure into a powder pattern:

1. enumerate every reciprocal-lattice vector inside the limiting sphere
   ``q ≤ 4π sin(θ_max) / λ``;
2. evaluate the structure factor of each reflection from the Cromer–Mann
   scattering factors, site occupancies and isotropic Debye–Waller terms;
3. weight |F|² by the Lorentz-polarisation factor;
4. merge reflections that coincide in 2θ;
5. project the merged sticks onto a uniform 2θ grid.

Every member of a symmetry-equivalent family is enumerated separately, so
multiplicity enters through the merge step instead of an explicit factor.
No space-group extinction rules are applied; systematic absences vanish
numerically through |F|².

Routine Listings
----------------
EXTINCTION_THRESHOLD : float
    |F|² below which a reflection is treated as extinct
MergedPeaks : NamedTuple
    Result of merging coincident reflections
miller_bounds : function
    Bounding box of Miller indices inside the limiting sphere
enumerate_reflections : function
    Reflections of a crystal up to a maximum 2θ, sorted by angle
structure_factor_kernel : function
    Jittable structure factor sum over sites
structure_factors : function
    Complex structure factors of a crystal's reflections
lorentz_polarization : function
    Lorentz-polarisation factor for unpolarised radiation
merge_reflections : function
    Cluster reflections within an angular tolerance
relative_intensities : function
    Rescale intensities to a maximum of 100
compute_pattern : function
    Full pattern of one crystal

Notes
-----
Enumeration and merging produce data-dependent shapes and run eagerly with
NumPy; the numerical kernels are pure JAX and can be traced.
"""

import logging
import math

import jax
import jax.numpy as jnp
import numpy as np
from beartype import beartype
from beartype.typing import List, NamedTuple, Optional, Tuple, Union
from jaxtyping import Array, Complex, Float, Int, jaxtyped

from qutility.errors import DomainError
from qutility.types import (
    BroadeningSpec,
    CrystalStructure,
    Reflections,
    XRDPattern,
    non_jax_number,
    validate_broadening_spec,
)
from qutility.ucell import reciprocal_lattice_vectors

from .broadening import broaden, make_grid
from .scattering import cromer_mann, site_coefficients
from .wavelengths import resolve_wavelength

jax.config.update("jax_enable_x64", True)

_log = logging.getLogger(__name__)

EXTINCTION_THRESHOLD: float = 1e-10

# Reflections landing within this many degrees above the limit are kept, so a
# limit that coincides with a Bragg angle does not lose it to rounding.
_ANGLE_SLACK: float = 1e-9

_LP_CUTOFF: float = 1e-10

HKLLabel = Tuple[int, int, int]


class MergedPeaks(NamedTuple):
    """Peaks after merging coincident reflections, in ascending angle.

    Attributes
    ----------
    two_theta : Float[Array, "K"]
        Intensity-weighted mean angle of each cluster in degrees.
    intensities : Float[Array, "K"]
        Summed intensity of each cluster.
    hkl : Int[Array, "K 3"]
        Representative index, the lexicographically largest member.
    multiplicity : Int[Array, "K"]
        Number of reflections in each cluster.
    labels : Tuple[Tuple[HKLLabel, ...], ...]
        All member indices of each cluster, largest first.
    """

    two_theta: Float[Array, "K"]
    intensities: Float[Array, "K"]
    hkl: Int[Array, "K 3"]
    multiplicity: Int[Array, "K"]
    labels: Tuple[Tuple[HKLLabel, ...], ...]


def _check_angle_limit(max_two_theta: float) -> None:
    if not math.isfinite(max_two_theta) or not 0.0 < max_two_theta <= 180.0:
        raise DomainError(
            f"max two-theta must lie in (0, 180] degrees, got {max_two_theta}"
        )


@beartype
def miller_bounds(lattice: Float[Array, "3 3"], q_max: non_jax_number) -> Tuple[int, int, int]:
    """Largest |h|, |k|, |l| that can satisfy |G| ≤ q_max.

    Parameters
    ----------
    lattice : Float[Array, "3 3"]
        Direct lattice vectors as rows, in Å.
    q_max : non_jax_number
        Radius of the limiting sphere in 1/Å.

    Returns
    -------
    bounds : Tuple[int, int, int]
        ``floor(q_max · |a_i| / 2π)`` for each axis, since
        ``h_i = G · a_i / 2π``.
    """
    lengths = np.linalg.norm(np.asarray(lattice), axis=1)
    h_max, k_max, l_max = (
        int(math.floor(q_max * length / (2.0 * math.pi))) for length in lengths
    )
    return h_max, k_max, l_max


@beartype
def enumerate_reflections(
    crystal: CrystalStructure,
    wavelength: non_jax_number,
    max_two_theta: non_jax_number,
) -> Reflections:
    """Enumerate the reflections of a crystal up to a maximum 2θ.

    Parameters
    ----------
    crystal : CrystalStructure
        Structure whose lattice defines the reciprocal lattice.
    wavelength : non_jax_number
        X-ray wavelength in Å.
    max_two_theta : non_jax_number
        Upper angle limit in degrees.

    Returns
    -------
    reflections : Reflections
        Every (hkl) ≠ (000) with 0 < 2θ ≤ max_two_theta, sorted by ascending
        2θ and then by (h, k, l).

    Raises
    ------
    InvalidWavelengthError
        If the wavelength is not positive and finite.
    DomainError
        If max_two_theta is outside (0, 180].
    DegenerateLatticeError
        If the lattice has no inverse.

    Flow
    ----
    - Compute the limiting sphere radius q_max
    - Bound h, k, l by the direct cell lengths
    - Build the full index box and drop (000)
    - Keep reflections with a real Bragg angle inside the limit
    - Sort by angle, then by index
    """
    wavelength = resolve_wavelength(wavelength)
    max_two_theta = float(max_two_theta)
    _check_angle_limit(max_two_theta)
    reciprocal = np.asarray(reciprocal_lattice_vectors(crystal.lattice))
    q_max = 4.0 * math.pi * math.sin(math.radians(max_two_theta / 2.0)) / wavelength
    h_max, k_max, l_max = miller_bounds(crystal.lattice, q_max)

    hh, kk, ll = np.meshgrid(
        np.arange(-h_max, h_max + 1),
        np.arange(-k_max, k_max + 1),
        np.arange(-l_max, l_max + 1),
        indexing="ij",
    )
    hkl = np.stack([hh.ravel(), kk.ravel(), ll.ravel()], axis=1).astype(np.int64)
    hkl = hkl[np.any(hkl != 0, axis=1)]

    q = np.linalg.norm(hkl @ reciprocal, axis=1)
    sin_theta = q * wavelength / (4.0 * math.pi)
    real = sin_theta <= 1.0
    hkl, q, sin_theta = hkl[real], q[real], sin_theta[real]
    two_theta = 2.0 * np.degrees(np.arcsin(sin_theta))
    inside = (two_theta > 0.0) & (two_theta <= max_two_theta + _ANGLE_SLACK)
    hkl, q, two_theta = hkl[inside], q[inside], two_theta[inside]

    order = np.lexsort((hkl[:, 2], hkl[:, 1], hkl[:, 0], two_theta))
    hkl, q, two_theta = hkl[order], q[order], two_theta[order]
    return Reflections(
        hkl=jnp.asarray(hkl.reshape(-1, 3)),
        q=jnp.asarray(q, dtype=jnp.float64),
        d_spacing=jnp.asarray(2.0 * math.pi / q, dtype=jnp.float64),
        two_theta=jnp.asarray(two_theta, dtype=jnp.float64),
    )


@jaxtyped(typechecker=beartype)
def structure_factor_kernel(
    hkl: Int[Array, "R 3"],
    q: Float[Array, "R"],
    frac_positions: Float[Array, "N 3"],
    occupancies: Float[Array, "N"],
    b_factors: Float[Array, "N"],
    a: Float[Array, "N 4"],
    b: Float[Array, "N 4"],
    c: Float[Array, "N"],
) -> Complex[Array, "R"]:
    r"""Structure factor sum over sites for a set of reflections.

    .. math::

        F(hkl) = \sum_j occ_j f_j(q) e^{-B_j s^2} e^{2\pi i (h x_j + k y_j + l z_j)}

    with :math:`s = q / 4\pi = \sin\theta / \lambda`.

    Parameters
    ----------
    hkl : Int[Array, "R 3"]
        Miller indices.
    q : Float[Array, "R"]
        Scattering-vector magnitudes in 1/Å.
    frac_positions : Float[Array, "N 3"]
        Fractional site coordinates.
    occupancies, b_factors : Float[Array, "N"]
        Site occupancies and isotropic B in Å².
    a, b, c : Float[Array, "N 4"], Float[Array, "N 4"], Float[Array, "N"]
        Cromer–Mann coefficients of each site.

    Returns
    -------
    Complex[Array, "R"]
        Complex structure factors in electrons.
    """
    form_factors: Float[Array, "R N"] = cromer_mann(
        a[None, :, :], b[None, :, :], c[None, :], q[:, None]
    )
    s_squared: Float[Array, "R 1"] = (q[:, None] / (4.0 * jnp.pi)) ** 2
    debye_waller: Float[Array, "R N"] = jnp.exp(-b_factors[None, :] * s_squared)
    phase: Float[Array, "R N"] = 2.0 * jnp.pi * (hkl.astype(jnp.float64) @ frac_positions.T)
    weights: Float[Array, "R N"] = occupancies[None, :] * form_factors * debye_waller
    return jnp.sum(weights * jnp.exp(1j * phase), axis=1)


@beartype
def structure_factors(
    crystal: CrystalStructure, reflections: Reflections
) -> Complex[Array, "R"]:
    """Complex structure factors of a crystal at the given reflections.

    Raises
    ------
    UnknownElementError
        If any site element has no scattering factor entry.
    """
    a, b, c = site_coefficients(crystal.elements)
    return structure_factor_kernel(
        reflections.hkl,
        reflections.q,
        crystal.frac_positions,
        crystal.occupancies,
        crystal.b_factors,
        a,
        b,
        c,
    )


@jaxtyped(typechecker=beartype)
def lorentz_polarization(two_theta: Float[Array, "..."]) -> Float[Array, "..."]:
    """Lorentz-polarisation factor (1 + cos² 2θ) / (sin² θ cos θ), 2θ in degrees.

    The factor is zero where sin θ or cos θ vanishes (2θ at 0° or 180°).
    """
    two_theta_rad = jnp.radians(two_theta)
    theta = 0.5 * two_theta_rad
    sin_theta = jnp.sin(theta)
    cos_theta = jnp.cos(theta)
    singular = (jnp.abs(sin_theta) < _LP_CUTOFF) | (jnp.abs(cos_theta) < _LP_CUTOFF)
    denominator = jnp.where(singular, 1.0, sin_theta**2 * cos_theta)
    factor = (1.0 + jnp.cos(two_theta_rad) ** 2) / denominator
    return jnp.where(singular, 0.0, factor)


@beartype
def merge_reflections(
    two_theta: Float[Array, "R"],
    intensity: Float[Array, "R"],
    hkl: Int[Array, "R 3"],
    tolerance: non_jax_number = 0.01,
) -> MergedPeaks:
    """Merge reflections whose angles coincide within a tolerance.

    Reflections are visited in ascending angle. A reflection joins the current
    cluster when it lies within ``tolerance`` degrees of the cluster's first
    member, and starts a new cluster otherwise.

    Parameters
    ----------
    two_theta : Float[Array, "R"]
        Reflection angles in degrees.
    intensity : Float[Array, "R"]
        Reflection intensities.
    hkl : Int[Array, "R 3"]
        Reflection indices.
    tolerance : non_jax_number, optional
        Merge window in degrees. Default: 0.01

    Returns
    -------
    merged : MergedPeaks
        One entry per cluster. The angle is the intensity-weighted mean, or
        the plain mean when the cluster carries no intensity.

    Raises
    ------
    DomainError
        If the tolerance is negative.
    """
    if tolerance < 0:
        raise DomainError(f"merge tolerance must be non-negative, got {tolerance}")
    angles = np.asarray(two_theta, dtype=np.float64)
    values = np.asarray(intensity, dtype=np.float64)
    indices = np.asarray(hkl, dtype=np.int64).reshape(-1, 3)
    order = np.lexsort((indices[:, 2], indices[:, 1], indices[:, 0], angles))

    clusters: List[List[int]] = []
    for i in order:
        if clusters and angles[i] - angles[clusters[-1][0]] <= tolerance:
            clusters[-1].append(int(i))
        else:
            clusters.append([int(i)])

    peak_angles, peak_values, representatives, multiplicities = [], [], [], []
    labels: List[Tuple[HKLLabel, ...]] = []
    for members in clusters:
        weights = values[members]
        total = float(weights.sum())
        if total > 0.0:
            peak_angles.append(float(np.dot(weights, angles[members]) / total))
        else:
            peak_angles.append(float(angles[members].mean()))
        peak_values.append(total)
        members_hkl = sorted(
            (tuple(int(x) for x in indices[m]) for m in members), reverse=True
        )
        representatives.append(members_hkl[0])
        multiplicities.append(len(members))
        labels.append(tuple(members_hkl))

    return MergedPeaks(
        two_theta=jnp.asarray(np.array(peak_angles, dtype=np.float64)),
        intensities=jnp.asarray(np.array(peak_values, dtype=np.float64)),
        hkl=jnp.asarray(np.array(representatives, dtype=np.int64).reshape(-1, 3)),
        multiplicity=jnp.asarray(np.array(multiplicities, dtype=np.int64)),
        labels=tuple(labels),
    )


@jaxtyped(typechecker=beartype)
def relative_intensities(values: Float[Array, "..."]) -> Float[Array, "..."]:
    """Rescale so the largest value is 100; an all-zero input stays zero."""
    peak = jnp.max(values, initial=0.0)
    return jnp.where(peak > 0.0, values * (100.0 / jnp.where(peak > 0.0, peak, 1.0)), 0.0)


@beartype
def compute_pattern(
    crystal: CrystalStructure,
    wavelength: Union[str, non_jax_number],
    max_two_theta: non_jax_number,
    broadening: Optional[BroadeningSpec] = None,
    *,
    step: non_jax_number = 0.02,
    merge_tolerance: non_jax_number = 0.01,
) -> XRDPattern:
    """Compute the powder diffraction pattern of one crystal.

    Parameters
    ----------
    crystal : CrystalStructure
        Structure to diffract. Not modified.
    wavelength : Union[str, non_jax_number]
        Wavelength in Å or a preset name such as ``"cu-ka"``.
    max_two_theta : non_jax_number
        Upper 2θ limit in degrees, in (0, 180].
    broadening : BroadeningSpec, optional
        Peak profile; None means stick deposition.
    step : non_jax_number, optional
        Grid spacing in degrees. Default: 0.02
    merge_tolerance : non_jax_number, optional
        Merge window in degrees. Default: 0.01

    Returns
    -------
    pattern : XRDPattern
        Grid pattern plus merged stick peaks.

    Raises
    ------
    InvalidWavelengthError
        If the wavelength is not positive and finite.
    InvalidBroadeningParameterError
        If the profile parameters are out of range.
    DomainError
        If max_two_theta, step or merge_tolerance is out of range.
    DegenerateLatticeError
        If the lattice has no inverse.
    UnknownElementError
        If a site element has no scattering factor entry.

    Flow
    ----
    - Validate every argument before any computation
    - Enumerate reflections and evaluate their structure factors
    - Drop extinct reflections and apply the Lorentz-polarisation factor
    - Merge coincident reflections
    - Broaden the merged peaks onto the 2θ grid

    Examples
    --------
    >>> pattern = compute_pattern(crystal, "cu-ka", 90.0)
    >>> pattern.peak_two_theta[0]
    """
    wavelength = resolve_wavelength(wavelength)
    _check_angle_limit(float(max_two_theta))
    if not math.isfinite(step) or step <= 0.0:
        raise DomainError(f"grid step must be positive, got {step}")
    if not math.isfinite(merge_tolerance) or merge_tolerance < 0.0:
        raise DomainError(
            f"merge tolerance must be non-negative, got {merge_tolerance}"
        )
    spec = BroadeningSpec() if broadening is None else broadening
    validate_broadening_spec(spec)

    reflections = enumerate_reflections(crystal, wavelength, max_two_theta)
    f_squared = jnp.abs(structure_factors(crystal, reflections)) ** 2
    allowed = np.asarray(f_squared >= EXTINCTION_THRESHOLD)
    two_theta = reflections.two_theta[allowed]
    intensity = f_squared[allowed] * lorentz_polarization(two_theta)
    merged = merge_reflections(
        two_theta, intensity, reflections.hkl[allowed], merge_tolerance
    )
    _log.debug(
        "%s: %d reflections, %d allowed, %d peaks",
        crystal.name or "<unnamed>",
        len(reflections),
        int(allowed.sum()),
        merged.two_theta.shape[0],
    )

    grid = make_grid(float(max_two_theta), float(step))
    profile = broaden(
        merged.two_theta, merged.intensities, grid, spec.kind, spec.fwhm, spec.eta
    )
    peak_d = wavelength / (2.0 * jnp.sin(jnp.radians(merged.two_theta) / 2.0))
    return XRDPattern(
        two_theta=grid,
        intensities=profile,
        peak_two_theta=merged.two_theta,
        peak_d_spacing=peak_d,
        peak_intensities=merged.intensities,
        peak_hkl=merged.hkl,
        peak_multiplicity=merged.multiplicity,
        wavelength=wavelength,
        name=crystal.name,
        hkl_labels=merged.labels,
    )
