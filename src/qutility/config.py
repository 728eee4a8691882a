"""Validated run configuration for diffraction batches.

Extended Summary
----------------
The command layer hands the core a handful of user settings (wavelength
preset or value, 2θ limit, broadening, concurrency). They are validated once
here, before any file is touched, and any problem surfaces as a single
`PreconditionError` rather than as per-item failures.

Routine Listings
----------------
XRDConfig : NamedTuple
    Immutable diffraction run settings
create_xrd_config : function
    Validate raw settings and build an XRDConfig
default_concurrency : function
    Worker count from ``QUTILITY_JOBS`` or the CPU count
"""

import math
import os

from beartype import beartype
from beartype.typing import NamedTuple, Optional, Union

from qutility.errors import DomainError, PreconditionError
from qutility.types import BroadeningSpec, create_broadening_spec
from qutility.xrd.wavelengths import resolve_wavelength

JOBS_ENV_VAR = "QUTILITY_JOBS"


class XRDConfig(NamedTuple):
    """Settings shared by every item of a diffraction batch.

    Attributes
    ----------
    wavelength : float
        X-ray wavelength in Å.
    max_two_theta : float
        Upper 2θ limit of the pattern in degrees.
    broadening : BroadeningSpec
        Peak profile applied to the stick pattern.
    step : float
        2θ grid spacing in degrees.
    merge_tolerance : float
        Angular window in degrees for merging coincident reflections.
    concurrency : int
        Number of worker threads.
    """

    wavelength: float
    max_two_theta: float = 90.0
    broadening: BroadeningSpec = BroadeningSpec()
    step: float = 0.02
    merge_tolerance: float = 0.01
    concurrency: int = 1


@beartype
def default_concurrency() -> int:
    """Worker count used when none is given explicitly.

    Returns
    -------
    jobs : int
        Value of the ``QUTILITY_JOBS`` environment variable when set,
        otherwise the number of CPUs (at least 1).

    Raises
    ------
    PreconditionError
        If ``QUTILITY_JOBS`` is set but is not a positive integer.
    """
    raw = os.environ.get(JOBS_ENV_VAR, "").strip()
    if raw:
        try:
            jobs = int(raw)
        except ValueError as err:
            raise PreconditionError(f"{JOBS_ENV_VAR}={raw!r} is not an integer") from err
        if jobs < 1:
            raise PreconditionError(f"{JOBS_ENV_VAR} must be positive, got {jobs}")
        return jobs
    return os.cpu_count() or 1


@beartype
def create_xrd_config(
    wavelength: Union[str, int, float] = "cu-ka",
    max_two_theta: Union[int, float] = 90.0,
    broadening: str = "none",
    fwhm: Union[int, float] = 0.1,
    eta: Union[int, float] = 0.5,
    step: Union[int, float] = 0.02,
    merge_tolerance: Union[int, float] = 0.01,
    concurrency: Optional[int] = None,
) -> XRDConfig:
    """Validate raw diffraction settings and build an `XRDConfig`.

    Parameters
    ----------
    wavelength : Union[str, int, float], optional
        Preset name such as ``"cu-ka"`` or ``"mo-ka"``, a numeric string,
        or a positive number in Å. Default: "cu-ka"
    max_two_theta : Union[int, float], optional
        Upper 2θ limit in degrees, in (0, 180]. Default: 90.0
    broadening : str, optional
        ``none``, ``gaussian``, ``lorentzian`` or ``pseudo-voigt``.
        Default: "none"
    fwhm : Union[int, float], optional
        Peak width in degrees. Default: 0.1
    eta : Union[int, float], optional
        Lorentzian fraction for pseudo-Voigt. Default: 0.5
    step : Union[int, float], optional
        Grid spacing in degrees. Default: 0.02
    merge_tolerance : Union[int, float], optional
        Merge window in degrees. Default: 0.01
    concurrency : int, optional
        Worker count; `default_concurrency` when None.

    Returns
    -------
    config : XRDConfig
        Validated configuration.

    Raises
    ------
    PreconditionError
        If any setting is invalid. The underlying `DomainError` is chained
        as the cause.
    """
    try:
        resolved = resolve_wavelength(wavelength)
        spec = create_broadening_spec(broadening, fwhm, eta)
        if not math.isfinite(max_two_theta) or not 0.0 < max_two_theta <= 180.0:
            raise DomainError(
                f"max two-theta must lie in (0, 180] degrees, got {max_two_theta}"
            )
        if not math.isfinite(step) or step <= 0.0:
            raise DomainError(f"grid step must be positive, got {step}")
        if not math.isfinite(merge_tolerance) or merge_tolerance < 0.0:
            raise DomainError(
                f"merge tolerance must be non-negative, got {merge_tolerance}"
            )
    except DomainError as err:
        raise PreconditionError(f"Invalid XRD configuration: {err}") from err

    jobs = default_concurrency() if concurrency is None else concurrency
    if jobs < 1:
        raise PreconditionError(f"concurrency must be a positive integer, got {jobs}")

    return XRDConfig(
        wavelength=resolved,
        max_two_theta=float(max_two_theta),
        broadening=spec,
        step=float(step),
        merge_tolerance=float(merge_tolerance),
        concurrency=jobs,
    )
