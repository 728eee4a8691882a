"""X-ray atomic scattering factors.

Extended Summary
----------------
Cromer–Mann coefficients from International Tables for Crystallography
Vol. C, Table 6.1.1.4, evaluated as

    f(s) = Σ_i a_i exp(-b_i s²) + c,    s = sin θ / λ = q / 4π

The coefficient table ships with the package as a CSV file. It is read once,
on first use, and shared read-only by every thread afterwards.

Routine Listings
----------------
ScatteringParams : NamedTuple
    Cromer–Mann coefficients of one element
scattering_table : function
    Process-wide read-only mapping from symbol to coefficients
normalize_element : function
    Reduce a site label such as ``Fe1`` or ``O2-`` to a table symbol
cromer_mann : function
    Evaluate the Cromer–Mann expansion for coefficient arrays
scattering_amplitude : function
    Atomic scattering factor of an element at scattering vector q
site_coefficients : function
    Stack the coefficients of a list of sites for vectorised evaluation
"""

import re
import threading
from pathlib import Path
from types import MappingProxyType

import jax
import jax.numpy as jnp
import numpy as np
import pandas as pd
from beartype import beartype
from beartype.typing import Mapping, NamedTuple, Optional, Sequence, Tuple, Union
from jaxtyping import Array, Float, jaxtyped

from qutility.errors import InputError, UnknownElementError
from qutility.types import scalar_num

jax.config.update("jax_enable_x64", True)

DEFAULT_SCATTERING_FACTORS_PATH = (
    Path(__file__).resolve().parents[1] / "data" / "xray_scattering_factors.csv"
)

_COEFFICIENT_COLUMNS = ("a1", "a2", "a3", "a4", "b1", "b2", "b3", "b4", "c")
_LABEL_PATTERN = re.compile(r"^([A-Za-z]{1,2})")


class ScatteringParams(NamedTuple):
    """Cromer–Mann coefficients of one element.

    Attributes
    ----------
    a : Tuple[float, float, float, float]
        Gaussian amplitudes in electrons.
    b : Tuple[float, float, float, float]
        Gaussian widths in Å².
    c : float
        Constant term in electrons.
    """

    a: Tuple[float, float, float, float]
    b: Tuple[float, float, float, float]
    c: float

    def at_zero(self) -> float:
        """Forward-scattering value f(0), close to the atomic number."""
        return sum(self.a) + self.c


_table: Optional[Mapping[str, ScatteringParams]] = None
_table_lock = threading.Lock()


def _load_table(path: Path) -> Mapping[str, ScatteringParams]:
    frame: pd.DataFrame = pd.read_csv(path)
    missing = [col for col in ("element",) + _COEFFICIENT_COLUMNS if col not in frame]
    if missing:
        raise InputError(f"{path} is missing columns: {', '.join(missing)}")
    table = {}
    for row in frame.itertuples(index=False):
        table[str(row.element).strip()] = ScatteringParams(
            a=(float(row.a1), float(row.a2), float(row.a3), float(row.a4)),
            b=(float(row.b1), float(row.b2), float(row.b3), float(row.b4)),
            c=float(row.c),
        )
    return MappingProxyType(table)


def scattering_table() -> Mapping[str, ScatteringParams]:
    """Return the shared read-only element table, loading it on first call.

    Returns
    -------
    table : Mapping[str, ScatteringParams]
        Immutable mapping from element symbol to coefficients.

    Notes
    -----
    Loading is double-checked under a lock, so concurrent first callers see
    exactly one load and the same mapping object.
    """
    global _table
    if _table is None:
        with _table_lock:
            if _table is None:
                _table = _load_table(DEFAULT_SCATTERING_FACTORS_PATH)
    return _table


@beartype
def normalize_element(label: str) -> str:
    """Reduce a site label to a capitalised element symbol.

    Parameters
    ----------
    label : str
        Element symbol or site label, e.g. ``"fe"``, ``"Fe1"``, ``"O2-"``,
        ``"Na+"``.

    Returns
    -------
    symbol : str
        Symbol in table case, e.g. ``"Fe"``.

    Raises
    ------
    UnknownElementError
        If the label does not start with a letter.
    """
    match = _LABEL_PATTERN.match(label.strip())
    if match is None:
        raise UnknownElementError(label)
    letters = match.group(1)
    return letters[0].upper() + letters[1:].lower()


def _lookup(element: str) -> ScatteringParams:
    symbol = normalize_element(element)
    params = scattering_table().get(symbol)
    if params is None:
        raise UnknownElementError(symbol, label=element)
    return params


@jaxtyped(typechecker=beartype)
def cromer_mann(
    a: Float[Array, "... 4"],
    b: Float[Array, "... 4"],
    c: Float[Array, "..."],
    q: Union[scalar_num, Float[Array, "..."]],
) -> Float[Array, "..."]:
    """Evaluate the Cromer–Mann expansion at scattering vector q.

    Parameters
    ----------
    a, b : Float[Array, "... 4"]
        Gaussian amplitudes and widths; leading axes broadcast against q.
    c : Float[Array, "..."]
        Constant terms.
    q : Union[scalar_num, Float[Array, "..."]]
        Scattering-vector magnitude 4π sin θ / λ in 1/Å.

    Returns
    -------
    Float[Array, "..."]
        Scattering factor in electrons.
    """
    s: Float[Array, "..."] = jnp.asarray(q) / (4.0 * jnp.pi)
    gaussians = a * jnp.exp(-b * (s**2)[..., None])
    return jnp.sum(gaussians, axis=-1) + c


@beartype
def scattering_amplitude(
    element: str,
    q: Union[scalar_num, Float[Array, "..."]],
) -> Float[Array, "..."]:
    """Atomic scattering factor f(q) of one element.

    Parameters
    ----------
    element : str
        Element symbol or site label.
    q : Union[scalar_num, Float[Array, "..."]]
        Scattering-vector magnitude(s) in 1/Å, q ≥ 0.

    Returns
    -------
    Float[Array, "..."]
        f in electrons, same shape as q.

    Raises
    ------
    UnknownElementError
        If the element has no table entry. There is no silent zero.

    Examples
    --------
    >>> float(scattering_amplitude("Fe", 0.0))  # ≈ 26
    """
    params = _lookup(element)
    return cromer_mann(
        jnp.asarray(params.a),
        jnp.asarray(params.b),
        jnp.asarray(params.c),
        jnp.asarray(q, dtype=jnp.float64),
    )


@beartype
def site_coefficients(
    elements: Sequence[str],
) -> Tuple[Float[Array, "N 4"], Float[Array, "N 4"], Float[Array, "N"]]:
    """Stack per-site coefficient arrays, failing on the first unknown element."""
    params = [_lookup(element) for element in elements]
    a = jnp.asarray(np.array([p.a for p in params], dtype=np.float64).reshape(-1, 4))
    b = jnp.asarray(np.array([p.b for p in params], dtype=np.float64).reshape(-1, 4))
    c = jnp.asarray(np.array([p.c for p in params], dtype=np.float64))
    return a, b, c
