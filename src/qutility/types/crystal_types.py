"""
Module: types.crystal_types
---------------------------
Data structures and factory functions for crystal structure representation.

Classes
-------
- `Atom`:
    One atomic site with element, fractional position, occupancy and
    isotropic displacement parameter
- `CrystalStructure`:
    JAX-compatible crystal structure holding the direct lattice and the
    per-site arrays

FactoryFunctions
-----------------
- `create_crystal_structure`:
    Factory function to create CrystalStructure instances with data validation
"""

from collections import Counter

import jax
import jax.numpy as jnp
import numpy as np
from beartype import beartype
from beartype.typing import Dict, Mapping, NamedTuple, Optional, Sequence, Tuple, Union
from jax.tree_util import register_pytree_node_class
from jaxtyping import Array, Float

from qutility.errors import DegenerateLatticeError, DomainError, InputError

from .custom_types import matrix_like

jax.config.update("jax_enable_x64", True)

LATTICE_EPSILON: float = 1e-10

MetadataValue = Union[str, float, int, None]


class Atom(NamedTuple):
    """
    Description
    -----------
    One atomic site of a crystal.

    Attributes
    ----------
    - `element` (str):
        Atomic symbol or site label, e.g. ``"Na"`` or ``"Fe1"``.
    - `position` (Tuple[float, float, float]):
        Fractional coordinates in the cell. Not reduced modulo 1.
    - `occupancy` (float):
        Site occupancy, default 1.0.
    - `b_iso` (float):
        Isotropic displacement parameter B in Å², default 0 (no damping).
    """

    element: str
    position: Tuple[float, float, float]
    occupancy: float = 1.0
    b_iso: float = 0.0


@register_pytree_node_class
class CrystalStructure(NamedTuple):
    """
    Description
    -----------
    A JAX-compatible data structure representing a crystal: a direct lattice
    plus an ordered sequence of atomic sites.

    Attributes
    ----------
    - `lattice` (Float[Array, "3 3"]):
        Direct lattice vectors as rows [a, b, c] in Ångstroms.
    - `frac_positions` (Float[Array, "N 3"]):
        Fractional coordinates of every site.
    - `occupancies` (Float[Array, "N"]):
        Site occupancies.
    - `b_factors` (Float[Array, "N"]):
        Isotropic displacement parameters in Å².
    - `elements` (Tuple[str, ...]):
        Element symbol or label of every site, in the same order.
    - `name` (str):
        Structure name, usually from the file title or stem.
    - `metadata` (Tuple[Tuple[str, MetadataValue], ...]):
        Calculation metadata such as pressure, enthalpy or space group.

    Notes
    -----
    The array fields are PyTree children. `elements`, `name` and `metadata`
    are static auxiliary data, which keeps the structure hashable under
    `jax.jit`. Instances are never mutated; use `_replace` to derive a new
    one.
    """

    lattice: Float[Array, "3 3"]
    frac_positions: Float[Array, "N 3"]
    occupancies: Float[Array, "N"]
    b_factors: Float[Array, "N"]
    elements: Tuple[str, ...]
    name: str = ""
    metadata: Tuple[Tuple[str, MetadataValue], ...] = ()

    def tree_flatten(self):
        return (
            (
                self.lattice,
                self.frac_positions,
                self.occupancies,
                self.b_factors,
            ),
            (self.elements, self.name, self.metadata),
        )

    @classmethod
    def tree_unflatten(cls, aux_data, children):
        elements, name, metadata = aux_data
        return cls(*children, elements=elements, name=name, metadata=metadata)

    @property
    def n_atoms(self) -> int:
        return len(self.elements)

    @property
    def atoms(self) -> Tuple[Atom, ...]:
        frac = np.asarray(self.frac_positions)
        occ = np.asarray(self.occupancies)
        b_iso = np.asarray(self.b_factors)
        return tuple(
            Atom(
                element=element,
                position=(float(frac[i, 0]), float(frac[i, 1]), float(frac[i, 2])),
                occupancy=float(occ[i]),
                b_iso=float(b_iso[i]),
            )
            for i, element in enumerate(self.elements)
        )

    def meta(self, key: str, default: MetadataValue = None) -> MetadataValue:
        return dict(self.metadata).get(key, default)

    def formula(self) -> str:
        """Element counts sorted by symbol, e.g. ``Cl4Na4``."""
        counts = Counter(self.elements)
        return "".join(
            el if counts[el] == 1 else f"{el}{counts[el]}" for el in sorted(counts)
        )

    def volume(self) -> float:
        """Cell volume in Å³, from the metadata when a reader supplied it."""
        stored = self.meta("volume")
        if stored is not None:
            return float(stored)
        return abs(float(jnp.linalg.det(self.lattice)))

    def volume_per_atom(self) -> float:
        return self.volume() / self.n_atoms

    def enthalpy_per_atom(self) -> Optional[float]:
        enthalpy = self.meta("enthalpy")
        if enthalpy is None:
            return None
        return float(enthalpy) / self.n_atoms


@beartype
def create_crystal_structure(
    lattice: matrix_like,
    atoms: Sequence[Atom],
    name: str = "",
    metadata: Optional[Mapping[str, MetadataValue]] = None,
) -> CrystalStructure:
    """
    Description
    -----------
    Factory function to create a CrystalStructure instance with validation.

    Parameters
    ----------
    - `lattice` (matrix_like):
        3x3 direct lattice vectors as rows, in Ångstroms.
    - `atoms` (Sequence[Atom]):
        Atomic sites in file order.
    - `name` (str, optional):
        Structure name. Default: ""
    - `metadata` (Mapping[str, MetadataValue], optional):
        Calculation metadata; keys are stored sorted so equal inputs give
        equal (and equally hashed) structures.

    Returns
    -------
    - `crystal` (CrystalStructure):
        Validated crystal structure.

    Raises
    ------
    - InputError:
        If there are no atoms or the lattice is not 3x3 and finite.
    - DegenerateLatticeError:
        If |det(lattice)| is below `LATTICE_EPSILON`.
    - DomainError:
        If any position, occupancy or B factor is non-finite, or an
        occupancy or B factor is negative.

    Flow
    ----
    - Convert the lattice to a float64 array and check its shape
    - Reject non-finite or degenerate lattices
    - Stack per-site arrays from the atoms
    - Check finiteness and sign of the per-site arrays
    - Create and return the CrystalStructure
    """
    lattice_arr = np.asarray(lattice, dtype=np.float64)
    if lattice_arr.shape != (3, 3):
        raise InputError(f"lattice must have shape (3, 3), got {lattice_arr.shape}")
    if not np.all(np.isfinite(lattice_arr)):
        raise InputError("lattice contains non-finite values")
    determinant = float(np.linalg.det(lattice_arr))
    if abs(determinant) < LATTICE_EPSILON:
        raise DegenerateLatticeError(
            f"lattice is degenerate (det = {determinant:.3e} Å³)"
        )
    if len(atoms) == 0:
        raise InputError("crystal structure has no atoms")

    if any(len(atom.position) != 3 for atom in atoms):
        raise InputError("every atom position must have three components")
    frac = np.array([[float(c) for c in atom.position] for atom in atoms])
    occupancies = np.array([float(atom.occupancy) for atom in atoms])
    b_factors = np.array([float(atom.b_iso) for atom in atoms])
    if not np.all(np.isfinite(frac)):
        raise DomainError("atomic positions contain non-finite values")
    for label, values in (("occupancy", occupancies), ("B factor", b_factors)):
        if not np.all(np.isfinite(values)) or np.any(values < 0):
            raise DomainError(f"every {label} must be finite and non-negative")

    meta: Dict[str, MetadataValue] = dict(metadata or {})
    return CrystalStructure(
        lattice=jnp.asarray(lattice_arr),
        frac_positions=jnp.asarray(frac),
        occupancies=jnp.asarray(occupancies),
        b_factors=jnp.asarray(b_factors),
        elements=tuple(atom.element for atom in atoms),
        name=name,
        metadata=tuple(sorted(meta.items())),
    )
