"""Custom types and data structures for structure processing.

Extended Summary
----------------
This module defines the data structures shared across qutility: the crystal
structure model, the reflection and pattern containers produced by the
diffraction engine, and the outcome records produced by the batch runner.
Array-carrying types are JAX PyTrees.

Routine Listings
----------------
Atom : NamedTuple
    One atomic site with element, fractional position, occupancy and B
CrystalStructure : class
    JAX-compatible crystal structure: lattice plus per-site arrays
create_crystal_structure : function
    Factory function to create CrystalStructure instances
LATTICE_EPSILON : float
    Determinant threshold below which a lattice is degenerate
BroadeningSpec : NamedTuple
    Peak profile kind, FWHM and pseudo-Voigt mixing
create_broadening_spec : function
    Factory function to create validated BroadeningSpec instances
Reflections : class
    Enumerated reflections with q, d spacing and 2θ
XRDPattern : class
    Diffraction pattern on a 2θ grid plus merged stick peaks
pattern_points : function
    Ordered (angle, intensity) pairs of a pattern
BatchOutcome : NamedTuple
    Tagged per-item result of a batch run
FailureInfo : NamedTuple
    Source, error family and message of a failed item
BatchSummary : NamedTuple
    Success and failure counts of a batch run
SKIPPED : sentinel
    Success value for items whose output already existed
summarize : function
    Count the outcomes of a batch run
CalculationResult : NamedTuple
    Energies and cell data read from a finished VASP or CASTEP run
DFT_CODES : tuple
    Supported electronic-structure codes

Type Aliases
------------
- `scalar_float`:
    Union type for scalar float values (float or JAX scalar array)
- `scalar_num`:
    Union type for scalar numeric values (int, float, or JAX scalar array)
- `non_jax_number`:
    Union type for non-JAX numeric values (int or float)
- `matrix_like`:
    Array-like or nested Python number sequences
"""

from .batch_types import (
    SKIPPED,
    BatchOutcome,
    BatchSummary,
    FailureInfo,
    summarize,
)
from .calculation_types import DFT_CODES, CalculationResult
from .crystal_types import (
    LATTICE_EPSILON,
    Atom,
    CrystalStructure,
    create_crystal_structure,
)
from .custom_types import (
    matrix_like,
    non_jax_number,
    scalar_float,
    scalar_num,
)
from .xrd_types import (
    BROADENING_KINDS,
    BroadeningSpec,
    Reflections,
    XRDPattern,
    create_broadening_spec,
    pattern_points,
    validate_broadening_spec,
)

__all__ = [
    "Atom",
    "CrystalStructure",
    "create_crystal_structure",
    "LATTICE_EPSILON",
    "BROADENING_KINDS",
    "BroadeningSpec",
    "create_broadening_spec",
    "validate_broadening_spec",
    "Reflections",
    "XRDPattern",
    "pattern_points",
    "BatchOutcome",
    "BatchSummary",
    "FailureInfo",
    "SKIPPED",
    "summarize",
    "CalculationResult",
    "DFT_CODES",
    "scalar_float",
    "scalar_num",
    "non_jax_number",
    "matrix_like",
]
