"""Unit cell and crystallographic utilities.

Extended Summary
----------------
This module provides functions for crystallographic calculations including
cell parameter conversions, cell volumes, coordinate transformations and
reciprocal space construction.

Routine Listings
----------------
build_cell_vectors : function
    Convert lattice parameters to Cartesian cell vectors
compute_lengths_angles : function
    Extract lattice parameters from cell vectors
cell_volume : function
    Signed volume of a cell
frac_to_cart : function
    Convert fractional coordinates to Cartesian coordinates
reciprocal_basis : function
    Reciprocal lattice vectors (2π convention, traceable)
reciprocal_lattice_vectors : function
    Reciprocal lattice vectors with degeneracy validation
"""

from .unitcell import (
                     build_cell_vectors,
                     cell_volume,
                     compute_lengths_angles,
                     frac_to_cart,
                     reciprocal_basis,
                     reciprocal_lattice_vectors,
)

__all__ = [
    "build_cell_vectors",
    "compute_lengths_angles",
    "cell_volume",
    "frac_to_cart",
    "reciprocal_basis",
    "reciprocal_lattice_vectors",
]
