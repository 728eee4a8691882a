"""P1 CIF and CrystalMaker XTL output.

Both writers spell out every site in space group P1, so no symmetry
information is needed to read the structure back.

Routine Listings
----------------
to_cif_string : function
    Render a CrystalStructure as a P1 CIF data block
to_xtl_string : function
    Render a CrystalStructure as a CrystalMaker XTL file
"""

import re

import numpy as np
from beartype import beartype
from beartype.typing import List, Tuple

from qutility.types import CrystalStructure
from qutility.ucell import compute_lengths_angles


def _cell_parameters(crystal: CrystalStructure) -> Tuple[float, ...]:
    lengths, angles = compute_lengths_angles(crystal.lattice)
    return tuple(float(x) for x in np.asarray(lengths)) + tuple(
        float(x) for x in np.asarray(angles)
    )


def _site_labels(elements: Tuple[str, ...]) -> List[str]:
    """``Na, Na, Cl`` -> ``Na1, Na2, Cl1``."""
    seen = {}
    labels = []
    for element in elements:
        seen[element] = seen.get(element, 0) + 1
        labels.append(f"{element}{seen[element]}")
    return labels


@beartype
def to_cif_string(crystal: CrystalStructure) -> str:
    """Render a structure as a CIF data block in space group P1.

    The block is named after the structure with whitespace replaced by
    underscores. Each site carries a ``<element><n>`` label, its fractional
    coordinates and its occupancy.
    """
    a, b, c, alpha, beta, gamma = _cell_parameters(crystal)
    block = re.sub(r"\s+", "_", crystal.name.strip()) or "structure"
    lines = [
        f"data_{block}",
        "_symmetry_space_group_name_H-M    'P 1'",
        "_symmetry_Int_Tables_number       1",
        "",
        f"_cell_length_a    {a:.6f}",
        f"_cell_length_b    {b:.6f}",
        f"_cell_length_c    {c:.6f}",
        f"_cell_angle_alpha {alpha:.4f}",
        f"_cell_angle_beta  {beta:.4f}",
        f"_cell_angle_gamma {gamma:.4f}",
        f"_cell_volume      {crystal.volume():.6f}",
        "",
        "loop_",
        "_symmetry_equiv_pos_as_xyz",
        "  'x, y, z'",
        "",
        "loop_",
        "_atom_site_label",
        "_atom_site_type_symbol",
        "_atom_site_fract_x",
        "_atom_site_fract_y",
        "_atom_site_fract_z",
        "_atom_site_occupancy",
    ]
    for label, atom in zip(_site_labels(crystal.elements), crystal.atoms):
        x, y, z = atom.position
        lines.append(
            f"{label} {atom.element} {x:.10f} {y:.10f} {z:.10f} {atom.occupancy:.4f}"
        )
    return "\n".join(lines) + "\n"


@beartype
def to_xtl_string(crystal: CrystalStructure) -> str:
    """Render a structure as a CrystalMaker XTL file in P1."""
    a, b, c, alpha, beta, gamma = _cell_parameters(crystal)
    lines = [
        f"TITLE {crystal.name or 'structure'}",
        "CELL",
        f"  {a:.6f} {b:.6f} {c:.6f} {alpha:.4f} {beta:.4f} {gamma:.4f}",
        "SYMMETRY NUMBER 1",
        "SYMMETRY LABEL P1",
        "ATOMS",
        "NAME       X          Y          Z",
    ]
    for element, (x, y, z) in zip(crystal.elements, np.asarray(crystal.frac_positions)):
        lines.append(f"{element:<4s} {x:10.6f} {y:10.6f} {z:10.6f}")
    lines.append("EOF")
    return "\n".join(lines) + "\n"
