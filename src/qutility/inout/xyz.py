"""Extended XYZ output.

Routine Listings
----------------
to_xyz_string : function
    Render a CrystalStructure as extended XYZ with the cell in the comment
"""

import numpy as np
from beartype import beartype

from qutility.types import CrystalStructure
from qutility.ucell import frac_to_cart


@beartype
def to_xyz_string(crystal: CrystalStructure) -> str:
    """Render a structure as extended XYZ.

    The comment line carries ``Lattice="ax ay az bx by bz cx cy cz"``, the
    column layout and the structure name, so the periodic cell survives the
    conversion. Positions are Cartesian, in Å.
    """
    lattice = np.asarray(crystal.lattice)
    cartesian = np.asarray(frac_to_cart(crystal.frac_positions, crystal.lattice))
    cell = " ".join(f"{value:.10f}" for value in lattice.ravel())
    name = (crystal.name or "structure").replace('"', "'")
    lines = [
        str(crystal.n_atoms),
        f'Lattice="{cell}" Properties=species:S:1:pos:R:3 name="{name}" pbc="T T T"',
    ]
    for element, (x, y, z) in zip(crystal.elements, cartesian):
        lines.append(f"{element:<4s} {x:16.10f} {y:16.10f} {z:16.10f}")
    return "\n".join(lines) + "\n"
