"""VASP POSCAR/CONTCAR structure files.

Extended Summary
----------------
Reads the VASP 5 layout (species line followed by counts) and the older
VASP 4 layout, where the species are taken from the comment line. Supports
negative scaling factors, which give the cell volume, optional Selective
dynamics, and Direct or Cartesian coordinates.

Routine Listings
----------------
parse_poscar : function
    Read a POSCAR/CONTCAR file into a CrystalStructure
parse_poscar_text : function
    Parse POSCAR content
to_poscar_string : function
    Render a CrystalStructure in VASP 5 Direct format
"""

from pathlib import Path

import numpy as np
from beartype import beartype
from beartype.typing import List, NamedTuple, Sequence, Union

from qutility.errors import DegenerateLatticeError, ParseError
from qutility.types import (
    LATTICE_EPSILON,
    Atom,
    CrystalStructure,
    create_crystal_structure,
)

from .files import read_text


class _PoscarHeader(NamedTuple):
    scaling: float
    lattice: np.ndarray
    species: List[str]
    counts: List[int]
    body_start: int


def _is_int(token: str) -> bool:
    try:
        int(token)
    except ValueError:
        return False
    return True


def _parse_poscar_header(lines: Sequence[str], name: str = "POSCAR") -> _PoscarHeader:
    """Parse the first six or seven lines of a POSCAR.

    Returns the length scaling factor (derived from the volume when the
    file gives a negative value), the scaled lattice, the species,
    the per-species counts and the index of the first line after the counts.
    """
    if len(lines) < 7:
        raise ParseError("poscar", name, "file needs at least 7 header lines")
    try:
        scaling = float(lines[1].split()[0])
    except (ValueError, IndexError) as err:
        raise ParseError("poscar", name, f"invalid scaling factor: {lines[1]!r}") from err
    raw_lattice = []
    for offset in range(3):
        tokens = lines[2 + offset].split()
        try:
            vector = [float(token) for token in tokens[:3]]
        except ValueError as err:
            raise ParseError(
                "poscar", name, f"invalid lattice vector on line {3 + offset}"
            ) from err
        if len(vector) != 3:
            raise ParseError("poscar", name, f"invalid lattice vector on line {3 + offset}")
        raw_lattice.append(vector)
    lattice = np.array(raw_lattice, dtype=np.float64)
    if scaling < 0.0:
        raw_volume = abs(float(np.linalg.det(lattice)))
        if raw_volume == 0.0:
            raise ParseError("poscar", name, "volume scaling of a flat cell")
        scaling = (abs(scaling) / raw_volume) ** (1.0 / 3.0)
    lattice = lattice * scaling

    tokens = lines[5].split()
    if tokens and all(_is_int(token) for token in tokens):
        counts = [int(token) for token in tokens]
        species = lines[0].split()[: len(counts)]
        body_start = 6
    else:
        species = tokens
        counts_line = lines[6].split()
        if not all(_is_int(token) for token in counts_line):
            raise ParseError("poscar", name, f"invalid atom counts: {lines[6]!r}")
        counts = [int(token) for token in counts_line]
        body_start = 7
    if len(species) != len(counts) or not counts:
        raise ParseError(
            "poscar", name, f"{len(species)} species but {len(counts)} atom counts"
        )
    if any(count < 0 for count in counts):
        raise ParseError("poscar", name, "atom counts must be non-negative")
    return _PoscarHeader(scaling, lattice, species, counts, body_start)


def _parse_poscar_positions(
    lines: Sequence[str],
    start_idx: int,
    n_atoms: int,
    is_cartesian: bool,
    lattice: np.ndarray,
    scaling: float = 1.0,
    name: str = "POSCAR",
) -> np.ndarray:
    """Read ``n_atoms`` coordinate lines as fractional positions.

    Trailing Selective dynamics flags are ignored. Cartesian coordinates are
    multiplied by the scaling factor, as VASP does, and converted with the
    inverse of the scaled lattice.
    """
    if start_idx + n_atoms > len(lines):
        raise ParseError(
            "poscar",
            name,
            f"file ends after {max(len(lines) - start_idx, 0)} of {n_atoms} positions",
        )
    rows = []
    for line_no in range(start_idx, start_idx + n_atoms):
        tokens = lines[line_no].split()
        try:
            rows.append([float(token) for token in tokens[:3]])
        except ValueError as err:
            raise ParseError("poscar", name, f"bad position on line {line_no + 1}") from err
        if len(rows[-1]) != 3:
            raise ParseError("poscar", name, f"bad position on line {line_no + 1}")
    positions = np.array(rows, dtype=np.float64).reshape(-1, 3)
    if is_cartesian:
        if abs(float(np.linalg.det(lattice))) < LATTICE_EPSILON:
            raise DegenerateLatticeError(f"{name}: lattice is degenerate")
        positions = positions * scaling @ np.linalg.inv(lattice)
    return positions


@beartype
def parse_poscar_text(text: str, default_name: str = "POSCAR") -> CrystalStructure:
    """Parse the content of a POSCAR/CONTCAR file.

    Parameters
    ----------
    text : str
        File content.
    default_name : str, optional
        Name used when the comment line is empty. Default: "POSCAR"

    Returns
    -------
    crystal : CrystalStructure
        Structure with fractional positions and ``source_format`` metadata
        ``"poscar"``.

    Raises
    ------
    ParseError
        If the header, the coordinate mode or any position is malformed, or
        the file ends early.
    DegenerateLatticeError
        If the lattice vectors are linearly dependent.

    Flow
    ----
    - Parse scaling, lattice, species and counts
    - Skip an optional Selective dynamics line
    - Read the Direct/Cartesian mode line
    - Read one position per atom and build the structure
    """
    lines = text.splitlines()
    name = lines[0].strip() if lines and lines[0].strip() else default_name
    header = _parse_poscar_header(lines, name)
    mode_idx = header.body_start
    if mode_idx < len(lines) and lines[mode_idx].strip()[:1].lower() == "s":
        mode_idx += 1
    if mode_idx >= len(lines):
        raise ParseError("poscar", name, "missing coordinate mode line")
    mode = lines[mode_idx].strip()[:1].lower()
    if mode in ("c", "k"):
        is_cartesian = True
    elif mode == "d":
        is_cartesian = False
    else:
        raise ParseError(
            "poscar", name, f"coordinate mode must be Direct or Cartesian, got {lines[mode_idx]!r}"
        )
    positions = _parse_poscar_positions(
        lines,
        start_idx=mode_idx + 1,
        n_atoms=sum(header.counts),
        is_cartesian=is_cartesian,
        lattice=header.lattice,
        scaling=header.scaling,
        name=name,
    )
    elements = [
        element
        for element, count in zip(header.species, header.counts)
        for _ in range(count)
    ]
    atoms = [
        Atom(element, tuple(float(x) for x in position))
        for element, position in zip(elements, positions)
    ]
    return create_crystal_structure(
        header.lattice, atoms, name=name, metadata={"source_format": "poscar"}
    )


@beartype
def parse_poscar(path: Union[str, Path]) -> CrystalStructure:
    """Read a POSCAR/CONTCAR file."""
    path = Path(path)
    return parse_poscar_text(read_text(path), default_name=path.stem)


@beartype
def to_poscar_string(crystal: CrystalStructure) -> str:
    """Render a structure in VASP 5 Direct format, sites grouped by species."""
    order: List[str] = []
    for element in crystal.elements:
        if element not in order:
            order.append(element)
    atoms = crystal.atoms
    lines = [crystal.name or "structure", "1.0"]
    for row in np.asarray(crystal.lattice):
        lines.append("  " + "  ".join(f"{value:16.10f}" for value in row))
    lines.append("   " + "   ".join(order))
    lines.append("   " + "   ".join(str(crystal.elements.count(el)) for el in order))
    lines.append("Direct")
    for element in order:
        for atom in atoms:
            if atom.element == element:
                lines.append("  " + "  ".join(f"{value:16.10f}" for value in atom.position))
    return "\n".join(lines) + "\n"
