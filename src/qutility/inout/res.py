"""AIRSS/SHELX ``.res`` structure files.

Extended Summary
----------------
The ``.res`` files written by AIRSS carry the cell, the species and the
fractional sites, plus the result of the calculation on the TITL line::

    TITL <name> <pressure> <volume> <energy> <enthalpy> 0 0 <n> (<sym>) n - 1 [spin: s |s|]
    CELL 1.0 a b c alpha beta gamma
    LATT -1
    SFAC Na Cl
    Na 1 0.0 0.0 0.0 1.0
    END

Routine Listings
----------------
parse_res : function
    Read a ``.res`` file into a CrystalStructure
parse_res_text : function
    Parse ``.res`` content
to_res_string : function
    Render a CrystalStructure as ``.res`` text
"""

import re
from pathlib import Path

import numpy as np
from beartype import beartype
from beartype.typing import Dict, List, Optional, Union

from qutility.errors import ParseError
from qutility.types import Atom, CrystalStructure, create_crystal_structure
from qutility.types.crystal_types import MetadataValue
from qutility.ucell import build_cell_vectors, compute_lengths_angles

from .files import read_text

_SPACE_GROUP = re.compile(r"\(([^)]*)\)")
_IGNORED_CARDS = {"LATT", "ZERR", "END", "REM"}


def _optional_float(token: str) -> Optional[float]:
    try:
        return float(token)
    except ValueError:
        return None


def _parse_titl(line: str, parts: List[str], meta: Dict[str, MetadataValue]) -> Optional[str]:
    name = parts[1] if len(parts) >= 2 else None
    for key, position in (("pressure", 2), ("volume", 3), ("energy", 4), ("enthalpy", 5)):
        if len(parts) > position:
            value = _optional_float(parts[position])
            if value is not None:
                meta[key] = value
    symmetry = _SPACE_GROUP.search(line)
    if symmetry is not None:
        meta["space_group"] = symmetry.group(1)
    if "spin:" in line:
        spins = line.split("spin:", 1)[1].split()
        for key, token in zip(("spin", "abs_spin"), spins[:2]):
            value = _optional_float(token)
            if value is not None:
                meta[key] = value
    return name


@beartype
def parse_res_text(text: str, default_name: str = "unknown") -> CrystalStructure:
    """Parse the content of a ``.res`` file.

    Parameters
    ----------
    text : str
        File content.
    default_name : str, optional
        Name used when the file has no TITL name. Default: "unknown"

    Returns
    -------
    crystal : CrystalStructure
        Structure with ``pressure``, ``volume``, ``energy``, ``enthalpy``,
        ``space_group``, ``spin`` and ``abs_spin`` metadata where present,
        and ``source_format`` set to ``"res"``.

    Raises
    ------
    ParseError
        If the CELL line is missing or malformed, a site has unreadable
        coordinates, or there are no sites.
    DegenerateLatticeError
        If the cell parameters describe a flat cell.
    """
    name = default_name
    cell: Optional[List[float]] = None
    species: List[str] = []
    atoms: List[Atom] = []
    meta: Dict[str, MetadataValue] = {"source_format": "res"}

    for raw in text.splitlines():
        line = raw.strip()
        parts = line.split()
        if not parts:
            continue
        card = parts[0].upper()
        if card == "TITL":
            name = _parse_titl(line, parts, meta) or name
        elif card == "CELL":
            try:
                cell = [float(token) for token in parts[2:8]]
            except ValueError as err:
                raise ParseError("res", name, f"malformed CELL line: {line}") from err
            if len(cell) != 6:
                raise ParseError("res", name, f"CELL needs six parameters: {line}")
        elif card == "SFAC":
            species = [token.lower() for token in parts[1:]]
        elif card in _IGNORED_CARDS:
            continue
        elif len(parts) >= 5 and parts[0].lower() in species:
            try:
                position = tuple(float(token) for token in parts[2:5])
            except ValueError as err:
                raise ParseError("res", name, f"bad coordinates: {line}") from err
            occupancy = _optional_float(parts[5]) if len(parts) > 5 else None
            atoms.append(
                Atom(parts[0], position, occupancy=1.0 if occupancy is None else occupancy)
            )

    if cell is None:
        raise ParseError("res", name, "Missing CELL line")
    if not atoms:
        raise ParseError("res", name, "no atom lines")
    lattice = build_cell_vectors(*cell)
    return create_crystal_structure(lattice, atoms, name=name, metadata=meta)


@beartype
def parse_res(path: Union[str, Path]) -> CrystalStructure:
    """Read a ``.res`` file; the file stem names structures without a TITL name."""
    path = Path(path)
    return parse_res_text(read_text(path), default_name=path.stem)


def _fmt_meta(crystal: CrystalStructure, key: str, default: float) -> float:
    value = crystal.meta(key)
    return default if value is None else float(value)


@beartype
def to_res_string(crystal: CrystalStructure) -> str:
    """Render a structure as ``.res`` text that `parse_res_text` reads back.

    Missing metadata is written as zero pressure, the lattice volume, zero
    energy, enthalpy equal to the energy and space group ``P1``.
    """
    lengths, angles = compute_lengths_angles(crystal.lattice)
    a, b, c = (float(x) for x in np.asarray(lengths))
    alpha, beta, gamma = (float(x) for x in np.asarray(angles))
    species: List[str] = []
    for element in crystal.elements:
        if element.lower() not in (s.lower() for s in species):
            species.append(element)
    pressure = _fmt_meta(crystal, "pressure", 0.0)
    energy = _fmt_meta(crystal, "energy", 0.0)
    enthalpy = _fmt_meta(crystal, "enthalpy", energy)
    space_group = crystal.meta("space_group") or "P1"

    lines = [
        f"TITL {crystal.name or 'structure'} {pressure:.6f} {crystal.volume():.6f} "
        f"{energy:.10f} {enthalpy:.10f} 0 0 {crystal.n_atoms} ({space_group}) n - 1"
    ]
    spin, abs_spin = crystal.meta("spin"), crystal.meta("abs_spin")
    if spin is not None and abs_spin is not None:
        lines[0] += f" spin: {float(spin):.6f} {float(abs_spin):.6f}"
    lines.append(f"CELL 1.0 {a:.10f} {b:.10f} {c:.10f} {alpha:.6f} {beta:.6f} {gamma:.6f}")
    lines.append("LATT -1")
    lines.append("SFAC " + " ".join(species))
    lowered = [s.lower() for s in species]
    for atom in crystal.atoms:
        x, y, z = atom.position
        index = lowered.index(atom.element.lower()) + 1
        lines.append(f"{atom.element} {index} {x:.10f} {y:.10f} {z:.10f} {atom.occupancy:.4f}")
    lines.append("END")
    return "\n".join(lines) + "\n"
