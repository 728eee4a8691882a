"""CASTEP ``.cell`` structure files.

Extended Summary
----------------
A ``.cell`` file holds free-format ``%BLOCK`` sections. The cell comes from
``LATTICE_CART`` (three vectors) or ``LATTICE_ABC`` (lengths, then angles);
the sites from ``POSITIONS_FRAC`` or ``POSITIONS_ABS``::

    %BLOCK LATTICE_CART
    ang
    5.0 0.0 0.0
    0.0 5.0 0.0
    0.0 0.0 5.0
    %ENDBLOCK LATTICE_CART

    %BLOCK POSITIONS_FRAC
    Na 0.0 0.0 0.0
    Cl 0.5 0.5 0.5
    %ENDBLOCK POSITIONS_FRAC

Block names and keywords are case-insensitive. ``#`` and ``!`` start
comments. An optional unit line (``ang``, ``bohr`` or ``nm``) may open a
lattice or absolute-position block.

Routine Listings
----------------
parse_cell : function
    Read a ``.cell`` file into a CrystalStructure
parse_cell_text : function
    Parse ``.cell`` content
to_cell_string : function
    Render a CrystalStructure as ``.cell`` text
"""

import re
from pathlib import Path

import numpy as np
from beartype import beartype
from beartype.typing import Dict, List, Optional, Tuple, Union

from qutility.errors import DegenerateLatticeError, ParseError
from qutility.types import LATTICE_EPSILON, Atom, CrystalStructure, create_crystal_structure
from qutility.ucell import build_cell_vectors

from .files import read_text

BOHR_TO_ANGSTROM: float = 0.529177210903

_UNITS: Dict[str, float] = {
    "ang": 1.0,
    "bohr": BOHR_TO_ANGSTROM,
    "a0": BOHR_TO_ANGSTROM,
    "nm": 10.0,
}

_BLOCK = re.compile(r"^%block\s+(\w+)", re.IGNORECASE)
_ENDBLOCK = re.compile(r"^%endblock\b", re.IGNORECASE)


def _strip_comment(line: str) -> str:
    for marker in ("#", "!"):
        line = line.split(marker, 1)[0]
    return line.strip()


def _read_blocks(text: str) -> Dict[str, List[str]]:
    """Content lines of every ``%BLOCK``, keyed by the upper-case block name."""
    blocks: Dict[str, List[str]] = {}
    current: Optional[str] = None
    for raw in text.splitlines():
        line = _strip_comment(raw)
        if not line:
            continue
        if _ENDBLOCK.match(line):
            current = None
            continue
        opened = _BLOCK.match(line)
        if opened is not None:
            current = opened.group(1).upper()
            blocks.setdefault(current, [])
            continue
        if current is not None:
            blocks[current].append(line)
    return blocks


def _split_units(lines: List[str]) -> Tuple[float, List[str]]:
    if lines and lines[0].split()[0].lower() in _UNITS and len(lines[0].split()) == 1:
        return _UNITS[lines[0].split()[0].lower()], lines[1:]
    return 1.0, lines


def _numbers(lines: List[str], name: str, block: str) -> List[List[float]]:
    rows = []
    for line in lines:
        try:
            rows.append([float(token) for token in line.split()])
        except ValueError as err:
            raise ParseError("cell", name, f"bad number in {block}: {line}") from err
    return rows


def _lattice(blocks: Dict[str, List[str]], name: str) -> np.ndarray:
    if "LATTICE_CART" in blocks:
        scale, lines = _split_units(blocks["LATTICE_CART"])
        rows = [row[:3] for row in _numbers(lines, name, "LATTICE_CART") if len(row) >= 3]
        if len(rows) < 3:
            raise ParseError("cell", name, "Incomplete LATTICE_CART block")
        return np.array(rows[:3], dtype=np.float64) * scale
    if "LATTICE_ABC" in blocks:
        scale, lines = _split_units(blocks["LATTICE_ABC"])
        params = [value for row in _numbers(lines, name, "LATTICE_ABC") for value in row]
        if len(params) < 6:
            raise ParseError(
                "cell", name, "Incomplete LATTICE_ABC block (need a b c alpha beta gamma)"
            )
        a, b, c = (scale * value for value in params[:3])
        return np.asarray(build_cell_vectors(a, b, c, *params[3:6]))
    raise ParseError("cell", name, "Missing LATTICE_CART or LATTICE_ABC block")


def _sites(lines: List[str], name: str, block: str) -> List[Tuple[str, List[float]]]:
    sites = []
    for line in lines:
        parts = line.split()
        if len(parts) < 4:
            raise ParseError(
                "cell", name, f"site needs an element and three coordinates: {line}"
            )
        try:
            position = [float(token) for token in parts[1:4]]
        except ValueError as err:
            raise ParseError("cell", name, f"bad coordinates in {block}: {line}") from err
        sites.append((parts[0], position))
    return sites


@beartype
def parse_cell_text(text: str, default_name: str = "unknown") -> CrystalStructure:
    """Parse the content of a CASTEP ``.cell`` file.

    Parameters
    ----------
    text : str
        File content.
    default_name : str, optional
        Structure name; ``.cell`` files carry none. Default: "unknown"

    Returns
    -------
    crystal : CrystalStructure
        Structure with fractional positions and ``source_format`` metadata
        ``"cell"``. Lengths in Bohr or nm are converted to Å.

    Raises
    ------
    ParseError
        If the lattice block is missing or incomplete, there is no position
        block, or a site is malformed.
    DegenerateLatticeError
        If absolute positions must be converted with a flat cell.

    Flow
    ----
    - Collect the content of every block, dropping comments
    - Build the lattice from LATTICE_CART or LATTICE_ABC
    - Read POSITIONS_FRAC, or POSITIONS_ABS converted to fractions
    """
    blocks = _read_blocks(text)
    lattice = _lattice(blocks, default_name)
    if "POSITIONS_FRAC" in blocks:
        sites = _sites(blocks["POSITIONS_FRAC"], default_name, "POSITIONS_FRAC")
        frac = np.array([position for _, position in sites], dtype=np.float64)
    elif "POSITIONS_ABS" in blocks:
        scale, lines = _split_units(blocks["POSITIONS_ABS"])
        sites = _sites(lines, default_name, "POSITIONS_ABS")
        if abs(float(np.linalg.det(lattice))) < LATTICE_EPSILON:
            raise DegenerateLatticeError(f"{default_name}: lattice is degenerate")
        cartesian = np.array([position for _, position in sites], dtype=np.float64) * scale
        frac = cartesian.reshape(-1, 3) @ np.linalg.inv(lattice)
    else:
        raise ParseError("cell", default_name, "Missing POSITIONS_FRAC or POSITIONS_ABS block")
    if not sites:
        raise ParseError("cell", default_name, "position block has no sites")
    atoms = [
        Atom(element, tuple(float(x) for x in row))
        for (element, _), row in zip(sites, frac)
    ]
    return create_crystal_structure(
        lattice, atoms, name=default_name, metadata={"source_format": "cell"}
    )


@beartype
def parse_cell(path: Union[str, Path]) -> CrystalStructure:
    """Read a ``.cell`` file; the stem, without a ``-out`` suffix, names it."""
    path = Path(path)
    name = path.stem[: -len("-out")] if path.stem.endswith("-out") else path.stem
    return parse_cell_text(read_text(path), default_name=name)


@beartype
def to_cell_string(crystal: CrystalStructure) -> str:
    """Render a structure as ``LATTICE_CART`` and ``POSITIONS_FRAC`` blocks."""
    lines = ["%BLOCK LATTICE_CART", "ang"]
    for row in np.asarray(crystal.lattice):
        lines.append(" ".join(f"{value:16.10f}" for value in row))
    lines.extend(["%ENDBLOCK LATTICE_CART", "", "%BLOCK POSITIONS_FRAC"])
    for element, (x, y, z) in zip(crystal.elements, np.asarray(crystal.frac_positions)):
        lines.append(f"{element:<4s} {x:16.10f} {y:16.10f} {z:16.10f}")
    lines.append("%ENDBLOCK POSITIONS_FRAC")
    return "\n".join(lines) + "\n"
