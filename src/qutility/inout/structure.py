"""Format detection, dispatch and atomic persistence of structures.

Routine Listings
----------------
STRUCTURE_FORMATS : tuple
    Writable structure formats
detect_format : function
    Input format of a path from its extension or file name
parse_structure : function
    Read any supported structure file
render_structure : function
    Structure text in a target format
output_name : function
    File name a conversion writes for an input path
write_structure : function
    Write a structure atomically in a target format
"""

from pathlib import Path

from beartype import beartype
from beartype.typing import Callable, Dict, Tuple, Union

from qutility.errors import UnsupportedFormatError
from qutility.types import CrystalStructure

from .cell import parse_cell, to_cell_string
from .cif import to_cif_string, to_xtl_string
from .files import atomic_write_text
from .poscar import parse_poscar, to_poscar_string
from .res import parse_res, to_res_string
from .xyz import to_xyz_string

STRUCTURE_FORMATS: Tuple[str, ...] = ("res", "poscar", "cell", "cif", "xtl", "xyz")

_READERS: Dict[str, Callable[[Path], CrystalStructure]] = {
    "res": parse_res,
    "poscar": parse_poscar,
    "cell": parse_cell,
}

_WRITERS: Dict[str, Callable[[CrystalStructure], str]] = {
    "res": to_res_string,
    "poscar": to_poscar_string,
    "cell": to_cell_string,
    "cif": to_cif_string,
    "xtl": to_xtl_string,
    "xyz": to_xyz_string,
}

_FORMAT_ALIASES = {"vasp": "poscar", "contcar": "poscar", "extxyz": "xyz"}


def _normalize_format(fmt: str) -> str:
    key = fmt.strip().lower().lstrip(".")
    key = _FORMAT_ALIASES.get(key, key)
    if key not in _WRITERS:
        raise UnsupportedFormatError(
            f"Unsupported output format '{fmt}'; expected one of {', '.join(STRUCTURE_FORMATS)}"
        )
    return key


@beartype
def detect_format(path: Union[str, Path]) -> str:
    """Return ``"res"``, ``"cell"`` or ``"poscar"`` for a structure path.

    ``*.res`` files are AIRSS results and ``*.cell`` files CASTEP cells;
    ``*.vasp`` files and names starting with ``POSCAR`` or ``CONTCAR`` are
    VASP structures.

    Raises
    ------
    UnsupportedFormatError
        For any other file.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".res":
        return "res"
    if suffix == ".cell":
        return "cell"
    if suffix == ".vasp" or path.name.startswith(("POSCAR", "CONTCAR")):
        return "poscar"
    raise UnsupportedFormatError(f"Cannot determine format for: {path}")


@beartype
def parse_structure(path: Union[str, Path]) -> CrystalStructure:
    """Read a ``.res``, ``.cell``, ``.vasp``, ``POSCAR*`` or ``CONTCAR*`` file."""
    path = Path(path)
    return _READERS[detect_format(path)](path)


@beartype
def render_structure(crystal: CrystalStructure, fmt: str) -> str:
    return _WRITERS[_normalize_format(fmt)](crystal)


@beartype
def output_name(source: Union[str, Path], fmt: str) -> str:
    """``NaCl.res`` -> ``NaCl.xyz``, ``NaCl.res`` -> ``POSCAR_NaCl`` for VASP."""
    stem = Path(source).stem or "structure"
    key = _normalize_format(fmt)
    if key == "poscar":
        return f"POSCAR_{stem}"
    return f"{stem}.{key}"


@beartype
def write_structure(
    crystal: CrystalStructure, path: Union[str, Path], fmt: str
) -> Path:
    """Write a structure to ``path`` in ``fmt`` through an atomic rename.

    Raises
    ------
    UnsupportedFormatError
        If the format is not one of `STRUCTURE_FORMATS` or an alias.
    """
    return atomic_write_text(path, render_structure(crystal, fmt))
