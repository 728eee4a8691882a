"""Output files of finished VASP and CASTEP calculations.

Extended Summary
----------------
Both readers scan the output line by line and keep the last value printed
for each quantity, which is the converged one for a relaxation. A run
counts as finished when the code printed its closing timing report:

* VASP ``OUTCAR``: ``General timing and accounting informations for this
  job``; the structure is the non-empty ``CONTCAR`` beside it, else
  ``POSCAR``.
* CASTEP ``<seed>.castep``: ``Total time``; the structure is
  ``<seed>-out.cell``, else ``<seed>.cell``.

Routine Listings
----------------
parse_outcar_text : function
    Read the results of a VASP run from OUTCAR content
parse_outcar : function
    Read an OUTCAR file and locate its structure
parse_castep_text : function
    Read the results of a CASTEP run from ``.castep`` content
parse_castep : function
    Read a ``.castep`` file and locate its structure
detect_calculation_code : function
    ``"vasp"`` or ``"castep"`` for an output path
parse_calculation : function
    Read any supported calculation output
find_calculation_output : function
    Output file of the calculation held in a directory
"""

import re
from pathlib import Path

from beartype import beartype
from beartype.typing import Callable, Dict, Iterable, Optional, Pattern, Union

from qutility.errors import InputError, UnsupportedFormatError
from qutility.types import DFT_CODES, CalculationResult

from .files import read_text

KBAR_PER_GPA: float = 10.0

_NUMBER = r"([-+]?(?:\d+\.?\d*|\.\d+)(?:[eEdD][-+]?\d+)?)"

_VASP_DONE = "General timing and accounting informations for this job"
_VASP_PATTERNS: Dict[str, Pattern] = {
    "enthalpy": re.compile(r"enthalpy is\s+TOTEN\s*=\s*" + _NUMBER),
    "energy": re.compile(r"energy\(sigma->0\)\s*=\s*" + _NUMBER),
    "volume": re.compile(r"volume of cell\s*:\s*" + _NUMBER),
    "n_atoms": re.compile(r"NIONS\s*=\s*(\d+)"),
    "pressure": re.compile(r"Pullay stress\s*=\s*" + _NUMBER + r"\s*kB"),
}

_CASTEP_DONE = "Total time"
_CASTEP_PATTERNS: Dict[str, Pattern] = {
    "enthalpy": re.compile(r"Final Enthalpy\s*=\s*" + _NUMBER),
    "energy": re.compile(r"Final energy(?:, E)?\s*=\s*" + _NUMBER),
    "volume": re.compile(r"Current cell volume\s*=\s*" + _NUMBER),
    "n_atoms": re.compile(r"Total number of ions in cell\s*=\s*(\d+)"),
    "pressure": re.compile(r"Pressure:\s*" + _NUMBER + r"\s*GPa"),
}


def _to_float(token: str) -> float:
    return float(token.replace("D", "E").replace("d", "e"))


def _scan(lines: Iterable[str], done_marker: str, patterns: Dict[str, Pattern]) -> Dict:
    """Last match of every pattern, plus the completion flag."""
    found: Dict[str, Union[bool, float, int]] = {"finished": False}
    for line in lines:
        if done_marker in line:
            found["finished"] = True
        for key, pattern in patterns.items():
            match = pattern.search(line)
            if match is None:
                continue
            found[key] = int(match.group(1)) if key == "n_atoms" else _to_float(match.group(1))
    return found


@beartype
def parse_outcar_text(text: str, name: str = "OUTCAR") -> CalculationResult:
    """Read a VASP run from OUTCAR content.

    The enthalpy is the ``enthalpy is TOTEN`` line VASP prints at constant
    pressure, the energy is ``energy(sigma->0)``, and the pressure is the
    Pullay stress, converted from kB to GPa.
    """
    found = _scan(text.splitlines(), _VASP_DONE, _VASP_PATTERNS)
    if "pressure" in found:
        found["pressure"] = found["pressure"] / KBAR_PER_GPA
    return CalculationResult(name=name, code="vasp", **found)


@beartype
def parse_castep_text(text: str, name: str = "castep") -> CalculationResult:
    """Read a CASTEP run from ``.castep`` content.

    The enthalpy is the last ``Final Enthalpy`` line of a geometry
    optimisation and the energy the last ``Final energy`` line.
    """
    found = _scan(text.splitlines(), _CASTEP_DONE, _CASTEP_PATTERNS)
    return CalculationResult(name=name, code="castep", **found)


def _first_existing(*candidates: Path) -> Optional[Path]:
    for candidate in candidates:
        if candidate.is_file() and candidate.stat().st_size > 0:
            return candidate
    return None


@beartype
def parse_outcar(path: Union[str, Path], name: Optional[str] = None) -> CalculationResult:
    """Read an OUTCAR; the enclosing directory names the structure by default."""
    path = Path(path)
    result = parse_outcar_text(read_text(path), name or path.resolve().parent.name)
    return result._replace(
        structure_file=_first_existing(path.parent / "CONTCAR", path.parent / "POSCAR")
    )


@beartype
def parse_castep(path: Union[str, Path], name: Optional[str] = None) -> CalculationResult:
    """Read a ``<seed>.castep`` file; the seed names the structure by default."""
    path = Path(path)
    result = parse_castep_text(read_text(path), name or path.stem)
    return result._replace(
        structure_file=_first_existing(
            path.parent / f"{path.stem}-out.cell", path.parent / f"{path.stem}.cell"
        )
    )


_PARSERS: Dict[str, Callable[..., CalculationResult]] = {
    "vasp": parse_outcar,
    "castep": parse_castep,
}


@beartype
def detect_calculation_code(path: Union[str, Path]) -> Optional[str]:
    """``"vasp"`` for ``OUTCAR*``, ``"castep"`` for ``*.castep``, else None."""
    path = Path(path)
    if path.name.startswith("OUTCAR"):
        return "vasp"
    if path.suffix.lower() == ".castep":
        return "castep"
    return None


@beartype
def parse_calculation(path: Union[str, Path], name: Optional[str] = None) -> CalculationResult:
    """Read an OUTCAR or ``.castep`` file.

    Raises
    ------
    UnsupportedFormatError
        If the path is neither.
    InputError
        If the file cannot be read.
    """
    code = detect_calculation_code(path)
    if code is None:
        raise UnsupportedFormatError(f"Not a VASP or CASTEP output: {path}")
    return _PARSERS[code](path, name)


@beartype
def find_calculation_output(directory: Union[str, Path], code: str) -> Path:
    """Output file of the calculation in ``directory``.

    VASP runs write ``OUTCAR``. CASTEP runs write ``<seed>.castep``; the
    seed is taken to be the directory name, falling back to the only
    ``.castep`` file present.

    Raises
    ------
    UnsupportedFormatError
        If ``code`` is not one of `DFT_CODES`.
    InputError
        If the directory holds no such output.
    """
    directory = Path(directory)
    key = code.strip().lower()
    if key not in DFT_CODES:
        raise UnsupportedFormatError(
            f"Unsupported DFT code '{code}'; expected one of {', '.join(DFT_CODES)}"
        )
    if key == "vasp":
        outcar = directory / "OUTCAR"
        if outcar.is_file():
            return outcar
    else:
        seed = directory / f"{directory.name}.castep"
        if seed.is_file():
            return seed
        outputs = sorted(directory.glob("*.castep"))
        if len(outputs) == 1:
            return outputs[0]
    raise InputError(f"no {key.upper()} output in {directory}")
