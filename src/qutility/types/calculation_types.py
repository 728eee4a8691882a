"""Results extracted from finished DFT calculations.

Routine Listings
----------------
DFT_CODES : tuple
    Supported electronic-structure codes
CalculationResult : NamedTuple
    Completion flag, energies and cell data read from a VASP or CASTEP run
"""

from pathlib import Path

from beartype.typing import NamedTuple, Optional, Tuple

DFT_CODES: Tuple[str, ...] = ("vasp", "castep")


class CalculationResult(NamedTuple):
    """Summary of one VASP or CASTEP run.

    Attributes
    ----------
    name : str
        Structure name, usually the calculation directory or seed name.
    code : str
        ``"vasp"`` or ``"castep"``.
    finished : bool
        Whether the output carries the end-of-run timing report.
    enthalpy : float, optional
        Final enthalpy in eV, when the run was at constant pressure.
    energy : float, optional
        Final total energy in eV.
    pressure : float, optional
        Target pressure in GPa.
    volume : float, optional
        Final cell volume in Å³.
    n_atoms : int, optional
        Number of ions in the cell.
    structure_file : Path, optional
        Relaxed (or input) structure next to the output file.
    """

    name: str
    code: str
    finished: bool = False
    enthalpy: Optional[float] = None
    energy: Optional[float] = None
    pressure: Optional[float] = None
    volume: Optional[float] = None
    n_atoms: Optional[int] = None
    structure_file: Optional[Path] = None

    @property
    def best_enthalpy(self) -> Optional[float]:
        """The enthalpy; at zero or unknown pressure the energy stands in for it."""
        if self.enthalpy is not None:
            return self.enthalpy
        if not self.pressure:
            return self.energy
        return None

    def enthalpy_per_atom(self) -> Optional[float]:
        enthalpy = self.best_enthalpy
        if enthalpy is None or not self.n_atoms:
            return None
        return enthalpy / self.n_atoms
