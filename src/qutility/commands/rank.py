"""Ranking of finished calculations by enthalpy.

Extended Summary
----------------
Structure files (``.res``, ``.cell``, POSCAR) contribute the enthalpy stored
in their metadata. VASP ``OUTCAR`` and CASTEP ``.castep`` outputs contribute
the final enthalpy of the run; unfinished runs are skipped.

Routine Listings
----------------
RANK_COLUMNS : tuple
    Columns of the ranking table
rank_batch : function
    Parse result files in parallel and rank them by enthalpy per atom
"""

import logging
from pathlib import Path

import pandas as pd
from beartype import beartype
from beartype.typing import Optional, Tuple, Union

from qutility.batch import resolve_concurrency, run_batch
from qutility.inout import detect_calculation_code, parse_calculation, parse_structure
from qutility.types import SKIPPED, CalculationResult, CrystalStructure

from .common import log_summary, prepare_inputs, progress_bar

_log = logging.getLogger(__name__)

RANK_COLUMNS: Tuple[str, ...] = (
    "name",
    "formula",
    "n_atoms",
    "pressure",
    "volume_per_atom",
    "enthalpy_per_atom",
    "relative_enthalpy_mev",
    "space_group",
    "source",
)


def _row(crystal: CrystalStructure, source: str) -> dict:
    pressure = crystal.meta("pressure")
    return {
        "name": crystal.name,
        "formula": crystal.formula(),
        "n_atoms": crystal.n_atoms,
        "pressure": None if pressure is None else float(pressure),
        "volume_per_atom": crystal.volume_per_atom(),
        "enthalpy_per_atom": crystal.enthalpy_per_atom(),
        "space_group": crystal.meta("space_group"),
        "source": source,
    }


def _calculation_row(result: CalculationResult, source: str) -> dict:
    crystal = None
    if result.structure_file is not None:
        crystal = parse_structure(result.structure_file)
    n_atoms = result.n_atoms or (crystal.n_atoms if crystal is not None else None)
    result = result._replace(n_atoms=n_atoms)
    return {
        "name": result.name,
        "formula": crystal.formula() if crystal is not None else None,
        "n_atoms": n_atoms,
        "pressure": result.pressure,
        "volume_per_atom": (
            result.volume / n_atoms if result.volume is not None and n_atoms else None
        ),
        "enthalpy_per_atom": result.enthalpy_per_atom(),
        "space_group": None,
        "source": source,
    }


def _read_row(path: Path):
    if detect_calculation_code(path) is None:
        return _row(parse_structure(path), str(path))
    result = parse_calculation(path)
    if not result.finished:
        _log.info("%s: calculation has not finished", path)
        return SKIPPED
    return _calculation_row(result, str(path))


@beartype
def rank_batch(
    input_root: Union[str, Path],
    pattern: str = "*.res",
    recursive: bool = False,
    concurrency: Optional[int] = None,
    show_progress: bool = False,
) -> pd.DataFrame:
    """Rank structures by enthalpy per atom.

    Parameters
    ----------
    input_root : Union[str, Path]
        A result file or a directory of them.
    pattern : str, optional
        Comma-separated file name globs. Default: "*.res". Use
        ``"OUTCAR,*.castep"`` with ``recursive=True`` to rank a tree of
        calculation directories.
    recursive : bool, optional
        Search subdirectories. Default: False
    concurrency : int, optional
        Worker threads; None means the CPU count.
    show_progress : bool, optional
        Render a tqdm progress bar. Default: False

    Returns
    -------
    table : pd.DataFrame
        One row per parsed file with the columns of `RANK_COLUMNS`, sorted
        by ascending enthalpy per atom. ``relative_enthalpy_mev`` is the
        enthalpy above the lowest, in meV/atom. Rows without an enthalpy come
        last. Files that fail to parse and unfinished calculations are
        logged and left out. A VASP row is named after the directory of its
        OUTCAR, a CASTEP row after its seed.

    Raises
    ------
    PreconditionError
        If the input root is inaccessible or concurrency is invalid.
    """
    jobs = resolve_concurrency(concurrency)
    files = prepare_inputs(input_root, None, pattern, recursive)

    with progress_bar(len(files), "Ranking", show_progress) as advance:
        outcomes = run_batch(files, _read_row, jobs, progress=advance)
    log_summary(outcomes, "rank")

    rows = [outcome.value for outcome in outcomes if outcome.ok and not outcome.skipped]
    table = pd.DataFrame(rows, columns=[c for c in RANK_COLUMNS if c != "relative_enthalpy_mev"])
    enthalpy = pd.to_numeric(table["enthalpy_per_atom"], errors="coerce")
    table["enthalpy_per_atom"] = enthalpy
    table["relative_enthalpy_mev"] = (enthalpy - enthalpy.min()) * 1000.0
    table = table.sort_values(
        ["enthalpy_per_atom", "name"], na_position="last", kind="mergesort"
    ).reset_index(drop=True)
    return table[list(RANK_COLUMNS)]
