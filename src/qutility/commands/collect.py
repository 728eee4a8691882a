"""Collection of finished DFT calculations into one ``.res`` file.

Routine Listings
----------------
collect_batch : function
    Merge the relaxed structures of finished VASP or CASTEP runs
"""

import logging
from pathlib import Path

from beartype import beartype
from beartype.typing import List, Optional, Union

from qutility.batch import check_input_root, check_output_root, resolve_concurrency, run_batch
from qutility.errors import InputError, PreconditionError
from qutility.inout import (
    atomic_write_text,
    find_calculation_output,
    parse_calculation,
    parse_structure,
    to_res_string,
)
from qutility.types import (
    DFT_CODES,
    SKIPPED,
    BatchOutcome,
    CalculationResult,
    CrystalStructure,
)

from .common import log_summary, progress_bar

_log = logging.getLogger(__name__)


def _with_results(
    crystal: CrystalStructure, result: CalculationResult
) -> CrystalStructure:
    """Rename the structure after its calculation and attach the energies."""
    meta = dict(crystal.metadata)
    for key, value in (
        ("enthalpy", result.best_enthalpy),
        ("energy", result.energy),
        ("pressure", result.pressure),
    ):
        if value is not None:
            meta[key] = value
    return crystal._replace(name=result.name, metadata=tuple(sorted(meta.items())))


@beartype
def collect_batch(
    dft_root: Union[str, Path],
    code: str,
    output_path: Union[str, Path] = "all_structures.res",
    concurrency: Optional[int] = None,
    show_progress: bool = False,
) -> List[BatchOutcome]:
    """Gather the final structures of finished calculations into one file.

    Parameters
    ----------
    dft_root : Union[str, Path]
        Directory holding one subdirectory per calculation.
    code : str
        ``vasp`` or ``castep``.
    output_path : Union[str, Path], optional
        Concatenated ``.res`` file to write. Default: "all_structures.res"
    concurrency : int, optional
        Worker threads; None means the CPU count.
    show_progress : bool, optional
        Render a tqdm progress bar. Default: False

    Returns
    -------
    outcomes : List[BatchOutcome]
        One per calculation directory, in sorted order. The value is the
        ``.res`` text of the structure, or `SKIPPED` for a run that has not
        finished.

    Raises
    ------
    PreconditionError
        If the code or concurrency is invalid, the root is not a readable
        directory, or the output directory cannot be written. Nothing is
        dispatched in that case.

    Flow
    ----
    - Validate the code and the worker count, check both locations
    - Per directory: find the output, skip unfinished runs, read the
      relaxed structure and render it as ``.res`` named after the directory
    - Write the collected blocks, in directory order, in one atomic write

    Notes
    -----
    A directory without an output file or without a structure file is a
    per-item `InputError`. When no calculation has finished nothing is
    written.
    """
    key = code.strip().lower()
    if key not in DFT_CODES:
        raise PreconditionError(
            f"Unsupported DFT code '{code}'; expected one of {', '.join(DFT_CODES)}"
        )
    jobs = resolve_concurrency(concurrency)
    root = check_input_root(dft_root)
    if not root.is_dir():
        raise PreconditionError(f"calculation root is not a directory: {root}")
    output_path = Path(output_path)
    check_output_root(output_path.parent)
    directories = sorted(path for path in root.iterdir() if path.is_dir())
    _log.info("scanning %d calculation directories under %s", len(directories), root)

    def collect_one(directory: Path):
        result = parse_calculation(find_calculation_output(directory, key), directory.name)
        if not result.finished:
            return SKIPPED
        if result.structure_file is None:
            raise InputError(f"no final structure beside {key.upper()} output in {directory}")
        crystal = parse_structure(result.structure_file)
        return to_res_string(_with_results(crystal, result))

    with progress_bar(len(directories), "Collecting", show_progress) as advance:
        outcomes = run_batch(directories, collect_one, jobs, progress=advance)
    log_summary(outcomes, f"collect {key}")

    blocks = [outcome.value for outcome in outcomes if outcome.ok and not outcome.skipped]
    if blocks:
        atomic_write_text(output_path, "".join(blocks))
        _log.info("collected %d structures into %s", len(blocks), output_path)
    else:
        _log.warning("no finished calculations found under %s", root)
    return outcomes
