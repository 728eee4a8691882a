"""Batch conversion between structure formats.

Routine Listings
----------------
convert_batch : function
    Convert every matching structure file under a root
"""

import logging
from pathlib import Path

from beartype import beartype
from beartype.typing import List, Optional, Union

from qutility.batch import resolve_concurrency, run_batch
from qutility.errors import PreconditionError, UnsupportedFormatError
from qutility.inout import output_name, parse_structure, write_structure
from qutility.types import SKIPPED, BatchOutcome

from .common import log_summary, prepare_inputs, progress_bar

_log = logging.getLogger(__name__)


@beartype
def convert_batch(
    input_root: Union[str, Path],
    output_root: Union[str, Path],
    target: str,
    pattern: str = "*.res",
    recursive: bool = False,
    concurrency: Optional[int] = None,
    overwrite: bool = False,
    show_progress: bool = False,
) -> List[BatchOutcome]:
    """Convert structure files to another format.

    Parameters
    ----------
    input_root : Union[str, Path]
        A structure file or a directory of them.
    output_root : Union[str, Path]
        Directory receiving the converted files; created if needed.
    target : str
        ``res``, ``poscar`` (alias ``vasp``), ``cell``, ``cif``, ``xtl`` or
        ``xyz``.
    pattern : str, optional
        Comma-separated file name globs. Default: "*.res"
    recursive : bool, optional
        Search subdirectories. Default: False
    concurrency : int, optional
        Worker threads; None means the CPU count.
    overwrite : bool, optional
        Replace existing outputs instead of skipping them. Default: False
    show_progress : bool, optional
        Render a tqdm progress bar. Default: False

    Returns
    -------
    outcomes : List[BatchOutcome]
        One per input file, in sorted file order. The value is the written
        path, or `SKIPPED` when the output already existed.

    Raises
    ------
    PreconditionError
        If the target format or concurrency is invalid, or either root is
        inaccessible. Nothing is dispatched in that case.

    Flow
    ----
    - Validate the target and the worker count
    - Check both roots and collect the inputs
    - Per file: skip if the output exists, else parse then write atomically
    - Log the summary
    """
    try:
        output_name("structure", target)
    except UnsupportedFormatError as err:
        raise PreconditionError(str(err)) from err
    jobs = resolve_concurrency(concurrency)
    files = prepare_inputs(input_root, output_root, pattern, recursive)
    out_dir = Path(output_root)

    def convert_one(path: Path):
        destination = out_dir / output_name(path, target)
        if destination.exists() and not overwrite:
            return SKIPPED
        crystal = parse_structure(path)
        return write_structure(crystal, destination, target)

    with progress_bar(len(files), f"Converting to {target}", show_progress) as advance:
        outcomes = run_batch(files, convert_one, jobs, progress=advance)
    log_summary(outcomes, f"convert to {target}")
    return outcomes
