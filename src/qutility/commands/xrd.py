"""Batch powder diffraction.

Routine Listings
----------------
xrd_batch : function
    Compute and export the pattern of every matching structure file
"""

import logging
from pathlib import Path

from beartype import beartype
from beartype.typing import List, Union

from qutility.batch import run_batch
from qutility.config import XRDConfig
from qutility.errors import PreconditionError
from qutility.inout import PATTERN_FORMATS, parse_structure, write_pattern
from qutility.types import SKIPPED, BatchOutcome
from qutility.xrd import compute_pattern

from .common import log_summary, prepare_inputs, progress_bar

_log = logging.getLogger(__name__)

_OUTPUT_SUFFIXES = tuple(f"_xrd.{fmt}" for fmt in PATTERN_FORMATS)


@beartype
def xrd_batch(
    input_root: Union[str, Path],
    output_root: Union[str, Path],
    config: XRDConfig,
    pattern: str = "*",
    recursive: bool = False,
    overwrite: bool = False,
    fmt: str = "csv",
    show_progress: bool = False,
) -> List[BatchOutcome]:
    """Compute diffraction patterns for a set of structure files.

    Parameters
    ----------
    input_root : Union[str, Path]
        A structure file or a directory of them.
    output_root : Union[str, Path]
        Directory receiving ``<stem>_xrd.<fmt>`` files; created if needed.
    config : XRDConfig
        Validated settings, see `qutility.config.create_xrd_config`.
    pattern : str, optional
        Comma-separated file name globs. Default: "*". Earlier
        ``*_xrd.<fmt>`` outputs never count as inputs.
    recursive : bool, optional
        Search subdirectories. Default: False
    overwrite : bool, optional
        Replace existing outputs instead of skipping them. Default: False
    fmt : str, optional
        ``csv`` or ``xy``. Default: "csv"
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
        If the output format or concurrency is invalid, or either root is
        inaccessible. Nothing is dispatched in that case.

    Notes
    -----
    Without broadening the merged stick peaks are exported (angle, d
    spacing, intensity, hkl, multiplicity); with broadening the profile on
    the 2θ grid is exported.
    """
    key = fmt.strip().lower()
    if key not in PATTERN_FORMATS:
        raise PreconditionError(
            f"Unsupported pattern format '{fmt}'; expected one of {', '.join(PATTERN_FORMATS)}"
        )
    if config.concurrency < 1:
        raise PreconditionError(f"concurrency must be positive, got {config.concurrency}")
    files = [
        path
        for path in prepare_inputs(input_root, output_root, pattern, recursive)
        if not path.name.endswith(_OUTPUT_SUFFIXES)
    ]
    out_dir = Path(output_root)
    sticks = not config.broadening.enabled

    def diffract_one(path: Path):
        destination = out_dir / f"{path.stem}_xrd.{key}"
        if destination.exists() and not overwrite:
            return SKIPPED
        crystal = parse_structure(path)
        result = compute_pattern(
            crystal,
            config.wavelength,
            config.max_two_theta,
            config.broadening,
            step=config.step,
            merge_tolerance=config.merge_tolerance,
        )
        _log.debug("%s: %d peaks", path.name, result.n_peaks)
        return write_pattern(result, destination, key, peaks=sticks)

    with progress_bar(len(files), "Computing XRD", show_progress) as advance:
        outcomes = run_batch(files, diffract_one, config.concurrency, progress=advance)
    log_summary(outcomes, "xrd")
    return outcomes
