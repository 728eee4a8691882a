"""Pieces shared by the batch commands.

Routine Listings
----------------
progress_bar : function
    Context manager yielding a progress callback backed by tqdm
prepare_inputs : function
    Check the roots and collect the input files of a batch
log_summary : function
    Log the counts of a finished batch
"""

import logging
from contextlib import contextmanager
from pathlib import Path

from beartype import beartype
from beartype.typing import Callable, Iterator, List, Optional, Sequence, Union
from tqdm import tqdm

from qutility.batch import check_input_root, check_output_root, collect_files
from qutility.types import BatchOutcome, BatchSummary, summarize

_log = logging.getLogger(__name__)


@contextmanager
def progress_bar(
    total: int, desc: str, enabled: bool = True
) -> Iterator[Callable[[int], None]]:
    """Yield a ``progress(done)`` callback that advances a tqdm bar."""
    with tqdm(total=total, desc=desc, unit="file", disable=not enabled) as bar:

        def advance(done: int) -> None:
            if done > bar.n:
                bar.update(done - bar.n)

        yield advance


@beartype
def prepare_inputs(
    input_root: Union[str, Path],
    output_root: Optional[Union[str, Path]],
    pattern: str,
    recursive: bool,
) -> List[Path]:
    """Run the precondition checks, then collect the input files.

    Files inside a distinct output root are left out, so earlier results
    written under the input root are not read back as inputs.

    Raises
    ------
    PreconditionError
        If the input root is missing or unreadable, or the output root
        cannot be created or written.
    """
    root = check_input_root(input_root)
    files = collect_files(root, pattern, recursive)
    if output_root is not None:
        out_dir = check_output_root(output_root).resolve()
        if out_dir != root.resolve():
            files = [path for path in files if out_dir not in path.resolve().parents]
    if files:
        _log.info("found %d file(s) matching '%s' under %s", len(files), pattern, root)
    else:
        _log.warning("no files matched '%s' under %s", pattern, root)
    return files


@beartype
def log_summary(outcomes: Sequence[BatchOutcome], action: str) -> BatchSummary:
    summary = summarize(outcomes)
    _log.info(
        "%s: %d succeeded, %d skipped, %d failed (of %d)",
        action,
        summary.succeeded,
        summary.skipped,
        summary.failed,
        summary.total,
    )
    for failure in summary.failures:
        _log.warning("%s", failure)
    return summary
