"""Bounded-concurrency execution of one job per input item.

Extended Summary
----------------
`run_batch` applies a worker function to every item of a sequence and
returns one `BatchOutcome` per item, in input order. A failing item is
recorded and never aborts its siblings. Work runs on a thread pool whose
submission queue is bounded, so a large directory never materialises more
than ``2 × concurrency`` pending jobs.

Routine Listings
----------------
run_batch : function
    Run a worker over items and collect ordered outcomes
resolve_concurrency : function
    Validate a worker count, defaulting to the CPU count
"""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor

from beartype import beartype
from beartype.typing import Any, Callable, List, Optional, Sequence, TypeVar

from qutility.errors import PreconditionError, QutilityError
from qutility.types import BatchOutcome, FailureInfo

_log = logging.getLogger(__name__)

T = TypeVar("T")

ProgressCallback = Callable[[int], Any]


class _ProgressCounter:
    """Completed-item counter shared by the workers."""

    def __init__(self, callback: Optional[ProgressCallback]) -> None:
        self._callback = callback
        self._lock = threading.Lock()
        self._done = 0

    def tick(self) -> None:
        with self._lock:
            self._done += 1
            done = self._done
        if self._callback is None:
            return
        try:
            self._callback(done)
        except Exception:
            _log.exception("progress callback failed at item %d", done)

    @property
    def done(self) -> int:
        return self._done


@beartype
def resolve_concurrency(concurrency: Optional[int]) -> int:
    """Worker count for a batch; None means the number of CPUs.

    Raises
    ------
    PreconditionError
        If the count is below 1.
    """
    jobs = (os.cpu_count() or 1) if concurrency is None else concurrency
    if jobs < 1:
        raise PreconditionError(f"concurrency must be a positive integer, got {jobs}")
    return jobs


def _execute(index: int, item: Any, worker_fn: Callable[[Any], Any]) -> BatchOutcome:
    source = str(item)
    try:
        value = worker_fn(item)
    except PreconditionError:
        raise
    except QutilityError as err:
        _log.warning("%s: %s", source, err)
        return BatchOutcome(index, source, error=FailureInfo(source, err.kind, str(err)))
    except (OSError, UnicodeDecodeError) as err:
        _log.warning("%s: %s", source, err)
        return BatchOutcome(index, source, error=FailureInfo(source, "InputError", str(err)))
    except Exception as err:
        _log.exception("unexpected failure while processing %s", source)
        return BatchOutcome(
            index, source, error=FailureInfo(source, type(err).__name__, str(err))
        )
    return BatchOutcome(index, source, value=value)


@beartype
def run_batch(
    items: Sequence[T],
    worker_fn: Callable[[T], Any],
    concurrency: Optional[int] = None,
    progress: Optional[ProgressCallback] = None,
) -> List[BatchOutcome]:
    """Apply ``worker_fn`` to every item and collect the outcomes in order.

    Parameters
    ----------
    items : Sequence[T]
        Inputs, typically file paths. ``str(item)`` labels each outcome.
    worker_fn : Callable[[T], Any]
        Processes one item. Its return value becomes the outcome value; any
        exception becomes a recorded failure.
    concurrency : int, optional
        Worker threads; None means ``os.cpu_count()``. With 1 the items run
        sequentially in the calling thread.
    progress : Callable[[int], Any], optional
        Called once per finished item with the number finished so far.

    Returns
    -------
    outcomes : List[BatchOutcome]
        ``outcomes[i]`` belongs to ``items[i]``; the length always equals
        ``len(items)``.

    Raises
    ------
    PreconditionError
        If concurrency is below 1 (before any item runs), or a worker raised
        one, in which case the remaining items still run and the first such
        error in input order is re-raised afterwards.

    Notes
    -----
    Failures are classified by the error family of the raised exception:
    package errors keep their own family, ``OSError`` and
    ``UnicodeDecodeError`` count as ``InputError``, and anything else is
    logged with its traceback and recorded under its class name.
    """
    jobs = resolve_concurrency(concurrency)
    pending = list(items)
    slots: List[Optional[BatchOutcome]] = [None] * len(pending)
    counter = _ProgressCounter(progress)

    def run_one(index: int) -> None:
        slots[index] = _execute(index, pending[index], worker_fn)
        counter.tick()

    if jobs == 1:
        first_failure: Optional[PreconditionError] = None
        for index in range(len(pending)):
            try:
                run_one(index)
            except PreconditionError as err:
                if first_failure is None:
                    first_failure = err
        if first_failure is not None:
            raise first_failure
        return slots

    window = threading.BoundedSemaphore(2 * jobs)
    futures = []
    with ThreadPoolExecutor(max_workers=jobs, thread_name_prefix="qutility") as pool:
        for index in range(len(pending)):
            window.acquire()
            future = pool.submit(run_one, index)
            future.add_done_callback(lambda _: window.release())
            futures.append(future)
    for future in futures:
        future.result()
    _log.debug("batch of %d items finished on %d workers", counter.done, jobs)
    return slots
