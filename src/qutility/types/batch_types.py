"""Outcome records produced by the batch runner.

Extended Summary
----------------
Every input of a batch run yields exactly one `BatchOutcome`, created by the
worker that processed it and never modified afterwards. A summary is always
derivable from the ordered outcome list via `summarize`.

Routine Listings
----------------
SKIPPED : sentinel
    Success value for items whose output already existed
FailureInfo : NamedTuple
    Source identifier, error family and message of a failed item
BatchOutcome : NamedTuple
    Tagged per-item result: a value or a FailureInfo
BatchSummary : NamedTuple
    Success and failure counts of a run
summarize : function
    Count the outcomes of a run
"""

from beartype import beartype
from beartype.typing import Any, List, NamedTuple, Optional, Sequence, Tuple


class _Skipped:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SKIPPED"

    def __reduce__(self):
        return (_Skipped, ())


SKIPPED = _Skipped()


class FailureInfo(NamedTuple):
    source: str
    kind: str
    message: str

    def __str__(self) -> str:
        return f"{self.source}: [{self.kind}] {self.message}"


class BatchOutcome(NamedTuple):
    """Result of one batch item.

    Attributes
    ----------
    index : int
        Position of the item in the input sequence.
    source : str
        Identifier of the item, usually its path.
    value : Any
        Worker return value on success, None on failure.
    error : FailureInfo, optional
        Failure descriptor, None on success.
    """

    index: int
    source: str
    value: Any = None
    error: Optional[FailureInfo] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def skipped(self) -> bool:
        return self.ok and self.value is SKIPPED


class BatchSummary(NamedTuple):
    total: int
    succeeded: int
    failed: int
    skipped: int
    failures: Tuple[FailureInfo, ...]


@beartype
def summarize(outcomes: Sequence[BatchOutcome]) -> BatchSummary:
    failures: List[FailureInfo] = [o.error for o in outcomes if o.error is not None]
    skipped = sum(1 for o in outcomes if o.skipped)
    return BatchSummary(
        total=len(outcomes),
        succeeded=len(outcomes) - len(failures) - skipped,
        failed=len(failures),
        skipped=skipped,
        failures=tuple(failures),
    )
