import os
import threading
import time

import chex
import pytest
from absl.testing import parameterized

from qutility.batch import resolve_concurrency, run_batch
from qutility.errors import DomainError, ParseError, PreconditionError
from qutility.types import SKIPPED, summarize


def _square(value: int) -> int:
    time.sleep(0.001 * (value % 3))
    return value * value


class TestRunBatch(chex.TestCase, parameterized.TestCase):
    @parameterized.named_parameters(
        ("sequential", 1),
        ("two", 2),
        ("many", 8),
    )
    def test_outcomes_follow_input_order(self, concurrency: int) -> None:
        items = list(range(40))
        outcomes = run_batch(items, _square, concurrency=concurrency)
        assert [o.index for o in outcomes] == items
        assert [o.value for o in outcomes] == [i * i for i in items]
        assert [o.source for o in outcomes] == [str(i) for i in items]
        assert all(o.ok for o in outcomes)

    def test_results_do_not_depend_on_concurrency(self) -> None:
        items = list(range(25))
        assert run_batch(items, _square, concurrency=1) == run_batch(
            items, _square, concurrency=8
        )

    def test_empty_batch(self) -> None:
        assert run_batch([], _square, concurrency=4) == []

    def test_failures_are_recorded_per_item(self) -> None:
        def worker(item: str) -> str:
            if item == "parse":
                raise ParseError("res", item, "Missing CELL line")
            if item == "domain":
                raise DomainError("negative wavelength")
            if item == "io":
                raise FileNotFoundError(item)
            if item == "decode":
                b"\xff".decode("utf-8")
            if item == "bug":
                raise KeyError("boom")
            return item.upper()

        items = ["a", "parse", "domain", "io", "decode", "bug", "b"]
        outcomes = run_batch(items, worker, concurrency=3)
        kinds = [None if o.ok else o.error.kind for o in outcomes]
        assert kinds == [
            None,
            "InputError",
            "DomainError",
            "InputError",
            "InputError",
            "KeyError",
            None,
        ]
        assert outcomes[0].value == "A"
        assert outcomes[-1].value == "B"
        assert "Missing CELL line" in outcomes[1].error.message
        assert outcomes[1].error.source == "parse"
        summary = summarize(outcomes)
        assert (summary.total, summary.succeeded, summary.failed) == (7, 2, 5)

    def test_skipped_values_are_counted(self) -> None:
        outcomes = run_batch([1, 2, 3], lambda i: SKIPPED if i == 2 else i, concurrency=2)
        assert outcomes[1].skipped
        assert summarize(outcomes).skipped == 1

    @parameterized.named_parameters(("sequential", 1), ("pooled", 4))
    def test_precondition_error_propagates(self, concurrency: int) -> None:
        lock = threading.Lock()
        ran = []

        def worker(item: int) -> int:
            with lock:
                ran.append(item)
            if item in (1, 3):
                raise PreconditionError(f"output root vanished at {item}")
            return item

        with pytest.raises(PreconditionError, match="at 1"):
            run_batch(list(range(6)), worker, concurrency=concurrency)
        assert sorted(ran) == list(range(6))

    def test_failing_progress_callback_does_not_abort(self) -> None:
        def progress(done: int) -> None:
            raise RuntimeError("display went away")

        outcomes = run_batch(list(range(5)), _square, concurrency=2, progress=progress)
        assert [outcome.value for outcome in outcomes] == [0, 1, 4, 9, 16]

    @parameterized.named_parameters(("zero", 0), ("negative", -2))
    def test_invalid_concurrency_runs_nothing(self, concurrency: int) -> None:
        calls = []
        with pytest.raises(PreconditionError):
            run_batch([1, 2, 3], calls.append, concurrency=concurrency)
        assert calls == []

    def test_progress_reports_every_item(self) -> None:
        seen = []
        run_batch(list(range(12)), _square, concurrency=4, progress=seen.append)
        assert sorted(seen) == list(range(1, 13))
        assert len(seen) == 12

    def test_active_workers_never_exceed_concurrency(self) -> None:
        lock = threading.Lock()
        active = [0]
        peak = [0]

        def worker(item: int) -> int:
            with lock:
                active[0] += 1
                peak[0] = max(peak[0], active[0])
            time.sleep(0.005)
            with lock:
                active[0] -= 1
            return item

        run_batch(list(range(30)), worker, concurrency=3)
        assert 1 <= peak[0] <= 3

    def test_sequential_batch_runs_in_calling_thread(self) -> None:
        caller = threading.get_ident()
        outcomes = run_batch([1, 2], lambda _: threading.get_ident(), concurrency=1)
        assert {o.value for o in outcomes} == {caller}

    def test_pooled_batch_uses_worker_threads(self) -> None:
        outcomes = run_batch(
            [1, 2, 3], lambda _: threading.current_thread().name, concurrency=2
        )
        assert all(o.value.startswith("qutility") for o in outcomes)


class TestResolveConcurrency(chex.TestCase, parameterized.TestCase):
    def test_default_is_cpu_count(self) -> None:
        assert resolve_concurrency(None) == (os.cpu_count() or 1)

    def test_explicit_value(self) -> None:
        assert resolve_concurrency(5) == 5

    @parameterized.named_parameters(("zero", 0), ("negative", -1))
    def test_rejects_non_positive(self, value: int) -> None:
        with pytest.raises(PreconditionError):
            resolve_concurrency(value)
