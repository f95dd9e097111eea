import pytest

from batch_queue import GroupReport, PacedTaskQueue, run_group
from record_processor import RecordOutcome, RecordStatus


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


def _ok(doc):
    return RecordOutcome(doc["_id"], RecordStatus.SUCCESS, written=True)


def test_queue_runs_in_order_and_paces_every_item():
    sleep = SleepRecorder()
    seen = []
    q = PacedTaskQueue(delay_s=0.5, sleep=sleep)
    res = q.run([1, 2, 3], lambda x: seen.append(x) or x * 10, on_error=lambda item, e: None)
    assert seen == [1, 2, 3]
    assert res == [10, 20, 30]
    assert sleep.calls == [0.5, 0.5, 0.5]


def test_queue_zero_delay_never_sleeps():
    sleep = SleepRecorder()
    PacedTaskQueue(delay_s=0, sleep=sleep).run([1, 2], lambda x: x, on_error=lambda item, e: None)
    assert sleep.calls == []


def test_queue_rejects_negative_delay():
    with pytest.raises(ValueError):
        PacedTaskQueue(delay_s=-1)


def test_queue_turns_exceptions_into_results_and_keeps_going():
    sleep = SleepRecorder()

    def task(x):
        if x == 2:
            raise KeyError("bad")
        return x

    res = PacedTaskQueue(delay_s=0.1, sleep=sleep).run(
        [1, 2, 3], task, on_error=lambda item, e: ("failed", item, type(e).__name__)
    )
    assert res == [1, ("failed", 2, "KeyError"), 3]
    assert sleep.calls == [0.1, 0.1, 0.1]


def test_run_group_isolates_a_failing_record():
    records = [{"_id": f"r{i}"} for i in range(5)]
    processed = []

    def process(doc):
        processed.append(doc["_id"])
        if doc["_id"] == "r2":
            raise RuntimeError("unexpected")
        if doc["_id"] == "r3":
            return RecordOutcome(doc["_id"], RecordStatus.FORMAT_FAILED, error="empty_response")
        return _ok(doc)

    logged = []
    report = run_group(
        "Algebra",
        records,
        process=process,
        queue=PacedTaskQueue(delay_s=0.5, sleep=SleepRecorder()),
        on_outcome=lambda i, total, o: logged.append((i, total, o.record_id, o.status)),
    )

    assert processed == ["r0", "r1", "r2", "r3", "r4"]
    assert [o.status for o in report.outcomes] == [
        RecordStatus.SUCCESS,
        RecordStatus.SUCCESS,
        RecordStatus.ERROR,
        RecordStatus.FORMAT_FAILED,
        RecordStatus.SUCCESS,
    ]
    assert report.outcomes[2].record_id == "r2"
    assert "RuntimeError" in report.outcomes[2].error
    assert report.total == 5
    assert report.succeeded == 3
    assert report.failed == 2
    assert report.counts == {"success": 3, "error": 1, "format_failed": 1}
    assert logged[2] == (2, 5, "r2", RecordStatus.ERROR)


def test_run_group_sleeps_once_per_record():
    sleep = SleepRecorder()
    run_group("g", [{"_id": 1}, {"_id": 2}], process=_ok, queue=PacedTaskQueue(delay_s=0.5, sleep=sleep))
    assert sleep.calls == [0.5, 0.5]


def test_empty_group_report():
    report = run_group("empty", [], process=_ok, queue=PacedTaskQueue(delay_s=0.5, sleep=SleepRecorder()))
    assert report == GroupReport(group="empty", total=0)
    assert report.succeeded == 0
    assert report.failed == 0
