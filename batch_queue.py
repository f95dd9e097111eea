# batch_queue.py
from __future__ import annotations
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from record_processor import RecordOutcome, RecordStatus
from settings import settings


class PacedTaskQueue:
    """
    Single-worker task queue: tasks run one at a time in submission order,
    with a fixed pause after each one (success or failure) to stay under
    the model API rate limit. A task that raises does not stop the queue;
    on_error turns the exception into a result.
    """

    def __init__(self, delay_s: float = settings.PACING_SECONDS, sleep: Callable[[float], None] = time.sleep):
        if delay_s < 0:
            raise ValueError("delay_s must be >= 0")
        self.delay_s = delay_s
        self._sleep = sleep

    def run(
        self,
        items: Iterable[Any],
        task: Callable[[Any], Any],
        *,
        on_error: Callable[[Any, Exception], Any],
        on_done: Optional[Callable[[int, Any, Any], None]] = None,
    ) -> List[Any]:
        results: List[Any] = []
        for i, item in enumerate(items):
            try:
                res = task(item)
            except Exception as e:
                res = on_error(item, e)
            results.append(res)
            if on_done is not None:
                on_done(i, item, res)
            if self.delay_s:
                self._sleep(self.delay_s)
        return results


@dataclass
class GroupReport:
    group: Any
    total: int = 0
    counts: Dict[str, int] = field(default_factory=dict)
    outcomes: List[RecordOutcome] = field(default_factory=list)
    error: Optional[str] = None

    def add(self, outcome: RecordOutcome):
        self.outcomes.append(outcome)
        key = outcome.status.value
        self.counts[key] = self.counts.get(key, 0) + 1

    @property
    def succeeded(self) -> int:
        return self.counts.get(RecordStatus.SUCCESS.value, 0)

    @property
    def failed(self) -> int:
        return len(self.outcomes) - self.succeeded


def _unexpected(doc: Mapping[str, Any], exc: Exception) -> RecordOutcome:
    record_id = doc.get("_id") if isinstance(doc, Mapping) else None
    return RecordOutcome(record_id, RecordStatus.ERROR, error=f"{type(exc).__name__}: {exc}", exc=exc)


def run_group(
    group: Any,
    records: List[Mapping[str, Any]],
    *,
    process: Callable[[Mapping[str, Any]], RecordOutcome],
    queue: PacedTaskQueue,
    on_outcome: Optional[Callable[[int, int, RecordOutcome], None]] = None,
) -> GroupReport:
    """
    Process one chapter's materialized records in order. Failed records are
    left as they are for a later run; nothing is retried here.
    """
    report = GroupReport(group=group, total=len(records))

    def _done(i: int, _doc, outcome: RecordOutcome):
        report.add(outcome)
        if on_outcome is not None:
            on_outcome(i, report.total, outcome)

    queue.run(records, process, on_error=_unexpected, on_done=_done)
    return report
