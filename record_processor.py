# record_processor.py
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from db.models import Question
from db_models import write_normalized
from prompter_parser import get_format_messages
from response_parser import (
    FIELDS,
    Failed,
    NormalizedResult,
    NormalizeOutcome,
    fallback_from,
    normalize_response,
)


class RecordStatus(str, Enum):
    SUCCESS = "success"
    FORMAT_FAILED = "format_failed"
    CALL_ERROR = "call_error"
    WRITE_ERROR = "write_error"
    INVALID_RECORD = "invalid_record"
    ERROR = "error"


@dataclass
class RecordOutcome:
    record_id: Any
    status: RecordStatus
    parse_kind: Optional[str] = None
    recovered_fields: Tuple[str, ...] = ()
    kept_original: Tuple[str, ...] = ()
    written: bool = False
    error: Optional[str] = None
    exc: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.status is RecordStatus.SUCCESS

    def to_log(self) -> Dict[str, Any]:
        return {
            "record_id": str(self.record_id),
            "status": self.status.value,
            "parse_kind": self.parse_kind,
            "recovered_fields": list(self.recovered_fields),
            "kept_original": list(self.kept_original),
            "written": self.written,
            "error": self.error,
        }


ResponseHook = Callable[[Question, Any, NormalizeOutcome], None]


def _unwrap_text(resp) -> Any:
    # clients return {"text": ...}
    if isinstance(resp, dict):
        return resp.get("text")
    return resp


def _err(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


def _stored(doc: Mapping[str, Any]) -> NormalizedResult:
    # raw values as they sit in the store, not the coerced Question
    return fallback_from(doc.get("question_text"), doc.get("answer"), doc.get("options"))


def _enforce_shape(
    result: NormalizedResult, stored: NormalizedResult, q: Question
) -> Tuple[NormalizedResult, Tuple[str, ...]]:
    """
    Keep the stored value for any field whose replacement is not text, and
    for options unless they are a same-length list of strings. Only fields
    where a bad replacement differed from the stored value are reported.
    """
    values = result.to_update()
    originals = stored.to_update()
    options = values["options"]
    valid = {
        "question_text": isinstance(values["question_text"], str),
        "answer": isinstance(values["answer"], str) or (values["answer"] is None and originals["answer"] is None),
        "options": (
            isinstance(options, list)
            and len(options) == len(q.options)
            and all(isinstance(o, str) for o in options)
        ),
    }
    kept = []
    for name in FIELDS:
        if valid[name]:
            continue
        if values[name] != originals[name]:
            kept.append(name)
        values[name] = originals[name]
    return NormalizedResult(**values), tuple(kept)


def process_record(
    doc: Mapping[str, Any],
    *,
    llm: Callable[[List[dict]], Any],
    collection,
    template: Optional[Dict[str, str]] = None,
    dry_run: bool = False,
    on_response: Optional[ResponseHook] = None,
) -> RecordOutcome:
    """
    Format one stored question through the model and write the three
    target fields back by _id. Every failure is returned as a status.
    """
    record_id = doc.get("_id") if isinstance(doc, Mapping) else None
    try:
        q = Question.model_validate(doc)
    except ValidationError as e:
        return RecordOutcome(record_id, RecordStatus.INVALID_RECORD, error=_err(e), exc=e)

    messages = get_format_messages(q.question_text, q.answer or "", q.options, template=template)

    try:
        resp = llm(messages)
    except Exception as e:
        return RecordOutcome(q.id, RecordStatus.CALL_ERROR, error=_err(e), exc=e)

    raw = _unwrap_text(resp)
    stored = _stored(doc)
    outcome = normalize_response(raw, fallback=stored)
    if on_response is not None:
        on_response(q, raw, outcome)

    if isinstance(outcome, Failed):
        return RecordOutcome(q.id, RecordStatus.FORMAT_FAILED, parse_kind=outcome.kind, error=outcome.reason)

    recovered = getattr(outcome, "recovered_fields", ())
    result, kept = _enforce_shape(outcome.result, stored, q)
    base = dict(parse_kind=outcome.kind, recovered_fields=recovered, kept_original=kept)
    if dry_run:
        return RecordOutcome(q.id, RecordStatus.SUCCESS, **base)

    try:
        matched = write_normalized(collection, q.id, result.to_update())
    except Exception as e:
        return RecordOutcome(q.id, RecordStatus.WRITE_ERROR, error=_err(e), exc=e, **base)
    if not matched:
        return RecordOutcome(q.id, RecordStatus.WRITE_ERROR, error="no record matched _id", **base)

    return RecordOutcome(q.id, RecordStatus.SUCCESS, written=True, **base)
