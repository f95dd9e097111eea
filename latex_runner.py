# latex_runner.py
from __future__ import annotations
import argparse
import sys
import time
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Dict, List, Optional, Sequence

from pymongo.errors import PyMongoError

from core.prompt_loader import load_prompt_template
from core.run_log import (
    _append_error,
    _append_jsonl,
    _build_paths,
    _dbg,
    _ensure_output_dir,
    _write_json,
)
from batch_queue import GroupReport, PacedTaskQueue, run_group
from db_models import fetch_group, list_groups, open_question_store
from llm.factory import make_llm_from_config
from record_processor import RecordOutcome, RecordStatus, process_record
from settings import ConfigError, load_runtime_config, settings


@dataclass
class RunSummary:
    groups: List[GroupReport] = field(default_factory=list)
    totals: Dict[str, int] = field(default_factory=dict)

    def add(self, report: GroupReport):
        self.groups.append(report)
        for k, v in report.counts.items():
            self.totals[k] = self.totals.get(k, 0) + v

    @property
    def records(self) -> int:
        return sum(self.totals.values())

    def to_json(self) -> dict:
        return {
            "groups": [
                {"group": g.group, "total": g.total, "counts": g.counts, "error": g.error}
                for g in self.groups
            ],
            "totals": self.totals,
            "records": self.records,
        }


# -------------------- per-record logging --------------------

def _short(text: Any, n: int = 50) -> str:
    s = text if isinstance(text, str) else str(text)
    return s[:n]


def _debug_response(q, raw, outcome):
    _dbg(f"--- Raw content from model for QID {q.id}: {_short(q.question_text)}... ---\n{raw}")
    _dbg(f"--- Cleaned content before parsing for QID {q.id} ({outcome.kind}) ---\n{outcome.cleaned}")


def _make_outcome_logger(group: Any, paths: Optional[dict]):
    def _log(i: int, total: int, outcome: RecordOutcome):
        rid = outcome.record_id
        if outcome.status is RecordStatus.SUCCESS:
            extra = "" if outcome.written else " (dry run, not written)"
            if outcome.parse_kind == "recovered":
                extra += f" [recovered: {', '.join(outcome.recovered_fields) or 'none'}]"
            if outcome.kept_original:
                extra += f" [kept stored: {', '.join(outcome.kept_original)}]"
            _dbg(f"[latex] {i + 1}/{total} SUCCESS: processed question {rid}{extra}")
        elif outcome.status is RecordStatus.FORMAT_FAILED:
            _dbg(f"[latex] {i + 1}/{total} ERROR: formatting failed for question {rid} ({outcome.error})")
        else:
            _dbg(f"[latex] {i + 1}/{total} ERROR: question {rid} [{outcome.status.value}] {outcome.error}")

        if paths:
            row = outcome.to_log()
            row["group"] = group
            _append_jsonl(paths["outcomes_jsonl"], row)
            if outcome.exc is not None:
                _append_error(paths["errors_log"], f"group={group} record={rid} status={outcome.status.value}", outcome.exc)
    return _log


# -------------------- driver --------------------

def run_corpus(
    collection,
    llm,
    *,
    queue: PacedTaskQueue,
    group_field: str = settings.GROUP_FIELD,
    chapters: Optional[Sequence[str]] = None,
    max_records: int = 0,
    template: Optional[Dict[str, str]] = None,
    dry_run: bool = False,
    debug: bool = False,
    paths: Optional[dict] = None,
) -> RunSummary:
    """
    Discover every chapter and run its records through the formatter, one
    chapter after another. A discovery failure propagates; everything below
    it is reported per group / per record.
    """
    groups = list_groups(collection, group_field)
    if chapters:
        wanted = set(chapters)
        groups = [g for g in groups if g in wanted]
    _dbg(f"[latex] found {len(groups)} chapters to process")

    process = partial(
        process_record,
        llm=llm,
        collection=collection,
        template=template,
        dry_run=dry_run,
        on_response=_debug_response if debug else None,
    )

    summary = RunSummary()
    budget = max_records if max_records and max_records > 0 else None

    for group in groups:
        if budget is not None and budget <= 0:
            _dbg(f"[latex] max-records reached ({max_records}); stopping.")
            break

        try:
            records = fetch_group(collection, group, group_field)
        except Exception as e:
            _dbg(f"[latex] ERROR: could not load chapter '{group}': {e}")
            if paths:
                _append_error(paths["errors_log"], f"group={group} fetch failed", e)
            summary.add(GroupReport(group=group, error=f"{type(e).__name__}: {e}"))
            continue

        if budget is not None:
            records = records[:budget]
            budget -= len(records)

        _dbg(f"\n[latex] processing chapter: {group} ({len(records)} questions)")
        report = run_group(
            group,
            records,
            process=process,
            queue=queue,
            on_outcome=_make_outcome_logger(group, paths),
        )
        summary.add(report)
        _dbg(f"[latex] completed chapter: {group} (ok={report.succeeded} failed={report.failed})")

    return summary


# -------------------- main --------------------

def _build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Wrap math in question-bank records with \\(...\\) using an LLM.")

    # Store
    ap.add_argument("--db", default=None, help=f"Database name (default: MONGODB_DB or {settings.DB_NAME})")
    ap.add_argument("--collection", default=None, help=f"Collection (default: MONGODB_COLLECTION or {settings.COLLECTION})")
    ap.add_argument("--chapter", action="append", default=None, help="Only process this chapter (repeatable)")
    ap.add_argument("--max-records", type=int, default=0, help="Stop after this many records (0 = no cap)")

    # Model
    ap.add_argument("--model-key", default=settings.MODEL_KEY, choices=sorted(settings.MODELS))
    ap.add_argument("--temperature", type=float, default=None)
    ap.add_argument("--max-tokens", type=int, default=None)
    ap.add_argument("--timeout", type=float, default=None, help="Per-request timeout (seconds)")
    ap.add_argument("--prompt-file", default=None, help='JSON file with {"system": ..., "user": ...}')

    # Pacing / output
    ap.add_argument("--delay", type=float, default=settings.PACING_SECONDS, help="Pause after each record (seconds)")
    ap.add_argument("--output-dir", default=None)
    ap.add_argument("--dry-run", action="store_true", help="Format but do not write back")
    ap.add_argument("--debug", action="store_true", help="Print raw and cleaned model responses")
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_arg_parser().parse_args(argv)
    if args.delay < 0:
        _dbg("[latex] --delay must be >= 0")
        return 1

    try:
        cfg = load_runtime_config(db_name=args.db, collection=args.collection)
    except ConfigError as e:
        _dbg(f"[latex] {e}")
        return 1

    model_cfg = settings.MODELS[args.model_key].model_copy(deep=True)
    if args.temperature is not None and not model_cfg.use_responses_api:
        model_cfg.temperature = args.temperature
    if args.max_tokens is not None:
        model_cfg.max_tokens = args.max_tokens
    if args.timeout is not None:
        model_cfg.timeout = args.timeout

    template = None
    if args.prompt_file:
        try:
            template = load_prompt_template(args.prompt_file)
        except (OSError, ValueError) as e:
            _dbg(f"[latex] cannot load prompt file: {e}")
            return 1

    try:
        llm = make_llm_from_config(model_cfg)
    except (RuntimeError, ValueError) as e:
        _dbg(f"[latex] {e}")
        return 1

    out_dir = _ensure_output_dir(args.output_dir)
    paths = _build_paths(out_dir)
    _dbg(f"[latex] output_dir: {out_dir}")
    _dbg(f"[latex] model: {model_cfg.model} | db: {cfg.db_name}.{cfg.collection} | delay: {args.delay}s"
         + (" | DRY RUN" if args.dry_run else ""))

    start = time.time()
    try:
        client, collection = open_question_store(cfg)
    except (PyMongoError, ValueError) as e:
        _dbg(f"[latex] cannot open MongoDB store: {e}")
        _append_error(paths["errors_log"], "store open failed", e)
        return 1
    try:
        summary = run_corpus(
            collection,
            llm,
            queue=PacedTaskQueue(delay_s=args.delay),
            chapters=args.chapter,
            max_records=args.max_records,
            template=template,
            dry_run=args.dry_run,
            debug=args.debug,
            paths=paths,
        )
    except Exception as e:
        _dbg(f"[latex] failed to get chapters or process questions: {e}")
        _append_error(paths["errors_log"], "fatal", e)
        return 1
    finally:
        client.close()
        _dbg("[latex] MongoDB connection closed.")

    _write_json(paths["summary_json"], summary.to_json())
    dur = time.time() - start
    _dbg(f"[latex] finished in {dur:.1f}s: {summary.records} records, totals={summary.totals}")
    _dbg(f"[latex] outcomes.jsonl : {paths['outcomes_jsonl']}")
    _dbg(f"[latex] errors.log     : {paths['errors_log']}")
    _dbg(f"[latex] summary.json   : {paths['summary_json']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
