# core/run_log.py
from __future__ import annotations
import datetime
import json
import os
import traceback


def _dbg(msg: str):
    print(msg, flush=True)


def _ensure_output_dir(base_dir: str | None) -> str:
    out = base_dir or os.path.join("runs", datetime.datetime.now().strftime("%Y%m%d_%H%M%S"))
    os.makedirs(out, exist_ok=True)
    return out


def _build_paths(out_dir: str) -> dict:
    return {
        "outcomes_jsonl": os.path.join(out_dir, "outcomes.jsonl"),
        "errors_log": os.path.join(out_dir, "errors.log"),
        "summary_json": os.path.join(out_dir, "summary.json"),
    }


def _append_jsonl(path: str, obj: dict):
    with open(path, "a", encoding="utf-8") as f:
        f.write(json.dumps(obj, ensure_ascii=False, default=str) + "\n")


def _append_error(path: str, context: str, exc: BaseException | None = None):
    with open(path, "a", encoding="utf-8") as ef:
        ef.write(f"[{datetime.datetime.now().isoformat()}] {context}\n")
        if exc is not None:
            ef.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
        ef.write("\n")


def _write_json(path: str, obj: dict):
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, ensure_ascii=False, indent=2, default=str)
