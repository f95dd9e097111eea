# core/prompt_loader.py
from __future__ import annotations
import json
from pathlib import Path
from typing import Dict


def _resolve(path: str | Path) -> Path:
    p = Path(path)
    if p.exists():
        return p
    here = Path(__file__).resolve().parents[1]  # project root (.. from core/)
    p2 = (here / p).resolve()
    if p2.exists():
        return p2
    p3 = Path.cwd() / p
    if p3.exists():
        return p3
    raise FileNotFoundError(f"Prompt not found. Tried: {p}, {p2}, {p3}")


def load_prompt_template(path: str | Path) -> Dict[str, str]:
    """
    Load a prompt JSON with keys {"system": "...", "user": "..."}.
    Placeholders are rendered later by prompter_parser, not here.
    """
    obj = json.loads(_resolve(path).read_text(encoding="utf-8"))
    if not isinstance(obj, dict):
        raise ValueError(f"Prompt file must hold a JSON object: {path}")
    system = obj.get("system") or ""
    user = obj.get("user") or ""
    if not isinstance(system, str) or not isinstance(user, str):
        raise ValueError(f"Prompt 'system' and 'user' must be strings: {path}")
    if not user.strip():
        raise ValueError(f"Prompt file has an empty 'user' template: {path}")
    return {"system": system, "user": user}
