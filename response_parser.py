# response_parser.py
"""
Turn the model's reply for one question into {question_text, answer, options}.

The reply is expected to be a JSON object, but the model writes LaTeX with
single backslashes (invalid JSON escapes), sometimes wraps the object in a
```json fence, and now and then returns something that is not JSON at all.
Stages, each a fallback for the one before:

  1. strip one ```json ... ``` wrapper (only at the very start and end)
  2. double every lone backslash
  3. strict json.loads, all three keys present        -> Parsed
  4. regex extraction of each field, originals kept   -> Recovered
     for fields that cannot be found
  5. empty / non-text reply                           -> Failed

Nothing here raises for bad model output; callers branch on the result kind.
"""

from __future__ import annotations
import json
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple, Union

FIELDS = ("question_text", "answer", "options")

_FENCED_RX = re.compile(r"\A```[ \t]*(?:json)?[ \t]*\r?\n(.*?)\s*```\Z", re.S | re.I)
# a backslash with no backslash on either side
_LONE_BACKSLASH_RX = re.compile(r"(?<!\\)\\(?!\\)")

# Key markers must be quoted, otherwise the greedy value capture could swallow
# the opening quote of the next key.
_QUESTION_RX = re.compile(
    r"""(?:"question_text"|'question_text')\s*:\s*"(.*)"\s*,?\s*(?:"answer"|'answer')\s*:""",
    re.S,
)
_ANSWER_RX = re.compile(
    r"""(?:"answer"|'answer')\s*:\s*"(.*)"\s*,?\s*(?:"options"|'options')\s*:""",
    re.S,
)
# only locates the opening bracket; the array end is found by _find_array_end
_OPTIONS_RX = re.compile(r"""(?:"options"|'options')\s*:\s*(?=\[)""")

_DECODER = json.JSONDecoder(strict=False)


# -------------------- result types --------------------

@dataclass
class NormalizedResult:
    question_text: Any
    answer: Any
    options: Any = field(default_factory=list)

    def to_update(self) -> dict:
        return {
            "question_text": self.question_text,
            "answer": self.answer,
            "options": self.options,
        }


@dataclass(frozen=True)
class Parsed:
    result: NormalizedResult
    cleaned: str = ""
    kind: str = "parsed"


@dataclass(frozen=True)
class Recovered:
    result: NormalizedResult
    recovered_fields: Tuple[str, ...] = ()
    cleaned: str = ""
    kind: str = "recovered"


@dataclass(frozen=True)
class Failed:
    reason: str
    cleaned: str = ""
    kind: str = "failed"


NormalizeOutcome = Union[Parsed, Recovered, Failed]


# -------------------- text transforms --------------------

def strip_fences(text: str) -> str:
    """Remove one ```json ... ``` wrapper when it spans the whole reply."""
    t = (text or "").strip()
    m = _FENCED_RX.match(t)
    if not m:
        return t
    return m.group(1).strip()


def repair_backslashes(text: str) -> str:
    r"""
    Double every lone backslash so LaTeX like \alpha survives json.loads.
    Runs of two or more backslashes are left alone, which makes the
    transform idempotent.
    """
    return _LONE_BACKSLASH_RX.sub(r"\\\\", text or "")


def clean_response(raw: str) -> str:
    return repair_backslashes(strip_fences(raw))


def _collapse_backslashes(s: str) -> str:
    return s.replace("\\\\", "\\")


def _decode_string_body(body: str) -> str:
    try:
        value = json.loads('"' + body + '"', strict=False)
    except ValueError:
        return _collapse_backslashes(body)
    if isinstance(value, str):
        return value
    return _collapse_backslashes(body)


# -------------------- stage 3: strict parse --------------------

def parse_strict(cleaned: str) -> Optional[NormalizedResult]:
    try:
        obj = json.loads(cleaned, strict=False)
    except (ValueError, RecursionError):
        return None
    if not isinstance(obj, dict):
        return None
    if any(k not in obj for k in FIELDS):
        return None
    return NormalizedResult(
        question_text=obj["question_text"],
        answer=obj["answer"],
        options=obj["options"],
    )


# -------------------- stage 4: regex extraction --------------------

def split_array_literal(literal: str) -> List[str]:
    """
    Last-resort split of a malformed array literal such as
    [foo, "bar baz", 'qux']  ->  ["foo", "bar baz", "qux"].
    Commas inside entries are not protected.
    """
    inner = (literal or "").strip()
    if inner.startswith("["):
        inner = inner[1:]
    if inner.endswith("]"):
        inner = inner[:-1]
    if not inner.strip():
        return []
    out: List[str] = []
    for piece in inner.split(","):
        p = piece.strip()
        if p[:1] in ("'", '"'):
            p = p[1:]
        if p[-1:] in ("'", '"'):
            p = p[:-1]
        out.append(_collapse_backslashes(p.strip()))
    return out


def _find_array_end(text: str, start: int) -> Optional[int]:
    """Index just past the `]` that closes the `[` at text[start], skipping "..." strings."""
    depth = 0
    in_str = False
    esc = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_str:
            if esc:
                esc = False
            elif ch == "\\":
                esc = True
            elif ch == '"':
                in_str = False
            continue
        if ch == '"':
            in_str = True
        elif ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def _extract_array(cleaned: str, start: int) -> Optional[List[Any]]:
    try:
        value, _ = _DECODER.raw_decode(cleaned, start)
    except (ValueError, RecursionError):
        value = None
    if isinstance(value, list):
        return value
    end = _find_array_end(cleaned, start)
    if end is None:
        return None
    return split_array_literal(cleaned[start:end])


def extract_fields(cleaned: str, fallback: NormalizedResult) -> Tuple[NormalizedResult, Tuple[str, ...]]:
    """
    Recover each field independently from a reply that is not valid JSON.
    Fields are searched in document order; anything not found keeps the
    fallback (original) value. Returns the result and the names of the
    fields that came from the reply.
    """
    found: List[str] = []
    question_text = fallback.question_text
    answer = fallback.answer
    options = fallback.options
    pos = 0

    m = _QUESTION_RX.search(cleaned, pos)
    if m:
        question_text = _decode_string_body(m.group(1))
        found.append("question_text")
        pos = m.end(1)

    m = _ANSWER_RX.search(cleaned, pos)
    if m:
        answer = _decode_string_body(m.group(1))
        found.append("answer")
        pos = m.end(1)

    m = _OPTIONS_RX.search(cleaned, pos)
    if m:
        parsed = _extract_array(cleaned, m.end())
        if parsed is not None:
            options = parsed
            found.append("options")

    return NormalizedResult(question_text=question_text, answer=answer, options=options), tuple(found)


# -------------------- entry point --------------------

def normalize_response(raw: Any, *, fallback: NormalizedResult) -> NormalizeOutcome:
    if not isinstance(raw, str):
        return Failed(reason="empty_response" if raw is None else "non_text_response")
    if not raw.strip():
        return Failed(reason="empty_response")

    cleaned = clean_response(raw)
    if not cleaned:
        return Failed(reason="empty_response")

    parsed = parse_strict(cleaned)
    if parsed is not None:
        return Parsed(result=parsed, cleaned=cleaned)

    result, found = extract_fields(cleaned, fallback)
    return Recovered(result=result, recovered_fields=found, cleaned=cleaned)


def fallback_from(text: Any, answer: Any, options: Any) -> NormalizedResult:
    """Original values, unconverted, so an unrecovered field is written back as stored."""
    return NormalizedResult(question_text=text, answer=answer, options=options)
