# prompter_parser.py
from __future__ import annotations
import json
import re
from typing import Dict, List, Optional, Sequence

# Only replace known {placeholder} keys; never interpret other braces.
_ALLOWED_KEYS = ("question_text", "answer", "options_json")
_PLACEHOLDER_RX = re.compile(r"\{(" + "|".join(_ALLOWED_KEYS) + r")\}")

LATEX_OPEN_DELIMITER = "\\("
LATEX_CLOSE_DELIMITER = "\\)"

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert at LaTeX formatting. Your task is to fix LaTeX/mathematical "
    "expressions in question data."
)

DEFAULT_USER_PROMPT = (
    f"Wrap all LaTeX/math expressions inside the inline math delimiter "
    f"{LATEX_OPEN_DELIMITER}...{LATEX_CLOSE_DELIMITER} so they render correctly.\n"
    f"Any raw or improperly wrapped LaTeX should be correctly enclosed within "
    f"{LATEX_OPEN_DELIMITER}...{LATEX_CLOSE_DELIMITER}.\n"
    "\n"
    "Rules:\n"
    "1. Identify every mathematical or notational expression: fractions, roots, Greek letters, "
    "subscripts and superscripts, equations, inequalities, units with exponents, chemical formulas.\n"
    f"2. Wrap ONLY those expressions in {LATEX_OPEN_DELIMITER}...{LATEX_CLOSE_DELIMITER}. "
    "Do NOT wrap the entire sentence.\n"
    "3. If the math is already wrapped with $...$, $$...$$, brackets [ ], \\[ \\] or any other "
    f"delimiter, replace it with {LATEX_OPEN_DELIMITER}...{LATEX_CLOSE_DELIMITER}.\n"
    "4. Keep all other text, spacing and punctuation exactly as it is. "
    "Don't add or remove any content - just wrap correctly.\n"
    "5. Keep the same number of options, in the same order.\n"
    "\n"
    "Input:\n"
    "question_text: {question_text}\n"
    "answer: {answer}\n"
    "options: {options_json}\n"
    "\n"
    "Return ONLY a JSON object with the keys \"question_text\", \"answer\" and \"options\" "
    "(options as a JSON array of strings)."
)


def _safe_render(template: str, variables: Dict[str, str]) -> str:
    if not template:
        return ""
    # single pass, so placeholder-looking text inside a value is left alone
    return _PLACEHOLDER_RX.sub(lambda m: variables.get(m.group(1), m.group(0)), template)


def get_format_messages(
    text: str,
    answer: str,
    options: Sequence[str],
    *,
    template: Optional[Dict[str, str]] = None,
) -> List[dict]:
    """
    Build the system+user messages asking the model to normalize math
    delimiters in one question. `template` is an optional
    {"system": ..., "user": ...} override (see core.prompt_loader).
    """
    system_tmpl = DEFAULT_SYSTEM_PROMPT
    user_tmpl = DEFAULT_USER_PROMPT
    if template:
        system_tmpl = template.get("system") or system_tmpl
        user_tmpl = template.get("user") or user_tmpl

    variables = {
        "question_text": text or "",
        "answer": answer or "",
        "options_json": json.dumps(list(options or []), ensure_ascii=False),
    }

    return [
        {"role": "system", "content": _safe_render(system_tmpl, variables).strip()},
        {"role": "user",   "content": _safe_render(user_tmpl, variables).strip()},
    ]
