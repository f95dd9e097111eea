import copy
import json
from types import SimpleNamespace

import pytest


class FakeCollection:
    """In-memory stand-in for the pymongo calls the formatter makes."""

    def __init__(self, docs=None):
        self.docs = [copy.deepcopy(d) for d in (docs or [])]
        self.updates = []
        self.find_calls = []
        self.fail_distinct = None
        self.fail_find = {}
        self.fail_update = {}

    def distinct(self, field):
        if self.fail_distinct is not None:
            raise self.fail_distinct
        seen = []
        for d in self.docs:
            v = d.get(field)
            if v not in seen:
                seen.append(v)
        return seen

    def find(self, flt):
        self.find_calls.append(dict(flt))
        for k, v in flt.items():
            if v in self.fail_find:
                raise self.fail_find[v]
        return iter([copy.deepcopy(d) for d in self.docs if all(d.get(k) == v for k, v in flt.items())])

    def update_one(self, flt, update):
        self.updates.append((copy.deepcopy(flt), copy.deepcopy(update)))
        rid = flt.get("_id")
        if rid in self.fail_update:
            raise self.fail_update[rid]
        for d in self.docs:
            if d.get("_id") == rid:
                d.update(copy.deepcopy(update["$set"]))
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    def by_id(self, rid):
        for d in self.docs:
            if d.get("_id") == rid:
                return d
        return None


class FakeMongoClient:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


def _input_fields(messages):
    user = messages[-1]["content"]
    fields = {}
    for line in user.splitlines():
        for key in ("question_text", "answer", "options"):
            if key not in fields and line.startswith(key + ": "):
                fields[key] = line[len(key) + 2:]
    return fields


def echo_formatter(messages):
    """Pretend model: prefixes the question text, keeps answer and options."""
    fields = _input_fields(messages)
    return {
        "text": json.dumps({
            "question_text": "[fmt] " + fields["question_text"],
            "answer": fields["answer"],
            "options": json.loads(fields["options"]),
        })
    }


class ScriptedLLM:
    """Returns (or raises) the scripted replies in order; falls back to echo."""

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls = []

    def __call__(self, messages):
        self.calls.append(messages)
        if not self.replies:
            return echo_formatter(messages)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(messages)
        return {"text": reply}

    def question_texts(self):
        return [_input_fields(m)["question_text"] for m in self.calls]


@pytest.fixture
def make_collection():
    return FakeCollection


@pytest.fixture
def make_llm():
    return ScriptedLLM


@pytest.fixture
def mongo_client():
    return FakeMongoClient()


@pytest.fixture
def sample_docs():
    return [
        {
            "_id": "q1",
            "question_text": "The value is 2x + 3 when $\\alpha$ = 0.",
            "answer": "x = -1.5",
            "options": ["$1$", "$2$", "x^2"],
            "chapter": "Algebra",
            "subject": "Maths",
            "isQuestionImage": False,
        },
        {
            "_id": "q2",
            "question_text": "Speed of light is 3 x 10^8 m s^-1",
            "answer": None,
            "options": [],
            "chapter": "Physics",
            "subject": "Physics",
        },
        {
            "_id": "q3",
            "question_text": "Solve [x^2 = 4]",
            "answer": "x = 2",
            "options": ["2", "-2"],
            "chapter": "Algebra",
            "subject": "Maths",
        },
        {
            "_id": "q4",
            "question_text": "Unsorted",
            "answer": "",
            "options": [],
            "chapter": None,
            "subject": "Maths",
        },
    ]
