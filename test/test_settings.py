import pytest
from pydantic import ValidationError

from db.models import Question
from settings import ConfigError, load_runtime_config, settings


def test_runtime_config_from_env_mapping():
    cfg = load_runtime_config({"MONGODB_URI": "mongodb://localhost:27017", "MONGODB_DB": "qb"})
    assert cfg.mongodb_uri == "mongodb://localhost:27017"
    assert cfg.db_name == "qb"
    assert cfg.collection == settings.COLLECTION


def test_runtime_config_cli_overrides_env():
    cfg = load_runtime_config(
        {"MONGODB_URI": "mongodb://h", "MONGODB_DB": "qb", "MONGODB_COLLECTION": "Q"},
        db_name="other",
        collection="Questions2",
    )
    assert (cfg.db_name, cfg.collection) == ("other", "Questions2")


@pytest.mark.parametrize("env", [{}, {"MONGODB_URI": ""}, {"MONGODB_URI": "   "}])
def test_runtime_config_requires_uri(env):
    with pytest.raises(ConfigError, match="MONGODB_URI"):
        load_runtime_config(env)


def test_default_model_key_is_registered():
    assert settings.MODEL_KEY in settings.MODELS
    assert settings.PACING_SECONDS == 0.5
    assert settings.GROUP_FIELD == "chapter"


# -------------------- Question --------------------

def test_question_reads_the_formatter_fields():
    q = Question.model_validate({
        "_id": "abc",
        "question_text": "t",
        "answer": "a",
        "options": ["x", "y"],
        "chapter": "Algebra",
        "subject": "Maths",
    })
    assert q.id == "abc"
    assert q.options == ["x", "y"]
    assert not hasattr(q, "subject")


def test_question_is_lenient_about_missing_and_odd_values():
    q = Question.model_validate({"_id": 7, "question_text": None, "answer": 42, "options": [None, 3, "c"]})
    assert q.question_text == ""
    assert q.answer == "42"
    assert q.options == ["", "3", "c"]
    assert q.chapter is None


def test_question_missing_options_is_empty():
    q = Question.model_validate({"_id": "x", "options": None})
    assert q.options == []
    assert q.answer is None


def test_question_requires_id():
    with pytest.raises(ValidationError):
        Question.model_validate({"question_text": "t"})


def test_question_rejects_string_options():
    with pytest.raises(ValidationError):
        Question.model_validate({"_id": "x", "options": "a, b"})
