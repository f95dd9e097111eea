from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Question(BaseModel):
    """
    The slice of a question-bank document the formatter reads. Every other
    field (subject, exam_name, images, flags, ...) stays in the store untouched.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", arbitrary_types_allowed=True)

    id: Any = Field(alias="_id")
    question_text: str = ""
    answer: Optional[str] = None
    options: List[str] = Field(default_factory=list)
    chapter: Any = None

    @field_validator("question_text", mode="before")
    @classmethod
    def _text_or_empty(cls, v):
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    @field_validator("answer", mode="before")
    @classmethod
    def _answer_as_text(cls, v):
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @field_validator("options", mode="before")
    @classmethod
    def _options_as_text(cls, v):
        # keep the entry count: null entries become "", others are stringified
        if v is None:
            return []
        if isinstance(v, (str, bytes)) or not isinstance(v, (list, tuple)):
            raise ValueError("options must be a list")
        return ["" if o is None else (o if isinstance(o, str) else str(o)) for o in v]

    def __repr__(self):
        return f"< Question : {self.id} ({self.chapter}) >"
