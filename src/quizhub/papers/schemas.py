"""Request/response schemas for paper and question endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

Option = Literal["A", "B", "C", "D"]


class PaperResponse(BaseModel):
    paper_name: str
    question_count: int
    created_at: datetime | None = None


class PaperListResponse(BaseModel):
    papers: list[PaperResponse]
    total: int


class QuizQuestionResponse(BaseModel):
    """A question as shown while taking the quiz, without its correct option."""

    id: str
    question_no: int
    question: str
    option_a: str
    option_b: str
    option_c: str
    option_d: str
    selected_option: Option | None = None
    is_submitted: bool = False


class QuizQuestionsResponse(BaseModel):
    paper_name: str
    questions: list[QuizQuestionResponse]
    answered: int
    total: int


class QuestionUpload(BaseModel):
    """One question to add. Every text field must be non-blank."""

    paper_name: str = Field(..., min_length=1, max_length=200)
    question_no: int = Field(..., ge=1)
    question: str = Field(..., min_length=1)
    option_a: str = Field(..., min_length=1)
    option_b: str = Field(..., min_length=1)
    option_c: str = Field(..., min_length=1)
    option_d: str = Field(..., min_length=1)
    correct_option: Option

    @field_validator("paper_name", "question", "option_a", "option_b", "option_c", "option_d", mode="before")
    @classmethod
    def strip_text(cls, v: object) -> object:
        """Strip surrounding whitespace so blank values fail min_length."""
        return v.strip() if isinstance(v, str) else v


class QuestionUploadRequest(BaseModel):
    questions: list[QuestionUpload] = Field(..., min_length=1)


class QuestionUploadResponse(BaseModel):
    inserted: int
    papers_created: list[str]
