"""Pydantic models for quiz endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

Option = Literal["A", "B", "C", "D"]


class AnswerRequest(BaseModel):
    question_id: str
    selected_option: Option | None = None


class AnswerResponse(BaseModel):
    question_id: str
    selected_option: Option | None
    is_submitted: bool


class ScoreResponse(BaseModel):
    total_questions: int
    total_attempted: int
    total_correct: int
    score_percentage: float


class SubmissionResponse(BaseModel):
    id: str
    paper_name: str
    completed_at: datetime
    score: ScoreResponse


class ResultQuestionResponse(BaseModel):
    id: str
    question_no: int
    question: str
    option_a: str
    option_b: str
    option_c: str
    option_d: str
    correct_option: Option
    selected_option: Option | None = None
    is_correct: bool


class ResultsResponse(BaseModel):
    paper_name: str
    score: ScoreResponse
    questions: list[ResultQuestionResponse]


class ResetResponse(BaseModel):
    paper_name: str
    reset_count: int


class LeaderboardEntryResponse(BaseModel):
    rank: int
    user_id: str
    name: str
    score_percentage: float
    total_questions: int
    total_correct: int
    total_attempted: int
    completed_at: datetime
    is_current_user: bool


class LeaderboardResponse(BaseModel):
    paper_name: str
    entries: list[LeaderboardEntryResponse]
    total: int
