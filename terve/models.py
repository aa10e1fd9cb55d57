from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlmodel import Field, SQLModel
from sqlalchemy import Column, JSON, UniqueConstraint


WORD_CATEGORIES = ("learning", "well_known", "todo", "not_interested")
PASS_PERCENTAGE = 70


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to timestamps some database drivers hand back without a zone"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, unique=True)
    name: str
    hashed_password: str
    cefr_level: str = Field(default="A1", max_length=2)
    preferred_story_length: str = Field(default="medium")
    created_at: datetime = Field(default_factory=utc_now)


class Word(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    finnish: str = Field(index=True)
    english: str
    part_of_speech: str = Field(index=True)
    cefr_level: str = Field(index=True, max_length=2)
    commonality_rank: int = Field(default=0, index=True)
    difficulty: int = Field(default=1, description="1 (easy) to 5 (hard)")
    context: Optional[str] = None


class Noun(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    nominative: str
    english: str
    cefr_level: str = Field(index=True, max_length=2)
    noun_type: str
    genitive_sg: str
    partitive_sg: str
    illative_sg: str
    inessive_sg: str
    elative_sg: str
    allative_sg: str
    adessive_sg: str
    ablative_sg: str
    nominative_pl: str
    genitive_pl: str
    partitive_pl: str
    illative_pl: str
    inessive_pl: str
    elative_pl: str
    allative_pl: str
    adessive_pl: str
    ablative_pl: str


class Verb(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    infinitive: str
    english: str
    verb_type: int = Field(index=True, description="Finnish verb type 1-6")
    cefr_level: str = Field(index=True, max_length=2)
    present_mina: str
    present_sina: str
    present_han: str
    present_me: str
    present_te: str
    present_he: str
    past_mina: str
    past_sina: str
    past_han: str
    past_me: str
    past_te: str
    past_he: str
    conditional_mina: str
    conditional_sina: str
    conditional_han: str
    conditional_me: str
    conditional_te: str
    conditional_he: str


class UserWord(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("user_id", "word_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    word_id: int = Field(foreign_key="word.id")
    category: str = Field(default="learning", index=True)
    review_count: int = 0
    correct_count: int = 0
    last_reviewed_at: Optional[datetime] = None
    next_review_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def mastery_rate(self) -> float:
        if not self.review_count:
            return 0.0
        return self.correct_count / self.review_count

    @property
    def mastery_percentage(self) -> int:
        return round_half_up(self.mastery_rate * 100)


class ExamAttempt(SQLModel, table=True):
    """A generated exam kept until it is submitted or abandoned"""

    id: str = Field(primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    target_level: str = Field(max_length=2)
    time_limit_minutes: int
    questions: List[Dict] = Field(default_factory=list, sa_column=Column(JSON))
    status: str = Field(default="in_progress")
    started_at: datetime = Field(default_factory=utc_now)
    finished_at: Optional[datetime] = None


class ExamResult(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    exam_type: str = Field(default="mock_cefr")
    target_level: str = Field(index=True, max_length=2)
    score: int
    max_score: int
    questions_correct: int
    total_questions: int
    time_spent_minutes: int
    sections: Dict[str, Dict[str, int]] = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def percentage(self) -> int:
        if not self.max_score:
            return 0
        return round_half_up(self.score / self.max_score * 100)

    @property
    def passed(self) -> bool:
        return self.percentage >= PASS_PERCENTAGE
