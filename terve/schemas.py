"""
Request and response models shared by the services and routers
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    FILL_BLANK = "fill_blank"
    MATCHING = "matching"
    TRUE_FALSE = "true_false"
    OPEN_ENDED = "open_ended"


class ExamSection(str, Enum):
    GRAMMAR = "grammar"
    VOCABULARY = "vocabulary"
    READING = "reading"
    LISTENING = "listening"


class LengthBand(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


# ----------------- Exams -----------------
class ExamQuestion(BaseModel):
    id: int = 0
    type: QuestionType
    section: ExamSection
    difficulty: str
    prompt: str
    options: Optional[List[str]] = None
    correct_answer: Any
    explanation: str
    points: int = Field(1, ge=0)


class ExamInstance(BaseModel):
    id: str
    target_level: str
    questions: List[ExamQuestion]
    time_limit_minutes: int
    sections: List[ExamSection] = Field(default_factory=lambda: list(ExamSection))


class ExamSessionState(BaseModel):
    """What the learner's session remembers between beginning and submitting an exam"""

    exam_id: str
    target_level: Optional[str] = None
    started_at: Optional[datetime] = None
    time_limit_minutes: int = 60


class SectionScore(BaseModel):
    score: int = 0
    max_score: int = 0


class QuestionFeedback(BaseModel):
    question_id: int
    correct: bool
    submitted_value: Any = None
    correct_answer: Any
    explanation: str


class GradedResult(BaseModel):
    score: int
    max_score: int
    questions_correct: int
    total_questions: int
    percentage: int
    passed: bool
    section_scores: Dict[str, SectionScore]
    feedback: List[QuestionFeedback]


class ExamBeginRequest(BaseModel):
    level: str = "A1"


class ExamSubmitRequest(BaseModel):
    exam_id: str
    answers: Dict[str, Any] = Field(default_factory=dict)


# ----------------- Reading -----------------
class StoryRequest(BaseModel):
    target_level: str = "A1"
    length_band: LengthBand = LengthBand.MEDIUM
    keywords: List[str] = Field(default_factory=list)


class GeneratedStory(BaseModel):
    id: str
    title: str
    content: str
    target_level: str
    word_count: int
    estimated_reading_minutes: int
    keywords: List[str] = Field(default_factory=list)


class ComprehensionQuestion(BaseModel):
    id: int
    type: QuestionType
    prompt: str
    options: Optional[List[str]] = None
    correct_answer: Any = None
    explanation: Optional[str] = None
    sample_answer: Optional[str] = None


class StoryGenerateRequest(BaseModel):
    length: Optional[LengthBand] = None
    keywords: str = Field("", description="Comma separated, at most three")


# ----------------- Flashcards & drills -----------------
class AnswerRequest(BaseModel):
    word_id: int
    correct: bool


class MoveRequest(BaseModel):
    word_id: int
    new_category: str


class AddWordRequest(BaseModel):
    word_id: int


class DrillCheckRequest(BaseModel):
    item_id: int
    answer: str
    form: str = Field(..., description="Case name for nouns, person for verbs")
    variant: str = Field(..., description="singular/plural for nouns, tense for verbs")


class ProfileUpdate(BaseModel):
    cefr_level: Optional[str] = None
    preferred_story_length: Optional[LengthBand] = None


# ----------------- Auth -----------------
class RegisterRequest(BaseModel):
    email: str
    password: str = Field(..., min_length=6)
    name: str
    cefr_level: str = "A1"


class LoginRequest(BaseModel):
    email: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str
