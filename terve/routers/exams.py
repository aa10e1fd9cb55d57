from fastapi import APIRouter, Depends, Request
from sqlmodel import Session
import structlog

from terve.auth import get_current_user
from terve.db import get_session
from terve.middleware.rate_limit import generation_limit
from terve.models import User
from terve.schemas import ExamBeginRequest, ExamInstance, ExamSessionState, ExamSubmitRequest
from terve.services import exams
from terve.services.cache import cache
from terve.services.monitoring import EXAMS_GRADED

logger = structlog.get_logger()

router = APIRouter(prefix="/exams", tags=["exams"])

# Cached session outlives the longest time limit so an overdue submit is still recognised
SESSION_TTL_SECONDS = 3 * 60 * 60


def session_key(user_id: int) -> str:
    return f"exam_session:{user_id}"


def load_session_state(user_id: int):
    raw = cache.get(session_key(user_id))
    return ExamSessionState.model_validate(raw) if raw else None


def public_exam(instance: ExamInstance) -> dict:
    """The exam as shown to the learner, without answers"""
    return {
        "id": instance.id,
        "target_level": instance.target_level,
        "time_limit_minutes": instance.time_limit_minutes,
        "sections": [s.value for s in instance.sections],
        "questions": [
            q.model_dump(mode="json", exclude={"correct_answer", "explanation"})
            for q in instance.questions
        ],
    }


@router.get("/levels/{level}")
def level_overview(level: str):
    return {
        "level": level,
        "time_limit_minutes": exams.time_limit_for(level),
        **exams.level_info(level),
    }


@router.post("/begin")
@generation_limit()
def begin(request: Request, body: ExamBeginRequest, user: User = Depends(get_current_user),
          session: Session = Depends(get_session)):
    instance, state = exams.begin_exam(session, user.id, body.level)
    cache.set(session_key(user.id), state.model_dump(mode="json"), expire=SESSION_TTL_SECONDS)
    return public_exam(instance)


@router.post("/submit")
def submit(body: ExamSubmitRequest, user: User = Depends(get_current_user),
           session: Session = Depends(get_session)):
    state = load_session_state(user.id)
    try:
        result, graded = exams.submit_exam(session, user.id, body.exam_id, body.answers, state)
    finally:
        # a session is single use once it has been presented with its own exam
        if state is not None and state.exam_id == body.exam_id:
            cache.delete(session_key(user.id))
    EXAMS_GRADED.labels(level=result.target_level, passed=str(graded.passed).lower()).inc()
    return {
        "result_id": result.id,
        **graded.model_dump(mode="json"),
        "time_spent_minutes": result.time_spent_minutes,
    }


@router.get("/results/{result_id}")
def result(result_id: int, user: User = Depends(get_current_user),
           session: Session = Depends(get_session)):
    return exams.result_payload(exams.get_result(session, user.id, result_id))


@router.get("/history")
def exam_history(page: int = 1, user: User = Depends(get_current_user),
                 session: Session = Depends(get_session)):
    return exams.history(session, user.id, page=max(page, 1))
