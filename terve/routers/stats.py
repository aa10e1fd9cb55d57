from fastapi import APIRouter, Depends
from sqlmodel import Session

from terve.auth import get_current_user
from terve.db import get_session
from terve.models import User
from terve.services import exams, flashcards


router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("/flashcards")
def flashcard_progress(user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    counts = flashcards.flashcard_stats(session, user.id)
    total = counts["total"]
    known = counts["well_known"]
    return {
        "user_id": user.id,
        "categories": counts,
        "due": flashcards.due_count(session, user.id),
        "known_pct": round(known / total * 100.0, 2) if total else 0.0,
    }


@router.get("/exams")
def exam_progress(user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    return exams.detailed_stats(session, user.id)


@router.get("/exams/averages")
def exam_averages(user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    return {"user_id": user.id, "levels": exams.average_scores(session, user.id)}
