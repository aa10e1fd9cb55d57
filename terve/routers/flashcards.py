from fastapi import APIRouter, Depends
from sqlmodel import Session
import structlog

from terve.auth import get_current_user
from terve.db import get_session
from terve.models import User
from terve.schemas import AddWordRequest, AnswerRequest, MoveRequest
from terve.services import flashcards as cards
from terve.services.monitoring import FLASHCARD_ANSWERS

logger = structlog.get_logger()

router = APIRouter(prefix="/flashcards", tags=["flashcards"])


@router.get("/stats")
def stats(user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    data = cards.flashcard_stats(session, user.id)
    data["due"] = cards.due_count(session, user.id)
    return data


@router.get("/next")
def next_card(category: str = "learning", user: User = Depends(get_current_user),
              session: Session = Depends(get_session)):
    record = cards.next_due_card(session, user.id, category)
    if record is None:
        return {"card": None, "message": "No cards due for review"}
    return {"card": cards.card_payload(session, record)}


@router.post("/answer")
def answer(body: AnswerRequest, user: User = Depends(get_current_user),
           session: Session = Depends(get_session)):
    record = cards.answer_card(session, user.id, body.word_id, body.correct)
    FLASHCARD_ANSWERS.labels(result="correct" if body.correct else "incorrect").inc()
    payload = cards.card_payload(session, record)
    payload["next_review_at"] = record.next_review_at.isoformat()
    return payload


@router.post("/move")
def move(body: MoveRequest, user: User = Depends(get_current_user),
         session: Session = Depends(get_session)):
    record = cards.move_category(session, user.id, body.word_id, body.new_category)
    logger.info("flashcard_moved", user_id=user.id, word_id=body.word_id, category=body.new_category)
    return cards.card_payload(session, record)


@router.post("/add")
def add(body: AddWordRequest, user: User = Depends(get_current_user),
        session: Session = Depends(get_session)):
    record = cards.add_word(session, user.id, body.word_id)
    if record is None:
        return {"added": False, "message": "Word is already in your collection"}
    return {"added": True, "card": cards.card_payload(session, record)}
