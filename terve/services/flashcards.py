"""
Spaced repetition scheduling and learning pool maintenance for flashcards
"""
from __future__ import annotations

import random
import re
from collections import Counter
from datetime import datetime, timedelta
from typing import List, Optional

import structlog
from sqlalchemy import func, or_
from sqlmodel import Session, select

from terve.errors import InvalidInputError, NotFoundError
from terve.models import WORD_CATEGORIES, UserWord, Word, round_half_up, utc_now
from terve.services.levels import DEFAULT_LEVEL

logger = structlog.get_logger()

LEARNING_POOL_SIZE = 100
TOP_UP_BATCH = 10
RECENT_WORDS_WINDOW = 10
MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5

SHORT_INTERVAL = timedelta(hours=4)
MEDIUM_INTERVAL = timedelta(hours=12)
LONG_INTERVAL = timedelta(hours=24)


def review_interval(mastery_rate: float) -> timedelta:
    """Time until the next review; both thresholds are exclusive"""
    if mastery_rate > 0.8:
        return LONG_INTERVAL
    if mastery_rate > 0.6:
        return MEDIUM_INTERVAL
    return SHORT_INTERVAL


def record_answer(record: UserWord, was_correct: bool, now: Optional[datetime] = None) -> UserWord:
    now = now or utc_now()
    record.review_count += 1
    if was_correct:
        record.correct_count += 1
    record.last_reviewed_at = now
    record.next_review_at = now + review_interval(record.mastery_rate)
    return record


def _owned(session: Session, user_id: int, word_id: int) -> Optional[UserWord]:
    return session.exec(
        select(UserWord).where(UserWord.user_id == user_id, UserWord.word_id == word_id)
    ).first()


def get_user_word(session: Session, user_id: int, word_id: int) -> UserWord:
    record = _owned(session, user_id, word_id)
    if record is None:
        raise NotFoundError(f"Word {word_id} is not in your collection")
    return record


def answer_card(session: Session, user_id: int, word_id: int, was_correct: bool,
                now: Optional[datetime] = None) -> UserWord:
    record = record_answer(get_user_word(session, user_id, word_id), was_correct, now=now)
    session.add(record)
    session.commit()
    session.refresh(record)
    logger.info(
        "flashcard_answer_recorded",
        user_id=user_id,
        word_id=word_id,
        correct=was_correct,
        mastery=record.mastery_percentage,
        next_review_at=record.next_review_at.isoformat(),
    )
    return record


def next_due_card(session: Session, user_id: int, category: str = "learning",
                  rng: Optional[random.Random] = None,
                  now: Optional[datetime] = None) -> Optional[UserWord]:
    """Pick one due card of the category uniformly at random"""
    rng = rng or random.Random()
    now = now or utc_now()
    eligible = session.exec(
        select(UserWord)
        .where(UserWord.user_id == user_id, UserWord.category == category)
        .where(or_(UserWord.next_review_at.is_(None), UserWord.next_review_at <= now))
        .order_by(UserWord.id)
    ).all()
    if not eligible:
        return None
    return rng.choice(eligible)


def due_count(session: Session, user_id: int, now: Optional[datetime] = None) -> int:
    now = now or utc_now()
    return session.exec(
        select(func.count())
        .select_from(UserWord)
        .where(UserWord.user_id == user_id, UserWord.category == "learning")
        .where(or_(UserWord.next_review_at.is_(None), UserWord.next_review_at <= now))
    ).one()


def flashcard_stats(session: Session, user_id: int) -> dict:
    rows = session.exec(
        select(UserWord.category, func.count())
        .where(UserWord.user_id == user_id)
        .group_by(UserWord.category)
    ).all()
    stats = {category: 0 for category in WORD_CATEGORIES}
    for category, total in rows:
        stats[category] = total
    stats["total"] = sum(stats[c] for c in WORD_CATEGORIES)
    return stats


def target_complexity(words: List[Word]) -> tuple[str, int]:
    """Most frequent CEFR level and rounded mean difficulty of the given words"""
    if not words:
        return DEFAULT_LEVEL.value, MIN_DIFFICULTY
    # Counter keeps first-seen order, so ties go to the most recently added level
    level = Counter(w.cefr_level for w in words).most_common(1)[0][0]
    difficulty = round_half_up(sum(w.difficulty for w in words) / len(words))
    return level, difficulty


def _learning_count(session: Session, user_id: int) -> int:
    return session.exec(
        select(func.count())
        .select_from(UserWord)
        .where(UserWord.user_id == user_id, UserWord.category == "learning")
    ).one()


def _add_to_learning(session: Session, user_id: int, words: List[Word]) -> List[UserWord]:
    created = [UserWord(user_id=user_id, word_id=w.id, category="learning") for w in words]
    for record in created:
        session.add(record)
    session.commit()
    return created


def top_up(session: Session, user_id: int) -> List[UserWord]:
    """Keep the learning pool near its target size with words of similar complexity"""
    current = _learning_count(session, user_id)
    if current >= LEARNING_POOL_SIZE:
        return []
    wanted = min(TOP_UP_BATCH, LEARNING_POOL_SIZE - current)

    recent = session.exec(
        select(Word)
        .join(UserWord, UserWord.word_id == Word.id)
        .where(UserWord.user_id == user_id)
        .order_by(UserWord.created_at.desc(), UserWord.id.desc())
        .limit(RECENT_WORDS_WINDOW)
    ).all()
    level, difficulty = target_complexity(list(recent))

    owned = select(UserWord.word_id).where(UserWord.user_id == user_id)
    candidates = session.exec(
        select(Word)
        .where(Word.id.not_in(owned))
        .where(Word.cefr_level == level)
        .where(Word.difficulty >= max(MIN_DIFFICULTY, difficulty - 1))
        .where(Word.difficulty <= min(MAX_DIFFICULTY, difficulty + 1))
        .order_by(Word.commonality_rank, Word.id)
        .limit(wanted)
    ).all()

    created = _add_to_learning(session, user_id, list(candidates))
    logger.info("learning_pool_topped_up", user_id=user_id, level=level,
                difficulty=difficulty, added=len(created), pool_size=current + len(created))
    return created


def seed_new_learner(session: Session, user_id: int) -> List[UserWord]:
    """Start a new learner with the most common beginner words"""
    words = session.exec(
        select(Word)
        .where(Word.cefr_level == DEFAULT_LEVEL.value)
        .order_by(Word.commonality_rank, Word.id)
        .limit(LEARNING_POOL_SIZE)
    ).all()
    created = _add_to_learning(session, user_id, list(words))
    logger.info("learner_seeded", user_id=user_id, words=len(created))
    return created


def add_word(session: Session, user_id: int, word_id: int) -> Optional[UserWord]:
    """Add a catalog word to the learning pile; None when it is already owned"""
    if session.get(Word, word_id) is None:
        raise NotFoundError(f"Word {word_id} not found")
    if _owned(session, user_id, word_id) is not None:
        return None
    record = UserWord(user_id=user_id, word_id=word_id, category="learning")
    session.add(record)
    session.commit()
    session.refresh(record)
    return record


def move_category(session: Session, user_id: int, word_id: int, new_category: str) -> UserWord:
    if new_category not in WORD_CATEGORIES:
        raise InvalidInputError(f"Unknown category '{new_category}'")
    record = get_user_word(session, user_id, word_id)
    old_category = record.category
    record.category = new_category
    session.add(record)
    session.commit()
    session.refresh(record)

    if old_category == "learning" and new_category != "learning":
        top_up(session, user_id)
    return record


def extract_vocabulary(session: Session, user_id: int, text: str, limit: int = 10) -> List[Word]:
    """Catalog words used in a text that the learner has not collected yet"""
    tokens = {t for t in re.sub(r"[^\w\s]", " ", text.lower()).split() if len(t) > 3}
    if not tokens:
        return []
    owned = select(UserWord.word_id).where(UserWord.user_id == user_id)
    return list(session.exec(
        select(Word)
        .where(Word.finnish.in_(tokens))
        .where(Word.id.not_in(owned))
        .order_by(Word.commonality_rank)
        .limit(limit)
    ).all())


def card_payload(session: Session, record: UserWord) -> dict:
    word = session.get(Word, record.word_id)
    return {
        "id": record.id,
        "word_id": record.word_id,
        "finnish": word.finnish,
        "english": word.english,
        "part_of_speech": word.part_of_speech,
        "context": word.context,
        "category": record.category,
        "mastery_percentage": record.mastery_percentage,
        "review_count": record.review_count,
    }
