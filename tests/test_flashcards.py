"""
Tests for spaced repetition scheduling and the learning pool
"""
import random
from datetime import datetime, timedelta, timezone

import pytest
from sqlmodel import select

from terve.errors import InvalidInputError, NotFoundError
from terve.models import UserWord, Word, as_utc
from terve.services import flashcards as cards

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def word_id(session, finnish):
    return session.exec(select(Word).where(Word.finnish == finnish)).one().id


def add_word(session, learner, finnish, **kwargs):
    record = UserWord(user_id=learner.id, word_id=word_id(session, finnish), **kwargs)
    session.add(record)
    session.commit()
    session.refresh(record)
    return record


class TestReviewSchedule:
    def test_review_interval_thresholds(self):
        assert cards.review_interval(0.0) == timedelta(hours=4)
        assert cards.review_interval(0.6) == timedelta(hours=4)
        assert cards.review_interval(0.61) == timedelta(hours=12)
        assert cards.review_interval(0.8) == timedelta(hours=12)
        assert cards.review_interval(0.81) == timedelta(hours=24)
        assert cards.review_interval(1.0) == timedelta(hours=24)

    def test_first_correct_answer_waits_a_day(self):
        record = cards.record_answer(UserWord(user_id=1, word_id=1), True, now=NOW)
        assert record.review_count == 1
        assert record.correct_count == 1
        assert record.last_reviewed_at == NOW
        assert record.next_review_at == NOW + timedelta(hours=24)
        assert record.mastery_percentage == 100

    def test_perfect_record_stays_on_daily_reviews(self):
        record = UserWord(user_id=1, word_id=1, review_count=4, correct_count=4)
        cards.record_answer(record, True, now=NOW)
        assert (record.review_count, record.correct_count) == (5, 5)
        assert record.mastery_rate == 1.0
        assert record.next_review_at - NOW == timedelta(hours=24)

    def test_incorrect_answer_keeps_correct_count(self):
        record = UserWord(user_id=1, word_id=1, review_count=3, correct_count=3)
        cards.record_answer(record, False, now=NOW)
        assert record.review_count == 4
        assert record.correct_count == 3
        # 3/4 = 0.75 is above 0.6 but not above 0.8
        assert record.next_review_at == NOW + timedelta(hours=12)
        assert record.mastery_percentage == 75

    def test_mastery_of_unreviewed_word(self):
        record = UserWord(user_id=1, word_id=1)
        assert record.mastery_rate == 0.0
        assert record.mastery_percentage == 0

    def test_mastery_percentage_rounds_half_up(self):
        # 1/8 = 12.5%
        assert UserWord(user_id=1, word_id=1, review_count=8, correct_count=1).mastery_percentage == 13

    def test_counts_stay_consistent(self):
        record = UserWord(user_id=1, word_id=1)
        rng = random.Random(7)
        for _ in range(50):
            cards.record_answer(record, rng.random() < 0.5, now=NOW)
            assert 0 <= record.correct_count <= record.review_count


class TestNextDueCard:
    def test_only_due_cards_in_category(self, session, catalog, learner):
        due = add_word(session, learner, "talo", next_review_at=NOW - timedelta(minutes=1))
        add_word(session, learner, "kissa", next_review_at=NOW + timedelta(hours=1))
        add_word(session, learner, "koira", category="todo")

        picks = {cards.next_due_card(session, learner.id, "learning", random.Random(i), NOW).id
                 for i in range(10)}
        assert picks == {due.id}

    def test_unscheduled_cards_are_due(self, session, catalog, learner):
        fresh = add_word(session, learner, "talo")
        assert cards.next_due_card(session, learner.id, now=NOW).id == fresh.id

    def test_answer_persists_schedule(self, session, catalog, learner):
        record = add_word(session, learner, "talo")
        assert record.created_at is not None

        cards.answer_card(session, learner.id, record.word_id, True, now=NOW)
        session.expire_all()
        stored = session.get(UserWord, record.id)
        assert as_utc(stored.last_reviewed_at) == NOW
        assert as_utc(stored.next_review_at) == NOW + timedelta(hours=24)
        assert cards.due_count(session, learner.id, now=NOW + timedelta(hours=23)) == 0
        assert cards.due_count(session, learner.id, now=NOW + timedelta(hours=24)) == 1

    def test_default_clock_is_utc(self, session, catalog, learner):
        record = cards.answer_card(session, learner.id, add_word(session, learner, "talo").word_id, False)
        assert UserWord(user_id=learner.id, word_id=record.word_id).created_at.tzinfo is not None
        assert cards.next_due_card(session, learner.id) is None
        assert cards.due_count(session, learner.id) == 0

    def test_nothing_due(self, session, catalog, learner):
        add_word(session, learner, "talo", next_review_at=NOW + timedelta(hours=4))
        assert cards.next_due_card(session, learner.id, now=NOW) is None
        assert cards.due_count(session, learner.id, now=NOW) == 0


class TestLearningPool:
    def test_target_complexity_defaults(self):
        assert cards.target_complexity([]) == ("A1", 1)

    def test_target_complexity(self):
        words = [
            Word(finnish="a", english="a", part_of_speech="noun", cefr_level="A2", difficulty=2),
            Word(finnish="b", english="b", part_of_speech="noun", cefr_level="A2", difficulty=3),
            Word(finnish="c", english="c", part_of_speech="noun", cefr_level="B1", difficulty=3),
        ]
        # mean difficulty 8/3 rounds to 3
        assert cards.target_complexity(words) == ("A2", 3)

    def test_seed_new_learner(self, session, catalog, learner):
        created = cards.seed_new_learner(session, learner.id)
        assert len(created) == 30
        assert cards.flashcard_stats(session, learner.id)["learning"] == 30

    def test_top_up_follows_recent_words(self, session, catalog, learner):
        add_word(session, learner, "matka")
        add_word(session, learner, "järvi")

        created = cards.top_up(session, learner.id)
        added = {session.get(Word, r.word_id).finnish for r in created}
        # A2 words with difficulty 1..3, most common first
        assert added == {"kaupunki", "työ", "haluta", "museo", "harrastus", "eilen"}

    def test_top_up_stops_at_pool_size(self, session, learner):
        for i in range(cards.LEARNING_POOL_SIZE):
            session.add(Word(finnish=f"sana{i}", english=f"word {i}", part_of_speech="noun",
                             cefr_level="A1", commonality_rank=i))
        session.add(Word(finnish="ylimääräinen", english="extra", part_of_speech="adjective",
                         cefr_level="A1", commonality_rank=500))
        session.commit()
        cards.seed_new_learner(session, learner.id)

        assert cards.top_up(session, learner.id) == []

    def test_moving_out_of_learning_tops_up(self, session, catalog, learner):
        cards.seed_new_learner(session, learner.id)
        before = cards.flashcard_stats(session, learner.id)

        cards.move_category(session, learner.id, word_id(session, "olla"), "well_known")
        after = cards.flashcard_stats(session, learner.id)

        assert after["well_known"] == 1
        # all 30 A1 words are owned, so there is nothing left to add
        assert after["learning"] == before["learning"] - 1

    def test_move_rejects_unknown_category(self, session, catalog, learner):
        add_word(session, learner, "talo")
        with pytest.raises(InvalidInputError):
            cards.move_category(session, learner.id, word_id(session, "talo"), "favourite")

    def test_move_unowned_word(self, session, catalog, learner):
        with pytest.raises(NotFoundError):
            cards.move_category(session, learner.id, word_id(session, "talo"), "todo")

    def test_add_word_once(self, session, catalog, learner):
        talo = word_id(session, "talo")
        assert cards.add_word(session, learner.id, talo) is not None
        assert cards.add_word(session, learner.id, talo) is None
        with pytest.raises(NotFoundError):
            cards.add_word(session, learner.id, 99999)

    def test_extract_vocabulary(self, session, catalog, learner):
        add_word(session, learner, "kissa")
        found = cards.extract_vocabulary(session, learner.id, "Kissa ja koira menevät kauppaan. Koira!")
        assert [w.finnish for w in found] == ["koira"]


class TestFlashcardEndpoints:
    def test_answer_flow(self, client, session, catalog, learner, auth_headers):
        add_word(session, learner, "talo")

        card = client.get("/flashcards/next", headers=auth_headers).json()["card"]
        assert card["finnish"] == "talo"

        response = client.post("/flashcards/answer", headers=auth_headers,
                               json={"word_id": card["word_id"], "correct": True})
        assert response.status_code == 200
        data = response.json()
        assert data["mastery_percentage"] == 100
        assert data["review_count"] == 1

        assert client.get("/flashcards/next", headers=auth_headers).json()["card"] is None
        stats = client.get("/flashcards/stats", headers=auth_headers).json()
        assert stats["learning"] == 1
        assert stats["due"] == 0

    def test_answer_unowned_word(self, client, session, catalog, auth_headers):
        response = client.post("/flashcards/answer", headers=auth_headers,
                               json={"word_id": word_id(session, "talo"), "correct": True})
        assert response.status_code == 404

    def test_add_and_move(self, client, session, catalog, auth_headers):
        talo = word_id(session, "talo")
        assert client.post("/flashcards/add", headers=auth_headers, json={"word_id": talo}).json()["added"]
        assert not client.post("/flashcards/add", headers=auth_headers, json={"word_id": talo}).json()["added"]

        response = client.post("/flashcards/move", headers=auth_headers,
                               json={"word_id": talo, "new_category": "nonsense"})
        assert response.status_code == 400

        response = client.post("/flashcards/move", headers=auth_headers,
                               json={"word_id": talo, "new_category": "todo"})
        assert response.json()["category"] == "todo"

        stats = client.get("/stats/flashcards", headers=auth_headers).json()
        assert stats["categories"]["todo"] == 1
