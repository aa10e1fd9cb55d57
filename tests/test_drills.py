"""
Tests for noun declension and verb conjugation drills
"""
import random

import pytest
from sqlmodel import select

from terve.errors import InvalidInputError
from terve.models import Noun, Verb
from terve.services import drills


@pytest.fixture
def talo(session, catalog):
    return session.exec(select(Noun).where(Noun.nominative == "talo")).one()


@pytest.fixture
def puhua(session, catalog):
    return session.exec(select(Verb).where(Verb.infinitive == "puhua")).one()


class TestDeclension:
    @pytest.mark.parametrize("case,number,expected", [
        ("nominative", "singular", "talo"),
        ("nominative", "plural", "talot"),
        ("inessive", "singular", "talossa"),
        ("illative", "plural", "taloihin"),
        ("ablative", "plural", "taloilta"),
    ])
    def test_correct_declension(self, talo, case, number, expected):
        assert drills.correct_declension(talo, case, number) == expected

    def test_check_is_trimmed_and_case_insensitive(self, talo):
        result = drills.check_declension(talo, "  Talossa ", "inessive", "singular")
        assert result["correct"]
        assert result["correct_answer"] == "talossa"
        assert "inside" in result["explanation"]

    def test_wrong_answer(self, talo):
        result = drills.check_declension(talo, "talosta", "inessive", "plural")
        assert not result["correct"]
        assert result["correct_answer"] == "taloissa"
        assert result["explanation"].endswith("The plural form adds specific endings.")

    def test_unknown_case(self, talo):
        with pytest.raises(InvalidInputError):
            drills.correct_declension(talo, "essive", "singular")
        with pytest.raises(InvalidInputError):
            drills.declension_exercise(talo, "essive", "singular")

    def test_random_exercise(self, talo):
        exercise = drills.declension_exercise(talo, rng=random.Random(4))
        assert exercise["case"] in drills.CASE_NAMES
        assert exercise["number"] in drills.NUMBERS
        assert exercise["nominative"] in exercise["prompt"]

    def test_pick_noun_respects_level(self, session, catalog):
        for seed in range(20):
            noun = drills.pick_noun(session, "A1", random.Random(seed))
            assert noun.cefr_level == "A1"


class TestConjugation:
    def test_correct_conjugation(self, puhua):
        assert drills.correct_conjugation(puhua, "present", "minä") == "puhun"
        assert drills.correct_conjugation(puhua, "past", "he") == "puhuivat"
        assert drills.correct_conjugation(puhua, "conditional", "te") == "puhuisitte"

    def test_check_conjugation(self, puhua):
        result = drills.check_conjugation(puhua, "Puhumme", "present", "me")
        assert result["correct"]
        assert "-mme" in result["explanation"]

    def test_unknown_person(self, puhua):
        with pytest.raises(InvalidInputError):
            drills.correct_conjugation(puhua, "present", "you")

    def test_pick_verb_without_catalog(self, session):
        assert drills.pick_verb(session, "C2", random.Random(1)) is None


class TestDrillEndpoints:
    def test_noun_practice_and_check(self, client, auth_headers, talo):
        exercise = client.get("/nouns/practice", headers=auth_headers,
                              params={"case": "partitive", "number": "singular"}).json()
        assert exercise["case"] == "partitive"

        response = client.post("/nouns/check", headers=auth_headers, json={
            "item_id": talo.id, "answer": "taloa", "form": "partitive", "variant": "singular",
        })
        assert response.json()["correct"]

    def test_verb_check(self, client, auth_headers, puhua):
        response = client.post("/verbs/check", headers=auth_headers, json={
            "item_id": puhua.id, "answer": "puhuin", "form": "minä", "variant": "past",
        })
        assert response.json() == {
            "correct": True,
            "correct_answer": "puhuin",
            "explanation": 'Type 1 verb in the past tense: "minä" takes -in.',
        }

    def test_unknown_tense(self, client, auth_headers, catalog):
        response = client.get("/verbs/practice", headers=auth_headers, params={"tense": "future"})
        assert response.status_code == 400

    def test_missing_noun(self, client, auth_headers, catalog):
        response = client.post("/nouns/check", headers=auth_headers, json={
            "item_id": 999, "answer": "x", "form": "partitive", "variant": "singular",
        })
        assert response.status_code == 404

    def test_cases_reference(self, client):
        cases = client.get("/nouns/cases").json()["cases"]
        assert len(cases) == 9
        assert cases[0]["name"] == "Nominative"
