"""
Noun declension and verb conjugation drills over the catalog
"""
from __future__ import annotations

import random
from typing import Optional

from sqlmodel import Session, select

from terve.errors import InvalidInputError
from terve.models import Noun, Verb
from terve.services.levels import levels_up_to

CASE_NAMES = ("nominative", "genitive", "partitive", "illative", "inessive",
              "elative", "allative", "adessive", "ablative")
NUMBERS = ("singular", "plural")
PERSONS = ("minä", "sinä", "hän", "me", "te", "he")
TENSES = ("present", "past", "conditional")
RANDOM = "random"

# column suffix used on the Verb model for each person
PERSON_COLUMNS = {"minä": "mina", "sinä": "sina", "hän": "han", "me": "me", "te": "te", "he": "he"}

CASE_EXPLANATIONS = {
    "nominative": "The nominative case is the basic form, used for the subject of a sentence.",
    "genitive": "The genitive case shows possession or is used after numbers and certain prepositions.",
    "partitive": "The partitive case is used for incomplete amounts, direct objects of negative "
                 "sentences, and after certain verbs.",
    "illative": "The illative case indicates motion into something (where to).",
    "inessive": "The inessive case indicates location inside something (where).",
    "elative": "The elative case indicates motion out of something (where from).",
    "allative": "The allative case indicates motion onto a surface (where to).",
    "adessive": "The adessive case indicates location on a surface (where).",
    "ablative": "The ablative case indicates motion away from a surface (where from).",
}

# Ending added to the stem for each tense and person
CONJUGATION_ENDINGS = {
    "present": ("-n", "-t", "vowel lengthening", "-mme", "-tte", "-vat/-vät"),
    "past": ("-in", "-it", "-i", "-imme", "-itte", "-ivat/-ivät"),
    "conditional": ("-isin", "-isit", "-isi", "-isimme", "-isitte", "-isivat/-isivät"),
}

CASES = [
    {"name": "Nominative", "finnish": "Nominatiivi", "usage": "Subject of sentence",
     "question": "Mikä? Kuka? (What? Who?)", "example": "Kissa juoksee (The cat runs)"},
    {"name": "Genitive", "finnish": "Genetiivi", "usage": "Possession, after numbers",
     "question": "Kenen? Minkä? (Whose? What of?)", "example": "Kissan häntä (The cat's tail)"},
    {"name": "Partitive", "finnish": "Partitiivi", "usage": "Incomplete amount, negative object",
     "question": "Mitä? Ketä? (What? Whom?)", "example": "Juo maitoa (Drink milk)"},
    {"name": "Illative", "finnish": "Illatiivi", "usage": "Motion into",
     "question": "Mihin? Keneen? (Into what? Into whom?)", "example": "Menen taloon (I go into the house)"},
    {"name": "Inessive", "finnish": "Inessiivi", "usage": "Location inside",
     "question": "Missä? Kenessä? (In what? In whom?)", "example": "Olen talossa (I am in the house)"},
    {"name": "Elative", "finnish": "Elatiivi", "usage": "Motion out of",
     "question": "Mistä? Kenestä? (Out of what? Out of whom?)", "example": "Tulen talosta (I come from the house)"},
    {"name": "Allative", "finnish": "Allatiivi", "usage": "Motion onto surface",
     "question": "Mille? Kenelle? (Onto what? To whom?)", "example": "Menen pöydälle (I go onto the table)"},
    {"name": "Adessive", "finnish": "Adessiivi", "usage": "Location on surface",
     "question": "Millä? Kenellä? (On what? On whom?)", "example": "Olen pöydällä (I am on the table)"},
    {"name": "Ablative", "finnish": "Ablatiivi", "usage": "Motion from surface",
     "question": "Miltä? Keneltä? (From what? From whom?)", "example": "Tulen pöydältä (I come from the table)"},
]


def _pick(value: str, choices, rng: random.Random, label: str) -> str:
    if value == RANDOM:
        return rng.choice(choices)
    if value not in choices:
        raise InvalidInputError(f"Unknown {label} '{value}'")
    return value


def _matches(answer: str, expected: str) -> bool:
    return answer.strip().lower() == expected.lower()


# ----------------- Nouns -----------------
def pick_noun(session: Session, level: str, rng: Optional[random.Random] = None) -> Optional[Noun]:
    """A random noun at or below the learner's level"""
    rng = rng or random.Random()
    allowed = [lvl.value for lvl in levels_up_to(level)]
    nouns = session.exec(select(Noun).where(Noun.cefr_level.in_(allowed)).order_by(Noun.id)).all()
    return rng.choice(nouns) if nouns else None


def declension_exercise(noun: Noun, case: str = RANDOM, number: str = RANDOM,
                        rng: Optional[random.Random] = None) -> dict:
    rng = rng or random.Random()
    case = _pick(case, CASE_NAMES, rng, "case")
    number = _pick(number, NUMBERS, rng, "number")
    return {
        "noun_id": noun.id,
        "nominative": noun.nominative,
        "english": noun.english,
        "case": case,
        "number": number,
        "prompt": f'Decline "{noun.nominative}" ({noun.english}) to {case} {number}:',
    }


def correct_declension(noun: Noun, case: str, number: str) -> str:
    if case not in CASE_NAMES or number not in NUMBERS:
        raise InvalidInputError(f"Unknown declension {case} {number}")
    if case == "nominative" and number == "singular":
        return noun.nominative
    suffix = "sg" if number == "singular" else "pl"
    return getattr(noun, f"{case}_{suffix}")


def declension_explanation(case: str, number: str) -> str:
    explanation = CASE_EXPLANATIONS.get(case, "This is a Finnish grammatical case.")
    if number == "plural":
        explanation += " The plural form adds specific endings."
    return explanation


def check_declension(noun: Noun, answer: str, case: str, number: str) -> dict:
    expected = correct_declension(noun, case, number)
    return {
        "correct": _matches(answer, expected),
        "correct_answer": expected,
        "explanation": declension_explanation(case, number),
    }


# ----------------- Verbs -----------------
def pick_verb(session: Session, level: str, rng: Optional[random.Random] = None) -> Optional[Verb]:
    """A random verb at or below the learner's level"""
    rng = rng or random.Random()
    allowed = [lvl.value for lvl in levels_up_to(level)]
    verbs = session.exec(select(Verb).where(Verb.cefr_level.in_(allowed)).order_by(Verb.id)).all()
    return rng.choice(verbs) if verbs else None


def conjugation_exercise(verb: Verb, tense: str = "present", person: str = RANDOM,
                         rng: Optional[random.Random] = None) -> dict:
    rng = rng or random.Random()
    tense = _pick(tense, TENSES, rng, "tense")
    person = _pick(person, PERSONS, rng, "person")
    return {
        "verb_id": verb.id,
        "infinitive": verb.infinitive,
        "english": verb.english,
        "verb_type": verb.verb_type,
        "tense": tense,
        "person": person,
        "prompt": f'Conjugate "{verb.infinitive}" ({verb.english}) for "{person}" in {tense} tense:',
    }


def correct_conjugation(verb: Verb, tense: str, person: str) -> str:
    if tense not in TENSES or person not in PERSONS:
        raise InvalidInputError(f"Unknown conjugation {tense} {person}")
    return getattr(verb, f"{tense}_{PERSON_COLUMNS[person]}")


def conjugation_explanation(verb: Verb, tense: str, person: str) -> str:
    ending = CONJUGATION_ENDINGS[tense][PERSONS.index(person)]
    return f'Type {verb.verb_type} verb in the {tense} tense: "{person}" takes {ending}.'


def check_conjugation(verb: Verb, answer: str, tense: str, person: str) -> dict:
    expected = correct_conjugation(verb, tense, person)
    return {
        "correct": _matches(answer, expected),
        "correct_answer": expected,
        "explanation": conjugation_explanation(verb, tense, person),
    }
