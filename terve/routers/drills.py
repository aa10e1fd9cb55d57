from fastapi import APIRouter, Depends
from sqlmodel import Session
import structlog

from terve.auth import get_current_user
from terve.db import get_session
from terve.errors import NotFoundError
from terve.models import Noun, User, Verb
from terve.schemas import DrillCheckRequest
from terve.services import drills

logger = structlog.get_logger()

nouns_router = APIRouter(prefix="/nouns", tags=["nouns"])
verbs_router = APIRouter(prefix="/verbs", tags=["verbs"])


# ----------------- Nouns -----------------
@nouns_router.get("/practice")
def noun_practice(case: str = drills.RANDOM, number: str = drills.RANDOM,
                  user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    noun = drills.pick_noun(session, user.cefr_level)
    if noun is None:
        raise NotFoundError("No nouns available for your level")
    return drills.declension_exercise(noun, case, number)


@nouns_router.post("/check")
def noun_check(body: DrillCheckRequest, user: User = Depends(get_current_user),
               session: Session = Depends(get_session)):
    noun = session.get(Noun, body.item_id)
    if noun is None:
        raise NotFoundError(f"Noun {body.item_id} not found")
    result = drills.check_declension(noun, body.answer, body.form, body.variant)
    logger.info("declension_checked", user_id=user.id, noun_id=noun.id, case=body.form,
                number=body.variant, correct=result["correct"])
    return result


@nouns_router.get("/cases")
def cases():
    return {"cases": drills.CASES}


# ----------------- Verbs -----------------
@verbs_router.get("/practice")
def verb_practice(tense: str = "present", person: str = drills.RANDOM,
                  user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    verb = drills.pick_verb(session, user.cefr_level)
    if verb is None:
        raise NotFoundError("No verbs available for your level")
    return drills.conjugation_exercise(verb, tense, person)


@verbs_router.post("/check")
def verb_check(body: DrillCheckRequest, user: User = Depends(get_current_user),
               session: Session = Depends(get_session)):
    verb = session.get(Verb, body.item_id)
    if verb is None:
        raise NotFoundError(f"Verb {body.item_id} not found")
    result = drills.check_conjugation(verb, body.answer, body.variant, body.form)
    logger.info("conjugation_checked", user_id=user.id, verb_id=verb.id, tense=body.variant,
                person=body.form, correct=result["correct"])
    return result
