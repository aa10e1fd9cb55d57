import random

from fastapi import APIRouter, Depends, Request
from sqlmodel import Session
import structlog

from terve.auth import get_current_user
from terve.db import get_session
from terve.middleware.rate_limit import generation_limit
from terve.models import User
from terve.schemas import GeneratedStory, LengthBand, StoryGenerateRequest, StoryRequest
from terve.services.flashcards import extract_vocabulary
from terve.services.monitoring import STORIES_GENERATED
from terve.services.reading import generate_comprehension_questions, generate_story, parse_keywords

logger = structlog.get_logger()

router = APIRouter(prefix="/reading", tags=["reading"])


@router.post("/generate")
@generation_limit()
def generate(request: Request, body: StoryGenerateRequest, user: User = Depends(get_current_user),
             session: Session = Depends(get_session)):
    keywords = parse_keywords(body.keywords)
    length = body.length or LengthBand(user.preferred_story_length)
    story = generate_story(
        StoryRequest(target_level=user.cefr_level, length_band=length, keywords=keywords),
        rng=random.Random(),
    )
    STORIES_GENERATED.labels(level=story.target_level, length=length.value).inc()

    vocabulary = extract_vocabulary(session, user.id, story.content)
    return {
        "story": story.model_dump(mode="json"),
        "vocabulary": [
            {"id": w.id, "finnish": w.finnish, "english": w.english, "part_of_speech": w.part_of_speech}
            for w in vocabulary
        ],
    }


@router.post("/comprehension")
def comprehension(story: GeneratedStory, user: User = Depends(get_current_user)):
    questions = generate_comprehension_questions(story)
    logger.info("comprehension_questions_generated", user_id=user.id, story_id=story.id,
                questions=len(questions))
    return {"story_id": story.id, "questions": [q.model_dump(mode="json") for q in questions]}
