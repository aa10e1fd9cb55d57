from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select
import structlog

from terve.db import get_session
from terve.models import User
from terve.auth import (
    get_password_hash, verify_password, create_access_token, create_refresh_token,
    refresh_access_token, get_current_user,
)
from terve.errors import InvalidInputError
from terve.schemas import LoginRequest, ProfileUpdate, RefreshRequest, RegisterRequest
from terve.services.flashcards import seed_new_learner
from terve.services.levels import parse_level

logger = structlog.get_logger()

router = APIRouter(prefix="/auth", tags=["auth"])


def user_payload(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "cefr_level": user.cefr_level,
        "preferred_story_length": user.preferred_story_length,
    }


def _tokens(user: User) -> dict:
    return {
        "access_token": create_access_token(str(user.id)),
        "refresh_token": create_refresh_token(str(user.id)),
        "token_type": "bearer",
        "user": user_payload(user),
    }


@router.post("/register")
def register(body: RegisterRequest, session: Session = Depends(get_session)):
    existing = session.exec(select(User).where(User.email == body.email)).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
    level = parse_level(body.cefr_level)
    if level is None:
        raise InvalidInputError(f"Unknown level '{body.cefr_level}'")
    user = User(email=body.email, name=body.name, cefr_level=level.value,
                hashed_password=get_password_hash(body.password))
    session.add(user)
    session.commit()
    session.refresh(user)
    seed_new_learner(session, user.id)
    logger.info("user_registered", user_id=user.id, level=user.cefr_level)
    return _tokens(user)


@router.post("/login")
def login(body: LoginRequest, session: Session = Depends(get_session)):
    user = session.exec(select(User).where(User.email == body.email)).first()
    if not user or not verify_password(body.password, user.hashed_password):
        logger.warning("login_failed", email=body.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return _tokens(user)


@router.post("/refresh")
def refresh(body: RefreshRequest):
    token = refresh_access_token(body.refresh_token)
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")
    return {"access_token": token, "token_type": "bearer"}


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return user_payload(user)


@router.patch("/me")
def update_me(body: ProfileUpdate, user: User = Depends(get_current_user),
              session: Session = Depends(get_session)):
    if body.cefr_level is not None:
        level = parse_level(body.cefr_level)
        if level is None:
            raise InvalidInputError(f"Unknown level '{body.cefr_level}'")
        user.cefr_level = level.value
    if body.preferred_story_length is not None:
        user.preferred_story_length = body.preferred_story_length.value
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("profile_updated", user_id=user.id, level=user.cefr_level,
                story_length=user.preferred_story_length)
    return user_payload(user)
