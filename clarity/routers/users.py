"""Current-user endpoints: profile, first-login registration, onboarding."""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..deps import get_current_user, get_session
from ..models import User
from ..services.clerk_session import ClerkSession

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["Users"],
    responses={
        401: {"model": schemas.ErrorResponse, "description": "Unauthorized"},
    },
)


@router.get("/me", response_model=schemas.UserOut, summary="Get current user")
def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post(
    "/me",
    response_model=schemas.UserOut,
    status_code=status.HTTP_201_CREATED,
    summary="Register the signed-in identity",
    description="""
    Creates the local user for the verified Clerk session on first login.

    Idempotent: when the user already exists it is returned unchanged with 200.
    """,
)
def register_me(
    payload: schemas.UserRegister,
    db: Session = Depends(get_db),
    session: ClerkSession = Depends(get_session),
):
    user = db.query(User).filter(User.clerk_id == session.user_id).first()
    if user:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content=schemas.UserOut.model_validate(user).model_dump(mode="json"),
        )

    user = User(clerk_id=session.user_id, email=payload.email, name=payload.name)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Concurrent first login for the same identity
        db.rollback()
        user = db.query(User).filter(User.clerk_id == session.user_id).one()
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content=schemas.UserOut.model_validate(user).model_dump(mode="json"),
        )
    db.refresh(user)

    logger.info("[USERS] Registered user %s (clerk_id=%s)", user.id, user.clerk_id)
    return user


@router.post("/me/onboarding", response_model=schemas.UserOut, summary="Update onboarding state")
def update_onboarding(
    payload: schemas.OnboardingUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    current_user.is_onboarded = payload.is_onboarded
    db.commit()
    db.refresh(current_user)
    return current_user
