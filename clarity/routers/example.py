"""Example RPC surface used by the frontend to smoke-test the API.

- hello: public query
- secret-message: authenticated query
- test-user: authenticated mutation that inserts a user for the session
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..deps import get_session
from ..models import User
from ..services.clerk_session import ClerkSession

logger = logging.getLogger(__name__)

TEST_USER_NAME = "Test User"

router = APIRouter(
    prefix="/api/example",
    tags=["Example"],
    responses={
        401: {"model": schemas.ErrorResponse, "description": "Unauthorized"},
        422: {"model": schemas.ValidationErrorResponse, "description": "Validation Error"},
    },
)


@router.get("/hello", response_model=schemas.HelloResponse, summary="Public greeting")
def hello(text: str = Query(..., description="Name to greet")):
    return schemas.HelloResponse(greeting=f"Hello {text}, welcome to ClarityTracking v2!")


@router.get("/secret-message", response_model=str, summary="Authenticated greeting")
def secret_message(session: ClerkSession = Depends(get_session)):
    return f"You are logged in! Your user ID is {session.user_id}"


@router.post(
    "/test-user",
    response_model=schemas.SuccessResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user row for the current session",
    responses={409: {"model": schemas.ErrorResponse, "description": "User already exists"}},
)
def create_test_user(
    payload: schemas.ExampleUserCreate,
    db: Session = Depends(get_db),
    session: ClerkSession = Depends(get_session),
):
    """Insert a user keyed by the session's Clerk id.

    The session dependency runs first, so an anonymous call is rejected with
    401 before anything is written.
    """
    existing = db.query(User).filter(User.clerk_id == session.user_id).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")

    db.add(User(clerk_id=session.user_id, email=payload.email, name=TEST_USER_NAME))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already exists")

    logger.info("[EXAMPLE] Created test user for clerk_id=%s", session.user_id)
    return schemas.SuccessResponse(success=True)
