"""Website management endpoints.

A website belongs to exactly one user. Deleting it removes its connections
and event logs through the foreign-key cascades.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..deps import get_current_user, get_owned_website
from ..models import User, Website

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/websites",
    tags=["Websites"],
    responses={
        401: {"model": schemas.ErrorResponse, "description": "Unauthorized"},
        404: {"model": schemas.ErrorResponse, "description": "Not Found"},
    },
)


@router.post(
    "",
    response_model=schemas.WebsiteOut,
    status_code=status.HTTP_201_CREATED,
    summary="Register a website",
)
def create_website(
    payload: schemas.WebsiteCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    website = Website(
        user_id=current_user.id,
        url=payload.url,
        name=payload.name,
        currency=payload.currency,
        timezone=payload.timezone,
    )
    db.add(website)
    db.commit()
    db.refresh(website)

    logger.info("[WEBSITES] User %s created website %s (%s)", current_user.id, website.id, website.url)
    return website


@router.get("", response_model=List[schemas.WebsiteOut], summary="List my websites")
def list_websites(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return (
        db.query(Website)
        .filter(Website.user_id == current_user.id)
        .order_by(Website.created_at, Website.id)
        .all()
    )


@router.get("/{website_id}", response_model=schemas.WebsiteDetail, summary="Get a website and its connections")
def get_website(website: Website = Depends(get_owned_website)):
    detail = schemas.WebsiteDetail.model_validate(website, from_attributes=True)
    detail.connections = [schemas.ConnectionOut.from_model(c) for c in website.connections]
    return detail


@router.delete(
    "/{website_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a website",
    description="Removes the website together with its connections and event logs.",
)
def delete_website(
    website: Website = Depends(get_owned_website),
    db: Session = Depends(get_db),
):
    website_id = website.id
    db.delete(website)
    db.commit()
    logger.info("[WEBSITES] Deleted website %s", website_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
