"""Platform connection endpoints, nested under a website.

Access tokens are accepted on create/activate, stored encrypted, and never
returned; responses only say whether one is on file (`has_access_token`).
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..deps import get_owned_website
from ..models import Connection, Website
from ..services.connection_service import create_connection, set_connection_active

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/websites/{website_id}/connections",
    tags=["Connections"],
    responses={
        401: {"model": schemas.ErrorResponse, "description": "Unauthorized"},
        404: {"model": schemas.ErrorResponse, "description": "Not Found"},
        422: {"model": schemas.ValidationErrorResponse, "description": "Validation Error"},
    },
)


def _get_connection(db: Session, website: Website, connection_id: int) -> Connection:
    connection = (
        db.query(Connection)
        .filter(Connection.id == connection_id, Connection.website_id == website.id)
        .first()
    )
    if not connection:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Connection not found")
    return connection


@router.post(
    "",
    response_model=schemas.ConnectionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Connect a platform",
    description="""
    Attach a source or destination platform to the website.

    The `config` shape depends on `platform`:
    - meta: {"pixel_id": "123...", "test_event_code": "TEST..."}
    - shopify: {"shop_domain": "store.myshopify.com"}
    - tiktok: {"pixel_code": "C..."}
    """,
)
def add_connection(
    payload: schemas.ConnectionCreate,
    website: Website = Depends(get_owned_website),
    db: Session = Depends(get_db),
):
    connection = create_connection(
        db,
        website,
        platform=payload.platform,
        config=payload.config.model_dump(exclude_none=True),
        type=payload.type,
        access_token=payload.access_token,
    )
    return schemas.ConnectionOut.from_model(connection)


@router.get("", response_model=List[schemas.ConnectionOut], summary="List connections")
def list_connections(
    website: Website = Depends(get_owned_website),
    db: Session = Depends(get_db),
    active: Optional[bool] = None,
):
    query = db.query(Connection).filter(Connection.website_id == website.id)
    if active is not None:
        query = query.filter(Connection.is_active == active)
    return [schemas.ConnectionOut.from_model(c) for c in query.order_by(Connection.id).all()]


@router.post(
    "/{connection_id}/deactivate",
    response_model=schemas.ConnectionOut,
    summary="Deactivate a connection",
    description="Stops routing events through this connection and discards its stored access token.",
)
def deactivate_connection(
    connection_id: int,
    website: Website = Depends(get_owned_website),
    db: Session = Depends(get_db),
):
    connection = _get_connection(db, website, connection_id)
    return schemas.ConnectionOut.from_model(set_connection_active(db, connection, False))


@router.post(
    "/{connection_id}/activate",
    response_model=schemas.ConnectionOut,
    summary="Reactivate a connection",
)
def activate_connection(
    connection_id: int,
    website: Website = Depends(get_owned_website),
    db: Session = Depends(get_db),
    access_token: Optional[str] = Body(default=None, embed=True, min_length=1),
):
    connection = _get_connection(db, website, connection_id)
    return schemas.ConnectionOut.from_model(
        set_connection_active(db, connection, True, access_token=access_token)
    )
