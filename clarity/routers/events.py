"""Raw event log listing for a website.

Read-only view of what the dedup gate accepted and where each event is in
the processing lifecycle.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..deps import get_owned_website
from ..models import ProcessingStatusEnum, Website
from ..services.event_ingestion import list_events

router = APIRouter(
    prefix="/websites/{website_id}/events",
    tags=["Events"],
    responses={
        401: {"model": schemas.ErrorResponse, "description": "Unauthorized"},
        404: {"model": schemas.ErrorResponse, "description": "Not Found"},
    },
)


@router.get("", response_model=schemas.EventLogListResponse, summary="List event logs")
def get_events(
    website: Website = Depends(get_owned_website),
    db: Session = Depends(get_db),
    status: Optional[ProcessingStatusEnum] = Query(None, description="Filter by processing status"),
    event_name: Optional[str] = Query(None, description="Filter by event name, e.g. Purchase"),
    limit: int = Query(100, ge=1, le=1000, description="Number of results to return"),
    offset: int = Query(0, ge=0, description="Number of results to skip"),
):
    events, total = list_events(
        db, website.id, status=status, event_name=event_name, limit=limit, offset=offset
    )
    return schemas.EventLogListResponse(events=events, total=total)
