"""Admin routes for reading and deleting contact messages."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from securecontact.admin.schemas import (
    DeleteResponse,
    MessageFilters,
    MessageListResponse,
    MessageOut,
    Pagination,
)
from securecontact.admin.service import DEFAULT_PAGE_SIZE, AdminQueryService
from securecontact.auth.dependencies import verify_admin
from securecontact.shared.database import get_db

router = APIRouter(prefix="/api/messages", tags=["admin"])


def get_admin_service(request: Request) -> AdminQueryService:
    return request.app.state.admin_service


@router.get("", response_model=MessageListResponse, status_code=status.HTTP_200_OK)
async def list_messages(
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_SIZE),
    quarantined: Optional[bool] = Query(None),
    admin: dict = Depends(verify_admin),
    db: Session = Depends(get_db),
    service: AdminQueryService = Depends(get_admin_service),
):
    """
    List messages newest first.

    Query parameters:
    - page: 1-based page number
    - limit: messages per page (1-100)
    - quarantined: true for quarantined messages only, false for unflagged only
    """
    # Decrypting a page runs one key derivation per row
    result = await run_in_threadpool(
        service.list_messages, db, page=page, page_size=limit, quarantined=quarantined
    )
    return MessageListResponse(
        items=[MessageOut(**item.model_dump()) for item in result.items],
        pagination=Pagination(
            current_page=result.page,
            total_pages=result.total_pages,
            total_messages=result.total_count,
            limit=result.page_size,
        ),
        filters=MessageFilters(
            quarantined=quarantined,
            encryption_enabled=bool(service.encryption_key),
        ),
    )


@router.delete("/{message_id}", response_model=DeleteResponse, status_code=status.HTTP_200_OK)
async def delete_message(
    message_id: str,
    admin: dict = Depends(verify_admin),
    db: Session = Depends(get_db),
    service: AdminQueryService = Depends(get_admin_service),
):
    """Delete a message by id. 400 for a malformed id, 404 if it does not exist."""
    service.delete_message(db, message_id)
    return DeleteResponse()
