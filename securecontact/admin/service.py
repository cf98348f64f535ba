"""Admin queries over stored messages: paginated listing, deletion and counters."""

import logging
import math
import uuid
from datetime import timedelta
from typing import Dict, List, Optional

from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.orm import Session

from securecontact.contact.database import Message
from securecontact.security.encryption import decode_message
from securecontact.shared.database import utcnow
from securecontact.shared.errors import NotFoundError, ValidationError

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class MessageItem(BaseModel):
    id: str
    name: str
    email: str
    message: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: str
    is_encrypted: bool
    is_quarantined: bool
    scan_result: Optional[dict] = None


class MessagePage(BaseModel):
    items: List[MessageItem]
    total_count: int
    total_pages: int
    page: int
    page_size: int


class AdminQueryService:
    """Reads and deletes messages on behalf of an authenticated admin."""

    def __init__(self, encryption_key: Optional[str] = None):
        self.encryption_key = encryption_key

    def _to_item(self, row: Message) -> MessageItem:
        body = row.body
        if row.is_encrypted:
            body = decode_message(row.body, self.encryption_key)
        return MessageItem(
            id=row.id,
            name=row.name,
            email=row.email,
            message=body,
            ip_address=row.ip_address,
            user_agent=row.user_agent,
            created_at=row.created_at.isoformat(),
            is_encrypted=row.is_encrypted,
            is_quarantined=row.is_quarantined,
            scan_result=row.scan_result,
        )

    def list_messages(self, db: Session, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE,
                      quarantined: Optional[bool] = None) -> MessagePage:
        """
        Return one page of messages, newest first.

        Args:
            page: 1-based page number
            page_size: Messages per page (1-100)
            quarantined: True/False to filter on quarantine status, None for all
        """
        if page < 1:
            raise ValidationError("Page must be at least 1")
        if page_size < 1 or page_size > MAX_PAGE_SIZE:
            raise ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")

        query = db.query(Message)
        if quarantined is not None:
            query = query.filter(Message.is_quarantined.is_(quarantined))

        total_count = query.count()
        rows = (
            query.order_by(Message.created_at.desc(), Message.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return MessagePage(
            items=[self._to_item(row) for row in rows],
            total_count=total_count,
            total_pages=math.ceil(total_count / page_size),
            page=page,
            page_size=page_size,
        )

    def delete_message(self, db: Session, message_id: str) -> None:
        """Delete one message. Raises 400 for a malformed id and 404 if it does not exist."""
        try:
            message_id = str(uuid.UUID(message_id))
        except (ValueError, TypeError, AttributeError):
            raise ValidationError("Invalid message ID")

        deleted = db.query(Message).filter(Message.id == message_id).delete(synchronize_session=False)
        db.commit()
        if not deleted:
            raise NotFoundError("Message not found")
        logging.info(f"Message {message_id} deleted by admin")

    def stats(self, db: Session) -> Dict[str, int]:
        now = utcnow()
        count = func.count(Message.id)
        return {
            "total_messages": db.query(count).scalar() or 0,
            "quarantined_messages": db.query(count).filter(Message.is_quarantined.is_(True)).scalar() or 0,
            "encrypted_messages": db.query(count).filter(Message.is_encrypted.is_(True)).scalar() or 0,
            "unique_ips": db.query(func.count(func.distinct(Message.ip_address))).scalar() or 0,
            "messages_24h": db.query(count).filter(Message.created_at > now - timedelta(hours=24)).scalar() or 0,
            "messages_7d": db.query(count).filter(Message.created_at > now - timedelta(days=7)).scalar() or 0,
        }
