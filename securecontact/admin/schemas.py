"""Pydantic schemas for the admin message API."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageOut(CamelModel):
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


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_messages: int
    limit: int


class MessageFilters(CamelModel):
    quarantined: Optional[bool] = None
    encryption_enabled: bool


class MessageListResponse(CamelModel):
    success: bool = True
    items: List[MessageOut]
    pagination: Pagination
    filters: MessageFilters


class DeleteResponse(CamelModel):
    success: bool = True
    message: str = "Message deleted successfully"
