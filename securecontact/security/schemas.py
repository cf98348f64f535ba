"""Pydantic schemas for the security admin API."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BanOut(CamelModel):
    ip_address: str
    reason: str
    banned_at: datetime
    expires_at: Optional[datetime] = None
    is_active: bool


class BanRequest(CamelModel):
    ip_address: str = Field(..., min_length=1, max_length=255)
    reason: str = Field("Manually banned by admin", min_length=1, max_length=255)
    duration_hours: Optional[float] = Field(None, gt=0, description="Omit for a permanent ban")


class BanListResponse(CamelModel):
    success: bool = True
    bans: List[BanOut]


class BanResponse(CamelModel):
    success: bool = True
    ban: BanOut


class UnbanResponse(CamelModel):
    success: bool = True
    message: str


class SecurityStats(CamelModel):
    messages: Dict[str, int]
    bans: Dict[str, int]
    features: Dict[str, bool]


class SecurityStatsResponse(CamelModel):
    success: bool = True
    stats: SecurityStats
