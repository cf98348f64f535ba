"""Admin routes for security statistics and manual ban management."""

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from securecontact.admin.routes import get_admin_service
from securecontact.admin.service import AdminQueryService
from securecontact.auth.dependencies import verify_admin
from securecontact.security.banlist import BanRegistry
from securecontact.security.dependencies import get_ban_registry
from securecontact.security.schemas import (
    BanListResponse,
    BanOut,
    BanRequest,
    BanResponse,
    SecurityStats,
    SecurityStatsResponse,
    UnbanResponse,
)
from securecontact.shared.database import get_db
from securecontact.shared.errors import NotFoundError, StoreFailure

router = APIRouter(prefix="/api/security", tags=["security"])


def feature_flags(request: Request) -> dict:
    settings = request.app.state.settings
    return {
        "antivirus": True,
        "encryption": settings.encryption_enabled,
        "recaptcha": settings.recaptcha_enabled,
        "ipBanlist": True,
    }


@router.get("/stats", response_model=SecurityStatsResponse, status_code=status.HTTP_200_OK)
async def security_stats(
    request: Request,
    admin: dict = Depends(verify_admin),
    db: Session = Depends(get_db),
    service: AdminQueryService = Depends(get_admin_service),
    ban_registry: BanRegistry = Depends(get_ban_registry),
):
    """Message and ban counters."""
    return SecurityStatsResponse(
        stats=SecurityStats(
            messages=service.stats(db),
            bans=ban_registry.stats(),
            features=feature_flags(request),
        )
    )


@router.get("/bans", response_model=BanListResponse, status_code=status.HTTP_200_OK)
async def list_bans(
    active: bool = Query(True, description="Only bans currently in effect"),
    admin: dict = Depends(verify_admin),
    ban_registry: BanRegistry = Depends(get_ban_registry),
):
    bans = ban_registry.list_bans(active_only=active)
    return BanListResponse(bans=[BanOut(**ban.model_dump()) for ban in bans])


@router.post("/bans", response_model=BanResponse, status_code=status.HTTP_201_CREATED)
async def ban_ip(
    ban_request: BanRequest,
    admin: dict = Depends(verify_admin),
    ban_registry: BanRegistry = Depends(get_ban_registry),
):
    """Ban an IP address manually. Omitting durationHours bans permanently."""
    record = ban_registry.ban(ban_request.ip_address.strip(), ban_request.reason, ban_request.duration_hours)
    if record is None:
        raise StoreFailure("Failed to ban IP address")
    return BanResponse(ban=BanOut(**record.model_dump()))


@router.delete("/bans/{ip_address}", response_model=UnbanResponse, status_code=status.HTTP_200_OK)
async def unban_ip(
    ip_address: str,
    admin: dict = Depends(verify_admin),
    ban_registry: BanRegistry = Depends(get_ban_registry),
):
    if not ban_registry.unban(ip_address):
        raise NotFoundError("No active ban for this IP address")
    return UnbanResponse(message=f"IP {ip_address} has been unbanned")
