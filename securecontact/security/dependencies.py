"""Dependencies exposing the application's ban registry to routes."""

from fastapi import Request

from securecontact.security.banlist import BanRegistry


def get_ban_registry(request: Request) -> BanRegistry:
    return request.app.state.ban_registry
