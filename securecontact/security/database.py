"""Database model for the IP ban list."""

from sqlalchemy import Column, String, Boolean, DateTime, Index

from securecontact.shared.database import Base, utcnow


class IpBan(Base):
    """A ban on a client identifier. At most one row per IP address."""
    __tablename__ = "ip_banlist"

    ip_address = Column(String, primary_key=True)
    reason = Column(String, nullable=False)
    banned_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=True)  # NULL means permanent
    is_active = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index('idx_ip_banlist_active_expires', 'is_active', 'expires_at'),
    )

    def is_in_effect(self, now) -> bool:
        return bool(self.is_active) and (self.expires_at is None or self.expires_at > now)

    def to_dict(self) -> dict:
        return {
            "ip_address": self.ip_address,
            "reason": self.reason,
            "banned_at": self.banned_at,
            "expires_at": self.expires_at,
            "is_active": self.is_active,
        }
