"""
IP ban list with failed-attempt escalation.

BanRegistry keeps a bounded, process-local counter of failed attempts per
client key and persists bans in the ip_banlist table. Counters are lost on
restart; bans are not.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import Lock
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from securecontact.security.database import IpBan
from securecontact.shared.database import SessionLocal, utcnow
from securecontact.shared.errors import BanError, FailurePolicy, StoreFailure

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BAN_DURATION_HOURS = 24
DEFAULT_MAX_TRACKED_KEYS = 10000


class BanRecord(BaseModel):
    """Detached snapshot of an ip_banlist row."""
    ip_address: str
    reason: str
    banned_at: datetime
    expires_at: Optional[datetime] = None
    is_active: bool

    @classmethod
    def from_row(cls, row: IpBan) -> "BanRecord":
        return cls(**row.to_dict())

    @property
    def is_permanent(self) -> bool:
        return self.expires_at is None


@dataclass
class FailedAttemptCounter:
    count: int
    first_attempt: datetime
    last_attempt: datetime
    kind: str


class BanRegistry:
    """
    Tracks failed attempts per client key and bans keys that cross the threshold.

    Args:
        session_factory: Callable returning a SQLAlchemy session
        max_attempts: Failed attempts that trigger a ban
        ban_duration_hours: Length of automatic bans
        clock: Returns the current naive UTC time
        max_tracked_keys: Counter capacity; the least recently touched key is evicted first
        failure_policy: What is_banned does when the store cannot be read
    """

    def __init__(self, session_factory: Callable = SessionLocal,
                 max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                 ban_duration_hours: int = DEFAULT_BAN_DURATION_HOURS,
                 clock: Callable[[], datetime] = utcnow,
                 max_tracked_keys: int = DEFAULT_MAX_TRACKED_KEYS,
                 failure_policy: FailurePolicy = FailurePolicy.FAIL_OPEN):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._session_factory = session_factory
        self.max_attempts = max_attempts
        self.ban_duration_hours = ban_duration_hours
        self._clock = clock
        self.max_tracked_keys = max_tracked_keys
        self.failure_policy = failure_policy
        self._attempts: "OrderedDict[str, FailedAttemptCounter]" = OrderedDict()
        self._sweep_lock = Lock()

    # Counters

    def attempts_for(self, client_key: str) -> Optional[FailedAttemptCounter]:
        return self._attempts.get(client_key)

    def clear_attempts(self, client_key: str) -> None:
        """Forget failed attempts for client_key (called after any successful action)."""
        self._attempts.pop(client_key, None)

    def _increment(self, client_key: str, kind: str) -> FailedAttemptCounter:
        now = self._clock()
        counter = self._attempts.get(client_key)
        if counter is None:
            counter = FailedAttemptCounter(count=0, first_attempt=now, last_attempt=now, kind=kind)
            self._attempts[client_key] = counter
        counter.count += 1
        counter.last_attempt = now
        counter.kind = kind
        self._attempts.move_to_end(client_key)
        while len(self._attempts) > self.max_tracked_keys:
            self._attempts.popitem(last=False)
        return counter

    def record_failed_attempt(self, client_key: str, kind: str = "general") -> None:
        """
        Count a failed attempt and ban the key once max_attempts is reached.
        Keys that are already banned are not counted. Never raises.
        """
        try:
            if self._lookup_ban(client_key) is not None:
                return

            counter = self._increment(client_key, kind)
            logging.info(
                f"Failed attempt recorded for {client_key}: "
                f"{counter.count}/{self.max_attempts} ({kind})"
            )

            if counter.count >= self.max_attempts:
                # ban() clears the counter only once the ban is stored
                self.ban(client_key, f"Too many failed {kind} attempts", self.ban_duration_hours)
        except Exception as e:
            logging.error(f"Failed to record failed attempt for {client_key}: {str(e)}", exc_info=True)

    # Persistent bans

    def _lookup_ban(self, client_key: str) -> Optional[BanRecord]:
        now = self._clock()
        db = self._session_factory()
        try:
            row = db.query(IpBan).filter(
                IpBan.ip_address == client_key,
                IpBan.is_active.is_(True),
            ).first()
            if row is None or not row.is_in_effect(now):
                return None
            return BanRecord.from_row(row)
        finally:
            db.close()

    def is_banned(self, client_key: str) -> Optional[BanRecord]:
        """Return the active, unexpired ban for client_key, or None."""
        try:
            return self._lookup_ban(client_key)
        except Exception as e:
            logging.error(f"IP ban check failed for {client_key}: {str(e)}")
            if self.failure_policy == FailurePolicy.FAIL_CLOSED:
                raise StoreFailure()
            return None

    def ban(self, client_key: str, reason: str, duration_hours: Optional[float] = None) -> Optional[BanRecord]:
        """
        Insert or overwrite the ban for client_key and make it active.
        duration_hours=None bans permanently. Returns None if the store failed.
        """
        now = self._clock()
        expires_at = now + timedelta(hours=duration_hours) if duration_hours is not None else None
        db = self._session_factory()
        try:
            for _ in range(2):
                row = db.query(IpBan).filter(IpBan.ip_address == client_key).first()
                if row is None:
                    row = IpBan(ip_address=client_key)
                    db.add(row)
                row.reason = reason
                row.banned_at = now
                row.expires_at = expires_at
                row.is_active = True
                try:
                    db.commit()
                    break
                except IntegrityError:
                    # Inserted concurrently; retry as an update
                    db.rollback()
            else:
                logging.error(f"Failed to ban {client_key}: concurrent updates")
                return None
            db.refresh(row)
            record = BanRecord.from_row(row)
        except Exception as e:
            db.rollback()
            logging.error(f"Failed to ban {client_key}: {str(e)}", exc_info=True)
            return None
        finally:
            db.close()

        self.clear_attempts(client_key)
        duration = f"for {duration_hours} hours" if duration_hours is not None else "permanently"
        logging.warning(f"IP {client_key} has been banned {duration}. Reason: {reason}")
        return record

    def unban(self, client_key: str) -> bool:
        """Deactivate the ban for client_key. Returns False if there was none."""
        self.clear_attempts(client_key)
        db = self._session_factory()
        try:
            updated = db.query(IpBan).filter(
                IpBan.ip_address == client_key,
                IpBan.is_active.is_(True),
            ).update({IpBan.is_active: False}, synchronize_session=False)
            db.commit()
        except Exception as e:
            db.rollback()
            logging.error(f"Failed to unban {client_key}: {str(e)}", exc_info=True)
            raise StoreFailure()
        finally:
            db.close()

        if updated:
            logging.info(f"IP {client_key} has been unbanned")
        return bool(updated)

    def sweep_expired(self) -> int:
        """
        Deactivate every active ban whose expiry has passed.
        Returns the number of bans deactivated; 0 if a sweep is already running.
        """
        if not self._sweep_lock.acquire(blocking=False):
            return 0
        try:
            now = self._clock()
            db = self._session_factory()
            try:
                updated = db.query(IpBan).filter(
                    IpBan.is_active.is_(True),
                    IpBan.expires_at.isnot(None),
                    IpBan.expires_at <= now,
                ).update({IpBan.is_active: False}, synchronize_session=False)
                db.commit()
            except Exception as e:
                db.rollback()
                logging.error(f"Failed to clean up expired bans: {str(e)}", exc_info=True)
                return 0
            finally:
                db.close()

            if updated:
                logging.info(f"Cleaned up {updated} expired IP bans")
            return updated
        finally:
            self._sweep_lock.release()

    def list_bans(self, active_only: bool = True) -> List[BanRecord]:
        now = self._clock()
        db = self._session_factory()
        try:
            rows = db.query(IpBan).order_by(IpBan.banned_at.desc()).all()
            records = [BanRecord.from_row(row) for row in rows
                       if not active_only or row.is_in_effect(now)]
        finally:
            db.close()
        return records

    def stats(self) -> Dict[str, int]:
        now = self._clock()
        db = self._session_factory()
        try:
            total = db.query(func.count(IpBan.ip_address)).scalar() or 0
            active = db.query(func.count(IpBan.ip_address)).filter(IpBan.is_active.is_(True)).scalar() or 0
            temporary = db.query(func.count(IpBan.ip_address)).filter(
                IpBan.is_active.is_(True),
                IpBan.expires_at > now,
            ).scalar() or 0
        finally:
            db.close()
        return {
            "total_bans": total,
            "active_bans": active,
            "temporary_bans": temporary,
            "tracked_clients": len(self._attempts),
        }


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def ensure_not_banned(registry: BanRegistry, client_key: str) -> None:
    """Raise BanError (HTTP 403) if client_key is currently banned."""
    ban = registry.is_banned(client_key)
    if ban is None:
        return
    logging.info(f"Blocked request from banned IP: {client_key}, Reason: {ban.reason}")
    blocked = "blocked" if ban.is_permanent else "temporarily blocked"
    raise BanError(
        message=f"Your IP address has been {blocked} due to suspicious activity",
        reason=ban.reason,
        bannedAt=_isoformat(ban.banned_at),
        expiresAt=_isoformat(ban.expires_at),
    )
