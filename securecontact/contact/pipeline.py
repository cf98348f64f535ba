"""
Message intake pipeline for contact form submissions.

One submission moves through: ban check -> honeypot and field validation ->
human verification (if configured) -> content scan -> sanitize -> encode ->
persist. Every rejection raises a ServiceError carrying its HTTP status.
"""

import logging
import uuid
from datetime import datetime
from typing import Optional, Protocol

from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from securecontact.contact.database import Message
from securecontact.contact.schemas import ContactRequest
from securecontact.security.banlist import BanRegistry, ensure_not_banned
from securecontact.security.encryption import CodecFailure, encode_message
from securecontact.security.scanner import ContentRiskScanner, RiskVerdict, ScanAction
from securecontact.shared.database import utcnow
from securecontact.shared.errors import ServiceError, StoreFailure, ValidationError
from securecontact.shared.input_validation import (
    sanitize_text,
    validate_email,
    validate_message,
    validate_name,
)


class Verifier(Protocol):
    async def verify(self, token: Optional[str], client_ip: Optional[str] = None) -> bool:
        ...


class SubmissionResult(BaseModel):
    id: str
    created_at: datetime
    encrypted: bool
    quarantined: bool
    verdict: RiskVerdict


class IntakePipeline:
    """Accepts, screens and stores contact form submissions."""

    def __init__(self, ban_registry: BanRegistry, scanner: ContentRiskScanner,
                 encryption_key: Optional[str] = None, verifier: Optional[Verifier] = None):
        self.ban_registry = ban_registry
        self.scanner = scanner
        self.encryption_key = encryption_key
        self.verifier = verifier

    async def submit(self, db: Session, submission: ContactRequest, client_ip: str,
                     user_agent: Optional[str] = None) -> SubmissionResult:
        ensure_not_banned(self.ban_registry, client_ip)

        if submission.honeypot and submission.honeypot.strip():
            logging.warning(f"Bot detected via honeypot: {client_ip}")
            self.ban_registry.record_failed_attempt(client_ip, "honeypot")
            raise ValidationError("Invalid submission")

        name = validate_name(submission.name)
        email = validate_email(submission.email)
        message = validate_message(submission.message)

        if self.verifier is not None:
            if not await self.verifier.verify(submission.recaptcha_token, client_ip):
                self.ban_registry.record_failed_attempt(client_ip, "verification")
                raise ValidationError("reCAPTCHA verification failed")

        verdict = self.scanner.scan_message(name, email, message)
        if verdict.action == ScanAction.BLOCK:
            logging.warning(f"Blocked malicious message from IP: {client_ip} (score {verdict.score})")
            self.ban_registry.record_failed_attempt(client_ip, "content")
            raise ValidationError(
                "Message blocked by security scan",
                reason="Potentially malicious content detected",
            )
        quarantined = verdict.action == ScanAction.QUARANTINE

        sanitized_name = sanitize_text(name)
        sanitized_message = sanitize_text(message)

        try:
            # Key derivation is CPU bound
            encoded = await run_in_threadpool(encode_message, sanitized_message, self.encryption_key)
        except CodecFailure as e:
            logging.error(f"Message encryption failed: {str(e)}")
            raise ServiceError("Failed to save message")

        message_id = str(uuid.uuid4())
        created_at = utcnow()
        row = Message(
            id=message_id,
            name=sanitized_name,
            email=email,
            body=encoded.message,
            ip_address=client_ip,
            user_agent=user_agent or "Unknown",
            created_at=created_at,
            is_encrypted=encoded.encrypted,
            is_quarantined=quarantined,
            scan_result=verdict.model_dump(mode="json"),
        )
        try:
            db.add(row)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logging.error(f"Failed to save message: {str(e)}", exc_info=True)
            raise StoreFailure("Failed to save message")

        self.ban_registry.clear_attempts(client_ip)

        logging.info(
            f"New message {message_id} received (IP: {client_ip})"
            f"{' [QUARANTINED]' if quarantined else ''}"
        )
        return SubmissionResult(
            id=message_id,
            created_at=created_at,
            encrypted=encoded.encrypted,
            quarantined=quarantined,
            verdict=verdict,
        )
