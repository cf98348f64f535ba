"""Database model for stored contact form messages."""

from sqlalchemy import Column, String, Text, Boolean, DateTime, JSON, Index

from securecontact.shared.database import Base, utcnow


class Message(Base):
    """A contact form submission that passed intake. Rows are never updated."""
    __tablename__ = "messages"

    id = Column(String, primary_key=True)  # UUID string
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    body = Column(Text, nullable=False)  # Plaintext, or base64 ciphertext when is_encrypted
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    is_encrypted = Column(Boolean, default=False, nullable=False)
    is_quarantined = Column(Boolean, default=False, nullable=False)
    scan_result = Column(JSON, nullable=True)

    __table_args__ = (
        Index('idx_messages_quarantined_created', 'is_quarantined', 'created_at'),
    )
