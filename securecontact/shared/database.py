"""Database setup and configuration."""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from datetime import datetime, timezone
import os

# Load environment variables from .env file (for local development)
from dotenv import load_dotenv

load_dotenv()

# DATABASE_URL should be set as an environment variable (e.g., from Heroku)
DATABASE_URL = os.environ.get("DATABASE_URL")

if not DATABASE_URL:
    raise ValueError(
        "DATABASE_URL environment variable is required. "
        "Please set it to your PostgreSQL connection string."
    )

# Heroku uses postgres:// but SQLAlchemy 2.0+ requires postgresql://
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

if DATABASE_URL.startswith("sqlite"):
    # SQLite is used for local runs and tests; sessions are shared across threads
    engine_kwargs = {"connect_args": {"check_same_thread": False}}
    if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        # In-memory databases only live as long as their single connection
        engine_kwargs["poolclass"] = StaticPool
else:
    # PostgreSQL connection pool configuration
    engine_kwargs = {
        "pool_pre_ping": True,  # Verify connections before using
        "pool_recycle": 3600,  # Recycle connections after 1 hour
    }

engine = create_engine(DATABASE_URL, **engine_kwargs)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching how timestamps are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def init_db():
    """Initialize database tables."""
    import logging
    from sqlalchemy.exc import IntegrityError, ProgrammingError

    # Register models on Base.metadata before creating tables
    from securecontact.contact import database as contact_models  # noqa: F401
    from securecontact.security import database as security_models  # noqa: F401

    try:
        # Use checkfirst=True to avoid errors if tables already exist
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logging.info("Database tables initialized successfully")
    except (IntegrityError, ProgrammingError) as e:
        # Duplicate type/constraint errors happen when types already exist
        error_str = str(e)
        if "pg_type_typname_nsp_index" in error_str or "duplicate key" in error_str.lower():
            logging.info("Database types already exist, skipping type creation (safe to ignore)")
        else:
            logging.warning(f"Database integrity/programming error (may be safe to ignore): {error_str}")


def get_db():
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
