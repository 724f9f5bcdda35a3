"""Database dependencies for FastAPI endpoints."""

from collections.abc import Generator

from sqlalchemy.orm import Session

from resplan.db.session import SessionLocal


def get_db_session() -> Generator[Session, None, None]:
    """Yield a SQLAlchemy session, rolling back uncommitted work on failure."""

    session = SessionLocal()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
