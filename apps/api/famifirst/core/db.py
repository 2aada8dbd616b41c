from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from famifirst.core.config import settings
from famifirst.core.errors import Conflict


def _engine_options(url: str) -> dict:
    if url.startswith("postgresql"):
        return {
            "pool_pre_ping": True,
            "connect_args": {"options": f"-c statement_timeout={settings.db_statement_timeout_ms}"},
        }
    return {}


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session, conflict_message: str = "conflicting concurrent update") -> Iterator[Session]:
    """
    Commit everything done inside the block, or nothing.

    Uniqueness violations surfacing at flush/commit time (the losing side of a
    race on a constrained key) are reported as Conflict.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict(conflict_message) from exc
    except Exception:
        db.rollback()
        raise
