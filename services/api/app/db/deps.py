from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends
from services.api.app.db.database import db_session
from services.api.app.services.lifecycle import OrderLifecycle
from services.api.app.services.order_store import OrderStore
from sqlalchemy.orm import Session


def get_db() -> Generator[Session, None, None]:
    db = db_session()
    try:
        yield db
    except Exception:
        # Nothing half-written survives a failed request.
        db.rollback()
        raise
    finally:
        db.close()


def get_order_store(db: Session = Depends(get_db)) -> OrderStore:
    return OrderStore(db)


def get_lifecycle() -> OrderLifecycle:
    return OrderLifecycle.from_env()
