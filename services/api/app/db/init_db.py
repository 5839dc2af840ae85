from __future__ import annotations

import logging

from services.api.app.db.database import get_engine
from services.api.app.db.models import Base
from services.api.app.settings import env_flag

logger = logging.getLogger(__name__)


def init_db() -> None:
    if not env_flag("STOREFRONT_DB_AUTO_CREATE", True):
        logger.info("STOREFRONT_DB_AUTO_CREATE is off; skipping create_all")
        return

    engine = get_engine()
    Base.metadata.create_all(bind=engine)
