"""Storefront orders API entrypoint."""

import logging

from fastapi import FastAPI

from services.api.app.db.init_db import init_db
from services.api.app.routers.checkout import router as checkout_router
from services.api.app.routers.order import router as order_router
from services.api.app.settings import log_level

logging.basicConfig(
    level=log_level(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Storefront Orders API")

app.include_router(order_router)
app.include_router(checkout_router)


@app.on_event("startup")
def _startup() -> None:
    init_db()


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}
