from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from postbox.api.routes import router as messages_router
from postbox.config import settings
from postbox.db.session import create_engine, create_session_factory
from postbox.logging import setup_logging
from postbox.repository import MessageRepository
from postbox.service import MailboxService


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level, settings.log_file)
    engine = create_engine(settings.database_url, echo=settings.db_echo)
    app.state.service = MailboxService(MessageRepository(create_session_factory(engine)))
    logger.info("Postbox service started")
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("Postbox service stopped")


app = FastAPI(title="Postbox Service", version="1.0.0", lifespan=lifespan)
app.include_router(messages_router)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": f"invalid request: {exc.errors()}"})
