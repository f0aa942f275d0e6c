from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette import status

from ticketdesk.api.routers import tickets as tickets_router
from ticketdesk.api.routers import users as users_router
from ticketdesk.core.config import get_settings
from ticketdesk.core.db import dispose_engine, get_engine
from ticketdesk.core.errors import (
    ApplicationError,
    InvalidTicketError,
    NotificationError,
    TicketNotFoundError,
    UnknownUserError,
)
from ticketdesk.services import build_admin_notifier

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logging.getLogger("ticketdesk").setLevel(settings.log_level.upper())
    app.state.admin_notifier = build_admin_notifier(settings)
    get_engine()
    yield
    dispose_engine()


settings = get_settings()
app = FastAPI(title=settings.app_name, lifespan=lifespan)
app.include_router(users_router.router)
app.include_router(tickets_router.router)


ERROR_STATUS_CODES: dict[type[ApplicationError], int] = {
    InvalidTicketError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    UnknownUserError: status.HTTP_404_NOT_FOUND,
    TicketNotFoundError: status.HTTP_404_NOT_FOUND,
    NotificationError: status.HTTP_502_BAD_GATEWAY,
}


@app.exception_handler(ApplicationError)
async def application_error_handler(request: Request, exc: ApplicationError) -> JSONResponse:
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS_CODES:
            status_code = ERROR_STATUS_CODES[error_type]
            break
    if status_code >= 500:
        logger.error("Request to %s failed: %s", request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})
