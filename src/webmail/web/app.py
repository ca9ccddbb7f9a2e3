"""FastAPI application factory for the webmail client."""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from webmail.web.deps import render
from webmail.web.routes import compose, mailbox, settings
from webmail.web.security import (
    AuthMiddleware,
    CSRFMiddleware,
    SecurityHeadersMiddleware,
    login_page,
    login_submit,
    logout,
)

logger = logging.getLogger(__name__)

_STATIC_DIR = Path(__file__).parent.parent.parent.parent / "templates" / "web" / "static"


def _error_page(status_code: int) -> HTMLResponse:
    template = "404.html" if status_code == 404 else "500.html"
    return HTMLResponse(render(template), status_code=status_code)


def _install_error_pages(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 500):
            return _error_page(exc.status_code)
        return HTMLResponse(str(exc.detail), status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def server_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_page(500)


def create_app() -> FastAPI:
    app = FastAPI(title="Webmail", docs_url=None, redoc_url=None)

    # Added last runs first: headers wrap CSRF, CSRF wraps auth
    app.add_middleware(AuthMiddleware)
    app.add_middleware(CSRFMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    _install_error_pages(app)

    app.add_api_route("/login", login_page, methods=["GET"])
    app.add_api_route("/login", login_submit, methods=["POST"])
    app.add_api_route("/logout", logout, methods=["GET"])

    @app.get("/health")
    def health():
        return {"status": "ok"}

    if _STATIC_DIR.exists():
        app.mount("/static", StaticFiles(directory=str(_STATIC_DIR)), name="static")

    app.include_router(mailbox.router)
    app.include_router(compose.router, prefix="/compose")
    app.include_router(settings.router, prefix="/settings")
    return app
