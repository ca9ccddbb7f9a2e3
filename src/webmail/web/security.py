"""Sign-in, signed sessions, CSRF protection and security headers.

One mailbox account is served per deployment. Its password comes from
``WEBMAIL_PASSWORD_HASH`` (bcrypt) or ``WEBMAIL_PASSWORD`` (hashed once at
runtime). When neither is set the app runs unauthenticated as the configured
account, which is only meant for local development.
"""

from __future__ import annotations

import logging
import secrets
import time
from functools import lru_cache

import bcrypt
from fastapi import Request
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from itsdangerous import BadSignature, SignatureExpired, TimestampSigner
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from webmail.web.deps import get_config, render

logger = logging.getLogger(__name__)

SESSION_COOKIE = "_session"
CSRF_COOKIE = "_csrf"
CSRF_HEADER = "X-CSRF-Token"
SESSION_MAX_AGE = 86400  # 24 hours

_PUBLIC_PREFIXES = ("/health", "/login", "/static")
_UNSAFE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

# Remote images are allowed through img-src; everything else an email body
# could load or run is refused
_CSP_DIRECTIVES = {
    "default-src": "'self'",
    "script-src": "'self' https://unpkg.com",
    "style-src": "'self' 'unsafe-inline'",
    "img-src": "'self' data: https: http:",
    "connect-src": "'self'",
    "frame-src": "'none'",
    "frame-ancestors": "'none'",
    "object-src": "'none'",
    "base-uri": "'self'",
    "form-action": "'self'",
}
CONTENT_SECURITY_POLICY = "; ".join(f"{name} {value}" for name, value in _CSP_DIRECTIVES.items())


# ---- Passwords ----

def hash_password(password: str) -> str:
    """Hash a password with bcrypt. Use this to generate WEBMAIL_PASSWORD_HASH."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        return False


@lru_cache(maxsize=4)
def _hash_runtime_password(password: str) -> str:
    logger.info("WEBMAIL_PASSWORD set, hashed at runtime")
    return hash_password(password)


def _password_hash() -> str:
    auth = get_config().auth
    if auth.password_hash:
        return auth.password_hash
    if auth.password:
        return _hash_runtime_password(auth.password)
    return ""


def auth_enabled() -> bool:
    return bool(_password_hash())


# ---- Login throttling ----

class LoginThrottle:
    """Failed sign-in attempts per client address inside a sliding window."""

    def __init__(self, max_attempts: int = 5, window_seconds: float = 900) -> None:
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._failures: dict[str, list[float]] = {}

    def blocked(self, client: str) -> bool:
        now = time.time()
        recent = [t for t in self._failures.get(client, []) if now - t < self.window_seconds]
        self._failures[client] = recent
        return len(recent) >= self.max_attempts

    def record_failure(self, client: str) -> None:
        self._failures.setdefault(client, []).append(time.time())

    def reset(self, client: str) -> None:
        self._failures.pop(client, None)


_throttle = LoginThrottle()


def _client_address(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _over_https(request: Request) -> bool:
    return request.headers.get("X-Forwarded-Proto") == "https"


# ---- Sessions ----

_fallback_secret = ""


def _signer() -> TimestampSigner:
    global _fallback_secret
    key = get_config().auth.secret_key
    if not key:
        if not _fallback_secret:
            _fallback_secret = secrets.token_hex(32)
            logger.warning("WEBMAIL_SECRET_KEY not set, using random key (sessions won't survive restarts)")
        key = _fallback_secret
    return TimestampSigner(key)


def start_session(response: Response, account_id: str, request: Request | None = None) -> Response:
    """Sign the account id into the session cookie."""
    response.set_cookie(
        SESSION_COOKIE,
        _signer().sign(account_id).decode(),
        max_age=SESSION_MAX_AGE,
        httponly=True,
        samesite="lax",
        secure=_over_https(request) if request else False,
    )
    return response


def end_session(response: Response) -> Response:
    response.delete_cookie(SESSION_COOKIE)
    response.delete_cookie(CSRF_COOKIE)
    return response


def _session_account(request: Request) -> str:
    cookie = request.cookies.get(SESSION_COOKIE)
    if not cookie:
        return ""
    try:
        return _signer().unsign(cookie, max_age=SESSION_MAX_AGE).decode()
    except (BadSignature, SignatureExpired):
        return ""


def is_authenticated(request: Request) -> bool:
    return not auth_enabled() or bool(_session_account(request))


def current_account(request: Request) -> str:
    """Account id of the signed-in user (the configured account in dev mode)."""
    if not auth_enabled():
        return get_config().auth.account_id
    return _session_account(request)


def _is_public(path: str) -> bool:
    return path.startswith(_PUBLIC_PREFIXES)


def _audit(request: Request, event: str, detail: str = "") -> None:
    logger.info(
        "security event=%s ip=%s agent=%s %s",
        event,
        _client_address(request),
        request.headers.get("User-Agent", "")[:200],
        detail,
    )


# ---- Login / logout ----

def _login_form(error: str | None = None, status_code: int = 200) -> HTMLResponse:
    return HTMLResponse(render("login.html", error=error), status_code=status_code)


async def login_page(request: Request) -> Response:
    if is_authenticated(request):
        return RedirectResponse("/", status_code=302)
    return _login_form()


async def login_submit(request: Request) -> Response:
    client = _client_address(request)
    if _throttle.blocked(client):
        _audit(request, "login_rate_limited")
        return _login_form("Too many login attempts. Please try again later.", status_code=429)

    form = await request.form()
    if not verify_password(str(form.get("password", "")), _password_hash()):
        _throttle.record_failure(client)
        _audit(request, "login_failure")
        return _login_form("Invalid password", status_code=401)

    _throttle.reset(client)
    account_id = get_config().auth.account_id
    _audit(request, "login_success", account_id)
    return start_session(RedirectResponse("/", status_code=302), account_id, request)


async def logout(request: Request) -> Response:
    _audit(request, "logout")
    return end_session(RedirectResponse("/login", status_code=302))


# ---- Middleware ----

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers.update({
            "Content-Security-Policy": CONTENT_SECURITY_POLICY,
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
            "Referrer-Policy": "no-referrer",
            "X-XSS-Protection": "0",
            "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
        })
        if _over_https(request):
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


class AuthMiddleware(BaseHTTPMiddleware):
    """Send anonymous visitors to the sign-in page."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if _is_public(request.url.path) or is_authenticated(request):
            return await call_next(request)
        if request.headers.get("HX-Request"):
            # htmx follows HX-Redirect itself
            return Response(status_code=401, headers={"HX-Redirect": "/login"})
        return RedirectResponse("/login", status_code=302)


def _csrf_token_matches(request: Request) -> bool:
    cookie = request.cookies.get(CSRF_COOKIE, "")
    header = request.headers.get(CSRF_HEADER, "")
    return bool(cookie) and secrets.compare_digest(cookie.encode(), header.encode())


class CSRFMiddleware(BaseHTTPMiddleware):
    """Double-submit cookie check for state-changing requests of signed-in users."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        protected = not _is_public(request.url.path) and is_authenticated(request)
        if protected and request.method in _UNSAFE_METHODS and not _csrf_token_matches(request):
            _audit(request, "csrf_mismatch", request.url.path)
            return Response("CSRF token mismatch", status_code=403)

        response = await call_next(request)
        if protected and CSRF_COOKIE not in request.cookies:
            response.set_cookie(
                CSRF_COOKIE,
                secrets.token_hex(32),
                httponly=False,  # read by csrf.js
                samesite="lax",
                max_age=SESSION_MAX_AGE,
                secure=_over_https(request),
            )
        return response
