import json
import logging
from typing import Any, Iterable
from urllib.parse import parse_qsl, urlencode

from starlette.datastructures import Headers, MutableHeaders
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .rate_limit import RateLimiter

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Permitted-Cross-Domain-Policies": "none",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Cross-Origin-Opener-Policy": "same-origin",
}


def is_operator_key(key: str) -> bool:
    """Keys that could smuggle query operators into the store."""
    return key.startswith("$") or "." in key


def escape_markup(value: str) -> str:
    """Escape angle brackets.

    Runs before request validation, so field length limits see the escaped
    text, where each bracket takes four characters.
    """
    return value.replace("<", "&lt;").replace(">", "&gt;")


def sanitize_value(value: Any) -> Any:
    """Recursively drop operator keys and neutralize markup in strings."""
    if isinstance(value, dict):
        return {
            key: sanitize_value(item)
            for key, item in value.items()
            if not is_operator_key(str(key))
        }
    if isinstance(value, list):
        return [sanitize_value(item) for item in value]
    if isinstance(value, str):
        return escape_markup(value)
    return value


def clean_query_string(raw: bytes) -> bytes:
    """Sanitize query parameters; repeated parameters keep their last value."""
    if not raw:
        return raw
    params = {}
    for key, value in parse_qsl(raw.decode("latin-1"), keep_blank_values=True):
        if is_operator_key(key):
            continue
        # Re-inserting moves the key to the end so order follows last occurrence
        params.pop(key, None)
        params[key] = escape_markup(value)
    return urlencode(params).encode("latin-1")


class SanitizeMiddleware:
    """Strip injection operators, duplicate parameters and markup from input."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        scope = dict(scope)
        scope["query_string"] = clean_query_string(scope.get("query_string", b""))

        content_type = Headers(scope=scope).get("content-type", "")
        if "application/json" not in content_type:
            await self.app(scope, receive, send)
            return

        body = b""
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] != "http.request":
                # Client went away before the body was complete
                return
            body += message.get("body", b"")
            more_body = message.get("more_body", False)

        cleaned = body
        if body:
            try:
                payload = json.loads(body)
            except ValueError:
                # Leave malformed JSON for the request validator to report
                pass
            else:
                cleaned = json.dumps(sanitize_value(payload)).encode("utf-8")

        headers = MutableHeaders(scope=scope)
        headers["content-length"] = str(len(cleaned))

        body_sent = False

        async def receive_cleaned() -> Message:
            nonlocal body_sent
            if not body_sent:
                body_sent = True
                return {"type": "http.request", "body": cleaned, "more_body": False}
            return await receive()

        await self.app(scope, receive_cleaned, send)


class SecurityHeadersMiddleware:
    """Attach a fixed set of security headers to every response."""

    def __init__(self, app: ASGIApp, headers: dict = None):
        self.app = app
        self.headers = headers if headers is not None else SECURITY_HEADERS

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message: Message):
            if message["type"] == "http.response.start":
                response_headers = MutableHeaders(scope=message)
                for name, value in self.headers.items():
                    response_headers.setdefault(name, value)
            await send(message)

        await self.app(scope, receive, send_with_headers)


class RateLimitMiddleware:
    """Reject clients that exceed the limiter's fixed-window quota."""

    def __init__(self, app: ASGIApp, limiter: RateLimiter, exempt_paths: Iterable[str] = ()):
        self.app = app
        self.limiter = limiter
        self.exempt_paths = tuple(exempt_paths)

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http" or scope["path"] in self.exempt_paths:
            await self.app(scope, receive, send)
            return

        client = scope.get("client")
        client_key = client[0] if client else "anonymous"
        result = await self.limiter.hit(client_key)

        if not result.allowed:
            logger.warning(f"Rate limit exceeded for {client_key} on {scope['path']}")
            response = JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "message": "Too many requests, please try again later."
                },
                headers={
                    "Retry-After": str(result.reset_in),
                    "X-RateLimit-Limit": str(result.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )
            await response(scope, receive, send)
            return

        async def send_with_headers(message: Message):
            if message["type"] == "http.response.start":
                response_headers = MutableHeaders(scope=message)
                response_headers["X-RateLimit-Limit"] = str(result.limit)
                response_headers["X-RateLimit-Remaining"] = str(result.remaining)
            await send(message)

        await self.app(scope, receive, send_with_headers)
