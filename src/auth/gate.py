from collections.abc import Awaitable, Callable, Sequence
import re

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

from loggers import get_logger
from src.auth.codec import BEARER_PREFIX, TokenCodec
from src.core.errors.handlers import format_error_response

logger = get_logger(__name__)

INVALID_TOKEN_MESSAGE = "Invalid JWT token"


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a path glob where ``*`` matches any run of characters."""
    parts = (re.escape(part) for part in pattern.split("*"))
    return re.compile(".*".join(parts))


def first_match(path: str, patterns: Sequence[re.Pattern[str]]) -> re.Pattern[str] | None:
    for pattern in patterns:
        if pattern.fullmatch(path):
            return pattern
    return None


class AuthGate:
    """
    HTTP middleware that requires a valid bearer token on protected paths.

    A path is gated when it matches a protected pattern and no excluded pattern.
    Valid requests get the raw token on ``request.state.jwt``.
    """

    def __init__(
        self,
        codec: TokenCodec,
        protected_paths: Sequence[str],
        excluded_paths: Sequence[str] = (),
        header: str = "Authorization",
    ) -> None:
        self.codec = codec
        self.header = header
        self.protected = [glob_to_regex(p) for p in protected_paths]
        self.excluded = [glob_to_regex(p) for p in excluded_paths]

    def is_gated(self, path: str) -> bool:
        excluded = first_match(path, self.excluded)
        if excluded is not None:
            logger.debug(
                "[AuthGate] Path '%s' excluded by pattern '%s'", path, excluded.pattern
            )
            return False
        return first_match(path, self.protected) is not None

    async def __call__(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        path = request.url.path
        if not self.is_gated(path):
            return await call_next(request)

        auth_header = request.headers.get(self.header)
        if not auth_header or not auth_header.startswith(BEARER_PREFIX):
            logger.warning("[AuthGate] No bearer token on %s %s", request.method, path)
            return Response(status_code=401, headers={"WWW-Authenticate": "Bearer"})

        token = auth_header[len(BEARER_PREFIX) :]
        if not self.codec.is_valid(token):
            logger.warning(
                "[AuthGate] Invalid or expired token on %s %s", request.method, path
            )
            return JSONResponse(
                status_code=401,
                content=format_error_response("Unauthorized", INVALID_TOKEN_MESSAGE),
                headers={"WWW-Authenticate": "Bearer"},
            )

        request.state.jwt = token
        logger.debug("[AuthGate] Request authorized: %s %s", request.method, path)
        return await call_next(request)
