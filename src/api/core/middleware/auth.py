import structlog
from fastapi import Request

from src.api.core.constants import SKIP_AUTH_PATHS, SKIP_AUTH_PATTERNS
from src.api.core.exceptions.base import CraftException
from src.modules.auth.handlers import handle_jwt_auth
from src.utils.path_helpers import path_matches, path_matches_pattern

logger = structlog.get_logger(__name__)


async def auth_middleware(request: Request, call_next):
    """Resolve an optional bearer token into ``request.state.user``.

    Never rejects. Endpoints that need a user enforce it through
    ``CurrentUserDep`` or ``admin()``, which surface ``request.state.auth_error``.
    """
    request.state.user = None
    request.state.auth_context = None
    request.state.auth_error = None

    if path_matches(request.url.path, SKIP_AUTH_PATHS) or path_matches_pattern(
        request.url.path, SKIP_AUTH_PATTERNS, request.method
    ):
        return await call_next(request)

    authorization = request.headers.get("Authorization", "")
    if not authorization:
        return await call_next(request)

    auth_parts = authorization.split(" ")
    if len(auth_parts) != 2 or auth_parts[0].lower() != "bearer":
        logger.debug("Invalid authorization header format")
        return await call_next(request)

    session_factory = request.app.state.session_factory
    async with session_factory() as db:
        try:
            context = await handle_jwt_auth(db, auth_parts[1])
        except CraftException as e:
            logger.debug(
                "Authentication failed",
                message_code=e.message_code,
                path=request.url.path,
            )
            request.state.auth_error = e
        else:
            request.state.user = context.user
            request.state.auth_context = context
            structlog.contextvars.bind_contextvars(user_id=str(context.user.id))

    return await call_next(request)
