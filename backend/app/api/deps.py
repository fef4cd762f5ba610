from typing import Optional

from fastapi import Header, Request, status
from fastapi.responses import JSONResponse

from backend.app.errors import UnauthorizedError

USER_ID_HEADER = "X-User-Id"
AUTH_REQUIRED = "Authentication required"

def _is_blank(user_id: Optional[str]) -> bool:
    return user_id is None or not user_id.strip()

def get_current_user_id(
    x_user_id: Optional[str] = Header(None, alias=USER_ID_HEADER, description="Authenticated user ID set by the gateway"),
) -> str:
    """
    Identity of the caller, as verified upstream by the authentication gateway.
    """
    if _is_blank(x_user_id):
        raise UnauthorizedError(AUTH_REQUIRED)
    return x_user_id.strip()

def require_user_header(prefix: str):
    """
    HTTP middleware rejecting anonymous calls under `prefix` before the
    request body is read.
    """
    async def middleware(request: Request, call_next):
        if (
            request.method != "OPTIONS"
            and request.url.path.startswith(prefix)
            and _is_blank(request.headers.get(USER_ID_HEADER))
        ):
            return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"error": AUTH_REQUIRED})
        return await call_next(request)

    return middleware
