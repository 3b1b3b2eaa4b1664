import hmac
import logging

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from nobodyreads.config import settings
from nobodyreads.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

# Missing header is reported by require_editor, not by the scheme
bearer_scheme = HTTPBearer(auto_error=False)


def editor_requires_auth() -> bool:
    return bool(settings.editor_token)


def verify_editor_token(token: str) -> bool:
    if not settings.editor_token:
        return False
    return hmac.compare_digest(token.encode(), settings.editor_token.encode())


async def require_editor(credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme)) -> None:
    """
    Guard for the editor API.

    With no EDITOR_TOKEN configured the editor is open, which is how a
    local single-user install runs.
    """
    if not editor_requires_auth():
        return
    if credentials is None:
        raise AuthenticationError()
    if not verify_editor_token(credentials.credentials):
        logger.warning("Rejected editor request with an invalid token")
        raise AuthenticationError("Invalid editor token")
