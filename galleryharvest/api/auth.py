"""Bearer-token guard for the staging-cache admin endpoints.

The expected token is read from `ADMIN_TOKEN` on every request so it can be
rotated without a restart. Without it the admin endpoints stay closed.
"""
import logging
import secrets
from typing import Optional

from fastapi import HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from galleryharvest.config import get_optional_str_env

logger = logging.getLogger(__name__)

admin_bearer = HTTPBearer(auto_error=False, description="Staging cache admin token")


def _expected_token() -> Optional[str]:
    token = get_optional_str_env("ADMIN_TOKEN")
    return token.strip() if token else None


def _presented_token(creds: Optional[HTTPAuthorizationCredentials]) -> str:
    if creds is None or (creds.scheme or "").lower() != "bearer":
        return ""
    return (creds.credentials or "").strip()


def require_admin(creds: Optional[HTTPAuthorizationCredentials] = Security(admin_bearer)) -> bool:
    expected = _expected_token()
    if expected is None:
        logger.error("Refusing staging cache admin request: ADMIN_TOKEN is not set")
        raise HTTPException(status_code=503, detail="Staging cache administration is disabled")
    presented = _presented_token(creds)
    if not presented or not secrets.compare_digest(presented.encode(), expected.encode()):
        logger.warning("Rejected staging cache admin request with %s token", "a wrong" if presented else "no")
        raise HTTPException(
            status_code=401,
            detail="Invalid admin token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return True
