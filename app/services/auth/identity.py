"""
Identity collaborator boundary: opaque account id from a signed session token.
Uses itsdangerous for tamper-proof, expiring tokens.
"""
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from app.core.config import settings

logger = logging.getLogger("auth")

_bearer = HTTPBearer(auto_error=False)


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(settings.session_secret, salt="account-session")


def issue_session_token(account_id: str) -> str:
    if not account_id:
        raise ValueError("account_id is required")
    return _serializer().dumps({"account_id": account_id})


def resolve_account_id(token: str, max_age: int | None = None) -> str | None:
    """Account id for a valid token; None if the token is forged, malformed or expired."""
    try:
        data = _serializer().loads(token, max_age=max_age if max_age is not None else settings.session_ttl)
    except SignatureExpired:
        logger.info("session_expired")
        return None
    except BadSignature:
        logger.warning("session_bad_signature")
        return None
    account_id = data.get("account_id") if isinstance(data, dict) else None
    return str(account_id) if account_id else None


def get_current_account(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> str:
    """FastAPI dependency: account id of the caller, 401 when the session is gone."""
    account_id = resolve_account_id(credentials.credentials) if credentials else None
    if account_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired or invalid",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return account_id
