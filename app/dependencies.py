# app/dependencies.py
import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.database import get_db
from app.models.user import User
from app.repositories.users import UserRepository

logger = logging.getLogger(__name__)

# Security scheme; reads stay public so a missing header is not an error here
bearer = HTTPBearer(description="Google ID Token (JWT)", auto_error=False)


def verify_google_token(token: str, client_id: Optional[str]) -> dict:
    """Verify a Google ID token and return its claims (email, name, picture)."""
    if not client_id:
        logger.critical("GOOGLE_CLIENT_ID is not set in environment variables")
        raise HTTPException(status_code=500, detail="Server Configuration Error")

    try:
        idinfo = id_token.verify_oauth2_token(token, google_requests.Request(), client_id)
    except ValueError as e:
        # e.g. "Token expired", "Audience mismatch"
        logger.warning("Token validation failed: %s", e)
        raise HTTPException(status_code=401, detail=f"Invalid token: {str(e)}")
    except Exception:
        logger.exception("Unexpected auth error")
        raise HTTPException(status_code=401, detail="Authentication failed")

    if not idinfo.get("email"):
        raise HTTPException(status_code=401, detail="Token has no email claim")
    return idinfo


def get_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    settings: Settings = Depends(get_settings),
) -> Optional[dict]:
    """Verified token claims, or None when the request carries no bearer token."""
    if credentials is None:
        return None
    return verify_google_token(credentials.credentials, settings.google_client_id)


def get_optional_user(
    identity: Optional[dict] = Depends(get_identity),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Optional[User]:
    if identity is None:
        return None
    return UserRepository(db).get_or_create(
        identity["email"],
        name=identity.get("name"),
        image=identity.get("picture"),
        admin_emails=settings.admin_emails,
    )


def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Access denied")
    return user
