"""Authentication module using JWT bearer tokens.

Sessions are issued by the external identity provider; this service only
verifies them. A token carries the user id in ``sub`` and an optional
``role`` claim (``admin`` unlocks moderation routes).

This module provides:
1. Token issuing and verification with a shared secret
2. FastAPI dependencies for required, optional and admin authentication
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError, ExpiredSignatureError

from config import settings_conf

# Configure logging
logger = logging.getLogger(__name__)

# Constants
SESSION_EXPIRY_DAYS = 30
ADMIN_ROLE = 'admin'

class AuthError(Exception):
    """Base exception for authentication errors."""
    pass

class SessionExpiredError(AuthError):
    """Raised when a session has expired."""
    pass

class TokenManager:
    """Issues and verifies session tokens."""

    def __init__(self, secret: str, algorithm: str = 'HS256'):
        self.secret = secret
        self.algorithm = algorithm

    def create_token(
        self,
        user_id: str,
        role: Optional[str] = None,
        expires_in: timedelta = timedelta(days=SESSION_EXPIRY_DAYS)
    ) -> str:
        """Create a signed session token.

        Args:
            user_id: Subject of the token
            role: Optional role claim
            expires_in: Token lifetime

        Returns:
            Encoded JWT
        """
        claims: Dict[str, Any] = {
            'sub': user_id,
            'exp': datetime.now(timezone.utc) + expires_in
        }
        if role:
            claims['role'] = role
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify_token(self, token: str) -> Dict[str, Any]:
        """Verify a session token.

        Returns:
            The token claims

        Raises:
            SessionExpiredError: If the token has expired
            AuthError: If the token is invalid or has no subject
        """
        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise SessionExpiredError("Session has expired")
        except JWTError as e:
            raise AuthError(f"Invalid token: {str(e)}")

        if not claims.get('sub'):
            raise AuthError("Token has no subject")
        return claims

# Create global instance
manager = TokenManager(settings_conf['jwt_secret'], settings_conf['jwt_algorithm'])

# FastAPI security schemes
auth_scheme = HTTPBearer(
    auto_error=False,
    description="JWT Bearer token required"
)

def _claims(credentials: Optional[HTTPAuthorizationCredentials]) -> Dict[str, Any]:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"}
        )
    try:
        return manager.verify_token(credentials.credentials)
    except SessionExpiredError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session has expired"
        )
    except AuthError as e:
        logger.debug(f"Rejected token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e)
        )

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme)
) -> str:
    """FastAPI dependency for getting the authenticated user id.

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    return _claims(credentials)['sub']

async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme)
) -> Optional[str]:
    """Like get_current_user, but anonymous requests yield None.

    A token that is present but invalid is still rejected.
    """
    if credentials is None:
        return None
    return _claims(credentials)['sub']

async def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme)
) -> str:
    """FastAPI dependency for moderation routes.

    Raises:
        HTTPException: 401 if unauthenticated, 403 if not an admin
    """
    claims = _claims(credentials)
    if claims.get('role') != ADMIN_ROLE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required"
        )
    return claims['sub']

# Export public interface
__all__ = [
    'manager',
    'TokenManager',
    'get_current_user',
    'get_optional_user',
    'require_admin',
    'AuthError',
    'SessionExpiredError'
]
