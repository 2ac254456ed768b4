"""
Security Module - Authentication & Authorization

Identity comes from a signed bearer token; the role comes from the
AUTHORIZED_USERS whitelist in configuration. Nobody outside the whitelist
gets in, whatever their token says.
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, List
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from inventory_ledger.core.config import settings
from inventory_ledger.schemas import CurrentUser

# Bearer token scheme
bearer_scheme = HTTPBearer(auto_error=False)


class AccessPolicy:
    """Maps an authenticated email to its role"""

    def __init__(self, authorized_users: Dict[str, str]):
        self.authorized_users = {email.lower(): role for email, role in authorized_users.items()}

    def role_for(self, email: str) -> Optional[str]:
        if not email:
            return None
        return self.authorized_users.get(email.lower())

    def is_authorized(self, email: str) -> bool:
        return self.role_for(email) is not None


def get_access_policy() -> AccessPolicy:
    return AccessPolicy(settings.AUTHORIZED_USERS)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token"""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT token"""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return payload
    except JWTError:
        return None


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    policy: AccessPolicy = Depends(get_access_policy)
) -> CurrentUser:
    """
    Dependency to get the current authenticated user from JWT token.
    Supports both Authorization header and cookies.
    """
    token = None

    # Try Authorization header first
    if credentials:
        token = credentials.credentials

    # Fall back to cookie
    if not token:
        token = request.cookies.get("access_token")

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(token)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    email: str = payload.get("email") or payload.get("sub")
    if email is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    role = policy.role_for(email)
    if role is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"User {email} is not authorized"
        )

    return CurrentUser(id=payload.get("uid") or email, email=email, role=role)


class RoleChecker:
    """Dependency for checking the caller's role"""

    def __init__(self, allowed_roles: List[str]):
        self.allowed_roles = set(allowed_roles)

    def __call__(self, user: CurrentUser = Depends(get_current_user)):
        if user.role not in self.allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{user.role}' may not perform this action"
            )
