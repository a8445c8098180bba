# inkwell/auth/dependencies.py
from fastapi import Cookie, Header, HTTPException, status
from jose import jwt, JWTError
from pydantic import BaseModel
from datetime import datetime, timedelta, timezone
from typing import Optional
from inkwell.config import settings

class AuthenticatedUser(BaseModel):
    id: str
    email: Optional[str] = None

def create_access_token(user_id: str, email: Optional[str] = None, expires_in: int = 3600) -> str:
    claims = {
        "sub": user_id,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)

def decode_access_token(token: str) -> AuthenticatedUser:
    payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    user_id = payload.get("sub")
    if not user_id:
        raise JWTError("Token has no subject")
    return AuthenticatedUser(id=user_id, email=payload.get("email"))

async def get_current_user(
    access_token: Optional[str] = Cookie(None),
    authorization: Optional[str] = Header(None)
) -> AuthenticatedUser:
    """Get current user from access token cookie or bearer header - REQUIRED authentication"""
    token = access_token
    if not token and authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    try:
        return decode_access_token(token)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials"
        )
