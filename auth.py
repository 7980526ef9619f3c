# auth.py
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from config import Settings
from database import DocumentStore
from schemas import ADMIN_ROLES, CUSTOMER, SUPER_ADMIN

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class TokenData(BaseModel):
    id: int
    email: str
    role: str


# Utility functions for hashing & verifying passwords
def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(identity: TokenData, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = identity.model_dump()
    to_encode["sub"] = str(identity.id)
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str, settings: Settings) -> TokenData:
    """Raises JWTError on a bad signature, expiry or missing claims."""
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    try:
        return TokenData(id=payload["id"], email=payload["email"], role=payload["role"])
    except (KeyError, ValueError):
        raise JWTError("Token is missing identity claims")


# -------------------------------------------------------------------
# Dependencies
# -------------------------------------------------------------------

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def verify_token(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> TokenData:
    if not authorization:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No token provided")
    token = authorization
    if token.lower().startswith("bearer "):
        token = token[len("bearer "):]
    try:
        return decode_access_token(token.strip(), settings)
    except JWTError:
        logger.warning("Rejected invalid or expired token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def require_admin(identity: TokenData = Depends(verify_token)) -> TokenData:
    if identity.role not in ADMIN_ROLES:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Require Admin Role")
    return identity


def require_customer(identity: TokenData = Depends(verify_token)) -> TokenData:
    if identity.role != CUSTOMER:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Require Customer Role")
    return identity


async def require_super_admin(
    identity: TokenData = Depends(require_admin),
    store: DocumentStore = Depends(get_store),
) -> TokenData:
    # role is re-read from the store, the token claim may be stale
    admin = await store.admins.get(identity.id)
    if admin is None or admin["role"] != SUPER_ADMIN:
        logger.warning(f"Super Admin access denied for {identity.email}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Require Super Admin Role")
    return identity
