from passlib.context import CryptContext
import jwt
from bson import ObjectId
from bson.errors import InvalidId
from datetime import datetime, timedelta
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from typing import Optional, Dict, Any

from config import settings
from services.errors import UnauthorizedError

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update({"exp": expire, "iat": datetime.utcnow()})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)

def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode and verify JWT access token"""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except jwt.PyJWTError:
        return None

def verify_token(token: str) -> Optional[str]:
    """Verify token and return user_id if valid"""
    payload = decode_access_token(token)
    if payload is None:
        return None
    return payload.get("user_id")

def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """Resolve the caller's user id from the bearer token."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("No token, authorization denied")
    user_id = verify_token(credentials.credentials)
    if not user_id:
        raise UnauthorizedError("Token is not valid")
    return user_id

def parse_object_id(value: Optional[str]) -> Optional[ObjectId]:
    """Return ``value`` as an ObjectId, or None when it is not a valid id."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None
