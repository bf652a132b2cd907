"""
Token service: decodes session tokens issued by the identity provider and signs
short-lived storage URLs.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt

from roomwise.core.config import settings

logger = logging.getLogger(__name__)


class AuthService:
    def create_access_token(self, data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Create a JWT access token"""
        to_encode = data.copy()
        if expires_delta:
            expire = datetime.utcnow() + expires_delta
        else:
            expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)

    def decode_token(self, token: str) -> Optional[dict]:
        """Decode and validate a JWT token"""
        try:
            return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        except JWTError as e:
            logger.warning(f"JWT decode error: {e}")
            return None

    def create_object_token(self, storage_id: str, ttl_seconds: int) -> str:
        """Sign a download token scoped to one stored object"""
        return self.create_access_token(
            {"obj": storage_id, "scope": "storage"},
            expires_delta=timedelta(seconds=ttl_seconds),
        )

    def verify_object_token(self, token: str, storage_id: str) -> bool:
        payload = self.decode_token(token)
        if not payload:
            return False
        return payload.get("scope") == "storage" and payload.get("obj") == storage_id


auth_service = AuthService()
