"""
Core Authentication System.

This module provides account registration, password login and bearer token
handling for the EcoSnap API.

Key Components:
- JWTManager: Creates and verifies signed access tokens (PyJWT, HS256). Each
  token carries a unique `jti` so it can be revoked on logout.
- PasswordManager: bcrypt hashing and verification, plus the password policy.
- AuthenticationService: Registration, login, token issuance and token
  resolution against the storage provider. Also seeds the admin account.

Architectural Design:
- Users live in the storage provider like every other entity; only the
  credential hash is stored, never the password.
- Revoked token ids are kept in memory together with their expiry, and are
  dropped once the token would have expired anyway.
"""

import os
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt

from core.exceptions import AuthenticationError, ConflictError, ValidationError
from core.logging_config import get_logger
from core.models import User, UserCreate, UserRole
from providers.storage_provider import StorageProvider

logger = get_logger(__name__)


class JWTManager:
    """JWT token management"""

    def __init__(self, secret_key: str = None, algorithm: str = "HS256"):
        self.secret_key = secret_key or os.getenv("JWT_SECRET_KEY") or self._generate_secret_key()
        self.algorithm = algorithm
        self.access_token_expire = timedelta(
            minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
        )

    def _generate_secret_key(self) -> str:
        """Generate a secure secret key"""
        key = secrets.token_urlsafe(32)
        logger.warning(
            "Generated new JWT secret key. This should be set via JWT_SECRET_KEY environment variable."
        )
        return key

    def create_access_token(self, user: User, expires_delta: timedelta = None) -> str:
        """Create JWT access token"""
        if expires_delta is None:
            expires_delta = self.access_token_expire

        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user.id),
            "username": user.username,
            "role": UserRole(user.role).value,
            "exp": now + expires_delta,
            "iat": now,
            "jti": secrets.token_urlsafe(16),  # JWT ID for token revocation
        }

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        logger.info(f"Created access token for user {user.username}")
        return token

    def verify_token(self, token: str) -> Dict[str, Any]:
        """Verify and decode JWT token"""
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise AuthenticationError(f"Invalid token: {str(e)}")


class PasswordManager:
    """Password hashing and verification"""

    MIN_LENGTH = 8
    # bcrypt only looks at the first 72 bytes
    MAX_BYTES = 72

    @staticmethod
    def rounds() -> int:
        return int(os.getenv("BCRYPT_ROUNDS", "12"))

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash password using bcrypt"""
        PasswordManager.validate_password_strength(password)

        salt = bcrypt.gensalt(rounds=PasswordManager.rounds())
        hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
        return hashed.decode("utf-8")

    @staticmethod
    def verify_password(password: str, hashed: str) -> bool:
        """Verify password against hash"""
        encoded = password.encode("utf-8")
        if len(encoded) > PasswordManager.MAX_BYTES:
            return False
        try:
            return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
        except ValueError as e:
            logger.error(f"Password verification error: {e}")
            return False

    @staticmethod
    def validate_password_strength(password: str) -> bool:
        """Validate password meets security requirements"""
        if len(password) < PasswordManager.MIN_LENGTH:
            raise ValidationError(
                "password", "***", "Password must be at least 8 characters long"
            )

        if len(password.encode("utf-8")) > PasswordManager.MAX_BYTES:
            raise ValidationError(
                "password", "***", "Password must be no more than 72 bytes long"
            )

        has_letter = any(c.isalpha() for c in password)
        has_digit = any(c.isdigit() for c in password)
        if not (has_letter and has_digit):
            raise ValidationError(
                "password", "***", "Password must contain at least one letter and one digit"
            )

        return True


class AuthenticationService:
    """Main authentication service"""

    def __init__(self, storage: StorageProvider, jwt_manager: Optional[JWTManager] = None):
        self.storage = storage
        self.jwt_manager = jwt_manager or JWTManager()
        # jti -> expiry of the revoked token
        self.revoked_tokens: Dict[str, datetime] = {}

    async def register_user(
        self,
        username: str,
        password: str,
        display_name: str,
        bio: Optional[str] = None,
        profile_image: Optional[str] = None,
        role: UserRole = UserRole.user,
    ) -> User:
        """Register new user"""
        PasswordManager.validate_password_strength(password)
        if await self.storage.get_user_by_username(username) is not None:
            raise ConflictError("username", f"Username '{username}' already exists")

        data = UserCreate(
            username=username,
            display_name=display_name,
            bio=bio,
            profile_image=profile_image,
            password_hash=PasswordManager.hash_password(password),
            role=role,
        )
        user = await self.storage.create_user(data)
        logger.info(
            f"Registered new user: {username}",
            extra={"user_id": user.id, "role": role.value},
        )
        return user

    async def authenticate_user(self, username: str, password: str) -> User:
        """Authenticate user with username/password"""
        user = await self.storage.get_user_by_username(username)
        if user is None or not PasswordManager.verify_password(password, user.password_hash):
            logger.warning(f"Authentication failed for {username}")
            raise AuthenticationError("Invalid username or password")

        logger.info(f"User {username} authenticated successfully")
        return user

    def create_token(self, user: User) -> Dict[str, Any]:
        """Create access token response for user"""
        return {
            "access_token": self.jwt_manager.create_access_token(user),
            "token_type": "bearer",
            "expires_in": int(self.jwt_manager.access_token_expire.total_seconds()),
        }

    async def verify_access_token(self, token: str) -> User:
        """Verify access token and return user"""
        payload = self.jwt_manager.verify_token(token)

        if payload.get("jti") in self.revoked_tokens:
            raise AuthenticationError("Token has been revoked")

        try:
            user_id = int(payload["sub"])
        except (KeyError, ValueError):
            raise AuthenticationError("Token has no valid subject")

        user = await self.storage.get_user(user_id)
        if user is None:
            raise AuthenticationError("User not found")
        return user

    def revoke_token(self, token: str):
        """Revoke access token"""
        try:
            payload = self.jwt_manager.verify_token(token)
        except AuthenticationError:
            return  # Token already invalid
        self._prune_revoked_tokens()
        jti = payload.get("jti")
        if jti:
            exp = payload.get("exp")
            self.revoked_tokens[jti] = (
                datetime.fromtimestamp(exp, timezone.utc)
                if exp is not None
                else datetime.now(timezone.utc) + self.jwt_manager.access_token_expire
            )
            logger.info(f"Revoked token {jti}")

    def _prune_revoked_tokens(self):
        now = datetime.now(timezone.utc)
        expired = [jti for jti, expires in self.revoked_tokens.items() if expires <= now]
        for jti in expired:
            del self.revoked_tokens[jti]

    async def ensure_admin(self, username: str, password: str) -> User:
        """Create the admin account unless a user with that name exists"""
        existing = await self.storage.get_user_by_username(username)
        if existing is not None:
            if UserRole(existing.role) != UserRole.admin:
                logger.warning(f"Seed admin name '{username}' belongs to a regular user")
            return existing
        return await self.register_user(
            username=username,
            password=password,
            display_name="Administrator",
            role=UserRole.admin,
        )
