"""
Unit tests for authentication: password policy, JWT handling and the
AuthenticationService.
"""
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from core.auth import AuthenticationService, JWTManager, PasswordManager
from core.exceptions import AuthenticationError, ConflictError, ValidationError
from core.models import UserRole


@pytest.fixture
def auth(storage):
    return AuthenticationService(storage)


class TestPasswordManager:
    """Test PasswordManager"""

    def test_hash_and_verify(self):
        hashed = PasswordManager.hash_password("Password123")

        assert hashed != "Password123"
        assert PasswordManager.verify_password("Password123", hashed)
        assert not PasswordManager.verify_password("Password124", hashed)

    @pytest.mark.parametrize(
        "password",
        ["short1", "onlyletters", "1234567890", "a1" * 40],
    )
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(ValidationError):
            PasswordManager.validate_password_strength(password)

    def test_overlong_password_never_verifies(self):
        hashed = PasswordManager.hash_password("Password123")
        assert not PasswordManager.verify_password("x" * 100, hashed)

    def test_rounds_from_environment(self, monkeypatch):
        monkeypatch.setenv("BCRYPT_ROUNDS", "5")
        assert PasswordManager.rounds() == 5


class TestJWTManager:
    """Test JWTManager"""

    @pytest.mark.asyncio
    async def test_token_round_trip(self, auth):
        user = await auth.register_user("greta", "Password123", "Greta")
        manager = JWTManager()

        payload = manager.verify_token(manager.create_access_token(user))

        assert payload["sub"] == str(user.id)
        assert payload["username"] == "greta"
        assert payload["role"] == "user"
        assert payload["jti"]

    @pytest.mark.asyncio
    async def test_expired_token(self, auth):
        user = await auth.register_user("greta", "Password123", "Greta")
        manager = JWTManager()
        token = manager.create_access_token(user, expires_delta=timedelta(seconds=-5))

        with pytest.raises(AuthenticationError) as exc_info:
            manager.verify_token(token)

        assert exc_info.value.details["reason"] == "Token has expired"

    def test_foreign_signature(self):
        token = jwt.encode({"sub": "1"}, "another-secret-key-that-is-long-enough-0123456789", algorithm="HS256")

        with pytest.raises(AuthenticationError):
            JWTManager().verify_token(token)

    def test_expiry_from_environment(self, monkeypatch):
        monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15")
        assert JWTManager().access_token_expire == timedelta(minutes=15)


class TestAuthenticationService:
    """Test AuthenticationService"""

    @pytest.mark.asyncio
    async def test_register(self, auth, storage):
        user = await auth.register_user("greta", "Password123", "Greta", bio="Composting")

        stored = await storage.get_user_by_username("greta")
        assert stored.id == user.id
        assert stored.password_hash != "Password123"
        assert stored.points == 0
        assert UserRole(stored.role) == UserRole.user

    @pytest.mark.asyncio
    async def test_duplicate_username(self, auth):
        await auth.register_user("greta", "Password123", "Greta")

        with pytest.raises(ConflictError):
            await auth.register_user("greta", "Password456", "Other Greta")

    @pytest.mark.asyncio
    async def test_weak_password_checked_before_duplicate(self, auth):
        await auth.register_user("greta", "Password123", "Greta")

        with pytest.raises(ValidationError):
            await auth.register_user("greta", "x", "Other Greta")

    @pytest.mark.asyncio
    async def test_weak_password_not_stored(self, auth, storage):
        with pytest.raises(ValidationError):
            await auth.register_user("greta", "weak", "Greta")

        assert await storage.get_user_by_username("greta") is None

    @pytest.mark.asyncio
    async def test_authenticate(self, auth):
        await auth.register_user("greta", "Password123", "Greta")

        user = await auth.authenticate_user("greta", "Password123")
        assert user.username == "greta"

        with pytest.raises(AuthenticationError):
            await auth.authenticate_user("greta", "WrongPass123")
        with pytest.raises(AuthenticationError):
            await auth.authenticate_user("nobody", "Password123")

    @pytest.mark.asyncio
    async def test_token_resolves_to_user(self, auth):
        user = await auth.register_user("greta", "Password123", "Greta")
        token = auth.create_token(user)

        assert token["token_type"] == "bearer"
        assert token["expires_in"] == 3600
        assert (await auth.verify_access_token(token["access_token"])).id == user.id

    @pytest.mark.asyncio
    async def test_revoked_token(self, auth):
        user = await auth.register_user("greta", "Password123", "Greta")
        token = auth.create_token(user)["access_token"]

        auth.revoke_token(token)

        with pytest.raises(AuthenticationError):
            await auth.verify_access_token(token)

    @pytest.mark.asyncio
    async def test_expired_revocations_are_pruned(self, auth):
        user = await auth.register_user("greta", "Password123", "Greta")
        stale = auth.jwt_manager.create_access_token(user, expires_delta=timedelta(seconds=2))
        auth.revoke_token(stale)
        stale_jti = next(iter(auth.revoked_tokens))
        auth.revoked_tokens[stale_jti] = datetime.now(timezone.utc) - timedelta(seconds=1)

        fresh = auth.create_token(user)["access_token"]
        auth.revoke_token(fresh)

        assert stale_jti not in auth.revoked_tokens
        assert len(auth.revoked_tokens) == 1
        with pytest.raises(AuthenticationError):
            await auth.verify_access_token(fresh)

    @pytest.mark.asyncio
    async def test_token_for_deleted_user(self, auth, storage):
        user = await auth.register_user("greta", "Password123", "Greta")
        token = auth.create_token(user)["access_token"]
        storage.users.delete(user.id)

        with pytest.raises(AuthenticationError):
            await auth.verify_access_token(token)

    @pytest.mark.asyncio
    async def test_ensure_admin_is_idempotent(self, auth, storage):
        first = await auth.ensure_admin("admin", "AdminPass123")
        second = await auth.ensure_admin("admin", "AdminPass123")

        assert first.id == second.id
        assert UserRole(first.role) == UserRole.admin
        assert len(await storage.get_top_users(10)) == 1
