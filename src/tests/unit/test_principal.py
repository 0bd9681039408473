"""Unit tests for principal resolution."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError as PydanticValidationError

from taskboard_service.core.errors import InvalidToken, Unauthenticated
from taskboard_service.core.principal import IdentityForm, Principal, PrincipalResolver
from taskboard_service.core.security import TokenService
from taskboard_service.models import User, UserRole, utcnow


@pytest.fixture
def tokens() -> TokenService:
    return TokenService("principal-test-secret-0123456789ab")


@pytest.fixture
def user() -> User:
    return User(username="alice", email="alice@example.com", password_hash="x", role=UserRole.ADMIN)


class TestPrincipal:
    """Tests for the Principal model."""

    def test_requires_an_identity(self) -> None:
        with pytest.raises(PydanticValidationError):
            Principal()

    def test_identity_forms(self) -> None:
        principal = Principal(subject_id="u1", username="alice")

        assert principal.identity(IdentityForm.ID) == "u1"
        assert principal.identity(IdentityForm.USERNAME) == "alice"

    def test_for_user(self, user: User) -> None:
        principal = Principal.for_user(user)

        assert principal.subject_id == user.id
        assert principal.username == "alice"
        assert principal.is_admin is True

    def test_frozen(self) -> None:
        principal = Principal(username="alice")

        with pytest.raises(PydanticValidationError):
            principal.username = "mallory"


class TestExtractToken:
    """Tests for Authorization header parsing."""

    def test_bearer_header(self) -> None:
        assert PrincipalResolver.extract_token("Bearer abc.def.ghi") == "abc.def.ghi"

    def test_scheme_is_case_insensitive(self) -> None:
        assert PrincipalResolver.extract_token("bearer abc") == "abc"

    def test_raw_token(self) -> None:
        assert PrincipalResolver.extract_token("abc.def.ghi") == "abc.def.ghi"

    @pytest.mark.parametrize("header", [None, "", "   "])
    def test_missing_token(self, header: str | None) -> None:
        with pytest.raises(Unauthenticated):
            PrincipalResolver.extract_token(header)

    def test_malformed_header(self) -> None:
        with pytest.raises(InvalidToken):
            PrincipalResolver.extract_token("Basic dXNlcjpwYXNz extra")


class TestResolve:
    """Tests for PrincipalResolver.resolve."""

    @pytest.mark.asyncio
    async def test_current_token(self, tokens: TokenService, user: User) -> None:
        """Test a current token resolves both identity forms."""
        resolver = PrincipalResolver(tokens)

        principal = await resolver.resolve(f"Bearer {tokens.issue(user)}")

        assert principal.subject_id == user.id
        assert principal.username == "alice"
        assert principal.role == "admin"

    @pytest.mark.asyncio
    async def test_missing_token(self, tokens: TokenService) -> None:
        with pytest.raises(Unauthenticated) as exc_info:
            await PrincipalResolver(tokens).resolve(None)

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_expired_token(self, tokens: TokenService) -> None:
        token = tokens.encode_claims({"sub": "u1", "exp": utcnow() - timedelta(minutes=1)})

        with pytest.raises(InvalidToken) as exc_info:
            await PrincipalResolver(tokens).resolve(f"Bearer {token}")

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_legacy_token_fills_id_by_lookup(self, tokens: TokenService, user: User) -> None:
        """Test a {userId: <username>} token gets its id from the user directory."""
        lookup = AsyncMock(return_value=user)
        resolver = PrincipalResolver(tokens, user_lookup=lookup)
        token = tokens.encode_claims({"userId": "alice", "exp": utcnow() + timedelta(minutes=5)})

        principal = await resolver.resolve(f"Bearer {token}")

        lookup.assert_awaited_once_with("alice")
        assert principal.username == "alice"
        assert principal.subject_id == user.id
        assert principal.role == "admin"

    @pytest.mark.asyncio
    async def test_legacy_token_without_lookup(self, tokens: TokenService) -> None:
        token = tokens.encode_claims({"userId": "alice", "exp": utcnow() + timedelta(minutes=5)})

        principal = await PrincipalResolver(tokens).resolve(token)

        assert principal.username == "alice"
        assert principal.subject_id is None

    @pytest.mark.asyncio
    async def test_legacy_token_for_unknown_user(self, tokens: TokenService) -> None:
        resolver = PrincipalResolver(tokens, user_lookup=AsyncMock(return_value=None))
        token = tokens.encode_claims({"userId": "ghost", "exp": utcnow() + timedelta(minutes=5)})

        principal = await resolver.resolve(token)

        assert principal.username == "ghost"
        assert principal.subject_id is None

    @pytest.mark.asyncio
    async def test_token_without_subject(self, tokens: TokenService) -> None:
        token = tokens.encode_claims({"exp": utcnow() + timedelta(minutes=5)})

        with pytest.raises(InvalidToken):
            await PrincipalResolver(tokens).resolve(token)

    @pytest.mark.asyncio
    async def test_unknown_role_dropped(self, tokens: TokenService) -> None:
        token = tokens.encode_claims({"sub": "u1", "role": "superuser", "exp": utcnow() + timedelta(minutes=5)})

        principal = await PrincipalResolver(tokens).resolve(token)

        assert principal.role is None

    @pytest.mark.asyncio
    async def test_resolve_optional(self, tokens: TokenService) -> None:
        resolver = PrincipalResolver(tokens)

        assert await resolver.resolve_optional(None) is None
        with pytest.raises(InvalidToken):
            await resolver.resolve_optional("Bearer garbage")

    @pytest.mark.asyncio
    async def test_resolve_optional_ignoring_invalid(self, tokens: TokenService, user: User) -> None:
        """Test an expired token counts as absent when invalid tokens are ignored."""
        resolver = PrincipalResolver(tokens)
        expired = tokens.encode_claims(
            {"sub": user.id, "username": user.username, "exp": utcnow() - timedelta(minutes=1)}
        )

        assert await resolver.resolve_optional(f"Bearer {expired}", ignore_invalid=True) is None
        assert await resolver.resolve_optional("Bearer garbage", ignore_invalid=True) is None
        valid = await resolver.resolve_optional(f"Bearer {tokens.issue(user)}", ignore_invalid=True)
        assert valid.username == "alice"
        with pytest.raises(InvalidToken):
            await resolver.resolve_optional(f"Bearer {expired}")
