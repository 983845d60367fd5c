"""Unit tests for CredentialStore."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from app.core.exceptions import CredentialNotFoundError, DatabaseError
from app.models.credential import UserCredential
from app.services.credential_store import CredentialStore


def _compile(stmt):
    return stmt.compile(dialect=postgresql.dialect())


class TestCredentialStore:
    """Tests for CredentialStore."""

    @pytest.fixture
    def session(self):
        """Create mock database session."""
        session = AsyncMock()
        session.execute = AsyncMock()
        session.commit = AsyncMock()
        return session

    @pytest.fixture
    def mock_db_session_factory(self, session):
        """Create mock database session factory."""
        factory = MagicMock()
        factory.return_value.__aenter__ = AsyncMock(return_value=session)
        factory.return_value.__aexit__ = AsyncMock(return_value=None)
        return factory

    @pytest.fixture
    def store(self, mock_db_session_factory):
        return CredentialStore(mock_db_session_factory)

    # =========================================================================
    # get
    # =========================================================================

    @pytest.mark.asyncio
    async def test_get_returns_record(self, store, session):
        expiry = datetime.now(tz=UTC) + timedelta(hours=1)
        row = UserCredential(
            subject_id="sub-1",
            email="a@example.com",
            access_token="access",
            refresh_token="refresh",
            token_expiry=expiry,
        )
        result = MagicMock()
        result.scalar_one_or_none.return_value = row
        session.execute.return_value = result

        record = await store.get("sub-1")

        assert record.subject_id == "sub-1"
        assert record.access_token == "access"
        assert record.token_expiry == expiry

    @pytest.mark.asyncio
    async def test_get_missing_raises(self, store, session):
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        session.execute.return_value = result

        with pytest.raises(CredentialNotFoundError) as exc_info:
            await store.get("nobody")

        assert exc_info.value.subject_id == "nobody"

    # =========================================================================
    # upsert
    # =========================================================================

    @pytest.mark.asyncio
    async def test_upsert_builds_on_conflict_statement(self, store, session):
        await store.upsert(
            "sub-1",
            {"email": "a@example.com", "access_token": "access", "refresh_token": "refresh"},
        )

        stmt = session.execute.call_args.args[0]
        sql = str(_compile(stmt))
        assert "ON CONFLICT (subject_id) DO UPDATE" in sql
        assert "updated_at" in sql
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_upsert_keeps_refresh_token_when_none(self, store, session):
        await store.upsert("sub-1", {"access_token": "access", "refresh_token": None})

        params = _compile(session.execute.call_args.args[0]).params
        assert params["access_token"] == "access"
        assert "refresh_token" not in params

    @pytest.mark.asyncio
    async def test_upsert_rejects_unknown_fields(self, store, session):
        with pytest.raises(ValueError, match="Unknown credential fields"):
            await store.upsert("sub-1", {"subject_id": "other"})

        session.execute.assert_not_called()

    # =========================================================================
    # update_access_token
    # =========================================================================

    @pytest.mark.asyncio
    async def test_update_access_token(self, store, session):
        session.execute.return_value = MagicMock(rowcount=1)
        expiry = datetime.now(tz=UTC) + timedelta(hours=1)

        await store.update_access_token("sub-1", "new-access", expiry)

        params = _compile(session.execute.call_args.args[0]).params
        assert params["access_token"] == "new-access"
        assert params["token_expiry"] == expiry
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_access_token_missing_row(self, store, session):
        session.execute.return_value = MagicMock(rowcount=0)

        with pytest.raises(CredentialNotFoundError):
            await store.update_access_token("gone", "new-access", None)

    # =========================================================================
    # database failures
    # =========================================================================

    @pytest.mark.asyncio
    async def test_get_wraps_database_failure(self, store, session):
        session.execute.side_effect = OperationalError(
            "SELECT user_credentials.subject_id FROM user_credentials", {}, Exception("db down")
        )

        with pytest.raises(DatabaseError) as exc_info:
            await store.get("sub-1")

        error = exc_info.value
        assert error.message == "Credential store unavailable"
        assert "SELECT" not in error.message
        assert error.context["operation"] == "get"
        assert error.context["subject_id"] == "sub-1"
        assert isinstance(error.__cause__, OperationalError)

    @pytest.mark.asyncio
    async def test_update_access_token_wraps_commit_failure(self, store, session):
        session.execute.return_value = MagicMock(rowcount=1)
        session.commit.side_effect = OperationalError("COMMIT", {}, Exception("db down"))

        with pytest.raises(DatabaseError) as exc_info:
            await store.update_access_token("sub-1", "new-access", None)

        assert exc_info.value.context["operation"] == "update_access_token"

    @pytest.mark.asyncio
    async def test_upsert_wraps_database_failure(self, store, session):
        session.execute.side_effect = OperationalError("INSERT", {}, Exception("db down"))

        with pytest.raises(DatabaseError) as exc_info:
            await store.upsert("sub-1", {"access_token": "access"})

        assert exc_info.value.context["operation"] == "upsert"
        session.commit.assert_not_called()
