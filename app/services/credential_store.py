"""Credential store service.

Durable keyed storage of per-user delegated credentials backed by the
`user_credentials` table. Writes are single-statement upserts keyed by
subject id, so concurrent writers for one subject converge last-write-wins.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import CredentialNotFoundError, DatabaseError
from app.core.logging import get_logger
from app.core.types import SessionFactory
from app.models.credential import CredentialRecord, UserCredential

logger = get_logger(__name__)

# Columns an upsert may write
UPSERT_FIELDS = frozenset({"email", "access_token", "refresh_token", "token_expiry"})


def _store_error(operation: str, subject_id: str, error: SQLAlchemyError) -> DatabaseError:
    # Driver text stays in context, out of the client-facing message
    logger.error(
        "Credential store operation failed",
        operation=operation,
        subject_id=subject_id,
        error_type=type(error).__name__,
    )
    return DatabaseError(
        "Credential store unavailable",
        context={"subject_id": subject_id, "error": str(error)},
        operation=operation,
    )


class CredentialStore:
    """Read and upsert UserCredential rows.

    Example:
        >>> store = CredentialStore(session_factory)
        >>> await store.upsert("1234", {"email": "a@b.c", "access_token": "..."})
        >>> record = await store.get("1234")
    """

    def __init__(self, db_session_factory: SessionFactory) -> None:
        """Initialize credential store.

        Args:
            db_session_factory: Database session factory
        """
        self.db_session_factory = db_session_factory

    async def get(self, subject_id: str) -> CredentialRecord:
        """Load the credential record for a subject.

        Args:
            subject_id: Subject identifier

        Returns:
            Detached credential record

        Raises:
            CredentialNotFoundError: If no record exists
            DatabaseError: If the query fails
        """
        try:
            async with self.db_session_factory() as session:
                result = await session.execute(
                    select(UserCredential).where(UserCredential.subject_id == subject_id)
                )
                row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise _store_error("get", subject_id, e) from e

        if row is None:
            raise CredentialNotFoundError(subject_id)
        return row.to_record()

    async def upsert(self, subject_id: str, fields: dict[str, Any]) -> None:
        """Insert or update the record for a subject.

        A ``refresh_token`` of None never overwrites a stored token, since
        Google omits it on repeated consent.

        Args:
            subject_id: Subject identifier
            fields: Subset of email, access_token, refresh_token, token_expiry

        Raises:
            ValueError: If fields contains unknown columns
            DatabaseError: If the write fails
        """
        unknown = set(fields) - UPSERT_FIELDS
        if unknown:
            raise ValueError(f"Unknown credential fields: {sorted(unknown)}")

        values = {k: v for k, v in fields.items() if not (k == "refresh_token" and v is None)}

        stmt = insert(UserCredential).values(subject_id=subject_id, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[UserCredential.subject_id],
            set_={**{k: stmt.excluded[k] for k in values}, "updated_at": func.now()},
        )

        try:
            async with self.db_session_factory() as session:
                await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as e:
            raise _store_error("upsert", subject_id, e) from e

        logger.info("Credential upserted", subject_id=subject_id, fields=sorted(values))

    async def update_access_token(
        self,
        subject_id: str,
        access_token: str,
        token_expiry: datetime | None,
    ) -> None:
        """Persist a refreshed access token.

        Args:
            subject_id: Subject identifier
            access_token: New access token
            token_expiry: New expiry instant

        Raises:
            CredentialNotFoundError: If the record was removed meanwhile
            DatabaseError: If the write fails
        """
        try:
            async with self.db_session_factory() as session:
                result = await session.execute(
                    update(UserCredential)
                    .where(UserCredential.subject_id == subject_id)
                    .values(
                        access_token=access_token,
                        token_expiry=token_expiry,
                        updated_at=func.now(),
                    )
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise _store_error("update_access_token", subject_id, e) from e

        if result.rowcount == 0:
            raise CredentialNotFoundError(subject_id)

        logger.info("Refreshed access token persisted", subject_id=subject_id)


__all__ = ["CredentialStore"]
