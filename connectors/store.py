"""
Credential store — keyed CRUD over ``integration_tokens``.

Every query is scoped by ``(user_id, provider)``.  One session is opened per
call; SQLAlchemy failures are rolled back and re-raised as ``StoreError``.
Values crossing this boundary are already encrypted.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from connectors.exceptions import StoreError
from connectors.models import IntegrationToken

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back naive; everything is written in UTC.
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


class CredentialRecord(BaseModel):
    user_id: str
    provider: str
    access_token: str
    refresh_token: str
    expires_at: datetime
    token_type: str = "Bearer"
    scope: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: IntegrationToken) -> "CredentialRecord":
        return cls(
            user_id=row.user_id,
            provider=row.provider,
            access_token=row.access_token,
            refresh_token=row.refresh_token,
            expires_at=_as_utc(row.expires_at),
            token_type=row.token_type or "Bearer",
            scope=row.scope or "",
            metadata=dict(row.metadata_ or {}),
            created_at=_as_utc(row.created_at) if row.created_at else None,
            updated_at=_as_utc(row.updated_at) if row.updated_at else None,
        )


class CredentialStore:
    """Async adapter around the ``integration_tokens`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, user_id: str, provider: str) -> Optional[CredentialRecord]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(IntegrationToken).where(
                        IntegrationToken.user_id == user_id,
                        IntegrationToken.provider == provider,
                    )
                )
                row = result.scalar_one_or_none()
                return CredentialRecord.from_row(row) if row else None
        except SQLAlchemyError as exc:
            logger.error("Credential lookup failed for %s/%s: %s", provider, user_id, exc)
            raise StoreError(f"Failed to read credentials: {exc}") from exc

    async def exists(self, user_id: str, provider: str) -> bool:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(IntegrationToken.id).where(
                        IntegrationToken.user_id == user_id,
                        IntegrationToken.provider == provider,
                    )
                )
                return result.first() is not None
        except SQLAlchemyError as exc:
            logger.error("Credential existence check failed for %s/%s: %s", provider, user_id, exc)
            raise StoreError(f"Failed to read credentials: {exc}") from exc

    async def upsert(self, record: CredentialRecord) -> None:
        """
        Update the row for ``(user_id, provider)`` if present, else insert it.

        A concurrent insert that trips the unique constraint is retried once
        as an update, so the table never holds two rows for one key.
        """
        try:
            await self._upsert_once(record)
            return
        except IntegrityError:
            logger.info(
                "Concurrent insert for %s/%s, retrying as update",
                record.provider,
                record.user_id,
            )
        except SQLAlchemyError as exc:
            logger.error("Credential upsert failed for %s/%s: %s", record.provider, record.user_id, exc)
            raise StoreError(f"Failed to store credentials: {exc}") from exc

        try:
            await self._upsert_once(record)
        except SQLAlchemyError as exc:
            logger.error("Credential upsert retry failed for %s/%s: %s", record.provider, record.user_id, exc)
            raise StoreError(f"Failed to store credentials: {exc}") from exc

    async def _upsert_once(self, record: CredentialRecord) -> None:
        async with self._session_factory() as session:
            try:
                result = await session.execute(
                    select(IntegrationToken).where(
                        IntegrationToken.user_id == record.user_id,
                        IntegrationToken.provider == record.provider,
                    )
                )
                existing = result.scalar_one_or_none()
                now = datetime.now(timezone.utc)

                if existing:
                    existing.access_token = record.access_token
                    existing.refresh_token = record.refresh_token
                    existing.expires_at = record.expires_at
                    existing.token_type = record.token_type
                    existing.scope = record.scope
                    existing.metadata_ = dict(record.metadata)
                    existing.updated_at = now
                    logger.info("Updated %s credentials for user %s", record.provider, record.user_id)
                else:
                    session.add(
                        IntegrationToken(
                            user_id=record.user_id,
                            provider=record.provider,
                            access_token=record.access_token,
                            refresh_token=record.refresh_token,
                            expires_at=record.expires_at,
                            token_type=record.token_type,
                            scope=record.scope,
                            metadata_=dict(record.metadata),
                            created_at=now,
                            updated_at=now,
                        )
                    )
                    logger.info("Created %s credentials for user %s", record.provider, record.user_id)

                await session.commit()
            except SQLAlchemyError:
                await session.rollback()
                raise

    async def update_tokens(
        self,
        user_id: str,
        provider: str,
        *,
        access_token: str,
        expires_at: datetime,
        refresh_token: Optional[str] = None,
    ) -> bool:
        """
        Rotate token material in place.  ``refresh_token=None`` keeps the stored one.

        Returns False if no row matched.
        """
        values: Dict[str, Any] = {
            "access_token": access_token,
            "expires_at": expires_at,
            "updated_at": datetime.now(timezone.utc),
        }
        if refresh_token is not None:
            values["refresh_token"] = refresh_token

        async with self._session_factory() as session:
            try:
                result = await session.execute(
                    update(IntegrationToken)
                    .where(
                        IntegrationToken.user_id == user_id,
                        IntegrationToken.provider == provider,
                    )
                    .values(**values)
                )
                await session.commit()
                return result.rowcount > 0
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error("Credential update failed for %s/%s: %s", provider, user_id, exc)
                raise StoreError(f"Failed to update credentials: {exc}") from exc

    async def delete(self, user_id: str, provider: str) -> int:
        """Delete the row for ``(user_id, provider)``; returns rows removed (0 is fine)."""
        async with self._session_factory() as session:
            try:
                result = await session.execute(
                    delete(IntegrationToken).where(
                        IntegrationToken.user_id == user_id,
                        IntegrationToken.provider == provider,
                    )
                )
                await session.commit()
                return result.rowcount
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error("Credential delete failed for %s/%s: %s", provider, user_id, exc)
                raise StoreError(f"Failed to delete credentials: {exc}") from exc
