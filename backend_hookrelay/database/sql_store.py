"""
SQLAlchemy-backed subscription state store.

One row per subscription in subscription_state; the confirmed-block history is
stored as a JSON array. Any SQLAlchemy URL works (SQLite for a single host,
PostgreSQL for multi-instance deployments). Driver errors surface as
StorageError so the batch is reported failed and retried by the sender.
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import BigInteger, Column, Integer, Text, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from backend_hookrelay.core.exceptions import StorageError
from backend_hookrelay.ingestion.models import BlockIdentifier
from backend_hookrelay.relay_logging import get_logger
from backend_hookrelay.reorg.models import SubscriptionState

logger = get_logger(__name__)

Base = declarative_base()


class SubscriptionStateRow(Base):
    """Confirmed tip and recent history for one subscription."""

    __tablename__ = "subscription_state"

    subscription_id = Column(Text, primary_key=True)
    last_confirmed_height = Column(BigInteger, nullable=False)
    last_confirmed_hash = Column(Text, nullable=True)
    history_json = Column(Text, nullable=False, default="[]")
    updated_at = Column(Integer, nullable=True)  # Unix

    def to_state(self) -> SubscriptionState:
        history = json.loads(self.history_json or "[]")
        return SubscriptionState(
            subscription_id=self.subscription_id,
            last_confirmed_height=int(self.last_confirmed_height),
            last_confirmed_hash=self.last_confirmed_hash,
            history=tuple(BlockIdentifier(index=int(b["index"]), hash=b["hash"]) for b in history),
            updated_at=self.updated_at,
        )


class SqlStateStore:
    def __init__(self, url: str, *, create_tables: bool = True) -> None:
        connect_args: dict[str, Any] = {}
        if url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        try:
            self._engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)
            if create_tables:
                Base.metadata.create_all(self._engine)
        except SQLAlchemyError as e:
            raise StorageError(f"state store init failed: {e}") from e
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self._engine)
        logger.info("state_store_engine", url=url.split("?")[0].split("//")[-1])

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        """Single session. Commits on success, rolls back on error."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get(self, subscription_id: str) -> SubscriptionState | None:
        try:
            with self._session_scope() as session:
                row = session.get(SubscriptionStateRow, subscription_id)
                return row.to_state() if row is not None else None
        except SQLAlchemyError as e:
            logger.error("state_store_read_failed", subscription_id=subscription_id, error=str(e))
            raise StorageError(f"read failed for {subscription_id}: {e}") from e

    def put(self, subscription_id: str, state: SubscriptionState) -> None:
        history_json = json.dumps([b.to_dict() for b in state.history])
        try:
            with self._session_scope() as session:
                row = session.get(SubscriptionStateRow, subscription_id)
                if row is None:
                    row = SubscriptionStateRow(subscription_id=subscription_id)
                    session.add(row)
                row.last_confirmed_height = state.last_confirmed_height
                row.last_confirmed_hash = state.last_confirmed_hash
                row.history_json = history_json
                row.updated_at = state.updated_at
        except SQLAlchemyError as e:
            logger.error("state_store_write_failed", subscription_id=subscription_id, error=str(e))
            raise StorageError(f"write failed for {subscription_id}: {e}") from e

    def dispose(self) -> None:
        self._engine.dispose()
