"""Persistence layer for confirmed loan records.

Loans entered through the web API are kept in a database keyed by an
anonymous per-session user token. The store is created once and handed to
the app, so nothing else reaches for a global; the calculator itself never
sees it. It defaults to SQLite for local development but accepts any
SQLAlchemy-compatible URL (e.g. PostgreSQL/MySQL).
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from mortgage_calc.settings import Settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LoanRecordModel(Base):
    __tablename__ = "loan_records"

    id = Column(String(64), primary_key=True)
    user_token = Column(String(64), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    loan_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class LoanStore:
    """Database-backed loan record store."""

    def __init__(self, url: str, *, max_per_user: int = 10) -> None:
        engine_kwargs: Dict[str, Any] = {"future": True}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection, otherwise every session sees an empty database
            engine_kwargs.update(
                connect_args={"check_same_thread": False}, poolclass=StaticPool
            )
        self._engine = create_engine(url, **engine_kwargs)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._max_per_user = max_per_user

    def list_loans(self, user_token: str) -> List[Dict[str, Any]]:
        if not user_token:
            return []
        with self._session_factory() as session:
            rows: Iterable[LoanRecordModel] = session.execute(
                select(LoanRecordModel)
                .where(LoanRecordModel.user_token == user_token)
                .order_by(LoanRecordModel.created_at.asc())
            ).scalars()
            return [self._to_dict(row) for row in rows]

    def get_loan(self, user_token: str, loan_id: str) -> Optional[Dict[str, Any]]:
        if not user_token:
            return None
        with self._session_factory() as session:
            row = session.get(LoanRecordModel, loan_id)
            if row is None or row.user_token != user_token:
                return None
            return self._to_dict(row)

    def add_loan(self, user_token: str, loan_id: str, name: str, loan: dict) -> None:
        if not user_token:
            return
        payload = LoanRecordModel(
            id=loan_id,
            user_token=user_token,
            name=name,
            loan_json=json.dumps(loan),
        )
        with self._session_factory() as session:
            session.add(payload)
            session.commit()
        logger.info("Stored loan %s for user %s", loan_id, user_token[:8])
        self._trim_user(user_token)

    def remove_loan(self, user_token: str, loan_id: str) -> bool:
        if not user_token:
            return False
        with self._session_factory() as session:
            row = session.get(LoanRecordModel, loan_id)
            if row and row.user_token == user_token:
                session.delete(row)
                session.commit()
                return True
        return False

    def clear_loans(self, user_token: str) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            session.execute(
                LoanRecordModel.__table__.delete().where(
                    LoanRecordModel.user_token == user_token
                )
            )
            session.commit()

    def _trim_user(self, user_token: str) -> None:
        if not self._max_per_user or self._max_per_user < 0:
            return
        with self._session_factory() as session:
            rows = session.execute(
                select(LoanRecordModel)
                .where(LoanRecordModel.user_token == user_token)
                .order_by(LoanRecordModel.created_at.desc())
            ).scalars().all()
            if len(rows) <= self._max_per_user:
                return
            for row in rows[self._max_per_user :]:
                session.delete(row)
            session.commit()

    @staticmethod
    def _to_dict(row: LoanRecordModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "name": row.name,
            "loan": json.loads(row.loan_json),
            "created_at": row.created_at.isoformat(),
        }


def create_store_from_settings(settings: Settings) -> LoanStore:
    return LoanStore(settings.database_url, max_per_user=settings.max_loans_per_user)
