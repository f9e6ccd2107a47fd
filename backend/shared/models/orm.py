"""
SQLAlchemy 2.0 ORM models for the live pipeline.
Maps the fixtures live-state columns and the sync_runs ledger
(see run_migration_live.py for the PostgreSQL DDL).
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


class FixtureORM(Base):
    __tablename__ = "fixtures"
    __table_args__ = (
        CheckConstraint("home_score >= 0 AND away_score >= 0", name="chk_scores_non_negative"),
        CheckConstraint(
            "(phase = 'scheduled') = (phase_started_at IS NULL)",
            name="chk_phase_started_at",
        ),
        Index("ix_fixtures_phase_kickoff", "phase", "kickoff_at"),
        Index("ix_fixtures_external_id", "external_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    external_id: Mapped[Optional[str]] = mapped_column(String(64))
    provider: Mapped[Optional[str]] = mapped_column(String(32))
    league_external_id: Mapped[Optional[str]] = mapped_column(String(64))
    slug: Mapped[Optional[str]] = mapped_column(String(200))
    kickoff_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    phase: Mapped[str] = mapped_column(String(16), nullable=False, default="scheduled")
    phase_started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    base_minute: Mapped[Optional[int]] = mapped_column(SmallInteger)
    home_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    away_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_live_update_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class SyncRunORM(Base):
    __tablename__ = "sync_runs"
    __table_args__ = (
        Index("ix_sync_runs_job_created", "job_type", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    job_type: Mapped[str] = mapped_column(String(32), nullable=False)
    provider: Mapped[str] = mapped_column(String(32), nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    upserted_fixtures: Mapped[Optional[int]] = mapped_column(Integer, default=0)
    upserted_leagues: Mapped[Optional[int]] = mapped_column(Integer, default=0)
    upserted_teams: Mapped[Optional[int]] = mapped_column(Integer, default=0)
    error: Mapped[Optional[str]] = mapped_column(Text)
    params: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
