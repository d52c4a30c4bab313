"""SQLAlchemy models for local SQLite report history.

Only final reports are stored: scores, counts, and which rules were left
unresolved. Content itself is never persisted, only its SHA-256 and length,
so the history can show trends without keeping anyone's text.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class ReportSnapshot(Base):
    """The final report of one evaluation or optimization."""

    __tablename__ = "report_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    content_sha256: Mapped[str] = mapped_column(String(64), nullable=False)
    content_length: Mapped[int] = mapped_column(Integer, nullable=False)
    final_phase: Mapped[str | None] = mapped_column(String(20), nullable=True)
    retries_used: Mapped[int] = mapped_column(Integer, default=0)
    evaluations: Mapped[int] = mapped_column(Integer, default=1)
    raw_score: Mapped[int] = mapped_column(Integer, nullable=False)
    applicable_score: Mapped[int] = mapped_column(Integer, nullable=False)
    passed_items: Mapped[int] = mapped_column(Integer, nullable=False)
    failed_items: Mapped[int] = mapped_column(Integer, nullable=False)
    pending_items: Mapped[int] = mapped_column(Integer, nullable=False)
    not_applicable_items: Mapped[int] = mapped_column(Integer, nullable=False)
    compliance_level: Mapped[str] = mapped_column(String(30), nullable=False)
    promoted_count: Mapped[int] = mapped_column(Integer, default=0)
    computed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    unresolved: Mapped[list["UnresolvedRule"]] = relationship(
        back_populates="snapshot", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_snapshot_kind_computed", "kind", "computed_at"),
    )


class UnresolvedRule(Base):
    """A rule left Failed or Pending in a stored report."""

    __tablename__ = "unresolved_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    snapshot_id: Mapped[int] = mapped_column(ForeignKey("report_snapshots.id", ondelete="CASCADE"), nullable=False)
    rule_id: Mapped[str] = mapped_column(String(20), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)

    snapshot: Mapped[ReportSnapshot] = relationship(back_populates="unresolved")

    __table_args__ = (
        Index("ix_unresolved_rule", "rule_id"),
    )
