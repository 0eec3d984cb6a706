from __future__ import annotations

import datetime
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint, create_engine, select, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker


DATA_DIR = Path(__file__).resolve().parent / "data"
RULES_DATABASE_URL = os.environ.get(
    "EVENT_RULES_DATABASE_URL",
    f"sqlite:///{(DATA_DIR / 'rules.db').as_posix()}",
)


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class RulesBase(DeclarativeBase):
    """Metadata for rule-set and audit tables living in rules.db."""

    pass


class RuleSetRecord(RulesBase):
    __tablename__ = "rule_sets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    paramsJSON: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    lastEditedBy: Mapped[str] = mapped_column(String(60), nullable=False, default="system")
    lastEditedAt: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        UniqueConstraint("name", name="uq_rule_sets_name"),
    )

    def params_dict(self) -> Dict:
        try:
            value = json.loads(self.paramsJSON or "{}")
            if isinstance(value, dict):
                return value
        except json.JSONDecodeError:
            pass
        return {}


class AuditLog(RulesBase):
    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(60), nullable=False)
    action: Mapped[str] = mapped_column(String(60), nullable=False)
    target_type: Mapped[str] = mapped_column(String(32), nullable=False, default="RuleSet")
    target_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    payloadJSON: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


def _build_engine(url: str):
    if url.startswith("sqlite:///"):
        DATA_DIR.mkdir(parents=True, exist_ok=True)
    return create_engine(url, echo=False, future=True)


rules_engine = _build_engine(RULES_DATABASE_URL)
SessionLocal = sessionmaker(bind=rules_engine, expire_on_commit=False, future=True)


def init_database() -> None:
    RulesBase.metadata.create_all(rules_engine)
    with rules_engine.begin() as conn:
        cols = {row[1]: True for row in conn.execute(text("PRAGMA table_info(rule_sets)"))}
        if "lastEditedBy" not in cols:
            conn.execute(text("ALTER TABLE rule_sets ADD COLUMN lastEditedBy VARCHAR(60) NOT NULL DEFAULT 'system'"))
        if "lastEditedAt" not in cols:
            conn.execute(text("ALTER TABLE rule_sets ADD COLUMN lastEditedAt DATETIME DEFAULT (datetime('now'))"))


def _coerce_rules_session(session):
    """Return (session, should_close), opening a fresh session when none is given."""
    if session is None:
        return SessionLocal(), True
    return session, False


def list_rule_sets(session) -> List[RuleSetRecord]:
    rules_session, close_session = _coerce_rules_session(session)
    try:
        stmt = select(RuleSetRecord).order_by(RuleSetRecord.name.asc(), RuleSetRecord.id.asc())
        return list(rules_session.scalars(stmt))
    finally:
        if close_session:
            rules_session.close()


def get_rule_set(session, name: str) -> Optional[RuleSetRecord]:
    rules_session, close_session = _coerce_rules_session(session)
    try:
        stmt = select(RuleSetRecord).where(RuleSetRecord.name == name)
        return rules_session.scalars(stmt).first()
    finally:
        if close_session:
            rules_session.close()


def upsert_rule_set(session, name: str, params_dict: Dict, *, edited_by: str = "system") -> RuleSetRecord:
    rules_session, close_session = _coerce_rules_session(session)
    try:
        existing: Optional[RuleSetRecord] = rules_session.execute(
            select(RuleSetRecord).where(RuleSetRecord.name == name)
        ).scalars().first()
        payload = params_dict if isinstance(params_dict, dict) else {}
        if existing:
            existing.paramsJSON = json.dumps(payload)
            existing.lastEditedBy = edited_by
            existing.lastEditedAt = _utcnow()
            rules_session.commit()
            rules_session.refresh(existing)
            return existing
        record = RuleSetRecord(
            name=name,
            paramsJSON=json.dumps(payload),
            lastEditedBy=edited_by,
            lastEditedAt=_utcnow(),
        )
        rules_session.add(record)
        rules_session.commit()
        rules_session.refresh(record)
        return record
    finally:
        if close_session:
            rules_session.close()


def delete_rule_set(session, rule_set_id: int) -> None:
    rules_session, close_session = _coerce_rules_session(session)
    try:
        rules_session.query(RuleSetRecord).filter(RuleSetRecord.id == rule_set_id).delete()
        rules_session.commit()
    finally:
        if close_session:
            rules_session.close()


def get_active_rule_set(session) -> Optional[RuleSetRecord]:
    """Last writer wins: the most recently edited rule set is the active one."""
    rules_session, close_session = _coerce_rules_session(session)
    try:
        stmt = select(RuleSetRecord).order_by(RuleSetRecord.lastEditedAt.desc(), RuleSetRecord.id.desc())
        return rules_session.scalars(stmt).first()
    finally:
        if close_session:
            rules_session.close()


def record_audit_log(
    session,
    user_id: str,
    action: str,
    target_type: str = "RuleSet",
    target_id: Optional[int] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    log = AuditLog(
        user_id=user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        payloadJSON=json.dumps(payload or {}),
    )
    session.add(log)
    session.commit()
    return log
