"""Thin FastAPI wrapper around the rules store and the financial calculators.

Rules are normalized on every read and write, so callers can send partial or
legacy-shaped payloads.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from . import database
from .bookings import attach_menu_snapshot, calculate_booking_financials
from .database import get_active_rule_set, init_database, record_audit_log, upsert_rule_set
from .financials.api import compute_financials, summarize_financials
from .menu_pricing import calculate_menu_pricing_breakdown
from .models import EventInput
from .rules import ensure_default_rules, load_active_rules, merge_rules_overrides, normalize_rules
from .templates import TEMPLATES, rules_for_template
from .validation import validate_rules


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_database()
    ensure_default_rules(database.SessionLocal)
    yield


app = FastAPI(title="Event Rules API", version="0.1", lifespan=lifespan)


def get_db():
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _actor(payload: Dict[str, Any]) -> str:
    actor = payload.get("actor")
    return actor.strip() if isinstance(actor, str) and actor.strip() else "api"


def _resolve_rules(db: Session, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Stored rules (or the request's own), then template overrides, then request overrides."""
    if isinstance(payload.get("rules"), dict):
        rules = normalize_rules(payload["rules"])
    else:
        rules = load_active_rules(db)
    template_name = payload.get("template")
    if template_name:
        if template_name not in TEMPLATES:
            raise HTTPException(status_code=400, detail=f"Unknown template '{template_name}'")
        rules = rules_for_template(TEMPLATES[template_name], rules)
    if isinstance(payload.get("rules_overrides"), dict):
        rules = merge_rules_overrides(rules, payload["rules_overrides"])
    return rules


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/v1/rules")
def get_rules(db=Depends(get_db)) -> JSONResponse:
    record = get_active_rule_set(db)
    rules = load_active_rules(db)
    return JSONResponse(
        content=jsonable_encoder(
            {
                "name": rules.get("name"),
                "rules": rules,
                "last_edited_by": record.lastEditedBy if record else None,
                "last_edited_at": record.lastEditedAt if record else None,
                "validation": validate_rules(rules),
            }
        )
    )


@app.put("/api/v1/rules")
def save_rules(payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    params = payload.get("rules") if isinstance(payload.get("rules"), dict) else None
    if params is None:
        raise HTTPException(status_code=400, detail="Body must include a 'rules' object")
    name = payload.get("name") or params.get("name") or "Default Rules"
    normalized = normalize_rules(params)
    normalized.pop("name", None)
    actor = _actor(payload)
    record = upsert_rule_set(db, str(name), normalized, edited_by=actor)
    record_audit_log(db, user_id=actor, action="RULES_SAVED", target_id=record.id, payload={"name": record.name})
    logger.info("Rule set %r saved by %s", record.name, actor)
    normalized["name"] = record.name
    return JSONResponse(content=jsonable_encoder({"rules": normalized, "validation": validate_rules(normalized)}))


@app.post("/api/v1/rules/normalize")
def normalize_rules_endpoint(payload: Dict[str, Any]) -> JSONResponse:
    return JSONResponse(content=jsonable_encoder(normalize_rules(payload)))


@app.get("/api/v1/rules/validation")
def rules_validation(db=Depends(get_db)) -> JSONResponse:
    return JSONResponse(content=jsonable_encoder(validate_rules(load_active_rules(db))))


@app.post("/api/v1/financials")
def event_financials(payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    event = payload.get("event")
    if not isinstance(event, dict):
        raise HTTPException(status_code=400, detail="Body must include an 'event' object")
    try:
        event_input = EventInput.from_dict(event)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    rules = _resolve_rules(db, payload)
    financials = compute_financials(event_input, rules)
    return JSONResponse(
        content=jsonable_encoder({"financials": financials.to_dict(), "summary": summarize_financials(financials)})
    )


@app.post("/api/v1/bookings/financials")
def booking_financials(payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    booking = payload.get("booking")
    if not isinstance(booking, dict):
        raise HTTPException(status_code=400, detail="Body must include a 'booking' object")
    rules = _resolve_rules(db, payload)
    template_name: Optional[str] = payload.get("template")
    menu = payload.get("menu")
    if isinstance(menu, dict):
        booking = attach_menu_snapshot(
            booking,
            str(menu.get("menu_id") or "menu"),
            menu["guests"] if isinstance(menu.get("guests"), list) else [],
            menu["items"] if isinstance(menu.get("items"), list) else [],
            rules,
        )
    event_types = TEMPLATES[template_name]["event_types"] if template_name else None
    try:
        result = calculate_booking_financials(booking, rules, event_types)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return JSONResponse(
        content=jsonable_encoder(
            {"financials": result["financials"].to_dict(), "pricing_source": result["pricing_source"]}
        )
    )


@app.post("/api/v1/menu/pricing")
def menu_pricing(payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    guests = payload.get("guests")
    items = payload.get("items")
    if not isinstance(guests, list) or not isinstance(items, list):
        raise HTTPException(status_code=400, detail="Body must include 'guests' and 'items' lists")
    rules = _resolve_rules(db, payload)
    breakdown = calculate_menu_pricing_breakdown(
        guests,
        items,
        child_discount_percent=rules["pricing"]["child_discount_percent"],
        premium_add_on_per_guest=payload.get("premium_add_on_per_guest", 0),
    )
    return JSONResponse(content=jsonable_encoder(breakdown))
