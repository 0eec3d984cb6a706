from __future__ import annotations

import datetime
import json
from pathlib import Path
from typing import Optional

from .database import DATA_DIR, RuleSetRecord, get_active_rule_set, upsert_rule_set
from .rules import normalize_rules


EXPORT_DIR = DATA_DIR / "exports"


def _timestamp() -> str:
    return datetime.datetime.now().strftime("%Y%m%d_%H%M%S")


def export_rules_dataset(session, target_dir: Optional[Path] = None) -> Path:
    record = get_active_rule_set(session)
    if not record:
        raise ValueError("No active rule set found to export.")
    payload = {
        "name": record.name,
        "params": record.params_dict(),
    }
    directory = Path(target_dir) if target_dir else EXPORT_DIR
    directory.mkdir(parents=True, exist_ok=True)
    filename = directory / f"rules_{_timestamp()}.json"
    filename.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return filename


def import_rules_dataset(session, file_path: Path, *, edited_by: str = "import") -> RuleSetRecord:
    """Load a rules JSON file ({name, params} or a bare rule dict), normalize and store it."""
    try:
        data = json.loads(Path(file_path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Rules file is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError("Rules file must be a JSON object.")
    params = data.get("params") if isinstance(data.get("params"), dict) else None
    if params is None:
        params = {key: value for key, value in data.items() if key != "name"}
    name = data.get("name") or params.get("name") or "Imported Rules"
    normalized = normalize_rules(params)
    normalized.pop("name", None)
    return upsert_rule_set(session, str(name), normalized, edited_by=edited_by)
