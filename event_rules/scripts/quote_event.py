from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict

ROOT_DIR = Path(__file__).resolve().parents[2]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from event_rules.database import SessionLocal, init_database  # noqa: E402
from event_rules.financials.api import compute_financials, summarize_financials  # noqa: E402
from event_rules.models import EventInput  # noqa: E402
from event_rules.roles import role_label  # noqa: E402
from event_rules.rules import ensure_default_rules, load_active_rules, normalize_rules  # noqa: E402
from event_rules.templates import TEMPLATES, rules_for_template  # noqa: E402


logger = logging.getLogger("event_rules.quote")


def _load_rules(args: argparse.Namespace) -> Dict[str, Any]:
    if args.rules:
        try:
            stored = json.loads(Path(args.rules).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise SystemExit(f"Could not read rules file {args.rules}: {exc}") from exc
        if isinstance(stored, dict) and isinstance(stored.get("params"), dict):
            stored = stored["params"]
        rules = normalize_rules(stored)
    elif args.use_store:
        init_database()
        ensure_default_rules(SessionLocal)
        rules = load_active_rules(SessionLocal)
    else:
        rules = normalize_rules(None)
    if args.template:
        rules = rules_for_template(TEMPLATES[args.template], rules)
    return rules


def _print_summary(financials) -> None:
    summary = summarize_financials(financials)
    print(f"[quote] {summary['guests']} guests, slot {financials.pricing_slot}")
    print(f"[quote] Subtotal ${summary['subtotal']:.2f} + gratuity ${summary['gratuity']:.2f}"
          f" + distance ${summary['distance_fee']:.2f} = ${summary['total_charged']:.2f}")
    print(f"[quote] Costs ${summary['total_costs']:.2f}, labor ${summary['total_labor_paid']:.2f}")
    for item in financials.labor_compensation:
        capped = " (capped)" if item.was_capped else ""
        print(f"[quote]   {role_label(item.role)}: ${item.final_pay:.2f}{capped}")
    print(f"[quote] Gross profit ${summary['gross_profit']:.2f}")
    for owner in financials.owner_distributions:
        print(f"[quote]   {owner.owner_name}: ${owner.amount:.2f}")
    for warning in summary["warnings"]:
        print(f"[quote][warning] {warning}")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Price, staff and split the profit of a single event using the configured rules."
    )
    parser.add_argument("--adults", type=int, required=True, help="Number of adult guests.")
    parser.add_argument("--children", type=int, default=0, help="Number of child guests.")
    parser.add_argument("--event-type", default="primary", help="primary, secondary or a legacy event type id.")
    parser.add_argument("--distance", type=float, default=0.0, help="Travel distance in miles.")
    parser.add_argument("--premium-add-on", type=float, default=0.0, help="Per-guest premium add-on.")
    parser.add_argument("--profile", help="Staffing profile id to use instead of auto-matching.")
    parser.add_argument("--rules", help="JSON file holding a rule set ({name, params} or a bare rule dict).")
    parser.add_argument("--use-store", action="store_true", help="Read the active rule set from the database.")
    parser.add_argument("--template", choices=sorted(TEMPLATES), help="Apply a business template's rule overrides.")
    parser.add_argument("--json", action="store_true", help="Print the full breakdown as JSON.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    try:
        event_input = EventInput.from_dict(
            {
                "adults": args.adults,
                "children": args.children,
                "event_type": args.event_type,
                "distance_miles": args.distance,
                "premium_add_on": args.premium_add_on,
                "staffing_profile_id": args.profile,
            }
        )
    except ValueError as exc:
        raise SystemExit(f"Invalid event: {exc}") from exc
    rules = _load_rules(args)
    financials = compute_financials(event_input, rules)
    if args.json:
        print(json.dumps(financials.to_dict(), indent=2, default=str))
        return
    _print_summary(financials)


if __name__ == "__main__":
    main()
