from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from sqlalchemy import select

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from assigner import auto_assign_fulfillments
from db import db_session
from models import Plan
from progress import aggregate_plan_progress
from settings import configure_logging

logger = logging.getLogger(__name__)


def fetch_plan_ids(plan_id: int | None) -> list[int]:
    with db_session() as db:
        stmt = select(Plan.id).order_by(Plan.id)
        if plan_id is not None:
            stmt = stmt.where(Plan.id == plan_id)
        return list(db.scalars(stmt).all())


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Regenerate requirement fulfillments for degree plans.")
    parser.add_argument("--plan-id", type=int, default=None, help="only reassign this plan")
    args = parser.parse_args(argv)

    configure_logging()
    plan_ids = fetch_plan_ids(args.plan_id)
    if not plan_ids:
        logger.warning("No plans to reassign")
        return 1

    failures = 0
    for plan_id in plan_ids:
        try:
            with db_session() as db:
                rows = auto_assign_fulfillments(db, plan_id)
                overview = aggregate_plan_progress(db, plan_id)
        except Exception:
            logger.exception("Reassignment failed for plan %s", plan_id)
            failures += 1
            continue

        print(f"\n=== Plan {plan_id}: {len(rows)} fulfillments, {overview['overall_status']} ===")
        for program in overview["programs"]:
            print(
                f"- {program['program_name']} ({program['program_type']}): "
                f"{program['credits_fulfilled']:g}/{program['credits_required']:g} credits, "
                f"{program['percentage']:.0f}% {program['status']}"
            )

    print(f"\nDone: {len(plan_ids) - failures}/{len(plan_ids)} plans reassigned")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
