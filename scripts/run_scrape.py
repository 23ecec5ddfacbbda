"""
Run profile scrapes from the CLI.

Either scrape one platform row immediately (``--platform-id``) or run one of
the sweep rules and drain the queue before exiting (``--sweep``).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os

from app.scheduler.jobs import FULL_SWEEP, HEALTH_SWEEP, PRIORITY_SWEEP
from app.services.scrape_service import ScrapeOrchestrator, build_orchestrator


async def _scrape_platform(orchestrator: ScrapeOrchestrator, platform_id: int) -> dict:
    platform = await asyncio.to_thread(orchestrator.store.get_platform, platform_id)
    if platform is None:
        return {"platform_id": platform_id, "status": "not_found"}
    try:
        metrics = await orchestrator.scrape_now(platform.to_target())
    except Exception as exc:  # noqa: BLE001
        return {
            "platform_id": platform_id,
            "status": "failed",
            "error_type": type(exc).__name__,
            "error": str(exc),
        }
    return {"platform_id": platform_id, "status": "success", "metrics": metrics.to_payload()}


async def _run_sweep(orchestrator: ScrapeOrchestrator, rule_id: str) -> dict:
    orchestrator.start(with_scheduler=False)
    try:
        result = await orchestrator.scheduler.run_rule(rule_id)
        await orchestrator.queue.join()
    finally:
        await orchestrator.close(wait=True)
    status = orchestrator.queue_status().as_dict()
    return {
        "rule": rule_id,
        "enqueued": result.enqueued,
        "errors": result.errors,
        "completed": status["completed"],
        "failed": status["failed"],
    }


def main() -> int:
    parser = argparse.ArgumentParser(description="Run KOL profile scrapes.")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument(
        "--platform-id",
        dest="platform_id",
        type=int,
        default=None,
        help="Scrape one platform row now, outside the queue.",
    )
    group.add_argument(
        "--sweep",
        dest="sweep",
        choices=[FULL_SWEEP, PRIORITY_SWEEP, HEALTH_SWEEP],
        default=None,
        help="Run one sweep rule and wait for the queue to drain.",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    orchestrator = build_orchestrator()
    if args.platform_id is not None:
        payload = asyncio.run(_scrape_platform(orchestrator, args.platform_id))
        exit_code = 0 if payload["status"] == "success" else 1
    else:
        payload = asyncio.run(_run_sweep(orchestrator, args.sweep))
        exit_code = 0 if not payload["errors"] else 1

    print(json.dumps(payload, indent=2, default=str))
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
