"""
Anti-detection helpers: fingerprint randomization, randomized waits and
simulated pointer activity. Page-level evasions come from playwright-stealth.

All randomness goes through an injectable ``random.Random`` and all waiting
through an injectable ``sleep`` so tests run instantly and deterministically.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING

from app.config import DEFAULT_USER_AGENTS, ScrapeSettings

if TYPE_CHECKING:
    from app.scraping.browser import BrowserSession

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

CHROMIUM_ARGS: tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
    "--disable-blink-features=AutomationControlled",
)

def choose_user_agent(user_agents: Sequence[str], rng: random.Random) -> str:
    pool = list(user_agents) or list(DEFAULT_USER_AGENTS)
    return rng.choice(pool)


def choose_viewport(settings: ScrapeSettings, rng: random.Random) -> tuple[int, int]:
    jitter = max(0, settings.viewport_jitter)
    return (
        settings.viewport_width + rng.randint(0, jitter),
        settings.viewport_height + rng.randint(0, jitter),
    )


async def random_delay(
    min_ms: int,
    max_ms: int,
    *,
    rng: random.Random,
    sleep: Sleep = asyncio.sleep,
) -> float:
    """Sleep a uniformly random duration in ``[min_ms, max_ms]``; returns seconds slept."""

    low, high = sorted((max(0, min_ms), max(0, max_ms)))
    seconds = rng.randint(low, high) / 1000
    await sleep(seconds)
    return seconds


async def simulate_human(
    session: "BrowserSession",
    *,
    rng: random.Random,
    sleep: Sleep = asyncio.sleep,
) -> None:
    """
    One pointer move, one scroll and a short pause. Best effort: failures are
    logged at debug level and ignored.
    """

    try:
        await session.move_pointer(rng.randint(100, 1100), rng.randint(100, 800))
        await session.scroll_by(0, rng.randint(100, 400))
    except Exception as exc:  # noqa: BLE001
        logger.debug("Human simulation skipped: %s", exc)
    await random_delay(500, 1500, rng=rng, sleep=sleep)
