"""
Live-sync service entrypoint.
Runs a reconciliation pass every sync interval. Passes are single-flight across
instances through a Redis SET NX lock; the last report is kept in Redis.
"""
from __future__ import annotations

import asyncio
import signal
import sys
import uuid
from pathlib import Path
from typing import Optional

# Ensure backend root is on path when run as python -m livesync.main
_backend = Path(__file__).resolve().parent.parent
if str(_backend) not in sys.path:
    sys.path.insert(0, str(_backend))

from shared.config import get_settings
from shared.utils.database import DatabaseManager
from shared.utils.logging import get_logger, setup_logging
from shared.utils.metrics import start_metrics_server
from shared.utils.redis_manager import REPORT_KEY, RedisManager

from livesync.config import LiveSyncSettings, get_livesync_settings
from livesync.feeds.api_sports import ApiSportsFeed
from livesync.report import ReconciliationReport
from livesync.runner import ReconciliationRunner
from livesync.stores.sql import SqlBetStore, SqlGameStore

logger = get_logger(__name__)

LOCK_NAME = "livesync:pass"


async def run_single_flight(
    runner: ReconciliationRunner,
    redis: RedisManager,
    settings: LiveSyncSettings,
    owner: str,
) -> Optional[ReconciliationReport]:
    """Run one pass if no other instance holds the lock. Returns None when skipped."""
    if not await redis.try_acquire_lock(LOCK_NAME, owner, ttl_s=settings.lock_ttl_s):
        logger.info("livesync_pass_locked_elsewhere", owner=owner)
        return None
    try:
        report = await runner.run_reconciliation_pass()
        await redis.set_snapshot(
            REPORT_KEY.format(sport=settings.sport.value),
            report.model_dump_json(),
            ttl_s=settings.report_ttl_s,
        )
        return report
    finally:
        await redis.release_lock(LOCK_NAME, owner)


async def run_sync_loop(
    runner: ReconciliationRunner,
    redis: RedisManager,
    settings: LiveSyncSettings,
    owner: str,
) -> None:
    while True:
        try:
            await run_single_flight(runner, redis, settings, owner)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("livesync_loop_error", error=str(e))
        await asyncio.sleep(settings.sync_interval_s)


async def main() -> None:
    setup_logging("livesync")
    settings = get_settings()
    sync_settings = get_livesync_settings()
    owner = settings.instance_id or uuid.uuid4().hex

    db = DatabaseManager(settings)
    redis = RedisManager(settings)
    feed = ApiSportsFeed(settings=settings)

    try:
        await db.connect()
        await redis.connect()
        await feed.start()
    except Exception as e:
        logger.exception("startup_connect_failed", error=str(e))
        raise

    runner = ReconciliationRunner(
        feed=feed,
        game_store=SqlGameStore(db),
        bet_store=SqlBetStore(db),
        settings=sync_settings,
    )
    start_metrics_server()
    loop_task = asyncio.create_task(run_sync_loop(runner, redis, sync_settings, owner))

    shutdown = asyncio.Event()

    def on_signal() -> None:
        shutdown.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            asyncio.get_running_loop().add_signal_handler(sig, on_signal)
        except NotImplementedError:
            pass

    logger.info("livesync_started", sport=sync_settings.sport.value, owner=owner)
    await shutdown.wait()

    loop_task.cancel()
    try:
        await loop_task
    except asyncio.CancelledError:
        pass

    await feed.close()
    await redis.disconnect()
    await db.disconnect()
    logger.info("livesync_stopped")


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
