"""
One-shot seeding command: fill every missing season once, then exit.

Exit status is 0 when the reconciliation completed, 1 when it failed.
"""

import asyncio
import sys

from loguru import logger

from f1sync.container import AppContainer
from f1sync.datasource.ergast import ErgastSource
from f1sync.settings import Settings, global_settings


async def seed_seasons(settings: Settings, source: ErgastSource | None = None) -> int:
    container = AppContainer(settings, source=source)
    try:
        await container.start(run_scheduler=False)
        result = await container.reconciler.sync_seasons()
    except Exception as e:
        logger.error(f"Seasons seeding failed: {e}")
        return 1
    finally:
        await container.close()

    stored = sum(1 for season in result.items if season.champion is not None)
    if result.has_errors:
        logger.warning(
            f"Seasons seeding completed with {len(result.batch.errors)} item errors"
        )
    logger.info(
        f"Seasons seeding completed: {stored}/{len(result.items)} seasons with a champion"
    )
    return 0


def main() -> None:
    logger.remove()
    logger.add(sys.stderr, level=global_settings.log_level.upper())
    sys.exit(asyncio.run(seed_seasons(global_settings)))


if __name__ == "__main__":
    main()
