from asyncio import CancelledError, sleep

from lms_presence.constants import TASK_ERROR_BACKOFF_SECONDS
from lms_presence.logging import logger
from lms_presence.managers.connection_registry import ConnectionRegistry


async def connection_sweep_task(
    registry: ConnectionRegistry, interval_seconds: float
) -> None:
    """
    Periodically evicts stale connections from the registry.

    Optional complement to the registry's lazy eviction: reads already
    never return stale records, this task only bounds how long idle
    records stay in memory when nobody reads the registry.

    Args:
        registry: Registry to sweep.
        interval_seconds: Delay between sweeps.
    """
    while True:
        try:
            await sleep(interval_seconds)

            evicted = registry.sweep()
            if evicted:
                logger.info(f"Background sweep evicted {evicted} connections")

        except CancelledError:
            logger.info("Task for connection sweep cancelled!")
            break

        except Exception as ex:
            logger.error(f"Connection sweep task error occurred with: {ex}")
            await sleep(TASK_ERROR_BACKOFF_SECONDS)
