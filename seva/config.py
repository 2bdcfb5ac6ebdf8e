"""
Process configuration shared by the API, the worker and the CLI.

Everything is read from environment variables at the edges of the
application; use cases and repositories receive plain values.
"""

import asyncio
import logging
import os
from typing import List, Optional

from temporalio.client import Client
from temporalio.contrib.pydantic import pydantic_data_converter
from temporalio.service import RPCError

logger = logging.getLogger(__name__)

DEFAULT_TEMPORAL_ENDPOINT = "temporal:7233"
DEFAULT_TASK_QUEUE = "seva-task-queue"
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

TRUTHY = ("1", "true", "yes", "on")


def setup_logging() -> None:
    """Configure the root logger from LOG_LEVEL and LOG_FORMAT."""
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(level_name)
    valid = isinstance(level, int)

    logging.basicConfig(
        level=level if valid else logging.INFO,
        format=os.environ.get("LOG_FORMAT", DEFAULT_LOG_FORMAT),
        force=True,
    )
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    if not valid:
        logger.warning(
            "Unknown LOG_LEVEL, using INFO", extra={"log_level": level_name}
        )


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in TRUTHY


def temporal_endpoint(override: Optional[str] = None) -> str:
    return override or os.environ.get(
        "TEMPORAL_ENDPOINT", DEFAULT_TEMPORAL_ENDPOINT
    )


def task_queue(override: Optional[str] = None) -> str:
    return override or os.environ.get("SEVA_TASK_QUEUE", DEFAULT_TASK_QUEUE)


def reconcile_temple_ids() -> List[str]:
    """Temples listed in SEVA_RECONCILE_TEMPLE_IDS (comma separated)."""
    raw = os.environ.get("SEVA_RECONCILE_TEMPLE_IDS", "")
    return [tid.strip() for tid in raw.split(",") if tid.strip()]


def reconcile_interval_minutes() -> int:
    return int(os.environ.get("SEVA_RECONCILE_INTERVAL_MINUTES", "60"))


async def connect_temporal(
    endpoint: str, attempts: int = 10, delay_seconds: float = 5.0
) -> Client:
    """
    Connect to Temporal, waiting for a server that is still starting.

    Raises:
        RPCError: the last connection failure once ``attempts`` are used up
    """
    last_error: Optional[RPCError] = None
    for attempt in range(1, attempts + 1):
        try:
            client = await Client.connect(
                endpoint,
                namespace="default",
                data_converter=pydantic_data_converter,
            )
        except RPCError as e:
            last_error = e
            logger.warning(
                "Temporal not reachable",
                extra={
                    "endpoint": endpoint,
                    "attempt": attempt,
                    "max_attempts": attempts,
                    "error": str(e),
                },
            )
            if attempt < attempts:
                await asyncio.sleep(delay_seconds)
            continue

        logger.info(
            "Connected to Temporal",
            extra={"endpoint": endpoint, "attempt": attempt},
        )
        return client

    logger.error(
        "Giving up on Temporal",
        extra={"endpoint": endpoint, "attempts": attempts},
    )
    assert last_error is not None
    raise last_error
