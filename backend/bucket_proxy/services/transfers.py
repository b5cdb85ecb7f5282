import asyncio
import logging
import os
from collections.abc import Awaitable
from pathlib import Path
from typing import TypeVar

from bucket_proxy.core.config import Settings
from bucket_proxy.core.durations import DurationError, parse_duration
from bucket_proxy.services.storage import StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TimeoutConfigError(Exception):
    """Raised when the request timeout cannot be determined."""


class TransferTimeout(StorageError):
    pass


def resolve_timeout(raw: str | None) -> float:
    """Parse the configured ``DURATION`` into seconds."""
    if raw is None:
        raise TimeoutConfigError("could not retrieve duration, DURATION is not set")
    try:
        return parse_duration(raw)
    except DurationError as exc:
        raise TimeoutConfigError(f"could not parse provided duration, {exc}") from exc


def optional_timeout(raw: str | None) -> float | None:
    """Like :func:`resolve_timeout`, but a missing or bad value means no bound."""
    if raw is None:
        return None
    try:
        return parse_duration(raw)
    except DurationError as exc:
        logger.warning("Ignoring unusable DURATION for transfer: %s", exc)
        return None


async def bounded(awaitable: Awaitable[T], timeout: float | None) -> T:
    """Await with a deadline when ``timeout`` is positive."""
    if timeout is None or timeout <= 0:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as exc:
        raise TransferTimeout(f"deadline of {timeout:g}s exceeded") from exc


def _local_target(download_dir: Path, key: str) -> Path:
    root = Path(download_dir).resolve()
    target = root.joinpath(*Path(key).parts).resolve()
    if not key or target == root or not target.is_relative_to(root):
        raise ValueError(f"refusing to write outside {root}")
    return target


def save_to_disk(settings: Settings, key: str, data: bytes) -> Path | None:
    """Write a downloaded object below ``download_dir``.

    Failures are logged and reported as ``None``; they never reach the caller.
    """
    try:
        target = _local_target(settings.download_dir, key)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        os.chmod(target, settings.download_file_mode)
    except (OSError, ValueError) as exc:
        logger.error("Could not write file to %s. Reason: %s", key, exc)
        return None

    logger.info("Wrote file to %s", target)
    return target
