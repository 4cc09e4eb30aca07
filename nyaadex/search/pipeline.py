"""Fan-out, merge and filtering steps shared by providers.

Concurrency happens at two points: several synthesized queries against a
feed, and per-entry detail scrapes for curated records. Both fan in through
``asyncio.gather``, which keeps results in input order so merges are
reproducible.
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import TypeVar

import structlog

from nyaadex.models import RawItem, Release
from nyaadex.search.base import ProviderError

logger = structlog.get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def fetch_all(
    queries: Sequence[str],
    fetch: Callable[[str], Awaitable[list[RawItem]]],
) -> list[list[RawItem]]:
    """Run one fetch per query concurrently.

    A query failing with a provider error contributes an empty list; its
    siblings are unaffected. Any other exception propagates.

    Args:
        queries: Queries to run.
        fetch: Coroutine function returning the raw items for one query.

    Returns:
        One list of raw items per query, in query order.
    """

    async def _run(query: str) -> list[RawItem]:
        try:
            return await fetch(query)
        except ProviderError as e:
            logger.warning("sub_query_failed", query=query, error=str(e))
            return []

    return list(await asyncio.gather(*(_run(query) for query in queries)))


def dedupe_by_download_url(items: Iterable[RawItem]) -> list[RawItem]:
    """Drop items whose download URL was already seen.

    The first occurrence wins. Items without a download URL have no key and
    are always kept.

    Args:
        items: Raw items in merge order.

    Returns:
        Deduplicated items, order preserved.
    """
    seen: set[str] = set()
    unique: list[RawItem] = []
    for item in items:
        if item.download_url:
            if item.download_url in seen:
                continue
            seen.add(item.download_url)
        unique.append(item)
    return unique


def filter_by_episode(
    releases: Iterable[Release],
    episode_number: int,
    absolute_offset: int = 0,
) -> list[Release]:
    """Keep single-episode releases matching the requested episode.

    A release matches on its per-season number or on the absolute number
    ``episode_number + absolute_offset``. Batches and releases without an
    episode number are dropped.

    Args:
        releases: Normalized releases.
        episode_number: Requested episode.
        absolute_offset: Episodes in prior seasons.

    Returns:
        Matching releases, order preserved.
    """
    absolute_episode = episode_number + absolute_offset
    return [
        r
        for r in releases
        if r.episode_number != -1 and r.episode_number in (episode_number, absolute_episode)
    ]


async def gather_bounded(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    limit: int,
) -> list[R]:
    """Run ``worker`` on every item with at most ``limit`` in flight.

    Returns only once every task has settled. Workers are expected to handle
    their own failures; if one raises anyway, the first exception is
    re-raised after all siblings have finished.

    Args:
        items: Inputs.
        worker: Coroutine function applied to each input.
        limit: Maximum number of concurrent workers.

    Returns:
        Worker results in input order.
    """
    semaphore = asyncio.Semaphore(max(limit, 1))

    async def _run(item: T) -> R:
        async with semaphore:
            return await worker(item)

    results = await asyncio.gather(*(_run(item) for item in items), return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(results)
