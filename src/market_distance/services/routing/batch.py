"""Grouped, rate-limited distance resolution."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, Iterator, Sequence, TypeVar

from ...config import settings
from ...models.domain import Coordinate, DistanceResult, ResolutionTarget
from ..caching.base import DistanceCache
from ..geospatial import origin_bucket
from .geocoder import CoordinateResolver
from .resolvers import DistanceResolver

logger = logging.getLogger(__name__)

T = TypeVar("T")


def partition(items: Sequence[T], size: int) -> list[list[T]]:
    if size < 1:
        raise ValueError("Group size must be at least 1.")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class BatchScheduler:
    """Resolve targets a few at a time, pausing between groups.

    Members of a group race each other on a thread pool; groups run strictly
    one after another, and a group's distances are written to the cache before
    they are yielded and before the next group starts.
    """

    def __init__(
        self,
        coordinates: CoordinateResolver,
        strategy: DistanceResolver,
        distance_cache: DistanceCache,
        *,
        batch_size: int | None = None,
        delay_seconds: float | None = None,
        bucket_precision: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.coordinates = coordinates
        self.strategy = strategy
        self.distance_cache = distance_cache
        self.batch_size = batch_size if batch_size is not None else settings.batch_size
        self.delay_seconds = delay_seconds if delay_seconds is not None else settings.batch_delay_seconds
        self.bucket_precision = (
            bucket_precision if bucket_precision is not None else settings.origin_bucket_precision
        )
        self.sleep = sleep

    def resolve_all(
        self,
        targets: Iterable[ResolutionTarget],
        origin: Coordinate,
        cancel_event: threading.Event | None = None,
    ) -> Iterator[DistanceResult]:
        groups = partition(list(targets), self.batch_size)
        if not groups:
            return
        bucket = origin_bucket(origin, self.bucket_precision)
        logger.info(f"Resolving distances in {len(groups)} group(s) of up to {self.batch_size} from {bucket}")

        for index, group in enumerate(groups):
            if index > 0:
                if self._cancelled(cancel_event, index, len(groups)):
                    return
                if self.delay_seconds > 0:
                    self.sleep(self.delay_seconds)
                if self._cancelled(cancel_event, index, len(groups)):
                    return

            results = self._resolve_group(group, origin)
            for result in results:
                # Sentinels stay uncached so the next pass tries again.
                if result.is_known:
                    self.distance_cache.put(bucket, result.target_id, result.distance_text)

            failed = sum(1 for result in results if not result.is_known)
            logger.debug(f"Group {index + 1}/{len(groups)} resolved ({failed} unavailable)")
            yield from results

    def _cancelled(self, cancel_event: threading.Event | None, index: int, total: int) -> bool:
        if cancel_event is not None and cancel_event.is_set():
            logger.info(f"Distance resolution cancelled before group {index + 1}/{total}")
            return True
        return False

    def _resolve_group(self, group: list[ResolutionTarget], origin: Coordinate) -> list[DistanceResult]:
        results: list[DistanceResult] = []
        with ThreadPoolExecutor(max_workers=len(group)) as executor:
            future_to_target = {executor.submit(self._resolve_target, target, origin): target for target in group}
            for future in as_completed(future_to_target):
                results.append(future.result())
        return results

    def _resolve_target(self, target: ResolutionTarget, origin: Coordinate) -> DistanceResult:
        try:
            coordinate = target.coordinate or self.coordinates.resolve(target.address)
            if coordinate is None:
                return DistanceResult.unavailable(target.target_id)
            resolved = self.strategy.resolve(origin, coordinate)
            return DistanceResult.from_resolved(target.target_id, resolved, coordinate=coordinate)
        except Exception as e:
            logger.warning(f"Failed to resolve distance for '{target.target_id}': {e}")
            return DistanceResult.unavailable(target.target_id)
