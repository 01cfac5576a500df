"""Resolution orchestration: cached distances now, refreshed distances as they arrive."""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, Optional, Sequence, Union

from ..config import settings
from ..models.domain import Coordinate, DistanceResult, Market, ResolutionTarget, Vendor
from .caching.base import DistanceCache
from .geospatial import origin_bucket, parse_miles
from .routing.batch import BatchScheduler
from .routing.geocoder import CoordinateResolver
from .routing.resolvers import HaversineEstimator

if TYPE_CHECKING:
    from ..persistence.records import RecordStore

logger = logging.getLogger(__name__)

Resolvable = Union[Market, Vendor, ResolutionTarget]
UpdateCallback = Callable[[DistanceResult], None]

_END = object()


class SessionState(str, Enum):
    IDLE = "idle"
    SERVING_CACHE = "serving_cache"
    BATCHING = "batching"
    SETTLED = "settled"


class DistanceSession:
    """Distances for one request.

    ``distances`` is usable as soon as ``get_distances`` returns; ``updates()``
    then yields every result the background batch produces until the session
    settles.
    """

    def __init__(self, origin: Coordinate, bucket: str, on_update: UpdateCallback | None = None) -> None:
        self.origin = origin
        self.bucket = bucket
        self.state = SessionState.IDLE
        self.pending: tuple[str, ...] = ()
        self._on_update = on_update
        self._results: dict[str, DistanceResult] = {}
        self._lock = threading.Lock()
        self._updates: queue.Queue = queue.Queue()
        self._cancel = threading.Event()
        self._done = threading.Event()

    @property
    def distances(self) -> dict[str, str]:
        with self._lock:
            return {target_id: result.distance_text for target_id, result in self._results.items()}

    @property
    def results(self) -> dict[str, DistanceResult]:
        with self._lock:
            return dict(self._results)

    @property
    def cancel_event(self) -> threading.Event:
        return self._cancel

    @property
    def settled(self) -> bool:
        return self._done.is_set()

    def cancel(self) -> None:
        """Stop scheduling further groups; the group in flight still completes."""
        self._cancel.set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._done.wait(timeout)

    def updates(self, timeout: float | None = None) -> Iterator[DistanceResult]:
        """Yield results as they are published until the session settles.

        ``timeout`` bounds the wait for each next result; if it elapses first,
        ``queue.Empty`` is raised and the caller may call ``updates()`` again.
        """
        while True:
            item = self._updates.get(timeout=timeout)
            if item is _END:
                # Leave the marker for any later consumer.
                self._updates.put(_END)
                return
            yield item

    def within_range(self, max_miles: float) -> dict[str, DistanceResult]:
        return {
            target_id: result
            for target_id, result in self.results.items()
            if result.miles is not None and result.miles <= max_miles
        }

    def sorted_by_distance(self, target_ids: Optional[Sequence[str]] = None) -> list[str]:
        """Nearest first; unknown distances keep their relative order at the end."""
        results = self.results
        ids = list(target_ids) if target_ids is not None else list(results)

        def sort_key(target_id: str) -> tuple[bool, float]:
            result = results.get(target_id)
            miles = result.miles if result is not None else None
            return (miles is None, miles if miles is not None else 0.0)

        return sorted(ids, key=sort_key)

    def _seed(self, result: DistanceResult) -> None:
        with self._lock:
            self._results[result.target_id] = result

    def _publish(self, result: DistanceResult) -> None:
        with self._lock:
            current = self._results.get(result.target_id)
            if not result.is_known and current is not None and current.is_known:
                # Keep the stale or estimated value on screen rather than blanking it.
                return
            self._results[result.target_id] = result
        self._updates.put(result)
        if self._on_update is not None:
            try:
                self._on_update(result)
            except Exception as e:
                logger.error(f"Distance update callback failed for '{result.target_id}': {e}")

    def _settle(self) -> None:
        self.state = SessionState.SETTLED
        self._updates.put(_END)
        self._done.set()


def as_target(item: Resolvable) -> ResolutionTarget:
    if isinstance(item, ResolutionTarget):
        return item
    if isinstance(item, Market):
        return ResolutionTarget.from_market(item)
    if isinstance(item, Vendor):
        return ResolutionTarget.from_vendor(item)
    raise TypeError(f"Cannot resolve a distance for {type(item).__name__}")


class ResolutionOrchestrator:
    """Entry point used by screens that show distances to markets or vendors."""

    def __init__(
        self,
        distance_cache: DistanceCache,
        scheduler: BatchScheduler,
        coordinates: CoordinateResolver,
        *,
        bucket_precision: int | None = None,
        executor: ThreadPoolExecutor | None = None,
        record_store: Optional["RecordStore"] = None,
    ) -> None:
        self.distance_cache = distance_cache
        self.scheduler = scheduler
        self.coordinates = coordinates
        self.bucket_precision = (
            bucket_precision if bucket_precision is not None else settings.origin_bucket_precision
        )
        self.record_store = record_store
        self._executor = executor or ThreadPoolExecutor(
            max_workers=settings.orchestrator_workers, thread_name_prefix="distances"
        )
        self._estimator = HaversineEstimator()
        self._current: DistanceSession | None = None
        self._lock = threading.Lock()

    def get_distances(
        self,
        origin: Coordinate,
        items: Iterable[Resolvable],
        on_update: UpdateCallback | None = None,
    ) -> DistanceSession:
        targets: dict[str, ResolutionTarget] = {}
        write_back: set[str] = set()
        for item in items:
            target = as_target(item)
            if target.target_id in targets:
                continue
            targets[target.target_id] = target
            if isinstance(item, Vendor) and item.coordinate is None:
                write_back.add(item.id)

        bucket = origin_bucket(origin, self.bucket_precision)
        session = DistanceSession(origin, bucket, on_update)
        with self._lock:
            previous, self._current = self._current, session
        if previous is not None and not previous.settled:
            logger.info(f"Superseding in-flight distance session for {previous.bucket}")
            previous.cancel()

        session.state = SessionState.SERVING_CACHE
        pending: list[ResolutionTarget] = []
        for target in targets.values():
            hit = self.distance_cache.get(bucket, target.target_id)
            if hit is not None:
                session._seed(
                    DistanceResult(
                        target_id=target.target_id,
                        distance_text=hit.distance_text,
                        miles=parse_miles(hit.distance_text),
                        source="cache" if hit.is_fresh else "stale",
                    )
                )
                if hit.is_fresh:
                    continue
            else:
                coordinate = target.coordinate or self.coordinates.cached(target.address)
                if coordinate is not None:
                    placeholder = self._estimator.resolve(origin, coordinate)
                    session._seed(DistanceResult.from_resolved(target.target_id, placeholder, coordinate=coordinate))
            pending.append(target)

        session.pending = tuple(target.target_id for target in pending)
        logger.debug(
            f"Served {len(targets) - len(pending)} fresh distance(s) from cache for {bucket}; "
            f"{len(pending)} need resolution"
        )
        if not pending:
            session._settle()
            return session

        session.state = SessionState.BATCHING
        self._executor.submit(self._run_batch, session, pending, write_back)
        return session

    def _run_batch(self, session: DistanceSession, targets: list[ResolutionTarget], write_back: set[str]) -> None:
        try:
            for result in self.scheduler.resolve_all(targets, session.origin, session.cancel_event):
                session._publish(result)
                if result.target_id in write_back and result.coordinate is not None:
                    self._write_back_coordinates(result.target_id, result.coordinate)
        except Exception as e:
            logger.error(f"Background distance resolution failed for {session.bucket}: {e}")
        finally:
            session._settle()

    def _write_back_coordinates(self, vendor_id: str, coordinate: Coordinate) -> None:
        if self.record_store is None:
            return
        try:
            self.record_store.update_vendor_coordinates(vendor_id, coordinate)
        except Exception as e:
            logger.warning(f"Could not store coordinates for vendor '{vendor_id}': {e}")

    def close(self) -> None:
        self._executor.shutdown(wait=True)
