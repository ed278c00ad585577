"""Concurrent per-show execution with error isolation and cancellation."""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Optional
import logging

from bingetrack.errors import BingetrackError, CatalogUnavailable, ShowResolutionFailure

logger = logging.getLogger(__name__)


@dataclass
class FanoutResult:
    results: dict[int, Any] = field(default_factory=dict)
    warnings: list[ShowResolutionFailure] = field(default_factory=list)

    def raise_if_all_failed(self):
        """Raise CatalogUnavailable when every show failed because of the catalog."""
        if self.results or not self.warnings:
            return
        if all(w.is_catalog_failure() for w in self.warnings):
            raise CatalogUnavailable(f"All {len(self.warnings)} shows failed to resolve")


class ShowFanout:
    """
    Runs one task per show id and collects the results.

    A failing show becomes a :class:`ShowResolutionFailure` warning instead of
    aborting its siblings. Shows dropped with :meth:`discard` or
    :meth:`retain` have their task cancelled and are left out of the result
    even if they already finished.

    When ``membership`` is given it is polled every ``poll_interval`` seconds
    while tasks run, and once more after the last one finishes; shows it no
    longer returns are discarded before anything is merged.
    """

    def __init__(
        self,
        name: str = "fanout",
        membership: Optional[Callable[[], Awaitable[Iterable[int]]]] = None,
        poll_interval: float = 0.5
    ):
        self.name = name
        self.membership = membership
        self.poll_interval = poll_interval
        self._tasks: dict[int, asyncio.Task] = {}
        self._discarded: set[int] = set()

    def __contains__(self, show_id: int) -> bool:
        return show_id in self._tasks and show_id not in self._discarded

    def submit(self, show_id: int, factory: Callable[[], Awaitable[Any]]):
        """Schedule ``factory()`` for a show. Submitting a show twice is a no-op."""
        if show_id in self._tasks:
            return
        self._discarded.discard(show_id)
        self._tasks[show_id] = asyncio.ensure_future(factory())

    def discard(self, show_id: int):
        """Abandon a show: cancel its task and drop its result."""
        task = self._tasks.get(show_id)
        if task is None:
            return
        self._discarded.add(show_id)
        if not task.done():
            task.cancel()
            logger.debug(f"[{self.name}] Cancelled in-flight work for show {show_id}")

    def retain(self, show_ids: Iterable[int]):
        """Discard every submitted show not in ``show_ids``."""
        keep = set(show_ids)
        for show_id in list(self._tasks):
            if show_id not in keep:
                self.discard(show_id)

    async def gather(self) -> FanoutResult:
        """Wait for every task and split outcomes into results and warnings."""
        outcome = FanoutResult()
        if not self._tasks:
            return outcome

        timeout = self.poll_interval if self.membership is not None else None
        pending = set(self._tasks.values())
        try:
            while pending:
                _, pending = await asyncio.wait(pending, timeout=timeout)
                if self.membership is not None:
                    self.retain(await self.membership())
        except BaseException:
            for task in self._tasks.values():
                task.cancel()
            raise

        for show_id, task in self._tasks.items():
            if show_id in self._discarded or task.cancelled():
                continue

            error = task.exception()
            if error is None:
                outcome.results[show_id] = task.result()
                continue

            if isinstance(error, ShowResolutionFailure):
                failure = error
            else:
                failure = ShowResolutionFailure(show_id, str(error) or type(error).__name__, cause=error)

            if isinstance(error, BingetrackError):
                logger.warning(f"[{self.name}] Skipping show {show_id}: {failure.reason}")
            else:
                logger.warning(
                    f"[{self.name}] Unexpected error for show {show_id}: {error!r}",
                    exc_info=error
                )
            outcome.warnings.append(failure)

        return outcome


async def run_per_show(
    show_ids: Iterable[int],
    worker: Callable[[int], Awaitable[Any]],
    name: str = "fanout",
    fanout: Optional[ShowFanout] = None
) -> FanoutResult:
    """Run ``worker(show_id)`` for every show concurrently and gather the outcome."""
    fanout = fanout or ShowFanout(name)
    for show_id in dict.fromkeys(show_ids):
        fanout.submit(show_id, lambda show_id=show_id: worker(show_id))
    return await fanout.gather()
