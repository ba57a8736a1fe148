"""
Reactive commute session
Recomputes commute results whenever the marker store changes
"""

import asyncio
import logging
from typing import Callable, List, Optional

from commutecalc.core.models import CommuteResult, Marker
from commutecalc.core.store import MarkerStore

from .service import CommuteAggregator

ResultsListener = Callable[[List[CommuteResult]], None]


class CommuteSession:
    """
    Binds a MarkerStore to a CommuteAggregator with latest-wins semantics

    Every store change bumps the generation and cancels the in-flight pass.
    A pass only publishes results if its generation is still current, so a
    superseded pass can never overwrite newer results.
    """

    def __init__(self, store: MarkerStore, aggregator: CommuteAggregator):
        self.store = store
        self.aggregator = aggregator
        self.logger = logging.getLogger(__name__)

        self.generation = 0
        self.results: List[CommuteResult] = []
        self.loading = False
        self.last_error: Optional[BaseException] = None
        self.stale = False

        self._task: Optional[asyncio.Task] = None
        self._listeners: List[ResultsListener] = []

        store.subscribe(self._on_markers_changed)

    @property
    def markers(self) -> List[Marker]:
        return self.store.snapshot()

    def on_results(self, listener: ResultsListener) -> None:
        """Register a callback fired once per published generation"""
        self._listeners.append(listener)

    def refresh(self) -> asyncio.Task:
        """Start a pass for the current markers, superseding any running pass"""
        return self._schedule(self.store.snapshot())

    async def wait(self) -> List[CommuteResult]:
        """Wait for the latest pass to settle and return the published results"""
        # A superseded pass settles as cancelled; keep waiting on its replacement
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})
        return self.results

    async def close(self) -> None:
        """Stop listening to the store and cancel the in-flight pass"""
        self.store.unsubscribe(self._on_markers_changed)
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self.loading = False

    def _on_markers_changed(self, markers: List[Marker]) -> None:
        try:
            self._schedule(markers)
        except RuntimeError:
            # No running loop; the bumped generation keeps an in-flight pass
            # from publishing and the next refresh() recomputes
            self.generation += 1
            self.stale = True
            self.logger.warning(
                f"Markers changed with no running event loop; results stale until refresh "
                f"(generation {self.generation})"
            )

    def _schedule(self, markers: List[Marker]) -> asyncio.Task:
        loop = asyncio.get_running_loop()

        self.generation += 1
        if self._task is not None and not self._task.done():
            self.logger.debug(f"Cancelling superseded pass before generation {self.generation}")
            self._task.cancel()

        self.stale = False
        self.loading = True
        self._task = loop.create_task(self._run(self.generation, markers))
        return self._task

    async def _run(self, generation: int, markers: List[Marker]) -> None:
        try:
            results = await self.aggregator.aggregate(markers)
        except asyncio.CancelledError:
            self.logger.debug(f"Pass for generation {generation} cancelled")
            raise
        except Exception as e:
            if generation != self.generation:
                return
            self.logger.error(f"Commute aggregation failed: {e}")
            self.last_error = e
            self.loading = False
            return

        if generation != self.generation:
            self.logger.debug(f"Discarding stale results from generation {generation}")
            return

        self.results = results
        self.last_error = None
        self.loading = False

        for listener in list(self._listeners):
            listener(results)
