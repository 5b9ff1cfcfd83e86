"""
pipeline.py
- Owns the one PipelineState for a session
- Every update (scan results, authorization, scan request/settle) goes
  through a single worker thread, one at a time, in arrival order
- Subscribers only ever see fully recomputed snapshots
"""

import queue
import threading
from concurrent.futures import Future
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Protocol

import structlog
from apscheduler.schedulers.background import BackgroundScheduler

from config import SETTLE_DELAY_SEC
from errors import ChannelUniverseError, PipelineClosedError
from models import NetworkObservation, PipelineState
from recommender import recommended_channel_numbers, select_recommendations
from zigbee_analyzer import ZIGBEE_CHANNELS, score_channels

logger = structlog.get_logger(__name__)

EXPECTED_CHANNELS = [d.channel_number for d in ZIGBEE_CHANNELS]

Unsubscribe = Callable[[], None]


class ScanSource(Protocol):
    def subscribe(self, callback: Callable[[List[NetworkObservation]], None]) -> Unsubscribe: ...

    def request_scan(self) -> bool: ...


class AuthorizationSource(Protocol):
    def subscribe(self, callback: Callable[[bool], None]) -> Unsubscribe: ...


def _check_universe(congestion):
    numbers = [c.channel_number for c in congestion]
    if numbers != EXPECTED_CHANNELS:
        raise ChannelUniverseError(f"expected channels {EXPECTED_CHANNELS}, got {numbers}")


class ChannelPipeline:
    def __init__(
        self,
        scan_source: ScanSource,
        authorization_source: AuthorizationSource,
        scheduler=None,
        settle_delay_sec: float = SETTLE_DELAY_SEC,
        scorer=score_channels,
    ):
        self._scan_source = scan_source
        self._authorization_source = authorization_source
        self._settle_delay = timedelta(seconds=settle_delay_sec)
        self._scorer = scorer

        self._owns_scheduler = scheduler is None
        self._scheduler = scheduler if scheduler is not None else BackgroundScheduler()
        if self._owns_scheduler:
            # settle jobs must fire even if start() is never called
            self._scheduler.start()

        self._state = PipelineState()
        self._listeners = []
        self._unsubscribers = []
        self._scan_generation = 0

        self._lock = threading.Lock()
        self._closed = False
        self._queue = queue.Queue()
        self._worker = threading.Thread(target=self._run, name="channel-pipeline", daemon=True)
        self._worker.start()

    # ---------------- PUBLIC ----------------

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def closed(self):
        return self._closed

    def subscribe(self, callback) -> Unsubscribe:
        """Call `callback(state)` after every applied update.

        Callbacks run on the pipeline's worker thread. They may submit
        updates or call close(), but must not block on a pipeline future:
        that future can only resolve after the callback returns.
        """
        with self._lock:
            self._listeners.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def start(self):
        """Attach to the scan and authorization sources."""
        self._unsubscribers.append(self._authorization_source.subscribe(self.grant))
        self._unsubscribers.append(self._scan_source.subscribe(self.observations_updated))
        logger.info("pipeline_started")
        return self

    def grant(self, authorized) -> Future:
        return self._submit(self._apply_grant, bool(authorized))

    def observations_updated(self, observations) -> Future:
        return self._submit(self._apply_observations, tuple(observations or ()))

    def scan_requested(self) -> Future:
        return self._submit(self._apply_scan_requested)

    def flush(self) -> Future:
        """Resolves once everything submitted before it has been applied."""
        return self._submit(lambda state: state)

    def close(self, timeout=5.0):
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(None)

        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

        if threading.current_thread() is not self._worker:
            self._worker.join(timeout)
        if self._owns_scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        logger.info("pipeline_closed")

    # ---------------- SINGLE WRITER ----------------

    def _submit(self, transition, *args) -> Future:
        future = Future()
        with self._lock:
            if self._closed:
                future.set_exception(PipelineClosedError("pipeline is closed"))
                return future
            self._queue.put((future, transition, args))
        return future

    def _run(self):
        while True:
            item = self._queue.get()
            if item is None:
                return
            future, transition, args = item
            if not future.set_running_or_notify_cancel():
                continue

            try:
                new_state = transition(self._state, *args)
            except ChannelUniverseError as exc:
                logger.critical("channel_universe_invalid", error=str(exc), exc_info=True)
                future.set_exception(exc)
                continue
            except Exception as exc:
                logger.exception("pipeline_update_failed", transition=getattr(transition, "__name__", "?"))
                future.set_exception(exc)
                continue

            if new_state is not self._state:
                self._state = new_state
                self._notify(new_state)
            future.set_result(new_state)

    def _notify(self, state):
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(state)
            except Exception:
                logger.exception("pipeline_listener_failed")

    # ---------------- TRANSITIONS ----------------
    # run on the worker thread only

    def _recompute(self, state):
        if not state.authorized:
            return state.model_copy(update={
                "congestion": (),
                "recommendations": (),
                "recommended_channel_numbers": frozenset(),
            })

        try:
            congestion = tuple(self._scorer(state.latest_observations))
        except Exception as exc:
            raise ChannelUniverseError(f"scoring failed: {exc}") from exc
        _check_universe(congestion)

        picks = tuple(select_recommendations(congestion))
        return state.model_copy(update={
            "congestion": congestion,
            "recommendations": picks,
            "recommended_channel_numbers": recommended_channel_numbers(picks),
        })

    def _apply_grant(self, state, authorized):
        if authorized != state.authorized:
            logger.info("authorization_changed", authorized=authorized)
        new_state = self._recompute(state.model_copy(update={"authorized": authorized}))
        if authorized:
            self.scan_requested()
        return new_state

    def _apply_observations(self, state, observations):
        new_state = self._recompute(state.model_copy(update={"latest_observations": observations}))
        logger.info(
            "observations_applied",
            networks=len(observations),
            authorized=new_state.authorized,
            recommendations=[c.channel_number for c in new_state.recommendations],
        )
        return new_state

    def _apply_scan_requested(self, state):
        self._scan_generation += 1
        generation = self._scan_generation

        accepted = self._scan_source.request_scan()
        logger.info("scan_requested", accepted=accepted)

        self._scheduler.add_job(
            self._scan_settled,
            "date",
            run_date=datetime.now(timezone.utc) + self._settle_delay,
            args=[generation],
        )
        return state.model_copy(update={"is_scanning": True})

    def _scan_settled(self, generation):
        # scheduler thread; may fire after close()
        if self._closed:
            return
        self._submit(self._apply_scan_settled, generation)

    def _apply_scan_settled(self, state, generation):
        if generation != self._scan_generation:
            # a newer request restarted the settle window
            return state
        return state.model_copy(update={"is_scanning": False})
