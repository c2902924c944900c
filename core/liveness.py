"""
Head-turn liveness detector
Polls a frame source, runs the face/landmark model and exposes observable state
"""
import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Callable, List, Optional

from config import liveness as liveness_config
from core.landmarks import get_scheme
from core.liveness_tracker import DetectionSession, NO_FACE

logger = logging.getLogger(__name__)


MODEL_LOAD_FAILURE = 'model_load_failure'
DETECTOR_NOT_READY = 'detector_not_ready'


class LivenessError(Exception):
    kind = 'liveness_error'

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ModelLoadFailure(LivenessError):
    kind = MODEL_LOAD_FAILURE


class DetectorNotReady(LivenessError):
    kind = DETECTOR_NOT_READY


@dataclass(frozen=True)
class DetectorState:
    is_model_loaded: bool = False
    is_detecting: bool = False
    face_detected: bool = False
    head_turn_detected: bool = False
    status: str = NO_FACE
    error: Optional[str] = None
    error_kind: Optional[str] = None

    def to_dict(self):
        return asdict(self)


def _default_model_loader(source, score_threshold):
    from core.detector import load_face_model
    return load_face_model(source, score_threshold=score_threshold)


# Returned by the worker when the source has no frame to analyse
_NO_FRAME = object()


def _consume_result(task):
    # Inference orphaned by a stop still has its error logged
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Inference failed: %r", task.exception())


class LivenessDetector:
    """
    One detector per camera session.

    Lifecycle: load_models() -> start_detection(source) -> stop/reset -> aclose()
    """

    def __init__(self,
                 model_source=liveness_config.FACE_MODEL_SOURCE,
                 model_loader=None,
                 scheme=liveness_config.LANDMARK_SCHEME,
                 interval_ms=liveness_config.DETECTION_INTERVAL_MS,
                 input_size=liveness_config.DETECTION_INPUT_SIZE,
                 score_threshold=liveness_config.DETECTION_SCORE_THRESHOLD,
                 stability_hits=liveness_config.STABILITY_HITS,
                 history_size=liveness_config.HEAD_HISTORY_SIZE,
                 min_samples=liveness_config.HEAD_MIN_SAMPLES,
                 turn_range=liveness_config.HEAD_TURN_RANGE):
        self.model_source = model_source
        self.model_loader = model_loader or _default_model_loader
        self.interval_ms = interval_ms
        self.input_size = input_size
        self.score_threshold = score_threshold

        self.session = DetectionSession(
            stability_hits=stability_hits,
            history_size=history_size,
            min_samples=min_samples,
            turn_range=turn_range,
            scheme=get_scheme(scheme),
        )

        self.model = None
        self.is_model_loaded = False
        self.is_detecting = False
        self.last_error: Optional[LivenessError] = None

        self._task: Optional[asyncio.Task] = None
        # Inference running in the worker thread; outlives cancelled loops
        self._inflight: Optional[asyncio.Task] = None
        self._generation = 0
        self._listeners: List[Callable[[DetectorState], None]] = []
        self._last_state = self.state

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------
    @property
    def face_detected(self):
        return self.session.face_detected

    @property
    def head_turn_detected(self):
        return self.session.head_turn_detected

    @property
    def error(self):
        return self.last_error.message if self.last_error else None

    @property
    def state(self):
        return DetectorState(
            is_model_loaded=self.is_model_loaded,
            is_detecting=self.is_detecting,
            face_detected=self.session.face_detected,
            head_turn_detected=self.session.head_turn_detected,
            status=self.session.status,
            error=self.error,
            error_kind=self.last_error.kind if self.last_error else None,
        )

    def subscribe(self, callback):
        """Call callback(DetectorState) on every state change. Returns unsubscribe."""
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _notify(self):
        current = self.state
        if current == self._last_state:
            return
        self._last_state = current

        for callback in list(self._listeners):
            try:
                callback(current)
            except Exception:
                logger.exception("State listener %r failed", callback)

    def _set_error(self, error):
        self.last_error = error
        self._notify()

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------
    async def load_models(self):
        """Load the face/landmark model. Failures are reported through state."""
        self.last_error = None
        self._notify()

        try:
            logger.info("Loading face detection models from %r...", self.model_source)
            model = await asyncio.to_thread(self.model_loader, self.model_source, self.score_threshold)
        except Exception:
            logger.exception("Error loading face detection models")
            self.model = None
            self.is_model_loaded = False
            self._set_error(ModelLoadFailure("Failed to load face detection models"))
            return

        self._close_model()
        self.model = model
        self.is_model_loaded = True
        logger.info("Face detection models loaded")
        self._notify()

    def start_detection(self, source):
        """Start polling source. Must be called from a running event loop."""
        if not self.is_model_loaded:
            logger.warning("start_detection called before models were loaded")
            self._set_error(DetectorNotReady("Face detection models are not loaded yet"))
            return

        self._cancel_loop()
        self._generation += 1
        self.session.reset()
        self.is_detecting = True

        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(source, self._generation))
        self._notify()

    def stop_detection(self):
        """Stop polling. Keeps face/head-turn flags."""
        self._cancel_loop()
        self._generation += 1
        self.is_detecting = False
        self._notify()

    def reset_detection(self):
        """Stop polling and clear the session (retake)."""
        self.stop_detection()
        self.session.reset()
        self._notify()

    def close(self):
        """Stop and release the model once no inference is using it."""
        self.stop_detection()
        self._close_model()
        self.is_model_loaded = False
        self._listeners.clear()

    async def aclose(self):
        """Stop, wait for the in-flight inference, then release the model."""
        self.stop_detection()
        if self._inflight is not None and not self._inflight.done():
            await asyncio.wait({self._inflight})
        self.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    def _cancel_loop(self):
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def _close_model(self):
        model, self.model = self.model, None
        if model is None or not hasattr(model, 'close'):
            return

        # MediaPipe graphs must not be closed under a running process() call
        if self._inflight is not None and not self._inflight.done():
            self._inflight.add_done_callback(lambda _: model.close())
        else:
            model.close()

    # ------------------------------------------------------------------
    # Polling loop
    # ------------------------------------------------------------------
    async def _run(self, source, generation):
        loop = asyncio.get_running_loop()
        interval = self.interval_ms / 1000.0
        next_tick = loop.time() + interval

        while generation == self._generation:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            if generation != self._generation:
                break

            await self._tick(source, generation)

            # Drop ticks missed while inference was running
            next_tick += interval
            now = loop.time()
            if next_tick < now:
                missed = int((now - next_tick) // interval) + 1
                next_tick += missed * interval
                logger.debug("Inference overran, dropped %d tick(s)", missed)

    async def _tick(self, source, generation):
        if source.paused or source.ended:
            return

        # One inference at a time, also across stop/start (retake)
        if self._inflight is not None and not self._inflight.done():
            logger.debug("Previous inference still running, skipping tick")
            return

        model = self.model
        if model is None:
            return

        try:
            self._inflight = asyncio.ensure_future(
                asyncio.to_thread(self._detect_frame, model, source))
            self._inflight.add_done_callback(_consume_result)
            result = await asyncio.shield(self._inflight)

            # Stopped or reset while inference was in flight
            if generation != self._generation:
                logger.debug("Discarding result from stale detection run")
                return

            if result is _NO_FRAME:
                return

            if result is not None:
                self.session.record_face(result.landmarks)
            else:
                self.session.record_miss()
        except Exception:
            logger.exception("Detection error")
            return

        self._notify()

    def _detect_frame(self, model, source):
        frame = source.read()
        if frame is None:
            return _NO_FRAME
        return model.detect_single_face(
            frame,
            input_size=self.input_size,
            score_threshold=self.score_threshold,
        )
