"""Per-frame non-verbal behavior engine.

``BehaviorEngine.process_frame`` is the whole public surface: it folds one
landmark frame into the session state and returns a fresh ``Metrics`` value.
One engine instance belongs to one recording session; start a new instance
for a new session.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass, field, replace
from enum import Enum

from .config import EngineConfig
from .errors import ConcurrentStepError
from .events import BlinkDetector, GestureDetector
from .geometry import FaceMeasurements, extract
from .landmarks import LandmarkFrame
from .scoring import ALERT_TRACKER_ERROR, score
from .session import SessionAccumulator, SessionSummary
from .smoother import EMASmoother, SlidingWindow

logger = logging.getLogger(__name__)


class Status(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    ACTIVE = "active"
    ERROR = "error"


@dataclass(frozen=True)
class Metrics:
    eye_contact: float = 100.0          # recent window, %
    head_stability: float = 100.0
    nervousness: float = 0.0
    confidence: float = 100.0
    session_eye_contact: float = 100.0  # lifetime, %
    blink_rate: float = 0.0             # blinks / min
    yaw_deg: float = 0.0
    pitch_deg: float = 0.0
    blink_count: int = 0
    nod_count: int = 0
    shake_count: int = 0
    mouth_aperture: float = 0.0
    frames_processed: int = 0
    status: Status = Status.IDLE
    alert: str | None = None

    def to_dict(self) -> dict:
        d = asdict(self)
        d["status"] = self.status.value
        return d


@dataclass
class EngineState:
    """Everything carried between frames. Mutated only by BehaviorEngine."""

    gaze: EMASmoother
    yaw: EMASmoother
    pitch: EMASmoother
    eye_contact_window: SlidingWindow
    yaw_window: SlidingWindow
    pitch_window: SlidingWindow
    blink: BlinkDetector
    nod: GestureDetector
    shake: GestureDetector
    session: SessionAccumulator = field(default_factory=SessionAccumulator)

    @classmethod
    def initial(cls, cfg: EngineConfig) -> "EngineState":
        return cls(
            gaze=EMASmoother(cfg.gaze_alpha),
            yaw=EMASmoother(cfg.head_alpha),
            pitch=EMASmoother(cfg.head_alpha),
            eye_contact_window=SlidingWindow(cfg.eye_contact_window),
            yaw_window=SlidingWindow(cfg.yaw_window),
            pitch_window=SlidingWindow(cfg.pitch_window),
            blink=BlinkDetector(cfg.blink_threshold, cfg.blink_cooldown,
                                cfg.blink_window, cfg.blink_rate_scale),
            nod=GestureDetector(cfg.gesture_threshold, cfg.gesture_cooldown),
            shake=GestureDetector(cfg.gesture_threshold, cfg.gesture_cooldown),
        )

    @property
    def gaze_smoothed(self) -> float:
        return self.gaze.value

    @property
    def yaw_smoothed(self) -> float:
        return self.yaw.value

    @property
    def pitch_smoothed(self) -> float:
        return self.pitch.value


class BehaviorEngine:
    def __init__(self, config: EngineConfig | None = None):
        self.config = config or EngineConfig()
        self.state = EngineState.initial(self.config)
        self.status = Status.IDLE
        self._status_alert: str | None = None
        self._latest = Metrics()
        self._busy = threading.Lock()

    # ---------------------------
    # Collaborator status
    # ---------------------------
    def report_status(self, status: Status, alert: str | None = None):
        """Forward the tracker's coarse status; it is stamped on every emitted Metrics."""
        status = Status(status)
        if status == Status.ERROR:
            alert = alert or ALERT_TRACKER_ERROR
            logger.warning("Tracker reported error: %s", alert)
        elif status != self.status:
            logger.info("Tracker status %s -> %s", self.status.value, status.value)
        self.status = status
        self._status_alert = alert if status == Status.ERROR else None

    @property
    def status_alert(self) -> str | None:
        return self._status_alert

    def new_session(self) -> "BehaviorEngine":
        """Fresh engine with the same config, still carrying the tracker status and alert."""
        engine = BehaviorEngine(self.config)
        engine.report_status(self.status, self._status_alert)
        return engine

    def latest(self) -> Metrics:
        """Last good metrics, stamped with the current status."""
        m = self._latest
        alert = self._status_alert if self._status_alert is not None else m.alert
        if m.status == self.status and m.alert == alert:
            return m
        return replace(m, status=self.status, alert=alert)

    # ---------------------------
    # Per-frame step
    # ---------------------------
    def process_frame(self, frame: LandmarkFrame | None) -> Metrics:
        """Fold one frame into the session and return the new metrics.

        A missing or malformed frame leaves the state untouched and returns the
        previous metrics. Frames must be fed in arrival order from a single
        caller; overlapping calls raise ConcurrentStepError.
        """
        if not self._busy.acquire(blocking=False):
            raise ConcurrentStepError("process_frame called concurrently on one engine")
        try:
            measurements = extract(frame)
            if measurements is None:
                logger.debug("Frame skipped (no face or malformed landmarks)")
                return self.latest()
            self._latest = self._step(measurements)
            return self.latest()
        finally:
            self._busy.release()

    def _step(self, m: FaceMeasurements) -> Metrics:
        cfg, s = self.config, self.state

        # Temporal filters
        gaze = s.gaze.update(m.gaze_deviation)
        yaw = s.yaw.update(m.yaw)
        pitch = s.pitch.update(m.pitch)

        has_eye_contact = gaze < cfg.eye_contact_threshold
        s.eye_contact_window.push(has_eye_contact)
        s.yaw_window.push(abs(yaw))
        s.pitch_window.push(abs(pitch))

        # Events
        s.blink.update(m.openness)
        s.nod.update(pitch)
        s.shake.update(yaw)
        blink_rate = s.blink.rate()

        sc = score(
            s.eye_contact_window.average(),
            s.yaw_window.average(),
            s.pitch_window.average(),
            blink_rate, yaw, pitch, cfg,
        )

        s.session.update(has_eye_contact, sc.head_stability, sc.nervousness, sc.confidence)
        n = s.session.frames_processed
        if n == 1 or n % cfg.snapshot_interval == 0:
            logger.info(
                "Metrics snapshot frames=%d eye_contact=%.0f head_stability=%.0f "
                "confidence=%.0f gaze=%.3f",
                n, s.session.eye_contact_pct,
                s.session.mean_head_stability,
                s.session.mean_confidence, gaze,
            )

        return Metrics(
            eye_contact=sc.eye_contact,
            head_stability=sc.head_stability,
            nervousness=sc.nervousness,
            confidence=sc.confidence,
            session_eye_contact=s.session.eye_contact_pct,
            blink_rate=blink_rate,
            yaw_deg=sc.yaw_deg,
            pitch_deg=sc.pitch_deg,
            blink_count=s.blink.count,
            nod_count=s.nod.count,
            shake_count=s.shake.count,
            mouth_aperture=m.mouth_aperture,
            frames_processed=n,
            status=self.status,
            alert=sc.alert,
        )

    def session_summary(self) -> SessionSummary:
        return self.state.session.summary()

