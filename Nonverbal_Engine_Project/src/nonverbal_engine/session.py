import logging
from dataclasses import asdict, dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSummary:
    """End-of-session averages, rounded for display."""

    eye_contact_percent: int
    head_stability: int
    nervousness_score: int
    confidence_score: int
    frames: int

    def to_dict(self):
        return asdict(self)


class SessionAccumulator:
    """Lifetime counters for one session. Never windowed, never reset mid-session."""

    def __init__(self):
        self.frames_processed = 0
        self.frames_with_eye_contact = 0
        self._stability_sum = 0.0
        self._nervousness_sum = 0.0
        self._confidence_sum = 0.0

    def update(self, has_eye_contact: bool, head_stability: float,
               nervousness: float, confidence: float):
        self.frames_processed += 1
        if has_eye_contact:
            self.frames_with_eye_contact += 1
        self._stability_sum += head_stability
        self._nervousness_sum += nervousness
        self._confidence_sum += confidence

    @property
    def eye_contact_pct(self) -> float:
        if self.frames_processed == 0:
            return 0.0
        return self.frames_with_eye_contact / self.frames_processed * 100.0

    def _mean(self, total: float) -> float:
        return total / self.frames_processed if self.frames_processed else 0.0

    @property
    def mean_head_stability(self) -> float:
        return self._mean(self._stability_sum)

    @property
    def mean_nervousness(self) -> float:
        return self._mean(self._nervousness_sum)

    @property
    def mean_confidence(self) -> float:
        return self._mean(self._confidence_sum)

    def summary(self) -> SessionSummary:
        n = self.frames_processed
        if n == 0:
            logger.warning("Session summary requested with 0 processed frames")
            return SessionSummary(0, 0, 0, 0, 0)
        return SessionSummary(
            eye_contact_percent=round(self.eye_contact_pct),
            head_stability=round(self.mean_head_stability),
            nervousness_score=round(self.mean_nervousness),
            confidence_score=round(self.mean_confidence),
            frames=n,
        )
