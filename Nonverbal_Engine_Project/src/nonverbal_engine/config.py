from dataclasses import dataclass, replace

from .errors import ConfigError


@dataclass
class EngineConfig:
    """Heuristic constants of the behavior engine.

    Every default is calibrated for ~30 fps. Use ``for_frame_rate`` to get a
    copy whose window capacities and cooldowns cover the same time spans at
    another rate.
    """

    frame_rate: float = 30.0

    # Smoothing (EMA): weight of the newest sample, in [0, 1]
    gaze_alpha: float = 0.15
    head_alpha: float = 0.20

    # Sliding window capacities (frames)
    eye_contact_window: int = 90    # ~3 s
    blink_window: int = 300         # ~10 s
    yaw_window: int = 60
    pitch_window: int = 60

    # Event detectors
    eye_contact_threshold: float = 0.18  # smoothed gaze deviation, 0..~1
    blink_threshold: float = 0.15        # eye openness ratio, 0..~0.4
    blink_cooldown: int = 8
    gesture_threshold: float = 0.03      # |d smoothed pitch/yaw| per frame
    gesture_cooldown: int = 20

    # Head stability: 100 - (yaw_avg + pitch_avg) * gain
    stability_gain: float = 300.0

    # Nervousness
    blink_rate_baseline: float = 25.0    # blinks / min
    blink_rate_gain: float = 2.0
    variance_floor: float = 0.05
    yaw_variance_gain: float = 200.0
    pitch_variance_gain: float = 150.0

    # Confidence composite, must sum to 1
    eye_contact_weight: float = 0.5
    stability_weight: float = 0.3
    composure_weight: float = 0.2

    # Display scale (ratio -> approximate degrees)
    yaw_degrees_scale: float = 45.0
    pitch_degrees_scale: float = 30.0

    # Alerts
    alert_eye_contact_pct: float = 40.0
    alert_yaw_deg: float = 15.0
    alert_blink_rate: float = 30.0

    # Logging
    snapshot_interval: int = 90

    def __post_init__(self):
        self.validate()

    @property
    def blink_rate_scale(self) -> float:
        """Multiplier from blinking frames in the window to blinks per minute."""
        return 60.0 * self.frame_rate / float(self.blink_window)

    def validate(self):
        if self.frame_rate <= 0:
            raise ConfigError(f"frame_rate must be > 0, got {self.frame_rate}")
        for name in ("gaze_alpha", "head_alpha"):
            v = getattr(self, name)
            if not (0.0 <= v <= 1.0):
                raise ConfigError(f"{name} must be in [0, 1], got {v}")
        for name in ("eye_contact_window", "blink_window", "yaw_window",
                     "pitch_window", "snapshot_interval"):
            v = getattr(self, name)
            if int(v) != v or v < 1:
                raise ConfigError(f"{name} must be a positive integer, got {v}")
        for name in ("blink_cooldown", "gesture_cooldown"):
            v = getattr(self, name)
            if int(v) != v or v < 0:
                raise ConfigError(f"{name} must be a non-negative integer, got {v}")
        for name in ("eye_contact_threshold", "blink_threshold", "gesture_threshold",
                     "stability_gain", "variance_floor"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must be >= 0, got {getattr(self, name)}")
        weights = (self.eye_contact_weight, self.stability_weight, self.composure_weight)
        if any(w < 0 for w in weights) or abs(sum(weights) - 1.0) > 1e-6:
            raise ConfigError(f"confidence weights must be >= 0 and sum to 1, got {weights}")

    def for_frame_rate(self, fps: float) -> "EngineConfig":
        """Copy with frame-count constants rescaled from ``frame_rate`` to ``fps``."""
        if fps <= 0:
            raise ConfigError(f"fps must be > 0, got {fps}")
        k = float(fps) / self.frame_rate

        def frames(n, minimum=1):
            return max(minimum, int(round(n * k)))

        return replace(
            self,
            frame_rate=float(fps),
            eye_contact_window=frames(self.eye_contact_window),
            blink_window=frames(self.blink_window),
            yaw_window=frames(self.yaw_window),
            pitch_window=frames(self.pitch_window),
            blink_cooldown=frames(self.blink_cooldown, minimum=0),
            gesture_cooldown=frames(self.gesture_cooldown, minimum=0),
            snapshot_interval=frames(self.snapshot_interval),
        )


@dataclass
class AppConfig:
    camera_index: int = 0
    width: int | None = 640
    height: int | None = 480
    fps: float = 30.0
    flip_view: bool = True

    # MediaPipe FaceLandmarker (Tasks API)
    model_path: str = "face_landmarker.task"
    max_num_faces: int = 1
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
