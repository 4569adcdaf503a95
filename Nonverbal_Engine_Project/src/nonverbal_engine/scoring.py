from dataclasses import dataclass

from .config import EngineConfig

ALERT_LOOK_AT_CAMERA = "Look at the camera"
ALERT_CENTER_HEAD = "Center your head"
ALERT_SLOW_DOWN = "Slow down, you're nervous"
ALERT_TRACKER_ERROR = "Camera or model failed to load"

# (good_at, fair_at) cut-offs; nervousness is inverted (lower is better)
BANDS = {
    "confidence": (70.0, 40.0),
    "eye_contact": (65.0, 35.0),
    "head_stability": (70.0, 40.0),
    "nervousness": (25.0, 55.0),
}


def clamp(v, lo, hi):
    return max(lo, min(hi, v))


@dataclass(frozen=True)
class Scores:
    eye_contact: float
    head_stability: float
    nervousness: float
    confidence: float
    yaw_deg: float
    pitch_deg: float
    alert: str | None


def head_stability(yaw_avg: float, pitch_avg: float, cfg: EngineConfig) -> float:
    return clamp(100.0 - (yaw_avg + pitch_avg) * cfg.stability_gain, 0.0, 100.0)


def nervousness(blink_rate: float, yaw_avg: float, pitch_avg: float, cfg: EngineConfig) -> float:
    signal = max(0.0, blink_rate - cfg.blink_rate_baseline) * cfg.blink_rate_gain
    if yaw_avg > cfg.variance_floor:
        signal += yaw_avg * cfg.yaw_variance_gain
    if pitch_avg > cfg.variance_floor:
        signal += pitch_avg * cfg.pitch_variance_gain
    return clamp(signal, 0.0, 100.0)


def confidence(eye_contact_pct: float, stability: float, nervous: float, cfg: EngineConfig) -> float:
    return clamp(
        eye_contact_pct * cfg.eye_contact_weight
        + stability * cfg.stability_weight
        + (100.0 - nervous) * cfg.composure_weight,
        0.0, 100.0,
    )


def select_alert(eye_contact_pct: float, yaw_deg: float, blink_rate: float,
                 cfg: EngineConfig) -> str | None:
    """First matching rule wins."""
    if eye_contact_pct < cfg.alert_eye_contact_pct:
        return ALERT_LOOK_AT_CAMERA
    if abs(yaw_deg) > cfg.alert_yaw_deg:
        return ALERT_CENTER_HEAD
    if blink_rate > cfg.alert_blink_rate:
        return ALERT_SLOW_DOWN
    return None


def score(eye_contact_avg: float, yaw_avg: float, pitch_avg: float, blink_rate: float,
          yaw_smoothed: float, pitch_smoothed: float, cfg: EngineConfig) -> Scores:
    """Combine windowed signals into the public scores.

    ``eye_contact_avg`` is the fraction (0..1) of in-contact frames in the
    recent window; ``yaw_avg``/``pitch_avg`` are windowed means of |smoothed angle|.
    """
    eye_pct = clamp(eye_contact_avg * 100.0, 0.0, 100.0)
    stab = head_stability(yaw_avg, pitch_avg, cfg)
    nerv = nervousness(blink_rate, yaw_avg, pitch_avg, cfg)
    conf = confidence(eye_pct, stab, nerv, cfg)
    yaw_deg = yaw_smoothed * cfg.yaw_degrees_scale
    pitch_deg = pitch_smoothed * cfg.pitch_degrees_scale
    return Scores(
        eye_contact=eye_pct,
        head_stability=stab,
        nervousness=nerv,
        confidence=conf,
        yaw_deg=yaw_deg,
        pitch_deg=pitch_deg,
        alert=select_alert(eye_pct, yaw_deg, blink_rate, cfg),
    )


def band(metric: str, value: float) -> str:
    """Rate a 0-100 score as "good", "fair" or "poor"."""
    good, fair = BANDS[metric]
    if metric == "nervousness":
        return "good" if value < good else "fair" if value < fair else "poor"
    return "good" if value > good else "fair" if value > fair else "poor"
