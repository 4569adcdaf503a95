from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .landmarks import (
    CHIN, LEFT_EAR, LEFT_EYE, LEFT_IRIS, LOWER_LIP, NOSE_TIP, RIGHT_EAR, RIGHT_EYE,
    RIGHT_IRIS, UPPER_LIP, LandmarkFrame,
)

_EPS = 1e-6


@dataclass(frozen=True)
class FaceMeasurements:
    """Raw per-frame scalars, before any temporal filtering."""

    yaw: float
    pitch: float
    left_openness: float
    right_openness: float
    gaze_deviation: float
    mouth_aperture: float

    @property
    def openness(self) -> float:
        return (self.left_openness + self.right_openness) * 0.5


def _dist3(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.linalg.norm(a[:3] - b[:3]))


def head_pose(lm: np.ndarray) -> tuple[float, float]:
    """Return (yaw, pitch) as unitless ratios.

    yaw in ~[-1, 1] from the nose-to-ear distance imbalance (turning left is
    negative). pitch is the nose height below the ear midline relative to the
    ear-midline-to-chin span.
    """
    nose, chin = lm[NOSE_TIP], lm[CHIN]
    left_ear, right_ear = lm[LEFT_EAR], lm[RIGHT_EAR]

    d_left = _dist3(nose, left_ear)
    d_right = _dist3(nose, right_ear)
    total = d_left + d_right
    yaw = (d_left - d_right) / total if total > _EPS else 0.0

    ear_mid_y = (left_ear[1] + right_ear[1]) * 0.5
    span = abs(chin[1] - ear_mid_y)
    pitch = (nose[1] - ear_mid_y) / span if span > _EPS else 0.0
    return float(yaw), float(pitch)


def eye_openness(lm: np.ndarray, eye: dict) -> float:
    """Vertical eyelid gap over horizontal eye width. 0 for a degenerate eye."""
    gap = abs(lm[eye["top"]][1] - lm[eye["bottom"]][1])
    width = abs(lm[eye["right"]][0] - lm[eye["left"]][0])
    return float(gap / width) if width > _EPS else 0.0


def _iris_x(lm: np.ndarray, eye: dict, iris: tuple, has_iris: bool) -> float:
    if has_iris:
        return float(lm[iris[0]][0])
    # No iris points: fall back to the eye's geometric center. This reads as a
    # centered gaze, so eye contact is overestimated for trackers without iris.
    return float((lm[eye["left"]][0] + lm[eye["right"]][0]) * 0.5)


def gaze_deviation(lm: np.ndarray, has_iris: bool = True) -> float:
    """Sum over both eyes of |normalized iris x - 0.5|. 0 = looking straight ahead."""
    total = 0.0
    for eye, iris in ((LEFT_EYE, LEFT_IRIS), (RIGHT_EYE, RIGHT_IRIS)):
        x_left = lm[eye["left"]][0]
        x_right = lm[eye["right"]][0]
        norm = (_iris_x(lm, eye, iris, has_iris) - x_left) / (x_right - x_left + _EPS)
        total += abs(norm - 0.5)
    return float(total)


def mouth_aperture(lm: np.ndarray) -> float:
    return float(abs(lm[UPPER_LIP][1] - lm[LOWER_LIP][1]))


def extract(frame: LandmarkFrame | None) -> FaceMeasurements | None:
    """Run every extractor on one frame.

    Returns None (treat as "no face") when the frame is missing, too short for
    the required indices, or carries non-finite coordinates.
    """
    if not isinstance(frame, LandmarkFrame) or not frame.is_valid():
        return None
    lm = frame.points
    yaw, pitch = head_pose(lm)
    out = FaceMeasurements(
        yaw=yaw,
        pitch=pitch,
        left_openness=eye_openness(lm, LEFT_EYE),
        right_openness=eye_openness(lm, RIGHT_EYE),
        gaze_deviation=gaze_deviation(lm, has_iris=frame.has_iris),
        mouth_aperture=mouth_aperture(lm),
    )
    if not np.isfinite([out.yaw, out.pitch, out.openness, out.gaze_deviation]).all():
        return None
    return out
