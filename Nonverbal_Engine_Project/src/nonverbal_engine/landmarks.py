from __future__ import annotations

from dataclasses import dataclass

import numpy as np

# MediaPipe face mesh topology (468 mesh points + 10 iris points when refined)
MESH_POINTS = 468
REFINED_POINTS = 478

NOSE_TIP = 1
CHIN = 152
LEFT_EAR = 234     # tragion region
RIGHT_EAR = 454
LEFT_MOUTH = 61
RIGHT_MOUTH = 291
UPPER_LIP = 13     # inner
LOWER_LIP = 14

LEFT_EYE = {"top": 159, "bottom": 145, "left": 33, "right": 133}
RIGHT_EYE = {"top": 386, "bottom": 374, "left": 362, "right": 263}

# Center point first, then the 4 rim points
LEFT_IRIS = (468, 469, 470, 471, 472)
RIGHT_IRIS = (473, 474, 475, 476, 477)

REQUIRED_IDX = (
    NOSE_TIP, CHIN, LEFT_EAR, RIGHT_EAR, LEFT_MOUTH, RIGHT_MOUTH, UPPER_LIP, LOWER_LIP,
    *LEFT_EYE.values(), *RIGHT_EYE.values(),
)
MIN_POINTS = max(REQUIRED_IDX) + 1


@dataclass(frozen=True, eq=False)
class LandmarkFrame:
    """One face mesh sample: (N, 3) array of x, y in normalized image space and z depth."""

    points: np.ndarray
    timestamp: float | None = None

    def __post_init__(self):
        # Anything that is not numeric becomes an empty mesh, which never validates
        try:
            pts = np.asarray(self.points, dtype=np.float64)
        except (TypeError, ValueError):
            pts = np.empty((0, 3), dtype=np.float64)
        object.__setattr__(self, "points", pts)

    def __len__(self) -> int:
        return int(self.points.shape[0]) if self.points.ndim == 2 else 0

    @property
    def has_iris(self) -> bool:
        return len(self) >= REFINED_POINTS

    def is_valid(self) -> bool:
        """True when every required landmark is present and finite."""
        p = self.points
        if p.ndim != 2 or p.shape[1] < 3 or p.shape[0] < MIN_POINTS:
            return False
        used = list(REQUIRED_IDX)
        if self.has_iris:
            used += [LEFT_IRIS[0], RIGHT_IRIS[0]]
        return bool(np.isfinite(p[used]).all())

    @classmethod
    def from_array(cls, points, timestamp: float | None = None) -> "LandmarkFrame":
        arr = np.asarray(points, dtype=np.float64)
        if arr.ndim == 2 and arr.shape[1] == 2:
            arr = np.concatenate([arr, np.zeros((arr.shape[0], 1))], axis=1)
        return cls(points=arr, timestamp=timestamp)

    @classmethod
    def from_landmarks(cls, landmarks, timestamp: float | None = None) -> "LandmarkFrame":
        """Build from a sequence of objects with .x/.y/.z (MediaPipe NormalizedLandmark)."""
        coords = [[lm.x, lm.y, getattr(lm, "z", 0.0) or 0.0] for lm in landmarks]
        return cls(points=np.array(coords, dtype=np.float64).reshape(-1, 3), timestamp=timestamp)
