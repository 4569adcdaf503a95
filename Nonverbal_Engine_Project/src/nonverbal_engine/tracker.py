import logging
import pathlib
import time

import cv2
import mediapipe as mp
import numpy as np

from .engine import Status
from .errors import TrackerError
from .landmarks import LandmarkFrame

logger = logging.getLogger(__name__)

BaseOptions = mp.tasks.BaseOptions
FaceLandmarker = mp.tasks.vision.FaceLandmarker
FaceLandmarkerOptions = mp.tasks.vision.FaceLandmarkerOptions
VisionRunningMode = mp.tasks.vision.RunningMode

MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/face_landmarker/"
    "face_landmarker/float16/1/face_landmarker.task"
)


class FaceLandmarkTracker:
    """MediaPipe FaceLandmarker in VIDEO mode, one face, iris points included.

    Produces at most one LandmarkFrame per video frame and exposes the coarse
    status (idle / loading / active / error) the engine forwards.
    """

    def __init__(self,
                 model_path="face_landmarker.task",
                 max_num_faces=1,
                 min_detection_confidence=0.5,
                 min_tracking_confidence=0.5,
                 on_status=None):
        self.model_path = pathlib.Path(model_path)
        self.max_num_faces = int(max_num_faces)
        self.min_detection_confidence = float(min_detection_confidence)
        self.min_tracking_confidence = float(min_tracking_confidence)
        self._on_status = on_status

        self._landmarker = None
        self._last_ts_ms = -1
        self.status = Status.IDLE

        self.missed_frames = 0
        self.error_count = 0

    def _set_status(self, status: Status, alert=None):
        self.status = status
        if self._on_status is not None:
            self._on_status(status, alert)

    def start(self):
        if self._landmarker is not None:
            return
        self._set_status(Status.LOADING)
        logger.info("Loading MediaPipe FaceLandmarker from %s", self.model_path)
        if not self.model_path.exists():
            self._set_status(Status.ERROR)
            raise TrackerError(
                f"FaceLandmarker model not found at {self.model_path}. "
                f"Download it from {MODEL_URL}"
            )
        options = FaceLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=str(self.model_path)),
            running_mode=VisionRunningMode.VIDEO,
            num_faces=self.max_num_faces,
            min_face_detection_confidence=self.min_detection_confidence,
            min_tracking_confidence=self.min_tracking_confidence,
            output_face_blendshapes=False,
            output_facial_transformation_matrixes=False,
        )
        try:
            self._landmarker = FaceLandmarker.create_from_options(options)
        except (RuntimeError, ValueError) as e:
            self._set_status(Status.ERROR)
            raise TrackerError(f"FaceLandmarker failed to load: {e}") from e
        self._last_ts_ms = -1
        self._set_status(Status.ACTIVE)
        logger.info("FaceLandmarker active")

    def close(self):
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None
            logger.info("FaceLandmarker closed (missed=%d errors=%d)",
                        self.missed_frames, self.error_count)
        self._set_status(Status.IDLE)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def track(self, frame_bgr: np.ndarray, timestamp: float | None = None):
        """Return a LandmarkFrame for the first face, or None (no face / detect error)."""
        if self._landmarker is None:
            raise TrackerError("tracker not started")
        ts = time.perf_counter() if timestamp is None else float(timestamp)
        # VIDEO mode needs strictly increasing timestamps
        ts_ms = max(int(ts * 1000), self._last_ts_ms + 1)
        self._last_ts_ms = ts_ms

        rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
        try:
            result = self._landmarker.detect_for_video(image, ts_ms)
        except (RuntimeError, ValueError) as e:
            self.error_count += 1
            if self.error_count == 1 or self.error_count % 30 == 0:
                logger.warning("FaceLandmarker detect failed (errors=%d): %s", self.error_count, e)
            return None

        if not result.face_landmarks:
            self.missed_frames += 1
            if self.missed_frames == 1 or self.missed_frames % 90 == 0:
                logger.warning("No face detected (consecutive=%d)", self.missed_frames)
            return None

        if self.missed_frames > 0:
            logger.info("Face re-detected after %d missed frames", self.missed_frames)
            self.missed_frames = 0
        return LandmarkFrame.from_landmarks(result.face_landmarks[0], timestamp=ts)
