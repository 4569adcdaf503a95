import argparse
import json
import logging
import time

import cv2

from .config import AppConfig, EngineConfig
from .draw import draw_landmarks, draw_metrics, draw_pose_text
from .engine import BehaviorEngine, Status
from .errors import TrackerError
from .tracker import FaceLandmarkTracker

logger = logging.getLogger(__name__)


# ---------------------------
# Camera helpers (30fps-friendly)
# ---------------------------
def set_camera_params(cap, width, height, fps, fourcc="MJPG"):
    # Many webcams reach 30fps more reliably with MJPG
    if fourcc and len(fourcc) == 4:
        cap.set(cv2.CAP_PROP_FOURCC, cv2.VideoWriter_fourcc(*fourcc))
    if width:
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, int(width))
    if height:
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, int(height))
    if fps:
        cap.set(cv2.CAP_PROP_FPS, float(fps))


class Session:
    """Owns the engine of the current recording; R in the window starts a new one."""

    def __init__(self, config: EngineConfig):
        self.config = config
        self.engine = BehaviorEngine(config)
        self.started = time.perf_counter()

    def restart(self):
        self.engine = self.engine.new_session()
        self.started = time.perf_counter()

    def forward_status(self, status, alert=None):
        self.engine.report_status(status, alert)


# ---------------------------
# Args
# ---------------------------
def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Live non-verbal coaching metrics from a webcam")

    p.add_argument("--camera", type=int, default=0)
    p.add_argument("--width", type=int, default=640)
    p.add_argument("--height", type=int, default=480)
    p.add_argument("--fps", type=float, default=30.0,
                   help="Capture rate; engine windows and cooldowns are rescaled to it")
    p.add_argument("--fourcc", type=str, default="MJPG")
    p.add_argument("--no-flip", action="store_true", help="Disable mirrored (selfie) view")

    p.add_argument("--model", type=str, default="face_landmarker.task",
                   help="Path to the MediaPipe FaceLandmarker .task file")
    p.add_argument("--min-detection", type=float, default=0.5)
    p.add_argument("--min-tracking", type=float, default=0.5)

    # engine overrides
    p.add_argument("--eye-contact-threshold", type=float, default=0.18)
    p.add_argument("--blink-threshold", type=float, default=0.15)
    p.add_argument("--gesture-threshold", type=float, default=0.03)

    p.add_argument("--summary-json", type=str, default=None,
                   help="Write the end-of-session summary to this file")
    p.add_argument("--log-level", type=str, default="INFO")

    return p.parse_args(argv)


# ---------------------------
# Main
# ---------------------------
def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    cfg = AppConfig(
        camera_index=args.camera,
        width=args.width,
        height=args.height,
        fps=args.fps,
        flip_view=not args.no_flip,
        model_path=args.model,
        min_detection_confidence=args.min_detection,
        min_tracking_confidence=args.min_tracking,
    )
    engine_cfg = EngineConfig(
        eye_contact_threshold=args.eye_contact_threshold,
        blink_threshold=args.blink_threshold,
        gesture_threshold=args.gesture_threshold,
    ).for_frame_rate(cfg.fps)

    session = Session(engine_cfg)
    tracker = FaceLandmarkTracker(
        model_path=cfg.model_path,
        max_num_faces=cfg.max_num_faces,
        min_detection_confidence=cfg.min_detection_confidence,
        min_tracking_confidence=cfg.min_tracking_confidence,
        on_status=session.forward_status,
    )

    cap = cv2.VideoCapture(cfg.camera_index)
    set_camera_params(cap, cfg.width, cfg.height, cfg.fps, args.fourcc)
    if not cap.isOpened():
        session.forward_status(Status.ERROR)
        raise TrackerError(f"Cannot open camera {cfg.camera_index}")

    try:
        tracker.start()
    except TrackerError:
        cap.release()
        raise

    target_dt = 1.0 / max(1e-6, float(cfg.fps))
    try:
        while True:
            t0 = time.perf_counter()
            ok, frame = cap.read()
            if not ok:
                logger.warning("Camera read failed, stopping")
                break
            if cfg.flip_view:
                frame = cv2.flip(frame, 1)

            landmarks = tracker.track(frame, timestamp=t0)
            metrics = session.engine.process_frame(landmarks)

            if landmarks is not None:
                draw_landmarks(frame, landmarks)
            draw_metrics(frame, metrics)
            draw_pose_text(frame, metrics.yaw_deg, metrics.pitch_deg)

            cv2.imshow("Non-verbal coach (ESC quit, R new session)", frame)
            key = cv2.waitKey(1) & 0xFF
            if key == 27:  # ESC
                break
            if key in (ord('r'), ord('R')):
                logger.info("Session summary: %s", session.engine.session_summary())
                session.restart()

            # FPS limiter
            elapsed = time.perf_counter() - t0
            if elapsed < target_dt:
                time.sleep(target_dt - elapsed)
    finally:
        tracker.close()
        cap.release()
        cv2.destroyAllWindows()

    summary = session.engine.session_summary()
    logger.info("Session ended after %.1fs: %s", time.perf_counter() - session.started, summary)
    if args.summary_json:
        with open(args.summary_json, "w", encoding="utf-8") as f:
            json.dump(summary.to_dict(), f, indent=2)
    return summary


if __name__ == "__main__":
    main()
