import cv2
import numpy as np

from .landmarks import LEFT_IRIS, REQUIRED_IDX, RIGHT_IRIS
from .scoring import band

BAND_COLORS_BGR = {
    "good": (128, 222, 74),
    "fair": (21, 204, 250),
    "poor": (113, 113, 248),
}
STATUS_COLORS_BGR = {
    "active": (153, 211, 52),
    "loading": (36, 191, 251),
    "error": (113, 113, 248),
    "idle": (160, 160, 160),
}


def draw_transparent_box(img, x1, y1, x2, y2, alpha=0.55):
    x1, y1 = int(max(0, x1)), int(max(0, y1))
    x2, y2 = int(min(img.shape[1] - 1, x2)), int(min(img.shape[0] - 1, y2))
    overlay = img.copy()
    cv2.rectangle(overlay, (x1, y1), (x2, y2), (0, 0, 0), -1)
    cv2.addWeighted(overlay, alpha, img, 1 - alpha, 0, img)


def put_line(img, text, x, y, scale=0.55, color=(255, 255, 255), thick=1):
    cv2.putText(img, text, (x, y), cv2.FONT_HERSHEY_SIMPLEX, scale, color, thick, cv2.LINE_AA)


def draw_bar(img, x, y, w, h, value, color):
    value = float(np.clip(value, 0.0, 100.0))
    cv2.rectangle(img, (x, y), (x + w, y + h), (90, 90, 90), 1)
    cv2.rectangle(img, (x, y), (x + int(w * value / 100.0), y + h), color, -1)


def draw_landmarks(frame, landmark_frame, color=(99, 252, 177)):
    """Dot the landmarks the engine reads (normalized coords -> pixels)."""
    h, w = frame.shape[:2]
    idx = list(REQUIRED_IDX)
    if landmark_frame.has_iris:
        idx += [LEFT_IRIS[0], RIGHT_IRIS[0]]
    for i in idx:
        x, y = landmark_frame.points[i][:2]
        cv2.circle(frame, (int(x * w), int(y * h)), 2, color, -1, cv2.LINE_AA)


def draw_metrics(frame, metrics, x=15, y=15):
    """Panel with the four headline scores, counters and the current alert."""
    rows = [
        ("Confidence", "confidence", metrics.confidence),
        ("Eye contact", "eye_contact", metrics.eye_contact),
        ("Head stability", "head_stability", metrics.head_stability),
        ("Nervousness", "nervousness", metrics.nervousness),
    ]
    draw_transparent_box(frame, x, y, x + 330, y + 200)

    status = metrics.status.value
    put_line(frame, status.upper(), x + 12, y + 22, color=STATUS_COLORS_BGR[status], thick=2)

    for i, (label, key, value) in enumerate(rows):
        ry = y + 48 + i * 26
        color = BAND_COLORS_BGR[band(key, value)]
        put_line(frame, label, x + 12, ry + 11)
        draw_bar(frame, x + 140, ry, 130, 12, value, color)
        put_line(frame, f"{value:.0f}", x + 280, ry + 11, color=color)

    put_line(frame, f"Session eye contact: {metrics.session_eye_contact:.0f}%", x + 12, y + 160)
    put_line(frame,
             f"Blink {metrics.blink_rate:.0f}/min  Nods {metrics.nod_count}  Shakes {metrics.shake_count}",
             x + 12, y + 182)

    if metrics.alert:
        h = frame.shape[0]
        put_line(frame, metrics.alert, x, h - 25, scale=0.8, color=BAND_COLORS_BGR["poor"], thick=2)


def draw_pose_text(frame, yaw_deg, pitch_deg, color=(0, 255, 0)):
    w = frame.shape[1]
    cv2.putText(frame, f"Yaw: {yaw_deg:.1f}", (w - 160, 30),
                cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 2)
    cv2.putText(frame, f"Pitch: {pitch_deg:.1f}", (w - 160, 60),
                cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 2)
