"""
BehaviorEngine behavior tests.

Drives the full per-frame step with synthetic landmark sequences and checks
the session-level properties: score bounds, warm-up convergence, event
de-duplication via cooldowns, lifetime counters, determinism and the
no-face / malformed-frame skip path.
"""

import math
import unittest

import numpy as np

from nonverbal_engine.config import EngineConfig
from nonverbal_engine.engine import BehaviorEngine, Metrics, Status
from nonverbal_engine.errors import ConcurrentStepError
from nonverbal_engine.landmarks import LandmarkFrame
from nonverbal_engine.scoring import ALERT_LOOK_AT_CAMERA, ALERT_TRACKER_ERROR
from tests.fixtures.synthetic_landmarks import (
    CLOSED, feed, make_frame, make_points, oscillation, repeat,
)

PERCENT_FIELDS = ("eye_contact", "head_stability", "nervousness", "confidence",
                  "session_eye_contact")


def random_frames(n, seed=7):
    rng = np.random.default_rng(seed)
    frames = []
    for _ in range(n):
        pts = make_points(
            gaze=rng.uniform(0.0, 1.0),
            yaw=rng.uniform(-0.8, 0.8),
            pitch=rng.uniform(-1.0, 1.0),
            openness=rng.uniform(0.0, 0.4),
        )
        pts[:, :2] += rng.normal(0.0, 0.002, size=(pts.shape[0], 2))
        frames.append(LandmarkFrame(points=pts))
    return frames


def gesture_sequence(separation, axis="pitch"):
    """Two gestures whose onsets are ``separation`` frames apart."""
    hold = 4
    return (repeat(10) + oscillation(hold, axis=axis) + repeat(separation - hold)
            + oscillation(hold, axis=axis) + repeat(30))


class TestInitialState(unittest.TestCase):

    def test_neutral_snapshot_before_any_frame(self):
        m = BehaviorEngine().latest()
        self.assertEqual(m, Metrics())
        self.assertEqual(m.confidence, 100.0)
        self.assertEqual(m.status, Status.IDLE)
        self.assertIsNone(m.alert)

    def test_fresh_state(self):
        s = BehaviorEngine().state
        self.assertEqual((s.gaze_smoothed, s.yaw_smoothed, s.pitch_smoothed), (0.0, 0.0, 0.0))
        self.assertEqual(len(s.eye_contact_window), 0)
        self.assertEqual(s.session.frames_processed, 0)


class TestScoreBounds(unittest.TestCase):

    def test_percentages_stay_in_range_and_finite(self):
        engine = BehaviorEngine()
        for m in feed(engine, random_frames(400)):
            for name in PERCENT_FIELDS:
                value = getattr(m, name)
                self.assertTrue(0.0 <= value <= 100.0, f"{name}={value}")
            for name, value in m.to_dict().items():
                if isinstance(value, float):
                    self.assertTrue(math.isfinite(value), f"{name}={value}")


class TestConvergence(unittest.TestCase):

    def test_centered_motionless_face_converges_to_full_confidence(self):
        m = feed(BehaviorEngine(), repeat(120))[-1]
        self.assertAlmostEqual(m.confidence, 100.0, places=6)
        self.assertEqual(m.nervousness, 0.0)
        self.assertAlmostEqual(m.head_stability, 100.0, places=6)
        self.assertEqual(m.eye_contact, 100.0)
        self.assertIsNone(m.alert)

    def test_averted_gaze_drops_eye_contact_and_raises_alert(self):
        m = feed(BehaviorEngine(), repeat(100, gaze=0.5))[-1]
        self.assertEqual(m.eye_contact, 0.0)
        self.assertEqual(m.alert, ALERT_LOOK_AT_CAMERA)

    def test_mesh_without_iris_reads_as_eye_contact(self):
        m = feed(BehaviorEngine(), repeat(100, iris=False))[-1]
        self.assertEqual(m.eye_contact, 100.0)


class TestBlinkEvents(unittest.TestCase):

    def test_single_blink_counts_once(self):
        frames = repeat(30) + repeat(3, openness=CLOSED) + repeat(30)
        m = feed(BehaviorEngine(), frames)[-1]
        self.assertEqual(m.blink_count, 1)
        self.assertEqual(m.blink_rate, 18.0)

    def test_long_closure_inside_cooldown_counts_once(self):
        frames = repeat(10) + repeat(7, openness=CLOSED) + repeat(10)
        self.assertEqual(feed(BehaviorEngine(), frames)[-1].blink_count, 1)

    def test_two_separate_blinks(self):
        frames = (repeat(10) + repeat(2, openness=CLOSED) + repeat(15)
                  + repeat(2, openness=CLOSED) + repeat(10))
        self.assertEqual(feed(BehaviorEngine(), frames)[-1].blink_count, 2)


class TestHeadGestures(unittest.TestCase):

    def test_nods_closer_than_cooldown_count_once(self):
        m = feed(BehaviorEngine(), gesture_sequence(10))[-1]
        self.assertEqual(m.nod_count, 1)
        self.assertEqual(m.shake_count, 0)

    def test_nods_at_cooldown_spacing_count_twice(self):
        self.assertEqual(feed(BehaviorEngine(), gesture_sequence(20))[-1].nod_count, 2)
        self.assertEqual(feed(BehaviorEngine(), gesture_sequence(30))[-1].nod_count, 2)

    def test_shakes_follow_yaw(self):
        m = feed(BehaviorEngine(), gesture_sequence(10, axis="yaw"))[-1]
        self.assertEqual(m.shake_count, 1)
        self.assertEqual(m.nod_count, 0)
        m = feed(BehaviorEngine(), gesture_sequence(25, axis="yaw"))[-1]
        self.assertEqual(m.shake_count, 2)


class TestSessionCounters(unittest.TestCase):

    def test_session_eye_contact_is_exact_ratio(self):
        engine = BehaviorEngine()
        frames = repeat(40) + repeat(40, gaze=0.5) + repeat(20)
        with_contact = 0
        previous = None
        for n, frame in enumerate(frames, start=1):
            m = engine.process_frame(frame)
            has_contact = engine.state.gaze_smoothed < engine.config.eye_contact_threshold
            if has_contact:
                with_contact += 1
            self.assertEqual(m.frames_processed, n)
            self.assertEqual(m.session_eye_contact, with_contact / n * 100)
            if previous is not None and not has_contact:
                self.assertLessEqual(m.session_eye_contact, previous)
            previous = m.session_eye_contact
        self.assertGreater(with_contact, 40)
        self.assertLess(with_contact, 100)

    def test_session_summary(self):
        engine = BehaviorEngine()
        feed(engine, repeat(90))
        summary = engine.session_summary()
        self.assertEqual(summary.frames, 90)
        self.assertEqual(summary.eye_contact_percent, 100)
        self.assertEqual(summary.nervousness_score, 0)


class TestDeterminism(unittest.TestCase):

    def test_replay_from_fresh_engine_is_identical(self):
        frames = random_frames(200, seed=11)
        self.assertEqual(feed(BehaviorEngine(), frames), feed(BehaviorEngine(), frames))

    def test_same_frame_twice_changes_state(self):
        engine = BehaviorEngine()
        frame = make_frame(gaze=0.5)
        first = engine.process_frame(frame)
        second = engine.process_frame(frame)
        self.assertNotEqual(first, second)


class TestSkippedFrames(unittest.TestCase):

    def setUp(self):
        self.engine = BehaviorEngine()
        self.last = feed(self.engine, repeat(10, gaze=0.3, yaw=0.1))[-1]

    def assertUnchanged(self, m):
        self.assertEqual(m, self.last)
        self.assertEqual(self.engine.state.session.frames_processed, 10)

    def test_no_face(self):
        gaze = self.engine.state.gaze_smoothed
        self.assertUnchanged(self.engine.process_frame(None))
        self.assertEqual(self.engine.state.gaze_smoothed, gaze)

    def test_truncated_mesh(self):
        self.assertUnchanged(self.engine.process_frame(LandmarkFrame(points=make_points()[:100])))

    def test_nan_landmarks(self):
        pts = make_points()
        pts[152, 1] = np.inf
        self.assertUnchanged(self.engine.process_frame(LandmarkFrame(points=pts)))

    def test_points_given_as_nested_lists(self):
        frame = LandmarkFrame(points=make_points().tolist())
        self.assertTrue(frame.is_valid())
        self.assertEqual(self.engine.process_frame(frame).frames_processed, 11)

    def test_non_numeric_points(self):
        self.assertUnchanged(self.engine.process_frame(LandmarkFrame(points="not a mesh")))
        self.assertUnchanged(self.engine.process_frame(LandmarkFrame(points=[[0.1, 0.2], [0.3]])))

    def test_object_that_is_not_a_frame(self):
        self.assertUnchanged(self.engine.process_frame(make_points()))
        self.assertUnchanged(self.engine.process_frame(object()))


class TestStatusForwarding(unittest.TestCase):

    def test_active_status_is_stamped_on_metrics(self):
        engine = BehaviorEngine()
        engine.report_status(Status.LOADING)
        self.assertEqual(engine.latest().status, Status.LOADING)
        engine.report_status(Status.ACTIVE)
        self.assertEqual(engine.process_frame(make_frame()).status, Status.ACTIVE)

    def test_error_keeps_last_good_metrics(self):
        engine = BehaviorEngine()
        engine.report_status(Status.ACTIVE)
        good = feed(engine, repeat(20))[-1]
        with self.assertLogs("nonverbal_engine.engine", level="WARNING"):
            engine.report_status(Status.ERROR)
        stale = engine.process_frame(None)
        self.assertEqual(stale.status, Status.ERROR)
        self.assertEqual(stale.alert, ALERT_TRACKER_ERROR)
        self.assertEqual(stale.confidence, good.confidence)
        self.assertEqual(stale.frames_processed, good.frames_processed)

    def test_recovery_clears_error_alert(self):
        engine = BehaviorEngine()
        engine.report_status(Status.ERROR, "camera unplugged")
        self.assertEqual(engine.latest().alert, "camera unplugged")
        engine.report_status(Status.ACTIVE)
        m = engine.process_frame(make_frame())
        self.assertEqual(m.status, Status.ACTIVE)
        self.assertIsNone(m.alert)

    def test_new_session_carries_error_alert(self):
        engine = BehaviorEngine(EngineConfig(snapshot_interval=30))
        feed(engine, repeat(5))
        with self.assertLogs("nonverbal_engine.engine", level="WARNING"):
            engine.report_status(Status.ERROR, "camera unplugged")
            fresh = engine.new_session()
        self.assertIsNot(fresh, engine)
        self.assertIs(fresh.config, engine.config)
        self.assertEqual(fresh.status, Status.ERROR)
        self.assertEqual(fresh.status_alert, "camera unplugged")
        m = fresh.latest()
        self.assertEqual(m.alert, "camera unplugged")
        self.assertEqual(m.frames_processed, 0)

    def test_to_dict_uses_plain_status(self):
        d = BehaviorEngine().latest().to_dict()
        self.assertEqual(d["status"], "idle")
        self.assertEqual(d["nod_count"], 0)


class TestExclusiveOwnership(unittest.TestCase):

    def test_overlapping_step_is_rejected(self):
        engine = BehaviorEngine()
        engine._busy.acquire()
        try:
            with self.assertRaises(ConcurrentStepError):
                engine.process_frame(make_frame())
        finally:
            engine._busy.release()
        self.assertEqual(engine.process_frame(make_frame()).frames_processed, 1)


class TestRescaledEngine(unittest.TestCase):

    def test_60fps_gesture_cooldown_spans_same_time(self):
        engine = BehaviorEngine(EngineConfig().for_frame_rate(60))
        # 30 frames apart = 0.5 s at 60 fps, inside the rescaled 40-frame cooldown
        self.assertEqual(feed(engine, gesture_sequence(30))[-1].nod_count, 1)


class TestEndToEnd(unittest.TestCase):

    def test_oscillating_gaze_and_yaw(self):
        frames = []
        for n in range(300):
            phase = math.sin(2 * math.pi * n / 30)
            frames.append(make_frame(gaze=0.15 + 0.1 * phase, yaw=0.05 * phase))
        metrics = feed(BehaviorEngine(), frames)
        for m in metrics[90:]:
            self.assertGreater(m.eye_contact, 60.0)
        last = metrics[-1]
        # Smoothed yaw moves well under the gesture threshold per frame
        self.assertEqual(last.nod_count, 0)
        self.assertEqual(last.shake_count, 0)
        for value in last.to_dict().values():
            if isinstance(value, float):
                self.assertTrue(math.isfinite(value))

    def test_square_wave_gaze_dips_below_sixty(self):
        frames = []
        for n in range(300):
            gaze = 0.05 if (n // 30) % 2 == 0 else 0.25
            frames.append(make_frame(gaze=gaze, yaw=0.05 * math.sin(2 * math.pi * n / 30)))
        metrics = feed(BehaviorEngine(), frames)
        # Worst 90-frame window holds two 26-frame runs without contact
        low = min(m.eye_contact for m in metrics[90:])
        self.assertAlmostEqual(low, 100.0 * 38 / 90, places=6)
        self.assertEqual(metrics[-1].nod_count, 0)
        self.assertEqual(metrics[-1].shake_count, 0)


if __name__ == "__main__":
    unittest.main()
