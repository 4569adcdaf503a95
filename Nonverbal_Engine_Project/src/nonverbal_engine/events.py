from .smoother import SlidingWindow


class CooldownDetector:
    """Counts threshold crossings, ignoring new ones for ``cooldown`` frames after each hit."""

    def __init__(self, cooldown: int):
        self.cooldown = int(cooldown)
        self.remaining = 0
        self.count = 0

    def reset(self):
        self.remaining = 0
        self.count = 0

    def update(self, triggered: bool) -> bool:
        # Tick first, so a hit at frame t can fire again at t + cooldown
        self.remaining = max(0, self.remaining - 1)
        if triggered and self.remaining == 0:
            self.count += 1
            self.remaining = self.cooldown
            return True
        return False


class BlinkDetector:
    """Blink events from mean eye openness, plus a windowed blink-rate estimate."""

    def __init__(self, threshold=0.15, cooldown=8, window=300, rate_scale=6.0):
        self.threshold = float(threshold)
        self.rate_scale = float(rate_scale)
        self._gate = CooldownDetector(cooldown)
        self.window = SlidingWindow(window)

    @property
    def count(self) -> int:
        return self._gate.count

    def reset(self):
        self._gate.reset()
        self.window.clear()

    def update(self, openness: float) -> bool:
        closed = openness < self.threshold
        fired = self._gate.update(closed)
        self.window.push(closed)
        return fired

    def rate(self) -> float:
        """Blinks per minute: closed-eye frames in the window times ``rate_scale``."""
        return self.window.count_true() * self.rate_scale


class GestureDetector:
    """Nod (pitch) or shake (yaw) events from the frame-to-frame change of a smoothed angle."""

    def __init__(self, threshold=0.03, cooldown=20):
        self.threshold = float(threshold)
        self._gate = CooldownDetector(cooldown)
        self.previous = 0.0

    @property
    def count(self) -> int:
        return self._gate.count

    def reset(self):
        self._gate.reset()
        self.previous = 0.0

    def update(self, smoothed: float) -> bool:
        delta = smoothed - self.previous
        self.previous = smoothed
        return self._gate.update(abs(delta) > self.threshold)
