from collections import deque


class EMASmoother:
    """Exponential moving average over a scalar stream.

    ``alpha`` is the weight of the newest sample: closer to 1 = faster, noisier.
    Starts from ``initial`` rather than the first sample, so early outputs ramp
    up from the neutral value.
    """

    def __init__(self, alpha: float, initial: float = 0.0):
        if not (0.0 <= alpha <= 1.0):
            raise ValueError("alpha must be in [0, 1]")
        self.alpha = float(alpha)
        self._initial = float(initial)
        self._state = float(initial)

    @property
    def value(self) -> float:
        return self._state

    def reset(self):
        self._state = self._initial

    def update(self, x: float) -> float:
        self._state = self._state * (1.0 - self.alpha) + float(x) * self.alpha
        return self._state


class SlidingWindow:
    """Fixed-capacity FIFO of recent samples; the oldest is evicted once full."""

    def __init__(self, capacity: int):
        if int(capacity) < 1:
            raise ValueError("capacity must be >= 1")
        self.buf = deque(maxlen=int(capacity))

    @property
    def capacity(self) -> int:
        return self.buf.maxlen

    def clear(self):
        self.buf.clear()

    def push(self, v):
        self.buf.append(float(v))

    def average(self) -> float:
        if not self.buf:
            return 0.0
        return sum(self.buf) / len(self.buf)

    def count_true(self) -> int:
        return sum(1 for v in self.buf if v)

    def most_recent(self) -> float:
        if not self.buf:
            return 0.0
        return self.buf[-1]

    def __len__(self):
        return len(self.buf)
