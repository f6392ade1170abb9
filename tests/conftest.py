import pytest


class RecordingSurface:
    """Surface that records every painted rectangle."""

    def __init__(self, width, height):
        self.width = width
        self.height = height
        self.rects = []
        self.clears = 0

    def clip_width(self):
        return self.width

    def clip_height(self):
        return self.height

    def fill_rect(self, x, y, width, height, color):
        if (x, y, width, height) == (0, 0, self.width, self.height):
            # A full-surface fill starts a new cycle.
            self.clears += 1
            self.rects.clear()
            return
        self.rects.append((x, y, width, height, tuple(color)))


class StepClock:
    """Monotonic clock that advances by ``step`` seconds on every reading."""

    def __init__(self, step):
        self.step = step
        self.readings = 0

    def __call__(self):
        now = self.readings * self.step
        self.readings += 1
        return now


@pytest.fixture
def make_surface():
    return RecordingSurface


@pytest.fixture
def make_clock():
    return StepClock
