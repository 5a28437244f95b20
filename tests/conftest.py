import numpy as np
import pytest


class ScriptedRng:
    """Random source that replays fixed values, falling back to 0.5 / ``low``."""

    def __init__(self, floats=(), ints=()):
        self.floats = list(floats)
        self.ints = list(ints)

    def random(self):
        return self.floats.pop(0) if self.floats else 0.5

    def integers(self, low, high):
        return self.ints.pop(0) if self.ints else low


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def scripted():
    return ScriptedRng
