import numpy as np
import pytest
from loguru import logger


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def constant_image():
    def make(width, height, value, dtype=np.float32):
        return np.full((height, width), value, dtype=dtype)
    return make


@pytest.fixture
def gradient_image():
    def make(width, height):
        x = np.arange(width, dtype=np.float64)
        row = (x / width) * 255
        return np.tile(row, (height, 1)).astype(np.float32)
    return make


@pytest.fixture
def noise_image(rng):
    def make(width, height, base_value, noise_level):
        noise = (rng.random((height, width)) - 0.5) * noise_level
        return (base_value + noise).astype(np.float32)
    return make


@pytest.fixture
def loguru_warnings():
    """Collect messages logged at WARNING and above."""
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]),
                            level="WARNING")
    yield messages
    logger.remove(handler_id)
