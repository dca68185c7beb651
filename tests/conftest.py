import os

import numpy as np
import pytest


@pytest.fixture
def setup_test_env():
    """Setup test environment variables"""
    original_env = os.environ.copy()

    os.environ["OPENAI_API_KEY"] = "test_key_12345"
    os.environ["SERVER_URL"] = "http://localhost:9999"

    yield

    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def mock_audio_data():
    """Mock audio data for testing"""
    return (np.random.rand(24000).astype(np.float32) * 2 - 1)  # 1 second at 24kHz
