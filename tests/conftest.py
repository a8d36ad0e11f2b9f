import random
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from mocks.mock_backend import MockPaillierBackend


@pytest.fixture
def mock_backend():
    return MockPaillierBackend()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def packing_context(mock_backend):
    from hepack import PackingConfig, PackingContext

    config = PackingConfig(component_bitsize=32, plaintext_bits=2048, dtype=int)
    return PackingContext(config, backend=mock_backend)
