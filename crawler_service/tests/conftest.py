from __future__ import annotations

import random

import pytest

from .fakes import FakeDriver


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def driver() -> FakeDriver:
    return FakeDriver()
