"""Shared pytest fixtures."""
import datetime
from typing import Iterator

import pytest

from s3_publisher.logging_config import SecretFilter


@pytest.fixture
def fixed_timestamp() -> datetime.datetime:
    return datetime.datetime(2013, 5, 24, 0, 0, 0, tzinfo=datetime.timezone.utc)


@pytest.fixture(autouse=True)
def clear_registered_secrets() -> Iterator[None]:
    yield
    SecretFilter.clear_secrets()
