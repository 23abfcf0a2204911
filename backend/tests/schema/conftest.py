"""Pytest fixtures for schema tests.

Schema tests inspect the declared SQLAlchemy metadata, so they need no
running database.
"""

import pytest
from sqlalchemy import MetaData

import models  # noqa: F401  (registers every table on Base.metadata)
from models.base import Base


@pytest.fixture(scope="class")
def metadata() -> MetaData:
    return Base.metadata
