"""Shared fixtures for the test suite."""

from pathlib import Path

import pytest
from fakes import FakeCluster, FakeRepository

from openshift_pipeline.config import Settings


@pytest.fixture
def cluster() -> FakeCluster:
    """Create an empty fake cluster in namespace 'demo'."""
    return FakeCluster()


@pytest.fixture
def repository() -> FakeRepository:
    """Create a fake git checkout."""
    return FakeRepository()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Create settings isolated from the environment."""
    return Settings(
        namespace="demo",
        workdir=tmp_path,
        tmp_dir=tmp_path / "archives",
        _env_file=None,
    )
