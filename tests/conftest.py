"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from batchstep import ChunkContext, StepContribution  # noqa: E402


@pytest.fixture
def contribution():
    """Fresh progress metrics for a step named ``test.step``."""
    return StepContribution("test.step")


@pytest.fixture
def context():
    """Empty execution context."""
    return ChunkContext("test.step")


@pytest.fixture
def sample_records():
    """Provide sample records for testing."""
    return [
        {"id": 1, "name": "Record 1", "value": 100, "status": "active"},
        {"id": 2, "name": "Record 2", "value": 200, "status": "active"},
        {"id": 3, "name": "Record 3", "value": 300, "status": "inactive"},
        {"id": 4, "name": "Record 4", "value": 400, "status": "active"},
        {"id": 5, "name": "Record 5", "value": 500, "status": "pending"},
    ]
