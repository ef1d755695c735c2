import itertools
import json
from datetime import date

import pandas as pd
import pytest

from utilization_tracker.models import (
    Allocation,
    ForecastConfig,
    Resource,
    role_from_label,
    skills_from_labels,
)
from utilization_tracker.periods import build_month_sequence
from utilization_tracker.provider import FrameDataProvider


# =============================================================================
# Factories
# =============================================================================

@pytest.fixture
def make_resource():
    def _make(resource_id, name=None, role="Developer", skills=()):
        return Resource(
            id=str(resource_id),
            name=name or f"Resource {resource_id}",
            role=role_from_label(role),
            skills=skills_from_labels(skills),
        )
    return _make


@pytest.fixture
def make_allocation():
    counter = itertools.count(1)

    def _make(resource_id, start, end, utilization, project_id="P1", project_name=None):
        return Allocation(
            id=f"A{next(counter)}",
            resource_id=str(resource_id),
            project_id=project_id,
            project_name=project_name or f"Project {project_id}",
            start_date=start,
            end_date=end,
            utilization=utilization,
        )
    return _make


@pytest.fixture
def config():
    return ForecastConfig()


@pytest.fixture
def q1_months():
    return build_month_sequence(date(2025, 1, 1), date(2025, 3, 31))


# =============================================================================
# Sample team (Jan-Mar 2025)
#
#   Alice (Developer; React, Node): Apollo 80, Borealis 30 (Jan-Feb), Comet 20 -> 130/130/100
#   Bob   (Developer; React):       Apollo 30, 50% time off in Feb            -> 30/30/30
#   Carol (Designer; Figma):        Apollo 20                                  -> 20/20/20
#   Dan   (QA):                     Apollo 75                                  -> 75/75/75
# =============================================================================

Q1_START = date(2025, 1, 1)
Q1_END = date(2025, 3, 31)


@pytest.fixture
def sample_frames():
    resources = pd.DataFrame(
        [
            {"id": "1", "name": "Alice", "role": "Developer", "skills": ("React", "Node")},
            {"id": "2", "name": "Bob", "role": "Developer", "skills": ("React",)},
            {"id": "3", "name": "Carol", "role": "Designer", "skills": ("Figma",)},
            {"id": "4", "name": "Dan", "role": "QA", "skills": ()},
        ],
        columns=["id", "name", "role", "skills"],
    )
    allocations = pd.DataFrame(
        [
            ("A1", "1", "P1", "Apollo", Q1_START, Q1_END, 80),
            ("A2", "1", "P2", "Borealis", Q1_START, date(2025, 2, 28), 30),
            ("A3", "1", "P3", "Comet", Q1_START, Q1_END, 20),
            ("A4", "2", "P1", "Apollo", Q1_START, Q1_END, 30),
            ("A5", "3", "P1", "Apollo", Q1_START, Q1_END, 20),
            ("A6", "4", "P1", "Apollo", Q1_START, Q1_END, 75),
            # Outside the window; must be filtered by the provider.
            ("A7", "2", "P9", "Legacy", date(2024, 1, 1), date(2024, 6, 30), 100),
        ],
        columns=["id", "resource_id", "project_id", "project_name", "start_date", "end_date", "utilization"],
    )
    capacity = pd.DataFrame(
        [
            {"resource_id": "2", "year": 2025, "month": 2, "available_capacity": 100.0, "planned_time_off": 50.0},
            {"resource_id": "2", "year": 2026, "month": 2, "available_capacity": 10.0, "planned_time_off": 0.0},
        ],
        columns=["resource_id", "year", "month", "available_capacity", "planned_time_off"],
    )
    return resources, allocations, capacity


@pytest.fixture
def sample_provider(sample_frames):
    resources, allocations, capacity = sample_frames
    return FrameDataProvider(resources, allocations, capacity)


@pytest.fixture
def sample_data_dir(tmp_path, sample_frames):
    resources, allocations, capacity = sample_frames
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    records = [
        {"id": row.id, "name": row.name, "role": row.role, "skills": list(row.skills)}
        for row in resources.itertuples(index=False)
    ]
    (data_dir / "resources.json").write_text(json.dumps(records))
    allocations.to_csv(data_dir / "allocations.csv", index=False)
    capacity.to_csv(data_dir / "capacity.csv", index=False)
    return data_dir
