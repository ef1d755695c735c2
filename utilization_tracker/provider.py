"""
Read-only data providers feeding the forecasting engine.

The engine asks for three things, each in one batched call per request:
- resources (with role and skills already resolved)
- allocations overlapping the forecast window
- capacity settings inside the window's year/month range

Providers signal storage failures with ``UpstreamDataError``; they never retry.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

import pandas as pd

from .errors import UpstreamDataError
from .io_utils import (
    ALLOCATIONS_FILE,
    CAPACITY_FILE,
    RESOURCES_FILE,
    empty_capacity_frame,
    load_allocations,
    load_capacity_settings,
    load_resources,
)
from .models import Allocation, CapacitySetting, Resource, role_from_label, skills_from_labels


class DataProvider(Protocol):
    def list_resources(self, resource_ids: Optional[Sequence[str]] = None) -> List[Resource]:
        ...

    def list_allocations(
        self,
        start: date,
        end: date,
        resource_ids: Optional[Sequence[str]] = None,
    ) -> List[Allocation]:
        ...

    def list_capacity_settings(
        self,
        start: date,
        end: date,
        resource_ids: Optional[Sequence[str]] = None,
    ) -> List[CapacitySetting]:
        ...


def _as_percent(value: object) -> float:
    # Integral percentages stay ints so payloads read 120, not 120.0.
    number = float(value)
    return int(number) if number.is_integer() else number


def _filter_ids(df: pd.DataFrame, column: str, resource_ids: Optional[Sequence[str]]) -> pd.DataFrame:
    if not resource_ids:
        return df
    wanted = {str(value) for value in resource_ids}
    return df[df[column].astype(str).isin(wanted)]


class FrameDataProvider:
    """Serve provider queries from in-memory frames shaped like the ``io_utils`` loaders."""

    def __init__(
        self,
        resources: pd.DataFrame,
        allocations: pd.DataFrame,
        capacity: Optional[pd.DataFrame] = None,
    ) -> None:
        self._resources = resources
        self._allocations = allocations
        self._capacity = capacity if capacity is not None else empty_capacity_frame()

    def _resource_frame(self) -> pd.DataFrame:
        return self._resources

    def _allocation_frame(self) -> pd.DataFrame:
        return self._allocations

    def _capacity_frame(self) -> pd.DataFrame:
        return self._capacity

    def list_resources(self, resource_ids: Optional[Sequence[str]] = None) -> List[Resource]:
        df = _filter_ids(self._resource_frame(), "id", resource_ids)
        try:
            return [
                Resource(
                    id=str(row.id),
                    name=str(row.name),
                    role=role_from_label(None if pd.isna(row.role) else row.role),
                    skills=skills_from_labels(row.skills if isinstance(row.skills, (list, tuple)) else ()),
                )
                for row in df.itertuples(index=False)
            ]
        except AttributeError as exc:
            raise UpstreamDataError(RESOURCES_FILE, f"malformed resource record ({exc})") from exc

    def list_allocations(
        self,
        start: date,
        end: date,
        resource_ids: Optional[Sequence[str]] = None,
    ) -> List[Allocation]:
        df = _filter_ids(self._allocation_frame(), "resource_id", resource_ids)
        try:
            df = df[(df["end_date"] >= start) & (df["start_date"] <= end)]
            return [
                Allocation(
                    id=str(row.id),
                    resource_id=str(row.resource_id),
                    project_id=str(row.project_id),
                    project_name=str(row.project_name),
                    start_date=row.start_date,
                    end_date=row.end_date,
                    utilization=_as_percent(row.utilization),
                )
                for row in df.itertuples(index=False)
            ]
        except (AttributeError, KeyError, TypeError) as exc:
            raise UpstreamDataError(ALLOCATIONS_FILE, f"malformed allocation records ({exc})") from exc

    def list_capacity_settings(
        self,
        start: date,
        end: date,
        resource_ids: Optional[Sequence[str]] = None,
    ) -> List[CapacitySetting]:
        df = _filter_ids(self._capacity_frame(), "resource_id", resource_ids)
        if df.empty:
            return []
        try:
            period = df["year"].astype(int) * 12 + df["month"].astype(int)
            df = df[(period >= start.year * 12 + start.month) & (period <= end.year * 12 + end.month)]
            return [
                CapacitySetting(
                    resource_id=str(row.resource_id),
                    year=int(row.year),
                    month=int(row.month),
                    available_capacity=_as_percent(row.available_capacity),
                    planned_time_off=_as_percent(row.planned_time_off),
                )
                for row in df.itertuples(index=False)
            ]
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise UpstreamDataError(CAPACITY_FILE, f"malformed capacity records ({exc})") from exc


class DirectoryDataProvider(FrameDataProvider):
    """Reload ``resources.json``, ``allocations.csv`` and ``capacity.csv`` on every call."""

    def __init__(self, data_dir: str | Path) -> None:
        self.data_dir = Path(data_dir)
        super().__init__(pd.DataFrame(), pd.DataFrame())

    def _load(self, name: str, loader) -> pd.DataFrame:
        path = self.data_dir / name
        try:
            return loader(path)
        except (OSError, ValueError) as exc:
            raise UpstreamDataError(str(path), str(exc)) from exc

    def _resource_frame(self) -> pd.DataFrame:
        return self._load(RESOURCES_FILE, load_resources)

    def _allocation_frame(self) -> pd.DataFrame:
        return self._load(ALLOCATIONS_FILE, load_allocations)

    def _capacity_frame(self) -> pd.DataFrame:
        if not (self.data_dir / CAPACITY_FILE).exists():
            return empty_capacity_frame()
        return self._load(CAPACITY_FILE, load_capacity_settings)
