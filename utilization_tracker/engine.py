from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from .balancing import WorkloadBalance, balance_workload
from .bench import BenchForecast, predict_bench_time
from .bottlenecks import (
    ProjectBottleneck,
    ResourceBottleneck,
    RoleBottleneck,
    detect_project_bottlenecks,
    detect_resource_bottlenecks,
    detect_role_bottlenecks,
)
from .forecast import TeamForecast, build_resource_forecasts, build_team_forecast
from .models import Allocation, ForecastConfig, Month, ResourceForecast
from .narratives import bottleneck_recommendations
from .periods import build_month_sequence, resolve_window
from .provider import DataProvider
from .utilization import CapacityIndex, group_allocations

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = ForecastConfig()


@dataclass(frozen=True)
class ForecastWindow:
    start: date
    end: date
    months: Tuple[Month, ...]

    def labels(self) -> List[str]:
        return [m.label for m in self.months]


def build_window(
    reference_date: date,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    months: Optional[int] = None,
    config: ForecastConfig = DEFAULT_CONFIG,
) -> ForecastWindow:
    """Resolve request parameters into a concrete window; ``reference_date`` stands in for "today"."""
    start, end = resolve_window(
        reference_date,
        start_date,
        end_date,
        config.default_months if months is None else months,
    )
    return ForecastWindow(start=start, end=end, months=tuple(build_month_sequence(start, end)))


@dataclass(frozen=True)
class UtilizationForecast:
    window: ForecastWindow
    team: TeamForecast
    resources: Tuple[ResourceForecast, ...]

    def to_dict(self) -> Dict[str, object]:
        return {
            "startDate": self.window.start.isoformat(),
            "endDate": self.window.end.isoformat(),
            "months": self.window.labels(),
            "team": self.team.to_dict(),
            "resources": [r.to_dict() for r in self.resources],
        }


@dataclass(frozen=True)
class BottleneckReport:
    window: ForecastWindow
    resource_bottlenecks: Tuple[ResourceBottleneck, ...]
    role_bottlenecks: Tuple[RoleBottleneck, ...]
    project_bottlenecks: Tuple[ProjectBottleneck, ...]
    recommendations: Tuple[str, ...]

    def to_dict(self) -> Dict[str, object]:
        return {
            "resourceBottlenecks": [b.to_dict() for b in self.resource_bottlenecks],
            "roleBottlenecks": [b.to_dict() for b in self.role_bottlenecks],
            "projectBottlenecks": [b.to_dict() for b in self.project_bottlenecks],
            "aiRecommendations": list(self.recommendations),
        }


@dataclass(frozen=True)
class BenchReport:
    window: ForecastWindow
    resources: Tuple[BenchForecast, ...]

    def to_dict(self) -> Dict[str, object]:
        return {
            "startDate": self.window.start.isoformat(),
            "endDate": self.window.end.isoformat(),
            "resources": [r.to_dict() for r in self.resources],
        }


def _forecast_resources(
    provider: DataProvider,
    window: ForecastWindow,
    config: ForecastConfig,
    resource_ids: Optional[Sequence[str]],
    cancel_event: Optional[threading.Event],
) -> Tuple[List[ResourceForecast], List[Allocation]]:
    resources = provider.list_resources(resource_ids)
    allocations = provider.list_allocations(window.start, window.end, resource_ids)
    settings = provider.list_capacity_settings(window.start, window.end, resource_ids)
    logger.info(
        "forecast window %s..%s: %d resources, %d allocations, %d months",
        window.start.isoformat(),
        window.end.isoformat(),
        len(resources),
        len(allocations),
        len(window.months),
    )
    forecasts = build_resource_forecasts(
        resources,
        group_allocations(allocations),
        CapacityIndex.from_settings(settings),
        window.months,
        config,
        cancel_event=cancel_event,
    )
    return forecasts, allocations


def get_utilization_forecast(
    provider: DataProvider,
    reference_date: date,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    months: Optional[int] = None,
    resource_ids: Optional[Sequence[str]] = None,
    config: ForecastConfig = DEFAULT_CONFIG,
    cancel_event: Optional[threading.Event] = None,
) -> UtilizationForecast:
    window = build_window(reference_date, start_date, end_date, months, config)
    forecasts, _ = _forecast_resources(provider, window, config, resource_ids, cancel_event)
    return UtilizationForecast(
        window=window,
        team=build_team_forecast(forecasts, window.months, config),
        resources=tuple(forecasts),
    )


def get_bottlenecks(
    provider: DataProvider,
    reference_date: date,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    months: Optional[int] = None,
    config: ForecastConfig = DEFAULT_CONFIG,
    cancel_event: Optional[threading.Event] = None,
) -> BottleneckReport:
    window = build_window(reference_date, start_date, end_date, months, config)
    forecasts, allocations = _forecast_resources(provider, window, config, None, cancel_event)
    resource_bottlenecks = detect_resource_bottlenecks(forecasts)
    role_bottlenecks = detect_role_bottlenecks(forecasts, window.months)
    project_bottlenecks = detect_project_bottlenecks(allocations, window.months, config.sample_day)
    logger.debug(
        "bottlenecks: %d resource, %d role, %d project",
        len(resource_bottlenecks),
        len(role_bottlenecks),
        len(project_bottlenecks),
    )
    return BottleneckReport(
        window=window,
        resource_bottlenecks=tuple(resource_bottlenecks),
        role_bottlenecks=tuple(role_bottlenecks),
        project_bottlenecks=tuple(project_bottlenecks),
        recommendations=tuple(
            bottleneck_recommendations(resource_bottlenecks, role_bottlenecks, project_bottlenecks)
        ),
    )


def get_workload_balancing(
    provider: DataProvider,
    reference_date: date,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    months: Optional[int] = None,
    config: ForecastConfig = DEFAULT_CONFIG,
    cancel_event: Optional[threading.Event] = None,
) -> WorkloadBalance:
    window = build_window(reference_date, start_date, end_date, months, config)
    forecasts, _ = _forecast_resources(provider, window, config, None, cancel_event)
    return balance_workload(forecasts, config)


def get_bench_forecast(
    provider: DataProvider,
    reference_date: date,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    months: Optional[int] = None,
    resource_ids: Optional[Sequence[str]] = None,
    config: ForecastConfig = DEFAULT_CONFIG,
) -> BenchReport:
    window = build_window(reference_date, start_date, end_date, months, config)
    resources = provider.list_resources(resource_ids)
    by_resource = group_allocations(provider.list_allocations(window.start, window.end, resource_ids))
    predictions = [
        predict_bench_time(
            resource,
            by_resource.get(resource.id, ()),
            window.start,
            window.end,
            config.bench_allocation_threshold,
        )
        for resource in resources
    ]
    predictions.sort(key=lambda p: p.total_bench_days, reverse=True)
    return BenchReport(window=window, resources=tuple(predictions))
