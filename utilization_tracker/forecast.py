"""
Per-resource and team-level utilization forecasts.

Each resource is bucketed month by month (sampled allocations against resolved
capacity), summarised by its mean utilization and regression trend, and then
classified. The team rollup sums every resource month by month and can only be
built once all per-resource forecasts are complete.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import ForecastCancelledError
from .models import Allocation, ForecastConfig, Month, Resource, ResourceForecast
from .narratives import team_forecast_text
from .trends import INCREASING, trend_direction
from .utilization import CapacityIndex, monthly_utilization

logger = logging.getLogger(__name__)

TEAM_BOTTLENECK_RATE = 90.0


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def forecast_status(avg_utilization: float, trend: str) -> str:
    if avg_utilization > 100:
        return "overallocated"
    if avg_utilization > 90:
        return "at-risk" if trend == INCREASING else "busy"
    if avg_utilization > 70:
        return "healthy"
    if avg_utilization > 40:
        return "available"
    return "underutilized"


def team_utilization_category(avg_rate: float) -> str:
    if avg_rate > 95:
        return "critical"
    if avg_rate > 90:
        return "high"
    if avg_rate > 80:
        return "balanced"
    if avg_rate > 70:
        return "moderate"
    return "low"


def build_resource_forecast(
    resource: Resource,
    allocations: Sequence[Allocation],
    capacity_index: CapacityIndex,
    months: Sequence[Month],
    config: ForecastConfig,
) -> ResourceForecast:
    monthly = tuple(
        monthly_utilization(resource.id, month, allocations, capacity_index, config.sample_day)
        for month in months
    )
    series = [entry.total_utilization for entry in monthly]
    avg_utilization = mean(series)
    trend = trend_direction(series, config.trend_threshold)
    return ResourceForecast(
        resource=resource,
        avg_utilization=avg_utilization,
        trend_direction=trend,
        forecast_status=forecast_status(avg_utilization, trend),
        months=monthly,
    )


def _raise_if_cancelled(cancel_event: Optional[threading.Event], completed: int, total: int) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise ForecastCancelledError(completed, total)


def build_resource_forecasts(
    resources: Sequence[Resource],
    allocations_by_resource: Mapping[str, Sequence[Allocation]],
    capacity_index: CapacityIndex,
    months: Sequence[Month],
    config: ForecastConfig,
    cancel_event: Optional[threading.Event] = None,
) -> List[ResourceForecast]:
    """Forecast every resource, optionally on a thread pool, preserving input order.

    ``cancel_event`` is honoured up to the point where all forecasts have been
    joined; after that the results are returned as-is.
    """
    total = len(resources)

    def _forecast(resource: Resource) -> ResourceForecast:
        return build_resource_forecast(
            resource,
            allocations_by_resource.get(resource.id, ()),
            capacity_index,
            months,
            config,
        )

    results: List[ResourceForecast] = []
    if config.max_workers <= 1 or total <= 1:
        for resource in resources:
            _raise_if_cancelled(cancel_event, len(results), total)
            results.append(_forecast(resource))
    else:
        with ThreadPoolExecutor(max_workers=config.max_workers) as pool:
            futures = [pool.submit(_forecast, resource) for resource in resources]
            for future in futures:
                if cancel_event is not None and cancel_event.is_set():
                    for pending in futures:
                        pending.cancel()
                    raise ForecastCancelledError(len(results), total)
                results.append(future.result())
    _raise_if_cancelled(cancel_event, len(results), total)
    logger.debug("built %d resource forecasts over %d months", len(results), len(months))
    return results


@dataclass(frozen=True)
class TeamMonth:
    month: Month
    total_utilization: float
    total_capacity: float
    utilization_rate: float
    overallocated: bool

    def to_dict(self) -> Dict[str, object]:
        return {
            "year": self.month.year,
            "month": self.month.month,
            "label": self.month.label,
            "totalUtilization": self.total_utilization,
            "totalCapacity": self.total_capacity,
            "utilizationRate": self.utilization_rate,
            "overallocated": self.overallocated,
        }


@dataclass(frozen=True)
class TeamForecast:
    monthly: Tuple[TeamMonth, ...]
    avg_utilization_rate: float
    trend_direction: str
    utilization_category: str
    bottleneck_months: Tuple[str, ...]
    forecast_text: str

    def to_dict(self) -> Dict[str, object]:
        return {
            "monthlyUtilization": [m.to_dict() for m in self.monthly],
            "avgUtilizationRate": self.avg_utilization_rate,
            "trendDirection": self.trend_direction,
            "forecast": {
                "utilizationCategory": self.utilization_category,
                "bottleneckMonths": list(self.bottleneck_months),
                "forecastText": self.forecast_text,
            },
        }


def build_team_forecast(
    forecasts: Sequence[ResourceForecast],
    months: Sequence[Month],
    config: ForecastConfig,
) -> TeamForecast:
    monthly: List[TeamMonth] = []
    for idx, month in enumerate(months):
        month_utilization = sum(f.months[idx].total_utilization for f in forecasts)
        month_capacity = sum(f.months[idx].effective_capacity for f in forecasts)
        raw_rate = month_utilization / month_capacity * 100 if month_capacity > 0 else 0.0
        monthly.append(
            TeamMonth(
                month=month,
                total_utilization=month_utilization,
                total_capacity=month_capacity,
                utilization_rate=min(raw_rate, 100.0),
                overallocated=raw_rate > 100,
            )
        )
    rates = [m.utilization_rate for m in monthly]
    avg_rate = mean(rates)
    trend = trend_direction(rates, config.trend_threshold)
    category = team_utilization_category(avg_rate)
    bottleneck_months = tuple(m.month.label for m in monthly if m.utilization_rate > TEAM_BOTTLENECK_RATE)
    return TeamForecast(
        monthly=tuple(monthly),
        avg_utilization_rate=avg_rate,
        trend_direction=trend,
        utilization_category=category,
        bottleneck_months=bottleneck_months,
        forecast_text=team_forecast_text(category, trend, bottleneck_months),
    )
