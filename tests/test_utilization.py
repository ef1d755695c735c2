from datetime import date

from utilization_tracker.models import CapacitySetting
from utilization_tracker.periods import month_from_date
from utilization_tracker.utilization import (
    CapacityIndex,
    aggregate_month,
    group_allocations,
    is_active_in_month,
    monthly_utilization,
)

JAN = month_from_date(date(2025, 1, 1))
FEB = month_from_date(date(2025, 2, 1))


def test_full_month_allocation_overallocates_default_capacity(make_allocation):
    allocation = make_allocation("1", date(2025, 1, 1), date(2025, 1, 31), 120)
    result = monthly_utilization("1", JAN, [allocation], CapacityIndex({}))
    assert result.total_utilization == 120
    assert result.effective_capacity == 100
    assert result.overallocated is True
    assert result.remaining_capacity == 0
    assert [a.allocation_id for a in result.allocations] == [allocation.id]


def test_activity_is_sampled_on_the_fifteenth(make_allocation):
    # Overlaps both months, but misses both sample days.
    allocation = make_allocation("1", date(2025, 1, 16), date(2025, 2, 14), 50)
    assert not is_active_in_month(allocation, JAN)
    assert not is_active_in_month(allocation, FEB)
    assert aggregate_month(JAN, [allocation]) == (0, ())


def test_sample_day_bounds_are_inclusive(make_allocation):
    starts = make_allocation("1", date(2025, 1, 15), date(2025, 3, 1), 10)
    ends = make_allocation("1", date(2024, 12, 1), date(2025, 1, 15), 15)
    total, active = aggregate_month(JAN, [starts, ends])
    assert total == 25
    assert len(active) == 2


def test_totals_are_not_capped(make_allocation):
    allocations = [make_allocation("1", date(2025, 1, 1), date(2025, 1, 31), 90) for _ in range(3)]
    total, _ = aggregate_month(JAN, allocations)
    assert total == 270


def test_capacity_setting_reduces_effective_capacity(make_allocation):
    index = CapacityIndex.from_settings([CapacitySetting("1", 2025, 1, 80, 20)])
    allocation = make_allocation("1", date(2025, 1, 1), date(2025, 1, 31), 50)
    result = monthly_utilization("1", JAN, [allocation], index)
    assert result.available_capacity == 80
    assert result.planned_time_off == 20
    assert result.effective_capacity == 60
    assert result.remaining_capacity == 10
    assert result.overallocated is False


def test_negative_effective_capacity_is_preserved():
    index = CapacityIndex.from_settings([CapacitySetting("1", 2025, 1, 20, 50)])
    result = monthly_utilization("1", JAN, [], index)
    assert result.effective_capacity == -30
    assert result.remaining_capacity == 0
    # 0 > -30
    assert result.overallocated is True


def test_capacity_lookup_is_keyed_by_resource_and_month():
    index = CapacityIndex.from_settings(
        [
            CapacitySetting("1", 2025, 1, 50, 0),
            CapacitySetting("1", 2025, 1, 10, 0),
            CapacitySetting("2", 2025, 2, 70, 0),
        ]
    )
    assert index.resolve("1", JAN) == (50, 0)
    assert index.resolve("1", FEB) == (100.0, 0.0)
    assert index.resolve("2", JAN) == (100.0, 0.0)


def test_group_allocations_by_resource(make_allocation):
    a = make_allocation("1", date(2025, 1, 1), date(2025, 1, 31), 10)
    b = make_allocation("2", date(2025, 1, 1), date(2025, 1, 31), 20)
    c = make_allocation("1", date(2025, 2, 1), date(2025, 2, 28), 30)
    assert group_allocations([a, b, c]) == {"1": [a, c], "2": [b]}
