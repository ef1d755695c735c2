import json
from datetime import date

import pytest

from utilization_tracker.errors import UpstreamDataError
from utilization_tracker.forecast import build_resource_forecast
from utilization_tracker.io_utils import (
    forecast_to_frame,
    load_allocations,
    load_capacity_settings,
    load_config,
    load_resources,
    parse_date,
    parse_id_list,
)
from utilization_tracker.provider import DirectoryDataProvider
from utilization_tracker.utilization import CapacityIndex

JAN_1 = date(2025, 1, 1)
MAR_31 = date(2025, 3, 31)


def test_parse_date_accepts_iso_datetimes():
    assert parse_date("2025-02-03T10:00:00", "start_date") == date(2025, 2, 3)
    with pytest.raises(ValueError, match="start_date"):
        parse_date("not a date", "start_date")


def test_parse_id_list():
    assert parse_id_list(" 1, 2 ,,3 ") == ("1", "2", "3")
    assert parse_id_list("") is None
    assert parse_id_list(None) is None


def test_load_resources(tmp_path):
    path = tmp_path / "resources.json"
    path.write_text(
        json.dumps(
            [
                {"id": 7, "name": "Eve", "role": "  ", "skills": ["Go", " "]},
                {"id": "8", "name": "Frank", "skills": "Java; Kotlin"},
            ]
        )
    )
    df = load_resources(path)
    assert df["id"].tolist() == ["7", "8"]
    assert df["role"].tolist() == [None, None]
    assert df["skills"].tolist() == [("Go",), ("Java", "Kotlin")]


def test_load_resources_requires_name(tmp_path):
    path = tmp_path / "resources.json"
    path.write_text(json.dumps([{"id": "1"}]))
    with pytest.raises(ValueError, match="name is required"):
        load_resources(path)


def test_load_allocations_rejects_inverted_span(tmp_path):
    path = tmp_path / "allocations.csv"
    path.write_text(
        "id,resource_id,project_id,project_name,start_date,end_date,utilization\n"
        "A1,1,P1,Apollo,2025-03-01,2025-02-01,50\n"
    )
    with pytest.raises(ValueError, match="A1 ends before it starts"):
        load_allocations(path)


def test_load_allocations_fills_optional_columns(tmp_path):
    path = tmp_path / "allocations.csv"
    path.write_text("resource_id,project_id,start_date,end_date,utilization\n1,P1,2025-01-01,2025-01-31,40\n")
    df = load_allocations(path)
    row = df.iloc[0]
    assert row["id"] == "1"
    assert row["project_name"] == "P1"
    assert row["start_date"] == JAN_1


def test_load_capacity_defaults_and_validation(tmp_path):
    path = tmp_path / "capacity.csv"
    path.write_text("resource_id,year,month,planned_time_off\n1,2025,2,\n")
    df = load_capacity_settings(path)
    assert df.iloc[0]["available_capacity"] == 100.0
    assert df.iloc[0]["planned_time_off"] == 0.0

    path.write_text("resource_id,year,month\n1,2025,13\n")
    with pytest.raises(ValueError, match="month"):
        load_capacity_settings(path)


class TestLoadConfig:
    def test_defaults_without_file(self):
        cfg = load_config(None)
        assert cfg.default_months == 6
        assert cfg.transfer_target_cap == 90.0

    def test_overrides(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"max_workers": 4, "trend_threshold": 1, "logging_level": "DEBUG"}))
        cfg = load_config(path)
        assert cfg.max_workers == 4
        assert cfg.trend_threshold == 1.0
        assert cfg.logging_level == "DEBUG"
        assert cfg.sample_day == 15

    @pytest.mark.parametrize(
        "payload",
        [{"default_months": 0}, {"sample_day": 31}, {"trend_threshold": "high"}, {"max_workers": True}, []],
    )
    def test_invalid_values(self, tmp_path, payload):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(payload))
        with pytest.raises(ValueError):
            load_config(path)


class TestFrameProvider:
    def test_allocations_outside_window_are_dropped(self, sample_provider):
        ids = [a.id for a in sample_provider.list_allocations(JAN_1, MAR_31)]
        assert "A7" not in ids
        assert len(ids) == 6

    def test_resource_filter(self, sample_provider):
        assert [r.name for r in sample_provider.list_resources(["3", "4"])] == ["Carol", "Dan"]
        assert {a.resource_id for a in sample_provider.list_allocations(JAN_1, MAR_31, ["3"])} == {"3"}

    def test_capacity_limited_to_window_months(self, sample_provider):
        settings = sample_provider.list_capacity_settings(JAN_1, MAR_31)
        assert [(s.resource_id, s.year, s.month) for s in settings] == [("2", 2025, 2)]

    def test_resources_resolve_role_and_skills(self, sample_provider):
        dan = sample_provider.list_resources(["4"])[0]
        assert dan.role_label == "QA"
        assert dan.skills == frozenset()


class TestDirectoryProvider:
    def test_reads_files(self, sample_data_dir):
        provider = DirectoryDataProvider(sample_data_dir)
        resources = provider.list_resources()
        assert [r.name for r in resources] == ["Alice", "Bob", "Carol", "Dan"]
        assert resources[0].sorted_skills() == ["Node", "React"]
        allocations = provider.list_allocations(JAN_1, MAR_31)
        assert [a.utilization for a in allocations if a.resource_id == "1"] == [80, 30, 20]
        assert len(provider.list_capacity_settings(JAN_1, MAR_31)) == 1

    def test_capacity_file_is_optional(self, sample_data_dir):
        (sample_data_dir / "capacity.csv").unlink()
        assert DirectoryDataProvider(sample_data_dir).list_capacity_settings(JAN_1, MAR_31) == []

    def test_missing_resources_file(self, sample_data_dir):
        (sample_data_dir / "resources.json").unlink()
        with pytest.raises(UpstreamDataError, match="resources.json"):
            DirectoryDataProvider(sample_data_dir).list_resources()

    def test_malformed_allocations(self, sample_data_dir):
        (sample_data_dir / "allocations.csv").write_text("resource_id,start_date\n1,2025-01-01\n")
        with pytest.raises(UpstreamDataError, match="missing required columns"):
            DirectoryDataProvider(sample_data_dir).list_allocations(JAN_1, MAR_31)


def test_forecast_to_frame(make_resource, make_allocation, q1_months, config):
    forecast = build_resource_forecast(
        make_resource("1", "Alice"),
        [make_allocation("1", JAN_1, MAR_31, 110)],
        CapacityIndex({}),
        q1_months,
        config,
    )
    df = forecast_to_frame([forecast])
    assert len(df) == 3
    assert df["month"].tolist() == ["Jan 2025", "Feb 2025", "Mar 2025"]
    assert df["overallocated"].all()
    assert set(df["forecast_status"]) == {"overallocated"}


def test_integral_percentages_stay_integers(sample_data_dir):
    allocations = sample_data_dir / "allocations.csv"
    allocations.write_text(
        allocations.read_text() + "A8,4,P4,Delta,2025-01-01,2025-01-31,12.5\n"
    )
    provider = DirectoryDataProvider(sample_data_dir)

    by_id = {a.id: a.utilization for a in provider.list_allocations(JAN_1, MAR_31)}
    assert by_id["A1"] == 80 and isinstance(by_id["A1"], int)
    assert by_id["A8"] == 12.5
    (setting,) = provider.list_capacity_settings(JAN_1, MAR_31)
    assert isinstance(setting.planned_time_off, int)
    payload = json.dumps([a.utilization for a in provider.list_allocations(JAN_1, MAR_31, ["1"])])
    assert payload == "[80, 30, 20]"
