import json

import pandas as pd
import pytest

from utilization_tracker.main import main

WINDOW = ["--start", "2025-01-01", "--end", "2025-03-31"]


def _run(capsys, *argv):
    main(list(argv))
    return json.loads(capsys.readouterr().out)


def test_forecast_prints_json(sample_data_dir, capsys):
    payload = _run(capsys, "forecast", "--data-dir", str(sample_data_dir), *WINDOW)
    assert payload["months"] == ["Jan 2025", "Feb 2025", "Mar 2025"]
    assert [r["name"] for r in payload["resources"]] == ["Alice", "Bob", "Carol", "Dan"]
    assert payload["resources"][1]["months"][1]["effectiveCapacity"] == 50


def test_resource_filter(sample_data_dir, capsys):
    payload = _run(capsys, "forecast", "--data-dir", str(sample_data_dir), "--resource-ids", "3", *WINDOW)
    assert [r["name"] for r in payload["resources"]] == ["Carol"]


def test_bottlenecks_and_balance(sample_data_dir, capsys):
    report = _run(capsys, "bottlenecks", "--data-dir", str(sample_data_dir), *WINDOW)
    assert [b["name"] for b in report["resourceBottlenecks"]] == ["Alice"]
    assert report["projectBottlenecks"][0]["bottleneckRisk"] == "medium"

    balance = _run(capsys, "balance", "--data-dir", str(sample_data_dir), *WINDOW)
    assert balance["summary"]["recommendationCount"] == 1


def test_reference_date_drives_default_window(sample_data_dir, capsys):
    payload = _run(
        capsys, "bench", "--data-dir", str(sample_data_dir), "--reference-date", "2025-01-01", "--months", "2"
    )
    assert payload["startDate"] == "2025-01-01"
    assert payload["endDate"] == "2025-03-01"
    assert payload["resources"][0]["name"] == "Carol"


def test_outdir_writes_files(sample_data_dir, tmp_path, capsys):
    outdir = tmp_path / "out"
    main(["forecast", "--data-dir", str(sample_data_dir), "--outdir", str(outdir), *WINDOW])

    assert "Wrote" in capsys.readouterr().out
    payload = json.loads((outdir / "forecast.json").read_text())
    assert payload["team"]["forecast"]["utilizationCategory"] == "low"
    df = pd.read_csv(outdir / "resource_utilization.csv")
    assert len(df) == 12
    assert set(df["name"]) == {"Alice", "Bob", "Carol", "Dan"}


def test_invalid_range_exits_2(sample_data_dir, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["forecast", "--data-dir", str(sample_data_dir), "--start", "2025-03-01", "--end", "2025-01-01"])
    assert excinfo.value.code == 2
    assert "before start date" in capsys.readouterr().err


def test_bad_date_exits_2(sample_data_dir):
    with pytest.raises(SystemExit) as excinfo:
        main(["forecast", "--data-dir", str(sample_data_dir), "--start", "soon"])
    assert excinfo.value.code == 2


def test_invalid_config_exits_2(sample_data_dir, tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"max_workers": 0}))
    with pytest.raises(SystemExit) as excinfo:
        main(["forecast", "--data-dir", str(sample_data_dir), "--config", str(config_path)])
    assert excinfo.value.code == 2


def test_missing_data_exits_1(tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["forecast", "--data-dir", str(tmp_path / "nowhere"), *WINDOW])
    assert excinfo.value.code == 1
    assert "resources.json" in capsys.readouterr().err
