from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd
from dateutil import parser as dateparser

from .models import ForecastConfig, ResourceForecast

RESOURCES_FILE = "resources.json"
ALLOCATIONS_FILE = "allocations.csv"
CAPACITY_FILE = "capacity.csv"

RESOURCE_COLUMNS = ["id", "name", "role", "skills"]
ALLOCATION_COLUMNS = [
    "id",
    "resource_id",
    "project_id",
    "project_name",
    "start_date",
    "end_date",
    "utilization",
]
CAPACITY_COLUMNS = ["resource_id", "year", "month", "available_capacity", "planned_time_off"]

_ALLOCATION_REQUIRED_COLUMNS = set(ALLOCATION_COLUMNS) - {"id", "project_name"}
_CAPACITY_REQUIRED_COLUMNS = {"resource_id", "year", "month"}


def _require_columns(df: pd.DataFrame, required: Iterable[str], source: str) -> None:
    missing = sorted(col for col in required if col not in df.columns)
    if missing:
        raise ValueError(f"{source} missing required columns: {', '.join(missing)}")


def _is_missing(value: object) -> bool:
    return value is None or (isinstance(value, float) and pd.isna(value))


def parse_date(value: object, field_name: str) -> date:
    if isinstance(value, date):
        return value
    if _is_missing(value) or (isinstance(value, str) and not value.strip()):
        raise ValueError(f"missing date in '{field_name}'")
    try:
        return dateparser.isoparse(str(value).strip()).date()
    except (ValueError, TypeError) as exc:
        raise ValueError(f"invalid date in '{field_name}': {value}") from exc


def parse_optional_date(value: object, field_name: str) -> Optional[date]:
    if _is_missing(value) or (isinstance(value, str) and not value.strip()):
        return None
    return parse_date(value, field_name)


def parse_id_list(value: object) -> Optional[Tuple[str, ...]]:
    """Split a comma separated id filter; an empty filter means no filter."""
    if _is_missing(value):
        return None
    if isinstance(value, str):
        parts = [part.strip() for part in value.split(",")]
    elif isinstance(value, Sequence):
        parts = [str(part).strip() for part in value]
    else:
        raise ValueError(f"unsupported id list: {value!r}")
    ids = tuple(part for part in parts if part)
    return ids or None


def _parse_skills(value: object, owner: str) -> Tuple[str, ...]:
    if _is_missing(value):
        return ()
    if isinstance(value, str):
        return tuple(part.strip() for part in value.split(";") if part.strip())
    if isinstance(value, Sequence):
        return tuple(str(item).strip() for item in value if str(item).strip())
    raise ValueError(f"skills must be an array for {owner}")


def load_resources(path: str | Path) -> pd.DataFrame:
    data = json.loads(Path(path).read_text())
    if not isinstance(data, list):
        raise ValueError("resources file must be a JSON array")
    rows = []
    for entry in data:
        if not isinstance(entry, dict):
            raise ValueError("resource entries must be objects")
        resource_id = entry.get("id")
        if _is_missing(resource_id) or str(resource_id).strip() == "":
            raise ValueError("resource id is required")
        name = entry.get("name")
        if not name or not isinstance(name, str):
            raise ValueError(f"resource name is required for {resource_id}")
        role = entry.get("role")
        rows.append(
            {
                "id": str(resource_id).strip(),
                "name": name,
                "role": None if _is_missing(role) or str(role).strip() == "" else str(role).strip(),
                "skills": _parse_skills(entry.get("skills", ()), name),
            }
        )
    return pd.DataFrame(rows, columns=RESOURCE_COLUMNS)


def load_allocations(path: str | Path) -> pd.DataFrame:
    df = pd.read_csv(path, dtype={"id": str, "resource_id": str, "project_id": str, "project_name": str})
    _require_columns(df, _ALLOCATION_REQUIRED_COLUMNS, ALLOCATIONS_FILE)
    if "id" not in df.columns:
        df["id"] = [str(idx + 1) for idx in range(len(df))]
    if "project_name" not in df.columns:
        df["project_name"] = df["project_id"]
    df["project_name"] = df["project_name"].fillna(df["project_id"])
    try:
        df["utilization"] = pd.to_numeric(df["utilization"])
    except ValueError as exc:
        raise ValueError("invalid numeric value in column 'utilization'") from exc
    if df["utilization"].isna().any():
        raise ValueError("column 'utilization' contains missing values")
    df["start_date"] = df["start_date"].map(lambda value: parse_date(value, "start_date"))
    df["end_date"] = df["end_date"].map(lambda value: parse_date(value, "end_date"))
    inverted = df[df["end_date"] < df["start_date"]]
    if not inverted.empty:
        raise ValueError(f"allocation {inverted.iloc[0]['id']} ends before it starts")
    return df[ALLOCATION_COLUMNS].reset_index(drop=True)


def load_capacity_settings(path: str | Path) -> pd.DataFrame:
    df = pd.read_csv(path, dtype={"resource_id": str})
    _require_columns(df, _CAPACITY_REQUIRED_COLUMNS, CAPACITY_FILE)
    for col in ["year", "month"]:
        try:
            df[col] = pd.to_numeric(df[col]).astype(int)
        except (ValueError, TypeError) as exc:
            raise ValueError(f"invalid integer value in column '{col}'") from exc
    if ((df["month"] < 1) | (df["month"] > 12)).any():
        raise ValueError("column 'month' must be between 1 and 12")
    defaults = {"available_capacity": 100.0, "planned_time_off": 0.0}
    for col, default in defaults.items():
        if col not in df.columns:
            df[col] = default
        try:
            df[col] = pd.to_numeric(df[col]).fillna(default)
        except ValueError as exc:
            raise ValueError(f"invalid numeric value in column '{col}'") from exc
    return df[CAPACITY_COLUMNS].reset_index(drop=True)


def empty_capacity_frame() -> pd.DataFrame:
    return pd.DataFrame(columns=CAPACITY_COLUMNS)


def _positive_int(data: dict, key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{key} must be a positive integer")
    return value


def _number(data: dict, key: str, default: float, *, minimum: Optional[float] = None) -> float:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    if minimum is not None and value < minimum:
        raise ValueError(f"{key} must be >= {minimum}")
    return float(value)


def load_config(path: str | Path | None) -> ForecastConfig:
    if path is None:
        return ForecastConfig()
    data = json.loads(Path(path).read_text())
    if not isinstance(data, dict):
        raise ValueError("config file must be a JSON object")
    defaults = ForecastConfig()
    sample_day = _positive_int(data, "sample_day", defaults.sample_day)
    if sample_day > 28:
        raise ValueError("sample_day must be between 1 and 28")
    logging_level = data.get("logging_level", defaults.logging_level)
    if not isinstance(logging_level, str):
        raise ValueError("logging_level must be a string")
    return ForecastConfig(
        default_months=_positive_int(data, "default_months", defaults.default_months),
        sample_day=sample_day,
        trend_threshold=_number(data, "trend_threshold", defaults.trend_threshold, minimum=0),
        transfer_target_cap=_number(data, "transfer_target_cap", defaults.transfer_target_cap, minimum=0),
        underallocation_threshold=_number(
            data, "underallocation_threshold", defaults.underallocation_threshold, minimum=0
        ),
        transferable_allocation_max=_number(
            data, "transferable_allocation_max", defaults.transferable_allocation_max, minimum=0
        ),
        max_recommendations_per_resource=_positive_int(
            data, "max_recommendations_per_resource", defaults.max_recommendations_per_resource
        ),
        bench_allocation_threshold=_number(
            data, "bench_allocation_threshold", defaults.bench_allocation_threshold, minimum=0
        ),
        max_workers=_positive_int(data, "max_workers", defaults.max_workers),
        logging_level=logging_level,
    )


def forecast_to_frame(forecasts: Sequence[ResourceForecast]) -> pd.DataFrame:
    """Flatten resource forecasts into one row per resource and month."""
    rows: List[Dict[str, object]] = []
    for forecast in forecasts:
        for entry in forecast.months:
            rows.append(
                {
                    "resource_id": forecast.resource.id,
                    "name": forecast.resource.name,
                    "role": forecast.resource.role_label,
                    "month": entry.label,
                    "total_utilization": entry.total_utilization,
                    "effective_capacity": entry.effective_capacity,
                    "remaining_capacity": entry.remaining_capacity,
                    "overallocated": entry.overallocated,
                    "forecast_status": forecast.forecast_status,
                }
            )
    return pd.DataFrame(
        rows,
        columns=[
            "resource_id",
            "name",
            "role",
            "month",
            "total_utilization",
            "effective_capacity",
            "remaining_capacity",
            "overallocated",
            "forecast_status",
        ],
    )


def ensure_directory(path: str | Path) -> Path:
    target = Path(path)
    target.mkdir(parents=True, exist_ok=True)
    return target


def write_csv(df: pd.DataFrame, path: str | Path) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)


def write_json(payload: object, path: str | Path) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    Path(path).write_text(json.dumps(payload, indent=2) + "\n")
