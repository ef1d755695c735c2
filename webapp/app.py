from __future__ import annotations

import logging
import os
from datetime import date
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

from flask import Flask, jsonify, request

from utilization_tracker import engine
from utilization_tracker.errors import InvalidRangeError, UpstreamDataError
from utilization_tracker.io_utils import load_config, parse_id_list, parse_optional_date
from utilization_tracker.models import ForecastConfig
from utilization_tracker.provider import DataProvider, DirectoryDataProvider

logger = logging.getLogger(__name__)


def _default_data_dir() -> Path:
    return (Path(__file__).resolve().parent.parent / "data").resolve()


def _resolve_data_dir() -> Path:
    env_value = os.getenv("FORECAST_DATA_DIR")
    if env_value:
        return Path(env_value).expanduser().resolve()
    return _default_data_dir()


def _query_window(today: Callable[[], date]) -> Tuple[date, Dict[str, object]]:
    args = request.args
    try:
        reference_date = parse_optional_date(args.get("referenceDate"), "referenceDate") or today()
        start_date = parse_optional_date(args.get("startDate"), "startDate")
        end_date = parse_optional_date(args.get("endDate"), "endDate")
    except ValueError as exc:
        raise InvalidRangeError(str(exc)) from exc
    months_raw = args.get("months")
    months: Optional[int] = None
    if months_raw not in (None, ""):
        try:
            months = int(months_raw)
        except ValueError as exc:
            raise InvalidRangeError(f"months must be an integer, got {months_raw!r}") from exc
    return reference_date, {"start_date": start_date, "end_date": end_date, "months": months}


def create_app(
    provider: Optional[DataProvider] = None,
    config: Optional[ForecastConfig] = None,
    today: Callable[[], date] = date.today,
) -> Flask:
    app = Flask(__name__)
    if config is None:
        config = load_config(os.getenv("FORECAST_CONFIG"))
    if provider is None:
        provider = DirectoryDataProvider(_resolve_data_dir())
    logging.basicConfig(
        level=getattr(logging, config.logging_level.upper(), logging.INFO),
        format="%(levelname)s %(message)s",
    )
    app.config["FORECAST_CONFIG"] = config
    app.config["DATA_PROVIDER"] = provider

    @app.errorhandler(InvalidRangeError)
    def invalid_range(exc: InvalidRangeError):
        return jsonify({"error": str(exc)}), 400

    @app.errorhandler(UpstreamDataError)
    def upstream_failure(exc: UpstreamDataError):
        logger.error("data provider failed: %s", exc)
        return jsonify({"error": str(exc)}), 502

    @app.get("/api/forecast/utilization")
    def utilization_forecast():
        reference_date, window = _query_window(today)
        forecast = engine.get_utilization_forecast(
            provider,
            reference_date,
            resource_ids=parse_id_list(request.args.get("resourceIds")),
            config=config,
            **window,
        )
        return jsonify(forecast.to_dict())

    @app.get("/api/forecast/bottlenecks")
    def bottlenecks():
        reference_date, window = _query_window(today)
        report = engine.get_bottlenecks(provider, reference_date, config=config, **window)
        return jsonify(report.to_dict())

    @app.get("/api/forecast/workload-balancing")
    def workload_balancing():
        reference_date, window = _query_window(today)
        balance = engine.get_workload_balancing(provider, reference_date, config=config, **window)
        return jsonify(balance.to_dict())

    @app.get("/api/forecast/bench")
    def bench_forecast():
        reference_date, window = _query_window(today)
        report = engine.get_bench_forecast(
            provider,
            reference_date,
            resource_ids=parse_id_list(request.args.get("resourceIds")),
            config=config,
            **window,
        )
        return jsonify(report.to_dict())

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
