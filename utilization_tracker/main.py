from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional

from . import engine
from .errors import InvalidRangeError, UpstreamDataError
from .io_utils import (
    ensure_directory,
    forecast_to_frame,
    load_config,
    parse_id_list,
    parse_optional_date,
    write_csv,
    write_json,
)
from .models import ForecastConfig
from .provider import DirectoryDataProvider

COMMANDS = ("forecast", "bottlenecks", "balance", "bench")


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Utilization forecasting, bottleneck detection and workload balancing (JSON/CSV in, JSON out)."
    )
    parser.add_argument("command", choices=COMMANDS, help="Report to produce")
    parser.add_argument(
        "--data-dir",
        required=True,
        help="Directory containing resources.json, allocations.csv and optionally capacity.csv",
    )
    parser.add_argument("--config", help="Path to configuration JSON file")
    parser.add_argument(
        "--reference-date",
        help="Date standing in for today when start/end are omitted (default: current date)",
    )
    parser.add_argument("--start", help="Forecast start date (ISO)")
    parser.add_argument("--end", help="Forecast end date (ISO)")
    parser.add_argument("--months", type=int, help="Months to cover when --end is omitted")
    parser.add_argument(
        "--resource-ids",
        help="Comma separated resource ids (forecast and bench only)",
    )
    parser.add_argument(
        "--outdir",
        default=None,
        help="Write <command>.json (and resource_utilization.csv for forecast) here instead of stdout",
    )
    return parser.parse_args(argv)


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s %(message)s")


def _run(args: argparse.Namespace, cfg: ForecastConfig) -> Dict[str, object]:
    provider = DirectoryDataProvider(Path(args.data_dir))
    try:
        reference_date = parse_optional_date(args.reference_date, "reference-date") or date.today()
        start_date = parse_optional_date(args.start, "start")
        end_date = parse_optional_date(args.end, "end")
    except ValueError as exc:
        raise InvalidRangeError(str(exc)) from exc
    resource_ids = parse_id_list(args.resource_ids)
    window = dict(start_date=start_date, end_date=end_date, months=args.months, config=cfg)

    if args.command == "forecast":
        forecast = engine.get_utilization_forecast(provider, reference_date, resource_ids=resource_ids, **window)
        if args.outdir:
            csv_path = ensure_directory(args.outdir) / "resource_utilization.csv"
            write_csv(forecast_to_frame(forecast.resources), csv_path)
            print(f"Wrote {csv_path}")
        return forecast.to_dict()
    if args.command == "bottlenecks":
        return engine.get_bottlenecks(provider, reference_date, **window).to_dict()
    if args.command == "balance":
        return engine.get_workload_balancing(provider, reference_date, **window).to_dict()
    return engine.get_bench_forecast(provider, reference_date, resource_ids=resource_ids, **window).to_dict()


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    try:
        cfg = load_config(args.config)
    except (OSError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(2)
    _configure_logging(cfg.logging_level)
    try:
        payload = _run(args, cfg)
    except InvalidRangeError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(2)
    except UpstreamDataError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)

    if args.outdir:
        json_path = ensure_directory(args.outdir) / f"{args.command}.json"
        write_json(payload, json_path)
        print(f"Wrote {json_path}")
        return
    print(json.dumps(payload, indent=2))


if __name__ == "__main__":
    main()
