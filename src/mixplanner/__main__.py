"""
Command-line entry point for the mix planner.

    mixplanner serve --port 8000
    mixplanner forecast --domain skincare --spend television=7200000 --spend digital=4800000 --aux posts=8
    mixplanner recommend --domain skincare --budget 12000000 --aux posts=8 --step 5

Running without a command starts the API server.
"""
import sys
import json
import argparse
import uvicorn

from mixplanner.config.settings import settings
from mixplanner.forecast.builder import build
from mixplanner.optimization.optimizer import recommend
from mixplanner.utils.exceptions import MixPlannerException
from mixplanner.utils.logging import setup_logging

COMMANDS = ("serve", "forecast", "recommend")


def amount(text):
    """Parse ``name=value`` into a (name, float) pair."""
    name, sep, value = text.partition("=")
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected NAME=VALUE, got {text!r}")
    try:
        return name.strip(), float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not a number") from None


def _add_plan_arguments(parser):
    parser.add_argument(
        "--domain",
        default=settings.forecast.default_domain,
        help="Domain to plan for"
    )
    parser.add_argument(
        "--aux",
        type=amount,
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Non-monetary input such as posts=8 (repeatable)"
    )
    parser.add_argument(
        "--horizon",
        type=int,
        default=settings.forecast.default_horizon_periods,
        help="Forecast horizon in periods"
    )


def create_parser():
    """Create command-line argument parser."""
    parser = argparse.ArgumentParser(prog="mixplanner", description="Marketing Mix Planner")

    parser.add_argument(
        "--log-level",
        default=settings.logging.level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set logging level"
    )

    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=settings.api.host, help="Host to bind the server to")
    serve.add_argument("--port", type=int, default=settings.api.port, help="Port to bind the server to")
    serve.add_argument(
        "--reload",
        action="store_true",
        default=settings.api.reload,
        help="Enable auto-reload on code changes"
    )

    forecast = subparsers.add_parser("forecast", help="Forecast a spend plan and print the totals")
    _add_plan_arguments(forecast)
    forecast.add_argument(
        "--spend",
        type=amount,
        action="append",
        default=[],
        metavar="CHANNEL=AMOUNT",
        help="Campaign spend for one channel (repeatable)"
    )
    forecast.add_argument("--periods", action="store_true", help="Also print every period")

    optimize = subparsers.add_parser("recommend", help="Recommend the television/digital split of a budget")
    _add_plan_arguments(optimize)
    optimize.add_argument("--budget", type=float, required=True, help="Total budget to split")
    optimize.add_argument(
        "--step",
        type=float,
        default=settings.optimization.default_grid_step_pct,
        help="Split grid step in percentage points"
    )
    optimize.add_argument(
        "--aux-step",
        type=float,
        default=settings.optimization.default_auxiliary_grid_step,
        help="Also search the auxiliary input with this step"
    )
    optimize.add_argument(
        "--workers",
        type=int,
        default=settings.optimization.max_workers,
        help="Evaluate the grid on this many threads"
    )

    return parser


def run_forecast(args):
    series = build(args.domain, dict(args.spend), dict(args.aux), args.horizon)
    result = {
        "domain": series.domain,
        "horizon_periods": series.horizon_periods,
        "aggregate": dict(series.aggregate),
        "margin_rate": series.margin_rate
    }
    if args.periods:
        result["periods"] = [dict(snapshot) for _, snapshot in series.periods]
    return result


def run_recommend(args):
    best = recommend(
        args.domain,
        args.budget,
        dict(args.aux),
        horizon_periods=args.horizon,
        channel_grid_step_pct=args.step,
        auxiliary_grid_step=args.aux_step,
        max_workers=args.workers
    )
    return {
        "domain": args.domain,
        "total_budget": args.budget,
        "spend": dict(best.spend),
        "auxiliary": dict(best.auxiliary),
        "digital_share_pct": best.digital_share_pct,
        "gross_profit": best.gross_profit
    }


def serve(args):
    print(f"Starting mix planner API on {args.host}:{args.port}")
    print(f"Environment: {settings.env.value}")

    try:
        uvicorn.run(
            "mixplanner.api.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level=args.log_level.lower()
        )
    except KeyboardInterrupt:
        print("\nShutting down mix planner API...")
    return 0


def main(argv=None):
    """Main entry point. Returns the process exit code."""
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = create_parser()
    if not any(arg in COMMANDS for arg in argv):
        argv.append("serve")
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    settings.setup_directories()

    if args.command == "serve":
        return serve(args)

    handler = run_forecast if args.command == "forecast" else run_recommend
    try:
        result = handler(args)
    except MixPlannerException as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
