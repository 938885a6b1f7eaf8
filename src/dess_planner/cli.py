"""Command-line interface for the DESS planner."""

import json
import logging
from pathlib import Path
from typing import Optional

import typer

from dess_planner import __version__
from dess_planner.core.schemas import Strategy

app = typer.Typer(
    help="PV / battery / grid dispatch planner with discrete inverter strategies",
    no_args_is_help=True,
)

STRATEGY_LABELS = {
    Strategy.TARGET_SOC: "target-soc",
    Strategy.SELF_CONSUMPTION: "self-consumption",
    Strategy.PRO_BATTERY: "pro-battery",
    Strategy.PRO_GRID: "pro-grid",
}


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")):
    """Configure logging for all commands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )


@app.command()
def version():
    """Show planner version."""
    typer.echo(f"DESS Planner v{__version__}")


@app.command()
def validate(bundle_path: str):
    """Validate a run bundle.

    Args:
        bundle_path: Path to bundle directory
    """
    from dess_planner.core.validate import validate_timeseries_frame
    from dess_planner.io.bundle import load_bundle, validate_bundle

    try:
        validate_bundle(bundle_path)
        params, _, timeseries = load_bundle(bundle_path)
        validate_timeseries_frame(timeseries, params.step_minutes)
        typer.secho(f"✓ Bundle at {bundle_path} is valid", fg=typer.colors.GREEN)
    except Exception as e:
        typer.secho(f"✗ Bundle validation failed: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)


@app.command()
def plan(bundle_path: str):
    """Compute a plan for a bundle.

    Args:
        bundle_path: Path to bundle directory
    """
    from dess_planner.runners.plan import run_plan

    try:
        result = run_plan(bundle_path)
    except Exception as e:
        typer.secho(f"\n✗ Planning failed: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    if result.solver_result.is_optimal:
        typer.secho("\n✓ Plan completed successfully", fg=typer.colors.GREEN)
    else:
        typer.secho(f"\n! Plan completed with status {result.status}", fg=typer.colors.YELLOW)


@app.command("export-lp")
def export_lp(
    bundle_path: str,
    output: Optional[str] = typer.Option(None, help="Write LP text to this file instead of stdout"),
):
    """Build the LP model for a bundle without solving it.

    Args:
        bundle_path: Path to bundle directory
        output: Optional output file
    """
    from dess_planner.core.validate import timeseries_from_frame, validate_timeseries_frame
    from dess_planner.io.bundle import load_bundle
    from dess_planner.model.build import build_model

    try:
        params, _, timeseries = load_bundle(bundle_path)
        validate_timeseries_frame(timeseries, params.step_minutes)
        ts, _ = timeseries_from_frame(timeseries)
        lp_text = build_model(ts, params)
    except Exception as e:
        typer.secho(f"✗ Model build failed: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    if output is None:
        typer.echo(lp_text)
    else:
        Path(output).write_text(lp_text)
        typer.secho(f"✓ LP model written to {output}", fg=typer.colors.GREEN)


@app.command()
def report(bundle_path: str):
    """Show the summary and schedule of a computed plan.

    Args:
        bundle_path: Path to bundle directory
    """
    bundle_path_obj = Path(bundle_path)

    summary_file = bundle_path_obj / "summary.json"
    if not summary_file.exists():
        typer.secho(
            "✗ No results found in bundle. Run plan first.",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(1)

    with open(summary_file) as f:
        summary = json.load(f)

    schedule = []
    schedule_file = bundle_path_obj / "schedule.json"
    if schedule_file.exists():
        with open(schedule_file) as f:
            schedule = json.load(f)

    def price(value):
        return "-" if value is None else f"{value:.2f} c/kWh"

    typer.echo("\n" + "=" * 60)
    typer.echo("PLAN SUMMARY")
    typer.echo("=" * 60)

    typer.echo("\nEnergy:")
    typer.echo(f"  Load total:       {summary['load_total_kwh']:.2f} kWh")
    typer.echo(f"  PV total:         {summary['pv_total_kwh']:.2f} kWh")
    typer.echo(f"  Load from grid:   {summary['load_from_grid_kwh']:.2f} kWh")
    typer.echo(f"  Load from batt:   {summary['load_from_battery_kwh']:.2f} kWh")
    typer.echo(f"  Load from PV:     {summary['load_from_pv_kwh']:.2f} kWh")
    typer.echo(f"  Import energy:    {summary['import_energy_kwh']:.2f} kWh")
    typer.echo(f"  Avg import price: {price(summary['avg_import_price'])}")

    typer.echo("\nTipping points:")
    typer.echo(f"  Grid/battery:     {price(summary['grid_battery_tipping_point'])}")
    typer.echo(f"  Grid charge:      {price(summary['grid_charge_tipping_point'])}")
    typer.echo(f"  Battery export:   {price(summary['battery_export_tipping_point'])}")

    if schedule:
        typer.echo("\nSchedule:")
        for slot in schedule:
            typer.echo(
                f"  {slot['start_epoch']}  {STRATEGY_LABELS[Strategy(slot['strategy'])]:<17}"
                f" soc={slot['soc_target']:>3}%  restrictions={slot['restrictions']}"
                f"  feed-in={slot['allow_grid_feed_in']}"
            )

    typer.echo("\n" + "=" * 60 + "\n")

    typer.secho("✓ Report generated", fg=typer.colors.GREEN)


if __name__ == "__main__":
    app()
