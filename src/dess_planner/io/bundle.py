"""Run bundle I/O operations.

A run bundle is a folder containing:
- battery_config.yaml: Static battery/grid parameters
- run_config.yaml: Run configuration
- timeseries.parquet: Input timeseries (timestamp + load_w, pv_w, import_price, export_price)
- (outputs):
  - model.lp: LP model handed to the solver
  - flows.parquet: Decoded per-slot flows
  - decisions.parquet: Per-slot discrete directives
  - schedule.json: Control-channel schedule slots
  - summary.json: Plan summary
  - solve_stats.json: Solver statistics
  - bundle_metadata.json: Reproducibility metadata
"""

import json
from importlib import metadata
from pathlib import Path

import pandas as pd
import yaml

from dess_planner import __version__
from dess_planner.core.schemas import (
    BundleMetadata,
    DessDecision,
    PlanSummary,
    RunConfig,
    ScheduleSlot,
    SolvedFlow,
    SolverResult,
    StaticParameters,
)
from dess_planner.io.formats import (
    decisions_to_frame,
    flows_to_frame,
    read_parquet_timeseries,
    write_parquet_timeseries,
)

REQUIRED_FILES = ["battery_config.yaml", "run_config.yaml", "timeseries.parquet"]


def load_bundle(bundle_path: str | Path) -> tuple[StaticParameters, RunConfig, pd.DataFrame]:
    """Load a run bundle.

    Args:
        bundle_path: Path to bundle directory

    Returns:
        Tuple of (static_parameters, run_config, timeseries_df)
    """
    bundle_path = Path(bundle_path)

    if not bundle_path.exists():
        raise FileNotFoundError(f"Bundle not found: {bundle_path}")

    with open(bundle_path / "battery_config.yaml") as f:
        params = StaticParameters(**(yaml.safe_load(f) or {}))

    with open(bundle_path / "run_config.yaml") as f:
        run_config = RunConfig(**yaml.safe_load(f))

    timeseries = read_parquet_timeseries(str(bundle_path / "timeseries.parquet"))

    return params, run_config, timeseries


def _solver_version() -> str | None:
    try:
        return metadata.version("highspy")
    except metadata.PackageNotFoundError:
        return None


def write_results(
    bundle_path: str | Path,
    lp_text: str,
    solver_result: SolverResult,
    flows: list[SolvedFlow],
    decisions: list[DessDecision] | tuple[DessDecision, ...],
    schedule: list[ScheduleSlot],
    summary: PlanSummary,
) -> None:
    """Write plan results to bundle.

    Args:
        bundle_path: Path to bundle directory
        lp_text: LP model text
        solver_result: Solver outcome (columns are not persisted)
        flows: Decoded flows
        decisions: Mapped decisions
        schedule: Control-channel schedule slots
        summary: Plan summary
    """
    bundle_path = Path(bundle_path)
    bundle_path.mkdir(exist_ok=True)

    (bundle_path / "model.lp").write_text(lp_text)

    if flows:
        write_parquet_timeseries(flows_to_frame(flows), str(bundle_path / "flows.parquet"))
        write_parquet_timeseries(
            decisions_to_frame(list(decisions), flows), str(bundle_path / "decisions.parquet")
        )

    with open(bundle_path / "schedule.json", "w") as f:
        json.dump([slot.model_dump(mode="json") for slot in schedule], f, indent=2)

    with open(bundle_path / "summary.json", "w") as f:
        json.dump(summary.model_dump(), f, indent=2, default=str)

    with open(bundle_path / "solve_stats.json", "w") as f:
        json.dump(solver_result.model_dump(exclude={"columns"}), f, indent=2, default=str)

    bundle_metadata = BundleMetadata(
        dess_planner_version=__version__, solver_version=_solver_version()
    )
    with open(bundle_path / "bundle_metadata.json", "w") as f:
        json.dump(bundle_metadata.model_dump(), f, indent=2, default=str)


def init_bundle(
    bundle_path: str | Path,
    params: StaticParameters,
    run_config: RunConfig,
    timeseries: pd.DataFrame,
) -> None:
    """Initialize a new run bundle.

    Args:
        bundle_path: Path to bundle directory
        params: Static battery/grid parameters
        run_config: Run configuration
        timeseries: Input timeseries dataframe with DatetimeIndex
    """
    bundle_path = Path(bundle_path)
    bundle_path.mkdir(parents=True, exist_ok=True)

    with open(bundle_path / "battery_config.yaml", "w") as f:
        yaml.safe_dump(params.model_dump(mode="json"), f, default_flow_style=False)

    with open(bundle_path / "run_config.yaml", "w") as f:
        yaml.safe_dump(run_config.model_dump(mode="json"), f, default_flow_style=False)

    write_parquet_timeseries(timeseries, str(bundle_path / "timeseries.parquet"))


def validate_bundle(bundle_path: str | Path) -> bool:
    """Validate that a bundle has all required files.

    Args:
        bundle_path: Path to bundle directory

    Returns:
        True if valid

    Raises:
        ValueError: If bundle is invalid
    """
    bundle_path = Path(bundle_path)

    for filename in REQUIRED_FILES:
        if not (bundle_path / filename).exists():
            raise ValueError(f"Missing required file: {filename}")

    return True
