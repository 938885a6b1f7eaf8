"""Plan runner: one optimization and strategy mapping per invocation.

Pipeline: build LP -> solve -> decode flows -> map to discrete strategies
-> summarize. A non-optimal solver status is carried in the result, never
raised; the caller decides whether to act on the plan.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

from dess_planner.core.schemas import (
    PlanSummary,
    SolvedFlow,
    SolverResult,
    StaticParameters,
    Timeline,
    TimeSeries,
)
from dess_planner.core.summary import build_plan_summary
from dess_planner.core.validate import (
    ValidationError,
    timeseries_from_frame,
    validate_solved_flows,
    validate_time_series,
    validate_timeseries_frame,
)
from dess_planner.io.bundle import load_bundle, write_results
from dess_planner.model.build import build_model
from dess_planner.model.decode import decode_solution
from dess_planner.model.solve import HighsSolver, Solver
from dess_planner.strategy.mapper import StrategyPlan, map_to_strategy
from dess_planner.strategy.schedule import build_schedule


@dataclass(frozen=True)
class PlanResult:
    """Everything one planning run produced."""

    lp_text: str
    solver_result: SolverResult
    flows: tuple[SolvedFlow, ...]
    strategy: StrategyPlan
    summary: PlanSummary

    @property
    def status(self) -> str:
        return self.solver_result.status


def compute_plan(
    time_series: TimeSeries | Mapping,
    params: StaticParameters,
    timeline: Optional[Timeline],
    solver: Optional[Solver] = None,
) -> PlanResult:
    """Run the full planning pipeline.

    Args:
        time_series: Load, PV and price series
        params: Static battery and grid parameters
        timeline: Slot timestamps, or start plus slot length
        solver: Solver to use (HiGHS by default)

    Returns:
        PlanResult

    Raises:
        ValidationError: On configuration contract violations
        SolverError: If the solver engine fails
    """
    ts = validate_time_series(time_series)
    if timeline is None:
        raise ValidationError("Missing timing information: need timestamps or start + step_minutes")

    solver = solver or HighsSolver()

    lp_text = build_model(ts, params)
    solver_result = solver(lp_text)
    flows = decode_solution(solver_result, ts, params, timeline)
    strategy = map_to_strategy(flows, params)
    summary = build_plan_summary(flows, params, strategy.diagnostics)

    return PlanResult(
        lp_text=lp_text,
        solver_result=solver_result,
        flows=tuple(flows),
        strategy=strategy,
        summary=summary,
    )


def run_plan(bundle_path: str) -> PlanResult:
    """Run planning on a bundle and write the results back into it.

    Args:
        bundle_path: Path to run bundle

    Returns:
        PlanResult
    """
    print(f"Loading bundle from {bundle_path}...")
    params, run_config, timeseries = load_bundle(bundle_path)

    validate_timeseries_frame(timeseries, params.step_minutes)
    ts, timestamps = timeseries_from_frame(timeseries)

    timeline = Timeline(timestamps=timestamps)

    print(f"Run: {run_config.run_id}")
    print(f"Horizon: {len(ts)} slots of {params.step_minutes} min from {timestamps[0]}")

    print("Building and solving optimization model...")
    result = compute_plan(
        ts,
        params,
        timeline,
        solver=HighsSolver(time_limit_seconds=run_config.solver_time_limit_seconds),
    )

    solver_result = result.solver_result
    print(f"Solver status: {solver_result.status}")
    if solver_result.objective_value is not None:
        print(f"Objective value: {solver_result.objective_value:.2f} c")

    if solver_result.is_optimal:
        validate_solved_flows(list(result.flows), params)
        print("✓ Flow validation passed")
    else:
        print(f"! Plan is not optimal ({solver_result.status}); review before acting on it")

    schedule = build_schedule(
        list(result.flows),
        result.strategy.decisions,
        params,
        slot_count=run_config.schedule_slots,
    )

    summary = result.summary
    print(f"\nImport energy: {summary.import_energy_kwh:.2f} kWh")
    if summary.avg_import_price is not None:
        print(f"Average import price: {summary.avg_import_price:.2f} c/kWh")
    if summary.grid_battery_tipping_point is not None:
        print(f"Grid/battery tipping point: {summary.grid_battery_tipping_point:.2f} c/kWh")

    print(f"\nWriting results to {bundle_path}...")
    write_results(
        bundle_path,
        result.lp_text,
        solver_result,
        list(result.flows),
        result.strategy.decisions,
        schedule,
        summary,
    )

    return result
