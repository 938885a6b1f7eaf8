"""Plan summary for presentation layers."""

import pandas as pd

from dess_planner.core.schemas import DessDiagnostics, PlanSummary, SolvedFlow, StaticParameters
from dess_planner.io.formats import flows_to_frame


def build_plan_summary(
    flows: list[SolvedFlow],
    params: StaticParameters,
    diagnostics: DessDiagnostics | None = None,
) -> PlanSummary:
    """Compute horizon totals for a decoded plan.

    Args:
        flows: Decoded flows
        params: Static parameters (slot length)
        diagnostics: Mapper diagnostics to echo

    Returns:
        PlanSummary with energies in kWh and the energy-weighted average
        import price (None when nothing is imported)
    """
    diagnostics = diagnostics or DessDiagnostics()
    tipping_points = {
        "grid_battery_tipping_point": diagnostics.grid_battery_tipping_point,
        "grid_charge_tipping_point": diagnostics.grid_charge_tipping_point,
        "battery_export_tipping_point": diagnostics.battery_export_tipping_point,
    }

    if not flows:
        return PlanSummary(**tipping_points)

    df = flows_to_frame(flows)
    w_to_kwh = params.step_hours / 1000.0

    def total_kwh(col: str) -> float:
        return float((df[col] * w_to_kwh).sum())

    import_kwh: pd.Series = df["grid_import"] * w_to_kwh
    import_energy = float(import_kwh.sum())
    avg_import_price = None
    if import_energy > 0:
        avg_import_price = float((import_kwh * df["import_price"]).sum() / import_energy)

    return PlanSummary(
        load_total_kwh=total_kwh("load_w"),
        pv_total_kwh=total_kwh("pv_w"),
        load_from_grid_kwh=total_kwh("grid_to_load"),
        load_from_battery_kwh=total_kwh("battery_to_load"),
        load_from_pv_kwh=total_kwh("pv_to_load"),
        grid_to_battery_kwh=total_kwh("grid_to_battery"),
        battery_to_grid_kwh=total_kwh("battery_to_grid"),
        import_energy_kwh=import_energy,
        avg_import_price=avg_import_price,
        **tipping_points,
    )
