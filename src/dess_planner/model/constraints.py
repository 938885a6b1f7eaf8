"""Optimization model constraints and variable bounds."""

from dess_planner.core.constants import (
    BATTERY_TO_GRID,
    BATTERY_TO_LOAD,
    GRID_TO_BATTERY,
    GRID_TO_LOAD,
    PV_TO_BATTERY,
    PV_TO_GRID,
    PV_TO_LOAD,
    SOC,
    SOC_SHORTFALL,
    var_name,
)
from dess_planner.core.schemas import StaticParameters, TimeSeries
from dess_planner.io.formats import format_lp_number as num


def add_load_balance(lines: list[str], ts: TimeSeries) -> None:
    """Add load balance constraints.

    grid_to_load + pv_to_load + battery_to_load = load_w
    """
    for t in range(len(ts)):
        lines.append(
            f" c_load_{t}: {var_name(GRID_TO_LOAD, t)} + {var_name(PV_TO_LOAD, t)}"
            f" + {var_name(BATTERY_TO_LOAD, t)} = {num(ts.load_w[t])}"
        )


def add_pv_split(lines: list[str], ts: TimeSeries) -> None:
    """Add PV allocation constraints (no curtailment).

    pv_to_load + pv_to_battery + pv_to_grid = pv_w
    """
    for t in range(len(ts)):
        lines.append(
            f" c_pv_split_{t}: {var_name(PV_TO_LOAD, t)} + {var_name(PV_TO_BATTERY, t)}"
            f" + {var_name(PV_TO_GRID, t)} = {num(ts.pv_w[t])}"
        )


def add_soc_dynamics(lines: list[str], ts: TimeSeries, params: StaticParameters) -> None:
    """Add SoC recurrence constraints.

    soc[t] = soc[t-1] + charge_wh_per_w * (grid_to_battery + pv_to_battery)
                      - discharge_wh_per_w * (battery_to_load + battery_to_grid)

    with soc[-1] = initial SoC.

    Args:
        lines: LP lines to append to
        ts: Input time series
        params: Static parameters
    """
    charge_wh_per_w = num(params.step_hours * (params.charge_efficiency_percent / 100.0))
    discharge_wh_per_w = num(params.step_hours / (params.discharge_efficiency_percent / 100.0))

    for t in range(len(ts)):
        flows = (
            f" - {charge_wh_per_w} {var_name(GRID_TO_BATTERY, t)}"
            f" - {charge_wh_per_w} {var_name(PV_TO_BATTERY, t)}"
            f" + {discharge_wh_per_w} {var_name(BATTERY_TO_LOAD, t)}"
            f" + {discharge_wh_per_w} {var_name(BATTERY_TO_GRID, t)}"
        )
        if t == 0:
            lines.append(f" c_soc_{t}: {var_name(SOC, t)}{flows} = {num(params.initial_soc_wh)}")
        else:
            lines.append(f" c_soc_{t}: {var_name(SOC, t)} - {var_name(SOC, t - 1)}{flows} = 0")


def add_power_limits(lines: list[str], ts: TimeSeries, params: StaticParameters) -> None:
    """Add battery power, grid limits and the soft minimum SoC."""
    min_soc_wh = num(params.min_soc_wh)

    for t in range(len(ts)):
        lines.append(
            f" c_charge_cap_{t}: {var_name(GRID_TO_BATTERY, t)} + {var_name(PV_TO_BATTERY, t)}"
            f" <= {num(params.max_charge_power_w)}"
        )
        lines.append(
            f" c_discharge_cap_{t}: {var_name(BATTERY_TO_LOAD, t)} + {var_name(BATTERY_TO_GRID, t)}"
            f" <= {num(params.max_discharge_power_w)}"
        )
        lines.append(
            f" c_grid_import_cap_{t}: {var_name(GRID_TO_LOAD, t)} + {var_name(GRID_TO_BATTERY, t)}"
            f" <= {num(params.max_grid_import_w)}"
        )
        lines.append(
            f" c_grid_export_cap_{t}: {var_name(PV_TO_GRID, t)} + {var_name(BATTERY_TO_GRID, t)}"
            f" <= {num(params.max_grid_export_w)}"
        )
        # soft minimum: shortfall absorbs any SoC below min_soc
        lines.append(
            f" c_min_soc_{t}: {var_name(SOC_SHORTFALL, t)} + {var_name(SOC, t)} >= {min_soc_wh}"
        )


def bound_lines(ts: TimeSeries, params: StaticParameters) -> list[str]:
    """Build the ``Bounds`` section.

    Each flow is capped by its own limit and by the sink/source it connects,
    which keeps the LP tight.
    """
    lines = ["Bounds"]
    for t in range(len(ts)):
        load = float(ts.load_w[t])
        pv = float(ts.pv_w[t])

        caps = [
            (GRID_TO_LOAD, min(params.max_grid_import_w, load)),
            (GRID_TO_BATTERY, min(params.max_grid_import_w, params.max_charge_power_w)),
            (PV_TO_LOAD, load),
            (PV_TO_BATTERY, min(pv, params.max_charge_power_w)),
            (PV_TO_GRID, min(pv, params.max_grid_export_w)),
            (BATTERY_TO_LOAD, min(params.max_discharge_power_w, load)),
            (BATTERY_TO_GRID, min(params.max_discharge_power_w, params.max_grid_export_w)),
        ]
        for kind, cap in caps:
            lines.append(f" 0 <= {var_name(kind, t)} <= {num(cap)}")

        # Minimum SoC is soft, see c_min_soc
        lines.append(f" {var_name(SOC, t)} <= {num(params.max_soc_wh)}")
        lines.append(f" {var_name(SOC_SHORTFALL, t)} >= 0")
    lines.append("")
    return lines


def constraint_lines(ts: TimeSeries, params: StaticParameters) -> list[str]:
    """Build the ``Subject To`` section."""
    lines = ["Subject To"]
    add_load_balance(lines, ts)
    add_pv_split(lines, ts)
    add_soc_dynamics(lines, ts, params)
    add_power_limits(lines, ts, params)
    lines.append("")
    return lines
