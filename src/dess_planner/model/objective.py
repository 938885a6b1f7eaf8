"""Optimization objective function."""

from dess_planner.core.constants import (
    BATTERY_TO_GRID,
    BATTERY_TO_LOAD,
    GRID_TO_BATTERY,
    GRID_TO_LOAD,
    PV_TO_BATTERY,
    PV_TO_GRID,
    SOC,
    SOC_SHORTFALL,
    SOFT_MIN_SOC_PENALTY_CENTS_PER_WH,
    TIE_BREAK_AVOID_EXPORT,
    TIE_BREAK_GRID_CHARGE,
    var_name,
)
from dess_planner.core.schemas import StaticParameters, TerminalSocValuation, TimeSeries
from dess_planner.io.formats import format_lp_number


def resolve_terminal_price(
    mode: TerminalSocValuation, import_price: list[float], custom_price: float = 0.0
) -> float:
    """Resolve the terminal SoC valuation mode into one reference price (c/kWh)."""
    if mode is TerminalSocValuation.ZERO or not import_price:
        return 0.0
    if mode is TerminalSocValuation.MIN:
        return min(import_price)
    if mode is TerminalSocValuation.AVG:
        return sum(import_price) / len(import_price)
    if mode is TerminalSocValuation.MAX:
        return max(import_price)
    if mode is TerminalSocValuation.CUSTOM:
        return float(custom_price)
    raise ValueError(f"Unknown terminal SoC valuation: {mode}")


def _term(coeff: float, name: str) -> str:
    if coeff < 0:
        return f" - {format_lp_number(-coeff)} {name}"
    return f" + {format_lp_number(coeff)} {name}"


def objective_lines(ts: TimeSeries, params: StaticParameters) -> list[str]:
    """Build the ``Minimize`` section.

    Objective = import cost - export revenue + battery wear
                + tie-breaks + soft min-SoC penalty - terminal SoC value

    Args:
        ts: Input time series
        params: Static parameters

    Returns:
        LP text lines of the objective section
    """
    T = len(ts)
    price_coeff = params.step_hours / 1000.0  # c/kWh * W over one slot -> cents
    # Half of the wear cost on each side so a full cycle pays it once
    wear = 0.5 * params.battery_cost_cents_per_kwh * price_coeff

    terms = [" obj:"]
    for t in range(T):
        import_coeff = ts.import_price[t] * price_coeff
        export_coeff = ts.export_price[t] * price_coeff

        coeffs = [
            (GRID_TO_LOAD, import_coeff),
            (GRID_TO_BATTERY, import_coeff + wear + TIE_BREAK_GRID_CHARGE),
            (PV_TO_GRID, -export_coeff + TIE_BREAK_AVOID_EXPORT),
            (BATTERY_TO_GRID, -export_coeff + wear),
            (BATTERY_TO_LOAD, wear),
            (PV_TO_BATTERY, wear),
        ]
        for kind, coeff in coeffs:
            if coeff != 0:
                terms.append(_term(coeff, var_name(kind, t)))
        terms.append(_term(SOFT_MIN_SOC_PENALTY_CENTS_PER_WH, var_name(SOC_SHORTFALL, t)))

    if T > 0 and params.terminal_soc_valuation is not TerminalSocValuation.ZERO:
        reference_price = resolve_terminal_price(
            params.terminal_soc_valuation,
            ts.import_price,
            params.terminal_soc_custom_price_cents_per_kwh,
        )
        # Stored Wh valued as if discharged at the reference price
        terminal_coeff = reference_price / 1000.0 * (params.discharge_efficiency_percent / 100.0)
        if terminal_coeff != 0:
            terms.append(_term(-terminal_coeff, var_name(SOC, T - 1)))

    return ["Minimize", "".join(terms), ""]
