"""Test LP model text generation."""

import re

import pytest

from dess_planner.core.schemas import StaticParameters, TerminalSocValuation, TimeSeries
from dess_planner.core.validate import ValidationError
from dess_planner.model.build import build_model
from dess_planner.model.objective import resolve_terminal_price


def make_series(T, load=500.0, pv=0.0, import_price=10.0, export_price=5.0):
    return TimeSeries(
        load_w=[load] * T,
        pv_w=[pv] * T,
        import_price=[import_price] * T,
        export_price=[export_price] * T,
    )


def section(lp, name, next_name):
    lines = lp.splitlines()
    return lines[lines.index(name) + 1 : lines.index(next_name)]


def objective_line(lp):
    return next(line for line in lp.splitlines() if line.startswith(" obj:"))


def test_sections_in_fixed_order(params):
    """Test that the four section keywords appear once and in order."""
    lp = build_model(make_series(3), params)
    lines = lp.splitlines()

    assert lp
    positions = [lines.index(keyword) for keyword in ("Minimize", "Subject To", "Bounds", "End")]
    assert positions == sorted(positions)
    assert lines[-1] == "End"


@pytest.mark.parametrize("T", [1, 4, 24])
def test_one_constraint_per_slot(params, T):
    """Test load balance, PV split and SoC recurrence counts."""
    constraints = section(build_model(make_series(T), params), "Subject To", "Bounds")

    for prefix in (" c_load_", " c_pv_split_", " c_soc_"):
        assert sum(line.startswith(prefix) for line in constraints) == T


@pytest.mark.parametrize("T", [1, 4, 24])
def test_bound_lines_scale_linearly(params, T):
    """Test 7 flow bounds plus SoC and shortfall bounds per slot."""
    bounds = [line for line in section(build_model(make_series(T), params), "Bounds", "End") if line]

    assert len(bounds) == 9 * T


def test_mismatched_lengths_raise(params):
    """Test that series of different lengths are rejected."""
    series = {
        "load_w": [500.0, 500.0],
        "pv_w": [0.0],
        "import_price": [10.0, 10.0],
        "export_price": [5.0, 5.0],
    }

    with pytest.raises(ValidationError, match="lengths mismatch"):
        build_model(series, params)


def test_non_array_series_raise(params):
    """Test that a scalar in place of a series is rejected."""
    series = {"load_w": 500.0, "pv_w": [0.0], "import_price": [10.0], "export_price": [5.0]}

    with pytest.raises(ValidationError, match="must be arrays"):
        build_model(series, params)


@pytest.mark.parametrize(
    "name,bad,message",
    [
        ("load_w", float("nan"), "Non-finite value in load_w at index 1"),
        ("pv_w", float("inf"), "Non-finite value in pv_w at index 1"),
        ("import_price", float("inf"), "Non-finite value in import_price at index 1"),
        ("export_price", float("-inf"), "Non-finite value in export_price at index 1"),
        ("load_w", -100.0, "Negative value in load_w at index 1"),
        ("pv_w", -1.0, "Negative value in pv_w at index 1"),
    ],
)
def test_bad_series_values_raise(params, name, bad, message):
    """Test that non-finite values and negative load/PV never reach the LP text."""
    series = {
        "load_w": [500.0, 500.0],
        "pv_w": [0.0, 0.0],
        "import_price": [10.0, 10.0],
        "export_price": [5.0, 5.0],
    }
    series[name][1] = bad

    with pytest.raises(ValidationError, match=message):
        build_model(series, params)


def test_non_numeric_values_raise(params):
    """Test that text inside a series is rejected."""
    series = {"load_w": ["lots"], "pv_w": [0.0], "import_price": [10.0], "export_price": [5.0]}

    with pytest.raises(ValidationError, match="load_w must contain numbers"):
        build_model(series, params)


def test_negative_prices_accepted(params):
    """Test that prices may be negative."""
    ts = make_series(1, import_price=-3.0, export_price=-2.0)

    assert build_model(ts, params).endswith("End")


def test_empty_horizon_raises(params):
    """Test that a zero-length horizon is a contract violation."""
    series = {"load_w": [], "pv_w": [], "import_price": [], "export_price": []}

    with pytest.raises(ValidationError, match="empty"):
        build_model(series, params)


def test_mapping_input_accepted(params):
    """Test that a plain mapping builds the same model as a TimeSeries."""
    series = {"load_w": [500.0], "pv_w": [0.0], "import_price": [10.0], "export_price": [5.0]}

    assert build_model(series, params) == build_model(make_series(1), params)


def test_output_is_deterministic(params):
    """Test that repeated builds are byte-identical."""
    ts = make_series(6)

    assert build_model(ts, params) == build_model(ts, params)


def test_no_scientific_notation(params):
    """Test that tiny and large numbers are written in plain decimal form."""
    ts = TimeSeries(
        load_w=[1e7], pv_w=[0.000001], import_price=[1e-7], export_price=[-3e-8]
    )
    lp = build_model(ts, params)

    assert not re.search(r"\d[eE][+-]?\d", lp)


def test_objective_coefficients(params):
    """Test import cost, export revenue, wear and tie-break coefficients.

    15 minute slots: price coefficient = 0.25 / 1000 = 0.00025 per (c/kWh * W).
    """
    obj = objective_line(build_model(make_series(1), params))

    assert " + 0.0025 grid_to_load_0" in obj
    # import + wear (0.5 * 2 c/kWh) + grid charge tie-break
    assert " + 0.002751 grid_to_battery_0" in obj
    # export revenue with the avoid-export tie-break
    assert " - 0.001248 pv_to_grid_0" in obj
    assert " - 0.001 battery_to_grid_0" in obj
    assert " + 0.00025 battery_to_load_0" in obj
    assert " + 0.00025 pv_to_battery_0" in obj
    assert " + 0.05 soc_shortfall_0" in obj


def test_zero_coefficients_omitted():
    """Test that flows with no cost do not appear in the objective."""
    params = StaticParameters(battery_cost_cents_per_kwh=0.0)
    obj = objective_line(build_model(make_series(1), params))

    assert "battery_to_load_0" not in obj
    assert "pv_to_load_0" not in obj


def test_terminal_soc_zero_has_no_bonus(params):
    """Test that the default valuation leaves the final SoC out of the objective."""
    obj = objective_line(build_model(make_series(2), params))

    assert " soc_1" not in obj


def test_terminal_soc_bonus_on_last_slot():
    """Test the terminal bonus uses the reference price and discharge efficiency."""
    params = StaticParameters(terminal_soc_valuation=TerminalSocValuation.MAX)
    ts = TimeSeries(
        load_w=[500.0, 500.0], pv_w=[0.0, 0.0], import_price=[10.0, 30.0], export_price=[5.0, 5.0]
    )
    obj = objective_line(build_model(ts, params))

    # 30 / 1000 * 0.95
    assert obj.endswith(" - 0.0285 soc_1")
    assert " soc_0" not in obj


@pytest.mark.parametrize(
    "mode,expected",
    [
        (TerminalSocValuation.ZERO, 0.0),
        (TerminalSocValuation.MIN, 10.0),
        (TerminalSocValuation.AVG, 20.0),
        (TerminalSocValuation.MAX, 30.0),
        (TerminalSocValuation.CUSTOM, 42.0),
    ],
)
def test_resolve_terminal_price(mode, expected):
    """Test every terminal valuation mode."""
    assert resolve_terminal_price(mode, [10.0, 20.0, 30.0], custom_price=42.0) == pytest.approx(
        expected
    )


def test_soc_recurrence_coefficients(params):
    """Test charge/discharge Wh-per-W factors and the initial SoC tie."""
    constraints = section(build_model(make_series(2), params), "Subject To", "Bounds")
    soc_0 = next(line for line in constraints if line.startswith(" c_soc_0:"))
    soc_1 = next(line for line in constraints if line.startswith(" c_soc_1:"))

    # 0.25 h * 0.95 and 0.25 h / 0.95
    assert " - 0.2375 grid_to_battery_0" in soc_0
    assert " + 0.263157894737 battery_to_load_0" in soc_0
    assert soc_0.endswith(" = 4096")
    assert soc_1.startswith(" c_soc_1: soc_1 - soc_0")
    assert soc_1.endswith(" = 0")


def test_bounds_tightened_by_connected_caps(params):
    """Test that each flow is capped by its own limit and its sink/source."""
    bounds = section(build_model(make_series(1, load=500.0, pv=8000.0), params), "Bounds", "End")

    assert " 0 <= grid_to_load_0 <= 500" in bounds
    assert " 0 <= pv_to_load_0 <= 500" in bounds
    assert " 0 <= grid_to_battery_0 <= 2500" in bounds
    assert " 0 <= pv_to_battery_0 <= 3600" in bounds
    assert " 0 <= pv_to_grid_0 <= 5000" in bounds
    assert " 0 <= battery_to_load_0 <= 500" in bounds
    assert " 0 <= battery_to_grid_0 <= 4000" in bounds
    assert " soc_0 <= 20480" in bounds
    assert " soc_shortfall_0 >= 0" in bounds


def test_soft_min_soc_constraint(params):
    """Test that the minimum SoC is expressed through the shortfall slack."""
    constraints = section(build_model(make_series(1), params), "Subject To", "Bounds")

    assert " c_min_soc_0: soc_shortfall_0 + soc_0 >= 4096" in constraints
