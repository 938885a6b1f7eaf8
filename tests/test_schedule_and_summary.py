"""Test control-channel schedule and plan summary."""

from datetime import datetime

import pytest

from dess_planner.core.schemas import (
    DessDecision,
    DessDiagnostics,
    FeedIn,
    Restrictions,
    Strategy,
)
from dess_planner.core.summary import build_plan_summary
from dess_planner.strategy.mapper import map_to_strategy
from dess_planner.strategy.schedule import build_schedule


def test_schedule_first_slots(make_flow, params):
    """Test the schedule carries the leading slots with control fields."""
    flows = [make_flow(index=t, soc_wh=10240.0) for t in range(6)]
    decisions = map_to_strategy(flows, params).decisions

    schedule = build_schedule(flows, decisions, params)

    assert len(schedule) == 4
    assert schedule[0].start_epoch == int(flows[0].timestamp.timestamp())
    assert schedule[1].start_epoch - schedule[0].start_epoch == 900
    assert all(slot.duration_seconds == 900 for slot in schedule)
    assert all(slot.soc_target == 50 for slot in schedule)


def test_schedule_short_horizon(make_flow, params):
    """Test fewer flows than requested slots."""
    flows = [make_flow(index=0)]
    decisions = map_to_strategy(flows, params).decisions

    assert len(build_schedule(flows, decisions, params, slot_count=4)) == 1


def test_schedule_copies_decision(make_flow, params):
    """Test strategy, restriction and feed-in pass through unchanged."""
    flow = make_flow(index=0)
    decision = DessDecision(
        strategy=Strategy.PRO_GRID,
        restrictions=Restrictions.GRID_TO_BATTERY,
        feed_in=FeedIn.BLOCKED,
        soc_target_wh=20480.0 * 0.334,
    )

    slot = build_schedule([flow], [decision], params)[0]

    assert slot.strategy == Strategy.PRO_GRID
    assert slot.restrictions == Restrictions.GRID_TO_BATTERY
    assert slot.allow_grid_feed_in == FeedIn.BLOCKED
    assert slot.soc_target == 33


def test_schedule_naive_timestamp_is_utc(make_flow, params):
    """Test that naive timestamps are read as UTC."""
    flow = make_flow(index=0).model_copy(update={"timestamp": datetime(2024, 1, 1)})
    decisions = map_to_strategy([flow], params).decisions

    assert build_schedule([flow], decisions, params)[0].start_epoch == 1704067200


def test_schedule_length_mismatch_raises(make_flow, params):
    """Test that flows and decisions must pair up."""
    with pytest.raises(ValueError):
        build_schedule([make_flow(index=0), make_flow(index=1)], [], params)


def test_summary_totals(make_flow, params):
    """Test energies over 15 minute slots."""
    flows = [
        make_flow(index=0, load_w=1000.0, grid_to_load=1000.0, import_price=10.0),
        make_flow(
            index=1,
            load_w=1000.0,
            pv_w=4000.0,
            pv_to_load=1000.0,
            pv_to_battery=3000.0,
        ),
        make_flow(
            index=2,
            load_w=2000.0,
            grid_to_load=1000.0,
            battery_to_load=1000.0,
            grid_to_battery=1000.0,
            import_price=30.0,
        ),
    ]
    summary = build_plan_summary(flows, params)

    assert summary.load_total_kwh == pytest.approx(1.0)
    assert summary.pv_total_kwh == pytest.approx(1.0)
    assert summary.load_from_grid_kwh == pytest.approx(0.5)
    assert summary.load_from_battery_kwh == pytest.approx(0.25)
    assert summary.load_from_pv_kwh == pytest.approx(0.25)
    assert summary.grid_to_battery_kwh == pytest.approx(0.25)
    assert summary.import_energy_kwh == pytest.approx(0.75)
    # 0.25 kWh at 10 c, 0.5 kWh at 30 c
    assert summary.avg_import_price == pytest.approx(70.0 / 3.0)


def test_summary_without_import(make_flow, params):
    """Test that the average import price is unset when nothing is imported."""
    summary = build_plan_summary([make_flow(index=0, load_w=500.0, battery_to_load=500.0)], params)

    assert summary.import_energy_kwh == 0.0
    assert summary.avg_import_price is None


def test_summary_echoes_diagnostics(params):
    """Test tipping points are carried through, also for an empty plan."""
    diagnostics = DessDiagnostics(grid_battery_tipping_point=25.0)
    summary = build_plan_summary([], params, diagnostics)

    assert summary.grid_battery_tipping_point == 25.0
    assert summary.load_total_kwh == 0.0
