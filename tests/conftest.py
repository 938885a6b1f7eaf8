"""Shared fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from dess_planner.core.schemas import SolvedFlow, StaticParameters

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def params():
    """Default 20.48 kWh battery, 15 minute slots."""
    return StaticParameters()


@pytest.fixture
def make_flow(params):
    """Factory for decoded flows; unspecified flows are zero."""

    def _make_flow(
        index=0,
        soc_wh=10000.0,
        load_w=0.0,
        pv_w=0.0,
        import_price=10.0,
        export_price=5.0,
        grid_to_load=0.0,
        grid_to_battery=0.0,
        pv_to_load=0.0,
        pv_to_battery=0.0,
        pv_to_grid=0.0,
        battery_to_load=0.0,
        battery_to_grid=0.0,
    ):
        return SolvedFlow(
            index=index,
            timestamp=START + index * timedelta(minutes=params.step_minutes),
            load_w=load_w,
            pv_w=pv_w,
            import_price=import_price,
            export_price=export_price,
            grid_to_load=grid_to_load,
            grid_to_battery=grid_to_battery,
            pv_to_load=pv_to_load,
            pv_to_battery=pv_to_battery,
            pv_to_grid=pv_to_grid,
            battery_to_load=battery_to_load,
            battery_to_grid=battery_to_grid,
            grid_import=grid_to_load + grid_to_battery,
            grid_export=pv_to_grid + battery_to_grid,
            soc_wh=soc_wh,
            soc_percent=soc_wh / params.battery_capacity_wh * 100.0,
        )

    return _make_flow
