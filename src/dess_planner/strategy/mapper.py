"""Map continuous LP flows onto discrete inverter directives.

The inverter only understands a strategy, a grid/battery restriction, a
feed-in flag and a target SoC per slot. Where the flows leave the strategy
open (no deficit handling in the plan, PV charging the battery), the
import price is compared against the segment's grid-usage tipping point.
"""

import logging
from dataclasses import dataclass

from dess_planner.core.constants import FLOW_EPSILON_W, GRID_CAP_SOC_BOOST_PERCENT
from dess_planner.core.schemas import (
    DessDecision,
    DessDiagnostics,
    FeedIn,
    Restrictions,
    SolvedFlow,
    StaticParameters,
    Strategy,
)
from dess_planner.strategy.segments import (
    Segment,
    SegmentPrices,
    build_segments,
    scan_segment,
    segment_lookup,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StrategyPlan:
    """Per-slot decisions plus diagnostics for presentation."""

    decisions: tuple[DessDecision, ...]
    diagnostics: DessDiagnostics
    segments: tuple[Segment, ...]


def _active(value: float) -> bool:
    return abs(value) > FLOW_EPSILON_W


def feed_in_for(flow: SolvedFlow) -> FeedIn:
    """Feed-in is blocked exactly when the export price is negative."""
    return FeedIn.BLOCKED if flow.export_price < 0 else FeedIn.ALLOWED


def restrictions_for(grid_to_battery: bool, battery_to_grid: bool) -> Restrictions:
    """Allow only the grid/battery directions the plan actually uses."""
    if grid_to_battery and battery_to_grid:
        return Restrictions.NONE
    if grid_to_battery:
        return Restrictions.BATTERY_TO_GRID
    if battery_to_grid:
        return Restrictions.GRID_TO_BATTERY
    return Restrictions.BOTH


def _by_price(flow: SolvedFlow, prices: SegmentPrices) -> Strategy:
    # Grid is at least as cheap as when the plan chose it: keep the battery
    tipping_point = prices.grid_usage
    if tipping_point is not None and flow.import_price <= tipping_point:
        return Strategy.PRO_BATTERY
    return Strategy.SELF_CONSUMPTION


def classify_slot(flow: SolvedFlow, prices: SegmentPrices) -> Strategy:
    """Pick the strategy for one slot.

    Args:
        flow: Decoded flows of the slot
        prices: Tipping points of the slot's segment

    Returns:
        Strategy; TARGET_SOC when the flows give no indication
    """
    if _active(flow.grid_to_battery):
        # Cheap grid: store it
        return Strategy.PRO_BATTERY
    if _active(flow.battery_to_grid):
        # Expensive export: sell from the battery
        return Strategy.PRO_GRID

    pv_flow = abs(flow.pv_to_load) + abs(flow.pv_to_battery) + abs(flow.pv_to_grid)
    no_pv_flow = pv_flow <= FLOW_EPSILON_W
    load_exceeds_pv = flow.load_w > flow.pv_w + FLOW_EPSILON_W
    pv_covers_load = flow.pv_w >= flow.load_w - FLOW_EPSILON_W

    if no_pv_flow or load_exceeds_pv:
        # Deficit: unexpected load is handled the way the planned deficit was
        from_battery = _active(flow.battery_to_load)
        from_grid = _active(flow.grid_to_load)
        if from_battery and not from_grid:
            return Strategy.SELF_CONSUMPTION
        if from_grid and not from_battery:
            return Strategy.PRO_BATTERY
        if from_grid and from_battery:
            # e.g. load above the grid import limit
            return Strategy.PRO_BATTERY
        return _by_price(flow, prices)

    if pv_covers_load:
        if _active(flow.pv_to_battery):
            return _by_price(flow, prices)
        if _active(flow.pv_to_grid):
            return Strategy.PRO_GRID

    return Strategy.TARGET_SOC


def soc_target_for(flow: SolvedFlow, params: StaticParameters) -> float:
    """Target SoC (Wh) attached to a slot.

    Normally the solved end-of-slot SoC. When the grid charges the battery
    at the import limit, the target is raised so the inverter keeps charging
    at full speed even if the load turns out lower than forecast.
    """
    if (
        _active(flow.grid_to_battery)
        and flow.grid_to_load + flow.grid_to_battery >= params.max_grid_import_w - FLOW_EPSILON_W
    ):
        target_percent = min(
            flow.soc_percent + GRID_CAP_SOC_BOOST_PERCENT, params.max_soc_percent - 1
        )
        return target_percent / 100.0 * params.battery_capacity_wh
    return flow.soc_wh


def map_to_strategy(flows: list[SolvedFlow], params: StaticParameters) -> StrategyPlan:
    """Classify every slot into discrete inverter directives.

    Args:
        flows: Decoded flows in slot order
        params: Static parameters of the run

    Returns:
        StrategyPlan with one DessDecision per slot and first-segment diagnostics
    """
    segments = build_segments(flows, params)
    prices_by_segment = {segment: scan_segment(flows, segment, params) for segment in segments}
    lookup = segment_lookup(segments)

    decisions = []
    for t, flow in enumerate(flows):
        prices = prices_by_segment[lookup[t]]
        decisions.append(
            DessDecision(
                strategy=classify_slot(flow, prices),
                restrictions=restrictions_for(
                    _active(flow.grid_to_battery), _active(flow.battery_to_grid)
                ),
                feed_in=feed_in_for(flow),
                flags=0,
                soc_target_wh=soc_target_for(flow, params),
            )
        )

    if segments:
        first = prices_by_segment[segments[0]]
        diagnostics = DessDiagnostics(
            grid_battery_tipping_point=first.grid_usage,
            grid_charge_tipping_point=first.grid_charge,
            battery_export_tipping_point=first.battery_export,
        )
    else:
        diagnostics = DessDiagnostics()

    logger.debug("Mapped %d slots over %d segments", len(decisions), len(segments))

    return StrategyPlan(
        decisions=tuple(decisions),
        diagnostics=diagnostics,
        segments=tuple(segments),
    )
