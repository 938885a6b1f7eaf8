"""SoC segments and the tipping-point prices observed inside them.

A segment is a run of slots that ends where SoC touches its min or max
limit (the touching slot is the segment's last member). Price heuristics
are scoped to one segment so that a price regime after the battery
saturates does not leak into the slots before it.
"""

from dataclasses import dataclass, replace
from functools import reduce
from typing import NamedTuple, Optional

from dess_planner.core.constants import FLOW_EPSILON_W, SOC_BOUNDARY_EPSILON_WH
from dess_planner.core.schemas import SolvedFlow, StaticParameters


class Segment(NamedTuple):
    """Inclusive slot range ``[start, end]``."""

    start: int
    end: int

    def indices(self) -> range:
        return range(self.start, self.end + 1)


@dataclass(frozen=True)
class SegmentPrices:
    """Tipping-point prices of one segment; None when no such flow occurred.

    grid_usage: highest import price while the grid fed the load and the
        battery was below its discharge ceiling
    grid_charge: highest import price while the grid charged the battery
    battery_export: lowest export price while the battery fed the grid
    """

    grid_usage: Optional[float] = None
    grid_charge: Optional[float] = None
    battery_export: Optional[float] = None


def is_at_soc_boundary(flow: SolvedFlow, params: StaticParameters) -> bool:
    """True when the slot's SoC is within epsilon of min or max SoC."""
    at_min = flow.soc_wh <= params.min_soc_wh + SOC_BOUNDARY_EPSILON_WH
    at_max = flow.soc_wh >= params.max_soc_wh - SOC_BOUNDARY_EPSILON_WH
    return at_min or at_max


def build_segments(flows: list[SolvedFlow], params: StaticParameters) -> list[Segment]:
    """Partition the horizon into segments.

    Args:
        flows: Decoded flows in slot order
        params: Static parameters (SoC limits)

    Returns:
        Segments covering ``[0, len(flows))`` without gaps or overlaps
    """
    segments = []
    start = 0
    for t, flow in enumerate(flows):
        if is_at_soc_boundary(flow, params):
            segments.append(Segment(start, t))
            start = t + 1
    if start < len(flows):
        segments.append(Segment(start, len(flows) - 1))
    return segments


def segment_lookup(segments: list[Segment]) -> dict[int, Segment]:
    """Map every slot index to its segment."""
    return {t: segment for segment in segments for t in segment.indices()}


def _higher(current: Optional[float], price: float) -> float:
    return price if current is None else max(current, price)


def _lower(current: Optional[float], price: float) -> float:
    return price if current is None else min(current, price)


def _fold_slot(prices: SegmentPrices, flow: SolvedFlow, params: StaticParameters) -> SegmentPrices:
    discharge_ceiling = params.max_discharge_power_w - FLOW_EPSILON_W

    if abs(flow.grid_to_load) > FLOW_EPSILON_W and abs(flow.battery_to_load) < discharge_ceiling:
        prices = replace(prices, grid_usage=_higher(prices.grid_usage, flow.import_price))

    if abs(flow.grid_to_battery) > FLOW_EPSILON_W:
        prices = replace(prices, grid_charge=_higher(prices.grid_charge, flow.import_price))

    if abs(flow.battery_to_grid) > FLOW_EPSILON_W:
        prices = replace(prices, battery_export=_lower(prices.battery_export, flow.export_price))

    return prices


def scan_segment(
    flows: list[SolvedFlow], segment: Segment, params: StaticParameters
) -> SegmentPrices:
    """Fold one segment's slots into its tipping-point prices."""
    return reduce(
        lambda prices, t: _fold_slot(prices, flows[t], params),
        segment.indices(),
        SegmentPrices(),
    )
