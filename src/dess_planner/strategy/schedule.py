"""Schedule slots for a discrete battery control channel."""

from datetime import timezone

from dess_planner.core.constants import DEFAULT_SCHEDULE_SLOTS
from dess_planner.core.schemas import DessDecision, ScheduleSlot, SolvedFlow, StaticParameters


def build_schedule(
    flows: list[SolvedFlow],
    decisions: list[DessDecision] | tuple[DessDecision, ...],
    params: StaticParameters,
    slot_count: int = DEFAULT_SCHEDULE_SLOTS,
) -> list[ScheduleSlot]:
    """Build the first ``slot_count`` schedule slots.

    Each slot carries exactly what the control channel consumes: start,
    duration, strategy, flags, target SoC (whole percent), restrictions and
    feed-in permission.

    Args:
        flows: Decoded flows (slot timestamps)
        decisions: Mapped decisions, one per flow
        params: Static parameters (slot length, battery capacity)
        slot_count: Number of leading slots to emit

    Returns:
        List of ScheduleSlot, at most ``slot_count`` long
    """
    if len(flows) != len(decisions):
        raise ValueError(f"Got {len(flows)} flows but {len(decisions)} decisions")

    duration_seconds = params.step_minutes * 60
    slots = []
    for flow, decision in list(zip(flows, decisions))[:slot_count]:
        start = flow.timestamp
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)

        soc_percent = decision.soc_target_wh / params.battery_capacity_wh * 100.0
        slots.append(
            ScheduleSlot(
                start_epoch=int(start.timestamp()),
                duration_seconds=duration_seconds,
                strategy=decision.strategy,
                flags=decision.flags,
                soc_target=int(min(max(round(soc_percent), 0), 100)),
                restrictions=decision.restrictions,
                allow_grid_feed_in=decision.feed_in,
            )
        )
    return slots
