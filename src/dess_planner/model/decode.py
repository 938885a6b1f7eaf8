"""Decode solver columns into per-slot physical flows."""

import logging
import re
from collections.abc import Iterator, Mapping
from numbers import Real
from typing import Any, Optional, Protocol

from dess_planner.core.constants import (
    BATTERY_TO_GRID,
    BATTERY_TO_LOAD,
    DECODE_DECIMALS,
    FLOW_KINDS,
    GRID_TO_BATTERY,
    GRID_TO_LOAD,
    LEGACY_FLOW_ALIASES,
    PV_TO_BATTERY,
    PV_TO_GRID,
    PV_TO_LOAD,
    SNAP_TO_ZERO,
    SOC,
)
from dess_planner.core.schemas import (
    SolvedFlow,
    SolverResult,
    StaticParameters,
    Timeline,
    TimeSeries,
)
from dess_planner.core.validate import resolve_timestamps, validate_time_series

logger = logging.getLogger(__name__)

# Field names under which solver engines report a column's primal value
VALUE_KEYS = ("Value", "Primal", "PrimalValue", "value", "primal")

_SLOT_SUFFIX = re.compile(r"_(\d+)$")


class ColumnReader(Protocol):
    """Reads ``(name, column)`` pairs from one shape of solver output."""

    def matches(self, columns: Any) -> bool:
        ...

    def entries(self, columns: Any) -> Iterator[tuple[str, Any]]:
        ...


class MappingColumnReader:
    """Columns keyed by variable name: ``{"soc_0": {...}, ...}``."""

    def matches(self, columns: Any) -> bool:
        return isinstance(columns, Mapping)

    def entries(self, columns: Mapping) -> Iterator[tuple[str, Any]]:
        for name, column in columns.items():
            yield str(name), column


class ListColumnReader:
    """Columns as a list of ``{"Name": ..., ...}`` records or ``(name, value)`` pairs."""

    def matches(self, columns: Any) -> bool:
        return isinstance(columns, (list, tuple))

    def entries(self, columns: list) -> Iterator[tuple[str, Any]]:
        for column in columns:
            if isinstance(column, Mapping):
                name = column.get("Name", column.get("name"))
                if name is not None:
                    yield str(name), column
            elif isinstance(column, (list, tuple)) and len(column) == 2:
                yield str(column[0]), column[1]


COLUMN_READERS: tuple[ColumnReader, ...] = (MappingColumnReader(), ListColumnReader())


def select_column_reader(columns: Any) -> Optional[ColumnReader]:
    """Pick the reader whose shape matches the solver output."""
    for reader in COLUMN_READERS:
        if reader.matches(columns):
            return reader
    return None


def column_value(column: Any) -> float:
    """Extract the primal value from a column, whatever key it sits under."""
    if column is None or isinstance(column, bool):
        return 0.0
    if isinstance(column, Real):
        return float(column)
    if isinstance(column, Mapping):
        for key in VALUE_KEYS:
            value = column.get(key)
            if isinstance(value, Real) and not isinstance(value, bool):
                return float(value)
        return 0.0
    try:
        return float(column)
    except (TypeError, ValueError):
        return 0.0


def parse_slot_index(name: str) -> Optional[int]:
    """Return the trailing slot index of a variable name, if any."""
    match = _SLOT_SUFFIX.search(name)
    return int(match.group(1)) if match else None


def snap(x: float) -> float:
    """Snap solver noise to zero and round to three decimals."""
    if abs(x) < SNAP_TO_ZERO:
        return 0.0
    return round(x, DECODE_DECIMALS) or 0.0


def _columns_of(result: SolverResult | Mapping) -> Any:
    if isinstance(result, SolverResult):
        return result.columns
    if isinstance(result, Mapping):
        return result.get("Columns", result.get("columns"))
    return None


def decode_solution(
    result: SolverResult | Mapping,
    time_series: TimeSeries | Mapping,
    params: StaticParameters,
    timeline: Optional[Timeline],
) -> list[SolvedFlow]:
    """Reconstruct per-slot flows from the solver's named columns.

    Variables are matched by their ``<kind>_<slot>`` name. Older names
    (grid_import, grid_export, bat_charge, bat_discharge) are added onto the
    flow they stand for. Unknown names and out-of-range slots are skipped.

    Args:
        result: SolverResult or raw solver output mapping with ``Columns``
        time_series: Series the model was built from
        params: Static parameters (battery capacity for SoC percent)
        timeline: Explicit timestamps, or start plus slot length

    Returns:
        One SolvedFlow per slot

    Raises:
        ValidationError: If the series are malformed or timing is missing
    """
    ts = validate_time_series(time_series)
    T = len(ts)
    timestamps = resolve_timestamps(timeline, T)

    buckets: dict[str, list[float]] = {kind: [0.0] * T for kind in [*FLOW_KINDS, SOC]}

    columns = _columns_of(result)
    reader = select_column_reader(columns)
    if reader is None:
        logger.debug("Unrecognized solver column shape: %s", type(columns).__name__)
        entries: Iterator[tuple[str, Any]] = iter(())
    else:
        entries = reader.entries(columns)

    for name, column in entries:
        t = parse_slot_index(name)
        if t is None or t >= T:
            logger.debug("Skipping solver column %s", name)
            continue

        kind = name[: name.rindex("_")]
        kind = LEGACY_FLOW_ALIASES.get(kind, kind)
        if kind not in buckets:
            continue
        buckets[kind][t] += column_value(column)

    capacity = max(SNAP_TO_ZERO, float(params.battery_capacity_wh))

    flows = []
    for t in range(T):
        g2l = buckets[GRID_TO_LOAD][t]
        g2b = buckets[GRID_TO_BATTERY][t]
        pv2g = buckets[PV_TO_GRID][t]
        b2g = buckets[BATTERY_TO_GRID][t]
        soc = buckets[SOC][t]

        flows.append(
            SolvedFlow(
                index=t,
                timestamp=timestamps[t],
                load_w=snap(ts.load_w[t]),
                pv_w=snap(ts.pv_w[t]),
                import_price=ts.import_price[t],
                export_price=ts.export_price[t],
                grid_to_load=snap(g2l),
                grid_to_battery=snap(g2b),
                pv_to_load=snap(buckets[PV_TO_LOAD][t]),
                pv_to_battery=snap(buckets[PV_TO_BATTERY][t]),
                pv_to_grid=snap(pv2g),
                battery_to_load=snap(buckets[BATTERY_TO_LOAD][t]),
                battery_to_grid=snap(b2g),
                grid_import=snap(g2l + g2b),
                grid_export=snap(pv2g + b2g),
                soc_wh=snap(soc),
                soc_percent=snap(soc / capacity * 100.0),
            )
        )

    return flows
