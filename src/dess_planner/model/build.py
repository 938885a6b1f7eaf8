"""Build the dispatch LP as plain-text model."""

import logging
from collections.abc import Mapping

from dess_planner.core.schemas import StaticParameters, TimeSeries
from dess_planner.core.validate import validate_time_series

logger = logging.getLogger(__name__)


def build_model(time_series: TimeSeries | Mapping, params: StaticParameters) -> str:
    """Build the optimization model for PV/battery/grid dispatch.

    The model is emitted in LP format with four sections in fixed order:
    ``Minimize``, ``Subject To``, ``Bounds``, ``End``. Variables are named
    ``<flow_kind>_<slot>`` plus ``soc_<slot>`` and ``soc_shortfall_<slot>``.

    Args:
        time_series: Load, PV and price series (equal length)
        params: Static battery and grid parameters

    Returns:
        LP model text, deterministic for a given input

    Raises:
        ValidationError: If a series is not an array or lengths differ
    """
    ts = validate_time_series(time_series)

    from dess_planner.model.constraints import bound_lines, constraint_lines
    from dess_planner.model.objective import objective_lines

    lines: list[str] = []
    lines.extend(objective_lines(ts, params))
    lines.extend(constraint_lines(ts, params))
    lines.extend(bound_lines(ts, params))
    lines.append("End")

    logger.debug("Built LP model with %d slots (%d lines)", len(ts), len(lines))

    return "\n".join(lines)
