"""Input validation beyond Pydantic schemas."""

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta

import numpy as np
import pandas as pd

from dess_planner.core.constants import (
    FLOW_KINDS,
    NUMERICAL_TOLERANCE,
    REQUIRED_SERIES,
    SERIES_LOAD_W,
    SERIES_PV_W,
)
from dess_planner.core.schemas import SolvedFlow, StaticParameters, Timeline, TimeSeries

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """Raised when a configuration contract is violated."""

    pass


def _is_array(value) -> bool:
    return isinstance(value, (list, tuple, np.ndarray, pd.Series))


def validate_time_series(series: TimeSeries | Mapping) -> TimeSeries:
    """Check that all four series are finite numeric arrays of one common length.

    Load and PV must also be non-negative.

    Args:
        series: TimeSeries instance or mapping with the four series

    Returns:
        Validated TimeSeries

    Raises:
        ValidationError: If a series is missing, not an array, empty, holds a
            non-finite value (or a negative load/PV value), or lengths differ
    """
    if isinstance(series, TimeSeries):
        arrays = {name: getattr(series, name) for name in REQUIRED_SERIES}
    elif isinstance(series, Mapping):
        arrays = {name: series.get(name) for name in REQUIRED_SERIES}
    else:
        raise ValidationError(f"Expected TimeSeries or mapping, got {type(series).__name__}")

    not_arrays = [name for name, values in arrays.items() if not _is_array(values)]
    if not_arrays:
        raise ValidationError(f"Series must be arrays: {not_arrays}")

    lengths = {name: len(values) for name, values in arrays.items()}
    if len(set(lengths.values())) != 1:
        raise ValidationError(f"Series lengths mismatch: {lengths}")
    if lengths[SERIES_LOAD_W] == 0:
        raise ValidationError("Time series are empty")

    for name, values in arrays.items():
        try:
            arr = np.asarray(values, dtype=float)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Series {name} must contain numbers") from e

        non_finite = np.flatnonzero(~np.isfinite(arr))
        if non_finite.size:
            i = int(non_finite[0])
            raise ValidationError(f"Non-finite value in {name} at index {i}: {arr[i]}")

        if name in (SERIES_LOAD_W, SERIES_PV_W):
            negative = np.flatnonzero(arr < 0)
            if negative.size:
                i = int(negative[0])
                raise ValidationError(f"Negative value in {name} at index {i}: {arr[i]}")

    if isinstance(series, TimeSeries):
        return series
    return TimeSeries(**{name: [float(v) for v in values] for name, values in arrays.items()})


def assemble_time_series(
    load_w: Sequence[float],
    pv_w: Sequence[float],
    import_price: Sequence[float],
    export_price: Sequence[float],
) -> TimeSeries:
    """Assemble a TimeSeries from sources of differing length.

    Every series is trimmed to the minimum common length.

    Raises:
        ValidationError: If the common length is zero
    """
    arrays = {
        "load_w": list(load_w),
        "pv_w": list(pv_w),
        "import_price": list(import_price),
        "export_price": list(export_price),
    }
    lengths = {name: len(values) for name, values in arrays.items()}
    T = min(lengths.values())
    if T == 0:
        raise ValidationError(f"Time series are missing or empty: {lengths}")

    trimmed = {name: n for name, n in lengths.items() if n > T}
    if trimmed:
        logger.info("Trimming series %s to common length %d", trimmed, T)

    return TimeSeries(**{name: [float(v) for v in values[:T]] for name, values in arrays.items()})


def validate_timeseries_frame(df: pd.DataFrame, expected_step_minutes: int) -> None:
    """Validate an input timeseries dataframe.

    Trailing NaN values are allowed (a shorter source, e.g. prices known for
    fewer slots than the load forecast); gaps inside a series are not.

    Args:
        df: Input timeseries with datetime index
        expected_step_minutes: Expected slot length in minutes

    Raises:
        ValidationError: If validation fails
    """
    missing_cols = set(REQUIRED_SERIES) - set(df.columns)
    if missing_cols:
        raise ValidationError(f"Missing required columns: {missing_cols}")

    if not isinstance(df.index, pd.DatetimeIndex):
        raise ValidationError("Timeseries must have DatetimeIndex")

    if not df.index.is_monotonic_increasing:
        raise ValidationError("Timestamps must be monotonic increasing")

    if df.index.has_duplicates:
        raise ValidationError("Duplicate timestamps found")

    if len(df) > 1:
        time_diffs = df.index.to_series().diff().dropna()
        expected_delta = pd.Timedelta(minutes=expected_step_minutes)

        if not (time_diffs == expected_delta).all():
            raise ValidationError(
                f"Inconsistent timestep. Expected {expected_step_minutes} minutes. "
                f"Found: {time_diffs.value_counts().to_dict()}"
            )

    for col in REQUIRED_SERIES:
        present = df[col].notna().to_numpy()
        valid_count = int(present.sum())
        if not present[:valid_count].all():
            raise ValidationError(f"NaN values inside series: {col}")

    for col in [SERIES_LOAD_W, SERIES_PV_W]:
        if (df[col].dropna() < 0).any():
            raise ValidationError(f"Negative values in {col}")


def timeseries_from_frame(df: pd.DataFrame) -> tuple[TimeSeries, list[datetime]]:
    """Convert a validated dataframe into a TimeSeries and its timestamps."""
    ts = assemble_time_series(*(df[col].dropna().tolist() for col in REQUIRED_SERIES))
    timestamps = [stamp.to_pydatetime() for stamp in df.index[: len(ts)]]
    return ts, timestamps


def resolve_timestamps(timeline: Timeline | None, T: int) -> list[datetime]:
    """Return exactly T slot start timestamps.

    Explicit timestamps win; otherwise they are synthesized from the start
    time and slot length.

    Raises:
        ValidationError: If no usable timing information is given
    """
    if timeline is None:
        raise ValidationError("Missing timing information: need timestamps or start + step_minutes")

    if timeline.timestamps is not None:
        if len(timeline.timestamps) < T:
            raise ValidationError(
                f"Timeline has {len(timeline.timestamps)} timestamps, horizon needs {T}"
            )
        return list(timeline.timestamps[:T])

    if timeline.start is None or timeline.step_minutes is None:
        raise ValidationError("Missing timing information: need timestamps or start + step_minutes")

    step = timedelta(minutes=timeline.step_minutes)
    return [timeline.start + i * step for i in range(T)]


def validate_solved_flows(flows: list[SolvedFlow], params: StaticParameters) -> None:
    """Validate decoded flows satisfy physical limits.

    The minimum SoC is soft and is not checked here.

    Args:
        flows: Decoded flows
        params: Static parameters of the run

    Raises:
        ValidationError: If limits are violated
    """
    tol = NUMERICAL_TOLERANCE + 1e-3  # decoded values are rounded to 3 decimals

    for flow in flows:
        for name in FLOW_KINDS:
            if getattr(flow, name) < -tol:
                raise ValidationError(f"{name} negative in slot {flow.index}")

        if flow.grid_to_battery + flow.pv_to_battery > params.max_charge_power_w + tol:
            raise ValidationError(f"Charge power exceeds limit in slot {flow.index}")

        if flow.battery_to_load + flow.battery_to_grid > params.max_discharge_power_w + tol:
            raise ValidationError(f"Discharge power exceeds limit in slot {flow.index}")

        if flow.grid_import > params.max_grid_import_w + tol:
            raise ValidationError(f"Grid import exceeds limit in slot {flow.index}")

        if flow.grid_export > params.max_grid_export_w + tol:
            raise ValidationError(f"Grid export exceeds limit in slot {flow.index}")

        if flow.soc_wh > params.max_soc_wh + tol:
            raise ValidationError(f"SoC above maximum in slot {flow.index}")
