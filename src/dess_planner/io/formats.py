"""Data format helpers for LP text and Parquet I/O."""

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from dess_planner.core.constants import COL_TIMESTAMP, LP_DECIMALS
from dess_planner.core.schemas import DessDecision, SolvedFlow


def format_lp_number(x: float) -> str:
    """Format a number for the LP file.

    Rounded to 12 decimals, never in scientific notation, trailing zeros
    stripped.
    """
    text = f"{round(float(x), LP_DECIMALS):.{LP_DECIMALS}f}".rstrip("0").rstrip(".")
    if text in ("-0", ""):
        return "0"
    return text


def read_parquet_timeseries(path: str) -> pd.DataFrame:
    """Read timeseries from Parquet file.

    Args:
        path: Path to Parquet file

    Returns:
        DataFrame with DatetimeIndex
    """
    df = pd.read_parquet(path)

    if COL_TIMESTAMP not in df.columns:
        raise ValueError(f"Timeseries must have '{COL_TIMESTAMP}' column")

    df[COL_TIMESTAMP] = pd.to_datetime(df[COL_TIMESTAMP], utc=True)
    df = df.set_index(COL_TIMESTAMP)
    df.index.name = COL_TIMESTAMP

    return df


def write_parquet_timeseries(df: pd.DataFrame, path: str) -> None:
    """Write timeseries to Parquet file.

    Args:
        df: DataFrame with DatetimeIndex
        path: Output path
    """
    df_copy = df.copy()
    df_copy.index.name = COL_TIMESTAMP
    df_out = df_copy.reset_index()

    table = pa.Table.from_pandas(df_out, preserve_index=False)
    pq.write_table(table, path, compression="snappy")


def flows_to_frame(flows: list[SolvedFlow]) -> pd.DataFrame:
    """Convert decoded flows to a DataFrame indexed by slot timestamp."""
    records = [flow.model_dump() for flow in flows]
    df = pd.DataFrame.from_records(records)
    if df.empty:
        return df
    return df.set_index(COL_TIMESTAMP)


def decisions_to_frame(decisions: list[DessDecision], flows: list[SolvedFlow]) -> pd.DataFrame:
    """Convert decisions to a DataFrame aligned with the flow timestamps."""
    df = pd.DataFrame(
        {
            "strategy": [int(d.strategy) for d in decisions],
            "restrictions": [int(d.restrictions) for d in decisions],
            "feed_in": [int(d.feed_in) for d in decisions],
            "flags": [d.flags for d in decisions],
            "soc_target_wh": [d.soc_target_wh for d in decisions],
        },
        index=pd.DatetimeIndex([flow.timestamp for flow in flows], name=COL_TIMESTAMP),
    )
    return df
