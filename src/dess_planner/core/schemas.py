"""Pydantic schemas for configuration, solver output and plan records."""

from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from dess_planner.core.constants import DEFAULT_SCHEDULE_SLOTS, STATUS_OPTIMAL


class TerminalSocValuation(str, Enum):
    """How energy left in the battery at the end of the horizon is valued."""

    ZERO = "zero"
    MIN = "min"
    AVG = "avg"
    MAX = "max"
    CUSTOM = "custom"


class Strategy(IntEnum):
    """Discrete battery strategy understood by the inverter."""

    TARGET_SOC = 0  # excess PV and load to/from grid
    SELF_CONSUMPTION = 1  # excess PV and load to/from battery
    PRO_BATTERY = 2  # excess PV to battery, excess load from grid
    PRO_GRID = 3  # excess PV to grid, excess load from battery


class Restrictions(IntEnum):
    """Which grid/battery directions are blocked for a slot."""

    NONE = 0
    BATTERY_TO_GRID = 1
    GRID_TO_BATTERY = 2
    BOTH = 3


class FeedIn(IntEnum):
    """Grid feed-in permission."""

    BLOCKED = 0
    ALLOWED = 1


class StaticParameters(BaseModel):
    """Battery, grid and valuation parameters for one optimization run."""

    step_minutes: int = Field(default=15, gt=0, description="Slot length in minutes")
    battery_capacity_wh: float = Field(default=20480.0, gt=0, description="Usable battery capacity in Wh")
    min_soc_percent: float = Field(default=20.0, description="Soft minimum state of charge")
    max_soc_percent: float = Field(default=100.0, description="Maximum state of charge")
    max_charge_power_w: float = Field(default=3600.0, ge=0, description="Max charge power in W")
    max_discharge_power_w: float = Field(default=4000.0, ge=0, description="Max discharge power in W")
    max_grid_import_w: float = Field(default=2500.0, ge=0, description="Grid import limit in W")
    max_grid_export_w: float = Field(default=5000.0, ge=0, description="Grid export limit in W")
    charge_efficiency_percent: float = Field(default=95.0, gt=0, le=100)
    discharge_efficiency_percent: float = Field(default=95.0, gt=0, le=100)
    battery_cost_cents_per_kwh: float = Field(
        default=2.0, ge=0, description="Wear cost per kWh of battery throughput"
    )
    terminal_soc_valuation: TerminalSocValuation = Field(default=TerminalSocValuation.ZERO)
    terminal_soc_custom_price_cents_per_kwh: float = Field(default=0.0)
    initial_soc_percent: float = Field(default=20.0, ge=0, le=100)

    @field_validator("min_soc_percent", "max_soc_percent")
    @classmethod
    def clamp_percent(cls, v: float) -> float:
        """Clamp SoC limits into 0..100 and round to whole percent."""
        return float(round(min(max(v, 0.0), 100.0)))

    @model_validator(mode="after")
    def order_soc_limits(self) -> "StaticParameters":
        """Swap min/max SoC when given the wrong way round."""
        if self.max_soc_percent < self.min_soc_percent:
            self.min_soc_percent, self.max_soc_percent = self.max_soc_percent, self.min_soc_percent
        return self

    @property
    def step_hours(self) -> float:
        return self.step_minutes / 60.0

    @property
    def min_soc_wh(self) -> float:
        return self.min_soc_percent / 100.0 * self.battery_capacity_wh

    @property
    def max_soc_wh(self) -> float:
        return self.max_soc_percent / 100.0 * self.battery_capacity_wh

    @property
    def initial_soc_wh(self) -> float:
        return self.initial_soc_percent / 100.0 * self.battery_capacity_wh


class TimeSeries(BaseModel):
    """Per-slot forecasts and prices. All four series share one length."""

    load_w: list[float]
    pv_w: list[float]
    import_price: list[float] = Field(..., description="Import price in c/kWh")
    export_price: list[float] = Field(..., description="Export price in c/kWh")

    def __len__(self) -> int:
        return len(self.load_w)


class Timeline(BaseModel):
    """Slot timing: explicit timestamps, or a start time plus slot length."""

    timestamps: Optional[list[datetime]] = None
    start: Optional[datetime] = None
    step_minutes: Optional[int] = Field(default=None, gt=0)


class RunConfig(BaseModel):
    """Run-specific configuration."""

    run_id: str = Field(..., description="Unique run identifier")
    solver_time_limit_seconds: float = Field(default=60.0, gt=0)
    schedule_slots: int = Field(default=DEFAULT_SCHEDULE_SLOTS, ge=1)


class SolverResult(BaseModel):
    """Raw outcome of a solver call.

    ``columns`` is either a list of named columns or a name-keyed mapping,
    exactly as the solver engine produced it.
    """

    status: str
    objective_value: Optional[float] = None
    columns: Any = Field(default_factory=list)
    solve_time_seconds: Optional[float] = None

    @property
    def is_optimal(self) -> bool:
        return self.status == STATUS_OPTIMAL


class SolvedFlow(BaseModel):
    """Decoded physical flows for one slot."""

    model_config = ConfigDict(frozen=True)

    index: int
    timestamp: datetime

    load_w: float
    pv_w: float
    import_price: float
    export_price: float

    grid_to_load: float
    grid_to_battery: float
    pv_to_load: float
    pv_to_battery: float
    pv_to_grid: float
    battery_to_load: float
    battery_to_grid: float

    grid_import: float
    grid_export: float
    soc_wh: float
    soc_percent: float


class DessDecision(BaseModel):
    """Discrete control directive for one slot."""

    model_config = ConfigDict(frozen=True)

    strategy: Strategy
    restrictions: Restrictions
    feed_in: FeedIn
    flags: int = 0
    soc_target_wh: float


class DessDiagnostics(BaseModel):
    """Tipping-point prices observed in the first segment (None when absent)."""

    model_config = ConfigDict(frozen=True)

    grid_battery_tipping_point: Optional[float] = None
    grid_charge_tipping_point: Optional[float] = None
    battery_export_tipping_point: Optional[float] = None


class ScheduleSlot(BaseModel):
    """One slot as written to a discrete battery control channel."""

    start_epoch: int
    duration_seconds: int
    strategy: Strategy
    flags: int = 0
    soc_target: int = Field(..., ge=0, le=100, description="Target SoC in whole percent")
    restrictions: Restrictions
    allow_grid_feed_in: FeedIn


class PlanSummary(BaseModel):
    """Horizon totals for presentation."""

    load_total_kwh: float = 0.0
    pv_total_kwh: float = 0.0
    load_from_grid_kwh: float = 0.0
    load_from_battery_kwh: float = 0.0
    load_from_pv_kwh: float = 0.0
    grid_to_battery_kwh: float = 0.0
    battery_to_grid_kwh: float = 0.0
    import_energy_kwh: float = 0.0
    avg_import_price: Optional[float] = None
    grid_battery_tipping_point: Optional[float] = None
    grid_charge_tipping_point: Optional[float] = None
    battery_export_tipping_point: Optional[float] = None


class BundleMetadata(BaseModel):
    """Metadata for reproducibility tracking."""

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    dess_planner_version: str
    solver_name: str = Field(default="highs")
    solver_version: Optional[str] = None
