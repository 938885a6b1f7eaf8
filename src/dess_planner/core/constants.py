"""Canonical variable names, units, and tolerances.

FLOW CONVENTIONS (all flows are non-negative magnitudes):
- grid_to_load: Grid import consumed by the household load
- grid_to_battery: Grid import stored in the battery
- pv_to_load: PV generation consumed by the load
- pv_to_battery: PV generation stored in the battery
- pv_to_grid: PV generation exported
- battery_to_load: Battery discharge consumed by the load
- battery_to_grid: Battery discharge exported
- soc: Stored energy at the end of the slot (Wh)
- soc_shortfall: Energy below the soft minimum SoC (Wh)

UNITS:
- Power: W
- Energy: Wh
- Prices: c/kWh (currency-cents per kWh, may be negative)
- Objective: cents
- Time: minutes (slot length)
- Timestamps: UTC

BALANCE EQUATIONS (per slot):
grid_to_load + pv_to_load + battery_to_load = load_w
pv_to_load + pv_to_battery + pv_to_grid = pv_w
"""

# Input series names
SERIES_LOAD_W = "load_w"
SERIES_PV_W = "pv_w"
SERIES_IMPORT_PRICE = "import_price"
SERIES_EXPORT_PRICE = "export_price"
COL_TIMESTAMP = "timestamp"

REQUIRED_SERIES = [
    SERIES_LOAD_W,
    SERIES_PV_W,
    SERIES_IMPORT_PRICE,
    SERIES_EXPORT_PRICE,
]

# Flow variable kinds (LP variable name prefixes)
GRID_TO_LOAD = "grid_to_load"
GRID_TO_BATTERY = "grid_to_battery"
PV_TO_LOAD = "pv_to_load"
PV_TO_BATTERY = "pv_to_battery"
PV_TO_GRID = "pv_to_grid"
BATTERY_TO_LOAD = "battery_to_load"
BATTERY_TO_GRID = "battery_to_grid"
SOC = "soc"
SOC_SHORTFALL = "soc_shortfall"

FLOW_KINDS = [
    GRID_TO_LOAD,
    GRID_TO_BATTERY,
    PV_TO_LOAD,
    PV_TO_BATTERY,
    PV_TO_GRID,
    BATTERY_TO_LOAD,
    BATTERY_TO_GRID,
]

# Older solver variable names, merged into the flow they stand for
LEGACY_FLOW_ALIASES = {
    "grid_import": GRID_TO_LOAD,
    "grid_export": PV_TO_GRID,
    "bat_charge": GRID_TO_BATTERY,
    "bat_discharge": BATTERY_TO_LOAD,
}

# Objective tie-breaks (cents per W-slot), well below price granularity
TIE_BREAK_AVOID_EXPORT = 2e-6
TIE_BREAK_GRID_CHARGE = 1e-6

# Penalty for SoC below the soft minimum
SOFT_MIN_SOC_PENALTY_CENTS_PER_WH = 0.05

# LP number formatting
LP_DECIMALS = 12

# Decoding
SNAP_TO_ZERO = 1e-9
DECODE_DECIMALS = 3

# Strategy mapping
FLOW_EPSILON_W = 1.0
SOC_BOUNDARY_EPSILON_WH = 50.0
GRID_CAP_SOC_BOOST_PERCENT = 5.0

# Solver status reported on success
STATUS_OPTIMAL = "Optimal"

# Schedule slots pushed to the control channel
DEFAULT_SCHEDULE_SLOTS = 4

# Tolerance for numerical comparisons
NUMERICAL_TOLERANCE = 1e-6


def var_name(kind: str, t: int) -> str:
    """Return the LP variable name for a flow kind at slot ``t``."""
    return f"{kind}_{t}"
