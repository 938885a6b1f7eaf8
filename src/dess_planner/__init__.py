"""DESS planner: LP dispatch optimization for PV / battery / grid systems
mapped onto discrete inverter strategies."""

__version__ = "0.1.0"
