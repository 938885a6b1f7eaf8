"""Model solving with HiGHS.

The solver receives LP text and hands back status, objective value and the
named primal columns. A non-optimal status is returned, never raised.
"""

import logging
import tempfile
import time
from pathlib import Path
from typing import Optional, Protocol

import highspy

from dess_planner.core.constants import STATUS_OPTIMAL
from dess_planner.core.schemas import SolverResult

logger = logging.getLogger(__name__)


class SolverError(RuntimeError):
    """Raised when the solver engine itself fails."""

    pass


class Solver(Protocol):
    """Anything that turns LP text into a SolverResult."""

    def __call__(self, lp_text: str) -> SolverResult:
        ...


class HighsSolver:
    """Solve LP text with the HiGHS engine."""

    def __init__(self, time_limit_seconds: Optional[float] = None):
        """Initialize solver.

        Args:
            time_limit_seconds: Optional wall-clock limit for one solve
        """
        self.time_limit_seconds = time_limit_seconds

    def __call__(self, lp_text: str) -> SolverResult:
        start_time = time.time()

        highs = highspy.Highs()
        highs.setOptionValue("output_flag", False)
        if self.time_limit_seconds is not None:
            highs.setOptionValue("time_limit", float(self.time_limit_seconds))

        try:
            with tempfile.TemporaryDirectory() as tmp:
                lp_path = Path(tmp) / "model.lp"
                lp_path.write_text(lp_text)
                read_status = highs.readModel(str(lp_path))
            if read_status == highspy.HighsStatus.kError:
                raise SolverError("Solver could not read LP model")
            highs.run()
        except SolverError:
            raise
        except Exception as e:
            raise SolverError(f"Solver failed: {e}") from e

        status = highs.modelStatusToString(highs.getModelStatus())
        names = list(highs.getLp().col_names_)
        values = list(highs.getSolution().col_value)
        objective_value = float(highs.getInfo().objective_function_value)

        solve_time = time.time() - start_time

        if status != STATUS_OPTIMAL:
            logger.warning("Solver returned non-optimal status: %s", status)
        logger.debug("Solved %d columns in %.3fs", len(names), solve_time)

        return SolverResult(
            status=status,
            objective_value=objective_value,
            columns=[{"Name": name, "Primal": float(value)} for name, value in zip(names, values)],
            solve_time_seconds=solve_time,
        )


def solve_lp(lp_text: str, time_limit_seconds: Optional[float] = None) -> SolverResult:
    """Solve LP text with HiGHS.

    Args:
        lp_text: Model in LP format
        time_limit_seconds: Optional wall-clock limit

    Returns:
        SolverResult with the achieved status, objective and columns
    """
    return HighsSolver(time_limit_seconds=time_limit_seconds)(lp_text)
