#===- relucompress/back_end/solver/solver_base.py - Solver Interface ---====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   Base Solver Interface. Defines the abstract LP/MILP backend the
#   constraint encoder writes into and the bound tightener optimises with.
#
#===---------------------------------------------------------------------===#

from __future__ import annotations
import numpy as np
from typing import List, Optional

class SolveStatus:
    OPTIMAL = "OPTIMAL"
    FEASIBLE = "FEASIBLE"
    INFEASIBLE = "INFEASIBLE"
    TIMEOUT = "TIMEOUT"
    NUMERICAL_ERROR = "NUMERICAL_ERROR"
    UNKNOWN = "UNKNOWN"

class Solver:
    """Abstract solver interface used by the encoder and the tightener.

    Backend errors that stop a model from being built or solved are raised
    as ``SolverFailure``; the tightener keeps the interval bound for them.
    """

    # --- Lifecycle ---
    def begin(self, name: str = "compress") -> None:  # pragma: no cover - abstract
        ...

    def add_vars(self, n: int) -> None:  # pragma: no cover - abstract
        ...

    def set_bounds(self, idxs: List[int], lb: np.ndarray, ub: np.ndarray) -> None:  # pragma: no cover - abstract
        ...

    def add_binary_vars(self, n: int) -> List[int]:  # pragma: no cover - abstract
        ...

    # --- Linear constraints ---
    def add_lin_eq(self, vids: List[int], coeffs: List[float], rhs: float) -> None:  # pragma: no cover - abstract
        ...

    def add_lin_ge(self, vids: List[int], coeffs: List[float], rhs: float) -> None:  # pragma: no cover - abstract
        ...

    def add_lin_le(self, vids: List[int], coeffs: List[float], rhs: float) -> None:  # pragma: no cover - abstract
        ...

    # --- Objective & solve ---
    def set_objective_linear(self, vids: List[int], coeffs: List[float], const: float = 0.0, sense: str = "min") -> None:  # pragma: no cover - abstract
        ...

    def optimize(self, timelimit: Optional[float] = None) -> None:  # pragma: no cover - abstract
        ...

    def status(self) -> str:  # pragma: no cover - abstract
        ...

    def has_solution(self) -> bool:  # pragma: no cover - abstract
        ...

    def objective_value(self) -> float:  # pragma: no cover - abstract
        """Objective of the best solution found."""
        ...

    def objective_bound(self) -> float:
        """Proven bound on the optimum (dual bound for MILPs).

        This is the value the tightener uses: for a maximisation it never
        under-estimates the true optimum, so the resulting bound stays sound
        under the MIP gap. Backends without a separate dual bound report the
        objective value.
        """
        return self.objective_value()

    # --- Accessors ---
    def get_values(self, vids: List[int]) -> np.ndarray:  # pragma: no cover - abstract
        ...

    @property
    def n(self) -> int:  # pragma: no cover - abstract
        ...

    @property
    def num_binaries(self) -> int:  # pragma: no cover - abstract
        ...
