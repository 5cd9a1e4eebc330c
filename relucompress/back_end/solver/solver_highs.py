#===- relucompress/back_end/solver/solver_highs.py - HiGHS Backend -----====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   License-free MILP backend built on scipy.optimize.milp (HiGHS). Rows
#   are collected while the encoder runs and handed to HiGHS in one sparse
#   matrix at optimize() time.
#
#===---------------------------------------------------------------------===#

from __future__ import annotations
import logging
from typing import List, Optional, Tuple
import numpy as np
from scipy import sparse
from scipy.optimize import Bounds as VarBounds, LinearConstraint, milp

from relucompress.back_end.solver.solver_base import Solver, SolveStatus

logger = logging.getLogger(__name__)

# scipy.optimize.milp status codes
_STATUS = {
    0: SolveStatus.OPTIMAL,
    1: SolveStatus.TIMEOUT,
    2: SolveStatus.INFEASIBLE,
    3: SolveStatus.UNKNOWN,
    4: SolveStatus.NUMERICAL_ERROR,
}


class HighsSolver(Solver):
    """MILP solver using scipy's HiGHS interface. CPU-only, no license required."""

    def __init__(self, mip_gap: Optional[float] = None, output_flag: bool = False):
        self.mip_gap = mip_gap
        self.output_flag = output_flag
        self.begin()

    @property
    def n(self) -> int:
        return len(self._lb)

    @property
    def num_binaries(self) -> int:
        return int(sum(self._int))

    def begin(self, name: str = "compress") -> None:
        self.name = name
        self._lb: List[float] = []
        self._ub: List[float] = []
        self._int: List[int] = []
        self._rows: List[Tuple[List[int], List[float], float, float]] = []
        self._objective = ([], [], 0.0, "min")
        self._res = None

    def add_vars(self, n: int) -> None:
        self._lb.extend([-np.inf] * n)
        self._ub.extend([np.inf] * n)
        self._int.extend([0] * n)

    def set_bounds(self, idxs: List[int], lb: np.ndarray, ub: np.ndarray) -> None:
        for idx, lo, hi in zip(idxs, lb, ub):
            self._lb[idx] = float(lo)
            self._ub[idx] = float(hi)

    def add_binary_vars(self, n: int) -> List[int]:
        start = self.n
        self._lb.extend([0.0] * n)
        self._ub.extend([1.0] * n)
        self._int.extend([1] * n)
        return list(range(start, start + n))

    def add_lin_eq(self, vids: List[int], coeffs: List[float], rhs: float) -> None:
        self._rows.append((list(vids), [float(a) for a in coeffs], float(rhs), float(rhs)))

    def add_lin_le(self, vids: List[int], coeffs: List[float], rhs: float) -> None:
        self._rows.append((list(vids), [float(a) for a in coeffs], -np.inf, float(rhs)))

    def add_lin_ge(self, vids: List[int], coeffs: List[float], rhs: float) -> None:
        self._rows.append((list(vids), [float(a) for a in coeffs], float(rhs), np.inf))

    def set_objective_linear(self, vids: List[int], coeffs: List[float], const: float = 0.0, sense: str = "min") -> None:
        self._objective = (list(vids), [float(a) for a in coeffs], float(const), sense)
        self._res = None

    def _constraint_matrix(self):
        rows, cols, data, lo, hi = [], [], [], [], []
        for r, (vids, coeffs, l, u) in enumerate(self._rows):
            rows.extend([r] * len(vids)); cols.extend(vids); data.extend(coeffs)
            lo.append(l); hi.append(u)
        A = sparse.csr_matrix((data, (rows, cols)), shape=(len(self._rows), self.n))
        return A, np.array(lo, dtype=float), np.array(hi, dtype=float)

    def optimize(self, timelimit: Optional[float] = None) -> None:
        vids, coeffs, _, sense = self._objective
        c = np.zeros(self.n)
        for i, a in zip(vids, coeffs):
            c[i] += a
        if sense == "max":
            c = -c

        constraints = None
        if self._rows:
            A, lo, hi = self._constraint_matrix()
            constraints = LinearConstraint(A, lo, hi)

        options = {"disp": bool(self.output_flag)}
        if timelimit is not None:
            options["time_limit"] = float(timelimit)
        if self.mip_gap is not None:
            options["mip_rel_gap"] = float(self.mip_gap)

        logger.debug(f"HiGHS '{self.name}': {self.n} vars ({self.num_binaries} binary), {len(self._rows)} rows")
        self._res = milp(c, integrality=np.array(self._int), bounds=VarBounds(np.array(self._lb), np.array(self._ub)),
                         constraints=constraints, options=options)

    def status(self) -> str:
        if self._res is None:
            return SolveStatus.UNKNOWN
        return _STATUS.get(int(self._res.status), SolveStatus.UNKNOWN)

    def has_solution(self) -> bool:
        return self._res is not None and self._res.x is not None

    def _signed(self, internal: float) -> float:
        _, _, const, sense = self._objective
        return (-internal if sense == "max" else internal) + const

    def objective_value(self) -> float:
        return self._signed(float(self._res.fun))

    def objective_bound(self) -> float:
        dual = getattr(self._res, "mip_dual_bound", None) if self.num_binaries > 0 else None
        if dual is None or not np.isfinite(dual):
            return self.objective_value()
        return self._signed(float(dual))

    def get_values(self, vids: List[int]) -> np.ndarray:
        return np.array([self._res.x[i] for i in vids], dtype=float)
