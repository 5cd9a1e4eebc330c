#===- relucompress/back_end/solver/solver_gurobi.py - Gurobi Backend ---====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   Gurobi backend for exact LP/MILP solving of the per-neuron bound
#   problems.
#
#===---------------------------------------------------------------------===#

from __future__ import annotations
import logging
import os
from typing import List, Optional
import numpy as np
from relucompress.back_end.errors import SolverFailure
from relucompress.back_end.solver.solver_base import Solver, SolveStatus

logger = logging.getLogger(__name__)

try:
    import gurobipy as gp
    from gurobipy import GRB
    GUROBI_AVAILABLE = True
except ImportError:
    gp = None
    GRB = None
    GUROBI_AVAILABLE = False

_LICENSE_CHECKED = False

def setup_gurobi_license():
    """Point Gurobi at $RELUCOMPRESS_HOME/gurobi/gurobi.lic unless a license is already configured."""
    global _LICENSE_CHECKED
    if _LICENSE_CHECKED:
        return
    _LICENSE_CHECKED = True
    if 'GRB_LICENSE_FILE' in os.environ:
        logger.debug(f"Using existing Gurobi license: {os.environ['GRB_LICENSE_FILE']}")
        return
    home = os.environ.get('RELUCOMPRESS_HOME')
    if home is None:
        return
    license_path = os.path.abspath(os.path.join(home, 'gurobi', 'gurobi.lic'))
    if os.path.exists(license_path):
        os.environ['GRB_LICENSE_FILE'] = license_path
        logger.info(f"Gurobi license found and set: {license_path}")
    else:
        logger.warning(f"Gurobi license not found at: {license_path}")


class GurobiSolver(Solver):
    """Gurobi backend for exact LP/MILP solving (CPU-only).

    Every instance owns its own environment, so instances can be driven from
    different worker threads. Errors raised by gurobipy while starting the
    environment or optimising (missing license, size-limited license) are
    reported as ``SolverFailure``.
    """

    def __init__(self, mip_gap: Optional[float] = None, threads: Optional[int] = None, output_flag: bool = False):
        if not GUROBI_AVAILABLE:
            raise RuntimeError("gurobipy is not available in this environment.")
        setup_gurobi_license()
        self.mip_gap = mip_gap
        self.threads = threads
        self.output_flag = output_flag
        self.env = None
        self.m = None
        self._x = []
        self._nbin = 0

    @property
    def n(self) -> int:
        return len(self._x)

    @property
    def num_binaries(self) -> int:
        return self._nbin

    def begin(self, name: str = "compress") -> None:
        try:
            if self.env is None:
                env = gp.Env(empty=True)
                env.setParam("OutputFlag", int(self.output_flag))
                env.start()
                self.env = env
            self.m = gp.Model(name, env=self.env)
            if self.mip_gap is not None:
                self.m.Params.MIPGap = float(self.mip_gap)
            if self.threads is not None:
                self.m.Params.Threads = int(self.threads)
        except gp.GurobiError as e:
            raise SolverFailure(SolveStatus.UNKNOWN, detail=f"Gurobi error {e.errno}: {e}") from e
        self._x = []
        self._nbin = 0

    def add_vars(self, n: int) -> None:
        new = self.m.addVars(n, lb=-GRB.INFINITY, ub=+GRB.INFINITY, name="x")
        self._x.extend(list(new.values()))

    def set_bounds(self, idxs: List[int], lb: np.ndarray, ub: np.ndarray) -> None:
        for idx, lo, hi in zip(idxs, lb, ub):
            self._x[idx].LB = float(lo)
            self._x[idx].UB = float(hi)

    def add_binary_vars(self, n: int) -> List[int]:
        start = len(self._x)
        new = self.m.addVars(n, vtype=GRB.BINARY, name="z")
        self._x.extend(list(new.values()))
        self._nbin += n
        return list(range(start, start + n))

    def _lexpr(self, vids: List[int], coeffs: List[float]):
        e = gp.LinExpr()
        for i, a in zip(vids, coeffs):
            e.addTerms(float(a), self._x[i])
        return e

    def add_lin_eq(self, vids: List[int], coeffs: List[float], rhs: float) -> None:
        self.m.addConstr(self._lexpr(vids, coeffs) == float(rhs))

    def add_lin_le(self, vids: List[int], coeffs: List[float], rhs: float) -> None:
        self.m.addConstr(self._lexpr(vids, coeffs) <= float(rhs))

    def add_lin_ge(self, vids: List[int], coeffs: List[float], rhs: float) -> None:
        self.m.addConstr(self._lexpr(vids, coeffs) >= float(rhs))

    def set_objective_linear(self, vids: List[int], coeffs: List[float], const: float = 0.0, sense: str = "min") -> None:
        e = self._lexpr(vids, coeffs) + float(const)
        self.m.setObjective(e, GRB.MINIMIZE if sense == "min" else GRB.MAXIMIZE)

    def optimize(self, timelimit: Optional[float] = None) -> None:
        try:
            if timelimit is not None:
                self.m.Params.TimeLimit = float(timelimit)
            self.m.update()
            self.m.optimize()
        except gp.GurobiError as e:
            raise SolverFailure(SolveStatus.UNKNOWN, detail=f"Gurobi error {e.errno}: {e}") from e

    def status(self) -> str:
        st = self.m.Status
        if st == GRB.OPTIMAL:
            return SolveStatus.OPTIMAL
        if st in (GRB.INFEASIBLE, GRB.INF_OR_UNBD):
            return SolveStatus.INFEASIBLE
        if st == GRB.TIME_LIMIT:
            return SolveStatus.TIMEOUT
        if st == GRB.NUMERIC:
            return SolveStatus.NUMERICAL_ERROR
        if self.m.SolCount > 0:
            return SolveStatus.FEASIBLE
        return SolveStatus.UNKNOWN

    def has_solution(self) -> bool:
        return self.m.SolCount > 0

    def objective_value(self) -> float:
        return float(self.m.ObjVal)

    def objective_bound(self) -> float:
        if self.m.IsMIP:
            return float(self.m.ObjBound)
        return float(self.m.ObjVal)

    def get_values(self, vids: List[int]) -> np.ndarray:
        return np.array([self._x[i].X for i in vids], dtype=float)
