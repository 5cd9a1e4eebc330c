#===- relucompress/back_end/solver/__init__.py - Constraint Solvers ----====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   MILP backends for the per-neuron bound problems. Provides the Gurobi
#   and HiGHS implementations and the factory that picks between them.
#
#===---------------------------------------------------------------------===#

from .solver_base import Solver, SolveStatus
from .solver_gurobi import GurobiSolver, GUROBI_AVAILABLE
from .solver_highs import HighsSolver
from .factory import make_solver_factory, resolve_solver_name

__all__ = [
    'Solver', 'SolveStatus',
    'GurobiSolver', 'HighsSolver', 'GUROBI_AVAILABLE',
    'make_solver_factory', 'resolve_solver_name',
]
