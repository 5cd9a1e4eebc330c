#===- relucompress/back_end/solver/factory.py - Solver Factory ---------====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   Builds zero-argument solver constructors from a SolverConfig. The
#   tightener calls the constructor once per neuron task so that no solver
#   state is shared between workers.
#
#===---------------------------------------------------------------------===#

import logging
from typing import Callable

from relucompress.back_end.errors import PreconditionViolation
from relucompress.back_end.solver.solver_base import Solver
from relucompress.back_end.solver.solver_gurobi import GurobiSolver, GUROBI_AVAILABLE
from relucompress.back_end.solver.solver_highs import HighsSolver

logger = logging.getLogger(__name__)

SolverFactory = Callable[[], Solver]


def resolve_solver_name(name: str) -> str:
    """Map "auto" to a concrete backend and check the backend can be used."""
    if name == "auto":
        return "gurobi" if GUROBI_AVAILABLE else "highs"
    if name == "gurobi":
        if not GUROBI_AVAILABLE:
            raise PreconditionViolation("Solver 'gurobi' requested but gurobipy is not installed")
        return name
    if name == "highs":
        return name
    raise PreconditionViolation(f"Unknown solver '{name}'")


def make_solver_factory(config) -> SolverFactory:
    name = resolve_solver_name(config.solver)
    logger.info(f"Using {name} backend (time limit: {config.time_limit}, MIP gap: {config.mip_gap})")

    if name == "gurobi":
        def factory() -> Solver:
            return GurobiSolver(mip_gap=config.mip_gap, threads=config.threads,
                                output_flag=config.output_flag)
    else:
        def factory() -> Solver:
            return HighsSolver(mip_gap=config.mip_gap, output_flag=config.output_flag)
    return factory
