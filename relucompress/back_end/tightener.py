#===- relucompress/back_end/tightener.py - Optimisation Bound Tightening ====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   "Standard" bound mode. Each live neuron of a layer is bounded by
#   maximising and minimising its pre-activation over the big-M encoding of
#   the layers before it. Neuron tasks work on a snapshot of the network
#   and the bounds, build their own solver, and return two scalars; the
#   results are merged with a min/max reduction so the worker count never
#   changes the outcome.
#
#===---------------------------------------------------------------------===#

import logging
import time
import torch
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from relucompress.back_end.core import Net, Bounds, BoundsTable, NeuronRef
from relucompress.back_end.cons_exportor import encode_prefix, add_preactivation_objective
from relucompress.back_end.errors import SolverFailure
from relucompress.back_end.solver.solver_base import Solver, SolveStatus

logger = logging.getLogger(__name__)


@dataclass
class NeuronBound:
    """Outcome of the two solves for one neuron. A None side failed."""
    neuron: NeuronRef
    lb: Optional[float] = None
    ub: Optional[float] = None
    failures: List[SolverFailure] = field(default_factory=list)


def solve_bound(solver: Solver, ref: NeuronRef, sense: str, timelimit: Optional[float] = None) -> float:
    try:
        solver.optimize(timelimit)
    except SolverFailure as failure:
        raise failure.at(ref, sense) from failure
    status = solver.status()
    if status != SolveStatus.OPTIMAL:
        raise SolverFailure(status, ref, sense)
    return solver.objective_bound()


def solve_neuron_bounds(net: Net, table: BoundsTable, k: int, j: int,
                        solver_factory: Callable[[], Solver],
                        timelimit: Optional[float] = None) -> NeuronBound:
    """Maximise and minimise b[k,j] + W[k,j].x_src over the prefix encoding.

    ``net`` and ``table`` are treated as read-only. Only solver failures are
    caught, including a backend that cannot build the model at all; an
    inconsistent bound in the encoding propagates.
    """
    ref = NeuronRef(k, j)
    result = NeuronBound(ref)
    try:
        solver = solver_factory()
        enc = encode_prefix(net, table, k, solver, name=f"L{k}_N{j}")
    except SolverFailure as failure:
        result.failures = [failure.at(ref, sense) for sense in ("max", "min")]
        return result
    for sense in ("max", "min"):
        add_preactivation_objective(enc, net, k, j, sense)
        try:
            value = solve_bound(solver, ref, sense, timelimit)
        except SolverFailure as failure:
            result.failures.append(failure)
            continue
        if sense == "max":
            result.ub = value
        else:
            result.lb = value
    return result


def tighten_layer(net: Net, table: BoundsTable, k: int,
                  solver_factory: Callable[[], Solver],
                  workers: int = 1,
                  timelimit: Optional[float] = None) -> List[SolverFailure]:
    """Refine the bounds of layer k in ``table``; returns the solver failures.

    The layer must already hold interval bounds. Failed solves keep the
    existing bound for that side of the neuron.
    """
    net_snap = net.snapshot()
    table_snap = table.snapshot()
    neurons = net.neurons(k)
    start = time.time()

    results: List[NeuronBound] = []
    if workers > 1 and len(neurons) > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_neuron = {
                executor.submit(solve_neuron_bounds, net_snap, table_snap, k, j, solver_factory, timelimit): j
                for j in neurons
            }
            for future in as_completed(future_to_neuron):
                results.append(future.result())
    else:
        for j in neurons:
            results.append(solve_neuron_bounds(net_snap, table_snap, k, j, solver_factory, timelimit))

    old = table.get(k)
    lb = old.lb.clone(); ub = old.ub.clone()
    failures: List[SolverFailure] = []
    for r in results:
        j = r.neuron.index
        if r.ub is not None:
            ub[j] = torch.minimum(ub[j], torch.tensor(r.ub, dtype=ub.dtype, device=ub.device))
        if r.lb is not None:
            lb[j] = torch.maximum(lb[j], torch.tensor(r.lb, dtype=lb.dtype, device=lb.device))
        for failure in r.failures:
            logger.warning(f"{failure}; keeping interval bound")
        failures.extend(r.failures)

    new = table.tighten(k, Bounds(lb, ub))
    idx = torch.tensor(neurons, dtype=torch.long)
    width_before = float((old.ub[idx] - old.lb[idx]).sum()) if neurons else 0.0
    width_after = float((new.ub[idx] - new.lb[idx]).sum()) if neurons else 0.0
    logger.info(f"Layer {k}: tightened {len(neurons)} neurons in {time.time() - start:.2f}s "
                f"(total width {width_before:.4g} -> {width_after:.4g}, {len(failures)} solver failures)")
    return failures
