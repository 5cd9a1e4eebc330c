#===- relucompress/back_end/cons_exportor.py - Big-M MILP Encoding -----====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   Writes the big-M mixed-integer encoding of a (partially pruned) network
#   into a Solver. Every live ReLU neuron (m, i) gets a post-activation
#   variable x, a negative-part slack s and, only when unstable, a binary z:
#
#       x - s = b + W.x_src
#       0 <= x <= max(0, U) (1 - z)
#       0 <= s <= max(0, -L) z
#
#   For stable neurons the variable bounds alone pin x to the affine value
#   (active) or to zero (inactive).
#
#===---------------------------------------------------------------------===#

import logging
import numpy as np
import torch
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from relucompress.back_end.core import Net, BoundsTable, NeuronRef, INPUT_LAYER, BOUND_TOL
from relucompress.back_end.errors import BoundInconsistency, PreconditionViolation
from relucompress.back_end.solver.solver_base import Solver

logger = logging.getLogger(__name__)

Key = Tuple[int, int]


def to_numpy(x) -> np.ndarray:
    if isinstance(x, torch.Tensor):
        return x.detach().to("cpu", dtype=torch.float64).numpy()
    return np.asarray(x, dtype=np.float64)


@dataclass
class Encoding:
    """Variable maps of an encoding written into ``solver``.

    ``x`` maps (layer, neuron) to the post-activation variable; layer 0 holds
    the input variables. ``s`` and ``z`` hold the slack and binary variables,
    ``outputs`` the identity output variables of a full-network encoding.
    """
    solver: Solver
    x: Dict[Key, int] = field(default_factory=dict)
    s: Dict[Key, int] = field(default_factory=dict)
    z: Dict[Key, int] = field(default_factory=dict)
    outputs: Dict[int, int] = field(default_factory=dict)

    @property
    def num_binaries(self) -> int:
        return len(self.z)


def _new_vars(solver: Solver, lb: List[float], ub: List[float]) -> List[int]:
    start = solver.n
    solver.add_vars(len(lb))
    idxs = list(range(start, start + len(lb)))
    solver.set_bounds(idxs, np.array(lb, dtype=np.float64), np.array(ub, dtype=np.float64))
    return idxs


def _check_neuron(ref: NeuronRef, lo: float, hi: float) -> None:
    if not (np.isfinite(lo) and np.isfinite(hi)):
        raise PreconditionViolation(f"Neuron {ref} has unbounded bounds [{lo}, {hi}]")
    if hi < lo - BOUND_TOL:
        raise BoundInconsistency(ref, lo, hi)


def encode_inputs(enc: Encoding, table: BoundsTable) -> None:
    box = table.get(INPUT_LAYER)
    lb = to_numpy(box.lb); ub = to_numpy(box.ub)
    for i in range(lb.shape[0]):
        _check_neuron(NeuronRef(INPUT_LAYER, i), float(lb[i]), float(ub[i]))
    vids = _new_vars(enc.solver, lb.tolist(), ub.tolist())
    for i, vid in enumerate(vids):
        enc.x[(INPUT_LAYER, i)] = vid


def encode_relu_layer(enc: Encoding, net: Net, table: BoundsTable, m: int) -> None:
    """Add the big-M constraints of every live neuron of hidden layer m."""
    solver = enc.solver
    L = net.layer(m)
    B = table.get(m)
    lb = to_numpy(B.lb); ub = to_numpy(B.ub)
    W = to_numpy(L.W); b = to_numpy(L.b)
    src = net.neurons(L.src)
    x_src = [enc.x[(L.src, i)] for i in src]

    for i in net.neurons(m):
        lo, hi = float(lb[i]), float(ub[i])
        _check_neuron(NeuronRef(m, i), lo, hi)
        M_U, M_L = max(0.0, hi), max(0.0, -lo)
        x, s = _new_vars(solver, [0.0, 0.0], [M_U, M_L])
        enc.x[(m, i)] = x; enc.s[(m, i)] = s

        # x - s - W.x_src = b
        solver.add_lin_eq([x, s] + x_src, [1.0, -1.0] + [-float(w) for w in W[i, src]], float(b[i]))

        if lo < 0.0 < hi:
            z = solver.add_binary_vars(1)[0]
            enc.z[(m, i)] = z
            solver.add_lin_le([x, z], [1.0, M_U], M_U)      # x <= U (1 - z)
            solver.add_lin_le([s, z], [1.0, -M_L], 0.0)     # s <= -L z


def encode_prefix(net: Net, table: BoundsTable, k: int, solver: Solver, name: str = "prefix") -> Encoding:
    """Encoding of the input box and every non-collapsed layer before k."""
    solver.begin(name)
    enc = Encoding(solver)
    encode_inputs(enc, table)
    for m in range(1, k):
        if net.is_collapsed(m):
            continue
        encode_relu_layer(enc, net, table, m)
    logger.debug(f"Encoding '{name}': {solver.n} vars, {enc.num_binaries} binaries")
    return enc


def preactivation_expr(enc: Encoding, net: Net, k: int, j: int) -> Tuple[List[int], List[float], float]:
    """Linear expression b[k,j] + W[k,j].x_src over the encoding variables."""
    L = net.layer(k)
    src = net.neurons(L.src)
    vids = [enc.x[(L.src, i)] for i in src]
    coeffs = [float(w) for w in to_numpy(L.W[j, src])]
    return vids, coeffs, float(L.b[j])


def add_preactivation_objective(enc: Encoding, net: Net, k: int, j: int, sense: str) -> None:
    if sense not in ("min", "max"):
        raise ValueError(f"Unknown objective sense '{sense}'")
    vids, coeffs, const = preactivation_expr(enc, net, k, j)
    enc.solver.set_objective_linear(vids, coeffs, const, sense)


def build_network_milp(net: Net, table: BoundsTable, solver: Solver, name: str = "network") -> Encoding:
    """Encode the whole network, output layer included.

    Output neurons are identity: y_j = b_j + W_j.x_src, bounded by the
    output-layer entry of ``table`` when present.
    """
    K = net.K
    enc = encode_prefix(net, table, K, solver, name=name)
    out = table.get(K) if K in table else None
    for j in net.neurons(K):
        vids, coeffs, const = preactivation_expr(enc, net, K, j)
        if out is not None:
            lo, hi = float(out.lb[j]), float(out.ub[j])
            _check_neuron(NeuronRef(K, j), lo, hi)
        else:
            lo, hi = -np.inf, np.inf
        y = _new_vars(solver, [lo], [hi])[0]
        solver.add_lin_eq([y] + vids, [1.0] + [-c for c in coeffs], const)
        enc.outputs[j] = y
    solver.set_objective_linear([], [], 0.0, "min")
    logger.info(f"Network MILP: {solver.n} vars, {enc.num_binaries} binaries, {len(enc.outputs)} outputs")
    return enc
