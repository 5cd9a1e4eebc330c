#===- relucompress/back_end/compress.py - Compression Driver -----------====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   Layer-by-layer compression loop. For k = 1..K: compute bounds for layer
#   k (interval propagation, refined by MILPs in standard mode), stop at the
#   output layer, otherwise prune layer k and move on. Returns the pruned
#   network, removed original indices per layer and the surviving bounds.
#
#===---------------------------------------------------------------------===#

import logging
import time
import torch
from dataclasses import dataclass
from typing import List, Optional, Sequence

from relucompress.back_end.core import Net, Bounds, BoundsTable, INPUT_LAYER
from relucompress.back_end.cons_exportor import Encoding, build_network_milp
from relucompress.back_end.errors import PreconditionViolation
from relucompress.back_end.interval_tf import tf_dense
from relucompress.back_end.pruner import prune_layer, classify_layer
from relucompress.back_end.solver.factory import make_solver_factory
from relucompress.back_end.tightener import tighten_layer
from relucompress.front_end.model_loader import to_net
from relucompress.util.config import SolverConfig
from relucompress.util.device_manager import as_tensor
from relucompress.util.stats import CompressionStats, LayerStats

logger = logging.getLogger(__name__)

MODES = ("fast", "standard")


@dataclass
class CompressionResult:
    """Outcome of ``compress``.

    Attributes:
        net: Compressed network, collapsed layers dropped and neurons
            renumbered 0..n-1 in original order.
        working: The pruned network in original numbering (live sets and
            layer sources intact).
        removed_neurons: Removed original indices for every layer 1..K.
        bounds_lb, bounds_ub: Pre-activation bounds of the surviving neurons
            for every non-collapsed layer, None when bounds were supplied.
        table: Full bounds table in original numbering.
        stats: Per-layer diagnostics.
        milp: Encoding of the compressed network when requested.
    """
    net: Net
    working: Net
    removed_neurons: List[List[int]]
    bounds_lb: Optional[List[torch.Tensor]]
    bounds_ub: Optional[List[torch.Tensor]]
    table: BoundsTable
    stats: CompressionStats
    milp: Optional[Encoding] = None


def _input_box(net: Net, input_lb, input_ub) -> Bounds:
    try:
        lb = as_tensor(input_lb).reshape(-1)
        ub = as_tensor(input_ub).reshape(-1)
    except (TypeError, ValueError, RuntimeError) as e:
        raise PreconditionViolation(f"Input box is not numeric: {e}")
    if lb.shape[0] != net.input_size or ub.shape[0] != net.input_size:
        raise PreconditionViolation(
            f"Input box has {lb.shape[0]}/{ub.shape[0]} bounds, network expects {net.input_size} inputs")
    if not (torch.isfinite(lb).all() and torch.isfinite(ub).all()):
        raise PreconditionViolation("Input box must be bounded")
    if (lb > ub).any():
        i = int(torch.nonzero(lb > ub)[0])
        raise PreconditionViolation(f"Input box is empty in feature {i}: {float(lb[i])} > {float(ub[i])}")
    return Bounds(lb, ub)


def _precomputed_table(net: Net, box: Bounds, bounds_lb: Sequence, bounds_ub: Sequence) -> BoundsTable:
    if bounds_lb is None or bounds_ub is None:
        raise PreconditionViolation("Precomputed bounds need both lower and upper bounds")
    if len(bounds_lb) != net.K or len(bounds_ub) != net.K:
        raise PreconditionViolation(f"Precomputed bounds must list all {net.K} layers")
    table = BoundsTable()
    table.set(INPUT_LAYER, box)
    for k in range(1, net.K + 1):
        lb = as_tensor(bounds_lb[k - 1]).reshape(-1)
        ub = as_tensor(bounds_ub[k - 1]).reshape(-1)
        if lb.shape[0] != net.count(k) or ub.shape[0] != net.count(k):
            raise PreconditionViolation(f"Precomputed bounds of layer {k} must have {net.count(k)} entries")
        table.set(k, Bounds(lb, ub))
    return table


def _solver_config(solver_config) -> SolverConfig:
    if isinstance(solver_config, SolverConfig):
        return solver_config
    if isinstance(solver_config, dict):
        return SolverConfig.from_dict(solver_config)
    raise PreconditionViolation(f"Unsupported solver configuration type {type(solver_config).__name__}")


def compress(model, input_lb, input_ub, mode: str = "fast",
             solver_config=None, bounds_lb=None, bounds_ub=None,
             build_milp: bool = False) -> CompressionResult:
    """Remove every provably stable neuron of ``model`` over the input box.

    Args:
        model: Net, nn.Sequential of Linear/ReLU, or list of (W, b) pairs.
            The input object is never modified.
        input_lb, input_ub: Per-feature bounds of the input box.
        mode: "fast" (interval bounds) or "standard" (MILP-refined bounds).
        solver_config: SolverConfig or dict; required in standard mode.
        bounds_lb, bounds_ub: Optional precomputed pre-activation bounds for
            every layer 1..K (original length). Bound computation is skipped
            and only pruning runs.
        build_milp: Also encode the compressed network as a MILP.

    Raises:
        PreconditionViolation: On malformed input, before any work starts.
        BoundInconsistency: When a neuron ends up with L > U.
    """
    if mode not in MODES:
        raise PreconditionViolation(f"Unknown mode '{mode}', expected one of {MODES}")
    net = to_net(model)
    box = _input_box(net, input_lb, input_ub)

    precomputed = bounds_lb is not None or bounds_ub is not None
    config = None
    if solver_config is not None:
        config = _solver_config(solver_config)
    elif mode == "standard" and not precomputed:
        raise PreconditionViolation("Standard mode requires a solver configuration")
    if mode == "standard" and precomputed:
        logger.info("Precomputed bounds given; skipping bound computation")

    factory = None
    if (mode == "standard" and not precomputed) or build_milp:
        factory = make_solver_factory(config if config is not None else SolverConfig())

    if precomputed:
        table = _precomputed_table(net, box, bounds_lb, bounds_ub)
    else:
        table = BoundsTable()
        table.set(INPUT_LAYER, box)

    stats = CompressionStats(mode="precomputed" if precomputed else mode)
    start = time.time()
    logger.info(f"Compressing {net.K}-layer network ({sum(net.count(k) for k in range(1, net.K))} hidden neurons) "
                f"in {stats.mode} mode")

    for k in range(1, net.K + 1):
        layer_start = time.time()
        layer_stats = LayerStats(layer=k, original=net.count(k))
        if not precomputed:
            tf_dense(net, table, k)
            if mode == "standard":
                failures = tighten_layer(net, table, k, factory,
                                         workers=config.workers, timelimit=config.time_limit)
                layer_stats.solver_failures = len(failures)

        if k == net.K:
            labels = classify_layer(net, table, k)
            layer_stats.inactive, layer_stats.active, layer_stats.unstable = (
                len(labels.inactive), len(labels.kept_active), len(labels.unstable))
        else:
            report = prune_layer(net, table, k)
            layer_stats.inactive = len(report.inactive)
            layer_stats.active = len(report.folded_active) + len(report.kept_active)
            layer_stats.folded = len(report.folded_active)
            layer_stats.unstable = len(report.unstable)
            layer_stats.removed = len(report.removed)
            layer_stats.collapsed = report.collapsed
        layer_stats.elapsed = time.time() - layer_start
        stats.layers.append(layer_stats)
        stats.record_memory()

    bounds_out_lb = bounds_out_ub = None
    if not precomputed:
        bounds_out_lb, bounds_out_ub = [], []
        for k in range(1, net.K + 1):
            if net.is_collapsed(k):
                continue
            idx = net.neurons(k)
            B = table.get(k)
            bounds_out_lb.append(B.lb[idx].clone())
            bounds_out_ub.append(B.ub[idx].clone())

    milp = None
    if build_milp:
        milp = build_network_milp(net, table, factory(), name="compressed")

    stats.total_time = time.time() - start
    logger.info(f"Removed {stats.removed_neurons} of {stats.original_neurons - net.count(net.K)} "
                f"hidden neurons in {stats.total_time:.2f}s")
    return CompressionResult(
        net=net.compressed(),
        working=net,
        removed_neurons=net.removed_neurons(),
        bounds_lb=bounds_out_lb,
        bounds_ub=bounds_out_ub,
        table=table,
        stats=stats,
        milp=milp,
    )
