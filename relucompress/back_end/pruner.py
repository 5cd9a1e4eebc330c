#===- relucompress/back_end/pruner.py - Stability Pruning --------------====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   Removes stable neurons of a hidden layer from the network without
#   changing its function on the input box.
#
#   * Inactive neurons (U <= 0) output 0 and are simply dropped.
#   * Active neurons (L >= 0) are affine. They are substituted into the next
#     layer when that substitution is expressible: either the whole layer is
#     stable and collapses (next layer re-sourced to this layer's source),
#     or the neuron's row is a linear combination of other active rows kept
#     in the layer.
#   * Unstable neurons stay.
#
#===---------------------------------------------------------------------===#

import logging
import torch
from dataclasses import dataclass, field
from typing import List

from relucompress.back_end.core import Net, BoundsTable, Stability, classify

logger = logging.getLogger(__name__)

DEPENDENCE_TOL = 1e-9


@dataclass
class LayerPruneReport:
    layer: int
    inactive: List[int] = field(default_factory=list)
    folded_active: List[int] = field(default_factory=list)
    kept_active: List[int] = field(default_factory=list)
    unstable: List[int] = field(default_factory=list)
    collapsed: bool = False

    @property
    def removed(self) -> List[int]:
        return sorted(self.inactive + self.folded_active)

    def __str__(self) -> str:
        return (f"Layer {self.layer}: {len(self.inactive)} stable inactive, "
                f"{len(self.folded_active) + len(self.kept_active)} stable active "
                f"({len(self.folded_active)} folded), {len(self.unstable)} unstable"
                + (", layer collapsed" if self.collapsed else ""))


def classify_layer(net: Net, table: BoundsTable, k: int) -> LayerPruneReport:
    """Split the live neurons of layer k by stability label."""
    B = table.get(k)
    report = LayerPruneReport(k)
    kept_active = []
    for j in net.neurons(k):
        label = classify(float(B.lb[j]), float(B.ub[j]))
        if label == Stability.INACTIVE:
            report.inactive.append(j)
        elif label == Stability.ACTIVE:
            kept_active.append(j)
        else:
            report.unstable.append(j)
    report.kept_active = kept_active
    return report


def _collapse(net: Net, k: int, active: List[int]) -> None:
    """Substitute every active neuron of layer k into layer k+1 and re-source it.

    W_{k+1} <- W_{k+1}[:, A] W_k[A, :],  b_{k+1} <- b_{k+1} + W_{k+1}[:, A] b_k[A]
    """
    L, nxt = net.layer(k), net.layer(k + 1)
    if active:
        Wn = nxt.W[:, active]
        nxt.b = nxt.b + Wn @ L.b[active]
        nxt.W = Wn @ L.W[active]
    else:
        nxt.W = torch.zeros(nxt.size, L.W.shape[1], dtype=nxt.W.dtype, device=nxt.W.device)
    nxt.src = L.src
    for j in active:
        net.remove(k, j)


def _fold_dependent(net: Net, k: int, active: List[int], tol: float):
    """Fold active neurons whose rows depend on earlier kept active rows.

    Returns (folded, kept). A row W_k[j] = sum_a alpha_a W_k[a] gives
    x_j = sum_a alpha_a x_a + (b_j - sum_a alpha_a b_a), which layer k+1
    absorbs into the columns of the kept neurons and its bias.
    """
    L, nxt = net.layer(k), net.layer(k + 1)
    src = net.neurons(L.src)
    basis: List[int] = []
    folded: List[int] = []
    for j in active:
        row = L.W[j, src]
        scale = max(1.0, float(torch.linalg.norm(row)))
        if basis:
            R = L.W[basis][:, src].T                          # [n_src, n_basis]
            alpha = torch.linalg.lstsq(R, row.unsqueeze(1)).solution.squeeze(1)
            residual = float(torch.linalg.norm(row - R @ alpha))
        else:
            alpha = row.new_zeros(0)
            residual = float(torch.linalg.norm(row))
        if residual > tol * scale:
            basis.append(j)
            continue

        c = nxt.W[:, j].clone()
        offset = L.b[j] - (alpha @ L.b[basis] if basis else 0.0)
        if basis:
            nxt.W[:, basis] = nxt.W[:, basis] + torch.outer(c, alpha)
        nxt.b = nxt.b + c * offset
        net.remove(k, j)
        folded.append(j)
    return folded, basis


def prune_layer(net: Net, table: BoundsTable, k: int, tol: float = DEPENDENCE_TOL) -> LayerPruneReport:
    """Remove the stable neurons of hidden layer k in place.

    ``table`` must hold bounds for layer k. The output layer is never
    pruned.
    """
    if not 1 <= k < net.K:
        raise ValueError(f"Only hidden layers 1..{net.K - 1} can be pruned, got {k}")
    if net.is_collapsed(k):
        return LayerPruneReport(k, collapsed=True)
    nxt = net.layer(k + 1)
    if nxt.src != k:
        raise ValueError(f"Layer {k + 1} reads from layer {nxt.src}, expected {k}")

    report = classify_layer(net, table, k)
    for j in report.inactive:
        net.remove(k, j)

    active = report.kept_active
    if not report.unstable:
        _collapse(net, k, active)
        report.folded_active, report.kept_active = list(active), []
        report.collapsed = True
    elif active:
        report.folded_active, report.kept_active = _fold_dependent(net, k, active, tol)

    logger.info(str(report))
    if report.collapsed:
        logger.info(f"Layer {k + 1} now reads from layer {nxt.src}")
    return report
