#===- relucompress/back_end/interval_tf/tf_mlp.py - MLP Interval TF ----====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   MLP Interval Transfer Functions. One-shot interval arithmetic giving
#   sound pre-activation bounds for a dense layer from the post-activation
#   bounds of its (possibly chained) source layer.
#
#===---------------------------------------------------------------------===#

import logging
import torch
from relucompress.back_end.core import Bounds, BoundsTable, Net, INPUT_LAYER

logger = logging.getLogger(__name__)


def affine_bounds(W_pos, W_neg, b, Bin: Bounds) -> Bounds:
    lb = W_pos @ Bin.lb + W_neg @ Bin.ub + b
    ub = W_pos @ Bin.ub + W_neg @ Bin.lb + b
    return Bounds(lb, ub)


def tf_relu(B: Bounds) -> Bounds:
    return Bounds(torch.clamp(B.lb, min=0.0), torch.clamp(B.ub, min=0.0))


def post_activation_bounds(net: Net, table: BoundsTable, k: int) -> Bounds:
    """Bounds on the outputs of the live neurons of layer k.

    For the input layer these are the box itself; for hidden layers the
    pre-activation bounds are clamped by the ReLU.
    """
    B = table.get(k)
    if k == INPUT_LAYER:
        return B
    idx = net.neurons(k)
    return tf_relu(Bounds(B.lb[idx], B.ub[idx]))


def tf_dense(net: Net, table: BoundsTable, k: int) -> Bounds:
    """Interval bounds for every row of layer k; written into the table."""
    L = net.layer(k)
    Bin = post_activation_bounds(net, table, L.src)
    W = L.W[:, net.neurons(L.src)]
    W_pos = torch.clamp(W, min=0); W_neg = torch.clamp(W, max=0)

    B = affine_bounds(W_pos, W_neg, L.b, Bin)
    logger.debug(f"Layer {k}: interval bounds from layer {L.src} "
                 f"(lb min {float(B.lb.min()):.4g}, ub max {float(B.ub.max()):.4g})")
    return table.tighten(k, B)
