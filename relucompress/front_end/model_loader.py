#===- relucompress/front_end/model_loader.py - Model Loading -----------====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   Conversion between user-facing network formats and the layered Net:
#   raw (W, b) pairs, torch nn.Sequential of Linear/ReLU modules, ONNX
#   graphs of Gemm/MatMul/Add/Relu nodes and serialized JSON networks.
#   Activations other than ReLU (hidden) and identity (output) are
#   rejected.
#
#===---------------------------------------------------------------------===#

from __future__ import annotations
import logging
import os
from typing import List, Sequence, Tuple, Union

import numpy as np
import onnx
from onnx import numpy_helper
import torch
import torch.nn as nn

from relucompress.back_end.core import DenseLayer, Net
from relucompress.back_end.errors import PreconditionViolation
from relucompress.back_end.serialization import load_net_from_file
from relucompress.util.device_manager import get_current_settings

logger = logging.getLogger(__name__)

LayerPairs = Sequence[Tuple[Union[torch.Tensor, np.ndarray, list], Union[torch.Tensor, np.ndarray, list]]]


def from_layers(layers: LayerPairs) -> Net:
    """Net from ordered (W, b) pairs; ReLU on every layer but the last."""
    if len(layers) == 0:
        raise PreconditionViolation("Network has no layers")
    dense = []
    for k, pair in enumerate(layers, start=1):
        if len(pair) != 2:
            raise PreconditionViolation(f"Layer {k} must be a (W, b) pair")
        W, b = pair
        dense.append(DenseLayer(W, b, src=k - 1, relu=k < len(layers)))
    return Net(dense, input_size=int(dense[0].W.shape[1]))


def from_torch(model: nn.Module) -> Net:
    """Net from an nn.Sequential alternating Linear and ReLU.

    A leading nn.Flatten is accepted. Every hidden Linear must be followed by
    exactly one ReLU and the last Linear by nothing.
    """
    if not isinstance(model, nn.Sequential):
        raise PreconditionViolation(f"Expected nn.Sequential, got {type(model).__name__}")
    mods = list(model)
    if mods and isinstance(mods[0], nn.Flatten):
        mods = mods[1:]

    pairs = []
    i = 0
    while i < len(mods):
        mod = mods[i]
        if not isinstance(mod, nn.Linear):
            raise PreconditionViolation(f"Unsupported module {type(mod).__name__} at position {i}; "
                                        f"only Linear/ReLU networks are supported")
        W = mod.weight.detach()
        b = mod.bias.detach() if mod.bias is not None else torch.zeros(mod.out_features)
        pairs.append((W, b))
        nxt = mods[i + 1] if i + 1 < len(mods) else None
        if nxt is None:
            break
        if not isinstance(nxt, nn.ReLU):
            raise PreconditionViolation(
                f"Hidden Linear layer {len(pairs)} is followed by {type(nxt).__name__}, expected ReLU")
        if i + 2 >= len(mods):
            raise PreconditionViolation("Output layer must use the identity activation, found ReLU")
        i += 2
    return from_layers(pairs)


def to_torch(net: Net) -> nn.Sequential:
    """nn.Sequential of the live network (collapsed layers dropped)."""
    device, dtype = get_current_settings()
    compact = net.compressed()
    mods: List[nn.Module] = []
    for L in compact.layers:
        lin = nn.Linear(L.W.shape[1], L.W.shape[0], device=device, dtype=dtype)
        with torch.no_grad():
            lin.weight.copy_(L.W)
            lin.bias.copy_(L.b)
        mods.append(lin)
        if L.relu:
            mods.append(nn.ReLU())
    return nn.Sequential(*mods)


def _onnx_attr(node, name: str, default):
    for attr in node.attribute:
        if attr.name == name:
            return onnx.helper.get_attribute_value(attr)
    return default


def from_onnx(onnx_path: str) -> Net:
    """Net from an ONNX feedforward graph (Gemm or MatMul+Add, then Relu)."""
    onnx_model = onnx.load(onnx_path)
    onnx.checker.check_model(onnx_model)
    graph = onnx_model.graph
    initializers = {init.name: numpy_helper.to_array(init) for init in graph.initializer}

    pairs: List[List[np.ndarray]] = []
    relu_after: List[bool] = []
    for node in graph.node:
        op = node.op_type
        if op == "Gemm":
            W = initializers[node.input[1]].astype(np.float64)
            if not _onnx_attr(node, "transB", 0):
                W = W.T
            W = W * float(_onnx_attr(node, "alpha", 1.0))
            b = initializers[node.input[2]].astype(np.float64) if len(node.input) > 2 else np.zeros(W.shape[0])
            pairs.append([W, b * float(_onnx_attr(node, "beta", 1.0))])
            relu_after.append(False)
        elif op == "MatMul":
            name = next((n for n in node.input if n in initializers), None)
            if name is None:
                raise PreconditionViolation(f"MatMul node '{node.name}' has no constant weight")
            W = initializers[name].astype(np.float64).T     # x @ W with W [in, out]
            pairs.append([W, np.zeros(W.shape[0])])
            relu_after.append(False)
        elif op == "Add":
            name = next((n for n in node.input if n in initializers), None)
            if name is None or not pairs or relu_after[-1]:
                raise PreconditionViolation(f"Add node '{node.name}' is not a bias addition")
            pairs[-1][1] = pairs[-1][1] + initializers[name].astype(np.float64).reshape(-1)
        elif op == "Relu":
            if not pairs or relu_after[-1]:
                raise PreconditionViolation(f"Relu node '{node.name}' does not follow an affine layer")
            relu_after[-1] = True
        elif op in ("Flatten", "Identity") and not pairs:
            continue
        else:
            raise PreconditionViolation(f"Unsupported ONNX operator '{op}'")

    if not pairs:
        raise PreconditionViolation(f"No affine layers found in {onnx_path}")
    if relu_after[-1] or not all(relu_after[:-1]):
        raise PreconditionViolation("ONNX network must use ReLU on hidden layers and identity on the output")
    return from_layers([tuple(p) for p in pairs])


def to_net(model) -> Net:
    """Coerce a Net, nn.Sequential or list of (W, b) pairs into a fresh Net."""
    if isinstance(model, Net):
        return model.snapshot()
    if isinstance(model, nn.Module):
        return from_torch(model)
    if isinstance(model, (list, tuple)):
        return from_layers(model)
    raise PreconditionViolation(f"Unsupported network type {type(model).__name__}")


def load_model(path: str) -> Net:
    """Load a network from .pt/.pth (pickled nn.Sequential), .onnx or .json."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Model file not found: {path}")
    ext = os.path.splitext(path)[1].lower()
    logger.info(f"Loading model: {path}")
    if ext in (".pt", ".pth"):
        model = torch.load(path, map_location="cpu", weights_only=False)
        return to_net(model)
    if ext == ".onnx":
        return from_onnx(path)
    if ext == ".json":
        net, _ = load_net_from_file(path)
        return net
    raise PreconditionViolation(f"Unsupported model format '{ext}'")
