#===- relucompress/back_end/core.py - Core Data Structures -------------====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   Core data structures for the compression engine: DenseLayer, Net (the
#   network model with per-layer live sets), Bounds, BoundsTable and the
#   derived stability labels.
#
#===---------------------------------------------------------------------===#

# core.py
from __future__ import annotations
import copy
import torch
from dataclasses import dataclass, field
from typing import Dict, List, Tuple, Optional

from relucompress.back_end.errors import BoundInconsistency, PreconditionViolation
from relucompress.util.device_manager import as_tensor

INPUT_LAYER = 0        # layer id of the input box
BOUND_TOL = 1e-7       # slack allowed before L > U counts as inconsistent


class Stability:
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    UNSTABLE = "UNSTABLE"


def classify(lb: float, ub: float) -> str:
    """Stability label of a single neuron. L == U == 0 is inactive."""
    if ub <= 0: return Stability.INACTIVE
    if lb >= 0: return Stability.ACTIVE
    return Stability.UNSTABLE


@dataclass(frozen=True)
class NeuronRef:
    layer: int                                  # 1..K, 0 is the input
    index: int                                  # original row index in the layer

    def __str__(self) -> str:
        return f"({self.layer}, {self.index})"


@dataclass
class DenseLayer:
    W: torch.Tensor                             # [n_k, n_src] rows/cols are original indices
    b: torch.Tensor                             # [n_k]
    src: int                                    # layer the columns of W refer to
    relu: bool = True                           # False for the identity output layer
    live: Optional[List[int]] = None            # None means every row is live

    def __post_init__(self):
        self.W = as_tensor(self.W)
        self.b = as_tensor(self.b).reshape(-1)
        if self.W.dim() != 2:
            raise PreconditionViolation(f"Weight matrix must be 2-D, got shape {tuple(self.W.shape)}")
        if self.W.shape[0] != self.b.shape[0]:
            raise PreconditionViolation(
                f"Weight rows ({self.W.shape[0]}) and bias length ({self.b.shape[0]}) differ")
        if self.live is None:
            self.live = list(range(self.size))

    @property
    def size(self) -> int:
        return int(self.b.shape[0])


@dataclass
class Net:
    """Layered network with per-layer live sets.

    Layers are numbered 1..K, layer 0 is the input. Rows of a layer keep their
    original index for the whole run; removing a neuron only drops it from the
    live set, so removed indices stay reportable in the original numbering.
    """
    layers: List[DenseLayer]
    input_size: int

    def __post_init__(self):
        if not self.layers:
            raise PreconditionViolation("Network has no layers")
        for k, L in enumerate(self.layers, start=1):
            if not INPUT_LAYER <= L.src < k:
                raise PreconditionViolation(f"Layer {k} has invalid source layer {L.src}")
            expected = self.count(L.src)
            if L.W.shape[1] != expected:
                raise PreconditionViolation(
                    f"Layer {k} expects {L.W.shape[1]} inputs but layer {L.src} has {expected} neurons")

    # ---- structure ----
    @property
    def K(self) -> int:
        return len(self.layers)

    def layer(self, k: int) -> DenseLayer:
        if not 1 <= k <= self.K:
            raise IndexError(f"Layer {k} out of range 1..{self.K}")
        return self.layers[k - 1]

    def count(self, k: int) -> int:
        """Original number of neurons of layer k (input features for k == 0)."""
        return self.input_size if k == INPUT_LAYER else self.layer(k).size

    def neurons(self, k: int) -> List[int]:
        """Live neuron indices of layer k."""
        return list(range(self.input_size)) if k == INPUT_LAYER else list(self.layer(k).live)

    def removed(self, k: int) -> List[int]:
        live = set(self.layer(k).live)
        return [i for i in range(self.layer(k).size) if i not in live]

    def removed_neurons(self) -> List[List[int]]:
        return [self.removed(k) for k in range(1, self.K + 1)]

    def is_collapsed(self, k: int) -> bool:
        return k != INPUT_LAYER and not self.layer(k).live

    def nearest_live_predecessor(self, k: int) -> int:
        """Nearest earlier layer with at least one live neuron (0 is the input)."""
        m = k - 1
        while m > INPUT_LAYER and self.is_collapsed(m):
            m -= 1
        return m

    def remove(self, k: int, j: int) -> None:
        self.layer(k).live.remove(j)

    # ---- live views ----
    def live_weights(self, k: int) -> torch.Tensor:
        L = self.layer(k)
        return L.W[L.live][:, self.neurons(L.src)]

    def live_bias(self, k: int) -> torch.Tensor:
        L = self.layer(k)
        return L.b[L.live]

    def snapshot(self) -> "Net":
        return copy.deepcopy(self)

    @torch.no_grad()
    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """Evaluate the live network on a batch [N, n_in] or a single input [n_in]."""
        x = as_tensor(x)
        single = x.dim() == 1
        if single: x = x.unsqueeze(0)
        values: Dict[int, torch.Tensor] = {INPUT_LAYER: x}
        for k in range(1, self.K + 1):
            L = self.layer(k)
            if not L.live:
                continue
            y = values[L.src] @ self.live_weights(k).T + self.live_bias(k)
            values[k] = torch.relu(y) if L.relu else y
        out = values[self.K]
        return out[0] if single else out

    def compressed(self) -> "Net":
        """Fresh network made of the live sub-matrices, collapsed layers dropped."""
        surviving = [k for k in range(1, self.K + 1) if not self.is_collapsed(k)]
        position = {INPUT_LAYER: INPUT_LAYER}
        layers = []
        for new_k, k in enumerate(surviving, start=1):
            L = self.layer(k)
            layers.append(DenseLayer(self.live_weights(k), self.live_bias(k),
                                     src=position[L.src], relu=L.relu))
            position[k] = new_k
        return Net(layers, self.input_size)

    def to_layers(self) -> List[Tuple[torch.Tensor, torch.Tensor]]:
        net = self.compressed()
        return [(L.W.clone(), L.b.clone()) for L in net.layers]


@dataclass(eq=True, frozen=True)
class Bounds:
    lb: torch.Tensor
    ub: torch.Tensor
    def copy(self) -> "Bounds": return Bounds(self.lb.clone(), self.ub.clone())


def stability_masks(B: Bounds) -> Tuple[torch.Tensor, torch.Tensor, torch.Tensor]:
    """Boolean masks (inactive, active, unstable); every entry is in exactly one."""
    inactive = B.ub <= 0
    active = (B.lb >= 0) & ~inactive
    unstable = ~(inactive | active)
    return inactive, active, unstable


@dataclass
class BoundsTable:
    """Pre-activation bounds per layer, indexed by original neuron index.

    Entry 0 holds the input box. Bounds are only ever tightened.
    """
    entries: Dict[int, Bounds] = field(default_factory=dict)

    def __contains__(self, k: int) -> bool:
        return k in self.entries

    def get(self, k: int) -> Bounds:
        return self.entries[k]

    def set(self, k: int, B: Bounds) -> None:
        self._check(k, B)
        self.entries[k] = B

    def tighten(self, k: int, B: Bounds) -> Bounds:
        """Monotone update: lower bounds only rise, upper bounds only fall."""
        if k not in self.entries:
            self.set(k, B); return B
        old = self.entries[k]
        new = Bounds(torch.maximum(old.lb, B.lb), torch.minimum(old.ub, B.ub))
        self.set(k, new)
        return new

    def neuron(self, ref: NeuronRef) -> Tuple[float, float]:
        B = self.entries[ref.layer]
        return float(B.lb[ref.index]), float(B.ub[ref.index])

    def label(self, ref: NeuronRef) -> str:
        return classify(*self.neuron(ref))

    def snapshot(self) -> "BoundsTable":
        return BoundsTable({k: B.copy() for k, B in self.entries.items()})

    def _check(self, k: int, B: Bounds) -> None:
        if B.lb.shape != B.ub.shape:
            raise PreconditionViolation(f"Layer {k}: lower/upper bound shapes differ")
        nan = torch.nonzero(torch.isnan(B.lb) | torch.isnan(B.ub), as_tuple=True)[0]
        if nan.numel() > 0:
            raise PreconditionViolation(f"Layer {k}: bound of neuron {int(nan[0])} is NaN")
        bad =torch.nonzero(B.lb > B.ub + BOUND_TOL, as_tuple=True)[0]
        if bad.numel() > 0:
            j = int(bad[0])
            raise BoundInconsistency(NeuronRef(k, j), float(B.lb[j]), float(B.ub[j]))
