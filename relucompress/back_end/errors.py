#===- relucompress/back_end/errors.py - Compression Error Taxonomy -----====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   Exceptions raised by the compression engine. Precondition and bound
#   inconsistency errors abort a compression run; solver failures are
#   recovered per neuron by the tightener.
#
#===---------------------------------------------------------------------===#

from __future__ import annotations
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from relucompress.back_end.core import NeuronRef


class CompressionError(Exception):
    """Base class for all compression errors."""
    pass


class PreconditionViolation(CompressionError):
    """Input rejected before any computation starts."""
    pass


class BoundInconsistency(CompressionError):
    """A neuron ended up with L > U. Signals a propagation or folding bug."""

    def __init__(self, neuron: "NeuronRef", lb: float, ub: float):
        self.neuron = neuron
        self.lb = float(lb)
        self.ub = float(ub)
        super().__init__(
            f"Inconsistent bounds for neuron {neuron}: lower {self.lb:.6g} > upper {self.ub:.6g}")


class SolverFailure(CompressionError):
    """A single optimisation did not return a usable value."""

    def __init__(self, status: str, neuron: Optional["NeuronRef"] = None, sense: Optional[str] = None,
                 detail: Optional[str] = None):
        self.status = status
        self.neuron = neuron
        self.sense = sense
        self.detail = detail
        where = f" for neuron {neuron}" if neuron is not None else ""
        what = f" ({sense})" if sense else ""
        why = f": {detail}" if detail else ""
        super().__init__(f"Solver returned {status}{where}{what}{why}")

    def at(self, neuron: "NeuronRef", sense: str) -> "SolverFailure":
        """Same failure attributed to one bound problem."""
        return SolverFailure(self.status, neuron, sense, self.detail)
