#===- relucompress/__init__.py - ReluCompress Package ------------------====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   Bound-certified compression of feedforward ReLU networks: neurons that
#   are provably always active or always inactive on an input box are
#   folded out without changing the network's function on that box.
#
#===---------------------------------------------------------------------===#

"""
Example usage:
    >>> import torch.nn as nn
    >>> from relucompress import compress
    >>> model = nn.Sequential(nn.Linear(2, 4), nn.ReLU(), nn.Linear(4, 1))
    >>> result = compress(model, [-1.0, -1.0], [1.0, 1.0], mode="fast")
    >>> result.removed_neurons
"""

__version__ = "0.1.0"

from relucompress.back_end.compress import compress, CompressionResult
from relucompress.back_end.core import Net, DenseLayer, Bounds, BoundsTable, NeuronRef
from relucompress.back_end.errors import (
    CompressionError, PreconditionViolation, BoundInconsistency, SolverFailure
)
from relucompress.front_end.model_loader import from_layers, from_torch, to_torch, load_model
from relucompress.util.config import SolverConfig, ConfigManager

__all__ = [
    'compress', 'CompressionResult',
    'Net', 'DenseLayer', 'Bounds', 'BoundsTable', 'NeuronRef',
    'CompressionError', 'PreconditionViolation', 'BoundInconsistency', 'SolverFailure',
    'from_layers', 'from_torch', 'to_torch', 'load_model',
    'SolverConfig', 'ConfigManager',
]
