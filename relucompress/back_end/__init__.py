#===- relucompress/back_end/__init__.py - Compression Back End ---------====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   Core data structures (DenseLayer, Net, Bounds, BoundsTable), interval
#   propagation, MILP encoding, bound tightening and stability pruning.
#   The compression driver lives in relucompress.back_end.compress.
#
#===---------------------------------------------------------------------===#

# Core data structures
from .core import DenseLayer, Net, Bounds, BoundsTable, NeuronRef, Stability, classify, stability_masks

# Errors
from .errors import CompressionError, PreconditionViolation, BoundInconsistency, SolverFailure

# Bound computation
from .interval_tf import tf_dense, tf_relu, affine_bounds, post_activation_bounds
from .cons_exportor import Encoding, encode_prefix, add_preactivation_objective, build_network_milp
from .tightener import NeuronBound, solve_neuron_bounds, tighten_layer

# Pruning
from .pruner import LayerPruneReport, classify_layer, prune_layer

# Solver interfaces
from .solver.solver_base import Solver, SolveStatus
