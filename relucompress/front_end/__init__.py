#===- relucompress/front_end/__init__.py - Network Front End -----------====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   Loading networks from torch, ONNX, raw arrays and JSON, and exporting
#   compressed networks back to torch.
#
#===---------------------------------------------------------------------===#

from relucompress.front_end.model_loader import (
    from_layers, from_torch, from_onnx, to_torch, to_net, load_model
)

__all__ = ['from_layers', 'from_torch', 'from_onnx', 'to_torch', 'to_net', 'load_model']
