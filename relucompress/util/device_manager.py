#===- relucompress/util/device_manager.py - Device/Dtype Defaults ------====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   Device and dtype used for all network tensors. Folding multiplies weight
#   matrices together, so float64 is the default to keep the compressed
#   network equal to the original up to rounding.
#
#===---------------------------------------------------------------------===#

import torch
from typing import Tuple

_DTYPES = {
    "float32": torch.float32,
    "float64": torch.float64,
}

_DEVICE = torch.device("cpu")
_DTYPE = torch.float64


def get_current_settings() -> Tuple[torch.device, torch.dtype]:
    return _DEVICE, _DTYPE


def set_default_dtype(name: str) -> torch.dtype:
    global _DTYPE
    if name not in _DTYPES:
        raise ValueError(f"Unsupported dtype '{name}'. Choose one of {sorted(_DTYPES)}")
    _DTYPE = _DTYPES[name]
    return _DTYPE


def as_tensor(x) -> torch.Tensor:
    """Convert arrays, lists or tensors to a detached tensor with the defaults."""
    if isinstance(x, torch.Tensor):
        return x.detach().to(device=_DEVICE, dtype=_DTYPE).clone()
    return torch.as_tensor(x, device=_DEVICE, dtype=_DTYPE).clone()
