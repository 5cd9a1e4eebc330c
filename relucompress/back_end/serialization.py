#===- relucompress/back_end/serialization.py - Net JSON Serialization --====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   JSON serialization of networks (with their live sets and layer sources)
#   and of compression results. Tensors are stored as base64-encoded .npy
#   payloads so values survive the round trip bit for bit.
#
#===---------------------------------------------------------------------===#

from __future__ import annotations
import json
import base64
import binascii
import io
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import torch

from relucompress.back_end.core import DenseLayer, Net
from relucompress.back_end.errors import CompressionError

logger = logging.getLogger(__name__)

# Version for format compatibility
SERIALIZATION_VERSION = "1.0"


class SerializationError(CompressionError):
    """Malformed or incompatible serialized payload."""
    pass


class TensorEncoder:
    """Handles PyTorch tensor encoding/decoding to/from JSON-compatible format."""

    @staticmethod
    def encode_tensor(tensor: torch.Tensor) -> Dict[str, Any]:
        np_array = tensor.detach().cpu().numpy()
        buffer = io.BytesIO()
        np.save(buffer, np_array)
        return {
            "data": base64.b64encode(buffer.getvalue()).decode('utf-8'),
            "dtype": str(tensor.dtype),
            "shape": list(tensor.shape),
        }

    @staticmethod
    def decode_tensor(tensor_dict: Dict[str, Any]) -> torch.Tensor:
        try:
            buffer = io.BytesIO(base64.b64decode(tensor_dict["data"].encode('utf-8'), validate=True))
            np_array = np.load(buffer, allow_pickle=False)
        except (KeyError, AttributeError, binascii.Error, ValueError) as e:
            raise SerializationError(f"Invalid tensor payload: {e}")
        tensor = torch.from_numpy(np_array)
        if list(tensor.shape) != list(tensor_dict.get("shape", tensor.shape)):
            raise SerializationError(
                f"Tensor shape {list(tensor.shape)} does not match declared {tensor_dict['shape']}")
        return tensor


class NetSerializer:
    """Handles Net serialization/deserialization."""

    @staticmethod
    def serialize_layer(layer: DenseLayer) -> Dict[str, Any]:
        return {
            "W": TensorEncoder.encode_tensor(layer.W),
            "b": TensorEncoder.encode_tensor(layer.b),
            "src": layer.src,
            "relu": layer.relu,
            "live": list(layer.live),
        }

    @staticmethod
    def deserialize_layer(layer_dict: Dict[str, Any]) -> DenseLayer:
        try:
            return DenseLayer(
                W=TensorEncoder.decode_tensor(layer_dict["W"]),
                b=TensorEncoder.decode_tensor(layer_dict["b"]),
                src=int(layer_dict["src"]),
                relu=bool(layer_dict["relu"]),
                live=[int(i) for i in layer_dict["live"]],
            )
        except KeyError as e:
            raise SerializationError(f"Layer missing required field {e}")

    @staticmethod
    def serialize_net(net: Net, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        net_metadata = {
            "creation_time": datetime.now().isoformat(),
            "framework_version": f"relucompress-{SERIALIZATION_VERSION}",
            "layer_count": net.K,
            "layer_sizes": [len(net.neurons(k)) for k in range(1, net.K + 1)],
        }
        if metadata:
            net_metadata.update(metadata)
        return {
            "format_version": SERIALIZATION_VERSION,
            "net": {
                "input_size": net.input_size,
                "layers": [NetSerializer.serialize_layer(L) for L in net.layers],
                "metadata": net_metadata,
            },
        }

    @staticmethod
    def deserialize_net(net_dict: Dict[str, Any]) -> Tuple[Net, Dict[str, Any]]:
        errors = validate_json_schema(net_dict)
        if errors:
            raise SerializationError("; ".join(errors))
        format_version = net_dict["format_version"]
        if format_version != SERIALIZATION_VERSION:
            logger.warning(f"Format version mismatch. Expected {SERIALIZATION_VERSION}, got {format_version}")

        body = net_dict["net"]
        layers = [NetSerializer.deserialize_layer(d) for d in body["layers"]]
        net = Net(layers, int(body["input_size"]))
        for k, L in enumerate(net.layers, start=1):
            if any(not 0 <= i < L.size for i in L.live):
                raise SerializationError(f"Layer {k} lists live neurons outside 0..{L.size - 1}")
            if len(set(L.live)) != len(L.live):
                raise SerializationError(f"Layer {k} lists a live neuron more than once")
        return net, body.get("metadata", {})


def serialize_result(result) -> Dict[str, Any]:
    """JSON-ready view of a CompressionResult."""
    payload: Dict[str, Any] = {
        "format_version": SERIALIZATION_VERSION,
        "removed_neurons": [list(r) for r in result.removed_neurons],
        "bounds": None,
        "stats": result.stats.to_dict(),
        "compressed_net": NetSerializer.serialize_net(result.net)["net"],
    }
    if result.bounds_lb is not None:
        payload["bounds"] = [
            {"lb": lb.tolist(), "ub": ub.tolist()} for lb, ub in zip(result.bounds_lb, result.bounds_ub)
        ]
    return payload


# High-level API functions
def save_net_to_file(net: Net, filepath: str, metadata: Optional[Dict[str, Any]] = None,
                     indent: int = 2) -> None:
    net_dict = NetSerializer.serialize_net(net, metadata)
    with open(filepath, 'w', encoding='utf-8') as f:
        json.dump(net_dict, f, indent=indent, ensure_ascii=False)
    logger.info(f"Net saved to {filepath}")


def load_net_from_file(filepath: str) -> Tuple[Net, Dict[str, Any]]:
    with open(filepath, 'r', encoding='utf-8') as f:
        try:
            net_dict = json.load(f)
        except json.JSONDecodeError as e:
            raise SerializationError(f"Invalid JSON in {filepath}: {e}")
    net, metadata = NetSerializer.deserialize_net(net_dict)
    logger.info(f"Net loaded from {filepath}")
    return net, metadata


def save_net_to_string(net: Net, metadata: Optional[Dict[str, Any]] = None, indent: int = 2) -> str:
    return json.dumps(NetSerializer.serialize_net(net, metadata), indent=indent, ensure_ascii=False)


def load_net_from_string(json_str: str) -> Tuple[Net, Dict[str, Any]]:
    try:
        net_dict = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise SerializationError(f"Invalid JSON: {e}")
    return NetSerializer.deserialize_net(net_dict)


def save_result_to_file(result, filepath: str, indent: int = 2) -> None:
    with open(filepath, 'w', encoding='utf-8') as f:
        json.dump(serialize_result(result), f, indent=indent, ensure_ascii=False)
    logger.info(f"Compression result saved to {filepath}")


# Validation utilities
def validate_json_schema(net_dict: Dict[str, Any]) -> List[str]:
    """Validate JSON schema structure before deserialization."""
    errors = []
    if not isinstance(net_dict, dict):
        return ["Top level must be an object"]
    if "format_version" not in net_dict:
        errors.append("Missing 'format_version' field")
    if "net" not in net_dict:
        errors.append("Missing 'net' field")
        return errors

    body = net_dict["net"]
    if "input_size" not in body:
        errors.append("Missing 'input_size' field in net")
    if "layers" not in body:
        errors.append("Missing 'layers' field in net")
    elif not isinstance(body["layers"], list):
        errors.append("'layers' must be a list")
    else:
        for i, layer in enumerate(body["layers"]):
            if not isinstance(layer, dict):
                errors.append(f"Layer {i} must be a dictionary")
                continue
            for field in ("W", "b", "src", "relu", "live"):
                if field not in layer:
                    errors.append(f"Layer {i} missing required field '{field}'")
    return errors
