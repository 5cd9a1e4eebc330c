#!/usr/bin/env python3
"""
Unit tests for model loading (PyTorch, ONNX, layer lists) and export.
"""

import numpy as np
import onnx
import pytest
import torch
import torch.nn as nn
from onnx import TensorProto, helper, numpy_helper

from relucompress.back_end.errors import PreconditionViolation
from relucompress.front_end.model_loader import from_layers, from_onnx, from_torch, load_model, to_net, to_torch

from test_configs import MockFactory, scenario_layers, sample_box, UNIT_BOX_2


def make_onnx(path, layers, use_gemm=True):
    """Write an ONNX graph for (W, b) pairs with Relu between layers."""
    nodes, inits = [], []
    current = "input"
    for i, (W, b) in enumerate(layers):
        W = np.asarray(W, dtype=np.float32)
        b = np.asarray(b, dtype=np.float32)
        out = f"h{i}"
        if use_gemm:
            inits += [numpy_helper.from_array(W, f"W{i}"), numpy_helper.from_array(b, f"b{i}")]
            nodes.append(helper.make_node("Gemm", [current, f"W{i}", f"b{i}"], [out], transB=1))
        else:
            inits += [numpy_helper.from_array(W.T.copy(), f"W{i}"), numpy_helper.from_array(b, f"b{i}")]
            nodes.append(helper.make_node("MatMul", [current, f"W{i}"], [f"m{i}"]))
            nodes.append(helper.make_node("Add", [f"m{i}", f"b{i}"], [out]))
        current = out
        if i < len(layers) - 1:
            nodes.append(helper.make_node("Relu", [current], [f"r{i}"]))
            current = f"r{i}"
    n_in = np.asarray(layers[0][0]).shape[1]
    n_out = np.asarray(layers[-1][0]).shape[0]
    graph = helper.make_graph(
        nodes, "mlp",
        [helper.make_tensor_value_info("input", TensorProto.FLOAT, [1, n_in])],
        [helper.make_tensor_value_info(current, TensorProto.FLOAT, [1, n_out])],
        initializer=inits,
    )
    model = helper.make_model(graph, opset_imports=[helper.make_opsetid("", 13)])
    onnx.save(model, str(path))
    return path


class TestFromTorch:

    def test_sequential_matches_module(self):
        model = MockFactory.create_model("small_mlp").double()
        net = from_torch(model)
        assert net.K == 3
        assert [L.relu for L in net.layers] == [True, True, False]
        x = sample_box([-1.0] * 4, [1.0] * 4, n=64)
        with torch.no_grad():
            assert torch.allclose(net.forward(x), model(x))

    def test_leading_flatten_accepted(self):
        model = nn.Sequential(nn.Flatten(), nn.Linear(4, 3), nn.ReLU(), nn.Linear(3, 1))
        assert from_torch(model).input_size == 4

    @pytest.mark.parametrize("model", [
        nn.Sequential(nn.Linear(2, 3), nn.Sigmoid(), nn.Linear(3, 1)),
        nn.Sequential(nn.Linear(2, 3), nn.ReLU(), nn.Linear(3, 1), nn.ReLU()),
        nn.Sequential(nn.Linear(2, 3), nn.Linear(3, 1)),
        nn.Sequential(nn.Conv1d(1, 1, 2)),
    ])
    def test_rejected_architectures(self, model):
        with pytest.raises(PreconditionViolation):
            from_torch(model)

    def test_non_sequential_rejected(self):
        with pytest.raises(PreconditionViolation):
            from_torch(nn.Linear(2, 1))

    def test_to_torch_exports_live_network(self):
        net = from_layers(scenario_layers("dependent"))
        net.remove(1, 2)
        exported = to_torch(net)
        assert isinstance(exported[0], nn.Linear)
        assert exported[0].out_features == 2
        x = sample_box(*UNIT_BOX_2, n=16)
        with torch.no_grad():
            assert torch.allclose(exported(x), net.forward(x))


class TestConversions:

    def test_to_net_copies_net(self):
        net = from_layers(scenario_layers("unstable"))
        copy = to_net(net)
        copy.remove(1, 0)
        assert net.neurons(1) == [0]

    def test_to_net_rejects_unknown_types(self):
        with pytest.raises(PreconditionViolation):
            to_net("model.onnx")

    def test_from_layers_rejects_bad_pairs(self):
        with pytest.raises(PreconditionViolation):
            from_layers([])
        with pytest.raises(PreconditionViolation):
            from_layers([(torch.zeros(2, 2),)])
        with pytest.raises(PreconditionViolation):
            from_layers([(torch.zeros(3, 2), torch.zeros(3)), (torch.zeros(1, 2), torch.zeros(1))])


class TestLoadModel:

    @pytest.mark.parametrize("use_gemm", [True, False])
    def test_onnx(self, tmp_path, use_gemm):
        layers = scenario_layers("dependent")
        path = make_onnx(tmp_path / "net.onnx", [(W.numpy(), b.numpy()) for W, b in layers], use_gemm)
        net = from_onnx(str(path))
        reference = from_layers(layers)
        x = sample_box(*UNIT_BOX_2, n=32)
        assert torch.allclose(net.forward(x), reference.forward(x), atol=1e-6)
        assert load_model(str(path)).K == 2

    def test_onnx_unsupported_op(self, tmp_path):
        path = make_onnx(tmp_path / "net.onnx", [(np.eye(2), np.zeros(2)), (np.ones((1, 2)), np.zeros(1))])
        model = onnx.load(str(path))
        for node in model.graph.node:
            if node.op_type == "Relu":
                node.op_type = "Sigmoid"
        onnx.save(model, str(path))
        with pytest.raises(PreconditionViolation):
            from_onnx(str(path))

    def test_pickled_sequential(self, tmp_path):
        model = MockFactory.create_model("tiny_mlp")
        path = tmp_path / "model.pt"
        torch.save(model, str(path))
        net = load_model(str(path))
        assert [net.count(k) for k in range(1, net.K + 1)] == [4, 3, 1]

    def test_missing_and_unknown_files(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_model(str(tmp_path / "missing.onnx"))
        path = tmp_path / "model.h5"
        path.write_text("")
        with pytest.raises(PreconditionViolation):
            load_model(str(path))
