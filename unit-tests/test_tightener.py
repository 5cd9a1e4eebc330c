#!/usr/bin/env python3
"""
Unit tests for the optimisation-based bound tightening ("standard" mode).

This module tests:
- Tightened bounds equal the exact pre-activation range on small networks
- Bounds never widen relative to the interval seed
- Solver failures fall back to the interval bound with a warning
- Parallel and sequential solving give identical bounds
"""

import unittest
import torch

from relucompress.back_end.core import Bounds, BoundsTable, NeuronRef, INPUT_LAYER
from relucompress.back_end.errors import SolverFailure
from relucompress.back_end.interval_tf import tf_dense
from relucompress.back_end.solver import HighsSolver, SolveStatus
from relucompress.back_end.tightener import solve_neuron_bounds, tighten_layer
from relucompress.front_end.model_loader import from_layers, from_torch

from test_configs import MockFactory, scenario_layers, UNIT_BOX_2


class TimeoutSolver(HighsSolver):
    """HiGHS backend that reports every solve as timed out."""

    def status(self) -> str:
        return SolveStatus.TIMEOUT


class MaxOnlySolver(HighsSolver):
    """Fails every minimisation."""

    def status(self) -> str:
        if self._objective[3] == "min":
            return SolveStatus.NUMERICAL_ERROR
        return super().status()


class SizeLimitedSolver(HighsSolver):
    """Backend that refuses to optimise, like Gurobi on a size-limited license."""

    def optimize(self, timelimit=None) -> None:
        raise SolverFailure(SolveStatus.UNKNOWN, detail="Model too large for size-limited license")


class UnlicensedSolver(HighsSolver):
    """Backend that cannot even create a model."""

    def begin(self, name: str = "compress") -> None:
        raise SolverFailure(SolveStatus.UNKNOWN, detail="No license found")


def exact_solver():
    return HighsSolver(mip_gap=1e-9)


def seeded(net, lb, ub, upto: int) -> BoundsTable:
    table = BoundsTable()
    table.set(INPUT_LAYER, Bounds(torch.as_tensor(lb, dtype=torch.float64), torch.as_tensor(ub, dtype=torch.float64)))
    for k in range(1, upto + 1):
        tf_dense(net, table, k)
    return table


class TestTightenLayer(unittest.TestCase):

    def setUp(self):
        torch.manual_seed(42)

    def test_exact_range_on_abs_network(self):
        net = from_layers(scenario_layers("milp_inactive"))
        table = seeded(net, *UNIT_BOX_2, upto=2)
        failures = tighten_layer(net, table, 2, exact_solver)
        self.assertEqual(failures, [])
        B = table.get(2)
        self.assertTrue(torch.allclose(B.lb, torch.tensor([-2.5, -1.0], dtype=torch.float64), atol=1e-6))
        self.assertTrue(torch.allclose(B.ub, torch.tensor([-0.5, 1.0], dtype=torch.float64), atol=1e-6))
        self.assertEqual(table.label(NeuronRef(2, 0)), "INACTIVE")

    def test_first_layer_matches_interval(self):
        # on the first layer the interval bound is already exact
        net = from_layers(scenario_layers("dependent"))
        table = seeded(net, *UNIT_BOX_2, upto=1)
        before = table.get(1).copy()
        tighten_layer(net, table, 1, exact_solver)
        after = table.get(1)
        self.assertTrue(torch.allclose(before.lb, after.lb, atol=1e-6))
        self.assertTrue(torch.allclose(before.ub, after.ub, atol=1e-6))

    def test_never_looser_than_interval(self):
        net = from_torch(MockFactory.create_model("small_mlp"))
        lb, ub = MockFactory.create_data("unit_box_4")
        table = seeded(net, lb, ub, upto=1)
        for k in range(2, net.K + 1):
            tf_dense(net, table, k)
            seed = table.get(k).copy()
            tighten_layer(net, table, k, exact_solver)
            B = table.get(k)
            with self.subTest(layer=k):
                self.assertTrue(torch.all(B.lb >= seed.lb))
                self.assertTrue(torch.all(B.ub <= seed.ub))
                self.assertTrue(torch.all(B.lb <= B.ub))

    def test_parallel_equals_sequential(self):
        net = from_torch(MockFactory.create_model("deep_mlp"))
        lb, ub = MockFactory.create_data("unit_box_3")
        seq = seeded(net, lb, ub, upto=2)
        par = seq.snapshot()
        tighten_layer(net, seq, 2, exact_solver, workers=1)
        tighten_layer(net, par, 2, exact_solver, workers=4)
        self.assertTrue(torch.allclose(seq.get(2).lb, par.get(2).lb, atol=1e-9))
        self.assertTrue(torch.allclose(seq.get(2).ub, par.get(2).ub, atol=1e-9))

    def test_does_not_touch_network(self):
        net = from_layers(scenario_layers("milp_inactive"))
        table = seeded(net, *UNIT_BOX_2, upto=2)
        W_before = net.layer(2).W.clone()
        tighten_layer(net, table, 2, exact_solver, workers=2)
        self.assertTrue(torch.equal(net.layer(2).W, W_before))
        self.assertEqual(net.neurons(2), [0, 1])


class TestSolverFailures(unittest.TestCase):

    def test_timeout_keeps_interval_bound(self):
        net = from_layers(scenario_layers("milp_inactive"))
        table = seeded(net, *UNIT_BOX_2, upto=2)
        seed = table.get(2).copy()
        with self.assertLogs("relucompress.back_end.tightener", level="WARNING") as logs:
            failures = tighten_layer(net, table, 2, TimeoutSolver)
        self.assertEqual(len(failures), 4)
        self.assertTrue(all(f.status == SolveStatus.TIMEOUT for f in failures))
        self.assertTrue(any("TIMEOUT" in line for line in logs.output))
        self.assertTrue(torch.equal(table.get(2).lb, seed.lb))
        self.assertTrue(torch.equal(table.get(2).ub, seed.ub))

    def test_one_sided_failure(self):
        net = from_layers(scenario_layers("milp_inactive"))
        table = seeded(net, *UNIT_BOX_2, upto=2)
        result = solve_neuron_bounds(net, table, 2, 0, MaxOnlySolver)
        self.assertIsNone(result.lb)
        self.assertAlmostEqual(result.ub, -0.5, places=5)
        self.assertEqual(len(result.failures), 1)
        failure = result.failures[0]
        self.assertIsInstance(failure, SolverFailure)
        self.assertEqual(failure.neuron, NeuronRef(2, 0))
        self.assertEqual(failure.sense, "min")

    def test_backend_error_keeps_interval_bound(self):
        net = from_layers(scenario_layers("milp_inactive"))
        table = seeded(net, *UNIT_BOX_2, upto=2)
        seed = table.get(2).copy()
        with self.assertLogs("relucompress.back_end.tightener", level="WARNING") as logs:
            failures = tighten_layer(net, table, 2, SizeLimitedSolver)
        self.assertEqual(len(failures), 4)
        self.assertEqual({(f.neuron, f.sense) for f in failures},
                         {(NeuronRef(2, j), s) for j in (0, 1) for s in ("max", "min")})
        self.assertTrue(any("size-limited license" in line for line in logs.output))
        self.assertTrue(torch.equal(table.get(2).lb, seed.lb))
        self.assertTrue(torch.equal(table.get(2).ub, seed.ub))

    def test_backend_unusable_in_parallel(self):
        net = from_layers(scenario_layers("milp_inactive"))
        table = seeded(net, *UNIT_BOX_2, upto=2)
        seed = table.get(2).copy()
        with self.assertLogs("relucompress.back_end.tightener", level="WARNING"):
            failures = tighten_layer(net, table, 2, UnlicensedSolver, workers=2)
        self.assertEqual(len(failures), 4)
        self.assertTrue(all("No license found" in str(f) for f in failures))
        self.assertTrue(torch.equal(table.get(2).ub, seed.ub))


if __name__ == "__main__":
    unittest.main()
