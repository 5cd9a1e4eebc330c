#!/usr/bin/env python3
"""
Single shared configuration file for compression testing.
Provides mock networks, input boxes and hand-built scenario networks.

This module provides:
- MockModelConfig, MockDataConfig for consistent test data
- MockFactory for creating seeded Linear/ReLU models and input boxes
- scenario_layers() for the small hand-checked networks
- sample_box() for drawing test inputs inside a box

Used by:
- test_interval.py, test_encoder.py, test_tightener.py, test_pruner.py
- test_compress.py (end-to-end properties)
"""

import torch
import torch.nn as nn
from typing import Dict, List, Tuple
from dataclasses import dataclass


@dataclass
class MockModelConfig:
    """Configuration for creating mock Linear/ReLU models."""
    name: str
    layers: List[int]
    seed: int = 0
    bias_scale: float = 1.0


@dataclass
class MockDataConfig:
    """Configuration for creating mock input boxes."""
    name: str
    size: int
    center_value: float = 0.0
    bound_width: float = 2.0


class TestConfigurations:
    """Central configuration class for all compression tests."""

    MOCK_MODELS = [
        MockModelConfig(name="tiny_mlp", layers=[2, 4, 3, 1], seed=1),
        MockModelConfig(name="small_mlp", layers=[4, 8, 8, 2], seed=2, bias_scale=2.0),
        MockModelConfig(name="deep_mlp", layers=[3, 6, 6, 6, 2], seed=3, bias_scale=1.5),
    ]

    MOCK_DATA = [
        MockDataConfig(name="unit_box_2", size=2),
        MockDataConfig(name="unit_box_3", size=3),
        MockDataConfig(name="unit_box_4", size=4),
        MockDataConfig(name="narrow_box_4", size=4, center_value=0.5, bound_width=0.1),
        MockDataConfig(name="narrow_box_3", size=3, center_value=-0.2, bound_width=0.2),
    ]

    # (model, data) pairs used by the end-to-end property tests
    END_TO_END = [
        {"model": "tiny_mlp", "data": "unit_box_2"},
        {"model": "small_mlp", "data": "unit_box_4"},
        {"model": "small_mlp", "data": "narrow_box_4"},
        {"model": "deep_mlp", "data": "unit_box_3"},
        {"model": "deep_mlp", "data": "narrow_box_3"},
    ]


class MockFactory:
    """Factory for creating mock inputs from configurations."""

    @staticmethod
    def create_model(config_name: str) -> nn.Sequential:
        """Create a seeded nn.Sequential of Linear/ReLU from configuration."""
        config = next((c for c in TestConfigurations.MOCK_MODELS if c.name == config_name), None)
        if not config:
            raise ValueError(f"Model config '{config_name}' not found")

        gen = torch.Generator().manual_seed(config.seed)
        layers = []
        n = len(config.layers) - 1
        for i in range(n):
            lin = nn.Linear(config.layers[i], config.layers[i + 1])
            with torch.no_grad():
                lin.weight.copy_(torch.randn(lin.weight.shape, generator=gen))
                lin.bias.copy_(torch.randn(lin.bias.shape, generator=gen) * config.bias_scale)
            layers.append(lin)
            if i < n - 1:
                layers.append(nn.ReLU())
        return nn.Sequential(*layers)

    @staticmethod
    def create_data(config_name: str) -> Tuple[torch.Tensor, torch.Tensor]:
        """Create an input box from configuration."""
        config = next((c for c in TestConfigurations.MOCK_DATA if c.name == config_name), None)
        if not config:
            raise ValueError(f"Data config '{config_name}' not found")
        center = torch.full((config.size,), config.center_value, dtype=torch.float64)
        half_width = config.bound_width / 2
        return center - half_width, center + half_width


# =============================================================================
# HAND-BUILT SCENARIOS
# =============================================================================

UNIT_BOX_2 = ([-1.0, -1.0], [1.0, 1.0])

SCENARIOS: Dict[str, List[Tuple[list, list]]] = {
    # single hidden neuron, pre-activation in [-5, -1]
    "inactive": [([[1.0, 1.0]], [-3.0]), ([[2.0]], [0.5])],
    # single hidden neuron, pre-activation in [1, 5]
    "active": [([[1.0, 1.0]], [3.0]), ([[2.0]], [0.5])],
    # single hidden neuron, pre-activation in [-2, 2]
    "unstable": [([[1.0, -1.0]], [0.0]), ([[2.0]], [0.5])],
    # unstable + active + active neuron that is 2 * (second) - 2
    "dependent": [
        ([[1.0, -1.0], [1.0, 1.0], [2.0, 2.0]], [0.0, 3.0, 4.0]),
        ([[1.0, 1.0, 1.0]], [0.0]),
    ],
    # layer 2 fully inactive, layer 3 becomes constant
    "collapse_chain": [
        ([[1.0, -1.0], [1.0, 1.0]], [0.0, 0.0]),
        ([[1.0, 1.0], [0.5, 1.0]], [-5.0, -4.0]),
        ([[1.0, 2.0], [-1.0, 1.0]], [1.0, -1.0]),
        ([[1.0, 1.0]], [0.25]),
    ],
    # layer 2 fully stable with one active neuron, layer 3 stays alive
    "collapse_active": [
        ([[1.0, -1.0], [-1.0, 1.0]], [0.0, 0.0]),
        ([[1.0, 1.0], [-1.0, -1.0]], [5.0, -5.0]),
        ([[1.0, 3.0], [-1.0, 2.0]], [-7.0, 7.0]),
        ([[1.0, -1.0]], [0.0]),
    ],
    # |x1 + x2| - 2.5: interval says unstable, the MILP proves it inactive
    "milp_inactive": [
        ([[1.0, 1.0], [-1.0, -1.0]], [0.0, 0.0]),
        ([[1.0, 1.0], [1.0, 1.0]], [-2.5, -1.0]),
        ([[1.0, -1.0]], [0.0]),
    ],
}


def scenario_layers(name: str) -> List[Tuple[torch.Tensor, torch.Tensor]]:
    """Scenario network as (W, b) float64 tensor pairs."""
    if name not in SCENARIOS:
        raise ValueError(f"Scenario '{name}' not found")
    return [(torch.tensor(W, dtype=torch.float64), torch.tensor(b, dtype=torch.float64))
            for W, b in SCENARIOS[name]]


def sample_box(lb, ub, n: int = 256, seed: int = 0) -> torch.Tensor:
    """n points drawn uniformly from the box, corners included."""
    lb = torch.as_tensor(lb, dtype=torch.float64)
    ub = torch.as_tensor(ub, dtype=torch.float64)
    gen = torch.Generator().manual_seed(seed)
    u = torch.rand((n, lb.shape[0]), generator=gen, dtype=torch.float64)
    pts = lb + u * (ub - lb)
    return torch.cat([pts, lb.unsqueeze(0), ub.unsqueeze(0)], dim=0)
