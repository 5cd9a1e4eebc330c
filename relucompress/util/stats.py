#===- relucompress/util/stats.py - Compression Statistics --------------====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   Per-layer diagnostics of a compression run (stability counts, folded
#   and removed neurons, collapsed layers, solver failures) and the text
#   summary printed by the command line tool.
#
#===---------------------------------------------------------------------===#

import os
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List

import psutil


def get_memory_usage_mb() -> float:
    """Resident memory of the current process in MB."""
    return psutil.Process(os.getpid()).memory_info().rss / 1024 / 1024


@dataclass
class LayerStats:
    layer: int
    original: int
    inactive: int = 0
    active: int = 0
    folded: int = 0
    unstable: int = 0
    removed: int = 0
    collapsed: bool = False
    solver_failures: int = 0
    elapsed: float = 0.0

    @property
    def remaining(self) -> int:
        return self.original - self.removed


@dataclass
class CompressionStats:
    mode: str
    layers: List[LayerStats] = field(default_factory=list)
    total_time: float = 0.0
    peak_memory_mb: float = 0.0

    @property
    def original_neurons(self) -> int:
        return sum(s.original for s in self.layers)

    @property
    def removed_neurons(self) -> int:
        return sum(s.removed for s in self.layers)

    @property
    def solver_failures(self) -> int:
        return sum(s.solver_failures for s in self.layers)

    def record_memory(self) -> None:
        self.peak_memory_mb = max(self.peak_memory_mb, get_memory_usage_mb())

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["original_neurons"] = self.original_neurons
        d["removed_neurons"] = self.removed_neurons
        d["solver_failures"] = self.solver_failures
        return d

    def summary(self) -> str:
        header = f"{'layer':>5} {'size':>6} {'inact':>6} {'active':>6} {'folded':>6} {'unstab':>6} {'kept':>6} {'fail':>5}  note"
        lines = [f"Compression summary ({self.mode} mode)", header, "-" * len(header)]
        for s in self.layers:
            note = "collapsed" if s.collapsed else ""
            lines.append(f"{s.layer:>5} {s.original:>6} {s.inactive:>6} {s.active:>6} {s.folded:>6} "
                         f"{s.unstable:>6} {s.remaining:>6} {s.solver_failures:>5}  {note}")
        lines.append("-" * len(header))
        pct = 100.0 * self.removed_neurons / self.original_neurons if self.original_neurons else 0.0
        lines.append(f"Removed {self.removed_neurons}/{self.original_neurons} neurons ({pct:.1f}%) "
                     f"in {self.total_time:.2f}s, peak memory {self.peak_memory_mb:.1f} MB")
        if self.solver_failures:
            lines.append(f"Warning: {self.solver_failures} solver failures fell back to interval bounds")
        return "\n".join(lines)
