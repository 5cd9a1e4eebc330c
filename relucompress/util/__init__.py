#===- relucompress/util/__init__.py - Utility Package ------------------====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   Utility package: device/dtype defaults, solver configuration, command
#   line options, logging setup and run statistics.
#
#===---------------------------------------------------------------------===#

# Device management utilities
from .device_manager import *
