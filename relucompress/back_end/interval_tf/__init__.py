#===- relucompress/back_end/interval_tf/__init__.py - Interval TF ------====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   Interval Transfer Functions. Interval-based bounds propagation used as
#   the "fast" bound mode and as the seed of the "standard" mode.
#
#===---------------------------------------------------------------------===#

from .tf_mlp import affine_bounds, tf_relu, tf_dense, post_activation_bounds

__all__ = ['affine_bounds', 'tf_relu', 'tf_dense', 'post_activation_bounds']
