#===- relucompress/util/options.py - Command Line Options --------------====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   Command line options of the relucompress tool, including defaults and
#   help text.
#
#===---------------------------------------------------------------------===#

import argparse


def get_parser():

    parser = argparse.ArgumentParser(description='ReluCompress - bound-certified compression of ReLU networks')

    # Model and input region
    parser.add_argument('--model', type=str, required=True,
                        help='Network to compress: .pt/.pth (pickled nn.Sequential), .onnx or .json')
    parser.add_argument('--input_lb', nargs='+', type=float, default=None,
                        help='Per-feature lower bounds of the input box')
    parser.add_argument('--input_ub', nargs='+', type=float, default=None,
                        help='Per-feature upper bounds of the input box')
    parser.add_argument('--input_box', nargs=2, type=float, default=None, metavar=('LB', 'UB'),
                        help='Same lower/upper bound for every input feature (alternative to --input_lb/--input_ub)')

    # Bound computation
    parser.add_argument('--mode', type=str, default='fast', choices=['fast', 'standard'],
                        help='"fast": interval propagation only, "standard": refine every neuron with a MILP')
    parser.add_argument('--solver', type=str, default=None, choices=['auto', 'gurobi', 'highs'],
                        help='MILP backend for standard mode. "auto": Gurobi when installed, HiGHS otherwise')
    parser.add_argument('--time_limit', type=float, default=None,
                        help='Time limit in seconds for each MILP solve')
    parser.add_argument('--mip_gap', type=float, default=None,
                        help='Relative MIP gap for each MILP solve')
    parser.add_argument('--workers', type=int, default=None,
                        help='Number of neurons solved concurrently')
    parser.add_argument('--config', type=str, default=None,
                        help='YAML or JSON solver configuration; command line options override it')

    # Output
    parser.add_argument('--output', type=str, default=None,
                        help='Path of the compressed network (.json or .pt)')
    parser.add_argument('--result', type=str, default=None,
                        help='Path of the result JSON (removed neurons, bounds, statistics)')
    parser.add_argument('--milp', action='store_true', default=False,
                        help='Also build the MILP of the compressed network and report its size')

    # Environment
    parser.add_argument('--dtype', type=str, default='float64', choices=['float32', 'float64'],
                        help='Tensor dtype used for weights and bounds')
    parser.add_argument('--log_level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')
    parser.add_argument('--log_file', type=str, default=None,
                        help='Also write the log to this file')
    return parser
