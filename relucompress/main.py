#===- relucompress/main.py - ReluCompress Entry Point ------------------====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   Command line entry point: load a network, compress it over an input
#   box, write the compressed network and the result, print a summary.
#
#===---------------------------------------------------------------------===#

import logging
import sys

import torch

from relucompress.back_end.compress import compress
from relucompress.back_end.errors import CompressionError, PreconditionViolation
from relucompress.back_end.serialization import save_net_to_file, save_result_to_file
from relucompress.front_end.model_loader import load_model, to_torch
from relucompress.util.config import ConfigManager, SolverConfig
from relucompress.util.device_manager import set_default_dtype
from relucompress.util.logger import setup_logging
from relucompress.util.options import get_parser

logger = logging.getLogger(__name__)


def resolve_input_box(args, n_inputs: int):
    if args.input_box is not None:
        lo, hi = args.input_box
        return [lo] * n_inputs, [hi] * n_inputs
    if args.input_lb is None or args.input_ub is None:
        raise PreconditionViolation("Give either --input_box or both --input_lb and --input_ub")
    return args.input_lb, args.input_ub


def resolve_solver_config(args):
    """Config file first, then command line overrides. None if nothing was given."""
    overrides = {name: getattr(args, name) for name in ("solver", "time_limit", "mip_gap", "workers")
                 if getattr(args, name) is not None}
    if args.config is not None:
        base = ConfigManager().load_config(args.config).to_dict()
    elif overrides or args.mode == "standard":
        base = {}
    else:
        return None
    base.update(overrides)
    return SolverConfig.from_dict(base)


def save_network(net, path: str) -> None:
    if path.endswith((".pt", ".pth")):
        torch.save(to_torch(net), path)
        logger.info(f"Compressed model saved to {path}")
    else:
        save_net_to_file(net, path)


def run(args) -> int:
    set_default_dtype(args.dtype)
    net = load_model(args.model)
    input_lb, input_ub = resolve_input_box(args, net.input_size)
    config = resolve_solver_config(args)

    result = compress(net, input_lb, input_ub, mode=args.mode, solver_config=config, build_milp=args.milp)

    print(result.stats.summary())
    if result.milp is not None:
        print(f"MILP of compressed network: {result.milp.solver.n} variables, "
              f"{result.milp.num_binaries} binaries")
    if args.output:
        save_network(result.net, args.output)
    if args.result:
        save_result_to_file(result, args.result)
    return 0


def main(argv=None) -> int:
    parser = get_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level, args.log_file)
    try:
        return run(args)
    except (CompressionError, FileNotFoundError) as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
