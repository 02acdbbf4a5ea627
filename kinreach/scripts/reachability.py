# ----------------------------------------------------------------------------
# Copyright (c) 2021-2025 DexForce Technology Co., Ltd.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ----------------------------------------------------------------------------

"""
Script to compute a reachable workspace or generate an IK seed cache.

The IK solver is created by a factory given as ``module:attribute``. The
factory is called without arguments and must return an ``IKSolver``.

Usage:
    python -m kinreach.scripts.reachability --config reach.json --solver my_robot.ik:make_solver
    python -m kinreach.scripts.reachability --config reach.json --solver my_robot.ik:make_solver \
        --generate_cache --group left_arm --output left_arm_cache.npz
"""

import sys
import argparse

from kinreach.exceptions import CacheGenerationFailed, InvalidConfiguration
from kinreach.reachability import ReachabilityAnalyzer, load_config
from kinreach.reachability.classifier import reachability_ratio
from kinreach.utils import logger
from kinreach.utils.import_utils import import_object


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Compute reachable workspaces and IK seed caches"
    )
    parser.add_argument(
        "--config",
        type=str,
        required=True,
        help="Path to the reachability config JSON file",
    )
    parser.add_argument(
        "--solver",
        type=str,
        required=True,
        help="IK solver factory as 'module:attribute'",
    )
    parser.add_argument(
        "--generate_cache",
        action="store_true",
        help="Generate a seed cache instead of computing the workspace",
    )
    parser.add_argument(
        "--group",
        type=str,
        default=None,
        help="Kinematic group (default: the group of the configured workspace)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output file: seed cache (.npz) or workspace results (.npz/.json)",
    )
    parser.add_argument(
        "--log_level",
        type=str,
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logger.set_log_level(args.log_level)

    config = load_config(args.config)
    solver = import_object(args.solver)()
    analyzer = ReachabilityAnalyzer(solver, config)
    group_name = args.group or config.workspace.group_name

    if args.generate_cache:
        try:
            analyzer.generate_cache(group_name, cache_filename=args.output)
        except (CacheGenerationFailed, InvalidConfiguration) as e:
            logger.logger.error(f"Seed cache generation failed: {e}")
            return 1
        return 0

    workspace = analyzer.create_workspace()
    workspace.group_name = group_name
    try:
        analyzer.compute_workspace(workspace)
    except InvalidConfiguration as e:
        logger.logger.error(f"Invalid workspace: {e}")
        return 1

    logger.log_info(f"Reachability: {reachability_ratio(workspace) * 100:.1f}%")
    if args.output:
        export_format = "json" if args.output.endswith(".json") else "npz"
        analyzer.export_results(workspace, args.output, format=export_format)
    return 0


if __name__ == "__main__":
    sys.exit(main())
