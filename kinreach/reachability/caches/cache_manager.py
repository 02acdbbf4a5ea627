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

from pathlib import Path
from dataclasses import replace
from tqdm import tqdm
from typing import Optional, Union, TYPE_CHECKING

from kinreach.exceptions import CacheGenerationFailed, InvalidConfiguration
from kinreach.reachability.caches.seed_cache import SeedCache
from kinreach.reachability.configs import CacheOptions, ToleranceConfig
from kinreach.reachability.samplers import PoseGridSampler
from kinreach.types import Pose, SolveOutcome
from kinreach.utils import logger

if TYPE_CHECKING:
    from kinreach.reachability.ik_evaluator import IKEvaluator


__all__ = [
    "CacheManager",
]


class CacheManager:
    """Factory and manager for IK seed caches.

    Provides a unified interface for creating, loading and generating seed
    caches.
    """

    @staticmethod
    def create_cache(
        options: Optional[CacheOptions] = None,
        tolerance: Optional[ToleranceConfig] = None,
    ) -> SeedCache:
        """Create an empty cache."""
        return SeedCache(options=options, tolerance=tolerance)

    @staticmethod
    def load_cache(
        path: Union[str, Path],
        expected_options: Optional[CacheOptions] = None,
        tolerance: Optional[ToleranceConfig] = None,
    ) -> Optional[SeedCache]:
        """Load a cache file, returning None if it cannot be used.

        A missing, unreadable or incompatible file is not an error: callers
        fall back to unseeded solves.

        Args:
            path: Cache file written by :meth:`SeedCache.save`.
            expected_options: If given, the cache must have been built with
                the same origin, bounds and resolution.
            tolerance: Tolerances for the compatibility check.

        Returns:
            The loaded cache, or None.
        """
        path = Path(path)
        if not path.is_file():
            logger.log_warning(f"Seed cache file {path} not found, solving without seeds")
            return None
        try:
            cache = SeedCache.load(path, tolerance=tolerance)
        except (OSError, ValueError, KeyError) as e:
            logger.log_warning(f"Failed to load seed cache {path}: {e}")
            return None

        if expected_options is not None and not cache.is_compatible(expected_options):
            logger.log_warning(
                f"Seed cache {path} was built with different origin, bounds or "
                f"resolution, solving without seeds"
            )
            return None

        logger.log_info(f"Loaded seed cache from {path}: {cache}")
        return cache

    @staticmethod
    def generate_cache(
        evaluator: "IKEvaluator",
        group_name: str,
        timeout: Optional[float],
        options: CacheOptions,
        destination: Union[str, Path],
        tolerance: Optional[ToleranceConfig] = None,
    ) -> SeedCache:
        """Build a seed cache for ``group_name`` and write it to ``destination``.

        Every lattice position within the cache bounds is solved once per
        representative orientation, without seeding from any cache. Successful
        joint states are stored under the bucket of their pose.

        Args:
            evaluator: Evaluator running the IK solver.
            group_name: Kinematic group to build the cache for.
            timeout: Per-point solver timeout in seconds. Uses
                ``options.solver_timeout`` if None. The timeout actually used is
                the one stored with the cache.
            options: Cache parameters. Bounds are in the ``options.origin`` frame.
            destination: Output file.
            tolerance: Tolerances for grid and bucket computation.

        Returns:
            The new cache.

        Raises:
            CacheGenerationFailed: If no point was solved or the file cannot be written.
            InvalidConfiguration: If the timeout or the cache options are invalid.
        """
        tolerance = tolerance or ToleranceConfig()
        if timeout is None:
            timeout = options.solver_timeout
        if not timeout > 0:
            logger.log_error(
                f"Seed cache solver timeout must be positive, got {timeout}",
                InvalidConfiguration,
            )
        options = replace(options, solver_timeout=timeout)
        cache = SeedCache(options=options, tolerance=tolerance)
        sampler = PoseGridSampler(lattice_eps=tolerance.lattice_eps)
        positions = sampler.sample_positions(
            options.min_position, options.max_position, options.resolution
        )
        local_poses = [
            Pose(position=position, orientation=tuple(q))
            for position in positions.tolist()
            for q in cache.representatives
        ]

        logger.log_info(
            f"Generating seed cache for '{group_name}': {len(positions)} positions x "
            f"{len(cache.representatives)} orientations, timeout {timeout:.3f}s"
        )

        num_success = 0
        pbar = tqdm(
            local_poses,
            desc="Seed Cache",
            unit="pt",
            disable=not evaluator.show_progress,
            dynamic_ncols=True,
        )
        for local_pose in pbar:
            if cache.is_full(group_name):
                logger.log_warning(
                    f"Seed cache reached max_entries={options.max_entries}, "
                    f"stopping generation early"
                )
                break
            pose = options.origin * local_pose
            outcome, joint_state = evaluator.solve(
                group_name, pose, timeout=timeout, use_cache=False
            )
            if outcome == SolveOutcome.SUCCESS:
                num_success += 1
                cache.add(group_name, pose, joint_state)
            pbar.set_postfix_str(f"Stored: {cache.num_entries(group_name)}")
        pbar.close()

        if num_success == 0:
            logger.log_error(
                f"Seed cache generation for '{group_name}' found no IK solution",
                CacheGenerationFailed,
            )
        try:
            cache.save(destination)
        except OSError as e:
            logger.log_error(
                f"Failed to write seed cache to {destination}: {e}",
                CacheGenerationFailed,
            )
        return cache
