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

import json
import threading
import numpy as np

from enum import Enum
from pathlib import Path
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from kinreach.exceptions import InvalidConfiguration
from kinreach.reachability.caches import CacheManager, SeedCache
from kinreach.reachability.classifier import (
    classify,
    filter_reachable,
    get_points_at_orientations,
    reachability_ratio,
)
from kinreach.reachability.configs import (
    CacheConfig,
    CacheOptions,
    MarkerConfig,
    ToleranceConfig,
    WorkspaceConfig,
)
from kinreach.reachability.exporters import (
    DisplayTrajectory,
    Marker,
    get_arrow_markers,
    get_display_trajectory,
    get_point_markers,
    get_position_indexed_markers,
)
from kinreach.reachability.ik_evaluator import IKEvaluator
from kinreach.reachability.samplers import PoseGridSampler
from kinreach.reachability.solvers import IKSolver
from kinreach.types import Pose, Quaternion, Workspace, WorkspacePoint
from kinreach.utils import logger

__all__ = [
    "CacheState",
    "ReachabilityAnalyzerConfig",
    "ReachabilityAnalyzer",
    "load_config",
]


class CacheState(Enum):
    """Seed cache state of the analyzer, decided once at construction."""

    UNINITIALIZED = "uninitialized"
    CACHE_LOADED = "cache_loaded"
    CACHE_ABSENT = "cache_absent"


@dataclass
class ReachabilityAnalyzerConfig:
    """Complete configuration for the reachability analyzer."""

    workspace: WorkspaceConfig = None
    """Default query used by :meth:`ReachabilityAnalyzer.create_workspace`."""
    cache: CacheConfig = None
    """Seed cache configuration."""
    tolerance: ToleranceConfig = None
    """Comparison tolerances."""
    marker: MarkerConfig = None
    """Marker appearance."""

    solver_timeout: float = 0.1
    """Per-point IK timeout in seconds for workspace queries."""

    seed: int = 42
    """Random seed for joint-space restarts."""

    show_progress: bool = True
    """Show progress bars during batch evaluation."""

    def __post_init__(self):
        """Initialize sub-configs with defaults if not provided."""
        if self.workspace is None:
            self.workspace = WorkspaceConfig()
        if self.cache is None:
            self.cache = CacheConfig()
        if self.tolerance is None:
            self.tolerance = ToleranceConfig()
        if self.marker is None:
            self.marker = MarkerConfig()
        if not self.solver_timeout > 0:
            logger.log_error(
                f"Solver timeout must be positive, got {self.solver_timeout}",
                InvalidConfiguration,
            )

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "ReachabilityAnalyzerConfig":
        """Build a config from plain (e.g. JSON) values.

        Poses are given as ``{"position": [x, y, z], "orientation": [x, y, z, w]}``.
        """
        config = dict(config)

        def to_pose(value):
            return None if value is None else Pose(**value)

        workspace = dict(config.pop("workspace", {}))
        for key in ("tool_frame_offset", "origin"):
            if key in workspace:
                workspace[key] = to_pose(workspace[key])

        cache = dict(config.pop("cache", {}))
        for key in ("default_options", "expected_options"):
            if cache.get(key) is not None:
                options = dict(cache[key])
                if "origin" in options:
                    options["origin"] = to_pose(options["origin"])
                cache[key] = CacheOptions(**options)

        return cls(
            workspace=WorkspaceConfig(**workspace),
            cache=CacheConfig(**cache),
            tolerance=ToleranceConfig(**config.pop("tolerance", {})),
            marker=MarkerConfig(**config.pop("marker", {})),
            **config,
        )


def load_config(path: Union[str, Path]) -> ReachabilityAnalyzerConfig:
    """Load a :class:`ReachabilityAnalyzerConfig` from a JSON file."""
    with open(path, "r") as f:
        return ReachabilityAnalyzerConfig.from_dict(json.load(f))


class ReachabilityAnalyzer:
    """Computes and exports the reachable workspace of a kinematic group.

    The analyzer owns one IK solver handle and at most one seed cache. The
    cache is loaded once at construction when ``config.cache.cache_filename``
    is set and can be replaced through :meth:`generate_cache`. Queries and
    cache regeneration are serialized by a single lock.

    Args:
        solver: IK solver collaborator.
        config: Configuration object. If None, uses defaults.
        visualizer: Optional marker consumer, either a callable
            ``(markers, namespace)`` or an object with ``visualize(markers, namespace)``.
        trajectory_player: Optional callable receiving a :class:`DisplayTrajectory`.
    """

    def __init__(
        self,
        solver: IKSolver,
        config: Optional[ReachabilityAnalyzerConfig] = None,
        visualizer: Optional[Any] = None,
        trajectory_player: Optional[Callable[[DisplayTrajectory], Any]] = None,
    ):
        self.solver = solver
        self.config = config or ReachabilityAnalyzerConfig()
        self.visualizer = visualizer
        self.trajectory_player = trajectory_player

        self._lock = threading.RLock()
        self.cache: Optional[SeedCache] = None
        self.cache_state = CacheState.UNINITIALIZED

        self.sampler = PoseGridSampler(lattice_eps=self.config.tolerance.lattice_eps)
        self.evaluator = IKEvaluator(
            solver,
            use_cache=self.config.cache.use_cache,
            tolerance=self.config.tolerance,
            seed=self.config.seed,
            show_progress=self.config.show_progress,
        )
        self._initialize_cache()

    def _initialize_cache(self) -> None:
        cache_filename = self.config.cache.cache_filename
        if cache_filename is None:
            logger.log_info("No seed cache configured, solving without seeds")
            self._set_cache(None)
            return
        self._set_cache(
            CacheManager.load_cache(
                cache_filename,
                expected_options=self.config.cache.compatibility_options,
                tolerance=self.config.tolerance,
            )
        )

    def _set_cache(self, cache: Optional[SeedCache]) -> None:
        self.cache = cache
        self.evaluator.cache = cache
        self.cache_state = (
            CacheState.CACHE_LOADED if cache is not None else CacheState.CACHE_ABSENT
        )

    def load_cache(self, path: Union[str, Path]) -> bool:
        """Replace the current cache with the one in ``path``.

        Returns:
            False if the file could not be used. The current cache is kept then.
        """
        cache = CacheManager.load_cache(
            path,
            expected_options=self.config.cache.compatibility_options,
            tolerance=self.config.tolerance,
        )
        if cache is None:
            return False
        with self._lock:
            self._set_cache(cache)
        return True

    def is_active(self) -> bool:
        return self.solver.is_active()

    def create_workspace(self, workspace_config: Optional[WorkspaceConfig] = None) -> Workspace:
        """Create an empty workspace from ``workspace_config`` or the configured default."""
        return (workspace_config or self.config.workspace).to_workspace()

    def sample_uniform(self, workspace: Workspace) -> Workspace:
        """Fill ``workspace.points`` with the pending pose grid.

        Raises:
            InvalidConfiguration: If the bounds, resolution or orientations are invalid.
        """
        return self.sampler.populate(workspace)

    def iter_workspace(
        self,
        workspace: Workspace,
        tool_frame_offset: Optional[Pose] = None,
        start: int = 0,
    ) -> Iterator[Tuple[int, WorkspacePoint]]:
        """Evaluate a workspace lazily, yielding ``(index, point)`` per solved point.

        The grid is generated first if the workspace has no points. Iteration
        can be abandoned at any point and resumed with ``start``.
        """
        if tool_frame_offset is not None:
            workspace.tool_frame_offset = tool_frame_offset
        if not workspace.points:
            self.sample_uniform(workspace)
        iterator = self.evaluator.iter_ik_solutions(
            workspace, self.config.solver_timeout, start=start
        )
        while True:
            with self._lock:
                item = next(iterator, None)
            if item is None:
                return
            yield item

    def compute_workspace(
        self, workspace: Workspace, tool_frame_offset: Optional[Pose] = None
    ) -> Workspace:
        """Sample ``workspace`` on its grid and solve IK for every point in place.

        Every point ends up with a definite outcome; per-point solver failures
        are recorded, not raised.

        Raises:
            InvalidConfiguration: If the workspace parameters are invalid.
        """
        if tool_frame_offset is not None:
            workspace.tool_frame_offset = tool_frame_offset
        self.sample_uniform(workspace)

        logger.log_info(
            f"Computing workspace for '{workspace.group_name}': {len(workspace)} points "
            f"(cache: {self.cache_state.value})"
        )
        with self._lock:
            self.evaluator.find_ik_solutions(workspace, self.config.solver_timeout)
        return workspace

    def get_only_reachable_workspace(
        self, workspace: Workspace, tool_frame_offset: Optional[Pose] = None
    ) -> Workspace:
        """Compute ``workspace`` and return a copy holding only reachable points."""
        self.compute_workspace(workspace, tool_frame_offset)
        reachable = filter_reachable(workspace)
        logger.log_info(
            f"Reachable workspace: {len(reachable)}/{len(workspace)} points"
        )
        return reachable

    def compute_redundant_solutions(
        self,
        group_name: str,
        pose: Pose,
        timeout: float,
        tool_frame_offset: Optional[Pose] = None,
        max_solutions: Optional[int] = None,
    ) -> Workspace:
        """Collect distinct joint configurations reaching ``pose``."""
        with self._lock:
            return self.evaluator.compute_redundant_solutions(
                group_name,
                pose,
                timeout,
                tool_frame_offset=tool_frame_offset,
                max_solutions=max_solutions,
                attempt_timeout=self.config.solver_timeout,
            )

    def generate_cache(
        self,
        group_name: str,
        timeout: Optional[float] = None,
        options: Optional[CacheOptions] = None,
        cache_filename: Optional[Union[str, Path]] = None,
    ) -> bool:
        """Build a new seed cache, write it to disk and start using it.

        Without ``timeout`` the ``solver_timeout`` of the cache options is used.
        The current cache is kept untouched if generation fails.

        Raises:
            CacheGenerationFailed: If no point was solved or the file cannot be written.
            InvalidConfiguration: If no destination is given or configured, or
                the cache options are invalid.
        """
        options = options or self.config.cache.default_options
        cache_filename = cache_filename or self.config.cache.cache_filename
        if cache_filename is None:
            logger.log_error(
                "No destination given for the seed cache", InvalidConfiguration
            )

        with self._lock:
            cache = CacheManager.generate_cache(
                self.evaluator,
                group_name,
                timeout,
                options,
                cache_filename,
                tolerance=self.config.tolerance,
            )
            self._set_cache(cache)
        return True

    def classify(self, workspace: Workspace) -> Tuple[List[int], List[int]]:
        return classify(workspace)

    def _publish_markers(self, markers: List[Marker], marker_namespace: str) -> None:
        if self.visualizer is None:
            return
        if hasattr(self.visualizer, "visualize"):
            self.visualizer.visualize(markers, marker_namespace)
        else:
            self.visualizer(markers, marker_namespace)

    def visualize(
        self,
        workspace: Workspace,
        marker_namespace: str,
        orientations: Optional[Union[Quaternion, Sequence[Quaternion]]] = None,
    ) -> List[Marker]:
        """Build reachability markers and hand them to the visualizer.

        Without ``orientations`` one marker per position is produced, coloured
        by the share of reachable orientations. With one orientation or a list
        of them, one marker per matching point is produced.

        Raises:
            ValueError: If ``orientations`` is None and ``workspace`` is not a
                full grid, e.g. the output of :meth:`get_only_reachable_workspace`.
        """
        if orientations is None:
            markers = get_position_indexed_markers(
                workspace, marker_namespace, self.config.marker
            )
        else:
            if len(orientations) and np.isscalar(orientations[0]):
                orientations = [orientations]
            points = get_points_at_orientations(
                workspace, orientations, self.config.tolerance
            )
            markers = get_point_markers(points, marker_namespace, self.config.marker)

        self._publish_markers(markers, marker_namespace)
        return markers

    def visualize_with_arrows(
        self, workspace: Workspace, marker_namespace: str
    ) -> List[Marker]:
        """One arrow marker per point, showing its orientation."""
        markers = get_arrow_markers(workspace, marker_namespace, self.config.marker)
        self._publish_markers(markers, marker_namespace)
        return markers

    def animate_workspace(self, workspace: Workspace, dt: float) -> DisplayTrajectory:
        """Play the reachable joint states back as a trajectory, ``dt`` seconds apart."""
        trajectory = get_display_trajectory(workspace, dt)
        if self.trajectory_player is not None:
            self.trajectory_player(trajectory)
        return trajectory

    def export_results(
        self, workspace: Workspace, output_path: Union[str, Path], format: str = "npz"
    ) -> None:
        """Export positions, orientations, outcomes and joint values of a workspace.

        Args:
            workspace: Evaluated workspace.
            output_path: Path to save the results.
            format: Output format ('npz' or 'json').
        """
        if not workspace.points:
            logger.log_error("No analysis results to export", ValueError)
        if format not in ("npz", "json"):
            logger.log_error(f"Unsupported format: {format}", ValueError)

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        reachable, unreachable = classify(workspace)
        joint_names = next(
            (p.joint_state.names for p in workspace.points if p.is_reachable), ()
        )
        joint_values = np.full((len(workspace), len(joint_names)), np.nan)
        for i in reachable:
            joint_values[i] = workspace.points[i].joint_state.values

        positions = np.asarray([p.pose.position for p in workspace.points])
        orientations = np.asarray([p.pose.orientation for p in workspace.points])
        outcomes = [p.solve_outcome.value for p in workspace.points]

        if format == "npz":
            with open(output_path, "wb") as f:
                np.savez(
                    f,
                    positions=positions,
                    orientations=orientations,
                    outcomes=np.asarray(outcomes),
                    joint_names=np.asarray(joint_names, dtype=str),
                    joint_values=joint_values,
                    reachable_indices=np.asarray(reachable, dtype=np.int64),
                    unreachable_indices=np.asarray(unreachable, dtype=np.int64),
                )
        else:
            with open(output_path, "w") as f:
                json.dump(
                    {
                        "group_name": workspace.group_name,
                        "positions": positions.tolist(),
                        "orientations": orientations.tolist(),
                        "outcomes": outcomes,
                        "joint_names": list(joint_names),
                        "joint_values": [
                            list(p.joint_state.values) if p.is_reachable else None
                            for p in workspace.points
                        ],
                        "reachability": reachability_ratio(workspace),
                    },
                    f,
                    indent=2,
                )

        logger.log_info(f"Exported results to {output_path}")
