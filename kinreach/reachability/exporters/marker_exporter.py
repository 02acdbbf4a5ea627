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

import numpy as np

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from kinreach.reachability.configs import MarkerConfig, ToleranceConfig
from kinreach.reachability.samplers import get_num_points
from kinreach.types import Pose, Quaternion, Vector3, Workspace, WorkspacePoint

__all__ = [
    "Marker",
    "get_point_index",
    "get_position_index",
    "get_position_indexed_markers",
    "get_point_markers",
    "get_arrow_markers",
]


@dataclass(frozen=True)
class Marker:
    """A renderable marker handed to the visualization layer."""

    namespace: str
    marker_id: int
    marker_type: str
    """Either ``"sphere"`` or ``"arrow"``."""

    position: Vector3
    orientation: Quaternion
    scale: Vector3
    color: Tuple[float, float, float, float]
    frame_id: str = "base_link"


def _check_workspace(workspace: Workspace) -> int:
    """Validate the full grid layout and return the number of positions.

    The workspace must hold every grid position once, each followed by all of
    its orientations. Subsets such as the output of ``filter_reachable`` do
    not qualify.
    """
    if not workspace.points:
        raise ValueError("Cannot export an empty workspace")
    num_orientations = workspace.num_orientations
    if num_orientations == 0:
        raise ValueError("Workspace has no orientations")
    num_positions = int(
        np.prod(
            get_num_points(
                workspace.min_position,
                workspace.max_position,
                workspace.position_resolution,
            )
        )
    )
    if len(workspace.points) != num_positions * num_orientations:
        raise ValueError(
            f"Workspace has {len(workspace.points)} points, expected {num_positions} "
            f"positions x {num_orientations} orientations"
        )

    positions = np.asarray([p.pose.position for p in workspace.points])
    blocks = positions.reshape(num_positions, num_orientations, 3)
    eps = ToleranceConfig().position_eps
    if np.any(np.abs(blocks - blocks[:, :1, :]) > eps):
        raise ValueError(
            "Workspace points are not grouped by position, one block of "
            f"{num_orientations} orientations per position"
        )
    return num_positions


def get_point_index(workspace: Workspace) -> Tuple[List[int], List[int]]:
    """Point indices split into reachable and unreachable lists."""
    if not workspace.points:
        raise ValueError("Cannot export an empty workspace")
    reachable, unreachable = [], []
    for i, point in enumerate(workspace.points):
        (reachable if point.is_reachable else unreachable).append(i)
    return reachable, unreachable


def _reachable_counts(workspace: Workspace) -> np.ndarray:
    num_positions = _check_workspace(workspace)
    mask = np.array([p.is_reachable for p in workspace.points], dtype=bool)
    return mask.reshape(num_positions, workspace.num_orientations).sum(axis=1)


def get_position_index(workspace: Workspace) -> Tuple[List[int], List[int]]:
    """Position indices split into reachable and unreachable lists.

    A position is reachable if IK succeeded for at least one of its
    orientations. Position ``i`` owns points ``i * num_orientations`` to
    ``(i + 1) * num_orientations - 1``.
    """
    counts = _reachable_counts(workspace)
    reachable = np.flatnonzero(counts > 0).tolist()
    unreachable = np.flatnonzero(counts == 0).tolist()
    return reachable, unreachable


def _blend(config: MarkerConfig, fraction: float) -> Tuple[float, float, float, float]:
    lo = np.asarray(config.unreachable_color, dtype=np.float64)
    hi = np.asarray(config.reachable_color, dtype=np.float64)
    return tuple((lo + (hi - lo) * fraction).tolist())


def get_position_indexed_markers(
    workspace: Workspace,
    marker_namespace: str,
    config: Optional[MarkerConfig] = None,
) -> List[Marker]:
    """One sphere per position, coloured by the share of reachable orientations.

    Positions with at least one reachable orientation go to the
    ``<namespace>/reachable`` namespace, the others to ``<namespace>/unreachable``.
    Marker ids are position indices.
    """
    config = config or MarkerConfig()
    counts = _reachable_counts(workspace)
    num_orientations = workspace.num_orientations
    scale = (config.sphere_scale,) * 3

    markers = []
    for position_index, count in enumerate(counts.tolist()):
        point = workspace.points[position_index * num_orientations]
        fraction = count / num_orientations
        suffix = "reachable" if count > 0 else "unreachable"
        markers.append(
            Marker(
                namespace=f"{marker_namespace}/{suffix}",
                marker_id=position_index,
                marker_type="sphere",
                position=point.pose.position,
                orientation=Pose.identity().orientation,
                scale=scale,
                color=_blend(config, fraction),
                frame_id=config.frame_id,
            )
        )
    return markers


def get_point_markers(
    points: Sequence[WorkspacePoint],
    marker_namespace: str,
    config: Optional[MarkerConfig] = None,
) -> List[Marker]:
    """One sphere per point, in the reachable or unreachable colour."""
    config = config or MarkerConfig()
    scale = (config.sphere_scale,) * 3
    markers = []
    for i, point in enumerate(points):
        reachable = point.is_reachable
        markers.append(
            Marker(
                namespace=f"{marker_namespace}/{'reachable' if reachable else 'unreachable'}",
                marker_id=i,
                marker_type="sphere",
                position=point.pose.position,
                orientation=Pose.identity().orientation,
                scale=scale,
                color=config.reachable_color if reachable else config.unreachable_color,
                frame_id=config.frame_id,
            )
        )
    return markers


def get_arrow_markers(
    workspace: Workspace,
    marker_namespace: str,
    config: Optional[MarkerConfig] = None,
) -> List[Marker]:
    """One arrow per point, pointing along the sampled orientation.

    Works on any non-empty workspace, including reachable-only subsets.
    """
    if not workspace.points:
        raise ValueError("Cannot export an empty workspace")
    config = config or MarkerConfig()
    scale = (config.arrow_length, config.arrow_width, config.arrow_width)
    markers = []
    for i, point in enumerate(workspace.points):
        reachable = point.is_reachable
        markers.append(
            Marker(
                namespace=f"{marker_namespace}/{'reachable' if reachable else 'unreachable'}",
                marker_id=i,
                marker_type="arrow",
                position=point.pose.position,
                orientation=point.pose.orientation,
                scale=scale,
                color=config.reachable_color if reachable else config.unreachable_color,
                frame_id=config.frame_id,
            )
        )
    return markers
