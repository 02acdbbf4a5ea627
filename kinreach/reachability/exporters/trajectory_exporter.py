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

import torch

from dataclasses import dataclass, field
from typing import List, Tuple

from kinreach.types import Workspace

__all__ = ["TrajectoryPoint", "DisplayTrajectory", "get_display_trajectory"]


@dataclass(frozen=True)
class TrajectoryPoint:
    values: Tuple[float, ...]
    time_from_start: float


@dataclass
class DisplayTrajectory:
    """Joint-space trajectory visiting the reachable points of a workspace."""

    group_name: str
    joint_names: Tuple[str, ...] = ()
    points: List[TrajectoryPoint] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def duration(self) -> float:
        return self.points[-1].time_from_start if self.points else 0.0

    def to_tensor(self) -> torch.Tensor:
        """Joint values of shape (num_points, num_joints)."""
        if not self.points:
            return torch.empty((0, len(self.joint_names)), dtype=torch.float64)
        return torch.tensor([p.values for p in self.points], dtype=torch.float64)


def get_display_trajectory(workspace: Workspace, dt: float) -> DisplayTrajectory:
    """Build a trajectory with one waypoint per reachable point, ``dt`` seconds apart.

    The k-th reachable point (k starting at 0) is reached at ``k * dt``.

    Raises:
        ValueError: If the workspace is empty, ``dt`` is not positive or the
            reachable points use different joints.
    """
    if not workspace.points:
        raise ValueError("Cannot build a trajectory from an empty workspace")
    if not dt > 0:
        raise ValueError(f"Time step must be positive, got {dt}")

    trajectory = DisplayTrajectory(group_name=workspace.group_name)
    for point in workspace.points:
        if not point.is_reachable:
            continue
        joint_state = point.joint_state
        if not trajectory.joint_names:
            trajectory.joint_names = joint_state.names
        elif joint_state.names != trajectory.joint_names:
            raise ValueError(
                f"Joint names {joint_state.names} differ from {trajectory.joint_names}"
            )
        trajectory.points.append(
            TrajectoryPoint(
                values=joint_state.values,
                time_from_start=len(trajectory.points) * dt,
            )
        )
    return trajectory
