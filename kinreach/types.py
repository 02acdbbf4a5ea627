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

from __future__ import annotations

import numpy as np
import torch

from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Union

from scipy.spatial.transform import Rotation as R

from kinreach.utils.se3_utils import quaternions_close


__all__ = [
    "Vector3",
    "Quaternion",
    "Pose",
    "JointState",
    "SolveOutcome",
    "WorkspacePoint",
    "Workspace",
]

Vector3 = Tuple[float, float, float]
Quaternion = Tuple[float, float, float, float]
"""Quaternions are stored scalar-last, (x, y, z, w), as scipy does."""


@dataclass(frozen=True)
class Pose:
    """A rigid transform: 3D position plus unit quaternion orientation."""

    position: Vector3 = (0.0, 0.0, 0.0)
    orientation: Quaternion = (0.0, 0.0, 0.0, 1.0)

    def __post_init__(self):
        position = tuple(float(v) for v in self.position)
        orientation = tuple(float(v) for v in self.orientation)
        if len(position) != 3:
            raise ValueError(f"Pose position needs 3 values, got {len(position)}")
        if len(orientation) != 4:
            raise ValueError(
                f"Pose orientation needs 4 values (x, y, z, w), got {len(orientation)}"
            )
        object.__setattr__(self, "position", position)
        object.__setattr__(self, "orientation", orientation)

    @classmethod
    def identity(cls) -> "Pose":
        return cls()

    @classmethod
    def from_matrix(cls, matrix: Union[np.ndarray, torch.Tensor]) -> "Pose":
        """Build a pose from a 4x4 homogeneous transform."""
        if isinstance(matrix, torch.Tensor):
            matrix = matrix.detach().cpu().numpy()
        matrix = np.asarray(matrix, dtype=np.float64)
        quat = R.from_matrix(matrix[:3, :3]).as_quat()
        return cls(position=tuple(matrix[:3, 3]), orientation=tuple(quat))

    def rotation(self) -> R:
        return R.from_quat(self.orientation)

    def to_matrix(self) -> np.ndarray:
        """Return the pose as a 4x4 homogeneous transform."""
        matrix = np.eye(4)
        matrix[:3, :3] = self.rotation().as_matrix()
        matrix[:3, 3] = self.position
        return matrix

    def compose(self, other: "Pose") -> "Pose":
        """Return ``self * other``: ``other`` expressed in the frame of ``self``."""
        rot = self.rotation()
        position = rot.apply(other.position) + np.asarray(self.position)
        orientation = (rot * other.rotation()).as_quat()
        return Pose(position=tuple(position), orientation=tuple(orientation))

    def __mul__(self, other: "Pose") -> "Pose":
        return self.compose(other)

    def inverse(self) -> "Pose":
        inv_rot = self.rotation().inv()
        position = -inv_rot.apply(self.position)
        return Pose(position=tuple(position), orientation=tuple(inv_rot.as_quat()))

    def with_position(self, position: Sequence[float]) -> "Pose":
        return Pose(position=tuple(position), orientation=self.orientation)

    def is_close(
        self, other: "Pose", position_eps: float, orientation_eps: float
    ) -> bool:
        """Tolerance comparison; ``q`` and ``-q`` are treated as equal."""
        dp = np.abs(np.asarray(self.position) - np.asarray(other.position))
        return bool(np.all(dp <= position_eps)) and quaternions_close(
            self.orientation, other.orientation, orientation_eps
        )


@dataclass(frozen=True)
class JointState:
    """Ordered joint names and their values for one kinematic group."""

    names: Tuple[str, ...]
    values: Tuple[float, ...]

    def __post_init__(self):
        names = tuple(str(n) for n in self.names)
        values = tuple(float(v) for v in self.values)
        if len(names) != len(values):
            raise ValueError(
                f"JointState has {len(names)} names but {len(values)} values"
            )
        object.__setattr__(self, "names", names)
        object.__setattr__(self, "values", values)

    def __len__(self) -> int:
        return len(self.values)

    def as_dict(self) -> Dict[str, float]:
        return dict(zip(self.names, self.values))

    def to_numpy(self) -> np.ndarray:
        return np.asarray(self.values, dtype=np.float64)

    def to_tensor(self, device: Optional[torch.device] = None) -> torch.Tensor:
        return torch.tensor(self.values, dtype=torch.float64, device=device)


class SolveOutcome(Enum):
    """Per-point IK result."""

    PENDING = "pending"
    """Generated but not evaluated yet."""

    SUCCESS = "success"
    TIMEOUT = "timeout"
    NO_IK_SOLUTION = "no_ik_solution"
    INVALID_GOAL = "invalid_goal"
    OTHER = "other"


@dataclass
class WorkspacePoint:
    """One candidate sample of a workspace."""

    pose: Pose
    solve_outcome: SolveOutcome = SolveOutcome.PENDING
    joint_state: Optional[JointState] = None

    def __post_init__(self):
        self._check_state(self.solve_outcome, self.joint_state)

    @staticmethod
    def _check_state(outcome: SolveOutcome, joint_state: Optional[JointState]):
        if (outcome == SolveOutcome.SUCCESS) != (joint_state is not None):
            raise ValueError(
                f"joint_state must be set exactly when the outcome is SUCCESS "
                f"(outcome={outcome.name}, joint_state={joint_state})"
            )

    def set_result(
        self, outcome: SolveOutcome, joint_state: Optional[JointState] = None
    ) -> None:
        """Overwrite the evaluation result of this point in place."""
        self._check_state(outcome, joint_state)
        self.solve_outcome = outcome
        self.joint_state = joint_state

    @property
    def is_reachable(self) -> bool:
        return self.solve_outcome == SolveOutcome.SUCCESS


@dataclass
class Workspace:
    """A named reachability query and its results.

    Points are ordered position-major: all orientations of one position are
    stored next to each other, so ``index = position_index * len(orientations)
    + orientation_index``. Positions themselves are enumerated with x as the
    slowest and z as the fastest varying axis.
    """

    group_name: str
    min_position: Vector3 = (0.0, 0.0, 0.0)
    max_position: Vector3 = (0.0, 0.0, 0.0)
    orientations: List[Quaternion] = field(
        default_factory=lambda: [(0.0, 0.0, 0.0, 1.0)]
    )
    position_resolution: Union[float, Vector3] = 0.1
    tool_frame_offset: Pose = field(default_factory=Pose.identity)
    origin: Pose = field(default_factory=Pose.identity)
    """Reference frame used by range queries (distance from its position)."""

    points: List[WorkspacePoint] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def num_orientations(self) -> int:
        return len(self.orientations)

    def copy_parameters(self, points: Optional[List[WorkspacePoint]] = None):
        """Return a workspace with the same query parameters and ``points``."""
        return Workspace(
            group_name=self.group_name,
            min_position=self.min_position,
            max_position=self.max_position,
            orientations=list(self.orientations),
            position_resolution=self.position_resolution,
            tool_frame_offset=self.tool_frame_offset,
            origin=self.origin,
            points=list(points) if points is not None else [],
        )

    def positions(self, device: Optional[torch.device] = None) -> torch.Tensor:
        """Positions of all points as a tensor of shape (N, 3)."""
        if not self.points:
            return torch.empty((0, 3), dtype=torch.float64, device=device)
        return torch.tensor(
            [p.pose.position for p in self.points], dtype=torch.float64, device=device
        )

    def outcomes(self) -> List[SolveOutcome]:
        return [p.solve_outcome for p in self.points]
