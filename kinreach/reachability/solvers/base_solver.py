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

from abc import ABC, abstractmethod
from enum import IntEnum
from dataclasses import dataclass
from typing import Optional, Tuple

from kinreach.types import JointState, Pose

__all__ = [
    "IKErrorCode",
    "IKRequest",
    "IKResponse",
    "KinematicSolverInfo",
    "IKSolver",
]


class IKErrorCode(IntEnum):
    """Result codes an IK solver reports, following the MoveIt error code values."""

    SUCCESS = 1
    FAILURE = 99999
    TIMED_OUT = -6
    NO_IK_SOLUTION = -31
    INVALID_GOAL_CONSTRAINTS = -14
    INVALID_GROUP_NAME = -15
    FRAME_TRANSFORM_FAILURE = -21
    INVALID_LINK_NAME = -28
    INVALID_ROBOT_STATE = -29
    GOAL_IN_COLLISION = -12
    GOAL_VIOLATES_PATH_CONSTRAINTS = -13


@dataclass(frozen=True)
class IKRequest:
    """A single IK query, with ``pose`` in the group's native end-effector frame."""

    group_name: str
    pose: Pose
    seed: Optional[JointState] = None
    timeout: float = 0.1


@dataclass(frozen=True)
class IKResponse:
    error_code: IKErrorCode
    joint_state: Optional[JointState] = None


@dataclass(frozen=True)
class KinematicSolverInfo:
    """Joint names and limits of a kinematic group."""

    joint_names: Tuple[str, ...]
    lower_limits: Tuple[float, ...]
    upper_limits: Tuple[float, ...]

    def __post_init__(self):
        n = len(self.joint_names)
        if len(self.lower_limits) != n or len(self.upper_limits) != n:
            raise ValueError(
                f"Solver info for {n} joints has {len(self.lower_limits)} lower and "
                f"{len(self.upper_limits)} upper limits"
            )


class IKSolver(ABC):
    """The IK solver collaborator used by the reachability engine.

    Implementations may block for up to ``request.timeout`` seconds. They
    report failures through :class:`IKErrorCode`; raising ``TimeoutError`` is
    also understood as a timeout.
    """

    @abstractmethod
    def solve(self, request: IKRequest) -> IKResponse:
        """Solve IK for ``request.pose``."""

    @abstractmethod
    def get_solver_info(self, group_name: str) -> KinematicSolverInfo:
        """Return joint names and limits for ``group_name``."""

    def is_active(self) -> bool:
        """Whether the solver is ready to take requests."""
        return True
