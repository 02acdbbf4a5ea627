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

import time
import numpy as np
import torch
from typing import Any, Dict, Optional, Sequence

from kinreach.reachability.solvers.base_solver import (
    IKErrorCode,
    IKRequest,
    IKResponse,
    IKSolver,
    KinematicSolverInfo,
)
from kinreach.types import JointState
from kinreach.utils import logger

__all__ = ["RobotIKSolver"]


class RobotIKSolver(IKSolver):
    """Adapts a robot exposing ``compute_ik`` to the :class:`IKSolver` contract.

    The robot is expected to follow the simulation robot API::

        ret, qpos = robot.compute_ik(pose=pose, joint_seed=seed, name=group_name)

    where ``pose`` is a (1, 4, 4) tensor, ``ret`` a boolean batch and ``qpos``
    a (1, num_joints) tensor. The adapter cannot interrupt the robot, so the
    timeout is enforced after the fact: a call that returns after its deadline
    is reported as ``TIMED_OUT``.

    Args:
        robot: Robot instance providing ``compute_ik``.
        solver_info: Joint names and limits per group name.
        device: Device the pose and seed tensors are created on.
    """

    def __init__(
        self,
        robot: Any,
        solver_info: Dict[str, KinematicSolverInfo],
        device: torch.device = torch.device("cpu"),
    ):
        self.robot = robot
        self.solver_info = dict(solver_info)
        self.device = device

    def get_solver_info(self, group_name: str) -> KinematicSolverInfo:
        if group_name not in self.solver_info:
            raise KeyError(f"Unknown kinematic group '{group_name}'")
        return self.solver_info[group_name]

    def solve(self, request: IKRequest) -> IKResponse:
        if request.group_name not in self.solver_info:
            return IKResponse(IKErrorCode.INVALID_GROUP_NAME)
        info = self.solver_info[request.group_name]

        pose = torch.as_tensor(
            request.pose.to_matrix(), dtype=torch.float32, device=self.device
        ).unsqueeze(0)
        joint_seed = None
        if request.seed is not None:
            joint_seed = torch.as_tensor(
                request.seed.values, dtype=torch.float32, device=self.device
            ).unsqueeze(0)

        start = time.monotonic()
        ret, qpos = self.robot.compute_ik(
            pose=pose, joint_seed=joint_seed, name=request.group_name
        )
        elapsed = time.monotonic() - start

        if elapsed > request.timeout:
            logger.log_debug(
                f"IK for '{request.group_name}' took {elapsed:.3f}s "
                f"(timeout {request.timeout:.3f}s)"
            )
            return IKResponse(IKErrorCode.TIMED_OUT)
        if ret is None or not bool(ret[0]):
            return IKResponse(IKErrorCode.NO_IK_SOLUTION)

        values = self._to_list(qpos[0])
        return IKResponse(
            IKErrorCode.SUCCESS,
            JointState(names=info.joint_names, values=values),
        )

    @staticmethod
    def _to_list(qpos: Any) -> Sequence[float]:
        if isinstance(qpos, torch.Tensor):
            return qpos.detach().cpu().double().tolist()
        return np.asarray(qpos, dtype=np.float64).tolist()
