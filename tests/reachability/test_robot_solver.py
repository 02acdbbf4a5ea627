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
import torch

from kinreach.reachability.ik_evaluator import IKEvaluator
from kinreach.reachability.solvers import (
    IKErrorCode,
    IKRequest,
    KinematicSolverInfo,
    RobotIKSolver,
)
from kinreach.types import JointState, Pose, SolveOutcome

ARM_INFO = KinematicSolverInfo(
    joint_names=("j1", "j2"), lower_limits=(-1.0, -1.0), upper_limits=(1.0, 1.0)
)


class FakeRobot:
    """Succeeds for targets in front of the base (x > 0)."""

    def __init__(self, delay=0.0):
        self.delay = delay
        self.calls = []

    def compute_ik(self, pose, joint_seed=None, name=None):
        self.calls.append((pose, joint_seed, name))
        if self.delay:
            time.sleep(self.delay)
        ok = bool(pose[0, 0, 3] > 0)
        qpos = torch.tensor([[pose[0, 0, 3].item(), pose[0, 1, 3].item()]])
        return torch.tensor([ok]), qpos


def test_robot_solver_success_and_failure():
    robot = FakeRobot()
    solver = RobotIKSolver(robot, {"arm": ARM_INFO})

    response = solver.solve(IKRequest("arm", Pose(position=(0.5, 0.25, 0.0)), timeout=1.0))
    assert response.error_code == IKErrorCode.SUCCESS
    assert response.joint_state.names == ("j1", "j2")
    assert response.joint_state.values == (0.5, 0.25)

    pose, seed, name = robot.calls[0]
    assert pose.shape == (1, 4, 4)
    assert seed is None
    assert name == "arm"

    response = solver.solve(IKRequest("arm", Pose(position=(-0.5, 0.0, 0.0)), timeout=1.0))
    assert response.error_code == IKErrorCode.NO_IK_SOLUTION
    assert response.joint_state is None


def test_robot_solver_passes_seed():
    robot = FakeRobot()
    solver = RobotIKSolver(robot, {"arm": ARM_INFO})
    seed = JointState(names=("j1", "j2"), values=(0.1, -0.2))
    solver.solve(IKRequest("arm", Pose(position=(0.5, 0.0, 0.0)), seed=seed))
    assert robot.calls[0][1].shape == (1, 2)


def test_robot_solver_unknown_group():
    solver = RobotIKSolver(FakeRobot(), {"arm": ARM_INFO})
    response = solver.solve(IKRequest("leg", Pose()))
    assert response.error_code == IKErrorCode.INVALID_GROUP_NAME
    assert solver.get_solver_info("arm") == ARM_INFO


def test_robot_solver_reports_late_answers_as_timeout():
    solver = RobotIKSolver(FakeRobot(delay=0.05), {"arm": ARM_INFO})
    evaluator = IKEvaluator(solver, show_progress=False)
    outcome, joint_state = evaluator.solve(
        "arm", Pose(position=(0.5, 0.0, 0.0)), timeout=0.01
    )
    assert outcome == SolveOutcome.TIMEOUT
    assert joint_state is None
