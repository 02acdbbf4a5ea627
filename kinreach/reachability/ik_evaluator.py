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

from tqdm import tqdm
from typing import Dict, Iterator, List, Optional, Tuple

from kinreach.reachability.caches.seed_cache import SeedCache
from kinreach.reachability.configs import ToleranceConfig
from kinreach.reachability.samplers import JointSeedSampler
from kinreach.reachability.solvers import (
    IKErrorCode,
    IKRequest,
    IKResponse,
    IKSolver,
)
from kinreach.types import (
    JointState,
    Pose,
    SolveOutcome,
    Workspace,
    WorkspacePoint,
)
from kinreach.utils import logger

__all__ = ["IKEvaluator", "ERROR_CODE_TO_OUTCOME"]


ERROR_CODE_TO_OUTCOME: Dict[IKErrorCode, SolveOutcome] = {
    IKErrorCode.SUCCESS: SolveOutcome.SUCCESS,
    IKErrorCode.NO_IK_SOLUTION: SolveOutcome.NO_IK_SOLUTION,
    IKErrorCode.TIMED_OUT: SolveOutcome.TIMEOUT,
    IKErrorCode.INVALID_GOAL_CONSTRAINTS: SolveOutcome.INVALID_GOAL,
    IKErrorCode.INVALID_GROUP_NAME: SolveOutcome.INVALID_GOAL,
    IKErrorCode.FRAME_TRANSFORM_FAILURE: SolveOutcome.INVALID_GOAL,
    IKErrorCode.INVALID_LINK_NAME: SolveOutcome.INVALID_GOAL,
}
"""Solver codes that have a dedicated outcome. Anything else maps to OTHER."""


class IKEvaluator:
    """Runs the IK solver over single poses and whole workspaces.

    Points are evaluated one at a time, in index order, and do not share any
    information except through the seed cache. The cache is only read here.

    Args:
        solver: IK solver collaborator.
        cache: Seed cache to read seeds from. Optional.
        use_cache: Seed solver calls from ``cache`` when no seed is given.
        tolerance: Tolerances, used to tell redundant solutions apart.
        seed: Random seed for joint-space restarts.
        show_progress: Show a progress bar during batch evaluation.
    """

    def __init__(
        self,
        solver: IKSolver,
        cache: Optional[SeedCache] = None,
        use_cache: bool = False,
        tolerance: Optional[ToleranceConfig] = None,
        seed: int = 42,
        show_progress: bool = True,
    ):
        self.solver = solver
        self.cache = cache
        self.use_cache = use_cache
        self.tolerance = tolerance or ToleranceConfig()
        self.seed_sampler = JointSeedSampler(seed=seed)
        self.show_progress = show_progress

    @property
    def seeding_enabled(self) -> bool:
        return self.use_cache and self.cache is not None

    def solve(
        self,
        group_name: str,
        pose: Pose,
        tool_frame_offset: Optional[Pose] = None,
        timeout: float = 0.1,
        seed: Optional[JointState] = None,
        use_cache: Optional[bool] = None,
    ) -> Tuple[SolveOutcome, Optional[JointState]]:
        """Solve IK for a tool-tip ``pose``.

        The tool offset is removed first, since the solver works in the
        group's end-effector frame. Solver failures never raise here: they are
        reported as the returned outcome.

        Args:
            group_name: Kinematic group to solve for.
            pose: Target tool-tip pose in the planning frame.
            tool_frame_offset: End-effector to tool-tip transform. Identity if None.
            timeout: Solver timeout in seconds.
            seed: Explicit initial configuration. Takes precedence over the cache.
            use_cache: Override of ``self.use_cache`` for this call.

        Returns:
            The outcome and, on success only, the joint state.
        """
        if tool_frame_offset is not None:
            pose = pose * tool_frame_offset.inverse()

        seeding = self.seeding_enabled if use_cache is None else (
            use_cache and self.cache is not None
        )
        if seed is None and seeding:
            seed = self.cache.lookup(group_name, pose)

        request = IKRequest(group_name=group_name, pose=pose, seed=seed, timeout=timeout)
        try:
            response = self.solver.solve(request)
        except TimeoutError:
            return SolveOutcome.TIMEOUT, None
        except Exception as e:
            logger.log_warning(f"IK solver raised for group '{group_name}': {e}")
            return SolveOutcome.OTHER, None

        return self._to_outcome(response)

    @staticmethod
    def _to_outcome(
        response: IKResponse,
    ) -> Tuple[SolveOutcome, Optional[JointState]]:
        try:
            code = IKErrorCode(response.error_code)
        except ValueError:
            return SolveOutcome.OTHER, None
        outcome = ERROR_CODE_TO_OUTCOME.get(code, SolveOutcome.OTHER)
        if outcome == SolveOutcome.SUCCESS:
            if response.joint_state is None:
                logger.log_warning("IK solver reported success without a joint state")
                return SolveOutcome.OTHER, None
            return outcome, response.joint_state
        return outcome, None

    def evaluate_point(
        self,
        workspace: Workspace,
        index: int,
        timeout: float,
        tool_frame_offset: Optional[Pose] = None,
    ) -> WorkspacePoint:
        """Evaluate ``workspace.points[index]`` and overwrite its result."""
        point = workspace.points[index]
        offset = (
            tool_frame_offset
            if tool_frame_offset is not None
            else workspace.tool_frame_offset
        )
        outcome, joint_state = self.solve(
            workspace.group_name, point.pose, offset, timeout
        )
        point.set_result(outcome, joint_state)
        return point

    def iter_ik_solutions(
        self,
        workspace: Workspace,
        timeout: float,
        start: int = 0,
        tool_frame_offset: Optional[Pose] = None,
    ) -> Iterator[Tuple[int, WorkspacePoint]]:
        """Evaluate points one by one, yielding ``(index, point)`` after each.

        Stopping the iteration leaves later points untouched, and a new call
        with ``start`` set to the next index resumes where it stopped.
        """
        if start < 0 or start > len(workspace.points):
            raise IndexError(
                f"start index {start} outside workspace of {len(workspace.points)} points"
            )
        for index in range(start, len(workspace.points)):
            yield index, self.evaluate_point(workspace, index, timeout, tool_frame_offset)

    def find_ik_solutions(
        self,
        workspace: Workspace,
        timeout: float,
        tool_frame_offset: Optional[Pose] = None,
    ) -> Workspace:
        """Evaluate every point of ``workspace`` in place."""
        num_points = len(workspace.points)
        total_reachable = 0

        pbar = tqdm(
            self.iter_ik_solutions(workspace, timeout, tool_frame_offset=tool_frame_offset),
            total=num_points,
            desc="Inverse Kinematics",
            unit="pt",
            disable=not self.show_progress,
            dynamic_ncols=True,
        )
        for index, point in pbar:
            if point.is_reachable:
                total_reachable += 1
            pbar.set_postfix_str(f"Reachable: {total_reachable}/{index + 1}")
        pbar.close()

        reachability = total_reachable / num_points * 100 if num_points else 0.0
        logger.log_info(
            f"IK Results for '{workspace.group_name}': {total_reachable}/{num_points} "
            f"reachable points ({reachability:.1f}% reachability)"
        )
        return workspace

    def compute_redundant_solutions(
        self,
        group_name: str,
        pose: Pose,
        timeout: float,
        tool_frame_offset: Optional[Pose] = None,
        max_solutions: Optional[int] = None,
        attempt_timeout: Optional[float] = None,
    ) -> Workspace:
        """Collect distinct IK solutions for one pose.

        The solver is restarted from random joint seeds, within the group's
        joint limits, until ``timeout`` seconds have passed or
        ``max_solutions`` distinct solutions were found. Two solutions are
        distinct when some joint differs by more than ``tolerance.joint_eps``.

        Returns:
            A workspace whose points all share ``pose``, one per solution.
        """
        if timeout <= 0:
            raise ValueError(f"Redundant solution timeout must be positive, got {timeout}")
        info = self.solver.get_solver_info(group_name)
        attempt_timeout = attempt_timeout or timeout

        solutions: List[JointState] = []
        deadline = time.monotonic() + timeout
        attempts = 0
        while max_solutions is None or len(solutions) < max_solutions:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            values = self.seed_sampler.sample(info.lower_limits, info.upper_limits)[0]
            seed = JointState(names=info.joint_names, values=values.tolist())
            outcome, joint_state = self.solve(
                group_name,
                pose,
                tool_frame_offset,
                min(remaining, attempt_timeout),
                seed=seed,
            )
            attempts += 1
            if outcome == SolveOutcome.SUCCESS and self._is_new_solution(
                joint_state, solutions
            ):
                solutions.append(joint_state)

        logger.log_info(
            f"Found {len(solutions)} distinct solutions for '{group_name}' "
            f"in {attempts} attempts"
        )
        workspace = Workspace(
            group_name=group_name,
            min_position=pose.position,
            max_position=pose.position,
            orientations=[pose.orientation],
            tool_frame_offset=tool_frame_offset or Pose.identity(),
        )
        workspace.points = [
            WorkspacePoint(pose=pose, solve_outcome=SolveOutcome.SUCCESS, joint_state=s)
            for s in solutions
        ]
        return workspace

    def _is_new_solution(
        self, joint_state: JointState, solutions: List[JointState]
    ) -> bool:
        values = joint_state.to_numpy()
        for other in solutions:
            if np.all(np.abs(values - other.to_numpy()) <= self.tolerance.joint_eps):
                return False
        return True
