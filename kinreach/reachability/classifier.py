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

from typing import List, Optional, Sequence, Tuple

from kinreach.reachability.configs import ToleranceConfig
from kinreach.types import Quaternion, SolveOutcome, Workspace, WorkspacePoint
from kinreach.utils.se3_utils import quaternions_close

__all__ = [
    "classify",
    "reachability_mask",
    "reachability_ratio",
    "filter_reachable",
    "get_points_at_orientation",
    "get_points_at_orientations",
    "get_points_within_range",
]


def reachability_mask(workspace: Workspace) -> torch.Tensor:
    """Boolean mask of shape (N,), True where IK succeeded."""
    return torch.tensor(
        [p.solve_outcome == SolveOutcome.SUCCESS for p in workspace.points],
        dtype=torch.bool,
    )


def classify(workspace: Workspace) -> Tuple[List[int], List[int]]:
    """Split point indices into reachable and unreachable ones.

    The two lists are disjoint, sorted and together cover every point.
    """
    mask = reachability_mask(workspace)
    reachable = torch.nonzero(mask, as_tuple=False).flatten().tolist()
    unreachable = torch.nonzero(~mask, as_tuple=False).flatten().tolist()
    return reachable, unreachable


def reachability_ratio(workspace: Workspace) -> float:
    if not workspace.points:
        return 0.0
    return float(reachability_mask(workspace).double().mean().item())


def filter_reachable(workspace: Workspace) -> Workspace:
    """Return a new workspace holding only the reachable points, in order."""
    return workspace.copy_parameters(
        [p for p in workspace.points if p.solve_outcome == SolveOutcome.SUCCESS]
    )


def get_points_at_orientation(
    workspace: Workspace,
    orientation: Quaternion,
    tolerance: Optional[ToleranceConfig] = None,
) -> List[WorkspacePoint]:
    """Points whose orientation equals ``orientation`` up to ``orientation_eps``.

    Quaternions are compared component-wise, and ``q`` matches ``-q``.
    """
    eps = (tolerance or ToleranceConfig()).orientation_eps
    return [
        p
        for p in workspace.points
        if quaternions_close(p.pose.orientation, orientation, eps)
    ]


def get_points_at_orientations(
    workspace: Workspace,
    orientations: Sequence[Quaternion],
    tolerance: Optional[ToleranceConfig] = None,
) -> List[WorkspacePoint]:
    eps = (tolerance or ToleranceConfig()).orientation_eps
    return [
        p
        for p in workspace.points
        if any(quaternions_close(p.pose.orientation, q, eps) for q in orientations)
    ]


def get_points_within_range(
    workspace: Workspace,
    min_radius: float,
    max_radius: float,
) -> List[WorkspacePoint]:
    """Points whose distance from ``workspace.origin`` lies in [min_radius, max_radius]."""
    if min_radius > max_radius:
        raise ValueError(
            f"min_radius {min_radius} is larger than max_radius {max_radius}"
        )
    if not workspace.points:
        return []
    distances = torch.linalg.norm(
        workspace.positions() - torch.tensor(workspace.origin.position, dtype=torch.float64),
        dim=1,
    )
    mask = (distances >= min_radius) & (distances <= max_radius)
    return [p for p, keep in zip(workspace.points, mask.tolist()) if keep]
