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

import math
import numpy as np
import torch
from typing import List, Optional, Sequence, Tuple, Union

from kinreach.exceptions import InvalidConfiguration
from kinreach.types import Pose, Quaternion, Workspace, WorkspacePoint
from kinreach.utils import logger

__all__ = ["PoseGridSampler", "generate_pose_grid", "get_num_points"]


def _per_axis(resolution: Union[float, Sequence[float]]) -> Tuple[float, float, float]:
    if np.isscalar(resolution):
        return (float(resolution),) * 3
    resolution = tuple(float(r) for r in resolution)
    if len(resolution) != 3:
        logger.log_error(
            f"Position resolution needs 1 or 3 values, got {len(resolution)}",
            InvalidConfiguration,
        )
    return resolution


def get_num_points(
    min_position: Sequence[float],
    max_position: Sequence[float],
    resolution: Union[float, Sequence[float]],
    lattice_eps: float = 1e-9,
) -> Tuple[int, int, int]:
    """Number of grid steps along x, y and z.

    Each axis gets ``floor((max - min) / resolution) + 1`` steps, so the last
    grid point never goes past ``max``. A flat axis gets exactly one step.

    Raises:
        InvalidConfiguration: If a resolution is not positive or ``max < min``.
    """
    resolution = _per_axis(resolution)
    if len(min_position) != 3 or len(max_position) != 3:
        logger.log_error("Workspace bounds need 3 values per corner", InvalidConfiguration)

    counts = []
    for axis, (lo, hi, res) in enumerate(zip(min_position, max_position, resolution)):
        if not res > 0:
            logger.log_error(
                f"Position resolution must be positive, got {res} on axis {axis}",
                InvalidConfiguration,
            )
        if hi < lo:
            logger.log_error(
                f"Workspace max_position {hi} is below min_position {lo} on axis {axis}",
                InvalidConfiguration,
            )
        counts.append(int(math.floor((hi - lo) / res + lattice_eps)) + 1)
    return tuple(counts)


class PoseGridSampler:
    """Regular lattice sampler over an axis-aligned box and a set of orientations.

    Positions are enumerated with ``torch.meshgrid(..., indexing="ij")`` so x
    varies slowest and z fastest. Every orientation is emitted for a position
    before moving on to the next one.
    """

    def __init__(
        self,
        lattice_eps: float = 1e-9,
        device: Optional[torch.device] = None,
    ):
        self.lattice_eps = lattice_eps
        self.device = device or torch.device("cpu")

    def sample_positions(
        self,
        min_position: Sequence[float],
        max_position: Sequence[float],
        resolution: Union[float, Sequence[float]],
    ) -> torch.Tensor:
        """Return lattice positions as a tensor of shape (N, 3)."""
        counts = get_num_points(min_position, max_position, resolution, self.lattice_eps)
        resolution = _per_axis(resolution)

        grids = []
        for lo, hi, res, n in zip(min_position, max_position, resolution, counts):
            grid = lo + torch.arange(n, dtype=torch.float64, device=self.device) * res
            # guard against the last step overshooting by rounding error
            grids.append(torch.clamp(grid, max=float(hi)))

        mesh = torch.meshgrid(*grids, indexing="ij")
        return torch.stack([m.flatten() for m in mesh], dim=-1)

    def sample(
        self,
        min_position: Sequence[float],
        max_position: Sequence[float],
        resolution: Union[float, Sequence[float]],
        orientations: Sequence[Quaternion],
    ) -> List[WorkspacePoint]:
        """Build the pending workspace points for every (position, orientation) pair."""
        if len(orientations) == 0:
            logger.log_error(
                "At least one orientation is required to sample a workspace",
                InvalidConfiguration,
            )
        positions = self.sample_positions(min_position, max_position, resolution)

        points = []
        for position in positions.tolist():
            for orientation in orientations:
                points.append(
                    WorkspacePoint(pose=Pose(position=position, orientation=orientation))
                )

        logger.log_debug(
            f"Pose grid: {len(positions)} positions x {len(orientations)} orientations "
            f"= {len(points)} points"
        )
        return points

    def populate(self, workspace: Workspace) -> Workspace:
        """Replace ``workspace.points`` with a freshly generated grid."""
        workspace.points = self.sample(
            workspace.min_position,
            workspace.max_position,
            workspace.position_resolution,
            workspace.orientations,
        )
        return workspace

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(lattice_eps={self.lattice_eps}, device={self.device})"


def generate_pose_grid(
    min_position: Sequence[float],
    max_position: Sequence[float],
    resolution: Union[float, Sequence[float]],
    orientations: Sequence[Quaternion],
    lattice_eps: float = 1e-9,
) -> List[WorkspacePoint]:
    """Functional shortcut for :meth:`PoseGridSampler.sample`."""
    return PoseGridSampler(lattice_eps=lattice_eps).sample(
        min_position, max_position, resolution, orientations
    )
