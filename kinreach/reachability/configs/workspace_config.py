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

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from kinreach.types import Pose, Quaternion, Vector3, Workspace


@dataclass
class WorkspaceConfig:
    """Query parameters for one reachability run."""

    group_name: str = ""
    """Kinematic group (arm) to analyze."""

    min_position: Vector3 = (0.0, 0.0, 0.0)
    max_position: Vector3 = (0.0, 0.0, 0.0)

    position_resolution: Union[float, Vector3] = 0.1
    """Grid spacing in meters, uniform or per axis."""

    orientations: List[Quaternion] = field(
        default_factory=lambda: [(0.0, 0.0, 0.0, 1.0)]
    )
    """Orientations sampled at every position, as (x, y, z, w)."""

    tool_frame_offset: Optional[Pose] = None
    """Transform from the group's end-effector frame to the tool tip. Identity if None."""

    origin: Optional[Pose] = None
    """Reference frame for range queries. Identity if None."""

    def to_workspace(self) -> Workspace:
        """Create an empty workspace carrying these parameters."""
        return Workspace(
            group_name=self.group_name,
            min_position=tuple(self.min_position),
            max_position=tuple(self.max_position),
            orientations=[tuple(q) for q in self.orientations],
            position_resolution=self.position_resolution,
            tool_frame_offset=self.tool_frame_offset or Pose.identity(),
            origin=self.origin or Pose.identity(),
        )
