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

from .marker_exporter import (
    Marker,
    get_arrow_markers,
    get_point_index,
    get_point_markers,
    get_position_index,
    get_position_indexed_markers,
)
from .trajectory_exporter import (
    DisplayTrajectory,
    TrajectoryPoint,
    get_display_trajectory,
)

__all__ = [
    "Marker",
    "get_arrow_markers",
    "get_point_index",
    "get_point_markers",
    "get_position_index",
    "get_position_indexed_markers",
    "DisplayTrajectory",
    "TrajectoryPoint",
    "get_display_trajectory",
]
