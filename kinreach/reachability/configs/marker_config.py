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

from dataclasses import dataclass
from typing import Tuple

Color = Tuple[float, float, float, float]


@dataclass
class MarkerConfig:
    """Marker appearance for reachability exports."""

    reachable_color: Color = (0.0, 1.0, 0.0, 1.0)
    """RGBA of positions reachable in every sampled orientation."""

    unreachable_color: Color = (1.0, 0.0, 0.0, 1.0)
    """RGBA of positions reachable in no sampled orientation."""

    sphere_scale: float = 0.02
    """Sphere diameter in meters."""

    arrow_length: float = 0.04
    arrow_width: float = 0.005

    frame_id: str = "base_link"
    """Frame the markers are expressed in."""
