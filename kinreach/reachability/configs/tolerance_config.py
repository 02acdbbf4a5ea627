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

from kinreach.exceptions import InvalidConfiguration
from kinreach.utils import logger


@dataclass
class ToleranceConfig:
    """Comparison tolerances used across the reachability engine."""

    position_eps: float = 1e-6
    """Absolute tolerance (meters) when comparing positions."""

    orientation_eps: float = 1e-3
    """Component-wise tolerance when comparing quaternions."""

    joint_eps: float = 1e-3
    """Two joint states are distinct if any joint differs by more than this."""

    lattice_eps: float = 1e-9
    """Slack added before flooring grid ratios, so 0.3 / 0.1 gives 3 intervals, 4 grid points."""

    def __post_init__(self):
        for name in ("position_eps", "orientation_eps", "joint_eps", "lattice_eps"):
            if getattr(self, name) < 0:
                logger.log_error(f"{name} must be non-negative", InvalidConfiguration)
