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
from typing import List, Optional

from kinreach.types import Pose, Quaternion, Vector3


@dataclass
class CacheOptions:
    """Parameters a seed cache is built with.

    They are stored alongside the cache entries so a loader can check that a
    cache file fits the current query before reusing it.
    """

    origin: Pose = field(default_factory=Pose.identity)
    """Frame in which positions are discretized."""

    min_position: Vector3 = (-1.0, -1.0, 0.0)
    max_position: Vector3 = (1.0, 1.0, 2.0)
    """Cache bounds, expressed in the origin frame."""

    resolution: float = 0.05
    """Position bucket size in meters."""

    solver_timeout: float = 0.1
    """Per-point IK timeout used while generating."""

    orientations: Optional[List[Quaternion]] = None
    """Representative orientations for bucketing. If None, the 24 rotations of the cube are used."""

    max_entries: Optional[int] = None
    """Upper bound on stored entries per group. Unbounded if None."""


@dataclass
class CacheConfig:
    """Seed cache usage of the reachability engine."""

    use_cache: bool = False
    """Seed IK calls from the cache when one is loaded."""

    cache_filename: Optional[str] = None
    """Cache file loaded at construction. No cache is used if None."""

    default_options: CacheOptions = None
    """Options for ``generate_cache`` calls that pass none."""

    expected_options: Optional[CacheOptions] = None
    """A loaded cache whose origin, bounds or resolution differ from these is not used.
    Defaults to ``default_options``."""

    def __post_init__(self):
        if self.default_options is None:
            self.default_options = CacheOptions()

    @property
    def compatibility_options(self) -> CacheOptions:
        """Options a loaded cache is checked against."""
        return self.expected_options or self.default_options
