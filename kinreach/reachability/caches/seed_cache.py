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

import os
import json
import math
import tempfile
import numpy as np

from pathlib import Path
from dataclasses import asdict
from typing import Dict, List, Optional, Tuple, Union

from kinreach.exceptions import InvalidConfiguration
from kinreach.reachability.configs import CacheOptions, ToleranceConfig
from kinreach.types import JointState, Pose
from kinreach.utils import logger
from kinreach.utils.se3_utils import (
    nearest_quaternion_index,
    normalize_quaternion,
    octahedral_quaternions,
)

__all__ = ["CacheKey", "SeedCache"]

CacheKey = Tuple[int, int, int, int]
"""(ix, iy, iz, orientation bucket)."""

CACHE_FORMAT_VERSION = 1


class SeedCache:
    """Known-good joint configurations keyed by discretized pose, per group.

    A pose is first expressed in the cache origin frame. Its position falls in
    the bucket ``floor(p / resolution)`` on each axis, and its orientation in
    the bucket of the nearest representative quaternion (ties go to the lowest
    index). Poses outside the cache bounds have no bucket and always miss.

    Args:
        options: Parameters the cache is built with.
        tolerance: Tolerances for bounds and compatibility checks.
    """

    def __init__(
        self,
        options: Optional[CacheOptions] = None,
        tolerance: Optional[ToleranceConfig] = None,
    ):
        self.options = options or CacheOptions()
        self.tolerance = tolerance or ToleranceConfig()

        if not self.options.resolution > 0:
            logger.log_error(
                f"Cache resolution must be positive, got {self.options.resolution}",
                InvalidConfiguration,
            )
        if self.options.orientations:
            self.representatives = normalize_quaternion(self.options.orientations)
        else:
            self.representatives = octahedral_quaternions()

        self._origin_inv = self.options.origin.inverse()
        self._entries: Dict[str, Dict[CacheKey, Tuple[float, ...]]] = {}
        self._joint_names: Dict[str, Tuple[str, ...]] = {}

    @property
    def groups(self) -> List[str]:
        return sorted(self._entries.keys())

    def num_entries(self, group_name: Optional[str] = None) -> int:
        if group_name is not None:
            return len(self._entries.get(group_name, {}))
        return sum(len(v) for v in self._entries.values())

    def is_full(self, group_name: str) -> bool:
        max_entries = self.options.max_entries
        return max_entries is not None and self.num_entries(group_name) >= max_entries

    def representative_poses(self) -> List[Pose]:
        """Identity-position poses, one per orientation bucket."""
        return [Pose(orientation=tuple(q)) for q in self.representatives]

    def discretize(self, pose: Pose) -> Optional[CacheKey]:
        """Return the bucket of ``pose``, or None if it lies outside the cache bounds."""
        local = self._origin_inv * pose
        eps = self.tolerance.position_eps
        for value, lo, hi in zip(
            local.position, self.options.min_position, self.options.max_position
        ):
            if value < lo - eps or value > hi + eps:
                return None

        res = self.options.resolution
        lattice_eps = self.tolerance.lattice_eps
        ix, iy, iz = (int(math.floor(v / res + lattice_eps)) for v in local.position)
        bucket = nearest_quaternion_index(local.orientation, self.representatives)
        return (ix, iy, iz, bucket)

    def add(self, group_name: str, pose: Pose, joint_state: JointState) -> bool:
        """Store ``joint_state`` as the seed for the bucket of ``pose``.

        Returns False if the pose is out of bounds, the bucket is already
        filled or the group reached ``max_entries``.
        """
        names = self._joint_names.get(group_name)
        if names is not None and names != joint_state.names:
            raise ValueError(
                f"Joint names {joint_state.names} do not match cached names {names} "
                f"for group '{group_name}'"
            )
        key = self.discretize(pose)
        if key is None or self.is_full(group_name):
            return False
        group_entries = self._entries.setdefault(group_name, {})
        if key in group_entries:
            return False
        group_entries[key] = joint_state.values
        self._joint_names[group_name] = joint_state.names
        return True

    def lookup(self, group_name: str, pose: Pose) -> Optional[JointState]:
        """Return the seed stored for the bucket of ``pose``, if any.

        A miss is a normal outcome and is reported as None. Malformed poses
        (e.g. a zero quaternion) also miss.
        """
        group_entries = self._entries.get(group_name)
        if not group_entries:
            return None
        try:
            key = self.discretize(pose)
        except ValueError as e:
            logger.log_debug(f"Seed cache lookup skipped for malformed pose: {e}")
            return None
        if key is None or key not in group_entries:
            return None
        return JointState(names=self._joint_names[group_name], values=group_entries[key])

    def is_compatible(self, options: CacheOptions) -> bool:
        """Whether this cache was built with the origin, bounds and resolution of ``options``."""
        eps = self.tolerance.position_eps
        mine = self.options
        if abs(mine.resolution - options.resolution) > eps:
            return False
        bounds_mine = np.asarray([mine.min_position, mine.max_position])
        bounds_other = np.asarray([options.min_position, options.max_position])
        if np.any(np.abs(bounds_mine - bounds_other) > eps):
            return False
        return mine.origin.is_close(
            options.origin, eps, self.tolerance.orientation_eps
        )

    def save(self, path: Union[str, Path]) -> None:
        """Write the cache to ``path`` as a ``.npz`` archive.

        The archive is written to a temporary file next to ``path`` and moved
        into place, so an existing file is never left half written.

        Raises:
            OSError: If the destination cannot be written.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        meta = {
            "version": CACHE_FORMAT_VERSION,
            "options": self._options_to_dict(),
            "groups": self.groups,
            "joint_names": {g: list(self._joint_names[g]) for g in self.groups},
        }
        arrays = {"meta": np.array(json.dumps(meta))}
        for i, group_name in enumerate(self.groups):
            entries = self._entries[group_name]
            keys = sorted(entries.keys())
            num_joints = len(self._joint_names[group_name])
            arrays[f"keys_{i}"] = np.asarray(keys, dtype=np.int64).reshape(-1, 4)
            arrays[f"values_{i}"] = np.asarray(
                [entries[k] for k in keys], dtype=np.float64
            ).reshape(-1, num_joints)

        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
        )
        try:
            with os.fdopen(fd, "wb") as f:
                np.savez(f, **arrays)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

        logger.log_info(
            f"Saved seed cache with {self.num_entries()} entries "
            f"({len(self.groups)} groups) to {path}"
        )

    @classmethod
    def load(
        cls, path: Union[str, Path], tolerance: Optional[ToleranceConfig] = None
    ) -> "SeedCache":
        """Read a cache written by :meth:`save`.

        Raises:
            OSError: If the file cannot be read.
            ValueError: If the file is not a seed cache of a supported version.
        """
        with np.load(str(path), allow_pickle=False) as data:
            if "meta" not in data.files:
                raise ValueError(f"{path} is not a seed cache file")
            meta = json.loads(data["meta"].item())
            if meta.get("version") != CACHE_FORMAT_VERSION:
                raise ValueError(
                    f"Unsupported seed cache version {meta.get('version')} in {path}"
                )

            cache = cls(cls._options_from_dict(meta["options"]), tolerance)
            for i, group_name in enumerate(meta["groups"]):
                keys = data[f"keys_{i}"]
                values = data[f"values_{i}"]
                if len(keys) != len(values):
                    raise ValueError(
                        f"Seed cache group '{group_name}' has {len(keys)} keys "
                        f"but {len(values)} values"
                    )
                cache._joint_names[group_name] = tuple(meta["joint_names"][group_name])
                cache._entries[group_name] = {
                    tuple(int(k) for k in key): tuple(float(v) for v in value)
                    for key, value in zip(keys, values)
                }
        return cache

    def _options_to_dict(self) -> dict:
        options = asdict(self.options)
        options["orientations"] = self.representatives.tolist()
        return options

    @staticmethod
    def _options_from_dict(options: dict) -> CacheOptions:
        origin = options["origin"]
        return CacheOptions(
            origin=Pose(position=origin["position"], orientation=origin["orientation"]),
            min_position=tuple(options["min_position"]),
            max_position=tuple(options["max_position"]),
            resolution=float(options["resolution"]),
            solver_timeout=float(options["solver_timeout"]),
            orientations=[tuple(q) for q in options["orientations"]],
            max_entries=options.get("max_entries"),
        )

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(groups={self.groups}, "
            f"entries={self.num_entries()}, resolution={self.options.resolution})"
        )
