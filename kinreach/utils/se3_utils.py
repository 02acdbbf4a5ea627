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

import numpy as np

from scipy.spatial.transform import Rotation as R


def normalize_quaternion(q):
    """Return ``q`` scaled to unit norm. Quaternions are (x, y, z, w)."""
    q = np.asarray(q, dtype=np.float64)
    q_mag = np.linalg.norm(q, axis=-1, keepdims=True)
    if np.any(q_mag < 1e-12):
        raise ValueError("Cannot normalize a zero quaternion")
    return q / q_mag


def quaternion_angle(q1, q2):
    """Angular distance in radians between the rotations ``q1`` and ``q2``.

    Both arguments may be batched along the leading axis. The absolute dot
    product makes ``q`` and ``-q`` distance zero apart.
    """
    q1 = normalize_quaternion(q1)
    q2 = normalize_quaternion(q2)
    dot = np.abs(np.sum(q1 * q2, axis=-1))
    return 2.0 * np.arccos(np.clip(dot, 0.0, 1.0))


def quaternions_close(q1, q2, eps: float) -> bool:
    """Component-wise comparison of two quaternions within ``eps``.

    ``q`` and ``-q`` describe the same rotation, so both signs of ``q2`` are tried.
    """
    q1 = np.asarray(q1, dtype=np.float64)
    q2 = np.asarray(q2, dtype=np.float64)
    return bool(
        np.all(np.abs(q1 - q2) <= eps) or np.all(np.abs(q1 + q2) <= eps)
    )


def nearest_quaternion_index(q, candidates) -> int:
    """Index of the candidate closest to ``q`` by angular distance.

    ``np.argmin`` returns the first minimum, so ties resolve to the lowest index.
    """
    candidates = np.asarray(candidates, dtype=np.float64)
    angles = quaternion_angle(
        np.broadcast_to(np.asarray(q, dtype=np.float64), candidates.shape), candidates
    )
    return int(np.argmin(angles))


def octahedral_quaternions() -> np.ndarray:
    """The 24 proper rotations of the cube as (x, y, z, w) quaternions.

    Signs are canonicalized so ``w >= 0`` and the order is fixed by sorting,
    which keeps bucket indices stable across scipy versions.
    """
    quats = R.create_group("O").as_quat()
    flip = (quats[:, 3] < 0) | (
        np.isclose(quats[:, 3], 0.0) & (quats[:, :3].sum(axis=1) < 0)
    )
    quats[flip] *= -1.0
    quats = np.round(quats, 12)
    order = np.lexsort(quats.T[::-1])
    return quats[order]
