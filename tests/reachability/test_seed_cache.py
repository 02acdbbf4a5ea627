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
import pytest

from scipy.spatial.transform import Rotation as R

from kinreach.exceptions import CacheGenerationFailed, InvalidConfiguration
from kinreach.reachability.caches import CacheManager, SeedCache
from kinreach.reachability.configs import CacheOptions, ToleranceConfig
from kinreach.reachability.ik_evaluator import IKEvaluator
from kinreach.types import JointState, Pose
from kinreach.utils.se3_utils import octahedral_quaternions

from fakes import JOINT_NAMES, SphereIKSolver, TimeoutIKSolver

IDENTITY = (0.0, 0.0, 0.0, 1.0)


def small_options(**kwargs):
    params = dict(
        min_position=(0.0, 0.0, 0.0),
        max_position=(0.2, 0.2, 0.2),
        resolution=0.1,
        solver_timeout=0.05,
        orientations=[IDENTITY],
    )
    params.update(kwargs)
    return CacheOptions(**params)


def generate(tmp_path, solver=None, options=None, name="cache.npz"):
    solver = solver or SphereIKSolver()
    evaluator = IKEvaluator(solver, show_progress=False)
    destination = tmp_path / name
    cache = CacheManager.generate_cache(
        evaluator, "arm", 0.05, options or small_options(), destination
    )
    return solver, cache, destination


def test_default_representatives_are_the_cube_rotations():
    quats = octahedral_quaternions()
    assert quats.shape == (24, 4)
    assert np.allclose(np.linalg.norm(quats, axis=1), 1.0)
    assert any(np.allclose(q, IDENTITY) for q in quats)
    # stable across calls
    assert np.array_equal(quats, octahedral_quaternions())

    cache = SeedCache(CacheOptions())
    assert len(cache.representatives) == 24


def test_generate_then_load_round_trip(tmp_path):
    solver, cache, destination = generate(tmp_path)
    assert destination.is_file()
    assert cache.num_entries("arm") > 0

    loaded = SeedCache.load(destination)
    assert loaded.groups == ["arm"]
    assert loaded.num_entries("arm") == cache.num_entries("arm")

    pose = Pose(position=(0.1, 0.1, 0.0), orientation=IDENTITY)
    seed = loaded.lookup("arm", pose)
    assert seed is not None
    assert seed.names == JOINT_NAMES
    assert seed.values == pytest.approx(solver.joint_state_for(pose.position).values)


def test_generation_evaluates_whole_grid_without_seeds(tmp_path):
    solver, cache, _ = generate(tmp_path)
    assert len(solver.requests) == 27
    assert all(r.seed is None for r in solver.requests)
    # points beyond the 0.25 m reach are not stored
    reachable = [r for r in solver.requests if np.linalg.norm(r.pose.position) <= 0.25]
    assert cache.num_entries("arm") == len(reachable)


def test_lookup_misses_are_not_errors(tmp_path):
    _, cache, _ = generate(tmp_path)
    # outside the cache bounds
    assert cache.lookup("arm", Pose(position=(5.0, 5.0, 5.0))) is None
    # inside the bounds but never solved (beyond reach)
    assert cache.lookup("arm", Pose(position=(0.2, 0.2, 0.2))) is None
    # unknown group
    assert cache.lookup("other_arm", Pose(position=(0.1, 0.1, 0.0))) is None
    # malformed orientation
    assert cache.lookup("arm", Pose(position=(0.1, 0.1, 0.0), orientation=(0, 0, 0, 0))) is None


def test_lookup_is_stable_within_a_bucket(tmp_path):
    _, cache, _ = generate(tmp_path)
    pose = Pose(position=(0.1, 0.0, 0.1), orientation=IDENTITY)
    nearby = Pose(position=(0.13, 0.04, 0.11), orientation=IDENTITY)
    first = cache.lookup("arm", pose)
    assert first is not None
    assert cache.lookup("arm", pose) == first
    assert cache.lookup("arm", nearby) == first
    assert cache.discretize(pose) == cache.discretize(nearby) == (1, 0, 1, 0)


def test_orientation_bucket_is_nearest_representative():
    quats = octahedral_quaternions()
    cache = SeedCache(small_options(orientations=None))
    identity_index = int(np.flatnonzero(np.all(np.isclose(quats, IDENTITY), axis=1))[0])

    slightly_rotated = R.from_euler("xyz", [5, -3, 4], degrees=True).as_quat()
    key = cache.discretize(Pose(position=(0.0, 0.0, 0.0), orientation=slightly_rotated))
    assert key[3] == identity_index

    # q and -q fall in the same bucket
    negated = tuple(-v for v in slightly_rotated)
    assert cache.discretize(Pose(orientation=negated)) == key


def test_discretize_relative_to_origin():
    origin = Pose(position=(1.0, 0.0, 0.0))
    cache = SeedCache(small_options(origin=origin))
    assert cache.discretize(Pose(position=(1.1, 0.1, 0.0))) == (1, 1, 0, 0)
    assert cache.discretize(Pose(position=(0.1, 0.1, 0.0))) is None


def test_max_entries_bounds_generation(tmp_path):
    _, cache, _ = generate(tmp_path, options=small_options(max_entries=3))
    assert cache.num_entries("arm") == 3


def test_generation_fails_without_any_solution(tmp_path):
    destination = tmp_path / "cache.npz"
    evaluator = IKEvaluator(TimeoutIKSolver(), show_progress=False)
    with pytest.raises(CacheGenerationFailed):
        CacheManager.generate_cache(evaluator, "arm", 0.05, small_options(), destination)
    assert not destination.exists()


def test_generation_fails_on_unwritable_destination(tmp_path):
    evaluator = IKEvaluator(SphereIKSolver(), show_progress=False)
    # a directory cannot be replaced by the cache file
    with pytest.raises(CacheGenerationFailed):
        CacheManager.generate_cache(evaluator, "arm", 0.05, small_options(), tmp_path)
    assert list(tmp_path.iterdir()) == []


def test_failed_save_keeps_existing_file(tmp_path):
    _, _, destination = generate(tmp_path)
    before = destination.read_bytes()
    evaluator = IKEvaluator(TimeoutIKSolver(), show_progress=False)
    with pytest.raises(CacheGenerationFailed):
        CacheManager.generate_cache(evaluator, "arm", 0.05, small_options(), destination)
    assert destination.read_bytes() == before


def test_compatibility_check(tmp_path):
    _, _, destination = generate(tmp_path)
    assert CacheManager.load_cache(destination, expected_options=small_options()) is not None
    assert CacheManager.load_cache(
        destination, expected_options=small_options(resolution=0.05)
    ) is None
    assert CacheManager.load_cache(
        destination, expected_options=small_options(max_position=(0.3, 0.2, 0.2))
    ) is None
    assert CacheManager.load_cache(
        destination, expected_options=small_options(origin=Pose(position=(0.0, 0.0, 1.0)))
    ) is None


def test_load_missing_or_corrupt_file_returns_none(tmp_path):
    assert CacheManager.load_cache(tmp_path / "missing.npz") is None
    corrupt = tmp_path / "corrupt.npz"
    corrupt.write_bytes(b"not a cache")
    assert CacheManager.load_cache(corrupt) is None


def test_add_rejects_mismatched_joint_names():
    cache = SeedCache(small_options())
    cache.add("arm", Pose(), JointState(names=("a", "b"), values=(0.0, 1.0)))
    with pytest.raises(ValueError):
        cache.add(
            "arm",
            Pose(position=(0.1, 0.0, 0.0)),
            JointState(names=("a", "c"), values=(0.0, 1.0)),
        )


def test_invalid_cache_parameters():
    with pytest.raises(InvalidConfiguration):
        SeedCache(small_options(resolution=0.0))
    with pytest.raises(InvalidConfiguration):
        SeedCache(small_options(), ToleranceConfig(position_eps=-1.0))


def test_saved_options_carry_generation_timeout(tmp_path):
    solver = SphereIKSolver()
    evaluator = IKEvaluator(solver, show_progress=False)
    destination = tmp_path / "cache.npz"
    CacheManager.generate_cache(
        evaluator, "arm", None, small_options(solver_timeout=0.3), destination
    )
    assert {r.timeout for r in solver.requests} == {0.3}
    assert SeedCache.load(destination).options.solver_timeout == 0.3
