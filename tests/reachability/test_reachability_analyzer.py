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

import json
import shutil
import tempfile
import unittest
import numpy as np

from pathlib import Path

from kinreach.exceptions import CacheGenerationFailed, InvalidConfiguration
from kinreach.reachability import (
    CacheConfig,
    CacheOptions,
    CacheState,
    ReachabilityAnalyzer,
    ReachabilityAnalyzerConfig,
    SeedCache,
    WorkspaceConfig,
    load_config,
)
from kinreach.reachability.visualizers import MarkerVisualizer
from kinreach.types import Pose, SolveOutcome

from fakes import SphereIKSolver, TimeoutIKSolver

IDENTITY = (0.0, 0.0, 0.0, 1.0)
FLIP_X = (1.0, 0.0, 0.0, 0.0)


def cache_options(**kwargs):
    params = dict(
        min_position=(0.0, 0.0, 0.0),
        max_position=(0.2, 0.2, 0.2),
        resolution=0.1,
        orientations=[IDENTITY],
        solver_timeout=0.05,
    )
    params.update(kwargs)
    return CacheOptions(**params)


def make_config(cache_filename=None, **cache_kwargs):
    return ReachabilityAnalyzerConfig(
        workspace=WorkspaceConfig(
            group_name="arm",
            min_position=(0.0, 0.0, 0.0),
            max_position=(0.3, 0.3, 0.1),
            position_resolution=0.1,
            orientations=[IDENTITY, FLIP_X],
        ),
        cache=CacheConfig(
            use_cache=True,
            cache_filename=cache_filename,
            default_options=cache_options(),
            **cache_kwargs,
        ),
        solver_timeout=0.05,
        show_progress=False,
    )


class TestReachabilityAnalyzer(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = Path(tempfile.mkdtemp())
        self.cache_path = self.tmp_dir / "arm_cache.npz"

    def tearDown(self):
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def _write_cache(self):
        analyzer = ReachabilityAnalyzer(SphereIKSolver(), make_config())
        analyzer.generate_cache("arm", cache_filename=self.cache_path)
        return analyzer

    def test_cache_absent_without_filename(self):
        analyzer = ReachabilityAnalyzer(SphereIKSolver(), make_config())
        self.assertEqual(analyzer.cache_state, CacheState.CACHE_ABSENT)
        self.assertIsNone(analyzer.cache)
        self.assertTrue(analyzer.is_active())

    def test_cache_absent_when_file_missing(self):
        analyzer = ReachabilityAnalyzer(
            SphereIKSolver(), make_config(str(self.tmp_dir / "missing.npz"))
        )
        self.assertEqual(analyzer.cache_state, CacheState.CACHE_ABSENT)

        # queries still work unseeded
        workspace = analyzer.compute_workspace(analyzer.create_workspace())
        self.assertNotIn(SolveOutcome.PENDING, workspace.outcomes())

    def test_cache_loaded_at_construction(self):
        self._write_cache()
        solver = SphereIKSolver()
        analyzer = ReachabilityAnalyzer(solver, make_config(str(self.cache_path)))
        self.assertEqual(analyzer.cache_state, CacheState.CACHE_LOADED)

        analyzer.compute_workspace(analyzer.create_workspace())
        seeded = [r for r in solver.requests if r.seed is not None]
        self.assertGreater(len(seeded), 0)

    def test_incompatible_cache_is_not_used(self):
        self._write_cache()
        config = make_config(
            str(self.cache_path), expected_options=cache_options(resolution=0.05)
        )
        analyzer = ReachabilityAnalyzer(SphereIKSolver(), config)
        self.assertEqual(analyzer.cache_state, CacheState.CACHE_ABSENT)

        config = make_config(str(self.cache_path), expected_options=cache_options())
        analyzer = ReachabilityAnalyzer(SphereIKSolver(), config)
        self.assertEqual(analyzer.cache_state, CacheState.CACHE_LOADED)

    def test_generate_cache_replaces_cache(self):
        analyzer = self._write_cache()
        self.assertTrue(self.cache_path.is_file())
        self.assertEqual(analyzer.cache_state, CacheState.CACHE_LOADED)
        self.assertIs(analyzer.evaluator.cache, analyzer.cache)

    def test_failed_generation_keeps_previous_cache(self):
        self._write_cache()
        analyzer = ReachabilityAnalyzer(
            TimeoutIKSolver(), make_config(str(self.cache_path))
        )
        previous = analyzer.cache
        self.assertIsNotNone(previous)

        with self.assertRaises(CacheGenerationFailed):
            analyzer.generate_cache("arm")
        self.assertIs(analyzer.cache, previous)
        self.assertEqual(analyzer.cache_state, CacheState.CACHE_LOADED)

    def test_generated_cache_records_timeout_used(self):
        solver = SphereIKSolver()
        analyzer = ReachabilityAnalyzer(solver, make_config())
        analyzer.generate_cache(
            "arm", timeout=0.5, options=cache_options(), cache_filename=self.cache_path
        )
        self.assertTrue(all(r.timeout == 0.5 for r in solver.requests))
        self.assertEqual(SeedCache.load(self.cache_path).options.solver_timeout, 0.5)

        # without a timeout argument the options decide
        solver.requests.clear()
        analyzer.generate_cache(
            "arm",
            options=cache_options(solver_timeout=0.2),
            cache_filename=self.cache_path,
        )
        self.assertTrue(all(r.timeout == 0.2 for r in solver.requests))
        self.assertEqual(SeedCache.load(self.cache_path).options.solver_timeout, 0.2)

    def test_generate_cache_rejects_bad_options(self):
        analyzer = ReachabilityAnalyzer(SphereIKSolver(), make_config())
        with self.assertRaises(InvalidConfiguration):
            analyzer.generate_cache(
                "arm",
                options=cache_options(resolution=0.0),
                cache_filename=self.cache_path,
            )
        with self.assertRaises(InvalidConfiguration):
            analyzer.generate_cache(
                "arm", timeout=-1.0, cache_filename=self.cache_path
            )
        self.assertFalse(self.cache_path.exists())
        self.assertEqual(analyzer.cache_state, CacheState.CACHE_ABSENT)

    def test_cache_checked_against_default_options(self):
        self._write_cache()
        config = make_config(str(self.cache_path))
        config.cache.default_options = cache_options(max_position=(0.4, 0.4, 0.4))
        analyzer = ReachabilityAnalyzer(SphereIKSolver(), config)
        self.assertEqual(analyzer.cache_state, CacheState.CACHE_ABSENT)

    def test_generate_cache_needs_destination(self):
        analyzer = ReachabilityAnalyzer(SphereIKSolver(), make_config())
        with self.assertRaises(InvalidConfiguration):
            analyzer.generate_cache("arm")

    def test_load_cache(self):
        self._write_cache()
        analyzer = ReachabilityAnalyzer(SphereIKSolver(), make_config())
        self.assertFalse(analyzer.load_cache(self.tmp_dir / "missing.npz"))
        self.assertEqual(analyzer.cache_state, CacheState.CACHE_ABSENT)
        self.assertTrue(analyzer.load_cache(self.cache_path))
        self.assertEqual(analyzer.cache_state, CacheState.CACHE_LOADED)

    def test_compute_workspace_and_reachable_subset(self):
        analyzer = ReachabilityAnalyzer(SphereIKSolver(), make_config())
        workspace = analyzer.compute_workspace(analyzer.create_workspace())
        self.assertEqual(len(workspace), 4 * 4 * 2 * 2)

        reachable = analyzer.get_only_reachable_workspace(analyzer.create_workspace())
        self.assertTrue(all(p.is_reachable for p in reachable.points))
        self.assertEqual(
            len(reachable), len(analyzer.classify(workspace)[0])
        )

    def test_invalid_workspace_raises(self):
        analyzer = ReachabilityAnalyzer(SphereIKSolver(), make_config())
        workspace = analyzer.create_workspace()
        workspace.position_resolution = 0.0
        with self.assertRaises(InvalidConfiguration):
            analyzer.compute_workspace(workspace)

    def test_iter_workspace_resumes(self):
        analyzer = ReachabilityAnalyzer(SphereIKSolver(), make_config())
        workspace = analyzer.create_workspace()
        iterator = analyzer.iter_workspace(workspace)
        first = [next(iterator) for _ in range(3)]
        self.assertEqual([i for i, _ in first], [0, 1, 2])
        self.assertEqual(workspace.points[3].solve_outcome, SolveOutcome.PENDING)

        rest = list(analyzer.iter_workspace(workspace, start=3))
        self.assertEqual(len(first) + len(rest), len(workspace))
        self.assertNotIn(SolveOutcome.PENDING, workspace.outcomes())

    def test_tool_frame_offset_argument(self):
        solver = SphereIKSolver()
        analyzer = ReachabilityAnalyzer(solver, make_config())
        offset = Pose(position=(0.0, 0.0, 0.1))
        workspace = analyzer.compute_workspace(analyzer.create_workspace(), offset)
        self.assertEqual(workspace.tool_frame_offset, offset)
        np.testing.assert_allclose(
            solver.requests[0].pose.position, (0.0, 0.0, -0.1), atol=1e-12
        )

    def test_visualize_with_marker_visualizer(self):
        visualizer = MarkerVisualizer(backend="data")
        analyzer = ReachabilityAnalyzer(SphereIKSolver(), make_config(), visualizer)
        workspace = analyzer.compute_workspace(analyzer.create_workspace())

        markers = analyzer.visualize(workspace, "arm_ws")
        self.assertEqual(len(markers), len(workspace) // 2)
        data = visualizer._last_visualization["data"]
        self.assertEqual(
            sum(len(d["ids"]) for d in data.values()), len(markers)
        )
        self.assertIn("arm_ws/reachable", data)

        visualizer.save(self.tmp_dir / "markers.npz")
        self.assertTrue((self.tmp_dir / "markers.npz").is_file())

    def test_visualize_selected_orientations(self):
        received = []
        analyzer = ReachabilityAnalyzer(
            SphereIKSolver(),
            make_config(),
            visualizer=lambda markers, ns: received.append((ns, markers)),
        )
        workspace = analyzer.compute_workspace(analyzer.create_workspace())

        markers = analyzer.visualize(workspace, "flip", FLIP_X)
        self.assertEqual(len(markers), len(workspace) // 2)
        markers = analyzer.visualize(workspace, "both", [IDENTITY, FLIP_X])
        self.assertEqual(len(markers), len(workspace))
        arrows = analyzer.visualize_with_arrows(workspace, "arrows")
        self.assertEqual(len(arrows), len(workspace))
        self.assertEqual([ns for ns, _ in received], ["flip", "both", "arrows"])

    def test_visualize_reachable_subset(self):
        analyzer = ReachabilityAnalyzer(SphereIKSolver(), make_config())
        reachable = analyzer.get_only_reachable_workspace(analyzer.create_workspace())
        with self.assertRaises(ValueError):
            analyzer.visualize(reachable, "subset")

        markers = analyzer.visualize(reachable, "subset", [IDENTITY, FLIP_X])
        self.assertEqual(len(markers), len(reachable))
        self.assertTrue(all(m.namespace == "subset/reachable" for m in markers))

    def test_animate_workspace(self):
        played = []
        analyzer = ReachabilityAnalyzer(
            SphereIKSolver(), make_config(), trajectory_player=played.append
        )
        workspace = analyzer.get_only_reachable_workspace(analyzer.create_workspace())
        trajectory = analyzer.animate_workspace(workspace, dt=0.2)
        self.assertEqual(played, [trajectory])
        self.assertEqual(len(trajectory), len(workspace))
        self.assertAlmostEqual(trajectory.duration, 0.2 * (len(workspace) - 1))

    def test_redundant_solutions(self):
        analyzer = ReachabilityAnalyzer(SphereIKSolver(), make_config())
        result = analyzer.compute_redundant_solutions(
            "arm", Pose(position=(0.1, 0.0, 0.0)), timeout=0.1
        )
        # the sphere solver ignores seeds, so there is one solution only
        self.assertEqual(len(result), 1)

    def test_export_results(self):
        analyzer = ReachabilityAnalyzer(SphereIKSolver(), make_config())
        workspace = analyzer.compute_workspace(analyzer.create_workspace())
        reachable, _ = analyzer.classify(workspace)

        npz_path = self.tmp_dir / "out" / "results.npz"
        analyzer.export_results(workspace, npz_path)
        with np.load(npz_path) as data:
            self.assertEqual(data["positions"].shape, (len(workspace), 3))
            self.assertEqual(data["joint_values"].shape, (len(workspace), 3))
            self.assertEqual(data["reachable_indices"].tolist(), reachable)
            self.assertEqual(data["outcomes"][reachable[0]], "success")

        json_path = self.tmp_dir / "results.json"
        analyzer.export_results(workspace, json_path, format="json")
        with open(json_path) as f:
            results = json.load(f)
        self.assertEqual(len(results["outcomes"]), len(workspace))
        self.assertIsNone(results["joint_values"][-1])
        self.assertAlmostEqual(results["reachability"], len(reachable) / len(workspace))

        with self.assertRaises(ValueError):
            analyzer.export_results(workspace, json_path, format="csv")
        with self.assertRaises(ValueError):
            analyzer.export_results(analyzer.create_workspace(), json_path)


class TestReachabilityConfig(unittest.TestCase):
    def test_from_dict(self):
        config = ReachabilityAnalyzerConfig.from_dict(
            {
                "workspace": {
                    "group_name": "arm",
                    "max_position": [0.2, 0.2, 0.2],
                    "tool_frame_offset": {"position": [0, 0, 0.1]},
                },
                "cache": {
                    "cache_filename": "arm.npz",
                    "default_options": {"resolution": 0.1, "origin": {"position": [1, 0, 0]}},
                },
                "tolerance": {"joint_eps": 0.01},
                "solver_timeout": 0.2,
            }
        )
        self.assertEqual(config.workspace.tool_frame_offset.position, (0.0, 0.0, 0.1))
        self.assertEqual(config.cache.default_options.origin.position, (1.0, 0.0, 0.0))
        self.assertEqual(config.tolerance.joint_eps, 0.01)
        self.assertEqual(config.solver_timeout, 0.2)
        self.assertEqual(config.marker.frame_id, "base_link")

    def test_invalid_timeout(self):
        with self.assertRaises(InvalidConfiguration):
            ReachabilityAnalyzerConfig(solver_timeout=0.0)


def _write_cli_config(tmp_path, **cache):
    config = {
        "workspace": {
            "group_name": "arm",
            "max_position": [0.2, 0.2, 0.0],
            "position_resolution": 0.1,
        },
        "cache": dict(
            {
                "default_options": {
                    "min_position": [0, 0, 0],
                    "max_position": [0.2, 0.2, 0.2],
                    "resolution": 0.1,
                    "orientations": [[0, 0, 0, 1]],
                }
            },
            **cache,
        ),
        "show_progress": False,
    }
    path = tmp_path / "reach.json"
    path.write_text(json.dumps(config))
    return path


def test_cli_computes_and_exports(tmp_path):
    from kinreach.scripts.reachability import main

    config_path = _write_cli_config(tmp_path)
    assert load_config(config_path).workspace.group_name == "arm"

    output = tmp_path / "results.json"
    argv = ["--config", str(config_path), "--solver", "fakes:make_sphere_solver"]
    assert main(argv + ["--output", str(output)]) == 0
    with open(output) as f:
        assert len(json.load(f)["outcomes"]) == 9


def test_cli_generates_cache(tmp_path):
    from kinreach.scripts.reachability import main

    config_path = _write_cli_config(tmp_path)
    cache_path = tmp_path / "arm_cache.npz"
    argv = ["--config", str(config_path), "--solver", "fakes:make_sphere_solver"]
    assert main(argv + ["--generate_cache", "--output", str(cache_path)]) == 0
    assert cache_path.is_file()

    # unknown group: nothing solves
    assert main(argv + ["--generate_cache", "--group", "leg", "--output", str(cache_path)]) == 1


if __name__ == "__main__":
    unittest.main()
