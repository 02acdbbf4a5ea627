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

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from kinreach.reachability.exporters import Marker
from kinreach.utils import logger

try:
    import open3d as o3d

    OPEN3D_AVAILABLE = True
except ImportError:
    OPEN3D_AVAILABLE = False


__all__ = ["MarkerVisualizer", "OPEN3D_AVAILABLE"]


class MarkerVisualizer:
    """Renders reachability markers with Open3D or matplotlib.

    The ``data`` backend renders nothing and keeps the marker data grouped by
    namespace, which is what headless callers and tests use.

    Attributes:
        backend: One of ``"data"``, ``"open3d"`` or ``"matplotlib"``.
        sphere_resolution: Sphere mesh resolution for the Open3D backend.
        show_coordinate_frame: Whether to draw the base coordinate frame.
    """

    BACKENDS = ("data", "open3d", "matplotlib")

    def __init__(
        self,
        backend: str = "data",
        sphere_resolution: int = 10,
        show_coordinate_frame: bool = True,
    ):
        if backend not in self.BACKENDS:
            raise ValueError(f"Unsupported backend: {backend}")
        if backend == "open3d" and not OPEN3D_AVAILABLE:
            logger.log_warning("open3d is not installed, using the 'data' backend")
            backend = "data"
        self.backend = backend
        self.sphere_resolution = sphere_resolution
        self.show_coordinate_frame = show_coordinate_frame
        self._last_visualization: Dict[str, Any] = {}

    def __call__(self, markers: Sequence[Marker], marker_namespace: str) -> Any:
        return self.visualize(markers, marker_namespace)

    def visualize(self, markers: Sequence[Marker], marker_namespace: str) -> Any:
        """Render ``markers`` published under ``marker_namespace``.

        Returns:
            The per-namespace data dict, an Open3D mesh or a matplotlib figure.
        """
        data = self._group_by_namespace(markers)
        summary = ", ".join(f"{ns}: {len(d['ids'])}" for ns, d in data.items())
        logger.log_info(
            f"Visualizing {len(markers)} markers in '{marker_namespace}' ({summary})"
        )

        if self.backend == "data":
            self._last_visualization = {"data": data}
            return data
        elif self.backend == "open3d":
            mesh = self._create_open3d_mesh(markers)
            self._last_visualization = {"mesh": mesh}
            return mesh
        else:
            fig = self._create_matplotlib_figure(markers, marker_namespace)
            self._last_visualization = {"figure": fig}
            return fig

    @staticmethod
    def _group_by_namespace(markers: Sequence[Marker]) -> Dict[str, Dict[str, np.ndarray]]:
        grouped: Dict[str, List[Marker]] = {}
        for marker in markers:
            grouped.setdefault(marker.namespace, []).append(marker)
        return {
            ns: {
                "ids": np.asarray([m.marker_id for m in group], dtype=np.int64),
                "centers": np.asarray([m.position for m in group], dtype=np.float64),
                "orientations": np.asarray(
                    [m.orientation for m in group], dtype=np.float64
                ),
                "colors": np.asarray([m.color for m in group], dtype=np.float64),
            }
            for ns, group in grouped.items()
        }

    def _create_open3d_mesh(self, markers: Sequence[Marker]) -> "o3d.geometry.TriangleMesh":
        """Combine one sphere or arrow mesh per marker into a single mesh."""
        from scipy.spatial.transform import Rotation as R

        combined_mesh = o3d.geometry.TriangleMesh()
        for marker in markers:
            if marker.marker_type == "arrow":
                length, width, _ = marker.scale
                mesh = o3d.geometry.TriangleMesh.create_arrow(
                    cylinder_radius=width / 2,
                    cone_radius=width,
                    cylinder_height=length * 0.75,
                    cone_height=length * 0.25,
                )
                # open3d arrows point along +z, markers along +x
                align = R.from_euler("y", 90, degrees=True)
                rotation = (R.from_quat(marker.orientation) * align).as_matrix()
                mesh.rotate(rotation, center=(0.0, 0.0, 0.0))
            else:
                mesh = o3d.geometry.TriangleMesh.create_sphere(
                    radius=marker.scale[0] / 2, resolution=self.sphere_resolution
                )
            mesh.translate(marker.position)
            mesh.paint_uniform_color(marker.color[:3])
            combined_mesh += mesh

        combined_mesh.compute_vertex_normals()
        return combined_mesh

    def _create_matplotlib_figure(self, markers: Sequence[Marker], title: str):
        import matplotlib.pyplot as plt

        fig = plt.figure(figsize=(10, 8))
        ax = fig.add_subplot(111, projection="3d")
        if markers:
            points = np.asarray([m.position for m in markers])
            colors = np.asarray([m.color for m in markers])
            ax.scatter(points[:, 0], points[:, 1], points[:, 2], c=colors, marker="o")
        ax.set_xlabel("X")
        ax.set_ylabel("Y")
        ax.set_zlabel("Z")
        ax.set_title(title)
        return fig

    def save(self, filepath: Union[str, Path]) -> None:
        """Save the last visualization to ``filepath``."""
        if not self._last_visualization:
            raise RuntimeError("Nothing has been visualized yet")
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        if self.backend == "data":
            arrays = {
                f"{ns.replace('/', '_')}_{key}": value
                for ns, group in self._last_visualization["data"].items()
                for key, value in group.items()
            }
            np.savez(filepath, **arrays)
        elif self.backend == "open3d":
            o3d.io.write_triangle_mesh(str(filepath), self._last_visualization["mesh"])
        else:
            self._last_visualization["figure"].savefig(
                filepath, dpi=300, bbox_inches="tight"
            )

    def show(self) -> None:
        """Display the last visualization interactively."""
        if self.backend == "data":
            logger.log_warning(
                "Cannot display visualization with 'data' backend. "
                "Use 'open3d' or 'matplotlib' backend for interactive display."
            )
            return
        elif self.backend == "open3d":
            geometries = [self._last_visualization["mesh"]]
            if self.show_coordinate_frame:
                geometries.append(
                    o3d.geometry.TriangleMesh.create_coordinate_frame(size=0.1)
                )
            o3d.visualization.draw_geometries(geometries)
        else:
            import matplotlib.pyplot as plt

            plt.show()
