"""
Vertex-Extraktion: Mesh -> flache (N, 3) Punktliste.

Akzeptiert PyVista-Datasets, Objekte mit `positions` Buffer,
Dicts mit "positions" Key oder rohe Arrays (flach oder (N, 3)).
"""

from typing import Any, Optional

import numpy as np
from loguru import logger

from shapedetector.base import BoundingBox, MeshFormatError

try:
    import pyvista as pv
    HAS_PYVISTA = True
except ImportError:
    HAS_PYVISTA = False


def _position_buffer(mesh: Any) -> Optional[Any]:
    """Findet den Positions-Buffer eines Mesh-Objekts."""
    if mesh is None:
        return None

    if HAS_PYVISTA and not isinstance(mesh, (np.ndarray, list, tuple, dict)):
        # VTK-Objekte ohne .points (z.B. vtkPolyData) über pv.wrap
        if not hasattr(mesh, 'points') and not hasattr(mesh, 'positions'):
            try:
                mesh = pv.wrap(mesh)
            except (NotImplementedError, TypeError):
                return None

    if isinstance(mesh, dict):
        return mesh.get('positions', mesh.get('points'))
    if hasattr(mesh, 'points'):
        return mesh.points
    if hasattr(mesh, 'positions'):
        return mesh.positions
    return mesh


def extract_points(mesh: Any) -> np.ndarray:
    """
    Extrahiert alle Vertices als (N, 3) float64 Array.

    Leere oder fehlende Buffer ergeben ein (0, 3) Array.
    Nicht-finite Zeilen werden verworfen.

    Raises:
        MeshFormatError: Buffer lässt sich nicht als (N, 3) lesen
    """
    buffer = _position_buffer(mesh)
    if buffer is None:
        return np.zeros((0, 3))

    try:
        points = np.asarray(buffer, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise MeshFormatError(f"Positions-Buffer nicht numerisch: {e}") from e

    if points.size == 0:
        return np.zeros((0, 3))

    if points.ndim == 1:
        if points.size % 3 != 0:
            raise MeshFormatError(f"Flacher Buffer mit {points.size} Werten ist kein Vielfaches von 3")
        points = points.reshape(-1, 3)
    elif points.ndim != 2 or points.shape[1] != 3:
        raise MeshFormatError(f"Erwartet (N, 3), erhalten {points.shape}")

    finite = np.isfinite(points).all(axis=1)
    if not finite.all():
        logger.debug(f"Verwerfe {int((~finite).sum())} nicht-finite Vertices")
        points = points[finite]

    # View: den Buffer des Aufrufers nicht sperren
    points = np.ascontiguousarray(points).view()
    points.setflags(write=False)
    return points


def extract_bounds(mesh: Any, points: np.ndarray) -> Optional[BoundingBox]:
    """
    Bounding Box des Meshes.

    Nutzt vorberechnete `bounds` (PyVista-Reihenfolge xmin, xmax, ymin, ymax,
    zmin, zmax) falls vorhanden, sonst aus den Punkten.
    """
    bounds = getattr(mesh, 'bounds', None)
    if bounds is not None:
        try:
            b = [float(v) for v in bounds]
            if len(b) == 6:
                return BoundingBox((b[0], b[2], b[4]), (b[1], b[3], b[5]))
        except (TypeError, ValueError):
            logger.debug("Vorberechnete Bounds unbrauchbar, berechne aus Punkten")

    if len(points) == 0:
        return None
    return BoundingBox.from_points(points)
