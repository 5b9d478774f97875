"""
Referenz-Bibliothek kanonischer Primitive für die ICP-Registrierung.

Alle Samples sind deterministisch, zentriert im Ursprung, haben halbe
Ausdehnung 1 pro Achse und (Zylinder, Kegel) die Symmetrieachse +Z.
Die Arrays sind nach dem Aufbau schreibgeschützt.
"""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Iterator, Tuple

import numpy as np

from config.tolerances import Tolerances
from shapedetector.base import ShapeKind

GOLDEN_ANGLE = np.pi * (3.0 - np.sqrt(5.0))


def _sunflower_disk(n: int, z: float, radius: float = 1.0) -> np.ndarray:
    """Gleichmäßig verteilte Punkte auf einer Kreisscheibe (Vogel-Spirale)."""
    if n <= 0:
        return np.zeros((0, 3))
    i = np.arange(n)
    r = radius * np.sqrt((i + 0.5) / n)
    theta = i * GOLDEN_ANGLE
    return np.column_stack([r * np.cos(theta), r * np.sin(theta), np.full(n, z)])


def sample_sphere(n: int) -> np.ndarray:
    """Fibonacci-Kugel mit Radius 1."""
    i = np.arange(n)
    z = 1.0 - 2.0 * (i + 0.5) / n
    r = np.sqrt(1.0 - z * z)
    theta = i * GOLDEN_ANGLE
    return np.column_stack([r * np.cos(theta), r * np.sin(theta), z])


def sample_cylinder(n: int) -> np.ndarray:
    """Zylinder R=1, z in [-1, 1], Mantel plus Deckel flächenanteilig."""
    # Mantel 4*pi, Deckel je pi
    n_cap = n // 6
    n_side = n - 2 * n_cap
    rings = max(2, int(round(np.sqrt(n_side / np.pi))))
    per_ring = int(np.ceil(n_side / rings))
    theta = np.linspace(0.0, 2.0 * np.pi, per_ring, endpoint=False)
    z = np.linspace(-1.0, 1.0, rings)
    tt, zz = np.meshgrid(theta, z)
    side = np.column_stack([np.cos(tt).ravel(), np.sin(tt).ravel(), zz.ravel()])[:n_side]
    return np.vstack([side, _sunflower_disk(n_cap, -1.0), _sunflower_disk(n_cap, 1.0)])


def sample_cube(n: int) -> np.ndarray:
    """Würfel-Oberfläche mit halber Kantenlänge 1, Raster pro Seite."""
    per_side = max(2, int(round(np.sqrt(n / 6.0))))
    u = np.linspace(-1.0, 1.0, per_side)
    uu, vv = np.meshgrid(u, u)
    uu, vv = uu.ravel(), vv.ravel()
    ones = np.ones_like(uu)
    faces = []
    for axis in range(3):
        for sign in (-1.0, 1.0):
            face = np.empty((len(uu), 3))
            face[:, axis] = sign * ones
            others = [a for a in range(3) if a != axis]
            face[:, others[0]] = uu
            face[:, others[1]] = vv
            faces.append(face)
    return np.vstack(faces)


def sample_cone(n: int) -> np.ndarray:
    """Kegel: Basis R=1 bei z=-1, Spitze bei z=+1."""
    # Mantel pi*sqrt(5), Basis pi
    n_base = int(round(n / (1.0 + np.sqrt(5.0))))
    n_side = n - n_base
    i = np.arange(n_side)
    # Flächengleich entlang der Mantellinie: Radius ~ sqrt
    r = np.sqrt((i + 0.5) / n_side)
    theta = i * GOLDEN_ANGLE
    z = 1.0 - 2.0 * r
    side = np.column_stack([r * np.cos(theta), r * np.sin(theta), z])
    return np.vstack([side, _sunflower_disk(n_base, -1.0)])


_SAMPLERS = {
    ShapeKind.SPHERE: sample_sphere,
    ShapeKind.CYLINDER: sample_cylinder,
    ShapeKind.CUBE: sample_cube,
    ShapeKind.CONE: sample_cone,
}

# Primitive mit ausgezeichneter Symmetrieachse (+Z)
AXIAL_KINDS = frozenset({ShapeKind.CYLINDER, ShapeKind.CONE})


class ReferenceShapeLibrary(Mapping):
    """
    Schreibgeschützte Sammlung kanonischer Punkt-Samples.

    Wird einmal pro Detector gebaut und von jedem ICP-Lauf nur gelesen.
    """

    def __init__(self, samples_per_shape: int = Tolerances.ICP_REFERENCE_SAMPLES):
        shapes = {}
        for kind, sampler in _SAMPLERS.items():
            points = np.ascontiguousarray(sampler(samples_per_shape), dtype=np.float64)
            points.setflags(write=False)
            shapes[kind] = points
        self._shapes = MappingProxyType(shapes)
        self.samples_per_shape = samples_per_shape

    def __getitem__(self, kind: ShapeKind) -> np.ndarray:
        return self._shapes[kind]

    def __iter__(self) -> Iterator[ShapeKind]:
        return iter(self._shapes)

    def __len__(self) -> int:
        return len(self._shapes)

    def shapes(self) -> Tuple[Tuple[ShapeKind, np.ndarray], ...]:
        return tuple(self._shapes.items())
