"""
ICP-Registrierung von Clustern gegen kanonische Referenz-Primitive.

Ablauf pro Cluster und Referenz:
1. Referenz auf die Halbachsen des Clusters skalieren, Symmetrieachse
   (Zylinder, Kegel) auf die ausgeprägteste Cluster-Achse legen
2. Beide Punktmengen per festem Stride auf <= 500 Punkte ausdünnen
3. Iterieren: Korrespondenzen (nächster Nachbar), Transformation
   schätzen, anwenden, mittleren Abstand als Fehler messen
4. Konvergenz wenn sich der Fehler um weniger als die Toleranz ändert

Transformations-Schritt: nur Translation (Schwerpunkt-Differenz der
Korrespondenzen). Die volle Rotation via Kabsch/SVD ist über das
Feature-Flag "icp_rigid_rotation" zuschaltbar.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
from loguru import logger
from scipy.spatial import cKDTree
from scipy.spatial.transform import Rotation

from config.feature_flags import is_enabled
from config.tolerances import Tolerances
from shapedetector.base import (
    Cluster, Detection, DetectionAlgorithm, ShapeKind, make_detection
)
from shapedetector.reference_shapes import AXIAL_KINDS, ReferenceShapeLibrary


@dataclass
class IcpResult:
    """
    Ergebnis eines ICP-Laufs.

    `transform` bildet Ziel-Punkte in das Referenz-System ab:
        x_ref = rotation @ x + translation
    """
    transform: np.ndarray  # 4x4 homogen
    rotation: np.ndarray   # 3x3
    translation: np.ndarray
    error: float
    iterations: int
    converged: bool

    @property
    def reference_origin(self) -> np.ndarray:
        """Ursprung der Referenz im Ziel-System."""
        return -self.rotation.T @ self.translation


def stride_sample(points: np.ndarray, limit: int) -> np.ndarray:
    """Deterministisches Ausdünnen auf höchstens `limit` Punkte."""
    if limit <= 0 or len(points) <= limit:
        return points
    return points[::int(np.ceil(len(points) / limit))]


def kabsch(source: np.ndarray, target: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Optimale Rotation und Translation für source -> target (least squares).

    Reflexionen werden über das Vorzeichen der Determinante ausgeschlossen.
    """
    src_centroid = source.mean(axis=0)
    tgt_centroid = target.mean(axis=0)
    H = (source - src_centroid).T @ (target - tgt_centroid)
    U, _, Vt = np.linalg.svd(H)
    d = np.sign(np.linalg.det(Vt.T @ U.T))
    if d == 0:
        d = 1.0
    D = np.diag([1.0, 1.0, d])
    R = Vt.T @ D @ U.T
    t = tgt_centroid - R @ src_centroid
    return R, t


def _homogeneous(R: np.ndarray, t: np.ndarray) -> np.ndarray:
    T = np.eye(4)
    T[:3, :3] = R
    T[:3, 3] = t
    return T


def dominant_axis(extents: np.ndarray) -> int:
    """
    Achse, deren Ausdehnung am stärksten vom Median abweicht.
    Bei Gleichstand gewinnt Z.
    """
    deviation = np.abs(extents - np.median(extents))
    tolerance = Tolerances.EPSILON_MATH * max(float(extents.max()), 1.0)
    for axis in (2, 0, 1):
        if deviation[axis] >= deviation.max() - tolerance:
            return axis
    return 2


# Rotation, die die kanonische +Z Achse auf die Welt-Achse legt
_AXIS_ALIGNMENT = {
    0: Rotation.from_euler('y', 90, degrees=True).as_matrix(),
    1: Rotation.from_euler('x', -90, degrees=True).as_matrix(),
    2: np.eye(3),
}


class IcpRegistrator:
    """
    Iterative Closest Point gegen die Referenz-Bibliothek.

    Pro Cluster wird jede Referenz registriert. In Frage kommen nur Läufe,
    die konvergiert sind und unter `max_error` liegen; davon beschreibt der
    mit dem kleinsten Restfehler den Cluster.
    """

    def __init__(
        self,
        max_iterations: int = Tolerances.ICP_MAX_ITERATIONS,
        tolerance: float = Tolerances.ICP_TOLERANCE,
        working_points: int = Tolerances.ICP_WORKING_POINTS,
        max_error: float = Tolerances.ICP_MAX_ERROR,
        min_points: int = Tolerances.ICP_MIN_POINTS,
        rigid_rotation: Optional[bool] = None,
    ):
        self.max_iterations = max_iterations
        self.tolerance = tolerance
        self.working_points = working_points
        self.max_error = max_error
        self.min_points = min_points
        # None = Feature-Flag zur Laufzeit lesen
        self.rigid_rotation = rigid_rotation

    def _use_rigid(self) -> bool:
        if self.rigid_rotation is None:
            return is_enabled("icp_rigid_rotation")
        return self.rigid_rotation

    def register(self, target: np.ndarray, reference: np.ndarray) -> IcpResult:
        """
        Registriert `target` auf `reference`.

        `converged` ist nur True, wenn die Toleranz den Lauf beendet hat,
        nicht bei ausgeschöpftem Iterations-Budget.
        """
        work_target = stride_sample(target, self.working_points)
        work_ref = stride_sample(reference, self.working_points)
        tree = cKDTree(work_ref)
        rigid = self._use_rigid()

        # Start: Schwerpunkte übereinander legen
        R = np.eye(3)
        t = work_ref.mean(axis=0) - work_target.mean(axis=0)
        current = work_target + t

        prev_error = np.inf
        error = np.inf
        iterations = 0
        converged = False

        for iteration in range(1, self.max_iterations + 1):
            _, idx = tree.query(current)
            matched = work_ref[idx]

            if rigid:
                dR, dt = kabsch(current, matched)
            else:
                dR = np.eye(3)
                dt = matched.mean(axis=0) - current.mean(axis=0)

            current = current @ dR.T + dt
            R = dR @ R
            t = dR @ t + dt

            distances, _ = tree.query(current)
            error = float(distances.mean())
            iterations = iteration

            if abs(prev_error - error) < self.tolerance:
                converged = True
                break
            prev_error = error

        return IcpResult(
            transform=_homogeneous(R, t),
            rotation=R,
            translation=t,
            error=error,
            iterations=iterations,
            converged=converged,
        )

    def place_reference(
        self, kind: ShapeKind, sample: np.ndarray, half_extents: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Legt ein kanonisches Sample in die Ausdehnung des Clusters.

        Returns:
            (Punkte, Achs-Rotation kanonisch -> Welt)
        """
        alignment = np.eye(3)
        if kind in AXIAL_KINDS:
            alignment = _AXIS_ALIGNMENT[dominant_axis(half_extents)]
        return (sample @ alignment.T) * half_extents, alignment

    def register_cluster(self, cluster: Cluster, library: ReferenceShapeLibrary) -> List[Detection]:
        if len(cluster) < self.min_points:
            return []

        half_extents = cluster.bounds.half_extents
        runs = []
        for kind, sample in library.shapes():
            reference, alignment = self.place_reference(kind, sample, half_extents)
            result = self.register(cluster.points, reference)
            if is_enabled("detection_debug"):
                logger.debug(f"  ICP {kind.value}: Fehler={result.error:.4f}, "
                             f"Iterationen={result.iterations}, konvergiert={result.converged}")
            runs.append((kind, alignment, result))

        # Nur konvergierte Läufe unter max_error kommen in Frage
        runs = [run for run in runs if run[2].converged and run[2].error < self.max_error]
        if not runs:
            return []

        if is_enabled("detection_best_archetype_only"):
            runs = [min(runs, key=lambda run: run[2].error)]

        detections = []
        for kind, alignment, result in runs:
            detections.append(self._to_detection(kind, alignment, result, cluster, half_extents))
        return detections

    def _to_detection(
        self,
        kind: ShapeKind,
        alignment: np.ndarray,
        result: IcpResult,
        cluster: Cluster,
        half_extents: np.ndarray,
    ) -> Detection:
        # Orientierung der Referenz im Cluster-System
        orientation = result.rotation.T @ alignment
        rotation = Rotation.from_matrix(orientation).as_euler('xyz')
        # Halbachsen im lokalen (kanonischen) System der Referenz
        local_scale = np.abs(alignment.T @ half_extents)
        confidence = max(0.0, 1.0 - result.error / Tolerances.ICP_ERROR_SCALE)
        return make_detection(
            kind,
            DetectionAlgorithm.ICP,
            cluster,
            confidence,
            center=result.reference_origin,
            rotation=rotation,
            scale=local_scale,
        )
