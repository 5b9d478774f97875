"""
Diskrete Krümmung entlang der Punktfolge eines Clusters.

Für inneren Punkt i:
    k_i = 1 - dot(unit(P_i - P_i-1), unit(P_i+1 - P_i))

Gleichmäßig gerundete Flächen haben eine positive mittlere Krümmung bei
geringer Varianz. Grobes, bestätigendes Signal für Kugeln, kein
primärer Klassifikator.
"""

from typing import List

import numpy as np
from loguru import logger

from config.feature_flags import is_enabled
from config.tolerances import Tolerances
from shapedetector.base import (
    Cluster, Detection, DetectionAlgorithm, ShapeKind, make_detection
)


def curvature_profile(points: np.ndarray) -> np.ndarray:
    """
    Krümmungswerte der inneren Punkte in [0, 2].

    Schritte der Länge Null (doppelte Punkte) werden übersprungen.
    """
    if len(points) < 3:
        return np.zeros(0)

    steps = np.diff(points, axis=0)
    lengths = np.linalg.norm(steps, axis=1)
    steps = steps[lengths > Tolerances.EPSILON_MATH]
    lengths = lengths[lengths > Tolerances.EPSILON_MATH]
    if len(steps) < 2:
        return np.zeros(0)

    units = steps / lengths[:, np.newaxis]
    dots = np.einsum('ij,ij->i', units[:-1], units[1:])
    return 1.0 - np.clip(dots, -1.0, 1.0)


class CurvatureAnalyzer:
    """Bestätigt Kugeln über Mittelwert und Varianz der Pfad-Krümmung."""

    def __init__(
        self,
        min_points: int = Tolerances.CURVATURE_MIN_POINTS,
        min_mean: float = Tolerances.CURVATURE_MIN_MEAN,
        max_variance: float = Tolerances.CURVATURE_MAX_VARIANCE,
        confidence: float = Tolerances.CURVATURE_CONFIDENCE,
    ):
        self.min_points = min_points
        self.min_mean = min_mean
        self.max_variance = max_variance
        self.confidence = confidence

    def analyze(self, cluster: Cluster) -> List[Detection]:
        if len(cluster) < self.min_points:
            return []

        curvature = curvature_profile(cluster.points)
        if len(curvature) == 0:
            return []

        mean = float(curvature.mean())
        variance = float(curvature.var())
        if is_enabled("detection_debug"):
            logger.debug(f"  Krümmung: mean={mean:.3f}, var={variance:.4f}")

        if mean > self.min_mean and variance < self.max_variance:
            return [make_detection(
                ShapeKind.SPHERE, DetectionAlgorithm.CURVATURE_ANALYSIS, cluster, self.confidence
            )]
        return []
