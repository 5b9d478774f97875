"""
Feature-basierte Klassifizierung über Bounding-Box Heuristiken.

Archetypen:
- Kugel: geringe Streuung des Abstands zum Zentrum
- Zylinder: eine dominante Achse, zwei vergleichbare
- Würfel: alle Ausdehnungen ähnlich
- Platte (flat): zwei vergleichbare große Achsen, dünne dritte
- complex: kein Archetyp passt ausreichend
"""

from dataclasses import dataclass
from itertools import combinations
from typing import Dict, List

import numpy as np
from loguru import logger

from config.feature_flags import is_enabled
from config.tolerances import Tolerances
from shapedetector.base import (
    Cluster, Detection, DetectionAlgorithm, ShapeKind, make_detection
)


@dataclass
class FeatureScores:
    """Scores aller Archetypen eines Clusters (je 0.0 - 1.0)."""
    sphere: float
    cylinder: float
    cube: float
    flat: float = 0.0

    def as_dict(self) -> Dict[ShapeKind, float]:
        # Reihenfolge = Tie-Break Priorität
        return {
            ShapeKind.SPHERE: self.sphere,
            ShapeKind.CYLINDER: self.cylinder,
            ShapeKind.CUBE: self.cube,
            ShapeKind.FLAT: self.flat,
        }


def _pairwise_ratios(extents: np.ndarray) -> List[float]:
    """Verhältnis größer/kleiner für jedes Achsen-Paar (>= 1, zwei Nullen = 1)."""
    ratios = []
    for a, b in combinations(extents, 2):
        hi, lo = max(a, b), min(a, b)
        if hi <= Tolerances.EPSILON_MATH:
            ratios.append(1.0)
            continue
        ratios.append(hi / max(lo, Tolerances.EPSILON_MATH))
    return ratios


def _pairwise_fractions(extents: np.ndarray) -> List[float]:
    """Verhältnis kleiner/größer für jedes Achsen-Paar in [0, 1], 0 bei degenerierten Paaren."""
    fractions = []
    for a, b in combinations(extents, 2):
        hi, lo = max(a, b), min(a, b)
        fractions.append(lo / hi if hi > Tolerances.EPSILON_MATH else 0.0)
    return fractions


def sphere_score(points: np.ndarray, center: np.ndarray) -> float:
    """1 - 2 * (std / mean) der Abstände zum Zentrum, geklemmt auf [0, 1]."""
    distances = np.linalg.norm(points - center, axis=1)
    mean = distances.mean()
    if mean < Tolerances.EPSILON_MATH:
        return 0.0
    return float(np.clip(1.0 - 2.0 * distances.std() / mean, 0.0, 1.0))


def cylinder_score(extents: np.ndarray) -> float:
    ratios = _pairwise_ratios(extents)
    if (max(ratios) > Tolerances.FEATURE_CYLINDER_MAX_RATIO
            and min(ratios) < Tolerances.FEATURE_CYLINDER_MIN_RATIO):
        return Tolerances.FEATURE_CYLINDER_SCORE
    return Tolerances.FEATURE_CYLINDER_FALLBACK_SCORE


def cube_score(extents: np.ndarray) -> float:
    """Mittel der min/max Verhältnisse aller Achsen-Paare (1.0 = Würfel)."""
    return float(np.mean(_pairwise_fractions(extents)))


def flat_score(extents: np.ndarray) -> float:
    """
    Platte: die zwei größten Achsen vergleichbar, die kleinste unter
    FEATURE_FLAT_MAX_THICKNESS der größten. Achsen-unabhängig.
    """
    largest, middle, smallest = sorted((float(v) for v in extents), reverse=True)
    if largest <= Tolerances.EPSILON_MATH:
        return 0.0
    comparable = middle / largest >= 1.0 / Tolerances.FEATURE_CYLINDER_MIN_RATIO
    thin = smallest < Tolerances.FEATURE_FLAT_MAX_THICKNESS * largest
    return Tolerances.FEATURE_FLAT_SCORE if comparable and thin else 0.0


class FeatureClassifier:
    """
    Bewertet Cluster gegen Kugel-, Zylinder-, Würfel- und Platten-Archetypen.

    Isotrope Ausdehnung unterscheidet Kugel und Würfel nicht, das leistet
    nur die Radius-Streuung. Ab `sphere_dominance` gewinnt daher die Kugel.
    Die Zylinder-Regel greift auch bei Platten (zwei gleiche, eine abweichende
    Achse); ist die abweichende Achse die dünne, gewinnt die Platte.
    """

    def __init__(self, sphere_dominance: float = Tolerances.FEATURE_SPHERE_DOMINANCE):
        self.sphere_dominance = sphere_dominance

    def score(self, cluster: Cluster) -> FeatureScores:
        bbox = cluster.bounds
        extents = bbox.size
        return FeatureScores(
            sphere=sphere_score(cluster.points, bbox.center),
            cylinder=cylinder_score(extents),
            cube=cube_score(extents),
            flat=flat_score(extents),
        )

    def best_kind(self, scores: FeatureScores) -> ShapeKind:
        """Archetyp mit höchstem Score, COMPLEX wenn keiner ausreichend passt."""
        ranked = scores.as_dict()
        best = max(ranked, key=ranked.get)
        if ranked[best] < Tolerances.FEATURE_COMPLEX_BELOW:
            return ShapeKind.COMPLEX
        if best is ShapeKind.CUBE and scores.sphere >= self.sphere_dominance:
            return ShapeKind.SPHERE
        if best is ShapeKind.CYLINDER and scores.flat > 0.0:
            return ShapeKind.FLAT
        return best

    def classify(self, cluster: Cluster, min_confidence: float) -> List[Detection]:
        """Detections für alle Archetypen ab `min_confidence` (inklusive)."""
        scores = self.score(cluster)
        if is_enabled("detection_debug"):
            logger.debug(f"  Feature-Scores: Kugel={scores.sphere:.3f}, "
                         f"Zylinder={scores.cylinder:.2f}, Würfel={scores.cube:.3f}, "
                         f"Platte={scores.flat:.2f}")

        candidates = scores.as_dict()
        if is_enabled("detection_best_archetype_only"):
            kind = self.best_kind(scores)
            if kind is ShapeKind.COMPLEX:
                candidates = {kind: Tolerances.FEATURE_COMPLEX_SCORE}
            else:
                candidates = {kind: candidates[kind]}

        return [
            make_detection(kind, DetectionAlgorithm.FEATURE_EXTRACTION, cluster, score)
            for kind, score in candidates.items()
            if score >= min_confidence
        ]
