"""
Zusammenführung der Detections aller Cluster und Algorithmen.

1. Detections unter min_confidence verwerfen
2. Nach Confidence absteigend sortieren (stabil)
3. Greedy übernehmen, außer eine bereits übernommene Detection derselben
   Shape-Art liegt näher als merge_distance
"""

from typing import Iterable, List

import numpy as np
from loguru import logger

from config.tolerances import Tolerances
from shapedetector.base import Detection


def merge_detections(
    detections: Iterable[Detection],
    min_confidence: float,
    merge_distance: float = Tolerances.MERGE_DISTANCE,
) -> List[Detection]:
    """
    Dedupliziert und filtert Detections.

    Returns:
        Übernommene Detections, Confidence absteigend
    """
    candidates = [d for d in detections if d.confidence >= min_confidence]
    # sorted() ist stabil: bei gleicher Confidence bleibt die Eingangsreihenfolge
    candidates = sorted(candidates, key=lambda d: d.confidence, reverse=True)

    accepted: List[Detection] = []
    suppressed = 0
    for detection in candidates:
        center = np.asarray(detection.center)
        duplicate = any(
            other.kind is detection.kind
            and np.linalg.norm(center - np.asarray(other.center)) < merge_distance
            for other in accepted
        )
        if duplicate:
            suppressed += 1
            continue
        accepted.append(detection)

    if suppressed:
        logger.debug(f"Merge: {suppressed} Duplikate unterdrückt, {len(accepted)} übernommen")
    return accepted
