"""
Ergebnis-Container für Konsumenten der Geometrie-Erkennung.

Rendering-Layer und Punkt-Platzierung arbeiten mit dem letzten Lauf:
Detections anzeigen, Anker-Kandidaten ab einer Confidence-Schwelle
anbieten, alles verwerfen.
"""

from typing import Dict, List, Optional, Tuple

from shapedetector.base import Detection, ShapeKind, Vec3


class DetectionResults:
    """Hält die Detections des letzten Erkennungs-Laufs."""

    def __init__(self, detections: Optional[List[Detection]] = None):
        self._detections: List[Detection] = list(detections or [])

    def __len__(self) -> int:
        return len(self._detections)

    def __iter__(self):
        return iter(self._detections)

    @property
    def detections(self) -> List[Detection]:
        return list(self._detections)

    def replace(self, detections: List[Detection]):
        self._detections = list(detections)

    def clear(self):
        self._detections.clear()

    def get(self, detection_id: str) -> Optional[Detection]:
        for detection in self._detections:
            if detection.id == detection_id:
                return detection
        return None

    def anchor_candidates(self, min_confidence: float) -> List[Tuple[str, Vec3]]:
        """(id, Zentrum) aller Detections ab `min_confidence` für die Punkt-Platzierung."""
        return [(d.id, d.center) for d in self._detections if d.confidence >= min_confidence]

    def by_kind(self) -> Dict[ShapeKind, List[Detection]]:
        grouped: Dict[ShapeKind, List[Detection]] = {}
        for detection in self._detections:
            grouped.setdefault(detection.kind, []).append(detection)
        return grouped

    def summary(self) -> str:
        count = len(self._detections)
        if count == 1:
            return "1 geometry detected"
        return f"{count} geometries detected"

    def to_dicts(self) -> List[dict]:
        return [d.to_dict() for d in self._detections]
