"""
ShapeDetector Base Types
========================

Gemeinsames Datenmodell der Erkennungs-Pipeline:
Shape-Arten, Detections, Optionen, Progress-Updates und Abbruch-Token.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple
import numbers
import time

import numpy as np
from loguru import logger

from config.tolerances import Tolerances


Vec3 = Tuple[float, float, float]


class ShapeKind(Enum):
    """Geschlossene Menge der erkennbaren Shape-Arten."""
    SPHERE = "sphere"
    CYLINDER = "cylinder"
    CUBE = "cube"
    CONE = "cone"
    FLAT = "flat"
    COMPLEX = "complex"


class DetectionAlgorithm(Enum):
    """Quelle einer Detection."""
    FEATURE_EXTRACTION = "feature-extraction"
    CURVATURE_ANALYSIS = "curvature-analysis"
    ICP = "icp"


class MeshFormatError(ValueError):
    """Positions-Buffer hat keine gültige (N, 3) Form."""


class DetectionCancelled(Exception):
    """Erkennungs-Lauf wurde abgebrochen (Mesh hat sich geändert)."""


class CancellationToken:
    """
    Kooperatives Abbruch-Signal für einen Erkennungs-Lauf.

    Die Pipeline prüft das Token zwischen Clustern und Algorithmen.
    """

    def __init__(self):
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self):
        if self._cancelled:
            raise DetectionCancelled("Detection pass cancelled")


@dataclass(frozen=True)
class BoundingBox:
    """Achsen-parallele Bounding Box."""
    min_corner: Vec3
    max_corner: Vec3

    @classmethod
    def from_points(cls, points: np.ndarray) -> 'BoundingBox':
        lo = points.min(axis=0)
        hi = points.max(axis=0)
        return cls(tuple(float(v) for v in lo), tuple(float(v) for v in hi))

    @property
    def center(self) -> np.ndarray:
        return (np.asarray(self.min_corner) + np.asarray(self.max_corner)) / 2.0

    @property
    def size(self) -> np.ndarray:
        return np.asarray(self.max_corner) - np.asarray(self.min_corner)

    @property
    def half_extents(self) -> np.ndarray:
        return self.size / 2.0


@dataclass
class Cluster:
    """
    Räumlich zusammenhängende Punktmenge.

    Args:
        points: (N, 3) Punkte in Flood-Fill Reihenfolge
        indices: Indizes in die (ggf. ausgedünnte) Punktliste
    """
    points: np.ndarray
    indices: np.ndarray

    def __len__(self) -> int:
        return len(self.points)

    @property
    def bounds(self) -> BoundingBox:
        return BoundingBox.from_points(self.points)


@dataclass(frozen=True)
class Detection:
    """
    Ein erkanntes Primitiv mit Pose und Confidence.

    Args:
        id: Eindeutig pro Aufruf
        kind: Shape-Art
        center: Zentrum in Mesh-Koordinaten
        rotation: Euler-Winkel (xyz, Radians)
        scale: Halbe Ausdehnung pro Achse
        confidence: Zuverlässigkeit 0.0 - 1.0
        algorithm: Erzeugender Algorithmus
        bounding_box: Bounding Box des Ursprungs-Clusters
        points: Punkte des Ursprungs-Clusters
        timestamp: Erzeugungszeitpunkt (time.time())
    """
    id: str
    kind: ShapeKind
    center: Vec3
    rotation: Vec3
    scale: Vec3
    confidence: float
    algorithm: DetectionAlgorithm
    bounding_box: BoundingBox = field(compare=False)
    points: np.ndarray = field(compare=False, repr=False)
    timestamp: float = field(default_factory=time.time, compare=False)

    def __post_init__(self):
        """Validiert Confidence-Wert."""
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be 0.0-1.0, got {self.confidence}")

    def to_dict(self) -> Dict[str, Any]:
        """Serialisierbare Darstellung (ohne Punkte) für Rendering-Layer."""
        return {
            "id": self.id,
            "type": self.kind.value,
            "center": list(self.center),
            "rotation": list(self.rotation),
            "scale": list(self.scale),
            "confidence": self.confidence,
            "algorithm": self.algorithm.value,
            "boundingBox": {
                "min": list(self.bounding_box.min_corner),
                "max": list(self.bounding_box.max_corner),
            },
            "pointCount": int(len(self.points)),
            "timestamp": self.timestamp,
        }


def make_detection(
    kind: ShapeKind,
    algorithm: DetectionAlgorithm,
    cluster: Cluster,
    confidence: float,
    center: Optional[np.ndarray] = None,
    rotation: Optional[np.ndarray] = None,
    scale: Optional[np.ndarray] = None,
) -> Detection:
    """
    Baut eine Detection aus einem Cluster.

    Ohne explizite Pose: Zentrum = BBox-Zentrum, Scale = Halbachsen,
    Rotation = Identität. Die endgültige ID vergibt die Pipeline.
    """
    bbox = cluster.bounds
    if center is None:
        center = bbox.center
    if scale is None:
        scale = bbox.half_extents
    if rotation is None:
        rotation = np.zeros(3)

    return Detection(
        id="",
        kind=kind,
        center=_vec3(center),
        rotation=_vec3(rotation),
        scale=_vec3(scale),
        confidence=float(np.clip(confidence, 0.0, 1.0)),
        algorithm=algorithm,
        bounding_box=bbox,
        points=cluster.points,
    )


def _vec3(values) -> Vec3:
    return tuple(float(v) for v in values)


@dataclass
class DetectionOptions:
    """
    Optionen eines Erkennungs-Laufs.

    Args:
        use_icp: ICP-Registrierung gegen Referenz-Primitive
        use_curvature_analysis: Krümmungs-Analyse entlang des Punktpfads
        use_feature_extraction: Bounding-Box Heuristiken
        min_confidence: Mindest-Confidence 0.0 - 1.0
    """
    use_icp: bool = True
    use_curvature_analysis: bool = True
    use_feature_extraction: bool = True
    min_confidence: float = Tolerances.DEFAULT_MIN_CONFIDENCE

    _KEY_ALIASES = {
        "useICP": "use_icp",
        "useCurvatureAnalysis": "use_curvature_analysis",
        "useFeatureExtraction": "use_feature_extraction",
        "minConfidence": "min_confidence",
    }

    def __post_init__(self):
        """Validiert Confidence-Schwelle."""
        if not 0.0 <= self.min_confidence <= 1.0:
            raise ValueError(f"min_confidence must be 0.0-1.0, got {self.min_confidence}")

    @classmethod
    def from_mapping(cls, values: Optional[Mapping[str, Any]]) -> 'DetectionOptions':
        """
        Erstellt Optionen aus einem Dict (camelCase oder snake_case Keys).
        Unbekannte Keys werden mit Warnung ignoriert.

        Raises:
            ValueError: Wert hat den falschen Typ oder liegt außerhalb [0, 1]
        """
        if not values:
            return cls()

        kwargs = {}
        for key, value in values.items():
            name = cls._KEY_ALIASES.get(key, key)
            if name not in ("use_icp", "use_curvature_analysis",
                            "use_feature_extraction", "min_confidence"):
                logger.warning(f"Unbekannte Detection-Option ignoriert: {key}")
                continue
            kwargs[name] = _coerce_option(key, name, value)
        return cls(**kwargs)

    @property
    def any_enabled(self) -> bool:
        return self.use_icp or self.use_curvature_analysis or self.use_feature_extraction


def _coerce_option(key: str, name: str, value: Any):
    """Typ-Prüfung für from_mapping: Schalter nur bool, Confidence nur Zahl."""
    if name == "min_confidence":
        if isinstance(value, (bool, np.bool_)) or not isinstance(value, numbers.Real):
            raise ValueError(f"{key} must be a number, got {value!r}")
        return float(value)
    if not isinstance(value, (bool, np.bool_)):
        raise ValueError(f"{key} must be a bool, got {value!r}")
    return bool(value)


class DetectionPhase(Enum):
    """Phasen eines Erkennungs-Laufs"""
    EXTRACTING = "Vertex-Extraktion"
    CLUSTERING = "Clustering"
    CLASSIFYING = "Klassifizierung"
    MERGING = "Merge"
    COMPLETE = "Fertig"


@dataclass
class ProgressUpdate:
    """
    Progress Update für einen Erkennungs-Lauf.

    Args:
        phase: Aktuelle Phase
        progress: Fortschritt 0.0 - 1.0
        message: Status-Nachricht für Anwender
        detail: Optionales Detail (z.B. "3/12 clusters")
    """
    phase: DetectionPhase
    progress: float  # 0.0 - 1.0
    message: str
    detail: Optional[str] = None

    def __post_init__(self):
        """Validiert Progress-Wert."""
        if not 0.0 <= self.progress <= 1.0:
            raise ValueError(f"Progress must be 0.0-1.0, got {self.progress}")


ProgressCallback = Callable[[ProgressUpdate], None]


def emit_progress(
    callback: Optional[ProgressCallback],
    phase: DetectionPhase,
    progress: float,
    message: str,
    detail: Optional[str] = None,
):
    """Emittet ein Progress-Update an den Callback."""
    if callback is None:
        return
    try:
        callback(ProgressUpdate(phase=phase, progress=progress, message=message, detail=detail))
    except Exception as e:
        logger.warning(f"Progress callback failed: {e}")
