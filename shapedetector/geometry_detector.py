"""
Primitiv-Erkennung auf gescannten Meshes.

Pipeline:
1. Vertex-Extraktion (flache Punktliste)
2. Räumliches Clustering (Flood Fill, Cluster >= 100 Punkte)
3. Pro Cluster: Feature-Heuristik, Krümmungs-Analyse, ICP (einzeln abschaltbar)
4. Merge: Filter, Sortierung, Duplikat-Unterdrückung

Der Detector ist pro Aufruf zustandslos. Einziger dauerhafter Zustand ist
die schreibgeschützte Referenz-Bibliothek für ICP.
"""

import dataclasses
from typing import Any, Callable, List, Mapping, Optional, Union

from loguru import logger

from config.feature_flags import is_enabled
from shapedetector.base import (
    CancellationToken,
    Cluster,
    Detection,
    DetectionCancelled,
    DetectionOptions,
    DetectionPhase,
    MeshFormatError,
    ProgressCallback,
    emit_progress,
)
from shapedetector.curvature_analyzer import CurvatureAnalyzer
from shapedetector.detection_merger import merge_detections
from shapedetector.feature_classifier import FeatureClassifier
from shapedetector.icp_registrator import IcpRegistrator
from shapedetector.reference_shapes import ReferenceShapeLibrary
from shapedetector.spatial_clusterer import SpatialClusterer
from shapedetector.vertex_extractor import extract_points

OptionsLike = Union[DetectionOptions, Mapping[str, Any], None]


class GeometryDetector:
    """
    Erkennt Kugeln, Zylinder, Würfel und Kegel in einer Punktwolke.

    Usage:
        detector = GeometryDetector()
        detections = detector.detect(mesh, DetectionOptions(min_confidence=0.7))
        for d in detections:
            print(d.kind.value, d.center, d.confidence)
    """

    def __init__(
        self,
        reference_library: Optional[ReferenceShapeLibrary] = None,
        clusterer: Optional[SpatialClusterer] = None,
        feature_classifier: Optional[FeatureClassifier] = None,
        curvature_analyzer: Optional[CurvatureAnalyzer] = None,
        icp_registrator: Optional[IcpRegistrator] = None,
    ):
        self.reference_library = reference_library or ReferenceShapeLibrary()
        self.clusterer = clusterer or SpatialClusterer()
        self.feature_classifier = feature_classifier or FeatureClassifier()
        self.curvature_analyzer = curvature_analyzer or CurvatureAnalyzer()
        self.icp_registrator = icp_registrator or IcpRegistrator()

    def detect(
        self,
        mesh: Any,
        options: OptionsLike = None,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[Detection]:
        """
        Führt einen vollständigen Erkennungs-Lauf aus.

        Args:
            mesh: Mesh mit Positions-Buffer (PyVista, Array, Dict, ...)
            options: DetectionOptions oder Dict (camelCase/snake_case)
            progress_callback: Optionaler Progress-Callback
            cancel_token: Optionales Abbruch-Token

        Returns:
            Detections, Confidence absteigend

        Raises:
            DetectionCancelled: Token wurde während des Laufs ausgelöst
        """
        if not isinstance(options, DetectionOptions):
            options = DetectionOptions.from_mapping(options)
        token = cancel_token or CancellationToken()

        if not options.any_enabled:
            logger.info("Geometrie-Erkennung: alle Algorithmen deaktiviert")
            return []

        emit_progress(progress_callback, DetectionPhase.EXTRACTING, 0.0, "Extrahiere Vertices...")
        try:
            points = extract_points(mesh)
        except MeshFormatError as e:
            logger.warning(f"Mesh ohne gültige Positionsdaten: {e}")
            points = None

        if points is None or len(points) == 0:
            logger.info("0 geometries detected (keine Positionsdaten)")
            emit_progress(progress_callback, DetectionPhase.COMPLETE, 1.0, "0 geometries detected")
            return []

        token.raise_if_cancelled()
        emit_progress(progress_callback, DetectionPhase.CLUSTERING, 0.1,
                      "Clustere Punkte...", f"{len(points)} points")
        clusters = self.clusterer.cluster(points)
        logger.info(f"Geometrie-Erkennung: {len(points)} Punkte, {len(clusters)} Cluster")

        candidates: List[Detection] = []
        for i, cluster in enumerate(clusters):
            token.raise_if_cancelled()
            emit_progress(progress_callback, DetectionPhase.CLASSIFYING,
                          0.2 + 0.7 * i / len(clusters),
                          "Klassifiziere Cluster...", f"{i + 1}/{len(clusters)} clusters")
            candidates.extend(self._detect_cluster(i, cluster, options, token))

        token.raise_if_cancelled()
        emit_progress(progress_callback, DetectionPhase.MERGING, 0.9, "Führe Detections zusammen...")
        merged = merge_detections(candidates, options.min_confidence)
        detections = [
            dataclasses.replace(d, id=f"{d.kind.value}-{n}")
            for n, d in enumerate(merged)
        ]

        logger.info(f"{len(detections)} geometries detected "
                    f"({len(candidates)} Kandidaten aus {len(clusters)} Clustern)")
        emit_progress(progress_callback, DetectionPhase.COMPLETE, 1.0,
                      f"{len(detections)} geometries detected")
        return detections

    def _detect_cluster(
        self,
        index: int,
        cluster: Cluster,
        options: DetectionOptions,
        token: CancellationToken,
    ) -> List[Detection]:
        """Alle aktivierten Algorithmen auf einem Cluster, Fehler pro Algorithmus isoliert."""
        steps: List[tuple] = []
        if options.use_feature_extraction:
            steps.append(("feature-extraction",
                          lambda: self.feature_classifier.classify(cluster, options.min_confidence)))
        if options.use_curvature_analysis:
            steps.append(("curvature-analysis", lambda: self.curvature_analyzer.analyze(cluster)))
        if options.use_icp:
            steps.append(("icp",
                          lambda: self.icp_registrator.register_cluster(cluster, self.reference_library)))

        if is_enabled("detection_debug"):
            logger.debug(f"Cluster {index}: {len(cluster)} Punkte")

        detections = []
        for name, step in steps:
            token.raise_if_cancelled()
            detections.extend(self._run_step(index, name, step))
        return detections

    @staticmethod
    def _run_step(index: int, name: str, step: Callable[[], List[Detection]]) -> List[Detection]:
        try:
            return step()
        except DetectionCancelled:
            raise
        except Exception as e:
            logger.warning(f"Cluster {index}: {name} fehlgeschlagen: {e}")
            return []


_default_detector: Optional[GeometryDetector] = None


def get_detector() -> GeometryDetector:
    """Gemeinsamer Detector (Referenz-Bibliothek wird nur einmal gebaut)."""
    global _default_detector
    if _default_detector is None:
        _default_detector = GeometryDetector()
    return _default_detector


def detect(mesh: Any, options: OptionsLike = None) -> List[Detection]:
    """Convenience-Funktion für die Geometrie-Erkennung."""
    return get_detector().detect(mesh, options)
