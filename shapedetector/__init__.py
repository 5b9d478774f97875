"""
ShapeDetector - Primitiv-Erkennung auf Scan-Meshes
==================================================

Erkennt Kugeln, Zylinder, Würfel und Kegel in dichten Scan-Meshes und
liefert pro Treffer Pose (Zentrum, Rotation, Skalierung) und Confidence.

Komponenten:
    extract_points       - Mesh -> (N, 3) Punktliste
    SpatialClusterer     - Flood Fill über Nachbarschafts-Graph
    FeatureClassifier    - Bounding-Box Heuristiken
    CurvatureAnalyzer    - Diskrete Krümmung entlang der Punktfolge
    IcpRegistrator       - ICP gegen ReferenceShapeLibrary
    merge_detections     - Filter + Duplikat-Unterdrückung

Usage:
    from shapedetector import GeometryDetector, DetectionOptions

    detector = GeometryDetector()
    detections = detector.detect(mesh, DetectionOptions(use_icp=False))

    # Oder mit Dict-Optionen
    from shapedetector import detect
    detections = detect(mesh, {"minConfidence": 0.7})
"""

from shapedetector.base import (
    BoundingBox,
    CancellationToken,
    Cluster,
    Detection,
    DetectionAlgorithm,
    DetectionCancelled,
    DetectionOptions,
    DetectionPhase,
    MeshFormatError,
    ProgressCallback,
    ProgressUpdate,
    ShapeKind,
)
from shapedetector.vertex_extractor import extract_points, extract_bounds
from shapedetector.spatial_clusterer import SpatialClusterer, cluster_points, downsample
from shapedetector.feature_classifier import FeatureClassifier, FeatureScores
from shapedetector.curvature_analyzer import CurvatureAnalyzer, curvature_profile
from shapedetector.reference_shapes import ReferenceShapeLibrary
from shapedetector.icp_registrator import IcpRegistrator, IcpResult
from shapedetector.detection_merger import merge_detections
from shapedetector.geometry_detector import GeometryDetector, detect, get_detector
from shapedetector.results import DetectionResults

from config.version import VERSION_STRING

__all__ = [
    # Datenmodell
    'BoundingBox',
    'Cluster',
    'Detection',
    'DetectionAlgorithm',
    'DetectionOptions',
    'ShapeKind',

    # Progress / Abbruch
    'CancellationToken',
    'DetectionCancelled',
    'DetectionPhase',
    'ProgressCallback',
    'ProgressUpdate',

    # Fehler
    'MeshFormatError',

    # Komponenten
    'extract_points',
    'extract_bounds',
    'SpatialClusterer',
    'cluster_points',
    'downsample',
    'FeatureClassifier',
    'FeatureScores',
    'CurvatureAnalyzer',
    'curvature_profile',
    'ReferenceShapeLibrary',
    'IcpRegistrator',
    'IcpResult',
    'merge_detections',

    # Pipeline
    'GeometryDetector',
    'detect',
    'get_detector',
    'DetectionResults',
]

__version__ = VERSION_STRING
