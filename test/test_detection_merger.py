"""Tests für Filter und Duplikat-Unterdrückung."""

import numpy as np
import pytest

from shapedetector.base import DetectionAlgorithm, ShapeKind, make_detection
from shapedetector.detection_merger import merge_detections


@pytest.fixture
def detection(make_cluster):
    cluster = make_cluster(np.array([[-1.0, -1.0, -1.0], [1.0, 1.0, 1.0]]))

    def _make(kind, center, confidence, algorithm=DetectionAlgorithm.FEATURE_EXTRACTION):
        return make_detection(kind, algorithm, cluster, confidence, center=np.asarray(center))
    return _make


def test_filters_below_min_confidence(detection):
    merged = merge_detections([
        detection(ShapeKind.SPHERE, (0, 0, 0), 0.59),
        detection(ShapeKind.CUBE, (10, 0, 0), 0.6),
    ], min_confidence=0.6)
    assert [d.kind for d in merged] == [ShapeKind.CUBE]


def test_sorted_by_confidence(detection):
    merged = merge_detections([
        detection(ShapeKind.SPHERE, (0, 0, 0), 0.7),
        detection(ShapeKind.CUBE, (10, 0, 0), 0.9),
        detection(ShapeKind.CYLINDER, (20, 0, 0), 0.8),
    ], min_confidence=0.0)
    assert [d.confidence for d in merged] == [0.9, 0.8, 0.7]


def test_same_kind_nearby_suppressed(detection):
    strong = detection(ShapeKind.SPHERE, (0, 0, 0), 0.9, DetectionAlgorithm.ICP)
    weak = detection(ShapeKind.SPHERE, (1.5, 0, 0), 0.7)
    merged = merge_detections([weak, strong], min_confidence=0.6)
    assert merged == [strong]


def test_different_kind_nearby_kept(detection):
    merged = merge_detections([
        detection(ShapeKind.SPHERE, (0, 0, 0), 0.9),
        detection(ShapeKind.CUBE, (0.5, 0, 0), 0.8),
    ], min_confidence=0.6)
    assert len(merged) == 2


def test_distance_threshold_is_strict(detection):
    merged = merge_detections([
        detection(ShapeKind.SPHERE, (0, 0, 0), 0.9),
        detection(ShapeKind.SPHERE, (2.0, 0, 0), 0.8),
    ], min_confidence=0.6)
    assert len(merged) == 2


def test_equal_confidence_keeps_input_order(detection):
    first = detection(ShapeKind.SPHERE, (0, 0, 0), 0.8, DetectionAlgorithm.CURVATURE_ANALYSIS)
    second = detection(ShapeKind.SPHERE, (1, 0, 0), 0.8, DetectionAlgorithm.ICP)
    merged = merge_detections([first, second], min_confidence=0.6)
    assert merged == [first]


def test_suppression_only_against_accepted(detection):
    # B wird von A unterdrückt, darf C daher nicht unterdrücken
    a = detection(ShapeKind.SPHERE, (0, 0, 0), 0.9)
    b = detection(ShapeKind.SPHERE, (1.5, 0, 0), 0.8)
    c = detection(ShapeKind.SPHERE, (3.0, 0, 0), 0.7)
    assert merge_detections([a, b, c], min_confidence=0.6) == [a, c]


def test_empty():
    assert merge_detections([], min_confidence=0.6) == []
