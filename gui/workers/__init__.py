"""
ShapeDetector - Deferred Workers
================================

Verschiebt Geometrie-Erkennung auf den Main-Loop, damit Interaktion und
Rendering nicht blockieren.
"""

from gui.workers.detection_worker import DetectionWorker, DetectionScheduler

__all__ = ['DetectionWorker', 'DetectionScheduler']
