"""
ShapeDetector - Deferred Detection Worker
=========================================

Ein Erkennungs-Lauf kann mehrere Sekunden dauern. Statt die Interaktion
zu blockieren, wird er auf einen späteren Main-Loop-Durchlauf verschoben
(QTimer.singleShot) und läuft dann ohne Unterbrechung durch.

- Debounce: höchstens ein geplanter Lauf pro Mesh-Load
- Neuer Request für dieselbe Mesh-ID bricht den alten ab
- Abgebrochene Läufe liefern nie Ergebnisse
"""

from typing import Any, Callable, Dict, Optional

from loguru import logger
from PySide6.QtCore import QCoreApplication, QObject, QTimer, Signal

from shapedetector.base import CancellationToken, DetectionCancelled, DetectionOptions
from shapedetector.geometry_detector import GeometryDetector, get_detector

DEFAULT_DEBOUNCE_MS = 500


class DetectionWorker(QObject):
    """
    Queued Main-Thread Worker für einen Erkennungs-Lauf.

    Signals:
        progress: ProgressUpdate
        detections_ready: (mesh_id, List[Detection])
        error: (mesh_id, Fehlermeldung)
        done: mesh_id - nach jedem Ende (auch Abbruch)

    Ohne QCoreApplication läuft start() synchron.
    """

    progress = Signal(object)
    detections_ready = Signal(str, object)
    error = Signal(str, str)
    done = Signal(str)

    def __init__(
        self,
        mesh_id: str,
        mesh: Any,
        detector: GeometryDetector,
        options: Optional[DetectionOptions] = None,
        delay_ms: int = 0,
        parent=None,
    ):
        super().__init__(parent)
        self.mesh_id = mesh_id
        self.mesh = mesh
        self.detector = detector
        self.options = options
        self.delay_ms = max(0, int(delay_ms))
        self.token = CancellationToken()
        self._running = False

    def start(self):
        """Plant den Lauf auf dem nächsten Main-Loop-Durchlauf nach `delay_ms`."""
        if self._running:
            return

        self._running = True
        if QCoreApplication.instance() is None:
            self._run()
            return

        QTimer.singleShot(self.delay_ms, self._run)

    def cancel(self):
        """Bricht den Lauf ab (auch wenn er noch nicht gestartet ist)."""
        self.token.cancel()

    @property
    def cancelled(self) -> bool:
        return self.token.is_cancelled

    def isRunning(self) -> bool:
        return self._running

    def _run(self):
        try:
            if self.cancelled:
                return

            detections = self.detector.detect(
                self.mesh,
                self.options,
                progress_callback=self.progress.emit,
                cancel_token=self.token,
            )

            if self.cancelled:
                return

            self.detections_ready.emit(self.mesh_id, detections)

        except DetectionCancelled:
            logger.debug(f"Geometrie-Erkennung für {self.mesh_id} abgebrochen")
        except Exception as exc:
            if not self.cancelled:
                logger.warning(f"Geometrie-Erkennung für {self.mesh_id} fehlgeschlagen: {exc}")
                self.error.emit(self.mesh_id, str(exc))
        finally:
            self._running = False
            self.done.emit(self.mesh_id)


class DetectionScheduler:
    """
    Verwaltet Erkennungs-Läufe mit Supersede pro Mesh.

    - Höchstens ein aktiver/geplanter Lauf pro Mesh-ID
    - Neuer Request für dieselbe Mesh-ID bricht den alten ab
    """

    def __init__(
        self,
        detector: Optional[GeometryDetector] = None,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
    ):
        self.detector = detector or get_detector()
        self.debounce_ms = debounce_ms
        self._workers: Dict[str, DetectionWorker] = {}

    def request_detection(
        self,
        mesh_id: str,
        mesh: Any,
        on_ready: Callable,
        on_error: Optional[Callable] = None,
        options: Optional[DetectionOptions] = None,
        on_progress: Optional[Callable] = None,
    ) -> DetectionWorker:
        """Plant einen Lauf für ein neu geladenes Mesh."""
        old_worker = self._workers.pop(mesh_id, None)
        if old_worker is not None:
            old_worker.cancel()
            logger.debug(f"Geometrie-Erkennung superseded für {mesh_id}")

        worker = DetectionWorker(mesh_id, mesh, self.detector, options, delay_ms=self.debounce_ms)
        worker.detections_ready.connect(on_ready)
        if on_error:
            worker.error.connect(on_error)
        if on_progress:
            worker.progress.connect(on_progress)
        worker.done.connect(self._cleanup_worker)

        self._workers[mesh_id] = worker
        worker.start()
        return worker

    def _cleanup_worker(self, mesh_id: str):
        """Entfernt den Worker nach Ende, außer ein neuerer ist bereits geplant."""
        worker = self._workers.get(mesh_id)
        if worker is not None and not worker.isRunning():
            del self._workers[mesh_id]

    def cancel(self, mesh_id: str):
        worker = self._workers.pop(mesh_id, None)
        if worker is not None:
            worker.cancel()

    def cancel_all(self):
        """Bricht alle geplanten und laufenden Erkennungen ab."""
        for worker in self._workers.values():
            worker.cancel()
        self._workers.clear()

    def is_detecting(self, mesh_id: str) -> bool:
        """True wenn für das Mesh ein Lauf geplant ist oder läuft."""
        return mesh_id in self._workers

    @property
    def pending_count(self) -> int:
        return len(self._workers)
