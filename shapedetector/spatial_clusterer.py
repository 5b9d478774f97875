"""
Räumliches Clustering per Flood Fill über einen Nachbarschafts-Graphen.

Zwei Punkte sind verbunden, wenn ihr euklidischer Abstand strikt kleiner
als der Cluster-Radius ist. Große Punktwolken werden vorher mit festem
Stride ausgedünnt, damit die Laufzeit begrenzt bleibt.
"""

from typing import List

import numpy as np
from loguru import logger
from scipy.sparse import coo_matrix
from scipy.sparse.csgraph import breadth_first_order, connected_components
from scipy.spatial import cKDTree

from config.feature_flags import is_enabled
from config.tolerances import Tolerances
from shapedetector.base import Cluster


def downsample(points: np.ndarray, cap: int = Tolerances.CLUSTER_SAMPLE_CAP) -> np.ndarray:
    """
    Dünnt gleichmäßig mit festem Stride aus (deterministisch).

    Punktwolken bis `cap` Punkte bleiben unverändert.
    """
    n = len(points)
    if cap <= 0 or n <= cap:
        return points
    stride = int(np.ceil(n / cap))
    return points[::stride]


class SpatialClusterer:
    """
    Zerlegt eine Punktliste in zusammenhängende Regionen.

    Algorithmus:
    1. Ausdünnen auf max. `sample_cap` Punkte
    2. Alle Punktpaare mit Abstand < radius (KD-Tree, gleiche Paare wie Brute-Force)
    3. Zusammenhangskomponenten des Graphen
    4. Pro Komponente mit >= `min_points`: BFS-Reihenfolge ab dem kleinsten Index
    """

    def __init__(
        self,
        radius: float = Tolerances.CLUSTER_RADIUS,
        min_points: int = Tolerances.CLUSTER_MIN_POINTS,
        sample_cap: int = Tolerances.CLUSTER_SAMPLE_CAP,
    ):
        if radius <= 0:
            raise ValueError(f"radius must be positive, got {radius}")
        self.radius = radius
        self.min_points = min_points
        self.sample_cap = sample_cap

    def cluster(self, points: np.ndarray) -> List[Cluster]:
        """Liefert alle Cluster mit mindestens `min_points` Punkten, sortiert nach Seed-Index."""
        if len(points) < self.min_points:
            return []

        sample = downsample(points, self.sample_cap)
        if len(sample) != len(points):
            logger.debug(f"Ausgedünnt: {len(points)} -> {len(sample)} Punkte")

        graph = self._proximity_graph(sample)
        n_components, labels = connected_components(graph, directed=False)

        sizes = np.bincount(labels, minlength=n_components)
        # Erster (kleinster) Index jeder Komponente = Seed
        _, seeds = np.unique(labels, return_index=True)

        clusters = []
        for seed in np.sort(seeds):
            if sizes[labels[seed]] < self.min_points:
                continue
            order = breadth_first_order(graph, int(seed), directed=False,
                                        return_predecessors=False)
            indices = np.asarray(order, dtype=np.intp)
            clusters.append(Cluster(points=sample[indices], indices=indices))

        if is_enabled("detection_debug"):
            skipped = int(np.sum(sizes < self.min_points))
            logger.debug(f"Clustering: {len(clusters)} Cluster, {skipped} zu klein, "
                         f"Größen={[len(c) for c in clusters]}")

        return clusters

    def _proximity_graph(self, points: np.ndarray):
        """Dünn besetzter Nachbarschafts-Graph (CSR), Kanten für Abstand < radius."""
        n = len(points)
        tree = cKDTree(points)
        # query_pairs schließt den Rand ein: knapp unter radius abfragen
        strict_radius = np.nextafter(self.radius, 0.0)
        pairs = tree.query_pairs(strict_radius, output_type='ndarray')
        weights = np.ones(len(pairs), dtype=np.int8)
        graph = coo_matrix((weights, (pairs[:, 0], pairs[:, 1])), shape=(n, n)).tocsr()
        graph.sort_indices()
        return graph


def cluster_points(points: np.ndarray) -> List[Cluster]:
    """Convenience-Funktion mit Standard-Parametern."""
    return SpatialClusterer().cluster(points)
