import numpy as np
import pytest

from config.feature_flags import set_flag
from shapedetector.base import Cluster
from shapedetector.reference_shapes import ReferenceShapeLibrary


# Global Feature Flag Defaults - Single Source of Truth for Test Isolation
# ========================================================================
# WICHTIG: Jeder Test muss mit sauberen Feature-Flags starten.
# Diese Defaults müssen mit config/feature_flags.py synchron gehalten werden.
FEATURE_FLAG_DEFAULTS = {
    "detection_debug": False,
    "icp_rigid_rotation": False,
    "detection_best_archetype_only": True,
}


@pytest.fixture(autouse=True)
def _global_feature_flag_isolation():
    """
    Stellt sicher, dass jeder Test mit sauberen, deterministischen
    Feature-Flags startet und keine Mutation in den nächsten Test leakt.
    """
    for key, value in FEATURE_FLAG_DEFAULTS.items():
        set_flag(key, value)

    yield

    for key, value in FEATURE_FLAG_DEFAULTS.items():
        set_flag(key, value)


@pytest.fixture(scope="session")
def reference_library():
    """Eine Bibliothek für alle Tests (schreibgeschützt)."""
    return ReferenceShapeLibrary()


@pytest.fixture
def make_cluster():
    """Factory: Punkte -> Cluster in gegebener Reihenfolge."""
    def _make(points):
        points = np.asarray(points, dtype=np.float64)
        return Cluster(points=points, indices=np.arange(len(points)))
    return _make
