"""
ShapeDetector - Feature Flags
=============================

Feature Flags ermöglichen inkrementelle Rollouts und einfaches Rollback.
Verhaltensänderungen der Erkennung werden mit Flag=False eingeführt und
erst nach Validierung aktiviert.
"""

from typing import Dict

FEATURE_FLAGS: Dict[str, bool] = {
    # Debug-Modi
    "detection_debug": False,  # Per-Cluster Logging (Scores, ICP-Fehler, Krümmung)

    # ICP: Rotation via Kabsch/SVD statt reiner Translation.
    # Verhaltensänderung gegenüber dem Translation-Only Schritt, daher default aus.
    "icp_rigid_rotation": False,

    # Pro Cluster und Algorithmus nur das beste Archetyp-Ergebnis emittieren.
    # Aus = jeder Score über min_confidence erzeugt eine Detection.
    "detection_best_archetype_only": True,
}


def is_enabled(flag: str) -> bool:
    """
    Prüft ob ein Feature-Flag aktiviert ist.

    Args:
        flag: Name des Feature-Flags

    Returns:
        True wenn aktiviert, False wenn nicht aktiviert oder unbekannt
    """
    return FEATURE_FLAGS.get(flag, False)


def set_flag(flag: str, value: bool) -> None:
    """
    Setzt ein Feature-Flag zur Laufzeit.
    Nützlich für Tests und Debugging.

    Args:
        flag: Name des Feature-Flags
        value: Neuer Wert
    """
    FEATURE_FLAGS[flag] = value


def get_all_flags() -> Dict[str, bool]:
    """Gibt alle Feature-Flags zurück."""
    return FEATURE_FLAGS.copy()
