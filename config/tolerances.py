"""
ShapeDetector - Zentralisierte Toleranz-Konfiguration
=====================================================

Alle Schwellwerte der Primitiv-Erkennung an einem Ort.

Einheiten:
- Distanzen in Mesh-Einheiten (Scans typischerweise mm)
- Scores/Confidences dimensionslos in [0, 1]

Verwendung:
    from config.tolerances import Tolerances

    radius = Tolerances.CLUSTER_RADIUS

    # Oder via Convenience-Funktionen
    from config.tolerances import cluster_radius
    radius = cluster_radius()
"""


class Tolerances:
    """
    Zentrale Konstanten für die Erkennungs-Pipeline.

    Kategorien:
    - CLUSTER_*: Räumliches Clustering (Flood Fill)
    - FEATURE_*: Bounding-Box Heuristiken
    - CURVATURE_*: Diskrete Krümmung entlang des Punktpfads
    - ICP_*: Registrierung gegen Referenz-Primitive
    - MERGE_*: Deduplizierung der Detections
    """

    # =========================================================================
    # Räumliches Clustering
    # =========================================================================

    # Zwei Punkte sind verbunden wenn ihr Abstand STRIKT kleiner ist
    CLUSTER_RADIUS = 5.0

    # Kleinere Cluster werden still verworfen
    CLUSTER_MIN_POINTS = 100

    # Obergrenze für die Punktanzahl vor dem Clustering (fester Stride)
    CLUSTER_SAMPLE_CAP = 15000

    # =========================================================================
    # Feature-Klassifikation (Bounding Box)
    # =========================================================================

    # Standard-Mindest-Confidence für alle Algorithmen
    DEFAULT_MIN_CONFIDENCE = 0.6

    # Zylinder: ein dominanter Achsen-Ratio, zwei vergleichbare
    FEATURE_CYLINDER_MAX_RATIO = 1.5
    FEATURE_CYLINDER_MIN_RATIO = 1.2
    FEATURE_CYLINDER_SCORE = 0.8
    FEATURE_CYLINDER_FALLBACK_SCORE = 0.3

    # Ab diesem Kugel-Score gewinnt Kugel gegen Würfel (isotrope Extents)
    FEATURE_SPHERE_DOMINANCE = 0.9

    # Platte: zwei vergleichbare große Achsen, dritte unter halber Länge
    FEATURE_FLAT_MAX_THICKNESS = 0.5
    FEATURE_FLAT_SCORE = 0.6

    # Unter diesem besten Archetyp-Score gilt der Cluster als "complex"
    FEATURE_COMPLEX_BELOW = 0.5
    FEATURE_COMPLEX_SCORE = 0.5

    # =========================================================================
    # Krümmungs-Analyse
    # =========================================================================

    CURVATURE_MIN_POINTS = 20
    CURVATURE_MIN_MEAN = 0.1
    CURVATURE_MAX_VARIANCE = 0.05
    CURVATURE_CONFIDENCE = 0.7

    # =========================================================================
    # ICP Registrierung
    # =========================================================================

    ICP_MAX_ITERATIONS = 50
    ICP_TOLERANCE = 1e-3  # Fehler-Änderung zwischen Iterationen

    # Max. Punkte pro Arbeits-Set (Ziel und Referenz)
    ICP_WORKING_POINTS = 500

    # Cluster unter dieser Größe werden nicht registriert
    ICP_MIN_POINTS = 50

    # Nur konvergierte Läufe unter diesem Restfehler erzeugen Detections
    ICP_MAX_ERROR = 1.0

    # confidence = 1 - error / ICP_ERROR_SCALE
    ICP_ERROR_SCALE = 10.0

    # Punkte pro Referenz-Primitiv in der Bibliothek
    ICP_REFERENCE_SAMPLES = 1000

    # =========================================================================
    # Merge / Deduplizierung
    # =========================================================================

    # Gleiche Shape-Art innerhalb dieses Abstands = Duplikat
    MERGE_DISTANCE = 2.0

    # =========================================================================
    # Mathematische Epsilon-Werte (Numerische Stabilität)
    # =========================================================================

    # Vermeidet Division durch Null
    EPSILON_MATH = 1e-9


# =============================================================================
# Convenience-Funktionen
# =============================================================================

def cluster_radius() -> float:
    """Gibt den Standard-Cluster-Radius zurück."""
    return Tolerances.CLUSTER_RADIUS


def merge_distance() -> float:
    """Gibt den Merge-Abstand für Duplikate zurück."""
    return Tolerances.MERGE_DISTANCE


def icp_tolerance() -> float:
    """Gibt die ICP-Konvergenz-Toleranz zurück."""
    return Tolerances.ICP_TOLERANCE


# =============================================================================
# Toleranz-Validierung (für Debugging)
# =============================================================================

def validate_tolerances():
    """
    Validiert dass alle Toleranzen sinnvolle Werte haben.
    Nützlich für Tests und Debugging.
    """
    issues = []

    if Tolerances.CLUSTER_RADIUS <= 0:
        issues.append(f"CLUSTER_RADIUS muss positiv sein: {Tolerances.CLUSTER_RADIUS}")

    # ICP braucht weniger Punkte als ein gültiger Cluster hat
    if Tolerances.ICP_MIN_POINTS > Tolerances.CLUSTER_MIN_POINTS:
        issues.append(f"ICP_MIN_POINTS ({Tolerances.ICP_MIN_POINTS}) größer als "
                      f"CLUSTER_MIN_POINTS ({Tolerances.CLUSTER_MIN_POINTS})")

    if not (0.0 <= Tolerances.DEFAULT_MIN_CONFIDENCE <= 1.0):
        issues.append(f"DEFAULT_MIN_CONFIDENCE außerhalb [0, 1]: {Tolerances.DEFAULT_MIN_CONFIDENCE}")

    if Tolerances.ICP_MAX_ERROR > Tolerances.ICP_ERROR_SCALE:
        issues.append(f"ICP_MAX_ERROR ({Tolerances.ICP_MAX_ERROR}) größer als "
                      f"ICP_ERROR_SCALE ({Tolerances.ICP_ERROR_SCALE})")

    return issues


# Automatische Validierung beim Import (nur Warnung, kein Fehler)
_validation_issues = validate_tolerances()
if _validation_issues:
    from loguru import logger
    for issue in _validation_issues:
        logger.warning(f"Toleranz-Validierung: {issue}")
