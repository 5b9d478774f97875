"""
ShapeDetector - Configuration Module
====================================

Zentrale Konfiguration für Toleranzen und Feature-Flags der Primitiv-Erkennung.
"""

from .tolerances import Tolerances, cluster_radius, merge_distance, icp_tolerance
from .feature_flags import is_enabled, set_flag, get_all_flags, FEATURE_FLAGS
