"""
Primitiv-Erkennung auf STL/PLY/OBJ Scans
========================================

Lädt ein Mesh mit PyVista, führt die Geometrie-Erkennung aus und gibt die
Detections als Tabelle oder JSON aus.

Usage:
    python detect_stl.py scan.stl
    python detect_stl.py scan.ply --min-confidence 0.7 --no-icp
    python detect_stl.py scan.stl --json > detections.json
"""

import argparse
import json
import sys
from pathlib import Path

from loguru import logger

from config.version import APP_NAME, VERSION_FULL


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Detect primitive shapes in a scanned mesh")
    parser.add_argument("mesh", type=Path, help="Mesh-Datei (STL, PLY, OBJ, VTK)")
    parser.add_argument("--min-confidence", type=float, default=None,
                        help="Mindest-Confidence 0.0 - 1.0 (Standard 0.6)")
    parser.add_argument("--no-icp", action="store_true", help="ICP-Registrierung deaktivieren")
    parser.add_argument("--no-curvature", action="store_true", help="Krümmungs-Analyse deaktivieren")
    parser.add_argument("--no-features", action="store_true", help="Feature-Heuristik deaktivieren")
    parser.add_argument("--rigid-icp", action="store_true",
                        help="ICP mit Rotation (Kabsch) statt nur Translation")
    parser.add_argument("--json", action="store_true", help="Ausgabe als JSON")
    parser.add_argument("--debug", action="store_true", help="Per-Cluster Debug-Logging")
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {VERSION_FULL}")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, format="<level>{level: <8}</level> | {message}",
               level="DEBUG" if args.debug else "INFO")

    import pyvista as pv

    from config import cluster_radius, get_all_flags, icp_tolerance, merge_distance, set_flag
    from shapedetector import DetectionOptions, GeometryDetector, extract_bounds, extract_points
    from shapedetector.results import DetectionResults

    if args.debug:
        set_flag("detection_debug", True)
    if args.rigid_icp:
        set_flag("icp_rigid_rotation", True)
    if args.debug:
        logger.debug(f"Feature-Flags: {get_all_flags()}")
        logger.debug(f"Toleranzen: cluster_radius={cluster_radius()}, "
                     f"merge_distance={merge_distance()}, icp_tolerance={icp_tolerance()}")

    if not args.mesh.exists():
        logger.error(f"{args.mesh} nicht gefunden")
        return 1

    try:
        mesh = pv.read(str(args.mesh))
    except Exception as e:
        logger.error(f"Laden fehlgeschlagen: {e}")
        return 1

    bounds = extract_bounds(mesh, extract_points(mesh))
    if bounds is not None:
        logger.info(f"Mesh: {mesh.n_points} Punkte, Größe {tuple(round(v, 2) for v in bounds.size)}")

    option_values = {
        "use_icp": not args.no_icp,
        "use_curvature_analysis": not args.no_curvature,
        "use_feature_extraction": not args.no_features,
    }
    if args.min_confidence is not None:
        option_values["min_confidence"] = args.min_confidence
    try:
        options = DetectionOptions.from_mapping(option_values)
    except ValueError as e:
        logger.error(str(e))
        return 2

    results = DetectionResults(GeometryDetector().detect(mesh, options))

    if args.json:
        print(json.dumps(results.to_dicts(), indent=2))
        return 0

    print(f"\n{results.summary()}")
    for d in results:
        cx, cy, cz = d.center
        sx, sy, sz = d.scale
        print(f"  {d.id:<12} {d.kind.value:<9} conf={d.confidence:.2f} "
              f"center=({cx:.2f}, {cy:.2f}, {cz:.2f}) "
              f"scale=({sx:.2f}, {sy:.2f}, {sz:.2f}) [{d.algorithm.value}]")
    return 0


if __name__ == "__main__":
    sys.exit(main())
