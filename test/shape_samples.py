"""
Synthetische Scan-Punktwolken für die Detector-Tests.

Alle Generatoren sind deterministisch (keine Zufallszahlen).
"""

import numpy as np

GOLDEN_ANGLE = np.pi * (3.0 - np.sqrt(5.0))


def fibonacci_sphere(n=2000, radius=1.0, center=(0.0, 0.0, 0.0)):
    i = np.arange(n)
    z = 1.0 - 2.0 * (i + 0.5) / n
    r = np.sqrt(1.0 - z * z)
    theta = i * GOLDEN_ANGLE
    points = np.column_stack([r * np.cos(theta), r * np.sin(theta), z])
    return points * radius + np.asarray(center)


def cube_surface(per_side=5, half=4.0, center=(0.0, 0.0, 0.0)):
    """Raster auf allen 6 Seiten, per_side^2 Punkte pro Seite (Kanten doppelt)."""
    u = np.linspace(-half, half, per_side)
    uu, vv = np.meshgrid(u, u)
    uu, vv = uu.ravel(), vv.ravel()
    faces = []
    for axis in range(3):
        others = [a for a in range(3) if a != axis]
        for sign in (-1.0, 1.0):
            face = np.empty((len(uu), 3))
            face[:, axis] = sign * half
            face[:, others[0]] = uu
            face[:, others[1]] = vv
            faces.append(face)
    return np.vstack(faces) + np.asarray(center)


def cylinder_surface(rings=40, per_ring=24, radius=1.0, half_length=4.0, axis=0,
                     center=(0.0, 0.0, 0.0)):
    """Zylinder-Mantel entlang `axis` (Standard X): Extents 2L : 2R : 2R."""
    theta = np.linspace(0.0, 2.0 * np.pi, per_ring, endpoint=False)
    h = np.linspace(-half_length, half_length, rings)
    tt, hh = np.meshgrid(theta, h)
    a = radius * np.cos(tt).ravel()
    b = radius * np.sin(tt).ravel()
    hh = hh.ravel()
    others = [k for k in range(3) if k != axis]
    points = np.empty((len(hh), 3))
    points[:, axis] = hh
    points[:, others[0]] = a
    points[:, others[1]] = b
    return points + np.asarray(center)


def helix(n=60, radius=5.0, step_deg=30.0, pitch=0.1):
    """Punktfolge mit konstanter Richtungsänderung pro Schritt."""
    angles = np.radians(step_deg) * np.arange(n)
    return np.column_stack([radius * np.cos(angles), radius * np.sin(angles), pitch * np.arange(n)])


def straight_line(n=60, spacing=0.5):
    return np.column_stack([spacing * np.arange(n), np.zeros(n), np.zeros(n)])


def zigzag(n=60, amplitude=1.0, spacing=0.5):
    """Wechsel zwischen geraden und scharf geknickten Schritten (hohe Varianz)."""
    y = np.zeros(n)
    y[::4] = amplitude
    return np.column_stack([spacing * np.arange(n), y, np.zeros(n)])
