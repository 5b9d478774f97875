"""Tests für die ICP-Registrierung."""

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from config.feature_flags import set_flag
from shapedetector.base import DetectionAlgorithm, ShapeKind
from shapedetector.icp_registrator import (
    IcpRegistrator, IcpResult, dominant_axis, kabsch, stride_sample
)
from shape_samples import cube_surface, fibonacci_sphere


class TestHelpers:

    def test_stride_sample(self):
        points = np.arange(3000).reshape(1000, 3)
        sampled = stride_sample(points, 500)
        assert len(sampled) == 500
        np.testing.assert_array_equal(sampled[1], points[2])
        assert stride_sample(points, 2000) is points

    def test_kabsch_recovers_rotation(self):
        source = cube_surface(per_side=4, half=2.0)
        R = Rotation.from_euler('xyz', [0.3, -0.2, 0.5]).as_matrix()
        t = np.array([1.0, -4.0, 2.5])
        target = source @ R.T + t

        R_est, t_est = kabsch(source, target)
        np.testing.assert_allclose(R_est, R, atol=1e-9)
        np.testing.assert_allclose(t_est, t, atol=1e-9)
        assert np.linalg.det(R_est) == pytest.approx(1.0)

    @pytest.mark.parametrize("extents, axis", [
        ([8.0, 2.0, 2.0], 0),
        ([2.0, 8.0, 2.0], 1),
        ([2.0, 2.0, 8.0], 2),
        ([4.0, 4.0, 1.0], 2),
        ([1.0, 4.0, 4.0], 0),
        ([2.0, 2.0, 2.0], 2),
    ])
    def test_dominant_axis(self, extents, axis):
        assert dominant_axis(np.array(extents)) == axis


class TestRegister:

    def test_recovers_translation(self, reference_library):
        shift = np.array([3.0, -2.0, 1.5])
        target = fibonacci_sphere(500) + shift
        result = IcpRegistrator().register(target, reference_library[ShapeKind.SPHERE])

        assert result.converged
        assert result.error < 0.15
        np.testing.assert_allclose(result.reference_origin, shift, atol=0.05)
        np.testing.assert_allclose(result.rotation, np.eye(3))
        np.testing.assert_allclose(result.transform[:3, 3], result.translation)

    def test_iteration_budget_is_not_convergence(self, reference_library):
        registrator = IcpRegistrator(max_iterations=1)
        result = registrator.register(fibonacci_sphere(500), reference_library[ShapeKind.SPHERE])
        assert result.iterations == 1
        assert not result.converged

    def test_translation_only_keeps_identity(self):
        reference = cube_surface()
        Rz = Rotation.from_euler('z', 5, degrees=True).as_matrix()
        target = reference @ Rz.T + np.array([10.0, 0.0, 0.0])

        result = IcpRegistrator(rigid_rotation=False).register(target, reference)
        np.testing.assert_allclose(result.rotation, np.eye(3))
        assert result.error > 0.1

    def test_rigid_rotation_recovers_small_rotation(self):
        reference = cube_surface()
        Rz = Rotation.from_euler('z', 5, degrees=True).as_matrix()
        target = reference @ Rz.T + np.array([10.0, 0.0, 0.0])

        result = IcpRegistrator(rigid_rotation=True).register(target, reference)
        assert result.converged
        assert result.error < 1e-6
        np.testing.assert_allclose(result.rotation, Rz.T, atol=1e-6)
        np.testing.assert_allclose(result.reference_origin, [10.0, 0.0, 0.0], atol=1e-6)

    def test_rigid_rotation_from_feature_flag(self):
        assert not IcpRegistrator()._use_rigid()
        set_flag("icp_rigid_rotation", True)
        assert IcpRegistrator()._use_rigid()
        assert not IcpRegistrator(rigid_rotation=False)._use_rigid()


class TestRegisterCluster:

    def test_place_reference_aligns_axis(self, reference_library):
        registrator = IcpRegistrator()
        half_extents = np.array([4.0, 1.0, 1.0])
        placed, alignment = registrator.place_reference(
            ShapeKind.CYLINDER, reference_library[ShapeKind.CYLINDER], half_extents
        )
        np.testing.assert_allclose(alignment @ [0, 0, 1], [1, 0, 0], atol=1e-12)
        np.testing.assert_allclose(np.abs(placed).max(axis=0), half_extents, atol=0.05)

        # Nicht-axiale Primitive werden nur skaliert
        placed, alignment = registrator.place_reference(
            ShapeKind.CUBE, reference_library[ShapeKind.CUBE], half_extents
        )
        np.testing.assert_array_equal(alignment, np.eye(3))
        np.testing.assert_allclose(np.abs(placed).max(axis=0), half_extents)

    def test_sphere_cluster(self, reference_library, make_cluster):
        center = np.array([20.0, 5.0, -3.0])
        cluster = make_cluster(fibonacci_sphere(2000, radius=1.0, center=center))
        detections = IcpRegistrator().register_cluster(cluster, reference_library)

        assert len(detections) == 1
        d = detections[0]
        assert d.kind is ShapeKind.SPHERE
        assert d.algorithm is DetectionAlgorithm.ICP
        assert d.confidence > 0.95
        np.testing.assert_allclose(d.center, center, atol=0.05)
        np.testing.assert_allclose(d.scale, (1, 1, 1), atol=0.01)
        np.testing.assert_allclose(d.rotation, (0, 0, 0), atol=1e-9)

    def test_all_references_when_flag_disabled(self, reference_library, make_cluster):
        set_flag("detection_best_archetype_only", False)
        cluster = make_cluster(fibonacci_sphere(2000))
        detections = IcpRegistrator().register_cluster(cluster, reference_library)
        kinds = [d.kind for d in detections]
        assert ShapeKind.SPHERE in kinds
        assert len(kinds) == len(set(kinds))
        assert all(0.0 <= d.confidence <= 1.0 for d in detections)

    def test_error_gate(self, reference_library, make_cluster):
        cluster = make_cluster(fibonacci_sphere(2000))
        registrator = IcpRegistrator(max_error=1e-6)
        assert registrator.register_cluster(cluster, reference_library) == []

    def test_too_few_points(self, reference_library, make_cluster):
        cluster = make_cluster(fibonacci_sphere(49))
        assert IcpRegistrator().register_cluster(cluster, reference_library) == []


class ScriptedRegistrator(IcpRegistrator):
    """Liefert pro Referenz-Art ein vorgegebenes Ergebnis statt echter ICP-Läufe."""

    def __init__(self, outcomes):
        super().__init__()
        self.outcomes = outcomes
        self._kind = None

    def place_reference(self, kind, sample, half_extents):
        self._kind = kind
        return super().place_reference(kind, sample, half_extents)

    def register(self, target, reference):
        error, converged = self.outcomes[self._kind]
        return IcpResult(
            transform=np.eye(4), rotation=np.eye(3), translation=np.zeros(3),
            error=error, iterations=50 if not converged else 3, converged=converged,
        )


class TestRunSelection:

    def test_best_converged_run_wins(self, reference_library, make_cluster):
        registrator = ScriptedRegistrator({
            ShapeKind.SPHERE: (0.05, False),  # kleinster Fehler, Budget ausgeschöpft
            ShapeKind.CYLINDER: (0.6, True),
            ShapeKind.CUBE: (0.3, True),
            ShapeKind.CONE: (2.0, True),
        })
        cluster = make_cluster(fibonacci_sphere(200))
        detections = registrator.register_cluster(cluster, reference_library)

        assert [d.kind for d in detections] == [ShapeKind.CUBE]
        assert detections[0].confidence == pytest.approx(0.97)

    def test_no_run_passes_gate(self, reference_library, make_cluster):
        registrator = ScriptedRegistrator({
            ShapeKind.SPHERE: (0.05, False),
            ShapeKind.CYLINDER: (1.0, True),
            ShapeKind.CUBE: (3.0, True),
            ShapeKind.CONE: (0.2, False),
        })
        cluster = make_cluster(fibonacci_sphere(200))
        assert registrator.register_cluster(cluster, reference_library) == []

    def test_all_passing_runs_when_flag_disabled(self, reference_library, make_cluster):
        set_flag("detection_best_archetype_only", False)
        registrator = ScriptedRegistrator({
            ShapeKind.SPHERE: (0.05, False),
            ShapeKind.CYLINDER: (0.6, True),
            ShapeKind.CUBE: (0.3, True),
            ShapeKind.CONE: (2.0, True),
        })
        cluster = make_cluster(fibonacci_sphere(200))
        kinds = {d.kind for d in registrator.register_cluster(cluster, reference_library)}
        assert kinds == {ShapeKind.CYLINDER, ShapeKind.CUBE}
