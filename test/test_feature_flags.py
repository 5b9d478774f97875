"""
Feature Flags Tests - Tests für das Feature Flag System
"""

import pytest
from config.feature_flags import (
    is_enabled,
    set_flag,
    get_all_flags,
    FEATURE_FLAGS
)


class TestFeatureFlagsBasic:
    """Tests für grundlegende Feature Flag Funktionalität."""

    def test_defaults(self):
        assert is_enabled("detection_best_archetype_only") is True
        assert is_enabled("icp_rigid_rotation") is False
        assert is_enabled("detection_debug") is False

    def test_is_enabled_nonexistent_flag(self):
        """Test: Nicht existierendes Flag gibt False zurück."""
        assert is_enabled("nonexistent_flag_xyz123") is False

    def test_get_all_flags_returns_copy(self):
        """Test: get_all_flags gibt eine Kopie zurück."""
        flags = get_all_flags()
        flags["new_flag"] = True

        assert "new_flag" not in FEATURE_FLAGS

    def test_set_flag_runtime(self):
        set_flag("icp_rigid_rotation", True)
        assert is_enabled("icp_rigid_rotation") is True

    def test_isolation_resets_flags(self):
        """Vorheriger Test darf nicht leaken (conftest Isolation)."""
        assert is_enabled("icp_rigid_rotation") is False
