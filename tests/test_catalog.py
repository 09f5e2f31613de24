"""
==============================================================================
Device Catalog Tests
==============================================================================
"""

import pytest

from livescan.devices.catalog import DeviceCatalog, pick_preferred
from livescan.devices.models import CaptureDevice, StreamConstraints


class TestDeviceCatalog:
    """Tests for enumeration and selection."""

    def test_enumerate(self, provider):
        devices = DeviceCatalog(provider).enumerate()
        assert devices == [
            CaptureDevice(id="cam1", label="Front Camera"),
            CaptureDevice(id="cam2", label="Back Camera"),
        ]

    def test_filters_blank_and_duplicate_ids(self, provider):
        provider.devices = [
            {"id": "", "label": "Ghost"},
            {"id": "  ", "label": "Whitespace"},
            {"label": "No id"},
            {"id": "cam1", "label": "First"},
            {"id": "cam1", "label": "Again"},
        ]
        devices = DeviceCatalog(provider).enumerate()
        assert [d.id for d in devices] == ["cam1"]
        assert devices[0].label == "First"

    def test_fills_blank_labels(self, provider):
        provider.devices = [{"id": "0123456789abcdef", "label": ""}]
        devices = DeviceCatalog(provider).enumerate()
        assert devices[0].label == "Camera 01234567"

    def test_permission_error_returns_empty(self, provider):
        provider.list_error = PermissionError("not yet granted")
        catalog = DeviceCatalog(provider)
        assert catalog.enumerate() == []
        assert catalog.devices == []

    def test_other_errors_return_empty(self, provider):
        provider.list_error = RuntimeError("backend exploded")
        assert DeviceCatalog(provider).enumerate() == []

    def test_devices_keeps_last_enumeration(self, provider):
        catalog = DeviceCatalog(provider)
        catalog.enumerate()
        provider.devices = []
        assert len(catalog.devices) == 2
        assert catalog.enumerate() == []
        assert catalog.devices == []

    def test_preferred_uses_last_enumeration(self, provider):
        catalog = DeviceCatalog(provider)
        catalog.enumerate()
        assert catalog.preferred() == "cam2"

    def test_resolve(self, provider):
        catalog = DeviceCatalog(provider)
        devices = catalog.enumerate()
        assert catalog.resolve("cam1", devices) == "cam1"
        assert catalog.resolve("not-listed", devices) == "not-listed"
        assert catalog.resolve(None, devices) == "cam2"
        assert catalog.resolve(None, []) is None


class TestPickPreferred:
    """Tests for rear camera preference."""

    @pytest.mark.parametrize("label", [
        "Back Camera",
        "camera2 1, facing back",
        "Rear wide",
        "Câmera traseira",
        "Environment facing",
    ])
    def test_prefers_rear_labels(self, label):
        devices = [CaptureDevice(id="front", label="Front"), CaptureDevice(id="rear", label=label)]
        assert pick_preferred(devices) == "rear"

    def test_falls_back_to_first(self):
        devices = [CaptureDevice(id="a", label="USB Webcam"), CaptureDevice(id="b", label="HD Camera")]
        assert pick_preferred(devices) == "a"

    def test_empty(self):
        assert pick_preferred([]) is None


class TestStreamConstraints:
    """Tests for stream constraint defaults."""

    def test_defaults(self):
        constraints = StreamConstraints()
        assert (constraints.width, constraints.height) == (1280, 720)
        assert constraints.aspect_ratio == pytest.approx(16 / 9)
        assert constraints.facing_mode == "environment"
        assert constraints.device_id is None

    def test_for_device(self):
        constraints = StreamConstraints(width=640, height=480)
        pinned = constraints.for_device("cam1")
        assert pinned.device_id == "cam1"
        assert pinned.width == 640
        assert constraints.device_id is None
