"""Unit tests for srmeasure.metadata — StaticMetadataProvider and require_module."""
from __future__ import annotations

import pytest

from srmeasure.errors import MissingMetadataError
from srmeasure.metadata import (
    FRAME_NUMBER_MODULE,
    IMAGE_PLANE_MODULE,
    INSTANCE_MODULE,
    SOP_COMMON_MODULE,
    StaticMetadataProvider,
    require_module,
)


class TestStaticMetadataProvider:
    def test_empty_provider(self) -> None:
        provider = StaticMetadataProvider()
        assert len(provider) == 0
        assert provider.get(IMAGE_PLANE_MODULE, "img:1") is None

    def test_set_and_get(self) -> None:
        provider = StaticMetadataProvider()
        provider.set(IMAGE_PLANE_MODULE, "img:1", {"frame_of_reference_uid": "1.2"})
        assert provider.get(IMAGE_PLANE_MODULE, "img:1") == {"frame_of_reference_uid": "1.2"}
        assert (IMAGE_PLANE_MODULE, "img:1") in provider

    def test_add_image_registers_every_module(self, metadata) -> None:
        for module in (IMAGE_PLANE_MODULE, SOP_COMMON_MODULE, INSTANCE_MODULE, FRAME_NUMBER_MODULE):
            assert (module, "img:1") in metadata

    def test_add_image_copies_instance(self) -> None:
        instance = {"SeriesInstanceUID": "1.2.3"}
        provider = StaticMetadataProvider()
        provider.add_image(
            "img:1",
            sop_class_uid="1.2",
            sop_instance_uid="1.2.3.4",
            frame_of_reference_uid="1.2.3.9",
            instance=instance,
        )
        instance["SeriesInstanceUID"] = "changed"
        assert provider.get(INSTANCE_MODULE, "img:1")["SeriesInstanceUID"] == "1.2.3"


class TestRequireModule:
    def test_returns_record(self, metadata) -> None:
        record = require_module(metadata, SOP_COMMON_MODULE, "img:1")
        assert record["sop_class_uid"] == "1.2.840.10008.5.1.4.1.1.2"

    def test_missing_record_raises(self, metadata) -> None:
        with pytest.raises(MissingMetadataError) as excinfo:
            require_module(metadata, SOP_COMMON_MODULE, "img:404")
        assert excinfo.value.module_name == SOP_COMMON_MODULE
        assert excinfo.value.image_id == "img:404"

    def test_missing_image_id_raises(self, metadata) -> None:
        with pytest.raises(MissingMetadataError):
            require_module(metadata, IMAGE_PLANE_MODULE, None)

    def test_is_lookup_error(self, metadata) -> None:
        with pytest.raises(LookupError):
            require_module(metadata, IMAGE_PLANE_MODULE, "img:404")
