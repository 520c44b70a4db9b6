"""Unit tests for srmeasure.codec — labels, setup data and group decoding."""
from __future__ import annotations

import pytest

from srmeasure import codes
from srmeasure.adapters import LengthAdapter, ProbeAdapter
from srmeasure.codec import (
    DecodeContext,
    decode_measurement_group,
    derive_label,
    encode_label,
    encode_measurement_group,
    get_setup_measurement_data,
    resolve_adapter,
    tracking_identifier_of,
    tracking_unique_identifier_of,
)
from srmeasure.errors import UnresolvedAdapterError
from srmeasure.templates import LengthRepresentation, RepresentationArguments, measurement_group
from srmeasure.tree.nodes import Code, ContentNode, ReferencedSOP, RelationshipType, code_item

CT_IMAGE_STORAGE = "1.2.840.10008.5.1.4.1.1.2"
_MASS = Code("SCT", "4147007", "Mass")
_LIVER = Code("SCT", "10200004", "Liver")


def _length_group(
    sop_instance_uid: str,
    finding: Code | None = None,
    finding_sites: tuple[Code, ...] = (),
    tracking_identifier: str = "Cornerstone3DTools@^0.1.0:Length",
) -> ContentNode:
    arguments = RepresentationArguments(
        points=((0.0, 0.0), (3.0, 4.0)),
        tracking_identifier=tracking_identifier,
        finding=finding,
        finding_sites=finding_sites,
        value=5.0,
        referenced_sop=ReferencedSOP(CT_IMAGE_STORAGE, sop_instance_uid),
    )
    return measurement_group(LengthRepresentation(arguments), "1.2.3.100")


@pytest.fixture()
def context(registry, image_id_map, image_to_world, metadata) -> DecodeContext:
    return DecodeContext(
        registry=registry,
        image_id_map=image_id_map,
        image_to_world=image_to_world,
        metadata=metadata,
    )


# ===========================================================================
# Labels
# ===========================================================================


class TestDeriveLabel:
    def test_no_free_text_gives_empty_label(self) -> None:
        assert derive_label(_MASS, [_LIVER]) == ""

    def test_free_text_finding(self) -> None:
        assert derive_label(codes.free_text_code("Lesion"), []) == "Lesion"

    def test_free_text_site_wins_over_finding(self) -> None:
        finding = codes.free_text_code("Lesion")
        sites = [_LIVER, codes.free_text_code("Site A"), codes.free_text_code("Site B")]
        assert derive_label(finding, sites) == "Site A"

    def test_none_finding(self) -> None:
        assert derive_label(None, []) == ""


class TestEncodeLabel:
    def test_empty_label_keeps_codes(self) -> None:
        assert encode_label("", _MASS, [_LIVER]) == (_MASS, (_LIVER,))

    def test_label_without_finding_becomes_finding(self) -> None:
        finding, sites = encode_label("Lesion", None, [_LIVER])
        assert finding == codes.free_text_code("Lesion")
        assert sites == (_LIVER,)

    def test_label_with_coded_finding_becomes_leading_site(self) -> None:
        finding, sites = encode_label("Lesion", _MASS, [_LIVER])
        assert finding == _MASS
        assert sites == (codes.free_text_code("Lesion"), _LIVER)

    def test_existing_matching_label_is_untouched(self) -> None:
        original = codes.free_text_code("Lesion")
        assert encode_label("Lesion", original, []) == (original, ())

    def test_stale_free_text_is_replaced(self) -> None:
        finding, sites = encode_label("New", _MASS, [codes.free_text_code("Old"), _LIVER])
        assert finding == _MASS
        assert sites == (codes.free_text_code("New"), _LIVER)

    @pytest.mark.parametrize(
        "finding, sites",
        [
            (None, ()),
            (_MASS, ()),
            (_MASS, (_LIVER,)),
            (codes.free_text_code("Old"), (codes.free_text_code("Older"),)),
        ],
    )
    def test_label_is_recoverable(self, finding, sites) -> None:
        assert derive_label(*encode_label("Target 1", finding, sites)) == "Target 1"


# ===========================================================================
# Encoding
# ===========================================================================


class TestEncodeMeasurementGroup:
    def test_uses_given_tracking_unique_identifier(
        self, make_annotation, world_to_image, sop_instance_uids
    ) -> None:
        annotation = make_annotation("Length", [(0.0, 0.0, 0.0), (3.0, 4.0, 0.0)])
        sop = ReferencedSOP(CT_IMAGE_STORAGE, sop_instance_uids["img:1"])
        group = encode_measurement_group(
            annotation, LengthAdapter(), sop, world_to_image, "1.2.3.555"
        )
        assert tracking_unique_identifier_of(group) == "1.2.3.555"
        assert tracking_identifier_of(group) == "Cornerstone3DTools@^0.1.0:Length"

    def test_generates_tracking_unique_identifier(
        self, make_annotation, world_to_image, sop_instance_uids
    ) -> None:
        annotation = make_annotation("Probe", [(1.0, 2.0, 0.0)])
        sop = ReferencedSOP(CT_IMAGE_STORAGE, sop_instance_uids["img:1"])
        first = encode_measurement_group(annotation, ProbeAdapter(), sop, world_to_image)
        second = encode_measurement_group(annotation, ProbeAdapter(), sop, world_to_image)
        assert tracking_unique_identifier_of(first)
        assert tracking_unique_identifier_of(first) != tracking_unique_identifier_of(second)


# ===========================================================================
# Setup measurement data
# ===========================================================================


class TestGetSetupMeasurementData:
    def test_image_anchoring(self, image_id_map, metadata, sop_instance_uids) -> None:
        group = _length_group(sop_instance_uids["img:1"])
        setup = get_setup_measurement_data(group, image_id_map, metadata, "Length")
        state = setup.default_state
        assert state.sop_instance_uid == sop_instance_uids["img:1"]
        assert state.annotation.metadata.referenced_image_id == "img:1"
        assert state.annotation.metadata.tool_name == "Length"
        assert setup.measured_value == 5.0

    def test_free_text_site_label(self, image_id_map, metadata, sop_instance_uids) -> None:
        group = _length_group(
            sop_instance_uids["img:1"],
            finding=codes.free_text_code("Lesion"),
            finding_sites=(codes.free_text_code("Site A"),),
        )
        state = get_setup_measurement_data(group, image_id_map, metadata, "Length").default_state
        assert state.annotation.metadata.label == "Site A"

    def test_free_text_codes_stripped_from_annotation(
        self, image_id_map, metadata, sop_instance_uids
    ) -> None:
        group = _length_group(
            sop_instance_uids["img:1"],
            finding=codes.free_text_code("Lesion"),
            finding_sites=(codes.free_text_code("Site A"), _LIVER),
        )
        state = get_setup_measurement_data(group, image_id_map, metadata, "Length").default_state
        assert state.annotation.finding is None
        assert state.annotation.finding_sites == [_LIVER]
        assert state.finding == codes.free_text_code("Lesion")
        assert len(state.finding_sites) == 2

    def test_description_is_finding_meaning(
        self, image_id_map, metadata, sop_instance_uids
    ) -> None:
        group = _length_group(sop_instance_uids["img:1"], finding=_MASS)
        state = get_setup_measurement_data(group, image_id_map, metadata, "Length").default_state
        assert state.description == "Mass"
        assert state.annotation.description == "Mass"
        assert state.annotation.finding == _MASS

    def test_legacy_finding_site_recognised(
        self, image_id_map, metadata, sop_instance_uids
    ) -> None:
        group = _length_group(sop_instance_uids["img:1"])
        legacy_site = code_item(
            codes.FINDING_SITE_OLD, _LIVER, relationship=RelationshipType.HAS_CONCEPT_MOD
        )
        group = ContentNode(
            concept=group.concept,
            value=group.value,
            relationship=group.relationship,
            children=group.children[:2] + (legacy_site,) + group.children[2:],
        )
        state = get_setup_measurement_data(group, image_id_map, metadata, "Length").default_state
        assert state.finding_sites == [_LIVER]

    def test_fresh_annotation_uid(self, image_id_map, metadata, sop_instance_uids) -> None:
        group = _length_group(sop_instance_uids["img:1"])
        first = get_setup_measurement_data(group, image_id_map, metadata, "Length")
        second = get_setup_measurement_data(group, image_id_map, metadata, "Length")
        assert (
            first.default_state.annotation.annotation_uid
            != second.default_state.annotation.annotation_uid
        )


# ===========================================================================
# Adapter resolution and decoding
# ===========================================================================


class TestResolveAdapter:
    def test_registry_lookup(self, context, sop_instance_uids) -> None:
        adapter = resolve_adapter(_length_group(sop_instance_uids["img:1"]), context)
        assert adapter.tool_type == "Length"

    def test_hook_overrides_registry(self, context, sop_instance_uids) -> None:
        calls = []

        def hook(group, document, adapters):
            calls.append(document)
            return adapters["Probe"]

        context.adapter_hook = hook
        adapter = resolve_adapter(_length_group(sop_instance_uids["img:1"]), context)
        assert adapter.tool_type == "Probe"
        assert calls == [None]

    def test_hook_returning_none_falls_through(self, context, sop_instance_uids) -> None:
        context.adapter_hook = lambda group, document, adapters: None
        adapter = resolve_adapter(_length_group(sop_instance_uids["img:1"]), context)
        assert adapter.tool_type == "Length"

    def test_unknown_identifier_raises(self, context, sop_instance_uids) -> None:
        group = _length_group(
            sop_instance_uids["img:1"], tracking_identifier="OtherViewer@2:Bidirectional"
        )
        with pytest.raises(UnresolvedAdapterError) as excinfo:
            resolve_adapter(group, context)
        assert excinfo.value.tracking_identifier == "OtherViewer@2:Bidirectional"


class TestDecodeMeasurementGroup:
    def test_decodes_length(self, context, sop_instance_uids) -> None:
        tool_type, state = decode_measurement_group(
            _length_group(sop_instance_uids["img:1"]), context
        )
        assert tool_type == "Length"
        assert state.tracking_identifier == "Cornerstone3DTools@^0.1.0:Length"
        assert state.tracking_unique_identifier == "1.2.3.100"
        assert state.annotation.data.points == [(0.0, 0.0, 0.0), (3.0, 4.0, 0.0)]
        assert state.annotation.data.cached_stats["imageId:img:1"] == {"length": 5.0}

    def test_legacy_identifier_decodes_as_length(self, context, sop_instance_uids) -> None:
        group = _length_group(
            sop_instance_uids["img:1"], tracking_identifier="cornerstoneTools@^4.0.0:Length"
        )
        tool_type, state = decode_measurement_group(group, context)
        assert tool_type == "Length"
        assert state.tracking_identifier == "cornerstoneTools@^4.0.0:Length"
