"""Coded concepts and well-known identifiers used in TID 1500 reports."""
from __future__ import annotations

from pydicom.uid import UID

from srmeasure.tree.nodes import Code

# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

MEASUREMENT_REPORT_TEMPLATE = "1500"
MAPPING_RESOURCE = "DCMR"

# Tracking identifiers are "<tag>:<tool type>" or "<tag>:<parent>:<tool type>".
TRACKING_IDENTIFIER_TAG = "Cornerstone3DTools@^0.1.0"
LEGACY_TRACKING_IDENTIFIER_TAG = "cornerstoneTools@^4.0.0"

# Tool state key for annotations anchored to a volume rather than an image.
NO_IMAGE_ID = "none"

DEFAULT_CHARACTER_SET = "ISO_IR 192"

# ---------------------------------------------------------------------------
# Concept names
# ---------------------------------------------------------------------------

FINDING = Code("DCM", "121071", "Finding")
FINDING_SITE = Code("SCT", "363698007", "Finding Site")
FINDING_SITE_OLD = Code("SRT", "G-C0E3", "Finding Site")

TRACKING_IDENTIFIER = Code("DCM", "112039", "Tracking Identifier")
TRACKING_UNIQUE_IDENTIFIER = Code("DCM", "112040", "Tracking Unique Identifier")

MEASUREMENT_REPORT = Code("DCM", "126000", "Imaging Measurement Report")
IMAGING_MEASUREMENTS = Code("DCM", "126010", "Imaging Measurements")
MEASUREMENT_GROUP = Code("DCM", "125007", "Measurement Group")
IMAGE_LIBRARY = Code("DCM", "111028", "Image Library")
IMAGE_LIBRARY_GROUP = Code("DCM", "126200", "Image Library Group")

LANGUAGE_OF_CONTENT = Code("DCM", "121049", "Language of Content Item and Descendants")
ENGLISH_US = Code("RFC5646", "en-US", "English (United States)")
PROCEDURE_REPORTED = Code("DCM", "121058", "Procedure reported")
IMAGING_PROCEDURE = Code("SCT", "363679005", "Imaging procedure")

LENGTH = Code("SCT", "410668003", "Length")
MILLIMETER = Code("UCUM", "mm", "millimeter")

# Text entered by the user rather than picked from a terminology.
FREE_TEXT = Code("CORNERSTONEJS", "CORNERSTONEFREETEXT", "CORNERSTONEFREETEXT")


def free_text_code(meaning: str) -> Code:
    """Return a free-text code carrying user-entered ``meaning``."""
    return FREE_TEXT.with_meaning(meaning)


def is_free_text(code: Code | None) -> bool:
    return code is not None and code.value == FREE_TEXT.value


# ---------------------------------------------------------------------------
# SOP classes
# ---------------------------------------------------------------------------

COMPREHENSIVE_SR_STORAGE = UID("1.2.840.10008.5.1.4.1.1.88.33")
COMPREHENSIVE_3D_SR_STORAGE = UID("1.2.840.10008.5.1.4.1.1.88.34")

MULTIFRAME_SOP_CLASS_UIDS = frozenset(
    UID(uid)
    for uid in (
        "1.2.840.10008.5.1.4.1.1.2.1",  # Enhanced CT
        "1.2.840.10008.5.1.4.1.1.2.2",  # Legacy Converted Enhanced CT
        "1.2.840.10008.5.1.4.1.1.3.1",  # Ultrasound Multi-frame
        "1.2.840.10008.5.1.4.1.1.4.1",  # Enhanced MR
        "1.2.840.10008.5.1.4.1.1.4.3",  # Enhanced MR Color
        "1.2.840.10008.5.1.4.1.1.4.4",  # Legacy Converted Enhanced MR
        "1.2.840.10008.5.1.4.1.1.6.2",  # Enhanced US Volume
        "1.2.840.10008.5.1.4.1.1.7.1",  # Multi-frame Single Bit SC
        "1.2.840.10008.5.1.4.1.1.7.2",  # Multi-frame Grayscale Byte SC
        "1.2.840.10008.5.1.4.1.1.7.3",  # Multi-frame Grayscale Word SC
        "1.2.840.10008.5.1.4.1.1.7.4",  # Multi-frame True Color SC
        "1.2.840.10008.5.1.4.1.1.12.1.1",  # Enhanced XA
        "1.2.840.10008.5.1.4.1.1.12.2.1",  # Enhanced XRF
        "1.2.840.10008.5.1.4.1.1.13.1.1",  # X-Ray 3D Angiographic
        "1.2.840.10008.5.1.4.1.1.13.1.3",  # Breast Tomosynthesis
        "1.2.840.10008.5.1.4.1.1.20",  # Nuclear Medicine
        "1.2.840.10008.5.1.4.1.1.77.1.6",  # VL Whole Slide Microscopy
        "1.2.840.10008.5.1.4.1.1.128.1",  # Legacy Converted Enhanced PET
        "1.2.840.10008.5.1.4.1.1.130",  # Enhanced PET
    )
)


def is_multiframe_sop_class_uid(sop_class_uid: str | None) -> bool:
    return sop_class_uid in MULTIFRAME_SOP_CLASS_UIDS
