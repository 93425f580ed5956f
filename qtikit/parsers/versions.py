"""
QTI Version Profiles

Everything that differs between QTI 2.1 and QTI 3.0 parsing, captured as one
immutable record per version. The single QTIParser engine reads its
behaviour from these records.
"""

from dataclasses import dataclass
from typing import Dict, Tuple

from ..models.qti_versions import QTIVersion, QTI_VERSIONS
from ..utils.qti_templates import (
    ITEM_TYPE_LABELS,
    ITEM_TYPE_COLORS,
    XML_DECLARATION,
    render_item_template,
)


@dataclass(frozen=True)
class VersionProfile:
    version: QTIVersion
    namespace: str
    schema_location: str
    # Substrings that identify content written for this version
    compatibility_markers: Tuple[str, ...]
    # element local name -> description, tallied as unsupported when seen
    unsupported_elements: Dict[str, str]
    supported_item_types: Tuple[str, ...]
    item_type_labels: Dict[str, str]
    item_type_colors: Dict[str, str]
    blank_template: str
    no_items_message: str
    accepts_json: bool = False
    parses_assessment_test: bool = False
    # QTI 3.0 correct-response and reorder edits are not implemented yet
    supports_item_mutations: bool = True


def _blank_template(version: QTIVersion) -> str:
    item = render_item_template(
        'choice',
        item_id='sample-item',
        version=version,
        title=f"New QTI {version.value} Item",
    )
    return f"{XML_DECLARATION}\n{item}"


QTI21_UNSUPPORTED = {
    'extendedTextInteraction': 'Extended text input fields',
    'orderInteraction': 'Drag and drop ordering',
    'associateInteraction': 'Association/matching pairs',
    'matchInteraction': 'Matrix matching questions',
    'gapMatchInteraction': 'Gap matching with draggable items',
    'inlineChoiceInteraction': 'Inline dropdown selections',
    'textEntryInteraction': 'Text entry fields',
    'hottextInteraction': 'Hottext selection',
    'hotspotInteraction': 'Image hotspot clicking',
    'graphicOrderInteraction': 'Graphic ordering tasks',
    'graphicAssociateInteraction': 'Graphic association tasks',
    'graphicGapMatchInteraction': 'Graphic gap matching',
    'positionObjectInteraction': 'Object positioning',
    'sliderInteraction': 'Slider controls',
    'drawingInteraction': 'Drawing/sketching',
    'uploadInteraction': 'File upload questions',
    'customInteraction': 'Custom interaction elements',
    'modalFeedback': 'Modal feedback elements',
    'outcomeProcessing': 'Outcome processing rules',
}

QTI30_UNSUPPORTED = {
    'associateInteraction': 'Association/matching pairs',
    'matchInteraction': 'Matrix matching questions',
    'gapMatchInteraction': 'Gap matching with draggable items',
    'inlineChoiceInteraction': 'Inline dropdown selections',
    'hotspotInteraction': 'Image hotspot clicking',
    'graphicOrderInteraction': 'Graphic ordering tasks',
    'graphicAssociateInteraction': 'Graphic association tasks',
    'graphicGapMatchInteraction': 'Graphic gap matching',
    'positionObjectInteraction': 'Object positioning',
    'drawingInteraction': 'Drawing/sketching',
    'uploadInteraction': 'File upload questions',
    'mediaInteraction': 'Media interaction elements',
    'customInteraction': 'Custom interaction elements',
    'assessmentItemRef': 'External item references',
}

BASE_ITEM_TYPES = ('choice', 'multipleResponse', 'textEntry', 'extendedText', 'hottext', 'slider', 'order')


QTI21_PROFILE = VersionProfile(
    version=QTIVersion.QTI_21,
    namespace=QTI_VERSIONS[QTIVersion.QTI_21].namespace,
    schema_location=QTI_VERSIONS[QTIVersion.QTI_21].schema_location,
    compatibility_markers=('imsqti_v2p1', 'qtiv2p1'),
    unsupported_elements=QTI21_UNSUPPORTED,
    supported_item_types=BASE_ITEM_TYPES,
    item_type_labels=dict(ITEM_TYPE_LABELS),
    item_type_colors=dict(ITEM_TYPE_COLORS),
    blank_template=_blank_template(QTIVersion.QTI_21),
    no_items_message='No assessment items found in the QTI file',
)

QTI30_PROFILE = VersionProfile(
    version=QTIVersion.QTI_30,
    namespace=QTI_VERSIONS[QTIVersion.QTI_30].namespace,
    schema_location=QTI_VERSIONS[QTIVersion.QTI_30].schema_location,
    compatibility_markers=('imsqti_v3p0', 'qtiv3p0', 'qti-3-0'),
    unsupported_elements=QTI30_UNSUPPORTED,
    supported_item_types=BASE_ITEM_TYPES + ('match', 'associate'),
    item_type_labels={
        **ITEM_TYPE_LABELS,
        'match': 'Match Interaction',
        'associate': 'Associate Interaction',
    },
    item_type_colors={
        **ITEM_TYPE_COLORS,
        'match': 'primary',
        'associate': 'secondary',
    },
    blank_template=_blank_template(QTIVersion.QTI_30),
    no_items_message='No assessment items found in the QTI 3.0 file',
    accepts_json=True,
    parses_assessment_test=True,
    supports_item_mutations=False,
)

PROFILES: Dict[QTIVersion, VersionProfile] = {
    QTIVersion.QTI_21: QTI21_PROFILE,
    QTIVersion.QTI_30: QTI30_PROFILE,
}
