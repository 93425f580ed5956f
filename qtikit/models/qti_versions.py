"""
QTI Version Models

The closed set of QTI versions this toolkit understands, with the namespace
and schema strings each one is identified by.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Union


class QTIVersion(str, Enum):
    """Supported QTI schema generations"""
    QTI_21 = '2.1'
    QTI_30 = '3.0'

    @classmethod
    def coerce(cls, value: Union['QTIVersion', str]) -> 'QTIVersion':
        """Turn '2.1' / '3.0' (or an enum member) into a QTIVersion"""
        if isinstance(value, cls):
            return value
        return cls(str(value))

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class QTIVersionInfo:
    """Display and schema metadata for a QTI version"""
    version: QTIVersion
    name: str
    description: str
    namespace: str
    schema_location: str


QTI_VERSIONS: Dict[QTIVersion, QTIVersionInfo] = {
    QTIVersion.QTI_21: QTIVersionInfo(
        version=QTIVersion.QTI_21,
        name='QTI 2.1',
        description='Question & Test Interoperability 2.1',
        namespace='http://www.imsglobal.org/xsd/imsqti_v2p1',
        schema_location=(
            'http://www.imsglobal.org/xsd/imsqti_v2p1 '
            'http://www.imsglobal.org/xsd/qti/qtiv2p1/imsqti_v2p1.xsd'
        ),
    ),
    QTIVersion.QTI_30: QTIVersionInfo(
        version=QTIVersion.QTI_30,
        name='QTI 3.0',
        description='Question & Test Interoperability 3.0',
        namespace='http://www.imsglobal.org/xsd/imsqti_v3p0',
        schema_location=(
            'http://www.imsglobal.org/xsd/imsqti_v3p0 '
            'http://www.imsglobal.org/xsd/qti/qtiv3p0/imsqti_v3p0.xsd'
        ),
    ),
}

XSI_NAMESPACE = 'http://www.w3.org/2001/XMLSchema-instance'
