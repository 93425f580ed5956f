"""
QTI Parser Factory

Selects the parser for a QTI version, either by explicit version or by
sniffing the content.
"""

import logging
from typing import Dict, List, Optional, Union

from ..config import Config
from ..errors import UnsupportedVersionError
from ..models.qti_versions import QTIVersion
from .qti_parser import QTIParser
from .versions import PROFILES

logger = logging.getLogger(__name__)

# Checked in order; the first substring found decides the version
VERSION_MARKERS = (
    ('imsqti_v3p0', QTIVersion.QTI_30),
    ('imsqti_v2p1', QTIVersion.QTI_21),
    ('qti-3-0', QTIVersion.QTI_30),
)


class QTIParserFactory:
    """Registry of one parser per QTI version, in registration order"""

    def __init__(self, default_version: Optional[Union[QTIVersion, str]] = None):
        self._parsers: Dict[QTIVersion, QTIParser] = {
            version: QTIParser(profile) for version, profile in PROFILES.items()
        }
        self.default_version = self._coerce(default_version or Config.DEFAULT_QTI_VERSION)

    def _coerce(self, version: Union[QTIVersion, str]) -> QTIVersion:
        try:
            return QTIVersion.coerce(version)
        except ValueError:
            raise UnsupportedVersionError(f"No parser available for QTI version {version}") from None

    def get_parser(self, version: Union[QTIVersion, str]) -> QTIParser:
        """
        Parser for an explicit version

        Raises:
            UnsupportedVersionError: if no parser is registered for version
        """
        parser = self._parsers.get(self._coerce(version))
        if parser is None:
            raise UnsupportedVersionError(f"No parser available for QTI version {version}")
        return parser

    def detect_version(self, content: str) -> Optional[QTIVersion]:
        """Version named by a marker substring, or None"""
        for marker, version in VERSION_MARKERS:
            if marker in (content or ''):
                return version
        return None

    def get_parser_from_xml(self, content: str) -> QTIParser:
        """
        Pick a parser by looking at the content

        Version markers decide first, then each parser's is_compatible in
        registration order, then the configured default version.
        """
        detected = self.detect_version(content)
        if detected is not None:
            return self.get_parser(detected)

        for parser in self._parsers.values():
            if parser.is_compatible(content):
                return parser

        logger.debug(f"No QTI version marker found, defaulting to {self.default_version}")
        return self.get_parser(self.default_version)

    def get_all_parsers(self) -> Dict[QTIVersion, QTIParser]:
        return dict(self._parsers)

    def get_supported_versions(self) -> List[QTIVersion]:
        return list(self._parsers)


parser_factory = QTIParserFactory()


def get_parser(version: Union[QTIVersion, str]) -> QTIParser:
    return parser_factory.get_parser(version)


def get_parser_from_xml(content: str) -> QTIParser:
    return parser_factory.get_parser_from_xml(content)
