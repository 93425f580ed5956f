from __future__ import annotations

import json

import pytest

from qtikit.errors import UnsupportedVersionError
from qtikit.models.qti_versions import QTIVersion
from qtikit.parsers.factory import QTIParserFactory, get_parser, get_parser_from_xml


def test_get_parser_accepts_enum_and_string():
    assert get_parser("2.1").version is QTIVersion.QTI_21
    assert get_parser(QTIVersion.QTI_30).version is QTIVersion.QTI_30
    assert get_parser("3.0") is get_parser(QTIVersion.QTI_30)


@pytest.mark.parametrize("version", ["1.2", "", "v3"])
def test_unknown_version_raises(version):
    with pytest.raises(UnsupportedVersionError, match="No parser available for QTI version"):
        get_parser(version)


def test_v3_marker_wins_even_in_broken_content():
    content = '<assessmentItem xmlns="http://www.imsglobal.org/xsd/imsqti_v3p0" <<< not xml'
    assert get_parser_from_xml(content).version is QTIVersion.QTI_30


def test_v2_marker():
    content = '<assessmentItem xmlns="http://www.imsglobal.org/xsd/imsqti_v2p1"/>'
    assert get_parser_from_xml(content).version is QTIVersion.QTI_21


def test_kebab_marker_detects_v3():
    assert get_parser_from_xml('<qti-assessment-item xmlns="urn:qti-3-0"/>').version is QTIVersion.QTI_30


def test_json_content_falls_through_to_v3_compatibility():
    content = json.dumps({"@type": "assessmentItem", "identifier": "x"})
    assert get_parser_from_xml(content).version is QTIVersion.QTI_30


def test_unmarked_content_uses_default_version():
    assert QTIParserFactory(default_version="2.1").get_parser_from_xml("<assessmentItem/>").version is QTIVersion.QTI_21
    assert QTIParserFactory(default_version="3.0").get_parser_from_xml("<assessmentItem/>").version is QTIVersion.QTI_30


def test_invalid_default_version_raises():
    with pytest.raises(UnsupportedVersionError):
        QTIParserFactory(default_version="9.9")


def test_detect_version():
    factory = QTIParserFactory()
    assert factory.detect_version("...imsqti_v2p1...imsqti_v3p0...") is QTIVersion.QTI_30
    assert factory.detect_version("plain") is None
    assert factory.detect_version(None) is None


def test_registry_listing():
    factory = QTIParserFactory()
    assert factory.get_supported_versions() == [QTIVersion.QTI_21, QTIVersion.QTI_30]
    assert set(factory.get_all_parsers()) == {QTIVersion.QTI_21, QTIVersion.QTI_30}
