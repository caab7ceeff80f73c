import xml.etree.ElementTree as ET

import pytest

from backends.escl_backend import (
    PWG_NS,
    SCAN_NS,
    InputSource,
    ScanSettings,
    build_scan_settings,
    document_format_for,
    is_multi_document,
)


def _find_all(xml, ns, tag):
    root = ET.fromstring(xml)
    return root.findall(f"{{{ns}}}{tag}")


@pytest.mark.parametrize("source,resolution,fmt,color_mode", [
    ("Platen", "300", "application/pdf", "RGB24"),
    ("Feeder", "600", "application/jpg", "Grayscale8"),
    ("Feeder", "75", "image/jpeg", "BlackAndWhite1"),
])
def test_fields_appear_once_verbatim(source, resolution, fmt, color_mode):
    xml = build_scan_settings(source, resolution, fmt, color_mode)

    sources = _find_all(xml, PWG_NS, "InputSource")
    formats = _find_all(xml, PWG_NS, "DocumentFormat")
    assert [e.text for e in sources] == [source]
    assert [e.text for e in formats] == [fmt]
    assert _find_all(xml, PWG_NS, "DocumentFormatExt") == []
    assert [e.text for e in _find_all(xml, SCAN_NS, "ColorMode")] == [color_mode]
    assert [e.text for e in _find_all(xml, SCAN_NS, "XResolution")] == [resolution]
    assert [e.text for e in _find_all(xml, SCAN_NS, "YResolution")] == [resolution]


def test_extended_format_adds_document_format_ext():
    xml = build_scan_settings("Platen", "300", "application/pdf", "RGB24", extended_format=True)

    ext = _find_all(xml, PWG_NS, "DocumentFormatExt")
    assert [e.text for e in ext] == ["application/pdf"]
    assert len(_find_all(xml, PWG_NS, "DocumentFormat")) == 1


def test_extended_format_false_still_counts_as_present():
    xml = build_scan_settings("Platen", "300", "application/pdf", "RGB24", extended_format=False)
    assert len(_find_all(xml, PWG_NS, "DocumentFormatExt")) == 1


def test_root_declares_pwg_before_scan():
    xml = build_scan_settings("Platen", "300", "application/pdf", "RGB24")

    assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?><scan:ScanSettings')
    assert xml.index('xmlns:pwg="') < xml.index('xmlns:scan="')
    assert ET.fromstring(xml).tag == f"{{{SCAN_NS}}}ScanSettings"


def test_fixed_letter_scan_region():
    xml = build_scan_settings("Platen", "300", "application/pdf", "RGB24")
    region = ET.fromstring(xml).find(f"{{{PWG_NS}}}ScanRegions/{{{PWG_NS}}}ScanRegion")

    assert region.find(f"{{{PWG_NS}}}Width").text == "2550"
    assert region.find(f"{{{PWG_NS}}}Height").text == "3507"
    assert region.find(f"{{{PWG_NS}}}XOffset").text == "0"
    assert region.find(f"{{{PWG_NS}}}YOffset").text == "0"


def test_enum_source_is_written_as_value():
    xml = build_scan_settings(InputSource.FEEDER, "300", "application/pdf", "RGB24")
    assert "<pwg:InputSource>Feeder</pwg:InputSource>" in xml


def test_scan_settings_to_xml_matches_builder():
    settings = ScanSettings(InputSource.PLATEN, "300", "application/pdf")
    assert settings.to_xml() == build_scan_settings("Platen", "300", "application/pdf", "RGB24")


def test_document_format_for():
    assert document_format_for("pdf") == "application/pdf"
    assert document_format_for("jpg") == "application/jpg"
    assert document_format_for("image/jpeg") == "image/jpeg"


def test_multi_document_only_for_feeder_images():
    assert is_multi_document("Feeder", "application/jpg")
    assert is_multi_document(InputSource.FEEDER, "image/jpeg")
    assert not is_multi_document("Feeder", "application/pdf")
    assert not is_multi_document("Platen", "application/jpg")
