import os

import pytest

from fuel_planner.errors import (
    EmptyTrackError,
    MalformedInputError,
    MissingRootError,
    UnsafeDocumentError,
    UnsupportedVersionError,
)
from fuel_planner.parser import (
    DEFAULT_ROUTE_NAME,
    MAX_NAME_LENGTH,
    load_gpx_upload,
    parse_gpx,
    parse_gpx_text,
    sanitize_name,
)

SAMPLE_GPX_PATH = os.path.join(
    os.path.dirname(__file__), "..", "functional", "data", "sample_ride.gpx"
)


def _gpx(body: str, version: str = "1.1", name: str = "") -> str:
    metadata = f"<metadata><name>{name}</name></metadata>" if name else ""
    return f"""<?xml version="1.0" encoding="UTF-8"?>
    <gpx version="{version}" creator="test" xmlns="http://www.topografix.com/GPX/1/1">
      {metadata}
      <trk><trkseg>{body}</trkseg></trk>
    </gpx>"""


class TestParseGpx:
    def test_parse_sample_file(self):
        document = parse_gpx(SAMPLE_GPX_PATH)
        assert len(document.points) == 20
        assert document.name == "Sample Ride"
        assert document.points[0].lat == pytest.approx(37.7749)
        assert document.points[0].lon == pytest.approx(-122.4194)
        assert document.points[0].elevation == pytest.approx(10.0)

    def test_file_not_found(self):
        with pytest.raises(FileNotFoundError):
            parse_gpx("/nonexistent/path/file.gpx")

    def test_missing_elevation_reads_as_zero(self):
        document = parse_gpx_text(_gpx('<trkpt lat="37.0" lon="-122.0"></trkpt>'))
        assert len(document.points) == 1
        assert document.points[0].elevation == 0.0

    def test_track_name_used_without_metadata(self):
        content = """<gpx version="1.1" xmlns="http://www.topografix.com/GPX/1/1">
          <trk><name>Coastal Loop</name><trkseg>
            <trkpt lat="37.0" lon="-122.0"><ele>5</ele></trkpt>
          </trkseg></trk>
        </gpx>"""
        assert parse_gpx_text(content).name == "Coastal Loop"

    def test_missing_name_uses_default(self):
        document = parse_gpx_text(_gpx('<trkpt lat="37.0" lon="-122.0"><ele>5</ele></trkpt>'))
        assert document.name == DEFAULT_ROUTE_NAME

    def test_gpx_10_supported(self):
        content = """<gpx version="1.0" xmlns="http://www.topografix.com/GPX/1/0">
          <trk><trkseg><trkpt lat="1.0" lon="2.0"><ele>3</ele></trkpt></trkseg></trk>
        </gpx>"""
        assert len(parse_gpx_text(content).points) == 1

    def test_empty_track(self):
        with pytest.raises(EmptyTrackError, match="No track points"):
            parse_gpx_text(_gpx(""))

    def test_leading_comment_with_markup(self):
        content = _gpx('<trkpt lat="1.0" lon="2.0"><ele>3</ele></trkpt>').replace(
            "<gpx ", "<!-- exported from <tool> v2 -->\n    <gpx ", 1
        )
        assert len(parse_gpx_text(content).points) == 1

    def test_missing_root(self):
        content = '<route version="1.1"><trkpt lat="1" lon="2"/></route>'
        with pytest.raises(MissingRootError):
            parse_gpx_text(content)

    def test_not_xml(self):
        with pytest.raises(MissingRootError):
            parse_gpx_text("this is not a gpx file")

    def test_unsupported_version(self):
        with pytest.raises(UnsupportedVersionError):
            parse_gpx_text(_gpx('<trkpt lat="1" lon="2"/>', version="2.0"))

    def test_missing_version(self):
        content = '<gpx><trk><trkseg><trkpt lat="1" lon="2"/></trkseg></trk></gpx>'
        with pytest.raises(UnsupportedVersionError):
            parse_gpx_text(content)

    def test_malformed_xml(self):
        content = '<gpx version="1.1"><trk><trkseg><trkpt lat="1" lon="2"></trkseg></trk></gpx>'
        with pytest.raises(MalformedInputError):
            parse_gpx_text(content)

    def test_out_of_range_coordinates(self):
        with pytest.raises(MalformedInputError, match="Invalid coordinates"):
            parse_gpx_text(_gpx('<trkpt lat="95.0" lon="2.0"><ele>1</ele></trkpt>'))

    def test_distinct_error_types(self):
        assert not issubclass(EmptyTrackError, MalformedInputError)
        assert issubclass(MissingRootError, MalformedInputError)


class TestLoadGpxUpload:
    def test_valid_upload(self):
        content = _gpx('<trkpt lat="1.0" lon="2.0"><ele>3</ele></trkpt>', name="Tempo")
        document = load_gpx_upload(content.encode(), "tempo.gpx")
        assert document.name == "Tempo"
        assert len(document.points) == 1

    def test_doctype_rejected_before_parsing(self):
        content = '<?xml version="1.0"?><!DOCTYPE gpx [<!ENTITY x "y">]><gpx version="1.1"></gpx>'
        with pytest.raises(UnsafeDocumentError):
            load_gpx_upload(content.encode())

    def test_bad_filename(self):
        with pytest.raises(UnsafeDocumentError):
            load_gpx_upload(b"", "../../etc/passwd.gpx")


class TestSanitizeName:
    def test_strips_markup_characters(self):
        assert sanitize_name('Tom\'s "Big" <Ride> & Co') == "Toms Big Ride  Co"

    def test_strips_control_characters(self):
        assert sanitize_name("Loop\x00\x1f\x7f") == "Loop"

    def test_caps_length(self):
        assert len(sanitize_name("x" * 500)) == MAX_NAME_LENGTH

    def test_blank_uses_default(self):
        assert sanitize_name("") == DEFAULT_ROUTE_NAME
        assert sanitize_name(None) == DEFAULT_ROUTE_NAME
        assert sanitize_name("<>") == DEFAULT_ROUTE_NAME
