"""Tests for the converter pipeline and CLI."""

import io
import logging
import os
import zipfile
import xml.etree.ElementTree as ET

import pytest

import converter as cv
from conftest import SCENARIO_HTML, build_docx
from errors import EmptyDocumentError, UnsupportedTemplateError


class TestConvertHtml:
    def test_scenario(self):
        res = cv.convert_html(SCENARIO_HTML)
        root = ET.fromstring(res["xml"])
        assert root.findtext("front/article-meta/title-group/article-title") == "Study of X"
        assert "Introduction" in [s.findtext("title") for s in root.findall("body/sec")]
        assert res["keywords"] == []
        assert res["images"] == []

    def test_unsupported_template(self):
        with pytest.raises(UnsupportedTemplateError, match="editorial"):
            cv.convert_html(SCENARIO_HTML, template="editorial")

    def test_template_is_checked_before_parsing(self):
        with pytest.raises(UnsupportedTemplateError):
            cv.convert_html("", template="editorial")

    def test_empty_html(self):
        with pytest.raises(EmptyDocumentError):
            cv.convert_html("")

    def test_stats(self):
        res = cv.convert_html(SCENARIO_HTML)
        s = cv.stats(res)
        assert s["authors"] == 0
        assert s["tables"] == 0
        assert s["figures"] == 0
        assert s["sections"] == len(res["sections"])


class TestConvertDocx:
    def test_outputs(self, manuscript, tmp_path):
        out = tmp_path / "out"
        res = cv.convert_docx(str(manuscript), str(out))
        assert os.path.basename(res["xml_path"]) == "manuscript.xml"
        assert os.path.isfile(res["xml_path"])
        assert os.path.isfile(res["html_path"])
        assert os.path.isfile(out / "media" / "image001.png")
        assert res["media_dir"] == str(out / "media")

    def test_model(self, manuscript, tmp_path):
        res = cv.convert_docx(str(manuscript), str(tmp_path / "out"))
        model = res["result"]
        assert [i["id"] for i in model["images"]] == ["fig-1"]
        assert model["images"][0]["src"] == "media/image001.png"
        assert model["keywords"] == ["alpha", "beta"]
        assert res["stats"]["figures"] == 1
        assert res["stats"]["keywords"] == 2

    def test_xml(self, manuscript, tmp_path):
        res = cv.convert_docx(str(manuscript), str(tmp_path / "out"))
        with open(res["xml_path"], encoding="utf-8") as f:
            xml = f.read()
        root = ET.fromstring(xml)
        assert root.findtext("front/article-meta/title-group/article-title") == "Study of X"
        assert 'rid="fig-1"' in xml
        assert [f.get("id") for f in root.findall("body/fig")] == ["fig-1"]

    def test_without_images(self, tmp_path):
        path = build_docx(tmp_path / "plain.docx", [("Título 3", "Introduction"), ("Normal", "Text.")])
        res = cv.convert_docx(str(path), str(tmp_path / "out"))
        assert res["media_dir"] is None
        assert res["stats"]["figures"] == 0

    def test_empty_document(self, empty_docx, tmp_path):
        with pytest.raises(EmptyDocumentError):
            cv.convert_docx(str(empty_docx), str(tmp_path / "out"))

    def test_template_styles(self, manuscript):
        styles = cv.template_styles(str(manuscript))
        assert {"Título 1", "Título 3", "Autores"} <= styles
        assert "Normal" not in styles


class TestZipImages:
    def test_names_at_archive_root(self, tmp_path):
        media = tmp_path / "media"
        media.mkdir()
        (media / "image001.png").write_bytes(b"a")
        (media / "image002.png").write_bytes(b"b")
        zp = cv.zip_images(str(media), str(tmp_path / "images.zip"))
        with zipfile.ZipFile(zp) as zf:
            assert zf.namelist() == ["image001.png", "image002.png"]

    def test_nothing_to_zip(self, tmp_path):
        assert cv.zip_images(str(tmp_path / "missing"), str(tmp_path / "a.zip")) is None
        (tmp_path / "media").mkdir()
        assert cv.zip_images(str(tmp_path / "media"), str(tmp_path / "b.zip")) is None
        assert not (tmp_path / "b.zip").exists()


class TestCli:
    def test_success(self, manuscript, tmp_path):
        out = tmp_path / "cli"
        assert cv.main([str(manuscript), "-o", str(out), "--zip"]) == 0
        assert (out / "manuscript.xml").is_file()
        assert (out / "manuscript.html").is_file()
        assert (out / "manuscript_images.zip").is_file()

    def test_defaults_to_input_directory(self, manuscript):
        assert cv.main([str(manuscript)]) == 0
        assert (manuscript.parent / "manuscript.xml").is_file()

    def test_empty_document(self, empty_docx, tmp_path):
        assert cv.main([str(empty_docx), "-o", str(tmp_path / "cli")]) == 1

    def test_unsupported_template(self, manuscript, tmp_path):
        assert cv.main([str(manuscript), "-o", str(tmp_path / "cli"), "--template", "editorial"]) == 2

    def test_bad_policy_is_rejected(self, manuscript):
        with pytest.raises(SystemExit):
            cv.main([str(manuscript), "--boxed-policy", "loose"])


class FakeImage:
    def __init__(self, data=None, error=None):
        self.data, self.error = data, error

    def open(self):
        if self.error:
            raise self.error
        return io.BytesIO(self.data)


class TestImageWriter:
    def test_unreadable_images_are_skipped(self, tmp_path, caplog):
        media = tmp_path / "media"
        write = cv.image_writer(str(media))
        images = [FakeImage(b"one"), FakeImage(error=OSError("broken")),
                  FakeImage(b""), FakeImage(b"two")]
        with caplog.at_level(logging.WARNING, logger="converter"):
            srcs = [write(img)["src"] for img in images]
        assert srcs == ["media/image001.png", "undefined", "undefined", "media/image002.png"]
        assert sorted(os.listdir(media)) == ["image001.png", "image002.png"]
        assert (media / "image002.png").read_bytes() == b"two"
        assert len([r for r in caplog.records if "Skipping embedded image" in r.getMessage()]) == 2

    def test_missing_part_is_skipped(self, tmp_path):
        write = cv.image_writer(str(tmp_path / "media"))
        assert write(FakeImage(error=KeyError("word/media/image1.png"))) == {"src": "undefined"}
        assert not (tmp_path / "media").exists()
