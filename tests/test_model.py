import pytest

from epubsplit.error import SplitIndexError, StructureError
from epubsplit.epub import EpubModel
from epubsplit.epub.model import find_anchor, preview

from conftest import CH1, CH2, CH3, SAMPLE_OPF, sample_files


def test_sample_split_points(sample_epub):
    with EpubModel(sample_epub) as model:
        points = model.split_points()

        assert [(point.href, point.anchor) for point in points] == [
            ("ch1.xhtml", None),
            ("ch2.xhtml", None),
            ("ch2.xhtml", "s2"),
            ("ch3.xhtml", None),
        ]
        assert points[1].navigation_labels == ("Chapter 2",)
        assert points[2].navigation_labels == ("Section 2",)
        assert points[2].manifest_id == "ch2"
        assert points[2].target == "ch2.xhtml#s2"


def test_split_points_are_cached(sample_epub):
    with EpubModel(sample_epub) as model:
        assert model.split_points() is model.split_points()


def test_model_metadata(sample_epub):
    with EpubModel(sample_epub) as model:
        assert model.title == "Sample Book"
        assert model.authors == ["Ada Writer", "Bo Coauthor"]
        assert model.spine_ids() == ["ch1", "ch2", "ch3"]


def test_guide_only_on_first_point_of_document(epub_factory):
    files = sample_files()
    files["content.opf"] = SAMPLE_OPF.replace('href="ch1.xhtml#top"', 'href="ch2.xhtml"')
    with EpubModel(epub_factory(files)) as model:
        points = model.split_points()
        assert points[1].guide is not None
        assert points[1].guide.title == "Beginning"
        assert points[2].guide is None


def test_no_navigation_gives_one_point_per_spine_item(epub_factory):
    files = sample_files()
    del files["toc.ncx"]
    files["content.opf"] = SAMPLE_OPF.replace(
        '<item id="ncx" href="toc.ncx" media-type="application/x-dtbncx+xml"/>', ""
    ).replace('<spine toc="ncx">', "<spine>")

    with EpubModel(epub_factory(files)) as model:
        assert model.navigation == {}
        points = model.split_points()
        assert len(points) == 3
        assert all(point.anchor is None for point in points)
        assert all(point.navigation_labels == () for point in points)


def test_missing_ncx_file_degrades_to_empty_navigation(epub_factory):
    files = sample_files()
    del files["toc.ncx"]
    with EpubModel(epub_factory(files)) as model:
        assert model.navigation == {}
        assert len(model.split_points()) == 3


def test_anchor_preview_starts_at_anchor(sample_epub):
    with EpubModel(sample_epub) as model:
        points = model.split_points()
        assert points[1].preview_sample.startswith("<?xml")
        assert points[2].preview_sample.startswith('id="s2"')
        assert "The section continues here." in points[2].preview_sample


def test_anchor_not_found_gives_empty_preview(epub_factory):
    files = sample_files()
    files["ch2.xhtml"] = CH2.replace('id="s2"', 'id="other"')
    with EpubModel(epub_factory(files)) as model:
        assert model.split_points()[2].preview_sample == ""


def test_unreadable_spine_item_gives_empty_preview(epub_factory):
    files = sample_files()
    del files["ch3.xhtml"]
    with EpubModel(epub_factory(files)) as model:
        assert model.split_points()[3].preview_sample == ""


def test_preview_truncation():
    assert preview("short", 10) == "short"
    long_text = "x" * 50
    sample = preview(long_text, 20)
    assert len(sample) == 20
    assert sample.endswith("...")


def test_preview_length_is_configurable(sample_epub):
    with EpubModel(sample_epub, preview_length=30) as model:
        assert all(len(point.preview_sample) <= 30 for point in model.split_points())


def test_find_anchor_checks_id_and_name_with_both_quotes():
    text = "<a name='x'/> <p id=\"x\"/>"
    assert find_anchor(text, "x") == 3
    assert find_anchor("<p id='y'/>", "y") == 3
    assert find_anchor("<p>nothing</p>", "y") == -1


def test_multiple_anchors_in_one_document(epub_factory):
    files = sample_files()
    files["toc.ncx"] = files["toc.ncx"].replace(
        '<navPoint id="n4"',
        '<navPoint id="n3b"><navLabel><text>Section 3</text></navLabel>'
        '<content src="ch2.xhtml#s3"/></navPoint>\n    <navPoint id="n4"',
    )
    with EpubModel(epub_factory(files)) as model:
        anchors = [point.anchor for point in model.split_points() if point.href == "ch2.xhtml"]
        assert anchors == [None, "s2", "s3"]


def test_split_point_out_of_range_reports_max_index(sample_epub):
    with EpubModel(sample_epub) as model:
        with pytest.raises(SplitIndexError) as excinfo:
            model.split_point(5)
        assert excinfo.value.max_index == 3
        assert "0 to 3" in excinfo.value.message
        assert isinstance(excinfo.value, IndexError)


def test_negative_index_is_rejected(sample_epub):
    with EpubModel(sample_epub) as model:
        with pytest.raises(IndexError):
            model.split_point(-1)


def test_spine_item_missing_from_manifest_fails(epub_factory):
    files = sample_files()
    files["content.opf"] = SAMPLE_OPF.replace('<itemref idref="ch3"/>', '<itemref idref="ch9"/>')
    with EpubModel(epub_factory(files)) as model:
        with pytest.raises(StructureError):
            model.split_points()


def test_missing_package_document_fails(epub_factory):
    with pytest.raises(StructureError):
        EpubModel(epub_factory({"ch1.xhtml": CH1, "ch3.xhtml": CH3}))


def test_empty_spine_reports_no_split_points(epub_factory):
    files = sample_files()
    opf = SAMPLE_OPF
    for idref in ("ch1", "ch2", "ch3"):
        opf = opf.replace(f'<itemref idref="{idref}"/>', "")
    files["content.opf"] = opf
    with EpubModel(epub_factory(files)) as model:
        assert model.split_points() == []
        with pytest.raises(SplitIndexError) as excinfo:
            model.split_point(0)
    assert "no split points" in excinfo.value.message
    assert "-1" not in excinfo.value.message
