import pytest

from epubsplit.config import Config, coerce_value
from epubsplit.error import (
    ErrorCategory,
    ErrorHandler,
    EpubSplitError,
    OutputWriteError,
    SplitIndexError,
    StructureError,
)
from epubsplit.utils import (
    clean_html,
    create_table,
    ensure_epub_extension,
    numbered_filename,
    truncate_string,
)


@pytest.mark.parametrize("name, expected", [
    ("split", "split.epub"),
    ("split.epub", "split.epub"),
    ("Split.EPUB", "Split.EPUB"),
    ("archive.zip", "archive.zip.epub"),
])
def test_ensure_epub_extension(name, expected):
    assert ensure_epub_extension(name) == expected


def test_numbered_filename():
    assert numbered_filename("split.epub", 7) == "split-007.epub"
    assert numbered_filename("part", 12) == "part-012.epub"
    assert numbered_filename("out/part.epub", 1234) == "out/part-1234.epub"


def test_clean_html_drops_head_and_tags():
    text = "<html><head><title>T</title></head><body><p>Hello&nbsp;<b>world</b></p></body></html>"
    assert clean_html(text) == "Hello world"


def test_truncate_string():
    assert truncate_string("abcdef", 5) == "ab..."
    assert truncate_string("abc", 5) == "abc"


def test_create_table():
    table = create_table(["#", "Name"], [["0", "first"], ["1"]])
    lines = table.splitlines()
    assert lines[0].startswith("# | Name")
    assert len(lines) == 4


def test_coerce_value():
    assert coerce_value("preview_length", "200") == 200
    assert coerce_value("default_languages", "en, fr,") == ["en", "fr"]
    assert coerce_value("output_filename", "x.epub") == "x.epub"
    with pytest.raises(ValueError):
        coerce_value("preview_length", "many")


def test_config_backfills_missing_keys(isolated_config):
    isolated_config.mkdir(parents=True)
    (isolated_config / "config.json").write_text('{"output_filename": "mine.epub"}')

    config = Config()

    assert config.get("output_filename") == "mine.epub"
    assert config.get_languages() == ["en"]
    assert config.get_preview_length() == 1500


def test_config_survives_corrupt_file(isolated_config):
    isolated_config.mkdir(parents=True)
    (isolated_config / "config.json").write_text("{broken")

    assert Config().get("output_filename") == "split.epub"


def test_split_index_error_is_an_index_error():
    error = SplitIndexError(message="bad index", index=9, max_index=3)
    assert isinstance(error, IndexError)
    assert isinstance(error, EpubSplitError)
    assert error.category is ErrorCategory.USER_INPUT
    assert str(error) == "bad index [input]"


def test_error_handler_keeps_taxonomy_errors():
    handler = ErrorHandler()
    structure = StructureError(message="no container", path="META-INF/container.xml")

    handled = handler.handle(structure)
    wrapped = handler.handle(ValueError("boom"), category=ErrorCategory.FILE_SYSTEM)

    assert handled is structure
    assert wrapped.category is ErrorCategory.FILE_SYSTEM
    assert isinstance(wrapped.original_error, ValueError)
    assert handler.error_log == [structure, wrapped]


def test_output_write_error_category():
    error = OutputWriteError(message="disk full", path="/tmp/x.epub")
    assert error.category is ErrorCategory.FILE_SYSTEM
    assert not error.recoverable
