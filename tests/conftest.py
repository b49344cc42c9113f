import zipfile
from pathlib import Path
from typing import Dict, Optional, Union

import pytest

from epubsplit import config


CONTAINER_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{opf}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""

SAMPLE_OPF = """<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="2.0" unique-identifier="bookid">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:opf="http://www.idpf.org/2007/opf">
    <dc:identifier id="bookid">sample-book</dc:identifier>
    <dc:title>Sample Book</dc:title>
    <dc:creator opf:role="aut">Ada Writer</dc:creator>
    <dc:creator>Ada Writer</dc:creator>
    <dc:creator opf:role="edt">Ed Itor</dc:creator>
    <dc:creator>Bo Coauthor</dc:creator>
    <dc:language>en</dc:language>
  </metadata>
  <manifest>
    <item id="ncx" href="toc.ncx" media-type="application/x-dtbncx+xml"/>
    <item id="ch1" href="ch1.xhtml" media-type="application/xhtml+xml"/>
    <item id="ch2" href="ch2.xhtml" media-type="application/xhtml+xml"/>
    <item id="ch3" href="ch3.xhtml" media-type="application/xhtml+xml"/>
    <item id="css" href="style.css" media-type="text/css"/>
    <item id="fonts" href="fonts.css" media-type="text/css"/>
    <item id="img" href="img/cover.png" media-type="image/png"/>
  </manifest>
  <spine toc="ncx">
    <itemref idref="ch1"/>
    <itemref idref="ch2"/>
    <itemref idref="ch3"/>
  </spine>
  <guide>
    <reference type="text" title="Beginning" href="ch1.xhtml#top"/>
  </guide>
</package>
"""

SAMPLE_NCX = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE ncx PUBLIC "-//NISO//DTD ncx 2005-1//EN" "http://www.daisy.org/z3986/2005/ncx-2005-1.dtd">
<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">
  <head><meta name="dtb:uid" content="sample-book"/></head>
  <docTitle><text>Sample Book</text></docTitle>
  <navMap>
    <navPoint id="n1" playOrder="1">
      <navLabel><text>Chapter 1</text></navLabel>
      <content src="ch1.xhtml"/>
    </navPoint>
    <navPoint id="n2" playOrder="2">
      <navLabel><text>Chapter 2</text></navLabel>
      <content src="ch2.xhtml"/>
      <navPoint id="n3" playOrder="3">
        <navLabel><text>Section 2</text></navLabel>
        <content src="ch2.xhtml#s2"/>
      </navPoint>
    </navPoint>
    <navPoint id="n4" playOrder="4">
      <navLabel><text>Chapter 3</text></navLabel>
      <content src="ch3.xhtml"/>
    </navPoint>
  </navMap>
</ncx>
"""

CH1 = """<?xml version="1.0" encoding="UTF-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
<head>
  <title>Chapter 1</title>
  <link rel="stylesheet" type="text/css" href="style.css"/>
</head>
<body>
  <h1 id="top">Chapter 1</h1>
  <p><img src="img/cover.png" alt="cover"/></p>
  <p>It was a dark and stormy night.</p>
  <p><a href="http://example.com/">External link</a> <img src="https://example.com/remote.png"/></p>
</body>
</html>
"""

CH2 = """<?xml version="1.0" encoding="UTF-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
<head><title>Chapter 2</title></head>
<body>
  <h1>Chapter 2</h1>
  <p>The second chapter begins.</p>
  <h2 id="s2">Section 2</h2>
  <p>The section continues here.</p>
</body>
</html>
"""

CH3 = """<?xml version="1.0" encoding="UTF-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
<head><title>Chapter 3</title></head>
<body><h1>Chapter 3</h1><p>The end.</p></body>
</html>
"""

STYLE_CSS = """/* @import "old.css"; */
@import "fonts.css";
body { margin: 0; }
"""

FONTS_CSS = """body { font-family: serif; background: url(data:image/png;base64,AAAA); }
"""

# 1x1 transparent PNG
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000100e221bc330000000049454e44ae426082"
)


def make_epub(path: Union[str, Path], files: Dict[str, Union[str, bytes]],
              opf_path: Optional[str] = "content.opf", mimetype: bool = True) -> Path:
    """Write a zip with the given entries; adds mimetype and container.xml."""
    path = Path(path)
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zip_file:
        if mimetype:
            zip_file.writestr("mimetype", "application/epub+zip", compress_type=zipfile.ZIP_STORED)
        if opf_path is not None:
            zip_file.writestr("META-INF/container.xml", CONTAINER_TEMPLATE.format(opf=opf_path))
        for name, content in files.items():
            zip_file.writestr(name, content)
    return path


def sample_files() -> Dict[str, Union[str, bytes]]:
    return {
        "content.opf": SAMPLE_OPF,
        "toc.ncx": SAMPLE_NCX,
        "ch1.xhtml": CH1,
        "ch2.xhtml": CH2,
        "ch3.xhtml": CH3,
        "style.css": STYLE_CSS,
        "fonts.css": FONTS_CSS,
        "img/cover.png": PNG_BYTES,
    }


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep configuration files out of the real home directory."""
    config_dir = tmp_path / "config"
    monkeypatch.setattr(config, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config, "CONFIG_FILE", config_dir / "config.json")
    return config_dir


@pytest.fixture
def sample_epub(tmp_path) -> Path:
    return make_epub(tmp_path / "sample.epub", sample_files())


@pytest.fixture
def epub_factory(tmp_path):
    counter = {"n": 0}

    def factory(files, **kwargs):
        counter["n"] += 1
        return make_epub(tmp_path / f"book{counter['n']}.epub", files, **kwargs)

    return factory
