import json
from pathlib import Path

import pytest
from PIL import Image

from themepipe.core.settings import Settings
from themepipe.tasks.context import BuildContext

MANIFEST = {
    "name": "modul-r-child",
    "version": "1.2.3",
    "homepage": "https://example.com/modul-r-child",
    "author": {"name": "Jane Doe", "website": "https://jane.example.com"},
    "wp": {
        "themeName": "Modul R Child",
        "description": "A child theme for Modul R",
        "textDomain": "modul-r-child",
        "template": "modul-r",
    },
    "devDependencies": {"gulp": "^4.0.0"},
}

STYLE_SCSS = """\
:root {
  --brand: #336699;
}

$gap: 4px;

.button {
  color: var(--brand);
  padding: $gap;
  appearance: none;
}

.columns {
  column-count: 2;
}
"""

ATF_SCSS = """\
.hero {
  margin: 0 auto;
  user-select: none;
}
"""

PHP_TEMPLATE = """\
<?php
/* translators: %s: post title */
printf( __( 'Read %s', 'modul-r-child' ), get_the_title() );
_e( 'Hello', 'modul-r-child' );
_e( 'Other', 'other-domain' );
echo _x( 'Post', 'noun', 'modul-r-child' );
echo _n( 'One item', '%d items', $count, 'modul-r-child' );
"""


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def theme(tmp_path: Path) -> Path:
    """A child theme next to its parent theme, with one source of each kind."""
    root = tmp_path / "modul-r-child"
    parent = tmp_path / "modul-r"
    src = root / "assets" / "src"

    write(root / "package.json", json.dumps(MANIFEST))
    write(src / "scss" / "style.scss", STYLE_SCSS)
    write(src / "scss" / "atf.scss", ATF_SCSS)

    write(src / "js" / "theme.js", "console.log('theme');\n")
    write(src / "js" / "vendor" / "a.js", "var vendorA = function () { return 1; };\n")
    write(src / "js" / "vendor" / "b.js", "var vendorB = function () { return 2; };\n")
    write(src / "js" / "user" / "local.js", "const localMarker = () => 1;\n")
    write(parent / "assets" / "src" / "js" / "user" / "parent.js", "var parentMarker = 2;\n")
    write(parent / "assets" / "src" / "js" / "user" / "masonry.js", "var masonryMarker = 3;\n")

    img = src / "img"
    img.mkdir(parents=True)
    Image.new("RGB", (32, 32), "red").save(img / "red.png")
    (img / "photos").mkdir()
    Image.new("RGB", (32, 32), "blue").save(img / "photos" / "blue.jpg", quality=95)
    Image.new("P", (16, 16)).save(img / "dot.gif")

    write(root / "templates" / "single.php", PHP_TEMPLATE)
    write(root / "functions.php", "<?php\n_e( 'Hello', 'modul-r-child' );\n")
    return root


@pytest.fixture
def settings(theme: Path) -> Settings:
    return Settings(root=theme)


@pytest.fixture
def ctx(settings: Settings) -> BuildContext:
    return BuildContext.load(settings)
