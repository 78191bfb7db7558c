from pathlib import Path

import pytest

from conftest import PHP_TEMPLATE, write
from themepipe.tasks import steps
from themepipe.transforms.pot import ExtractionError, extract_php


def test_extract_php_reads_every_gettext_call():
    messages = list(extract_php(PHP_TEMPLATE))

    assert [(m.msgid, m.lineno) for m in messages] == [
        ("Read %s", 3),
        ("Hello", 4),
        ("Other", 5),
        ("Post", 6),
        ("One item", 7),
    ]
    read, hello, other, post, plural = messages
    assert read.comments == ["%s: post title"]
    assert hello.comments == []
    assert other.domain == "other-domain"
    assert post.context == "noun"
    assert plural.plural == "%d items"


def test_extract_php_skips_non_literal_and_method_calls():
    source = "<?php\n__( $dynamic, 'd' );\n$obj->__( 'method', 'd' );\n_e( \"Tab\\there\", 'd' );\n"

    messages = list(extract_php(source))

    assert [m.msgid for m in messages] == ["Tab\there"]


def test_extract_php_line_comment_translators():
    source = "<?php\n// translators: 1: count\n$a = __( 'Count', 'd' );\n"

    (message,) = extract_php(source)

    assert message.comments == ["1: count"]


def test_unterminated_call_raises():
    with pytest.raises(ExtractionError, match="line 2"):
        list(extract_php("<?php\n__( 'oops'"))


def test_create_pot_writes_the_theme_catalog(ctx, theme: Path):
    report = steps.create_pot(ctx)

    target = theme / "languages" / "modul-r-child.pot"
    assert report.written == [target]
    pot = target.read_text(encoding="utf-8")

    assert "Project-Id-Version: modul-r-child-theme 1.2.3" in pot
    assert "Report-Msgid-Bugs-To: https://example.com/modul-r-child" in pot
    assert pot.count('msgid "Hello"') == 1
    assert "functions.php:2" in pot
    assert "templates/single.php:4" in pot
    assert "#. %s: post title" in pot
    assert 'msgctxt "noun"' in pot
    assert 'msgid_plural "%d items"' in pot
    assert 'msgid "Other"' not in pot


def test_create_pot_ignores_vendor_directories(ctx, theme: Path):
    write(theme / "vendor" / "lib" / "x.php", "<?php __( 'Vendored', 'modul-r-child' );\n")

    steps.create_pot(ctx)

    pot = (theme / "languages" / "modul-r-child.pot").read_text(encoding="utf-8")
    assert "Vendored" not in pot


def test_create_pot_reports_parse_errors(ctx, theme: Path):
    write(theme / "broken.php", "<?php\n_e( 'never closed'")

    report = steps.create_pot(ctx)

    assert report.written == []
    assert report.errors[0].startswith("Translation Error: Error: ")
