import dataclasses
import io
from contextlib import redirect_stderr

import pytest

import cssurls.segmenting
from cssurls import LexicalErrorCode, Segment, segment_css, SegmentationError, SegmentType, URLClassifier
from cssurls.segmenting import default_classifier

BYTES = SegmentType.bytes
IMAGE = SegmentType.image_url
OTHER = SegmentType.other_url


def pairs(segments: list[Segment]) -> list[tuple[SegmentType, bytes | str]]:
    return [(segment.type, segment.data) for segment in segments]


def assert_partition(css: bytes, segments: list[Segment]) -> None:
    position = 0
    for segment in segments:
        assert segment.start == position
        assert segment.end > segment.start
        if segment.type == BYTES:
            assert segment.data == css[segment.start:segment.end]
        position = segment.end
    assert position == len(css)


def test_unquoted_image_url() -> None:
    css = b"a{background:url(foo.png)}"
    segments = segment_css(css)
    assert segments == [
        Segment(type=BYTES, data=b"a{background:", start=0, end=13),
        Segment(type=IMAGE, data="foo.png", start=13, end=25),
        Segment(type=BYTES, data=b"}", start=25, end=26),
    ]


def test_font_face_url_is_other() -> None:
    assert pairs(segment_css(b"@font-face{src:url(foo.woff)}")) == [
        (BYTES, b"@font-face{src:"),
        (OTHER, "foo.woff"),
        (BYTES, b"}"),
    ]


@pytest.mark.parametrize(
    "css",
    [
        b"a{background:url(foo.png)}",
        b"a{background:url('foo.png')}",
        b'a{background:url("foo.png")}',
        b'a{background:url( "foo.png" )}',
        b"a{background:url(  foo.png  )}",
    ],
)
def test_quotes_and_whitespace_are_stripped(css: bytes) -> None:
    assert pairs(segment_css(css)) == [(BYTES, b"a{background:"), (IMAGE, "foo.png"), (BYTES, b"}")]


def test_bad_url_stays_in_bytes() -> None:
    css = b'a{background:url(bad "quote" inside)}'
    errors: list = []
    segments = segment_css(css, parser_error=errors.append)
    assert pairs(segments) == [(BYTES, css)]
    assert [error.code for error in errors] == [LexicalErrorCode.bad_url]


@pytest.mark.parametrize(
    "css",
    [
        b'a{background:url("a.png" "b.png")}',
        b'a{background:url("a.png"}',
        b"a{background:url(}",
        b"a{background:url(",
        b'a{background:url("a.png',
        b"a{background:url('a\npng')}",
    ],
)
def test_malformed_url_functions_stay_in_bytes(css: bytes) -> None:
    segments = segment_css(css, parser_error=lambda error: None)
    assert pairs(segments) == [(BYTES, css)]


def test_hex_escape_is_decoded() -> None:
    assert pairs(segment_css(b"a{background:url(\\41.png)}"))[1] == (IMAGE, "A.png")
    assert pairs(segment_css(b"a{background:url('\\41 .png')}"))[1] == (IMAGE, "A.png")


def test_comments_and_whitespace_are_preserved() -> None:
    css = b"a { /* x */ background : url(a.png) /* y */ ; }\n\n/* z */"
    assert pairs(segment_css(css)) == [
        (BYTES, b"a { /* x */ background : "),
        (IMAGE, "a.png"),
        (BYTES, b" /* y */ ; }\n\n/* z */"),
    ]


def test_comments_adjacent_to_url() -> None:
    css = b"a{background:/*1*/url(a.png)/*2*/}"
    assert pairs(segment_css(css)) == [(BYTES, b"a{background:/*1*/"), (IMAGE, "a.png"), (BYTES, b"/*2*/}")]


def test_empty_input() -> None:
    errors: list = []
    assert segment_css(b"", parser_error=errors.append) == []
    assert errors == []


def test_input_without_urls_is_a_single_segment() -> None:
    css = b"a { color: red }"
    assert segment_css(css) == [Segment(type=BYTES, data=css, start=0, end=len(css))]


def test_line_endings_are_preserved() -> None:
    css = b"a{\r\nbackground:url(x.png)\r\n}\r"
    assert pairs(segment_css(css)) == [(BYTES, b"a{\r\nbackground:"), (IMAGE, "x.png"), (BYTES, b"\r\n}\r")]


def test_invalid_utf8_is_preserved() -> None:
    css = b'a{content:"\xff"}\xfe'
    assert pairs(segment_css(css, parser_error=lambda error: None)) == [(BYTES, css)]


def test_non_ascii_url() -> None:
    css = "a{background:url(café.png)}".encode("utf-8")
    segments = segment_css(css)
    assert pairs(segments) == [(BYTES, b"a{background:"), (IMAGE, "café.png"), (BYTES, b"}")]
    assert (segments[1].start, segments[1].end) == (13, len(css) - 1)


def test_urls_after_font_face_are_images_again() -> None:
    css = b"@font-face{src:url(a.woff)}a{background:url(b.png)}"
    assert [segment.type for segment in segment_css(css) if segment.type != BYTES] == [OTHER, IMAGE]


def test_font_face_inside_other_at_rule() -> None:
    css = b"@media screen{@font-face{src:url(a.woff) format('woff'),url('b.ttf')}b{cursor:url(c.cur),auto}}"
    assert [(segment.type, segment.data) for segment in segment_css(css) if segment.type != BYTES] == [
        (OTHER, "a.woff"),
        (OTHER, "b.ttf"),
        (IMAGE, "c.cur"),
    ]


def test_font_face_is_case_insensitive() -> None:
    css = b"@FONT-FACE{src:url(a.woff)}"
    assert pairs(segment_css(css))[1] == (OTHER, "a.woff")


def test_url_nested_in_function() -> None:
    css = b"a{background:image-set(url(a.png) 1x, url('b.png') 2x)}"
    assert [segment.data for segment in segment_css(css) if segment.type == IMAGE] == ["a.png", "b.png"]


@pytest.mark.parametrize(
    "css",
    [
        b"a{behavior:url(x.htc)}",
        b"@import url(foo.css);",
        b"a{BACKGROUND-IMAGE:url(x.png)}",
        b"a{--custom:url(x.png)}",
    ],
)
def test_default_classification_is_image(css: bytes) -> None:
    assert [segment.type for segment in segment_css(css) if segment.type != BYTES] == [IMAGE]


def test_custom_classifier() -> None:
    classifier = dataclasses.replace(default_classifier, other_properties=frozenset(("behavior",)))
    css = b"a{behavior:url(x.htc);background:url(y.png)}"
    assert [segment.type for segment in segment_css(css, classifier=classifier) if segment.type != BYTES] == [OTHER, IMAGE]


def test_property_context_resets_at_semicolon() -> None:
    classifier = URLClassifier(image_properties=frozenset(), other_properties=frozenset(("src",)))
    css = b"a{src:url(x);b:c;url(y)}"
    assert [segment.type for segment in segment_css(css, classifier=classifier) if segment.type != BYTES] == [OTHER, IMAGE]


def test_media_query_feature_does_not_leak_into_declarations() -> None:
    classifier = URLClassifier(image_properties=frozenset(), other_properties=frozenset(("min-width",)))
    css = b"@media (min-width:1px){a{x:url(y)}}"
    assert [segment.type for segment in segment_css(css, classifier=classifier) if segment.type != BYTES] == [IMAGE]


@pytest.mark.parametrize(
    "property_name, in_font_face, expected",
    [
        ("background", True, OTHER),
        ("background", False, IMAGE),
        ("Mask-Image", False, IMAGE),
        ("-webkit-mask-image", False, IMAGE),
        ("unknown", False, IMAGE),
        (None, False, IMAGE),
        (None, True, OTHER),
    ],
)
def test_classify(property_name: str | None, in_font_face: bool, expected: SegmentType) -> None:
    assert default_classifier.classify(property_name, in_font_face=in_font_face) == expected


PARTITION_INPUTS = [
    b"",
    b"a",
    b"a{background:url(foo.png)}",
    b"@font-face { src: url(a.woff2) format('woff2') }\n/* trailing comment",
    b"a{b:url(x)}c{d:url('y')}e{f:url(\"z\")}",
    b'x{y:url(bad "q")} z{w:"unterminated\n}',
    b"\xef\xbb\xbfa{background:url(\xe2\x98\x83.png)}\r\n\x00\xff",
    b"url(a)url(b)url('c')",
]


@pytest.mark.parametrize("css", PARTITION_INPUTS)
def test_segments_partition_the_input(css: bytes) -> None:
    segments = segment_css(css, parser_error=lambda error: None)
    assert_partition(css, segments)


@pytest.mark.parametrize("css", PARTITION_INPUTS)
def test_reassembly_reproduces_unquoted_stylesheet(css: bytes) -> None:
    segments = segment_css(css, parser_error=lambda error: None)
    reassembled = b"".join(segment.data if segment.type == BYTES else css[segment.start:segment.end] for segment in segments)
    assert reassembled == css


def test_reassembly_with_rewritten_urls() -> None:
    css = b"a{background:url(foo.png)} @font-face{src:url('f.woff')}"
    out = b"".join(
        segment.data if segment.type == BYTES else f'url("https://cdn.example/{segment.data}")'.encode("utf-8")
        for segment in segment_css(css)
    )
    assert out == b'a{background:url("https://cdn.example/foo.png")} @font-face{src:url("https://cdn.example/f.woff")}'


def test_accepts_bytearray_and_rejects_text() -> None:
    assert pairs(segment_css(bytearray(b"a{background:url(x)}")))[1] == (IMAGE, "x")
    with pytest.raises(TypeError):
        segment_css("a{background:url(x)}")  # type: ignore[arg-type]


def test_unterminated_token_sequence_is_fatal(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cssurls.segmenting, "tokenize", lambda codepoints, parser_error: [])
    with pytest.raises(SegmentationError):
        segment_css(b"a")


def test_out_of_range_numbers_stay_in_bytes() -> None:
    css = b"a{background:url(x.png);width:1e99999999999999999999px;z-index:" + b"9" * 100_000 + b"}"
    assert pairs(segment_css(css)) == [(BYTES, b"a{background:"), (IMAGE, "x.png"), (BYTES, css[23:])]


def test_default_error_handler_follows_redirected_stderr() -> None:
    stream = io.StringIO()
    with redirect_stderr(stream):
        segments = segment_css(b'a{content:"x')
    assert pairs(segments) == [(BYTES, b'a{content:"x')]
    assert stream.getvalue() == "Tokenization encountered an error: unterminated_string at 12\n"
