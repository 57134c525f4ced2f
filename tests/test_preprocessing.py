import pytest

from cssurls.syntax.preprocessing import decode, encoded_length, FilteredCodePoint, preprocess


def preprocessed(text: str) -> list[str]:
    codepoints = list(text)
    preprocess(codepoints)
    return codepoints


@pytest.mark.parametrize(
    "text, expected",
    [
        ("", ""),
        ("a{b:c}", "a{b:c}"),
        ("a\r\nb", "a\nb"),
        ("a\rb", "a\nb"),
        ("a\r\rb", "a\n\nb"),
        ("a\n\r\n", "a\n\n"),
        ("\r", "\n"),
        ("a\fb", "a\nb"),
        ("a\0b", "a\ufffdb"),
        ("a\ud800b\udfffc", "a\ufffdb\ufffdc"),
    ],
)
def test_preprocess_normalizes_line_endings_and_invalid_code_points(text: str, expected: str) -> None:
    assert "".join(preprocessed(text)) == expected


def test_preprocess_keeps_original_text_of_every_code_point() -> None:
    text = "a\r\nb\0\rc\fd"
    codepoints = preprocessed(text)
    assert all(isinstance(cp, FilteredCodePoint) for cp in codepoints)
    assert [cp.source for cp in codepoints] == ["a", "\r\n", "b", "\0", "\r", "c", "\f", "d"]
    assert "".join(cp.source for cp in codepoints) == text


def test_preprocess_is_idempotent() -> None:
    codepoints = preprocessed("x\r\ny\0z\r")
    once = list(codepoints)
    preprocess(codepoints)
    assert codepoints == once
    assert [cp.source for cp in codepoints] == [cp.source for cp in once]


def test_preprocess_mutates_in_place() -> None:
    codepoints = list("a\r\nb")
    same = codepoints
    preprocess(same)
    assert codepoints is same
    assert codepoints == ["a", "\n", "b"]


def test_decode_preserves_invalid_bytes_as_surrogates() -> None:
    codepoints = decode(b"a\xffb")
    assert codepoints == ["a", "\udcff", "b"]
    preprocess(codepoints)
    assert codepoints == ["a", "\ufffd", "b"]
    assert [encoded_length(cp) for cp in codepoints] == [1, 1, 1]


def test_encoded_length_counts_original_bytes() -> None:
    codepoints = decode("é\r\n😀".encode("utf-8"))
    preprocess(codepoints)
    assert [encoded_length(cp) for cp in codepoints] == [2, 2, 4]
