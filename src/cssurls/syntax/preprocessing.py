"""Preprocessing of input to tokenization of CSS text, per http://drafts.csswg.org/css-syntax/#input-preprocessing."""

from ..utils import CP, is_surrogate_code_point

from collections.abc import Callable, Iterator
from functools import partial

class FilteredCodePoint(CP):
    """Class of code point derivatives that reference the original (unfiltered) code point sequence.

    E.g. filtered '\r\n' can be represented by a `CP` object with the `source` attribute being `\r\n` and the value (`CP` is a string) being the filtered product, in this case `\n`.

    Said representation facilitates recovery of original text from a sequence of filtered code points, and by indirection, from token(s) -- segmentation relies on it to map token offsets back onto the original input.
    """
    source: CP
    def __new__(cls, *args, source: CP, **kwargs):
        """Most native primitive types, including `str`, cannot be effectively extended in traditional manner -- by invoking `super` in the subclass constructor -- `__new__` must be overriden instead to yield the object of appropriate type because the super-class does not feature a constructor and objects of the class are constructed with e.g. `str.__new__`.
        """
        obj = super().__new__(cls, *args, **kwargs)
        assert len(obj) <= 1 # Code points are always single-character strings or an empty string (signifying the end-of-stream condition)
        obj.source = source
        return obj

def source_of(cp: CP) -> CP:
    """Get the original text a [possibly already filtered] code point was produced from."""
    return cp.source if isinstance(cp, FilteredCodePoint) else cp

def filter_code_points(next: Callable[[], CP]) -> Iterator[FilteredCodePoint]:
    """See http://drafts.csswg.org/css-syntax/#css-filter-code-points.

    Code points that were filtered before keep their original `source`, which makes filtering idempotent with respect to both the values and the recorded sources.
    """
    cp = next()
    while cp:
        match cp:
            case '\r' if (cp := next()) == '\n':
                yield FilteredCodePoint('\n', source='\r\n')
            case '\r':
                yield FilteredCodePoint('\n', source='\r')
                continue
            case '\f':
                yield FilteredCodePoint('\n', source=source_of(cp))
            case _ if cp == '\0' or is_surrogate_code_point(cp):
                yield FilteredCodePoint('\uFFFD', source=source_of(cp))
            case _:
                yield FilteredCodePoint(cp, source=source_of(cp))
        cp = next()

def preprocess(codepoints: list[CP]) -> None:
    """Filter a list of code points in place.

    `\\r\\n`, lone `\\r` and `\\f` become `\\n`, while NUL and surrogate code points become U+FFFD; every element of the list is a `FilteredCodePoint` afterwards.
    """
    codepoints[:] = filter_code_points(partial(next, iter(codepoints), ''))

def decode(utf8_css: bytes) -> list[CP]:
    """Decode UTF-8 encoded CSS text into a list of [unfiltered] code points.

    Invalid byte sequences are decoded into [lone] surrogate code points with Python's `surrogateescape` error handler, so preprocessing will replace them while their original bytes remain recoverable (see `encoded_length`).
    """
    return list(utf8_css.decode('utf-8', errors='surrogateescape'))

def encoded_length(cp: CP) -> int:
    """Get the length, in bytes, of the UTF-8 encoded original text of a code point."""
    return len(source_of(cp).encode('utf-8', errors='surrogateescape'))
