"""Set of constructs to aid the rest of the package, of both the package-specific and the general kind that would otherwise warrant third-party dependencies."""

import sys

from collections.abc import Iterable
from dataclasses import dataclass
from enum import auto, StrEnum
from typing import TypeAlias

CP: TypeAlias = str # [Unicode] code points are strings of length 1 (the empty string is used for the end-of-stream condition); see also `FilteredCodePoint` in the `preprocessing` module, which is a subclass of `str`

def join(iterable: Iterable[str]) -> str:
    """Join a sequence into a string."""
    return ''.join(iterable)

class ParseError(RuntimeError):
    """A [catch-all] class of errors that occur during or otherwise related to parsing."""
    pass

class SegmentationError(ParseError):
    """Class of errors raised when a stylesheet cannot be segmented at all.

    Tokenization recovers from every kind of malformed input, so this only signals a broken internal invariant -- a token sequence that isn't terminated by the end-of-stream token.
    """
    pass

class LexicalErrorCode(StrEnum):
    """Kinds of malformed token-level constructs the tokenizer recovers from."""
    bad_escape = auto()
    bad_string = auto()
    bad_url = auto()
    unterminated_comment = auto()
    unterminated_string = auto()
    unterminated_url = auto()

@dataclass(frozen=True, kw_only=True, slots=True)
class LexicalError:
    """A record of a malformed construct encountered during tokenization.

    Unlike `ParseError`, this is not an exception -- it is reported to whatever `parser_error` handler the tokenizer was given, and tokenization carries on with a substitute token.
    """
    code: LexicalErrorCode
    offset: int # Position in the preprocessed code point stream where the malformed construct was detected
    message: str = ''
    def __str__(self) -> str:
        return f'{self.code} at {self.offset}' + (f': {self.message}' if self.message else '')

def parser_error(error: LexicalError) -> None:
    """A "default" parser error handler procedure.

    [CSS] syntax does not really define any particular procedure for dealing with errors during tokenization, only that they are to be recovered from. Errors are thus merely reported here, on the standard error stream; callers that want to collect the errors instead should pass their own handler, e.g. the `append` method of a list.

    See also http://drafts.csswg.org/css-syntax/#parse-error for general definition of handling of parsing errors.
    """
    sys.stderr.write(f'Tokenization encountered an error: {error}\n')

def is_surrogate_code_point_ordinal(o: int) -> bool:
    """See `is_surrogate_code_point`."""
    return (0xd800 <= o <= 0xdbff) or (0xdc00 <= o <= 0xdfff)

def is_surrogate_code_point(cp: CP) -> bool:
    """Determine if a code point is a so-called surrogate code point.

    For definition of said "surrogate", see http://infra.spec.whatwg.org/#surrogate.
    """
    return is_surrogate_code_point_ordinal(ord(cp))
