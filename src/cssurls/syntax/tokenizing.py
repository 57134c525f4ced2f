"""Implements tokenization (also called "lexing"; see sections numbered 3 and 4 of [CSS Syntax]) of CSS text.

Tokens are plain values -- a single `Token` class carries a `type` discriminant (a `TokenType` member) and, depending on the type, a string and/or numeric payload, along with the offset in the [preprocessed] code point stream where consumption of the token began. The offsets are what allows a consumer to go back to the original text for everything in between tokens, comments included, since comments are consumed and discarded here as [CSS Syntax] instructs.

The tokenizer never fails: malformed constructs (bad strings and URLs, stray escapes, unterminated comments etc) are reported to a `parser_error` handler as `LexicalError` records and substituted with a token (of the `error` type, where no other token fits), after which tokenization continues.
"""

from .preprocessing import decode, FilteredCodePoint, preprocess
from ..utils import CP, is_surrogate_code_point_ordinal, join, LexicalError, LexicalErrorCode, parser_error

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import auto, StrEnum
from itertools import chain
from math import inf
from sys import float_info

class TokenType(StrEnum):
    """The closed set of token types.

    Values are the [lowercase] member names and are considered stable, for tooling that stores or exchanges token types.
    """
    whitespace = auto()
    cdo = auto()
    cdc = auto()
    colon = auto()
    semicolon = auto()
    comma = auto()
    open_brace = auto()
    close_brace = auto()
    open_bracket = auto()
    close_bracket = auto()
    open_paren = auto()
    close_paren = auto()
    include_match = auto() # `~=`
    dash_match = auto() # `|=`
    prefix_match = auto() # `^=`
    suffix_match = auto() # `$=`
    substring_match = auto() # `*=`
    column = auto() # `||`
    eof = auto()
    delim = auto()
    ident = auto()
    function = auto()
    at_keyword = auto()
    hash = auto()
    string = auto()
    url = auto()
    number = auto()
    percentage = auto()
    dimension = auto()
    error = auto() # Substitute for "bad string" and "bad URL" tokens

mirror_types: Mapping[TokenType, TokenType] = {
    TokenType.open_brace: TokenType.close_brace,
    TokenType.open_bracket: TokenType.close_bracket,
    TokenType.open_paren: TokenType.close_paren,
    TokenType.close_brace: TokenType.open_brace,
    TokenType.close_bracket: TokenType.open_bracket,
    TokenType.close_paren: TokenType.open_paren,
} # Opening and closing grouping tokens, by each other; `function` tokens are also closed by `close_paren`

@dataclass(frozen=True, kw_only=True, slots=True)
class Numeric:
    """Payload of numeric tokens -- `number`, `percentage` and `dimension`."""
    value: int | float
    unit: str = '' # Only ever non-empty for dimension tokens
    is_integer: bool = True # Whether the number was written without a fractional part and an exponent

@dataclass(frozen=True, kw_only=True, slots=True)
class Token:
    """A class of objects that group codepoint sequences as part of tokenization.

    Tokenization emits a sequence of these objects where each token encapsulates a sequence of code points, after a pattern, grouping together a word or a number or a bracket or a quoted string, etc.
    """
    type: TokenType
    offset: int # Index of the [preprocessed] code point where consumption of the token began
    end: int # Index just past the last code point of the token; comments are never part of any token
    value: str = '' # Decoded value of `ident`, `function`, `at_keyword`, `hash`, `string`, `url` and `delim` tokens, empty otherwise
    numeric: Numeric | None = None # Set for `number`, `percentage` and `dimension` tokens only

def tokenize(input: Sequence[CP], *, parser_error: Callable[[LexicalError], None] = parser_error) -> list[Token]:
    """Generate a sequence of tokens from a sequence of [filtered] code points (characters, i.e. in a CSS file).

    Deviation from [CSS Syntax]: no input preprocessing is done here -- see `normalize_input` for a procedure that prepares input for this one.

    The returned list always ends with exactly one token of the `eof` type, positioned at the end of the input.

    Implements http://drafts.csswg.org/css-syntax/#css-tokenize.
    """
    pos = 0 # Index of the next input code point; may exceed the length of the input by one, after the [conceptual] EOF code point was consumed
    mark = 0 # Index where consumption of the current token began
    def current_cp() -> CP:
        """See http://drafts.csswg.org/css-syntax/#current-input-code-point."""
        return input[pos - 1] if 0 < pos <= len(input) else ''
    def next(n: int) -> str:
        """See http://drafts.csswg.org/css-syntax/#next-input-code-point."""
        return join(input[pos:pos + n])
    def consume(n: int) -> None:
        """Consume the next code point(s) from the stream.

        If no code points are available for consumption (the stream is "exhausted"), the so-called EOF ("end of file", see https://drafts.csswg.org/css-syntax/#eof-code-point) value, an empty string, becomes the current code point.
        """
        nonlocal pos
        pos = min(pos + n, len(input) + 1)
    def reconsume() -> None:
        """See http://drafts.csswg.org/css-syntax/#reconsume-the-current-input-code-point."""
        nonlocal pos
        assert pos > 0
        pos -= 1
    def error(code: LexicalErrorCode, message: str = '') -> None:
        parser_error(LexicalError(code=code, offset=max(0, min(pos - 1, len(input))), message=message))
    def positioned(type: TokenType) -> Callable[..., Token]:
        """Return a callable that constructs a token of specified type with its `offset` attribute initialized automatically.

        :param type: Type of token to create
        :returns: A callable that creates and returns a new token of type `type`, positioned where consumption of the current token began
        """
        return lambda **kwargs: Token(type=type, offset=mark, end=min(pos, len(input)), **kwargs)
    def consume_comments() -> None:
        """See http://drafts.csswg.org/css-syntax/#consume-comment."""
        while next(2) == '/*':
            consume(2)
            while next(1):
                if next(2) == '*/':
                    consume(2)
                    break
                consume(1)
            else:
                error(LexicalErrorCode.unterminated_comment)
    def is_valid_escape(cps: str | None = None) -> bool:
        """See http://drafts.csswg.org/css-syntax/#starts-with-a-valid-escape."""
        if cps is None:
            cps = current_cp() + next(1)
        return cps[0:1] == '\\' and not is_newline(cps[1:2])
    def consume_escaped_code_point() -> CP:
        """See http://drafts.csswg.org/css-syntax/#consume-escaped-code-point."""
        assert current_cp() == '\\'
        consume(1)
        match current_cp():
            case cp if is_hex_digit(cp):
                start = pos - 1
                while is_hex_digit(next(1)) and pos - start < 6:
                    consume(1)
                num = int(join(input[start:pos]), 16)
                if is_whitespace(next(1)):
                    consume(1)
                return '\ufffd' if (num == 0 or is_for_surrogate(num) or num > 0x10ffff) else chr(num)
            case '':
                error(LexicalErrorCode.bad_escape, 'escape at end of input')
                return '\ufffd'
            case _ as cp:
                return cp
    def consume_ident_like_token() -> Token:
        """See http://drafts.csswg.org/css-syntax/#consume-ident-like-token."""
        string = consume_ident_sequence()
        if next(1) == '(':
            consume(1)
            if string.lower() == 'url':
                while len(cps := next(2)) == 2 and all(is_whitespace(cp) for cp in cps):
                    consume(1)
                if not ((cps := next(2))[0:1] in ('"', '\'') or (is_whitespace(cps[0:1]) and cps[1:2] in ('"', '\''))):
                    return consume_url_token()
            return positioned(TokenType.function)(value=string)
        else:
            return positioned(TokenType.ident)(value=string)
    def consume_ident_sequence() -> str:
        """See http://drafts.csswg.org/css-syntax#consume-name."""
        result = ''
        while True:
            consume(1)
            match current_cp():
                case cp if is_ident_code_point(cp):
                    result += cp
                case _ if is_valid_escape():
                    result += consume_escaped_code_point()
                case _:
                    reconsume()
                    return result
    def consume_number() -> tuple[int | float, bool]:
        """See http://drafts.csswg.org/css-syntax#consume-number."""
        is_integer = True
        number, exponent = '', ''
        if (cp := next(1)) in ('+', '-'):
            consume(1)
            number += cp
        while is_digit(cp := next(1)):
            consume(1)
            number += cp
        if (cps := next(2))[0:1] == '.' and is_digit(cps[1:2]):
            consume(1)
            number += '.'
            while is_digit(cp := next(1)):
                consume(1)
                number += cp
            is_integer = False
        if (cps := next(3))[0:1] in ('E', 'e') and ((cps[1:2] in ('-', '+') and is_digit(cps[2:3])) or is_digit(cps[1:2])):
            consume(1)
            if (cp := next(1)) in ('+', '-'):
                consume(1)
                exponent += cp
            while is_digit(cp := next(1)):
                consume(1)
                exponent += cp
            is_integer = False
        # Parsing the literal as a whole rounds correctly (compiling it arithmetically doesn't, e.g. `12 * 10**-1` gets `1.2000000000000002`), and `float` saturates to `inf` or `0.0` on out-of-range exponents instead of raising
        if not is_integer:
            return float(number + ('e' + exponent if exponent else '')), False
        sign, digits = ('-' if number.startswith('-') else ''), number.lstrip('+-').lstrip('0')
        if len(digits) > float_info.max_10_exp + 1: # Too large for a double; saturates like non-integers do, and keeps conversion linear in the number of digits
            return (-inf if sign else inf), True
        return int(sign + (digits or '0')), True
    def consume_numeric_token() -> Token:
        """See http://drafts.csswg.org/css-syntax#consume-numeric-token."""
        value, is_integer = consume_number()
        if starts_ident_sequence(next(3)):
            return positioned(TokenType.dimension)(numeric=Numeric(value=value, unit=consume_ident_sequence(), is_integer=is_integer))
        elif next(1) == '%':
            consume(1)
            return positioned(TokenType.percentage)(numeric=Numeric(value=value, is_integer=is_integer))
        else:
            return positioned(TokenType.number)(numeric=Numeric(value=value, is_integer=is_integer))
    def consume_remnants_of_bad_url() -> None:
        """See http://drafts.csswg.org/css-syntax#consume-remnants-of-bad-url."""
        while True:
            consume(1)
            match current_cp():
                case ')' | '':
                    return
                case _ if is_valid_escape():
                    consume_escaped_code_point()
    def consume_bad_url(code: LexicalErrorCode, message: str = '') -> Token:
        """Recover from a malformed URL, returning the substitute for the "bad URL" token of [CSS Syntax]."""
        error(code, message)
        consume_remnants_of_bad_url()
        return positioned(TokenType.error)()
    def consume_url_token() -> Token:
        """See http://drafts.csswg.org/css-syntax#consume-url-token."""
        while is_whitespace(next(1)):
            consume(1)
        value = ''
        while True:
            consume(1)
            match current_cp():
                case ')':
                    break
                case '':
                    return consume_bad_url(LexicalErrorCode.unterminated_url)
                case cp if is_whitespace(cp):
                    while is_whitespace(cp := next(1)):
                        consume(1)
                    if cp == ')':
                        consume(1)
                        break
                    elif cp == '':
                        return consume_bad_url(LexicalErrorCode.unterminated_url)
                    else:
                        return consume_bad_url(LexicalErrorCode.bad_url, 'whitespace inside URL')
                case cp if cp in ('"', '\'', '(') or is_non_printable_code_point(cp):
                    return consume_bad_url(LexicalErrorCode.bad_url, f'unexpected {cp!r} inside URL')
                case '\\':
                    if is_valid_escape():
                        value += consume_escaped_code_point()
                    else:
                        return consume_bad_url(LexicalErrorCode.bad_url, 'invalid escape inside URL')
                case _ as cp:
                    value += cp
        return positioned(TokenType.url)(value=value)
    def starts_ident_sequence(cps: str | None = None) -> bool:
        """See http://drafts.csswg.org/css-syntax#would-start-an-identifier."""
        if cps is None:
            cps = current_cp() + next(2)
        match cps[0:1]:
            case '-':
                return (is_ident_start_code_point(cp := cps[1:2]) or cp == '-') or is_valid_escape(cps[1:3])
            case cp if is_ident_start_code_point(cp):
                return True
            case '\\':
                return is_valid_escape(cps[0:2])
            case _:
                return False
    def starts_number(cps: str | None = None) -> bool:
        """See http://drafts.csswg.org/css-syntax#starts-with-a-number."""
        if cps is None:
            cps = current_cp() + next(2)
        match cps[0:1]:
            case '+' | '-':
                return is_digit(cp := cps[1:2]) or (cp == '.' and is_digit(cps[2:3]))
            case '.':
                return is_digit(cps[1:2])
            case cp if is_digit(cp):
                return True
            case _:
                return False
    def consume_delim_or_match(type: TokenType) -> Token:
        """Consume the `=` of a match token ahead, if any, or return the current code point as a delimiter."""
        if next(1) == '=':
            consume(1)
            return positioned(type)()
        return positioned(TokenType.delim)(value=current_cp())
    def consume_token() -> Token:
        """See http://drafts.csswg.org/css-syntax#consume-token."""
        consume(1)
        match current_cp():
            case cp if is_whitespace(cp):
                while is_whitespace(next(1)):
                    consume(1)
                return positioned(TokenType.whitespace)()
            case '"' | '\'':
                return consume_string_token()
            case '#' as cp:
                if is_ident_code_point(next(1)) or is_valid_escape(next(2)):
                    return positioned(TokenType.hash)(value=consume_ident_sequence())
                else:
                    return positioned(TokenType.delim)(value=cp)
            case '$':
                return consume_delim_or_match(TokenType.suffix_match)
            case '(':
                return positioned(TokenType.open_paren)()
            case ')':
                return positioned(TokenType.close_paren)()
            case '*':
                return consume_delim_or_match(TokenType.substring_match)
            case '+' as cp:
                if starts_number():
                    reconsume()
                    return consume_numeric_token()
                else:
                    return positioned(TokenType.delim)(value=cp)
            case ',':
                return positioned(TokenType.comma)()
            case '-' as cp:
                if starts_number():
                    reconsume()
                    return consume_numeric_token()
                elif next(2) == '->':
                    consume(2)
                    return positioned(TokenType.cdc)()
                elif starts_ident_sequence():
                    reconsume()
                    return consume_ident_like_token()
                else:
                    return positioned(TokenType.delim)(value=cp)
            case '.' as cp:
                if starts_number():
                    reconsume()
                    return consume_numeric_token()
                else:
                    return positioned(TokenType.delim)(value=cp)
            case ':':
                return positioned(TokenType.colon)()
            case ';':
                return positioned(TokenType.semicolon)()
            case '<' as cp:
                if next(3) == '!--':
                    consume(3)
                    return positioned(TokenType.cdo)()
                else:
                    return positioned(TokenType.delim)(value=cp)
            case '@' as cp:
                if starts_ident_sequence(next(3)):
                    return positioned(TokenType.at_keyword)(value=consume_ident_sequence())
                else:
                    return positioned(TokenType.delim)(value=cp)
            case '[':
                return positioned(TokenType.open_bracket)()
            case '\\' as cp:
                if is_valid_escape():
                    reconsume()
                    return consume_ident_like_token()
                else:
                    error(LexicalErrorCode.bad_escape, 'escaped newline outside of a string')
                    return positioned(TokenType.delim)(value=cp)
            case ']':
                return positioned(TokenType.close_bracket)()
            case '^':
                return consume_delim_or_match(TokenType.prefix_match)
            case '{':
                return positioned(TokenType.open_brace)()
            case '}':
                return positioned(TokenType.close_brace)()
            case '|':
                if next(1) == '|':
                    consume(1)
                    return positioned(TokenType.column)()
                return consume_delim_or_match(TokenType.dash_match)
            case '~':
                return consume_delim_or_match(TokenType.include_match)
            case cp if is_digit(cp):
                reconsume()
                return consume_numeric_token()
            case cp if is_ident_start_code_point(cp):
                reconsume()
                return consume_ident_like_token()
            case '':
                return positioned(TokenType.eof)()
            case _ as cp:
                return positioned(TokenType.delim)(value=cp)
    def consume_string_token() -> Token:
        """See http://drafts.csswg.org/css-syntax#consume-string-token.

        On a newline, the string is abandoned in its entirety -- an `error` token is returned instead, in place of the "bad string" token of [CSS Syntax], and the newline is reconsumed.
        """
        ending_cp = current_cp()
        value = ''
        while True:
            consume(1)
            match current_cp():
                case cp if cp == ending_cp:
                    break
                case '':
                    error(LexicalErrorCode.unterminated_string)
                    break
                case cp if is_newline(cp):
                    error(LexicalErrorCode.bad_string, 'newline inside string')
                    reconsume()
                    return positioned(TokenType.error)()
                case '\\':
                    if not (cp := next(1)):
                        pass
                    elif is_newline(cp):
                        consume(1)
                    else:
                        value += consume_escaped_code_point()
                case _ as cp:
                    value += cp
        return positioned(TokenType.string)(value=value)
    tokens: list[Token] = []
    while True:
        consume_comments()
        pos = mark = min(pos, len(input))
        tokens.append(token := consume_token())
        if token.type == TokenType.eof:
            return tokens

def normalize_input(input: bytes | str | Iterable[str]) -> list[FilteredCodePoint]:
    """Normalize input to the tokenization procedure.

    This is a convenience procedure which offers the caller of e.g. `tokenize` to not have to speculate on how to construct input to the latter while allowing `tokenize` to be strict about its input type.

    :param input: An input object to "normalize"; if a `bytes` object, the value is interpreted as UTF-8 encoded CSS text; if a [regular Python] string, the value is interpreted as a sequence of _unfiltered_ code points; otherwise, the input is assumed to be iterable and yield strings (sequences of _unfiltered_ code points)
    :return: The list of preprocessed code points, fit for passing as the `input` parameter to the `tokenize` procedure
    """
    match input:
        case bytes():
            codepoints = decode(input)
        case str():
            codepoints = list(input)
        case Iterable():
            codepoints = list(chain.from_iterable(input))
        case _:
            raise TypeError(f'Cannot tokenize an object of type {type(input).__name__}')
    preprocess(codepoints)
    return codepoints # type: ignore # Every element is a `FilteredCodePoint` after preprocessing

def tokenize_css(input: bytes | str | Iterable[str]) -> tuple[list[Token], list[LexicalError]]:
    """Tokenize CSS text, collecting the errors tokenization encountered instead of reporting them.

    :param input: CSS text, as accepted by `normalize_input`
    :returns: A pair of the list of tokens (ending with the `eof` token) and the list of errors, in the order they were encountered
    """
    errors: list[LexicalError] = []
    tokens = tokenize(normalize_input(input), parser_error=errors.append)
    return tokens, errors

def is_digit(cp: CP) -> bool:
    """See http://drafts.csswg.org/css-syntax/#digit."""
    return ('0' <= cp <= '9')

is_for_surrogate = is_surrogate_code_point_ordinal # Alias, for convenience

def is_hex_digit(cp: CP) -> bool:
    """See http://drafts.csswg.org/css-syntax/#hex-digit."""
    return is_digit(cp) or ('A' <= cp <= 'F') or ('a' <= cp <= 'f')

def is_ident_code_point(cp: CP) -> bool:
    """See http://drafts.csswg.org/css-syntax/#ident-code-point."""
    return is_ident_start_code_point(cp) or is_digit(cp) or cp == '-'

def is_ident_start_code_point(cp: CP) -> bool:
    """See http://drafts.csswg.org/css-syntax/#ident-start-code-point."""
    return ('A' <= cp <= 'Z') or ('a' <= cp <= 'z') or is_non_ascii_ident_code_point(cp) or cp == '_'

def is_newline(cp: CP) -> bool:
    """See http://drafts.csswg.org/css-syntax/#newline."""
    return cp == '\n'

def is_non_ascii_ident_code_point(cp: CP) -> bool:
    """See http://drafts.csswg.org/css-syntax/#non-ascii-ident-code-point."""
    return cp == '\u00b7' or '\u00c0' <= cp <= '\u00d6' or '\u00d8' <= cp <= '\u00f6' or '\u00f8' <= cp <= '\u037d' or '\u037f' <= cp <= '\u1fff' or cp in ('\u200c', '\u200d', '\u203f', '\u2040') or '\u2070' <= cp <= '\u218f' or '\u2c00' <= cp <= '\u2fef' or '\u3001' <= cp <= '\ud7ff' or '\uf900' <= cp <= '\ufdcf' or '\ufdf0' <= cp <= '\ufffd' or cp >= '\U00010000'

def is_non_printable_code_point(cp: CP) -> bool:
    """See http://drafts.csswg.org/css-syntax/#non-printable-code-point."""
    return '\u0000' <= cp <= '\u0008' or cp == '\u000b' or '\u000e' <= cp <= '\u001f' or cp == '\u007f'

def is_whitespace(cp: CP) -> bool:
    """See http://drafts.csswg.org/css-syntax/#whitespace."""
    return is_newline(cp) or cp in ('\t', ' ')
