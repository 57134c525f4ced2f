"""Segmentation of CSS text into raw byte ranges and the URLs referenced by the text.

Segmentation allows URLs in a stylesheet to be rewritten (e.g. to point at a CDN) without parsing the stylesheet into a tree and re-serializing it: the stylesheet is tokenized, and the tokens are walked once, tracking only as much structure as is needed to tell which kind of resource a URL refers to -- the property of the declaration featuring the URL, and whether the declaration is part of an `@font-face` rule.

Everything that isn't a URL ends up in `bytes` segments, sliced from the input using token offsets -- never re-serialized from tokens -- so that comments and formatting are preserved exactly. Concatenating the segments, with every URL wrapped back in `url(...)` (quoted as the caller sees fit), reproduces the stylesheet.
"""

from .syntax.preprocessing import encoded_length
from .syntax.tokenizing import mirror_types, normalize_input, Token, tokenize, TokenType
from .utils import LexicalError, parser_error, SegmentationError

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import auto, StrEnum
from itertools import accumulate

class SegmentType(StrEnum):
    bytes = auto() # A slice of the input, to be emitted as is
    image_url = auto()
    other_url = auto() # In practice, a font

@dataclass(frozen=True, kw_only=True, slots=True)
class Segment:
    """A contiguous, labeled slice of a stylesheet.

    For `bytes` segments, `data` is the [UTF-8 encoded] slice of the input itself. For URL segments, `data` is the URL with escapes decoded, and without the `url(...)` wrapper or quotes -- when the segments are assembled back into a stylesheet, the URL must be enclosed in e.g. `url("...")`, escaping quotes in the URL with a backslash as necessary.
    """
    type: SegmentType
    data: bytes | str
    start: int # Offset, in bytes, of the segment in the input
    end: int # Offset just past the last byte of the segment in the input; for URL segments the range includes the `url(...)` wrapper

default_image_properties = frozenset((
    'background',
    'background-image',
    'border-image',
    'border-image-source',
    'content',
    'cursor',
    'list-style',
    'list-style-image',
    'mask',
    'mask-image',
    'shape-outside',
    '-webkit-border-image',
    '-webkit-mask',
    '-webkit-mask-box-image',
    '-webkit-mask-box-image-source',
    '-webkit-mask-image',
))

@dataclass(frozen=True, kw_only=True, slots=True)
class URLClassifier:
    """The table that decides which kind of resource a URL refers to.

    URLs inside the body of one of `font_face_rules` are "other" URLs, regardless of property. Otherwise the (lowercase) name of the property of the declaration featuring the URL is looked up in `image_properties` and then `other_properties`; URLs of properties in neither set, or not featured in a declaration at all, are image URLs.

    Use `dataclasses.replace` on `default_classifier` to derive variants.
    """
    image_properties: frozenset[str] = default_image_properties
    other_properties: frozenset[str] = frozenset()
    font_face_rules: frozenset[str] = frozenset(('font-face',)) # Names of at-rules (lowercase, without the `@`) whose bodies declare fonts
    def classify(self, property_name: str | None, *, in_font_face: bool) -> SegmentType:
        if in_font_face:
            return SegmentType.other_url
        name = property_name.lower() if property_name else None
        if name in self.image_properties:
            return SegmentType.image_url
        elif name in self.other_properties:
            return SegmentType.other_url
        else:
            return SegmentType.image_url

default_classifier = URLClassifier()

@dataclass(slots=True)
class ScanContext:
    """The structure of a stylesheet that surrounds a token, as far as URL classification is concerned.

    Tokens are fed to the context one by one, in order. Nesting is tracked with a stack of the closing tokens expected next, e.g. `close_paren` after an opening parenthesis or a function token; a closing token that doesn't match the top of the stack is ignored, while a closing brace closes everything opened since the matching opening brace. A "statement" is the sequence of non-whitespace tokens at block level since the last semicolon or brace, which is where at-rule names and declaration property names are picked up.
    """
    classifier: URLClassifier
    property_name: str | None = None # Name of the property of the current declaration, if any
    closers: list[tuple[TokenType, bool]] = field(default_factory=list) # The closing tokens expected, innermost last, each with whether it closes a font face rule body
    head: Token | None = None # First token of the current statement
    length: int = 0 # Number of tokens in the current statement
    font_face_pending: bool = False # Whether the current statement is the prelude of a font face rule
    @property
    def at_block_level(self) -> bool:
        return not self.closers or self.closers[-1][0] == TokenType.close_brace
    @property
    def in_font_face(self) -> bool:
        return any(font_face for _, font_face in self.closers)
    def end_statement(self) -> None:
        self.property_name = None
        self.head = None
        self.length = 0
        self.font_face_pending = False
    def feed(self, token: Token) -> None:
        if token.type == TokenType.whitespace:
            return
        at_block_level = self.at_block_level
        match token.type:
            case TokenType.open_brace:
                self.closers.append((TokenType.close_brace, self.font_face_pending))
                self.end_statement()
                return
            case TokenType.close_brace:
                if any(closer == TokenType.close_brace for closer, _ in self.closers):
                    while self.closers.pop()[0] != TokenType.close_brace:
                        pass
                self.end_statement()
                return
            case TokenType.semicolon if at_block_level:
                self.end_statement()
                return
            case TokenType.open_paren | TokenType.open_bracket:
                self.closers.append((mirror_types[token.type], False))
            case TokenType.function:
                self.closers.append((TokenType.close_paren, False))
            case TokenType.close_paren | TokenType.close_bracket:
                if self.closers and self.closers[-1][0] == token.type:
                    self.closers.pop()
            case TokenType.at_keyword if at_block_level and not self.length:
                self.font_face_pending = token.value.lower() in self.classifier.font_face_rules
            case TokenType.colon if at_block_level and self.property_name is None and self.length == 1 and self.head and self.head.type == TokenType.ident:
                self.property_name = self.head.value
        if at_block_level:
            if not self.length:
                self.head = token
            self.length += 1

def match_url_function(tokens: Sequence[Token], index: int) -> tuple[Token, Token] | None:
    """Match a `url(` function token, followed by a string and a closing parenthesis.

    White-space is permitted around the string.

    :param tokens: The token sequence
    :param index: Index of the `url(` function token in `tokens`
    :returns: The string token and the closing parenthesis token, or `None` if the tokens following the function token are anything else
    """
    assert tokens[index].type == TokenType.function
    found: list[Token] = []
    for token in (tokens[i] for i in range(index + 1, len(tokens))):
        if token.type == TokenType.whitespace:
            continue
        found.append(token)
        if len(found) == 2:
            break
    match found:
        case [Token(type=TokenType.string) as string, Token(type=TokenType.close_paren) as closing]:
            return string, closing
        case _:
            return None

def segment_css(utf8_css: bytes, *, classifier: URLClassifier = default_classifier, parser_error: Callable[[LexicalError], None] = parser_error) -> list[Segment]:
    """Chop a stylesheet into segments, each either a slice of the stylesheet or a URL it references.

    A URL is either a `url` token -- e.g. `url(foo.png)` -- or a `url(` function token followed by a string and a closing parenthesis, e.g. `url("foo.png")`. Other constructs, malformed ones included (e.g. `url(foo "bar")`), end up in `bytes` segments. The segments partition the input: they are in input order and their [byte] ranges are contiguous, covering all of the input. Empty `bytes` segments are never produced, so empty input produces no segments.

    Errors encountered during tokenization are merely reported (see `parser_error`) and never affect the result.

    :param utf8_css: The stylesheet, UTF-8 encoded; invalid byte sequences are tolerated and preserved as is in `bytes` segments
    :param classifier: The table used to classify URLs as referencing images or other resources
    :param parser_error: A callable to report tokenization errors to, e.g. the `append` method of a list
    :returns: The list of segments
    :raises SegmentationError: If tokenization did not terminate the token sequence with the end-of-stream token; not expected to ever happen
    """
    match utf8_css:
        case bytes():
            pass
        case bytearray() | memoryview():
            utf8_css = bytes(utf8_css)
        case _:
            raise TypeError(f'Expected UTF-8 encoded CSS text, got an object of type {type(utf8_css).__name__}')
    codepoints = normalize_input(utf8_css)
    tokens = tokenize(codepoints, parser_error=parser_error)
    if not tokens or tokens[-1].type != TokenType.eof:
        raise SegmentationError('The token sequence is not terminated by the end-of-stream token')
    offsets = list(accumulate(map(encoded_length, codepoints), initial=0)) # Byte offset in `utf8_css` of every [preprocessed] code point, by index, followed by the length of `utf8_css`
    assert offsets[-1] == len(utf8_css)
    segments: list[Segment] = []
    start = 0 # Index of the code point that begins the pending `bytes` segment
    def emit_bytes(end: int) -> None:
        if offsets[start] < offsets[end]:
            segments.append(Segment(type=SegmentType.bytes, data=utf8_css[offsets[start]:offsets[end]], start=offsets[start], end=offsets[end]))
    def emit_url(url: str, first: Token, last: Token) -> None:
        nonlocal start
        emit_bytes(first.offset)
        segments.append(Segment(type=classifier.classify(context.property_name, in_font_face=context.in_font_face), data=url, start=offsets[first.offset], end=offsets[last.end]))
        start = last.end
    context = ScanContext(classifier=classifier)
    for index, token in enumerate(tokens):
        match token.type:
            case TokenType.url:
                emit_url(token.value, token, token)
            case TokenType.function if token.value.lower() == 'url' and (argument := match_url_function(tokens, index)):
                emit_url(argument[0].value, token, argument[1])
        context.feed(token)
    emit_bytes(len(codepoints))
    return segments
