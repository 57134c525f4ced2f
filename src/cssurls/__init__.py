"""Tokenization of CSS text aligned with [CSS] specification(s), and segmentation of the text around the URLs it references."""

from .segmenting import default_classifier, Segment, segment_css, SegmentType, URLClassifier
from .syntax.preprocessing import decode, preprocess
from .syntax.tokenizing import normalize_input, Numeric, Token, tokenize, tokenize_css, TokenType
from .utils import LexicalError, LexicalErrorCode, ParseError, SegmentationError

__all__ = [
    'decode',
    'default_classifier',
    'LexicalError',
    'LexicalErrorCode',
    'normalize_input',
    'Numeric',
    'ParseError',
    'preprocess',
    'Segment',
    'segment_css',
    'SegmentationError',
    'SegmentType',
    'Token',
    'tokenize',
    'tokenize_css',
    'TokenType',
    'URLClassifier',
]
