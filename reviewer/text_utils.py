"""Text normalization utilities for scraped review and track metadata."""

import html
import re
import unicodedata

_UNICODE_ESCAPE = re.compile(r'\\u([0-9a-fA-F]{4})')
_TAG = re.compile(r'<.*?>', re.DOTALL)

# Applied in sequence with the escaped backslash last, so a backslash
# produced by decoding is never read as the start of another escape.
_CONTENT_ESCAPES = (
    ('\\n', '\n'),
    ('\\r', ''),
    ('\\t', '\t'),
    ('\\"', '"'),
    ("\\'", "'"),
    ('\\\\', '\\'),
)

_AUTHOR_ESCAPES = (
    ('\\n', ' '),
    ('\\r', ''),
    ('\\t', ' '),
    ('\\"', '"'),
    ("\\'", "'"),
    ('\\\\', '\\'),
)


def normalize_text(text: str, *,
                  remove_accents: bool = True,
                  lowercase: bool = True,
                  remove_punctuation: bool = False) -> str:
    """Normalize text with configurable features.

    Args:
        text: Input text to normalize
        remove_accents: Remove diacritical marks (NFD normalization)
        lowercase: Convert to lowercase
        remove_punctuation: Remove non-word characters except spaces

    Returns:
        Normalized text string
    """
    if not text:
        return ""

    result = text.strip()

    # Remove accents using NFD normalization
    if remove_accents:
        result = unicodedata.normalize('NFD', result)
        result = ''.join(char for char in result if unicodedata.category(char) != 'Mn')

    if lowercase:
        result = result.lower()

    if remove_punctuation:
        # Replace punctuation with spaces to preserve word boundaries
        result = re.sub(r'[^\w\s]', ' ', result)

    return re.sub(r'\s+', ' ', result).strip()


def decode_unicode_escapes(text: str) -> str:
    """Decode ``\\uXXXX`` sequences into their literal characters."""
    return _UNICODE_ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), text)


def decode_string_escapes(text: str, collapse_whitespace: bool = False) -> str:
    """Decode JSON string escapes, backslash last.

    With ``collapse_whitespace`` newlines and tabs become single spaces,
    which is what author names need.
    """
    escapes = _AUTHOR_ESCAPES if collapse_whitespace else _CONTENT_ESCAPES
    for escaped, literal in escapes:
        text = text.replace(escaped, literal)
    return text


def clean_review_text(text: str) -> str:
    """Unicode escapes -> string escapes -> HTML entities -> trim."""
    if not text:
        return ""
    text = decode_unicode_escapes(text)
    text = decode_string_escapes(text)
    return html.unescape(text).strip()


def clean_author_name(text: str) -> str:
    """Same pipeline as clean_review_text, collapsing line breaks to spaces."""
    if not text:
        return ""
    text = decode_unicode_escapes(text)
    text = decode_string_escapes(text, collapse_whitespace=True)
    return html.unescape(text).strip()


def strip_tags(markup: str) -> str:
    """Remove markup tags in a single non-nested pass."""
    return _TAG.sub('', markup)
