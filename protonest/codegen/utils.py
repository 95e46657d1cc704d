import re
import unicodedata

__all__ = (
    'RAW_IDENTIFIER_PREFIX',
    'RUST_KEYWORDS',
    'UNRAWABLE_KEYWORDS',
    'escape_keyword',
    'file_stem',
    'remove_accents',
    'sanitize_identifier',
    'to_snake_case',
)

RAW_IDENTIFIER_PREFIX = 'r#'

# Strict, reserved and edition-2018+ keywords of the Rust language.
RUST_KEYWORDS = frozenset(
    {
        # strict
        'as', 'async', 'await', 'break', 'const', 'continue', 'crate', 'dyn',
        'else', 'enum', 'extern', 'false', 'fn', 'for', 'if', 'impl', 'in',
        'let', 'loop', 'match', 'mod', 'move', 'mut', 'pub', 'ref', 'return',
        'self', 'Self', 'static', 'struct', 'super', 'trait', 'true', 'type',
        'unsafe', 'use', 'where', 'while',
        # reserved
        'abstract', 'become', 'box', 'do', 'final', 'gen', 'macro', 'override',
        'priv', 'try', 'typeof', 'unsized', 'virtual', 'yield',
    }
)

# Keywords that cannot be written as raw identifiers and get a suffix instead.
UNRAWABLE_KEYWORDS = frozenset({'self', 'super', 'crate', 'Self'})


def remove_accents(input_str):
    nfkd_form = unicodedata.normalize('NFKD', input_str)
    return ''.join(c for c in nfkd_form if not unicodedata.combining(c))


def to_snake_case(name: str) -> str:
    """Convert a package segment to the snake_case module name Rust expects.

    Word boundaries are placed between a lowercase letter or digit and an
    uppercase letter, and inside runs of capitals before the last capital
    that starts a new word (``HTTPServer`` becomes ``http_server``).
    """
    s = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1_\2', name)
    s = re.sub(r'([a-z\d])([A-Z])', r'\1_\2', s)
    s = re.sub(r'[^A-Za-z0-9]+', '_', s)
    return s.strip('_').lower()


def sanitize_identifier(name: str) -> str:
    """Convert a string into a valid (possibly reserved) Rust identifier.

    - Strip accents and replace illegal characters with underscores
    - Ensure it doesn't start with a digit
    - Never return an empty string
    """
    sanitized = re.sub(r'[^A-Za-z0-9_]', '_', remove_accents(name))
    if sanitized and sanitized[0].isdigit():
        sanitized = '_' + sanitized
    if not sanitized or sanitized == '_':
        return '_unnamed'
    return sanitized


def escape_keyword(name: str) -> str:
    if name in UNRAWABLE_KEYWORDS:
        return f'{name}_'
    if name in RUST_KEYWORDS:
        return f'{RAW_IDENTIFIER_PREFIX}{name}'
    return name


def file_stem(identifier: str) -> str:
    """Return the file name stem used for a module identifier.

    Raw identifiers live in files named without the ``r#`` prefix.
    """
    if identifier.startswith(RAW_IDENTIFIER_PREFIX):
        return identifier[len(RAW_IDENTIFIER_PREFIX) :]
    return identifier
