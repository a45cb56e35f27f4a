import html
import re

INSERT_TAG_PATTERN = re.compile(r'\{\{[^{}]*\}\}')
INVALID_CHARS_PATTERN = re.compile(r'[^\w .&/-]+')
SEPARATOR_RUN_PATTERN = re.compile(r'[ .&/-]+')
AMPERSAND_PATTERN = re.compile(r'&(amp;)?', re.IGNORECASE)

FALLBACK_NAME = 'article'


def standardize(value, preserve_uppercase=False):
    """
    Turn a string into a filesystem and URL safe name.

    Entities are decoded, insert tags dropped, anything but letters, digits,
    underscores and separators removed, and separator runs collapsed to "-".
    Names starting with a digit get an "id-" prefix.
    """
    value = html.unescape(value or '')
    value = INSERT_TAG_PATTERN.sub('', value)
    value = INVALID_CHARS_PATTERN.sub('', value)
    value = SEPARATOR_RUN_PATTERN.sub('-', value)

    if value[:1].isdigit():
        value = 'id-' + value

    if not preserve_uppercase:
        value = value.lower()

    return value.strip('-')


def pdf_filename(title):
    """Download filename for an article title, e.g. "Foo &amp; Bar" -> "foo-bar.pdf"."""
    name = standardize(AMPERSAND_PATTERN.sub('&', title or ''))
    return f"{name or FALLBACK_NAME}.pdf"
