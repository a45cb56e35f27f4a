"""
Article markup normalizer.

Rewrites article HTML into markup the PDF renderer can lay out. The work is
split into small passes, each a plain ``str -> str`` function, applied in the
order given by ``PASSES``. None of them raise: a pattern that does not match
leaves the text as it was.
"""

import logging
import re
import urllib.parse

logger = logging.getLogger(__name__)

LINE_BREAK = '<br>'

SRC_ATTR_PATTERN = re.compile(r'src="[^"]+"')
PRE_BLOCK_PATTERN = re.compile(r'<pre.*?</pre>', re.IGNORECASE | re.DOTALL)
UNDERLINE_SPAN_PATTERN = re.compile(r'<span style="text-decoration: ?underline;?">(.*?)</span>', re.DOTALL)
IMG_TAG_PATTERN = re.compile(r'(<img[^>]+>)')
# Substring heuristic: any div whose attributes mention "block" (class, style, id...)
BLOCK_DIV_PATTERN = re.compile(r'(<div[^>]+block[^>]+>)')
CONTROL_WHITESPACE_PATTERN = re.compile(r'[\n\r\t]+')
BREAK_BEFORE_ARTICLE_PATTERN = re.compile(r'<br( /)?><div class="mod_article')
# "&amp;" is tried before "&" so the entity form is removed as a whole
PDF_LINK_PATTERN = re.compile(r'href="([^"]+)(pdf=[0-9]*(&amp;|&)?)([^"]*)"')


def _decode_attribute(match):
    raw = urllib.parse.unquote_to_bytes(match.group(0))
    try:
        return raw.decode('utf-8')
    except UnicodeDecodeError:
        # Escapes that are not UTF-8 stay encoded
        return match.group(0)


def decode_image_sources(html: str) -> str:
    """URL-decode every src="..." attribute. Paths are encoded for browsers, the renderer wants them raw."""
    return SRC_ATTR_PATTERN.sub(_decode_attribute, html)


def convert_preformatted_newlines(html: str) -> str:
    """Turn newlines inside <pre> blocks into explicit line breaks."""
    return PRE_BLOCK_PATTERN.sub(lambda m: m.group(0).replace('\n', LINE_BREAK), html)


def normalize_underline(html: str) -> str:
    return UNDERLINE_SPAN_PATTERN.sub(r'<u>\1</u>', html)


def promote_images(html: str) -> str:
    """Force every image onto its own line."""
    return IMG_TAG_PATTERN.sub(LINE_BREAK + r'\1', html)


def promote_block_divs(html: str) -> str:
    return BLOCK_DIV_PATTERN.sub(LINE_BREAK + r'\1', html)


def collapse_whitespace(html: str) -> str:
    return CONTROL_WHITESPACE_PATTERN.sub(' ', html)


def drop_break_before_article(html: str) -> str:
    """Remove the line break in front of an article container div."""
    return BREAK_BEFORE_ARTICLE_PATTERN.sub('<div class="mod_article', html)


def strip_pdf_links(html: str) -> str:
    """
    Remove the pdf=<id> query parameter from links, so the generated PDF does
    not carry "print as PDF" links pointing back at itself.
    """
    return PDF_LINK_PATTERN.sub(r'href="\1\4"', html)


# Order matters: newlines in <pre> must become breaks before whitespace is collapsed.
PASSES = (
    decode_image_sources,
    convert_preformatted_newlines,
    normalize_underline,
    promote_images,
    promote_block_divs,
    collapse_whitespace,
    drop_break_before_article,
    strip_pdf_links,
)


def normalize(html: str) -> str:
    """
    Apply all normalization passes to ``html`` and return the result.
    """
    result = html
    for rewrite in PASSES:
        result = rewrite(result)
    logger.debug(f"Normalizer: {len(html)} -> {len(result)} characters")
    return result
