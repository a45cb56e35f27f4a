import io
import html
import hashlib
import logging
import re
import traceback
import urllib.parse
from collections.abc import Mapping
from pathlib import Path

import requests
from bs4 import BeautifulSoup
from flask import Blueprint, current_app, has_app_context, has_request_context, jsonify, request, send_file

from articlepdf.core.errors import ArticlePdfError, RenderError
from articlepdf.core.metadata import ArticleModule, DocumentMetadata, PdfDownload
from articlepdf.core.normalizer import normalize
from articlepdf.core.pdf_document import PDFDocument
from articlepdf.core.standardize import pdf_filename
from articlepdf.core.state import RenderConfigState
from articlepdf.features.registry import Feature, FeatureState, FeatureType

PRINT_ARTICLE_AS_PDF = "printArticleAsPdf"
REMOTE_IMAGE_TIMEOUT = 5
# Returned to the renderer for resources it must not load
SKIPPED_RESOURCE = ''

PAGE_ORIENTATIONS = {'P': 'portrait', 'L': 'landscape'}
# Built-in renderer fonts used when no font file is installed
FONT_FALLBACKS = {'freeserif': 'serif', 'freesans': 'sans-serif', 'freemono': 'monospace'}
FONT_SUFFIXES = ('.ttf', '.otf')
PIXEL_VALUE = re.compile(r'(\d+(?:\.\d+)?)(?:px)?')

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------------
# Document Assembly
# -------------------------------------------------------------------------

def find_font_file(font_dir, font_name):
    """Return the font file for ``font_name`` in ``font_dir`` (case-insensitive), or None."""
    font_dir = Path(font_dir)
    if not font_dir.is_dir():
        return None
    for candidate in font_dir.iterdir():
        if candidate.suffix.lower() in FONT_SUFFIXES and candidate.stem.lower() == font_name.lower():
            return candidate
    return None


def font_stack(font_name):
    return f"{font_name}, {FONT_FALLBACKS.get(font_name.lower(), 'serif')}"


def build_stylesheet(config):
    """
    Print stylesheet for the renderer, derived from the render configuration.
    No header or footer frames are defined, so pages carry the article only.
    """
    orientation = PAGE_ORIENTATIONS.get(config.page_orientation.upper(), 'portrait')
    unit = config.unit

    font_faces = []
    for font_name in sorted({config.font_name_main, config.font_name_data, config.font_monospaced}):
        font_file = find_font_file(config.font_dir, font_name)
        if font_file:
            font_faces.append(f'@font-face {{ font-family: {font_name}; src: url("{font_file.as_posix()}"); }}')
        else:
            logger.debug(f"PDFExport: No font file for '{font_name}' in {config.font_dir}, using fallback.")

    rules = font_faces + [
        f"@page {{ size: {config.page_format.lower()} {orientation}; "
        f"margin: {config.margin_top}{unit} {config.margin_right}{unit} "
        f"{config.margin_bottom}{unit} {config.margin_left}{unit}; }}",
        f"body {{ font-family: {font_stack(config.font_name_main)}; "
        f"font-size: {config.font_size_main}pt; line-height: {config.cell_height_ratio}; }}",
        f"h1 {{ font-size: {round(config.font_size_main * config.title_magnification, 2)}pt; }}",
        f"pre, code, tt, kbd {{ font-family: {font_stack(config.font_monospaced)}; "
        f"font-size: {config.font_size_monospaced}pt; }}",
        f"table {{ font-size: {config.font_size_main}pt; }}",
        f"small, sup, sub {{ font-size: {config.font_size_data}pt; }}",
    ]
    return "\n".join(rules)


def scale_images(article_html, ratio):
    """
    Shrink explicit pixel sizes of images by the image scale ratio, the way
    the page maps screen pixels to print units.
    """
    if not ratio or ratio == 1 or '<img' not in article_html:
        return article_html

    soup = BeautifulSoup(article_html, 'html.parser')
    for img in soup.find_all('img'):
        for attr in ('width', 'height'):
            value = img.get(attr)
            match = PIXEL_VALUE.fullmatch(value.strip()) if value else None
            if match:
                img[attr] = str(round(float(match.group(1)) / ratio))
    return str(soup)


def esc(value):
    return html.escape(value or "", quote=True)


def build_document(article_html, metadata, config):
    """Wrap normalized article HTML in a complete document for the renderer."""
    body = scale_images(article_html, config.image_scale_ratio)

    return (
        f'<html lang="{esc(metadata.language_code)}" dir="{esc(metadata.direction)}">\n'
        f'<head>\n'
        f'<meta charset="{esc(metadata.character_set)}">\n'
        f'<title>{esc(metadata.title)}</title>\n'
        f'<meta name="author" content="{esc(metadata.base_author_url)}">\n'
        f'<meta name="subject" content="{esc(metadata.title)}">\n'
        f'<meta name="keywords" content="{esc(metadata.keywords)}">\n'
        f'<style>\n{build_stylesheet(config)}\n</style>\n'
        f'</head>\n'
        f'<body>\n{body}\n</body>\n'
        f'</html>'
    )

# -------------------------------------------------------------------------
# Resource Resolution
# -------------------------------------------------------------------------

def _fetch_remote(url, cache_dir):
    """Download ``url`` into the cache dir and return the local path, or None."""
    suffix = Path(urllib.parse.urlparse(url).path).suffix[:10]
    target = Path(cache_dir) / (hashlib.sha1(url.encode('utf-8')).hexdigest() + suffix)
    if target.exists():
        return str(target)

    try:
        response = requests.get(url, timeout=REMOTE_IMAGE_TIMEOUT)
    except requests.RequestException as e:
        logger.warning(f"PDFExport: Could not fetch '{url}': {e}")
        return None

    if response.status_code != 200:
        logger.warning(f"PDFExport: Fetching '{url}' returned {response.status_code}")
        return None

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(response.content)
    except OSError as e:
        logger.warning(f"PDFExport: Could not cache '{url}' in {cache_dir}: {e}")
        return None
    return str(target)


def _contained_file(candidate, allowed_dirs):
    """``candidate`` resolved, if it is an existing file inside one of ``allowed_dirs``."""
    resolved = Path(candidate).resolve()
    if not resolved.is_file():
        return None
    for directory in allowed_dirs:
        try:
            resolved.relative_to(Path(directory).resolve())
        except ValueError:
            continue
        return str(resolved)
    return None


def _resolve_local(path, config):
    """Local files are only used from below the web root or the font directory."""
    if not path:
        return None
    local_path = _contained_file(Path(config.root_dir) / path.lstrip('/\\'), [config.root_dir])
    if local_path:
        return local_path
    if Path(path).is_absolute():
        local_path = _contained_file(path, [config.root_dir, config.font_dir])
        if not local_path:
            logger.warning(f"PDFExport: Not reading '{path}' from disk, outside the web root")
        return local_path
    return None


def _same_origin(url, base_url):
    target, base = urllib.parse.urlparse(url), urllib.parse.urlparse(base_url)
    return (target.scheme, target.netloc) == (base.scheme, base.netloc)


def make_link_callback(config):
    """
    Resolve image and stylesheet URIs for the renderer: files below the web
    root are used directly, absolute http(s) URIs are fetched and cached,
    relative URIs are fetched from the site's own origin only.
    """
    def _link_callback(uri, rel):
        if not uri or uri.startswith('data:'):
            return uri

        parsed = urllib.parse.urlparse(uri)
        if parsed.scheme in ('http', 'https'):
            return _fetch_remote(uri, config.cache_dir) or uri
        if parsed.scheme or parsed.netloc:
            logger.warning(f"PDFExport: Unsupported resource URI '{uri}'")
            return SKIPPED_RESOURCE

        local_path = _resolve_local(parsed.path, config)
        if local_path:
            return local_path

        absolute = urllib.parse.urljoin(config.base_url, uri)
        if not _same_origin(absolute, config.base_url):
            logger.warning(f"PDFExport: '{uri}' leaves the site origin, skipped")
            return SKIPPED_RESOURCE
        return _fetch_remote(absolute, config.cache_dir) or absolute

    return _link_callback

# -------------------------------------------------------------------------
# Main Export Function
# -------------------------------------------------------------------------

def export_pdf(article_html: str, metadata, config) -> bytes:
    """
    Render normalized article HTML to PDF using xhtml2pdf.
    Returns bytes. Any renderer failure is raised as RenderError.
    """
    try:
        from xhtml2pdf import pisa
    except ImportError as ie:
        logger.error(f"PDFExport: xhtml2pdf import failed: {ie}")
        raise RenderError(f"xhtml2pdf library is missing/broken. Detail: {ie}") from ie

    document = build_document(article_html, metadata, config)

    result = io.BytesIO()
    try:
        pisa_status = pisa.CreatePDF(
            document,
            dest=result,
            link_callback=make_link_callback(config),
            encoding=metadata.character_set,
        )
    except Exception as e:
        logger.error(f"PDFExport: renderer crashed: {e}")
        logger.error(traceback.format_exc())
        raise RenderError(f"PDF Export Failed: {e}") from e

    if pisa_status.err:
        raise RenderError(f"PDF generation error: {pisa_status.err}")

    try:
        pdf_bytes = PDFDocument.stamp_metadata(result.getvalue(), metadata)
    except Exception as e:
        logger.error(f"PDFExport: could not write document metadata: {e}")
        raise RenderError(f"PDF metadata update failed: {e}") from e

    logger.info(f"PDFExport: Generated {len(pdf_bytes)} bytes.")
    return pdf_bytes

# -------------------------------------------------------------------------
# Event Listener
# -------------------------------------------------------------------------

def resolve_request_base_url():
    """Host plus base path of the current request, or None outside a request."""
    if not has_request_context():
        return None
    return request.host_url.rstrip('/') + request.script_root + '/'


def _app_settings():
    return current_app.config if has_app_context() else {}


def on_print_article_as_pdf(article, module, base_url=None, language=None, character_set=None, settings=None):
    """
    Handle a print-article event: normalize the markup, make sure the render
    configuration exists, render and return the download.
    """
    if settings is None:
        settings = _app_settings()

    article = normalize(article)

    config = RenderConfigState.get_instance().ensure_initialized(
        base_url or resolve_request_base_url(),
        settings,
    )
    metadata = DocumentMetadata.from_module(
        module,
        language or settings.get('LANGUAGE'),
        character_set or settings.get('CHARACTER_SET'),
        config,
    )

    content = export_pdf(article, metadata, config)
    filename = pdf_filename(module.title)
    logger.info(f"PDFExport: Prepared download '{filename}'")
    return PdfDownload(filename=filename, content=content)

# -------------------------------------------------------------------------
# HTTP Delivery
# -------------------------------------------------------------------------

print_bp = Blueprint('pdf_export', __name__)
blueprint = print_bp


@print_bp.route('/print/article', methods=['POST'])
def print_article():
    payload = request.get_json(silent=True)
    if payload is None:
        payload = request.form
    if not isinstance(payload, Mapping):
        return jsonify({"error": "Request body must be an object."}), 400

    article = payload.get('article')
    if not article:
        return jsonify({"error": "Missing 'article' HTML."}), 400

    module = ArticleModule(title=payload.get('title') or '', keywords=payload.get('keywords') or '')
    registry = current_app.extensions['articlepdf.features']

    try:
        download = registry.dispatch(PRINT_ARTICLE_AS_PDF, article, module, language=payload.get('language'))
    except ArticlePdfError as e:
        logger.error(f"PDFExport: print failed: {e}")
        return jsonify({"error": str(e)}), 500

    if download is None:
        return jsonify({"error": "No listener produced a PDF."}), 501

    return send_file(
        io.BytesIO(download.content),
        mimetype=download.mimetype,
        as_attachment=True,
        download_name=download.filename,
    )


def get_features():
    return [
        Feature(
            "printArticleAsPdf",
            handler=on_print_article_as_pdf,
            feature_type=FeatureType.EVENT_LISTENER,
            state=FeatureState.STANDARD,
            meta={"event": PRINT_ARTICLE_AS_PDF}
        ),
        Feature(
            "pdf_export",
            handler=export_pdf,
            feature_type=FeatureType.EXPORT_HANDLER,
            state=FeatureState.STANDARD,
            meta={
                "extension": "pdf",
                "label": "PDF Document (.pdf)",
                "description": "Renders normalized article HTML with xhtml2pdf.",
                "version": "1.0.0"
            }
        ),
    ]


PLUGIN_METADATA = {
    'name': 'Print Article as PDF',
    'description': 'Normalizes article markup and streams it back as a PDF download.',
    'category': 'export',
    'icon': 'fa-file-pdf',
    'preinstalled': True
}
