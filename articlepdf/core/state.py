import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from articlepdf.core.errors import InitializationError

logger = logging.getLogger(__name__)

PACKAGE_ROOT = Path(__file__).resolve().parent.parent


@dataclass(frozen=True)
class RenderConfig:
    """Page, font and path settings handed to the PDF renderer."""
    base_url: str
    author: str
    root_dir: Path
    font_dir: Path
    cache_dir: Path
    creator: str = 'articlepdf'
    page_format: str = 'A4'
    page_orientation: str = 'P'
    unit: str = 'mm'
    margin_top: float = 10
    margin_bottom: float = 10
    margin_left: float = 15
    margin_right: float = 15
    margin_header: float = 5
    margin_footer: float = 10
    font_name_main: str = 'freeserif'
    font_size_main: float = 12
    font_name_data: str = 'freeserif'
    font_size_data: float = 8
    font_monospaced: str = 'freemono'
    font_size_monospaced: float = 10
    image_scale_ratio: float = 1.25
    cell_height_ratio: float = 1.25
    title_magnification: float = 1.3


def build_render_config(request_base_url: str, settings: Optional[Mapping] = None) -> RenderConfig:
    settings = settings or {}
    root_dir = Path(settings.get('PDF_ROOT_DIR') or Path.cwd())
    return RenderConfig(
        base_url=request_base_url,
        author=request_base_url,
        root_dir=root_dir,
        font_dir=Path(settings.get('PDF_FONT_DIR') or PACKAGE_ROOT / 'fonts'),
        cache_dir=Path(settings.get('PDF_CACHE_DIR') or root_dir / 'var' / 'cache' / 'pdf'),
        creator=settings.get('PDF_CREATOR') or 'articlepdf',
    )


class RenderConfigState:
    _instance = None
    _instance_lock = threading.Lock()

    def __init__(self):
        self._config = None
        self._lock = threading.Lock()

    @staticmethod
    def get_instance():
        if RenderConfigState._instance is None:
            with RenderConfigState._instance_lock:
                if RenderConfigState._instance is None:
                    RenderConfigState._instance = RenderConfigState()
                    logger.debug(f"RenderConfig: Created state holder {id(RenderConfigState._instance)}")
        return RenderConfigState._instance

    @property
    def is_initialized(self):
        return self._config is not None

    @property
    def config(self) -> RenderConfig:
        config = self._config
        if config is None:
            raise InitializationError("Render configuration has not been initialized.")
        return config

    def ensure_initialized(self, request_base_url: Optional[str], settings: Optional[Mapping] = None) -> RenderConfig:
        """
        Build the render configuration on first use and return it.

        Once a configuration exists, later calls return it unchanged and
        ignore their arguments. Raises InitializationError when no base URL
        is available; nothing is stored in that case.
        """
        config = self._config
        if config is not None:
            return config

        with self._lock:
            if self._config is not None:
                return self._config

            if not request_base_url:
                logger.error("RenderConfig: No request context, cannot derive the base URL.")
                raise InitializationError("Cannot initialize the render configuration without a request base URL.")

            config = build_render_config(request_base_url, settings)
            # Publish only the fully built object
            self._config = config
            logger.info(f"RenderConfig: Initialized for {config.base_url} ({config.page_format}, {config.page_orientation})")
            return config

    def reset(self):
        """Forget the configuration. Meant for tests."""
        with self._lock:
            self._config = None


def ensure_initialized(request_base_url, settings=None):
    return RenderConfigState.get_instance().ensure_initialized(request_base_url, settings)


def get_render_config():
    return RenderConfigState.get_instance().config
