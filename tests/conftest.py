import os
import sys

import pytest

# Setup paths
current_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(current_dir)
sys.path.insert(0, project_root)

from articlepdf.core.state import RenderConfigState

TEST_BASE_URL = "http://localhost:8000/"


@pytest.fixture(autouse=True)
def reset_render_config():
    """Every test starts without a render configuration."""
    RenderConfigState.get_instance().reset()
    yield
    RenderConfigState.get_instance().reset()


@pytest.fixture
def base_url():
    return TEST_BASE_URL


@pytest.fixture
def render_settings(tmp_path):
    return {
        'PDF_ROOT_DIR': str(tmp_path / 'web'),
        'PDF_FONT_DIR': str(tmp_path / 'fonts'),
        'PDF_CACHE_DIR': str(tmp_path / 'cache'),
        'PDF_CREATOR': 'articlepdf tests',
    }
