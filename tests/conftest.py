import os

os.environ.setdefault("DIFY_API_KEY", "test-key")

import pytest  # noqa: E402

from dify_mcp.settings import get_settings  # noqa: E402

from tests.helpers import SAMPLE_PNG  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def image_file(tmp_path):
    path = tmp_path / "mockup.png"
    path.write_bytes(SAMPLE_PNG)
    return path
