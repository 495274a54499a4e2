import pytest
from rest_framework.test import APIClient


@pytest.fixture(autouse=True)
def isolated_storage(settings, tmp_path):
    """Keep uploads and the local JSON store inside the test's tmp dir."""
    settings.MEDIA_ROOT = str(tmp_path / "media")
    settings.DATA_DIR = tmp_path / "data"
    settings.CHAT_VISUALIZATIONS = False
    settings.CHAT_SYSTEM_PROMPT = ""
    return tmp_path


@pytest.fixture
def api_client():
    return APIClient()
