"""
Pytest configuration and fixtures for backend API tests.
"""

import pytest
from unittest.mock import patch

from tab_companion.config import Settings
from tests.fakes import ASYNCIO_TEXT, VACCINE_TEXT


@pytest.fixture(autouse=True)
def reset_session():
    """Reset the global orchestrator and session state between tests."""
    import tab_companion.server.app as app_module

    app_module._orchestrator = None
    app_module._current_result = None
    app_module._current_items = []
    yield
    app_module._orchestrator = None
    app_module._current_result = None
    app_module._current_items = []


@pytest.fixture(autouse=True)
def mock_settings():
    """Settings without API keys, so no AI service is ever called in tests."""
    settings = Settings(_env_file=None, openai_api_key=None, you_api_key=None)
    with patch("tab_companion.server.app.get_settings") as mock:
        mock.return_value = settings
        yield settings


@pytest.fixture
def sample_tabs_data():
    """Sample tab data for testing API endpoints."""
    return {
        "tabs": [
            {
                "id": 1,
                "url": "https://www.nejm.org/doi/vaccine-trial",
                "title": "Vaccine Trial Results",
                "text": VACCINE_TEXT,
            },
            {
                "id": 2,
                "url": "https://www.nejm.org/doi/vaccine-efficacy",
                "title": "Vaccine Efficacy Study",
                "text": VACCINE_TEXT,
                "description": None,
            },
            {
                "id": 3,
                "url": "https://docs.python.org/3/library/asyncio.html",
                "title": "asyncio - Asynchronous I/O",
                "text": ASYNCIO_TEXT,
                "headings": ["Runners", "Coroutines and Tasks"],
            },
            {
                "id": 4,
                "url": "https://wiki.python.org/moin/AsyncIO",
                "title": "AsyncIO Coroutines",
                "text": ASYNCIO_TEXT,
            },
            {
                "id": 5,
                "url": "https://mail.google.com/mail/u/0",
                "title": "Inbox",
                "extraction_failed": True,
            },
        ],
        "deadline_seconds": 5,
    }
