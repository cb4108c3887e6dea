"""
Shared fixtures for tab clustering tests.
"""

import pytest

from tab_companion.agents.models import TabItem
from tests.fakes import ASYNCIO_TEXT, VACCINE_TEXT


@pytest.fixture
def scenario_items():
    """Five tabs: two about a vaccine trial, two about asyncio, one recipe."""
    return [
        TabItem(
            id=1,
            url="https://www.nejm.org/doi/vaccine-trial",
            title="Vaccine Trial Results",
            text=VACCINE_TEXT,
        ),
        TabItem(
            id=2,
            url="https://www.nejm.org/doi/vaccine-efficacy",
            title="Vaccine Efficacy Study",
            text=VACCINE_TEXT,
        ),
        TabItem(
            id=3,
            url="https://docs.python.org/3/library/asyncio.html",
            title="asyncio - Asynchronous I/O",
            text=ASYNCIO_TEXT,
        ),
        TabItem(
            id=4,
            url="https://wiki.python.org/moin/AsyncIO",
            title="AsyncIO Coroutines",
            text=ASYNCIO_TEXT,
        ),
        TabItem(
            id=5,
            url="https://www.allrecipes.com/recipe/banana-bread",
            title="Banana Bread Recipe",
            text="Bake moist banana bread with ripe bananas, butter, sugar and flour in the oven.",
        ),
    ]
