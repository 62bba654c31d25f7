from datetime import date, timedelta

import pytest
import responses

from masjid_board.plugins.wisdom.service import (
    EMPTY_RESPONSE_QUOTE,
    ERROR_QUOTE,
    NO_PROVIDER_QUOTE,
    DailyWisdomService,
)

PROVIDER_URL = "https://quotes.test/today"


class Calendar:
    def __init__(self):
        self.day = date(2024, 5, 6)

    def __call__(self):
        return self.day


@pytest.fixture
def calendar():
    return Calendar()


def service(tmp_path, calendar, **config):
    return DailyWisdomService(config, cache_dir=str(tmp_path), today=calendar)


def test_without_provider(tmp_path, calendar):
    assert service(tmp_path, calendar).get_quote() == NO_PROVIDER_QUOTE


def test_fetches_once_per_day(tmp_path, calendar, mocked):
    mocked.add(responses.GET, PROVIDER_URL, json={"text": "Seek knowledge from the cradle to the grave."})
    wisdom = service(tmp_path, calendar, url=PROVIDER_URL, api_key="k")

    assert wisdom.get_quote() == "Seek knowledge from the cradle to the grave."
    assert wisdom.get_quote() == "Seek knowledge from the cradle to the grave."
    assert len(mocked.calls) == 1
    assert mocked.calls[0].request.headers["Authorization"] == "Bearer k"

    calendar.day += timedelta(days=1)
    wisdom.get_quote()
    assert len(mocked.calls) == 2


def test_plain_text_provider(tmp_path, calendar, mocked):
    mocked.add(responses.GET, PROVIDER_URL, body="  Be kind.  ", content_type="text/plain")
    assert service(tmp_path, calendar, url=PROVIDER_URL).get_quote() == "Be kind."


def test_empty_response(tmp_path, calendar, mocked):
    mocked.add(responses.GET, PROVIDER_URL, json={"text": ""})
    assert service(tmp_path, calendar, url=PROVIDER_URL).get_quote() == EMPTY_RESPONSE_QUOTE


def test_provider_error(tmp_path, calendar, mocked):
    mocked.add(responses.GET, PROVIDER_URL, status=503)
    wisdom = service(tmp_path, calendar, url=PROVIDER_URL)

    assert wisdom.get_quote() == ERROR_QUOTE
    # errors are not cached
    mocked.replace(responses.GET, PROVIDER_URL, json={"quote": "Back online."})
    assert wisdom.get_quote() == "Back online."


def test_force_fetch_bypasses_cache(tmp_path, calendar, mocked):
    mocked.add(responses.GET, PROVIDER_URL, json={"text": "First"})
    wisdom = service(tmp_path, calendar, url=PROVIDER_URL)
    wisdom.get_quote()

    mocked.replace(responses.GET, PROVIDER_URL, json={"text": "Second"})

    assert wisdom.get_quote() == "First"
    assert wisdom.get_quote(force_fetch=True) == "Second"
