import pytest

from fakes import DISCOVERY_DOCUMENT, DISCOVERY_URL, FakeTransport, json_response


@pytest.fixture
def transport():
    return FakeTransport({DISCOVERY_URL: json_response(DISCOVERY_DOCUMENT)})
