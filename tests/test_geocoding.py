import pytest
import requests

from conftest import FakeResponse, geocode_payload
from utils import geocoding
from utils.geocoding import (GeocodingError, UNRESOLVED, format_address, geocode_address, is_unresolved,
                             lookup_coordinates)


def test_lookup_returns_first_result(monkeypatch):
    calls = []

    def fake_get(url, params=None, timeout=None):
        calls.append((url, params, timeout))
        return FakeResponse(geocode_payload(42.36, -71.06))

    monkeypatch.setattr(geocoding.requests, 'get', fake_get)
    assert lookup_coordinates('1 Main St, Boston', 'key', timeout=3) == {'latitude': 42.36, 'longitude': -71.06}
    assert calls == [(geocoding.GOOGLE_GEOCODE_URL, {'address': '1 Main St, Boston', 'key': 'key'}, 3)]


def test_missing_api_key_never_calls_upstream(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError('should not be called')

    monkeypatch.setattr(geocoding.requests, 'get', fail)
    with pytest.raises(GeocodingError):
        lookup_coordinates('Boston', None)
    assert geocode_address('Boston', None) == UNRESOLVED


@pytest.mark.parametrize('payload', [
    {'status': 'ZERO_RESULTS', 'results': []},
    {'status': 'REQUEST_DENIED'},
    {'status': 'OK', 'results': []},
])
def test_upstream_failure_status_returns_sentinel(monkeypatch, payload):
    monkeypatch.setattr(geocoding.requests, 'get', lambda *a, **k: FakeResponse(payload))
    assert geocode_address('nowhere', 'key') == {'latitude': 0.0, 'longitude': 0.0}


def test_network_error_returns_sentinel(monkeypatch):
    def timeout(*args, **kwargs):
        raise requests.exceptions.Timeout('timed out')

    monkeypatch.setattr(geocoding.requests, 'get', timeout)
    with pytest.raises(GeocodingError) as excinfo:
        lookup_coordinates('Boston', 'key')
    assert 'timed out' in excinfo.value.message
    assert is_unresolved(geocode_address('Boston', 'key'))


def test_http_error_returns_sentinel(monkeypatch):
    monkeypatch.setattr(geocoding.requests, 'get', lambda *a, **k: FakeResponse({}, status_code=500))
    assert is_unresolved(geocode_address('Boston', 'key'))


def test_is_unresolved():
    assert is_unresolved(None)
    assert is_unresolved({'latitude': 0, 'longitude': 0})
    assert not is_unresolved({'latitude': 0, 'longitude': 10.5})


def test_format_address_skips_blank_parts():
    address = {'street': '1 Main St', 'city': 'Boston', 'state': '', 'zip': '02139'}
    assert format_address(address) == '1 Main St, Boston, 02139'
    assert format_address(None) == ''
