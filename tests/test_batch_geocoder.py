from conftest import FakeResponse, geocode_payload
from utils import geocoding
from utils.batch_geocoder import BatchGeocoder
from utils.geocoding import GeocodingError


def fake_lookup(query):
    if 'bad' in query:
        raise GeocodingError('Geocoding failed: ZERO_RESULTS')
    if 'boom' in query:
        raise RuntimeError('unexpected')
    return {'latitude': 1.0, 'longitude': 2.0}


def test_counts_always_add_up():
    items = ['a', 'bad-1', 'b', 'boom', 'c']
    result = BatchGeocoder(fake_lookup, delay=0).run(items)
    assert result['totalProcessed'] == 5
    assert result['successCount'] == 3
    assert result['errorCount'] == 2
    assert result['successCount'] + result['errorCount'] == len(items)
    assert set(result['results']) == {'a', 'b', 'c'}
    assert result['errors']['bad-1'] == 'Geocoding failed: ZERO_RESULTS'
    assert result['errors']['boom'] == 'unexpected'


def test_batches_sleep_between_but_not_after():
    sleeps = []
    seen = []

    def lookup(query):
        seen.append(query)
        return {'latitude': 1.0, 'longitude': 1.0}

    items = [str(i) for i in range(25)]
    result = BatchGeocoder(lookup, batch_size=10, delay=1.0, sleep=sleeps.append).run(items)
    assert sleeps == [1.0, 1.0]
    assert sorted(seen) == sorted(items)
    assert result['successCount'] == 25


def test_suffix_is_appended_but_results_keep_original_keys():
    queries = []

    def lookup(query):
        queries.append(query)
        return {'latitude': 1.0, 'longitude': 1.0}

    result = BatchGeocoder(lookup, delay=0).run(['02139', '10001'], suffix=', USA')
    assert sorted(queries) == ['02139, USA', '10001, USA']
    assert set(result['results']) == {'02139', '10001'}


def test_empty_input():
    result = BatchGeocoder(fake_lookup, delay=0).run([])
    assert result == {'results': {}, 'errors': {}, 'totalProcessed': 0, 'successCount': 0, 'errorCount': 0}


def test_from_config_uses_google_lookup(app, monkeypatch):
    monkeypatch.setattr(geocoding.requests, 'get', lambda *a, **k: FakeResponse(geocode_payload(3.0, 4.0)))
    geocoder = BatchGeocoder.from_config(app.config)
    assert geocoder.batch_size == 10
    assert geocoder.delay == 0
    assert geocoder.run(['x'])['results'] == {'x': {'latitude': 3.0, 'longitude': 4.0}}
