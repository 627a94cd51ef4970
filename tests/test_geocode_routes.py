from conftest import FakeResponse, geocode_payload, login
from utils import geocoding


def fake_google(monkeypatch, failing=()):
    queries = []

    def fake_get(url, params=None, timeout=None):
        queries.append(params['address'])
        if any(bad in params['address'] for bad in failing):
            return FakeResponse({'status': 'ZERO_RESULTS', 'results': []})
        return FakeResponse(geocode_payload(40.0, -75.0))

    monkeypatch.setattr(geocoding.requests, 'get', fake_get)
    return queries


def test_zipcode_batch(client, business_rep, monkeypatch):
    queries = fake_google(monkeypatch, failing=('00000',))
    login(client, business_rep)
    zipcodes = [f'{10000 + i}' for i in range(12)] + ['00000']
    response = client.post('/api/v1/admin/geocode-zipcodes', json={'zipcodes': zipcodes})
    body = response.get_json()

    assert response.status_code == 200
    assert body['totalProcessed'] == 13
    assert body['successCount'] == 12 and body['errorCount'] == 1
    assert body['results']['10000'] == {'latitude': 40.0, 'longitude': -75.0}
    assert body['errors']['00000'] == 'Geocoding failed: ZERO_RESULTS'
    assert '10000, USA' in queries


def test_zipcode_batch_permissions_and_validation(client, user, admin):
    assert client.post('/api/v1/admin/geocode-zipcodes', json={'zipcodes': ['02139']}).status_code == 401
    login(client, user)
    assert client.post('/api/v1/admin/geocode-zipcodes', json={'zipcodes': ['02139']}).status_code == 403
    login(client, admin)
    assert client.post('/api/v1/admin/geocode-zipcodes', json={'zipcodes': []}).status_code == 400
    assert client.post('/api/v1/admin/geocode-zipcodes', json={}).status_code == 400


def test_address_batch_for_signed_in_users(client, user, monkeypatch):
    fake_google(monkeypatch, failing=('Atlantis',))
    assert client.post('/api/v1/geocode-addresses', json={'addresses': ['Boston, MA']}).status_code == 401
    login(client, user)
    body = client.post('/api/v1/geocode-addresses', json={'addresses': ['Boston, MA', 'Atlantis']}).get_json()
    assert body['successCount'] + body['errorCount'] == 2
    assert list(body['errors']) == ['Atlantis']


def test_single_lookup(client, user, monkeypatch):
    fake_google(monkeypatch, failing=('Atlantis',))
    login(client, user)
    assert client.get('/api/v1/geocode?address=Boston').get_json() == {
        'latitude': 40.0, 'longitude': -75.0, 'resolved': True}
    assert client.get('/api/v1/geocode?address=Atlantis').get_json() == {
        'latitude': 0.0, 'longitude': 0.0, 'resolved': False}
    assert client.get('/api/v1/geocode').status_code == 400
