import pytest

from utils.error_handling import ValidationError
from utils.resource_search import normalize_resource, parse_search_filters, search_resources


@pytest.fixture
def catalog(make_resource):
    return {
        'clinic': make_resource(name='Harbor Mental Health Clinic', description='Counseling for teens',
                                category=['MENTAL'], target_audience=['13-18'],
                                address={'street': '1 Harbor Way', 'city': 'Boston', 'zip': '02139'},
                                latitude=42.36, longitude=-71.06),
        'gym': make_resource(name='Youth Gym', description='Free fitness classes and counseling',
                             category=['PHYSICAL'], target_audience=['19-24'],
                             address={'zip': '10001'}, latitude=40.71, longitude=-74.00),
        'club': make_resource(name='Social Club', description='Weekly meetups',
                              category=['SOCIAL', 'MENTAL'], target_audience=['13-18', '19-24'],
                              address={'zip': '02139'}),
    }


def test_parse_drops_empty_filters():
    assert parse_search_filters({'category': '', 'description': '  ', 'zipCode': None, 'ageRange': []}) == {}
    assert parse_search_filters(None) == {}


@pytest.mark.parametrize('payload', [
    ['MENTAL'],
    {'category': 5},
    {'category': 'SPIRITUAL'},
    {'description': ['x']},
    {'latitude': 42.0, 'longitude': -71.0},
    {'latitude': 'north', 'longitude': -71.0, 'maxDistance': 5},
    {'latitude': 142.0, 'longitude': -71.0, 'maxDistance': 5},
    {'latitude': 42.0, 'longitude': -71.0, 'maxDistance': -1},
])
def test_parse_rejects_malformed_filters(payload):
    with pytest.raises(ValidationError):
        parse_search_filters(payload)


def test_category_filter(session, catalog):
    results, total = search_resources({'category': ['MENTAL']}, session=session)
    assert total == 2
    assert {r['name'] for r in results} == {'Harbor Mental Health Clinic', 'Social Club'}
    assert all('MENTAL' in r['category'] for r in results)


def test_zip_filter_is_exact(session, catalog):
    results, _ = search_resources({'zipCode': '02139'}, session=session)
    assert {r['name'] for r in results} == {'Harbor Mental Health Clinic', 'Social Club'}
    assert search_resources({'zipCode': '0213'}, session=session) == ([], 0)


def test_age_range_intersects(session, catalog):
    results, _ = search_resources({'ageRange': ['19-24']}, session=session)
    assert {r['name'] for r in results} == {'Youth Gym', 'Social Club'}


def test_keyword_search_ranks_name_matches_first(session, catalog):
    results, total = search_resources({'description': 'counseling clinic'}, session=session)
    assert total == 2
    assert [r['name'] for r in results] == ['Harbor Mental Health Clinic', 'Youth Gym']


def test_filters_combine(session, catalog):
    results, _ = search_resources({'category': ['MENTAL'], 'ageRange': ['19-24']}, session=session)
    assert [r['name'] for r in results] == ['Social Club']


def test_proximity_filter_orders_by_distance_and_skips_unlocated(session, catalog):
    filters = parse_search_filters({'latitude': 42.36, 'longitude': -71.06, 'maxDistance': 500})
    results, total = search_resources(filters, session=session)
    assert [r['name'] for r in results] == ['Harbor Mental Health Clinic', 'Youth Gym']
    assert results[0]['distance'] == 0
    assert total == 2

    filters = parse_search_filters({'latitude': 42.36, 'longitude': -71.06, 'maxDistance': 10})
    assert [r['name'] for r in search_resources(filters, session=session)[0]] == ['Harbor Mental Health Clinic']


def test_normalize_fills_missing_nested_fields(make_resource):
    resource = make_resource(name='Bare', description='', category=None, contact=None, address=None,
                             operating_hours={'monday': {'open': '9:00'}}, tags=None)
    data = normalize_resource(resource)
    assert data['category'] == []
    assert data['contact'] == {'phone': '', 'email': '', 'website': ''}
    assert data['address'] == {'street': '', 'city': '', 'state': '', 'zip': ''}
    assert data['operatingHours']['monday'] == {'open': '9:00', 'close': ''}
    assert data['operatingHours']['sunday'] == {'open': '', 'close': ''}
    assert data['tags'] == []
    assert data['cost'] == ''


def test_search_endpoint(client, catalog):
    response = client.post('/api/v1/resources/search', json={'category': 'MENTAL'})
    assert response.status_code == 200
    assert response.headers['X-Total-Count'] == '2'
    assert all('MENTAL' in r['category'] for r in response.get_json())


def test_search_endpoint_unmatched_zip_is_empty_array(client, catalog):
    response = client.post('/api/v1/resources/search', json={'zipCode': '99999'})
    assert response.status_code == 200
    assert response.get_json() == []


def test_search_endpoint_pagination(client, catalog):
    response = client.post('/api/v1/resources/search?page=2&limit=2', json={})
    assert response.headers['X-Total-Count'] == '3'
    assert len(response.get_json()) == 1


def test_search_endpoint_rejects_malformed_payload(client):
    response = client.post('/api/v1/resources/search', json={'category': 42})
    assert response.status_code == 400
    assert 'error' in response.get_json()


def test_search_endpoint_returns_every_match_without_paging_args(client, make_resource):
    for i in range(25):
        make_resource(name=f'Clinic {i}', category=['MENTAL'])
    response = client.post('/api/v1/resources/search', json={'category': 'MENTAL'})
    assert len(response.get_json()) == 25
    assert response.headers['X-Total-Count'] == '25'

    paged = client.post('/api/v1/resources/search?limit=10', json={'category': 'MENTAL'})
    assert len(paged.get_json()) == 10
    assert paged.headers['X-Total-Count'] == '25'


@pytest.mark.parametrize('audience', ['Niños', 'Ages "13+"', 'back\\slash'])
def test_age_range_matches_tags_that_json_escapes(session, make_resource, audience):
    make_resource(name='Escaped', target_audience=[audience, '19-24'])
    make_resource(name='Other', target_audience=['19-24'])
    results, total = search_resources({'ageRange': [audience]}, session=session)
    assert total == 1
    assert results[0]['name'] == 'Escaped'
