from conftest import login
from models import Favorite
from utils.rating_service import FavoriteService


def test_toggle_twice_restores_state(session, make_resource, user, make_user):
    resource = make_resource()
    other = make_user()
    service = FavoriteService(session)
    service.toggle(other.id, resource.id)

    before = service.status(resource.id, user_id=user.id)
    first = service.toggle(user.id, resource.id)
    second = service.toggle(user.id, resource.id)

    assert before == {'isFavorited': False, 'favoriteCount': 1}
    assert first == {'isFavorited': True, 'favoriteCount': 2}
    assert second == before
    assert session.query(Favorite).filter_by(user_id=user.id).count() == 0


def test_favorite_count_is_recomputed_from_rows(session, make_resource, user):
    resource = make_resource(favorite_count=40)
    assert FavoriteService(session).toggle(user.id, resource.id)['favoriteCount'] == 1
    assert resource.favorite_count == 1


def test_anonymous_status(client, make_resource):
    resource = make_resource(favorite_count=3)
    response = client.get(f'/api/v1/resources/{resource.id}/favorite')
    assert response.get_json() == {'isFavorited': False, 'favoriteCount': 3}


def test_favorite_endpoints(client, make_resource, user):
    resource = make_resource(name='Food Pantry')
    url = f'/api/v1/resources/{resource.id}/favorite'
    assert client.post(url).status_code == 401

    login(client, user)
    assert client.post(url).get_json() == {'isFavorited': True, 'favoriteCount': 1}
    assert client.get(url).get_json()['isFavorited'] is True

    favorites = client.get('/api/v1/user/favorites').get_json()
    assert [f['name'] for f in favorites] == ['Food Pantry']

    assert client.post(url).get_json() == {'isFavorited': False, 'favoriteCount': 0}
    assert client.get('/api/v1/user/favorites').get_json() == []
    assert client.post('/api/v1/resources/999/favorite').status_code == 404
