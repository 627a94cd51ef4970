from conftest import login


def reviews_url(resource_id, review_id=None):
    url = f'/api/v1/resources/{resource_id}/reviews'
    return f'{url}/{review_id}' if review_id else url


def test_create_and_list(client, make_resource, user):
    resource = make_resource()
    assert client.post(reviews_url(resource.id), json={'content': 'Helpful staff'}).status_code == 401

    login(client, user)
    response = client.post(reviews_url(resource.id), json={'content': 'Helpful staff'})
    assert response.status_code == 201
    client.post(reviews_url(resource.id), json={'content': 'Went back again'})

    reviews = client.get(reviews_url(resource.id)).get_json()
    assert [r['content'] for r in reviews] == ['Went back again', 'Helpful staff']
    assert reviews[0]['userName'] == user.email


def test_content_validation(client, make_resource, user):
    resource = make_resource()
    login(client, user)
    assert client.post(reviews_url(resource.id), json={'content': ''}).status_code == 400
    assert client.post(reviews_url(resource.id), json={'content': 'x' * 1001}).status_code == 400
    assert client.post(reviews_url(resource.id), json={'content': 'x' * 1000}).status_code == 201
    assert client.post(reviews_url(999), json={'content': 'Nice'}).status_code == 404


def test_only_author_can_modify(client, make_resource, user, make_user, admin):
    resource = make_resource()
    login(client, user)
    review_id = client.post(reviews_url(resource.id), json={'content': 'Original'}).get_json()['id']

    login(client, make_user())
    assert client.put(reviews_url(resource.id, review_id), json={'content': 'Hijacked'}).status_code == 403
    assert client.delete(reviews_url(resource.id, review_id)).status_code == 403
    login(client, admin)
    assert client.delete(reviews_url(resource.id, review_id)).status_code == 403

    login(client, user)
    response = client.put(reviews_url(resource.id, review_id), json={'content': 'Edited'})
    assert response.get_json()['content'] == 'Edited'
    assert client.delete(reviews_url(resource.id, review_id)).status_code == 200
    assert client.get(reviews_url(resource.id, review_id)).status_code == 404


def test_review_must_belong_to_resource(client, make_resource, user):
    first, second = make_resource(name='First'), make_resource(name='Second')
    login(client, user)
    review_id = client.post(reviews_url(first.id), json={'content': 'Good'}).get_json()['id']
    assert client.get(reviews_url(second.id, review_id)).status_code == 400
    assert client.put(reviews_url(second.id, review_id), json={'content': 'x'}).status_code == 400
