import pytest
import requests
from flask import g

from app import create_app
from models import db, User, Resource, ROLE_USER, ROLE_ADMIN, ROLE_BUSINESS_REP

TEST_PASSWORD = 'secret123'


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test',
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'GOOGLE_MAPS_API_KEY': 'test-key',
        'GEOCODE_BATCH_DELAY': 0,
        'MAIL_SUPPRESS_SEND': True,
        'MAIL_DEFAULT_SENDER': 'noreply@example.com',
    })

    # Test requests share this app context, so g would keep the previous request's user
    @app.before_request
    def reload_login_user():
        g.pop('_login_user', None)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def session(app):
    return db.session


@pytest.fixture
def make_user(session):
    counter = {'n': 0}

    def factory(role=ROLE_USER, email=None, password=TEST_PASSWORD, managed_resource_id=None, **fields):
        counter['n'] += 1
        user = User(email=email or f"user{counter['n']}@example.com", role=role,
                    managed_resource_id=managed_resource_id, is_active=fields.pop('is_active', True), **fields)
        user.set_password(password)
        session.add(user)
        session.commit()
        return user
    return factory


@pytest.fixture
def make_resource(session):
    def factory(name='Community Center', description='Support services', **fields):
        fields.setdefault('category', ['SOCIAL'])
        address = fields.setdefault('address', {}) or {}
        fields.setdefault('zip_code', address.get('zip'))
        resource = Resource(name=name, description=description, **fields)
        session.add(resource)
        session.commit()
        return resource
    return factory


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(role=ROLE_ADMIN, email='admin@example.com')


@pytest.fixture
def business_rep(make_user, make_resource):
    resource = make_resource(name='Managed Clinic')
    return make_user(role=ROLE_BUSINESS_REP, email='rep@example.com', managed_resource_id=resource.id)


def login(client, user, password=TEST_PASSWORD):
    response = client.post('/api/auth/login', json={'email': user.email, 'password': password})
    assert response.status_code == 200, response.get_json()
    return response


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


def geocode_payload(lat, lng):
    return {'status': 'OK', 'results': [{'geometry': {'location': {'lat': lat, 'lng': lng}}}]}
