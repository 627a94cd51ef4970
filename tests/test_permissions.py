import pytest
from flask_login import AnonymousUserMixin

from models import Review
from utils.error_handling import AuthenticationError, AuthorizationError
from utils.permissions import authorize, is_allowed

ANONYMOUS = AnonymousUserMixin()


def test_unknown_action_is_denied(admin):
    assert not is_allowed(admin, 'resources:teleport')


def test_public_actions():
    for action in ('resources:search', 'resources:read', 'recommendations:create'):
        assert is_allowed(ANONYMOUS, action)


@pytest.mark.parametrize('action', ['analytics:view', 'geocode:batch'])
def test_admin_or_business_rep_actions(action, user, admin, business_rep):
    assert is_allowed(admin, action)
    assert is_allowed(business_rep, action)
    assert not is_allowed(user, action)
    assert not is_allowed(ANONYMOUS, action)


@pytest.mark.parametrize('action', ['resources:create', 'resources:delete', 'recommendations:update_status',
                                    'users:manage', 'users:change_role'])
def test_admin_only_actions(action, user, admin, business_rep):
    assert is_allowed(admin, action)
    assert not is_allowed(business_rep, action)
    assert not is_allowed(user, action)


def test_business_update_is_scoped_to_managed_resource(session, admin, business_rep, make_resource):
    managed = business_rep.managed_resource
    other = make_resource(name='Someone Else')
    assert is_allowed(business_rep, 'resources:business_update', managed)
    assert not is_allowed(business_rep, 'resources:business_update', other)
    assert is_allowed(admin, 'resources:business_update', other)


def test_review_ownership(user, make_user, admin, make_resource):
    resource = make_resource()
    review = Review(user_id=user.id, resource_id=resource.id, content='Great')
    assert is_allowed(user, 'reviews:update', review)
    assert not is_allowed(make_user(), 'reviews:delete', review)
    assert not is_allowed(admin, 'reviews:update', review)


def test_account_actions(user, make_user, admin):
    other = make_user()
    assert is_allowed(user, 'users:update', user)
    assert not is_allowed(user, 'users:update', other)
    assert is_allowed(admin, 'users:read', other)
    assert not is_allowed(admin, 'users:delete', other)


def test_authorize_distinguishes_anonymous_from_forbidden(user):
    with pytest.raises(AuthenticationError):
        authorize(ANONYMOUS, 'resources:rate')
    with pytest.raises(AuthorizationError):
        authorize(user, 'analytics:view')
    authorize(user, 'resources:rate')

