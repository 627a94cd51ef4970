"""
Permission checking utilities
A single policy table decides what each role may do; routes declare the
action they perform with the require_permission decorator.
"""

import logging
from functools import wraps
from flask_login import current_user
from models import ROLE_ADMIN, ROLE_BUSINESS_REP
from utils.error_handling import AuthenticationError, AuthorizationError

logger = logging.getLogger(__name__)


def _anyone(user, resource):
    return True


def _authenticated(user, resource):
    return bool(user and user.is_authenticated)


def _admin(user, resource):
    return _authenticated(user, resource) and user.role == ROLE_ADMIN


def _admin_or_business_rep(user, resource):
    return _authenticated(user, resource) and user.role in (ROLE_ADMIN, ROLE_BUSINESS_REP)


def _resource_manager(user, resource):
    """Admins, or the business representative assigned to this resource"""
    if _admin(user, resource):
        return True
    if not _authenticated(user, resource) or user.role != ROLE_BUSINESS_REP:
        return False
    return resource is not None and user.managed_resource_id == resource.id


def _owner(user, resource):
    """The author of a review, the account holder of a user record"""
    if not _authenticated(user, resource) or resource is None:
        return False
    owner_id = getattr(resource, 'user_id', None)
    if owner_id is None:
        owner_id = resource.id
    return owner_id == user.id


def _owner_or_admin(user, resource):
    return _admin(user, resource) or _owner(user, resource)


POLICIES = {
    'resources:search': _anyone,
    'resources:read': _anyone,
    'resources:rate': _authenticated,
    'resources:favorite': _authenticated,
    'resources:create': _admin,
    'resources:update': _admin,
    'resources:delete': _admin,
    'resources:business_update': _resource_manager,
    'reviews:create': _authenticated,
    'reviews:update': _owner,
    'reviews:delete': _owner,
    'recommendations:create': _anyone,
    'recommendations:list': _admin,
    'recommendations:update_status': _admin,
    'users:read': _owner_or_admin,
    'users:update': _owner,
    'users:delete': _owner,
    'users:manage': _admin,
    'users:change_role': _admin,
    'analytics:view': _admin_or_business_rep,
    'geocode:lookup': _authenticated,
    'geocode:batch': _admin_or_business_rep,
}

# Rules that an anonymous caller can never satisfy; refusals answer 401 instead of 403
_REQUIRES_LOGIN = {rule for rule in POLICIES.values() if rule is not _anyone}


def is_allowed(user, action, resource=None):
    """
    Decide whether a user may perform an action

    Args:
        user: User object or Flask-Login anonymous user
        action: Policy key, e.g. 'resources:rate'
        resource: Optional target object the action applies to

    Returns:
        bool: True if allowed, False otherwise (unknown actions are denied)
    """
    rule = POLICIES.get(action)
    if rule is None:
        logger.warning(f"Permission check for unknown action: {action}")
        return False
    return rule(user, resource)


def authorize(user, action, resource=None):
    """Raise AuthenticationError or AuthorizationError unless the action is allowed"""
    if is_allowed(user, action, resource):
        return
    if POLICIES.get(action) in _REQUIRES_LOGIN and not (user and user.is_authenticated):
        raise AuthenticationError('Unauthorized. Authentication required.')
    logger.info(f"Permission denied: user={getattr(user, 'id', None)} action={action}")
    raise AuthorizationError()


def require_permission(action, load_resource=None):
    """
    Decorator to require a policy decision for a route

    Args:
        action: Policy key
        load_resource: Optional callable receiving the view kwargs and returning
            the target object; it may raise NotFoundError
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if load_resource is None:
                authorize(current_user, action)
            else:
                if not (current_user and current_user.is_authenticated) and POLICIES.get(action) in _REQUIRES_LOGIN:
                    raise AuthenticationError('Unauthorized. Authentication required.')
                authorize(current_user, action, load_resource(**kwargs))
            return f(*args, **kwargs)
        return decorated_function
    return decorator
