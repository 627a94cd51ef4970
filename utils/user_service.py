"""
User account service: signup, profiles, roles, freezing and account removal
"""

import logging
from datetime import datetime

from models import User, Resource, ROLES, ROLE_USER, ROLE_BUSINESS_REP
from utils.error_handling import (ValidationError, NotFoundError, AuthenticationError, AuthorizationError,
                                  transactional)
from utils.rating_service import recount_votes, recount_favorites
from utils.zipcodes import derive_state

logger = logging.getLogger(__name__)

# Payload key -> model attribute for self-service profile edits
PROFILE_FIELDS = {
    'name': 'name',
    'ageGroup': 'age_group',
    'gender': 'gender',
    'raceEthnicity': 'race_ethnicity',
    'sexualOrientation': 'sexual_orientation',
    'zipcode': 'zipcode',
    'state': 'state',
    'resourceInterests': 'resource_interests',
}


def serialize_user(user, include_profile=True):
    data = {
        'id': user.id,
        'email': user.email,
        'name': user.name or '',
        'role': user.role,
        'isActive': bool(user.is_active),
        'managedResourceId': user.managed_resource_id,
        'createdAt': user.created_at.isoformat() if user.created_at else None,
    }
    if include_profile:
        data.update({
            'ageGroup': user.age_group,
            'gender': user.gender,
            'raceEthnicity': user.race_ethnicity,
            'sexualOrientation': user.sexual_orientation,
            'zipcode': user.zipcode,
            'state': user.state,
            'resourceInterests': user.resource_interests or [],
            'lastLogin': user.last_login.isoformat() if user.last_login else None,
        })
    return data


def normalize_email(email):
    return (email or '').strip().lower()


class UserService:
    def __init__(self, session):
        self.session = session

    def get(self, user_id):
        user = self.session.get(User, user_id)
        if user is None:
            raise NotFoundError('User not found')
        return user

    def find_by_email(self, email):
        return self.session.query(User).filter_by(email=normalize_email(email)).first()

    def _check_role(self, role, managed_resource_id):
        if role not in ROLES:
            raise ValidationError(f"Role must be one of: {', '.join(ROLES)}")
        if role == ROLE_BUSINESS_REP:
            if managed_resource_id is None:
                raise ValidationError('A business representative needs a managed resource')
            if self.session.get(Resource, managed_resource_id) is None:
                raise NotFoundError('Managed resource not found')
            return managed_resource_id
        return None

    @transactional('Create user')
    def create(self, email, password, name=None, role=ROLE_USER, managed_resource_id=None):
        email = normalize_email(email)
        if self.find_by_email(email):
            raise ValidationError('An account with this email already exists')
        managed_resource_id = self._check_role(role or ROLE_USER, managed_resource_id)
        user = User(email=email, name=(name or '').strip() or None, role=role or ROLE_USER,
                    managed_resource_id=managed_resource_id, is_active=True)
        user.set_password(password)
        self.session.add(user)
        self.session.flush()
        logger.info(f"User created: {user.id} {user.email} role={user.role}")
        return user

    def signup(self, email, password, name=None):
        return self.create(email, password, name=name, role=ROLE_USER)

    @transactional('Login')
    def authenticate(self, email, password):
        """
        Check credentials and stamp last_login

        Raises:
            AuthenticationError: unknown email or wrong password
            AuthorizationError: the account is frozen
        """
        user = self.find_by_email(email)
        if user is None or not user.check_password(password):
            logger.warning(f"Failed login attempt for {normalize_email(email)}")
            raise AuthenticationError('Invalid email or password')
        if not user.is_active:
            raise AuthorizationError('This account has been frozen. Please contact an administrator.')
        user.last_login = datetime.utcnow()
        return user

    @transactional('Update profile')
    def update_profile(self, user_id, values):
        """
        Write profile fields

        Args:
            values: payload keys from PROFILE_FIELDS; a supplied zipcode also sets
                the state derived from it unless a state is supplied alongside
        """
        user = self.get(user_id)
        for key, attr in PROFILE_FIELDS.items():
            if key not in values:
                continue
            value = values[key]
            if isinstance(value, str):
                value = value.strip() or None
            if key == 'state' and value:
                value = value.upper()
            if key == 'resourceInterests':
                value = list(value or [])
            setattr(user, attr, value)

        if values.get('zipcode') and not values.get('state'):
            user.state = derive_state(user.zipcode)
        logger.info(f"Profile updated for user {user.id}: {sorted(values)}")
        return user

    @transactional('Change role')
    def set_role(self, user_id, role, managed_resource_id=None):
        """Assign a role; business_rep requires an existing resource, other roles clear it"""
        user = self.get(user_id)
        user.managed_resource_id = self._check_role(role, managed_resource_id)
        user.role = role
        logger.info(f"User {user.id} role set to {role} (managed resource {user.managed_resource_id})")
        return user

    @transactional('Change account status')
    def set_active(self, user_id, is_active):
        user = self.get(user_id)
        user.is_active = bool(is_active)
        logger.info(f"User {user.id} {'unfrozen' if user.is_active else 'frozen'}")
        return user

    @transactional('Change password')
    def set_password(self, user, new_password):
        user.set_password(new_password)
        return user

    @transactional('Delete account')
    def delete_account(self, user_id):
        """Remove a user with their ratings, favorites and reviews, then refresh the affected counters"""
        user = self.get(user_id)
        touched = {r.resource_id for r in user.ratings} | {f.resource_id for f in user.favorites}

        self.session.delete(user)
        self.session.flush()

        if touched:
            resources = self.session.query(Resource).filter(Resource.id.in_(touched)).with_for_update().all()
            for resource in resources:
                recount_votes(self.session, resource)
                recount_favorites(self.session, resource)
        logger.info(f"User {user_id} deleted; refreshed counters on {len(touched)} resource(s)")

    def list_users(self):
        return self.session.query(User).order_by(User.created_at.desc(), User.id.desc()).all()

