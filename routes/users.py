"""
User self-service routes
"""

from flask import Blueprint, jsonify
from flask_login import login_required, current_user, logout_user

from forms import ProfileForm, validate_payload
from models import db
from utils.permissions import require_permission
from utils.rating_service import RatingService, FavoriteService
from utils.user_service import UserService, serialize_user, PROFILE_FIELDS

users_bp = Blueprint('users', __name__)


def _load_user(user_id):
    return UserService(db.session).get(user_id)


@users_bp.route('/user/favorites', methods=['GET'])
@login_required
def my_favorites():
    return jsonify(FavoriteService(db.session).user_favorites(current_user.id))


@users_bp.route('/user/ratings', methods=['GET'])
@login_required
def my_ratings():
    return jsonify(RatingService(db.session).user_ratings(current_user.id))


@users_bp.route('/users/<int:user_id>', methods=['GET'])
@login_required
@require_permission('users:read', load_resource=_load_user)
def get_user(user_id):
    return jsonify(serialize_user(_load_user(user_id)))


@users_bp.route('/users/<int:user_id>', methods=['PUT'])
@login_required
@require_permission('users:update', load_resource=_load_user)
def update_user(user_id):
    form = validate_payload(ProfileForm)
    values = {key: form[key].data for key in PROFILE_FIELDS if form.provided(key)}
    user = UserService(db.session).update_profile(user_id, values)
    return jsonify(serialize_user(user))


@users_bp.route('/users/<int:user_id>', methods=['DELETE'])
@login_required
@require_permission('users:delete', load_resource=_load_user)
def delete_user(user_id):
    UserService(db.session).delete_account(user_id)
    logout_user()
    return jsonify({'message': 'Account deleted'})
