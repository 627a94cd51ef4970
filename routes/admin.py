"""
Admin routes: resource management, user management and batch zipcode geocoding
"""

from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user
import logging

from forms import AdminUserForm, RoleForm, UserStatusForm, ZipcodeBatchForm, validate_payload
from models import db, ROLE_USER
from utils.batch_geocoder import BatchGeocoder
from utils.error_handling import ValidationError
from utils.geocoding import configured_geocoder
from utils.permissions import require_permission
from utils.resource_search import normalize_resource
from utils.resource_service import ResourceService
from utils.user_service import UserService, serialize_user

admin_bp = Blueprint('admin', __name__)
logger = logging.getLogger(__name__)


def _resource_service():
    return ResourceService(db.session, geocode=configured_geocoder(current_app.config))


@admin_bp.route('/resources', methods=['POST'])
@login_required
@require_permission('resources:create')
def create_resource():
    resource = _resource_service().create(request.get_json(silent=True))
    return jsonify(normalize_resource(resource)), 201


@admin_bp.route('/resources/<int:resource_id>', methods=['PUT'])
@login_required
@require_permission('resources:update')
def update_resource(resource_id):
    resource = _resource_service().update(resource_id, request.get_json(silent=True))
    return jsonify(normalize_resource(resource))


@admin_bp.route('/resources/<int:resource_id>', methods=['DELETE'])
@login_required
@require_permission('resources:delete')
def delete_resource(resource_id):
    demoted = _resource_service().delete(resource_id)
    logger.info(f"Admin {current_user.id} deleted resource {resource_id}")
    return jsonify({'message': 'Resource deleted', 'demotedRepresentatives': demoted})


@admin_bp.route('/users', methods=['GET'])
@login_required
@require_permission('users:manage')
def list_users():
    return jsonify([serialize_user(u, include_profile=False) for u in UserService(db.session).list_users()])


@admin_bp.route('/users', methods=['POST'])
@login_required
@require_permission('users:manage')
def create_user():
    form = validate_payload(AdminUserForm)
    user = UserService(db.session).create(
        form.email.data,
        form.password.data,
        name=form.name.data,
        role=form.role.data or ROLE_USER,
        managed_resource_id=form.managedResourceId.data,
    )
    return jsonify(serialize_user(user)), 201


@admin_bp.route('/users/<int:user_id>', methods=['PATCH'])
@login_required
@require_permission('users:manage')
def set_user_status(user_id):
    """Freeze or unfreeze an account"""
    form = validate_payload(UserStatusForm)
    if user_id == current_user.id and not form.isActive.data:
        raise ValidationError('You cannot freeze your own account')
    user = UserService(db.session).set_active(user_id, form.isActive.data)
    return jsonify(serialize_user(user, include_profile=False))


@admin_bp.route('/users/<int:user_id>/role', methods=['PATCH'])
@login_required
@require_permission('users:change_role')
def set_user_role(user_id):
    form = validate_payload(RoleForm)
    user = UserService(db.session).set_role(user_id, form.role.data, form.managedResourceId.data)
    return jsonify(serialize_user(user, include_profile=False))


@admin_bp.route('/geocode-zipcodes', methods=['POST'])
@login_required
@require_permission('geocode:batch')
def geocode_zipcodes():
    """Geocode zipcodes in rate-limited batches; results stay keyed by the submitted zipcode"""
    form = validate_payload(ZipcodeBatchForm)
    return jsonify(BatchGeocoder.from_config(current_app.config).run(form.zipcodes.data, suffix=', USA'))
