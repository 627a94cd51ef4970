"""
Public resource routes: search, listing, detail, ratings, favorites, reviews
and the business representative's update endpoint
"""

from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user

from forms import ReviewForm, validate_payload
from models import db
from utils.error_handling import ValidationError
from utils.geocoding import configured_geocoder
from utils.permissions import require_permission, is_allowed
from utils.rating_service import RatingService, FavoriteService
from utils.resource_search import parse_search_filters, search_resources, normalize_resource
from utils.resource_service import ResourceService
from utils.review_service import ReviewService, serialize_review

resources_bp = Blueprint('resources', __name__)


def page_args():
    """page and limit from the query string, clamped to the configured maximum"""
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', current_app.config['SEARCH_DEFAULT_LIMIT'], type=int)
    if page < 1:
        raise ValidationError('page must be at least 1')
    if limit < 1:
        raise ValidationError('limit must be at least 1')
    return page, min(limit, current_app.config['SEARCH_MAX_LIMIT'])


def optional_page_args():
    """page and limit when the client asked for a page, otherwise (1, None) for every row"""
    if 'page' not in request.args and 'limit' not in request.args:
        return 1, None
    return page_args()


def _current_user_id():
    return current_user.id if current_user.is_authenticated else None


def _load_resource(resource_id, **kwargs):
    return ResourceService(db.session).get(resource_id)


def _load_review(resource_id, review_id):
    return ReviewService(db.session).get(resource_id, review_id)


@resources_bp.route('/search', methods=['POST'])
@require_permission('resources:search')
def search():
    """Filter resources; the body is a plain array of every match unless a page is requested"""
    filters = parse_search_filters(request.get_json(silent=True))
    page, limit = optional_page_args()
    results, total = search_resources(filters, page=page, limit=limit, session=db.session)
    response = jsonify(results)
    response.headers['X-Total-Count'] = str(total)
    return response


@resources_bp.route('', methods=['GET'])
@require_permission('resources:read')
def list_resources():
    page, limit = page_args()
    return jsonify(ResourceService(db.session).list_resources(page=page, limit=limit))


@resources_bp.route('/<int:resource_id>', methods=['GET'])
@require_permission('resources:read')
def get_resource(resource_id):
    return jsonify(ResourceService(db.session).get_with_owner(resource_id))


@resources_bp.route('/<int:resource_id>/rating', methods=['GET'])
@require_permission('resources:read')
def get_rating(resource_id):
    return jsonify(RatingService(db.session).summary(resource_id, user_id=_current_user_id()))


@resources_bp.route('/<int:resource_id>/rating', methods=['POST'])
@login_required
@require_permission('resources:rate')
def rate_resource(resource_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or 'rating' not in data:
        raise ValidationError("Rating is required ('UP', 'DOWN' or 'NULL')")
    return jsonify(RatingService(db.session).rate(current_user.id, resource_id, data['rating']))


@resources_bp.route('/<int:resource_id>/favorite', methods=['GET'])
@require_permission('resources:read')
def favorite_status(resource_id):
    return jsonify(FavoriteService(db.session).status(resource_id, user_id=_current_user_id()))


@resources_bp.route('/<int:resource_id>/favorite', methods=['POST'])
@login_required
@require_permission('resources:favorite')
def toggle_favorite(resource_id):
    return jsonify(FavoriteService(db.session).toggle(current_user.id, resource_id))


@resources_bp.route('/<int:resource_id>/business-update', methods=['GET'])
def business_access(resource_id):
    """Whether the current user may edit this resource's public details"""
    resource = _load_resource(resource_id)
    return jsonify({'hasAccess': is_allowed(current_user, 'resources:business_update', resource)})


@resources_bp.route('/<int:resource_id>/business-update', methods=['PUT'])
@login_required
@require_permission('resources:business_update', load_resource=_load_resource)
def business_update(resource_id):
    data = request.get_json(silent=True)
    service = ResourceService(db.session, geocode=configured_geocoder(current_app.config))
    resource = service.business_update(resource_id, data)
    return jsonify(normalize_resource(resource))


@resources_bp.route('/<int:resource_id>/reviews', methods=['GET'])
@require_permission('resources:read')
def list_reviews(resource_id):
    return jsonify([serialize_review(r) for r in ReviewService(db.session).list(resource_id)])


@resources_bp.route('/<int:resource_id>/reviews', methods=['POST'])
@login_required
@require_permission('reviews:create')
def create_review(resource_id):
    form = validate_payload(ReviewForm)
    review = ReviewService(db.session).create(current_user.id, resource_id, form.content.data)
    return jsonify(serialize_review(review)), 201


@resources_bp.route('/<int:resource_id>/reviews/<int:review_id>', methods=['GET'])
@require_permission('resources:read')
def get_review(resource_id, review_id):
    return jsonify(serialize_review(_load_review(resource_id, review_id)))


@resources_bp.route('/<int:resource_id>/reviews/<int:review_id>', methods=['PUT'])
@login_required
@require_permission('reviews:update', load_resource=_load_review)
def update_review(resource_id, review_id):
    form = validate_payload(ReviewForm)
    service = ReviewService(db.session)
    review = service.update(service.get(resource_id, review_id), form.content.data)
    return jsonify(serialize_review(review))


@resources_bp.route('/<int:resource_id>/reviews/<int:review_id>', methods=['DELETE'])
@login_required
@require_permission('reviews:delete', load_resource=_load_review)
def delete_review(resource_id, review_id):
    service = ReviewService(db.session)
    service.delete(service.get(resource_id, review_id))
    return jsonify({'message': 'Review deleted'})
