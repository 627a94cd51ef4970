from flask import Blueprint, request, jsonify
from flask_login import login_required

from forms import RecommendationForm, RecommendationStatusForm, validate_payload
from models import db
from utils.permissions import require_permission
from utils.recommendation_service import RecommendationService, serialize_recommendation

recommendations_bp = Blueprint('recommendations', __name__)


@recommendations_bp.route('', methods=['POST'])
@require_permission('recommendations:create')
def create_recommendation():
    """Submit a resource suggestion; anyone may submit"""
    form = validate_payload(RecommendationForm)
    data = request.get_json()
    rec = RecommendationService(db.session).create(
        name=form.name.data,
        type=form.type.data,
        description=form.description.data,
        category=form.category.data,
        note=form.note.data,
        state=form.state.data,
        contact=data.get('contact'),
        address=data.get('address'),
        submitted_by=form.submittedBy.data,
        email=form.email.data,
    )
    return jsonify({'id': rec.id, 'status': rec.status}), 201


@recommendations_bp.route('', methods=['GET'])
@login_required
@require_permission('recommendations:list')
def list_recommendations():
    status = request.args.get('status') or None
    recs = RecommendationService(db.session).list(status=status)
    return jsonify([serialize_recommendation(r) for r in recs])


@recommendations_bp.route('/<int:recommendation_id>/status', methods=['PATCH'])
@login_required
@require_permission('recommendations:update_status')
def update_status(recommendation_id):
    form = validate_payload(RecommendationStatusForm)
    rec = RecommendationService(db.session).update_status(recommendation_id, form.status.data)
    return jsonify(serialize_recommendation(rec))
