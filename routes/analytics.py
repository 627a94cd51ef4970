from flask import Blueprint, jsonify
from flask_login import login_required

from models import db
from utils.analytics import AnalyticsService
from utils.permissions import require_permission

analytics_bp = Blueprint('analytics', __name__)


@analytics_bp.route('/analytics', methods=['GET'])
@login_required
@require_permission('analytics:view')
def user_analytics():
    """Demographic and geographic breakdowns of all users"""
    return jsonify(AnalyticsService(db.session).user_analytics())
