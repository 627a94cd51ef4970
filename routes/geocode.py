from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required

from forms import AddressBatchForm, validate_payload
from utils.batch_geocoder import BatchGeocoder
from utils.error_handling import ValidationError
from utils.geocoding import configured_geocoder, is_unresolved
from utils.permissions import require_permission

geocode_bp = Blueprint('geocode', __name__)


@geocode_bp.route('/geocode', methods=['GET'])
@login_required
@require_permission('geocode:lookup')
def geocode():
    """Single address lookup; an unresolved address answers resolved=false with (0, 0)"""
    address = (request.args.get('address') or '').strip()
    if not address:
        raise ValidationError('address is required')
    coordinates = configured_geocoder(current_app.config)(address)
    return jsonify(dict(coordinates, resolved=not is_unresolved(coordinates)))


@geocode_bp.route('/geocode-addresses', methods=['POST'])
@login_required
@require_permission('geocode:lookup')
def geocode_addresses():
    form = validate_payload(AddressBatchForm)
    return jsonify(BatchGeocoder.from_config(current_app.config).run(form.addresses.data))
