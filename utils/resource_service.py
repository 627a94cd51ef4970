"""
Resource management service: admin CRUD, the business representative's
restricted update, and the deletion policy
"""

import logging
import math
from numbers import Number

from models import Resource, User, CATEGORIES, ROLE_USER, ROLE_BUSINESS_REP
from utils.error_handling import ValidationError, NotFoundError, transactional
from utils.geocoding import format_address, is_unresolved
from utils.resource_search import normalize_resource

logger = logging.getLogger(__name__)

# Payload key -> model attribute
EDITABLE_FIELDS = {
    'name': 'name',
    'description': 'description',
    'category': 'category',
    'contact': 'contact',
    'address': 'address',
    'latitude': 'latitude',
    'longitude': 'longitude',
    'operatingHours': 'operating_hours',
    'eligibilityCriteria': 'eligibility_criteria',
    'servicesProvided': 'services_provided',
    'targetAudience': 'target_audience',
    'accessibilityFeatures': 'accessibility_features',
    'cost': 'cost',
    'tags': 'tags',
    'verified': 'verified',
    'profilePhotoUrl': 'profile_photo_url',
    'bannerImageUrl': 'banner_image_url',
}

BUSINESS_FIELDS = ('name', 'description', 'contact', 'address', 'operatingHours')

_OBJECT_FIELDS = ('contact', 'address', 'operatingHours')
_LIST_FIELDS = ('servicesProvided', 'targetAudience', 'accessibilityFeatures', 'tags')
_TEXT_FIELDS = ('description', 'eligibilityCriteria', 'cost', 'profilePhotoUrl', 'bannerImageUrl')


def _clean_field(key, value):
    if key == 'name':
        if not isinstance(value, str) or not value.strip():
            raise ValidationError('Name is required')
        if len(value.strip()) > 200:
            raise ValidationError('Name must be at most 200 characters')
        return value.strip()
    if key == 'category':
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ValidationError("'category' must be a list of strings")
        categories = [v.strip().upper() for v in value if v.strip()]
        unknown = [c for c in categories if c not in CATEGORIES]
        if unknown:
            raise ValidationError(f"Unknown category: {', '.join(unknown)}")
        return list(dict.fromkeys(categories))
    if key in _OBJECT_FIELDS:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ValidationError(f"'{key}' must be an object")
        return value
    if key in _LIST_FIELDS:
        if value is None:
            return []
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ValidationError(f"'{key}' must be a list of strings")
        return value
    if key in ('latitude', 'longitude'):
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, Number) or not math.isfinite(value):
            raise ValidationError(f"'{key}' must be a number")
        return float(value)
    if key == 'verified':
        if not isinstance(value, bool):
            raise ValidationError("'verified' must be a boolean")
        return value
    if key in _TEXT_FIELDS:
        if value is None:
            return ''
        if not isinstance(value, str):
            raise ValidationError(f"'{key}' must be a string")
        return value
    raise ValidationError(f"Unknown field: {key}")


def clean_resource_payload(payload, allowed=None):
    """
    Validate a resource payload and map it onto model attributes

    Keys outside the allowed set (ids, counters, timestamps, anything unknown)
    are ignored.
    """
    if not isinstance(payload, dict):
        raise ValidationError('Request body must be a JSON object')
    allowed = allowed or EDITABLE_FIELDS.keys()
    return {EDITABLE_FIELDS[key]: _clean_field(key, payload[key]) for key in allowed if key in payload}


def _zip_from_address(address):
    if not isinstance(address, dict):
        return None
    zip_code = str(address.get('zip') or '').strip()
    return zip_code or None


class ResourceService:
    """Resource persistence operations; geocode is an address -> coordinates callable"""

    def __init__(self, session, geocode=None):
        self.session = session
        self.geocode = geocode

    def get(self, resource_id):
        resource = self.session.get(Resource, resource_id)
        if resource is None:
            raise NotFoundError('Resource not found')
        return resource

    def get_with_owner(self, resource_id):
        """Normalized projection plus the business representative managing it"""
        resource = self.get(resource_id)
        owner = self.session.query(User).filter_by(
            managed_resource_id=resource.id, role=ROLE_BUSINESS_REP
        ).order_by(User.id).first()
        data = normalize_resource(resource)
        data['owner'] = {'id': owner.id, 'name': owner.name or '', 'email': owner.email} if owner else None
        return data

    def list_resources(self, page=1, limit=20):
        query = self.session.query(Resource).order_by(Resource.created_at.desc(), Resource.id.desc())
        total = query.order_by(None).count()
        rows = query.offset((page - 1) * limit).limit(limit).all()
        return {
            'data': [normalize_resource(r) for r in rows],
            'pagination': {
                'total': total,
                'page': page,
                'limit': limit,
                'totalPages': math.ceil(total / limit) if limit else 0,
            },
        }

    def _apply(self, resource, values, coordinates_given):
        address_changed = 'address' in values and values['address'] != resource.address
        for attr, value in values.items():
            setattr(resource, attr, value)

        if 'address' in values:
            resource.zip_code = _zip_from_address(resource.address)
            address = resource.address or {}
            if not coordinates_given and 'latitude' in address and 'longitude' in address:
                lat = _clean_field('latitude', address.get('latitude'))
                lon = _clean_field('longitude', address.get('longitude'))
                resource.latitude, resource.longitude = lat, lon
                coordinates_given = lat is not None and lon is not None

        needs_coordinates = resource.latitude is None or resource.longitude is None
        if not coordinates_given and (address_changed or needs_coordinates):
            self._geocode(resource)

    def _geocode(self, resource):
        line = format_address(resource.address)
        if not line or self.geocode is None:
            return
        coordinates = self.geocode(line)
        if is_unresolved(coordinates):
            logger.warning(f"Could not geocode address for resource '{resource.name}'")
            resource.latitude = resource.longitude = None
        else:
            resource.latitude = coordinates['latitude']
            resource.longitude = coordinates['longitude']

    @transactional('Create resource')
    def create(self, payload):
        values = clean_resource_payload(payload)
        if not values.get('name'):
            raise ValidationError('Name is required')
        if not values.get('description', '').strip():
            raise ValidationError('Description is required')

        resource = Resource()
        self._apply(resource, values, values.get('latitude') is not None and values.get('longitude') is not None)
        self.session.add(resource)
        self.session.flush()
        logger.info(f"Resource created: {resource.id} {resource.name}")
        return resource

    @transactional('Update resource')
    def update(self, resource_id, payload, allowed=None):
        """Write the allowed fields of payload onto a resource"""
        resource = self.get(resource_id)
        values = clean_resource_payload(payload, allowed)
        if 'description' in values and not values['description'].strip():
            raise ValidationError('Description is required')
        self._apply(resource, values, 'latitude' in values or 'longitude' in values)
        logger.info(f"Resource {resource_id} updated: {sorted(values)}")
        return resource

    def business_update(self, resource_id, payload):
        return self.update(resource_id, payload, allowed=BUSINESS_FIELDS)

    @transactional('Delete resource')
    def delete(self, resource_id):
        """
        Delete a resource with its favorites, ratings and reviews

        Business representatives managing it lose the role, since a
        business_rep without a managed resource is not a valid account state.

        Returns:
            Number of demoted representatives
        """
        resource = self.get(resource_id)
        managers = self.session.query(User).filter_by(managed_resource_id=resource.id).all()
        for user in managers:
            user.role = ROLE_USER
            user.managed_resource_id = None
        self.session.flush()
        self.session.delete(resource)
        logger.info(f"Resource {resource_id} deleted; {len(managers)} business representative(s) demoted")
        return len(managers)
