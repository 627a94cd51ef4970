"""
Resource search: filter validation, query construction and the normalized
projection returned to the UI
"""

import json
import logging
from sqlalchemy import or_, cast, case

from models import db, Resource, CATEGORIES
from utils.distance import calculate_distance
from utils.error_handling import ValidationError

logger = logging.getLogger(__name__)

WEEKDAYS = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')


def _as_list(value, field):
    if value is None or value == '':
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"'{field}' must be a string or a list of strings")
    return [v.strip() for v in value if v and v.strip()]


def _as_float(value, field):
    if isinstance(value, bool):
        raise ValidationError(f"'{field}' must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"'{field}' must be a number")


def parse_search_filters(payload):
    """
    Validate a search payload and return normalized filters

    Empty or missing filters are dropped rather than treated as "match nothing".

    Raises:
        ValidationError: the payload is not an object or a filter has the wrong type
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError('Search filters must be a JSON object')

    filters = {}

    categories = [c.upper() for c in _as_list(payload.get('category'), 'category')]
    unknown = [c for c in categories if c not in CATEGORIES]
    if unknown:
        raise ValidationError(f"Unknown category: {', '.join(unknown)}")
    if categories:
        filters['category'] = categories

    description = payload.get('description')
    if description is not None and not isinstance(description, str):
        raise ValidationError("'description' must be a string")
    if description and description.strip():
        filters['description'] = description.strip()

    zip_code = payload.get('zipCode')
    if zip_code is not None and not isinstance(zip_code, (str, int)):
        raise ValidationError("'zipCode' must be a string")
    if zip_code is not None and str(zip_code).strip():
        filters['zipCode'] = str(zip_code).strip()

    age_range = _as_list(payload.get('ageRange'), 'ageRange')
    if age_range:
        filters['ageRange'] = age_range

    proximity = [payload.get(k) for k in ('latitude', 'longitude', 'maxDistance')]
    if any(v is not None for v in proximity):
        if any(v is None for v in proximity):
            raise ValidationError('latitude, longitude and maxDistance must be given together')
        latitude, longitude, max_distance = (
            _as_float(v, k) for v, k in zip(proximity, ('latitude', 'longitude', 'maxDistance'))
        )
        if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
            raise ValidationError('Coordinates are out of range')
        if max_distance < 0:
            raise ValidationError("'maxDistance' must not be negative")
        filters['near'] = {'latitude': latitude, 'longitude': longitude, 'maxDistance': max_distance}

    return filters


def _escape_like(value):
    return value.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def json_array_contains(column, value):
    """
    Predicate: a JSON array column holds value as one of its elements

    The element is matched in its serialized form, so it is encoded with the
    same json.dumps rules the JSON column type uses when writing.
    """
    return cast(column, db.Text).like(f'%{_escape_like(json.dumps(value))}%', escape='\\')


def build_search_query(filters, session=None):
    """
    Translate normalized filters into a Resource query

    With a description the query switches to keyword mode: rows matching any term
    in the name or the description are kept and ordered by a relevance score
    that weights name matches above description matches. Without one,
    resources are ordered newest first.
    """
    session = session or db.session
    query = session.query(Resource)

    categories = filters.get('category')
    if categories:
        query = query.filter(or_(*[json_array_contains(Resource.category, c) for c in categories]))

    zip_code = filters.get('zipCode')
    if zip_code:
        query = query.filter(Resource.zip_code == zip_code)

    age_range = filters.get('ageRange')
    if age_range:
        query = query.filter(or_(*[json_array_contains(Resource.target_audience, a) for a in age_range]))

    description = filters.get('description')
    if description:
        terms = [t.lower() for t in description.split() if t.strip()]
        matchers = []
        relevance = None
        for term in terms:
            pattern = f'%{_escape_like(term)}%'
            in_name = Resource.name.ilike(pattern, escape='\\')
            in_description = Resource.description.ilike(pattern, escape='\\')
            matchers.append(or_(in_name, in_description))
            score = case((in_name, 2), else_=0) + case((in_description, 1), else_=0)
            relevance = score if relevance is None else relevance + score
        query = query.filter(or_(*matchers))
        query = query.order_by(relevance.desc(), Resource.upvote_count.desc(), Resource.created_at.desc(), Resource.id.desc())
    else:
        query = query.order_by(Resource.created_at.desc(), Resource.id.desc())

    return query


def _text(value):
    return value if isinstance(value, str) else ''


def _string_list(value):
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


def normalize_resource(resource):
    """Project a Resource into the JSON shape the UI expects, filling missing nested fields"""
    contact = resource.contact if isinstance(resource.contact, dict) else {}
    address = resource.address if isinstance(resource.address, dict) else {}
    hours = resource.operating_hours if isinstance(resource.operating_hours, dict) else {}

    operating_hours = {}
    for day in WEEKDAYS:
        slot = hours.get(day) if isinstance(hours.get(day), dict) else {}
        operating_hours[day] = {'open': _text(slot.get('open')), 'close': _text(slot.get('close'))}

    return {
        'id': resource.id,
        'name': resource.name or '',
        'description': resource.description or '',
        'category': _string_list(resource.category),
        'contact': {key: _text(contact.get(key)) for key in ('phone', 'email', 'website')},
        'address': {key: _text(address.get(key)) for key in ('street', 'city', 'state', 'zip')},
        'latitude': resource.latitude,
        'longitude': resource.longitude,
        'operatingHours': operating_hours,
        'eligibilityCriteria': resource.eligibility_criteria or '',
        'servicesProvided': _string_list(resource.services_provided),
        'targetAudience': _string_list(resource.target_audience),
        'accessibilityFeatures': _string_list(resource.accessibility_features),
        'cost': resource.cost or '',
        'tags': _string_list(resource.tags),
        'verified': bool(resource.verified),
        'profilePhotoUrl': resource.profile_photo_url or '',
        'bannerImageUrl': resource.banner_image_url or '',
        'favoriteCount': resource.favorite_count or 0,
        'upvoteCount': resource.upvote_count or 0,
        'createdAt': resource.created_at.isoformat() if resource.created_at else None,
        'updatedAt': resource.updated_at.isoformat() if resource.updated_at else None,
    }


def apply_proximity(projections, near):
    """Keep projections within near['maxDistance'] miles, nearest first, annotated with 'distance'"""
    kept = []
    for item in projections:
        lat, lon = item.get('latitude'), item.get('longitude')
        if lat is None or lon is None or (lat == 0 and lon == 0):
            continue
        distance = calculate_distance(near['latitude'], near['longitude'], lat, lon)
        if distance <= near['maxDistance']:
            kept.append(dict(item, distance=round(distance, 2)))
    kept.sort(key=lambda item: item['distance'])
    return kept


def _page(items, page, limit):
    if limit is None:
        return items
    offset = (page - 1) * limit
    return items[offset:offset + limit]


def search_resources(filters, page=1, limit=None, session=None):
    """
    Run a search and return (projections, total)

    Without a limit every match is returned. When a proximity filter is present the distance check runs over the full
    predicate result before pagination, since coordinates are not indexed.
    """
    query = build_search_query(filters, session=session)
    near = filters.get('near')

    if near:
        matches = apply_proximity([normalize_resource(r) for r in query.all()], near)
        return _page(matches, page, limit), len(matches)

    total = query.order_by(None).count()
    if limit is not None:
        query = query.offset((page - 1) * limit).limit(limit)
    rows = query.all()
    logger.info(f"Resource search {sorted(filters)} matched {total} resources")
    return [normalize_resource(r) for r in rows], total
