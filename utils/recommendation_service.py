"""
Resource recommendation workflow

A recommendation starts pending and moves once, by an admin, to approved or
rejected. Resolved recommendations never change status again.
"""

import logging

from models import (ResourceRecommendation, RECOMMENDATION_PENDING, RECOMMENDATION_APPROVED,
                    RECOMMENDATION_REJECTED)
from utils.error_handling import ValidationError, NotFoundError, transactional

logger = logging.getLogger(__name__)

STATUSES = (RECOMMENDATION_PENDING, RECOMMENDATION_APPROVED, RECOMMENDATION_REJECTED)
TRANSITIONS = {
    RECOMMENDATION_PENDING: (RECOMMENDATION_APPROVED, RECOMMENDATION_REJECTED),
    RECOMMENDATION_APPROVED: (),
    RECOMMENDATION_REJECTED: (),
}


def serialize_recommendation(rec):
    return {
        'id': rec.id,
        'name': rec.name,
        'type': rec.type,
        'state': rec.state,
        'description': rec.description or '',
        'category': rec.category or [],
        'note': rec.note or '',
        'contact': rec.contact or {},
        'address': rec.address or {},
        'submittedBy': rec.submitted_by,
        'email': rec.email,
        'status': rec.status,
        'createdAt': rec.created_at.isoformat() if rec.created_at else None,
        'updatedAt': rec.updated_at.isoformat() if rec.updated_at else None,
    }


def _object_or_empty(value, field):
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValidationError(f"'{field}' must be an object")
    return value


class RecommendationService:
    def __init__(self, session):
        self.session = session

    @transactional('Create recommendation')
    def create(self, name, type, description, category, note, state=None, contact=None, address=None,
               submitted_by=None, email=None):
        """Store a new pending recommendation; fields are expected to be validated already"""
        if type == 'state' and not state:
            raise ValidationError('State is required for state-level resources')
        rec = ResourceRecommendation(
            name=name.strip(),
            type=type,
            state=state.strip() if type == 'state' else None,
            description=description.strip(),
            category=list(category),
            note=note.strip(),
            contact=_object_or_empty(contact, 'contact'),
            address=_object_or_empty(address, 'address'),
            submitted_by=submitted_by or None,
            email=email or None,
            status=RECOMMENDATION_PENDING,
        )
        self.session.add(rec)
        self.session.flush()
        logger.info(f"Recommendation {rec.id} submitted: {rec.name} ({rec.type})")
        return rec

    def list(self, status=None):
        query = self.session.query(ResourceRecommendation)
        if status:
            if status not in STATUSES:
                raise ValidationError(f"Unknown status: {status}")
            query = query.filter(ResourceRecommendation.status == status)
        return query.order_by(ResourceRecommendation.created_at.desc(), ResourceRecommendation.id.desc()).all()

    @transactional('Update recommendation status')
    def update_status(self, recommendation_id, status):
        rec = self.session.get(ResourceRecommendation, recommendation_id)
        if rec is None:
            raise NotFoundError('Recommendation not found')
        if status not in (RECOMMENDATION_APPROVED, RECOMMENDATION_REJECTED):
            raise ValidationError("Status must be 'approved' or 'rejected'")
        if status not in TRANSITIONS[rec.status]:
            raise ValidationError(f"Recommendation is already {rec.status}")
        rec.status = status
        logger.info(f"Recommendation {rec.id} {status}")
        return rec
