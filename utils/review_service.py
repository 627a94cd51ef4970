"""
Review service: free-text reviews owned by their authors
"""

import logging

from models import Review, Resource
from utils.error_handling import ValidationError, NotFoundError, transactional

logger = logging.getLogger(__name__)

MAX_REVIEW_LENGTH = 1000


def serialize_review(review):
    return {
        'id': review.id,
        'resourceId': review.resource_id,
        'userId': review.user_id,
        'userName': (review.user.name or review.user.email) if review.user else '',
        'content': review.content,
        'createdAt': review.created_at.isoformat() if review.created_at else None,
        'updatedAt': review.updated_at.isoformat() if review.updated_at else None,
    }


def _clean_content(content):
    content = (content or '').strip()
    if not content:
        raise ValidationError('Review content is required')
    if len(content) > MAX_REVIEW_LENGTH:
        raise ValidationError(f'Review must be at most {MAX_REVIEW_LENGTH} characters')
    return content


class ReviewService:
    def __init__(self, session):
        self.session = session

    def _resource(self, resource_id):
        if self.session.get(Resource, resource_id) is None:
            raise NotFoundError('Resource not found')

    def get(self, resource_id, review_id):
        """Fetch a review, checking it belongs to the resource in the URL"""
        self._resource(resource_id)
        review = self.session.get(Review, review_id)
        if review is None:
            raise NotFoundError('Review not found')
        if review.resource_id != resource_id:
            raise ValidationError('Review does not belong to this resource')
        return review

    def list(self, resource_id):
        self._resource(resource_id)
        return self.session.query(Review).filter_by(resource_id=resource_id).order_by(
            Review.created_at.desc(), Review.id.desc()
        ).all()

    @transactional('Create review')
    def create(self, user_id, resource_id, content):
        self._resource(resource_id)
        review = Review(user_id=user_id, resource_id=resource_id, content=_clean_content(content))
        self.session.add(review)
        self.session.flush()
        logger.info(f"Review {review.id} added to resource {resource_id} by user {user_id}")
        return review

    @transactional('Update review')
    def update(self, review, content):
        review.content = _clean_content(content)
        return review

    @transactional('Delete review')
    def delete(self, review):
        self.session.delete(review)
        logger.info(f"Review {review.id} deleted from resource {review.resource_id}")
