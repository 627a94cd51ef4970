"""
Rating and favorite services

Both aggregates on Resource (upvote_count, favorite_count) are recomputed from
their detail tables inside the same transaction as the mutation, with the
resource row locked for the duration.
"""

import logging
import math
from sqlalchemy import func

from models import Resource, Rating, Favorite, RATING_UP, RATING_DOWN
from utils.error_handling import ValidationError, NotFoundError, transactional
from utils.resource_search import normalize_resource

logger = logging.getLogger(__name__)

RATING_VALUES = {'UP': RATING_UP, 'DOWN': RATING_DOWN, 'NULL': None}
RATING_LABELS = {RATING_UP: 'UP', RATING_DOWN: 'DOWN'}


def parse_rating(value):
    """Map 'UP' / 'DOWN' / 'NULL' (or JSON null) to +1 / -1 / None"""
    if value is None:
        return None
    if not isinstance(value, str) or value.strip().upper() not in RATING_VALUES:
        raise ValidationError("Rating must be one of 'UP', 'DOWN' or 'NULL'")
    return RATING_VALUES[value.strip().upper()]


def approval_percentage(upvotes, downvotes):
    """Share of upvotes, rounded half up to a whole percent; 0 with no votes"""
    total = upvotes + downvotes
    if total == 0:
        return 0
    return int(math.floor(upvotes / total * 100 + 0.5))


def lock_resource(session, resource_id):
    resource = session.query(Resource).filter(Resource.id == resource_id).with_for_update().first()
    if resource is None:
        raise NotFoundError('Resource not found')
    return resource


def vote_tally(session, resource_id):
    rows = session.query(Rating.rating, func.count(Rating.id)).filter(
        Rating.resource_id == resource_id
    ).group_by(Rating.rating).all()
    counts = dict(rows)
    upvotes = counts.get(RATING_UP, 0)
    downvotes = counts.get(RATING_DOWN, 0)
    return {
        'upvotes': upvotes,
        'downvotes': downvotes,
        'totalVotes': upvotes + downvotes,
        'approvalPercentage': approval_percentage(upvotes, downvotes),
    }


def recount_votes(session, resource):
    """Refresh resource.upvote_count from the ratings table and return the tally"""
    tally = vote_tally(session, resource.id)
    resource.upvote_count = tally['upvotes'] - tally['downvotes']
    return tally


def recount_favorites(session, resource):
    """Refresh resource.favorite_count from the favorites table"""
    resource.favorite_count = session.query(func.count(Favorite.id)).filter(
        Favorite.resource_id == resource.id
    ).scalar() or 0
    return resource.favorite_count


class RatingService:
    """Per-user up/down votes on resources"""

    def __init__(self, session):
        self.session = session

    def _user_rating(self, user_id, resource_id):
        if user_id is None:
            return None
        rating = self.session.query(Rating).filter_by(user_id=user_id, resource_id=resource_id).first()
        return RATING_LABELS.get(rating.rating) if rating else None

    @transactional('Rate resource')
    def rate(self, user_id, resource_id, value):
        """
        Set, replace or clear a user's rating

        Args:
            user_id: Rating user
            resource_id: Rated resource
            value: 'UP', 'DOWN', 'NULL' or None; NULL and None delete the rating

        Returns:
            dict with upvotes, downvotes, totalVotes, approvalPercentage, userRating
        """
        rating_value = parse_rating(value)
        resource = lock_resource(self.session, resource_id)

        existing = self.session.query(Rating).filter_by(user_id=user_id, resource_id=resource_id).first()
        if rating_value is None:
            if existing:
                self.session.delete(existing)
        elif existing:
            existing.rating = rating_value
        else:
            self.session.add(Rating(user_id=user_id, resource_id=resource_id, rating=rating_value))
        self.session.flush()

        tally = recount_votes(self.session, resource)
        logger.info(f"User {user_id} rated resource {resource_id}: {RATING_LABELS.get(rating_value, 'NULL')}")
        return dict(tally, userRating=RATING_LABELS.get(rating_value))

    def summary(self, resource_id, user_id=None):
        """Vote totals for a resource, plus the caller's own rating when signed in"""
        if self.session.get(Resource, resource_id) is None:
            raise NotFoundError('Resource not found')
        tally = vote_tally(self.session, resource_id)
        return dict(tally, userRating=self._user_rating(user_id, resource_id))

    def user_ratings(self, user_id):
        ratings = self.session.query(Rating).filter_by(user_id=user_id).order_by(Rating.updated_at.desc(), Rating.id.desc()).all()
        return [{
            'resourceId': r.resource_id,
            'resourceName': r.resource.name if r.resource else '',
            'rating': RATING_LABELS.get(r.rating),
            'updatedAt': r.updated_at.isoformat() if r.updated_at else None,
        } for r in ratings]


class FavoriteService:
    """Favorite toggling and lookups"""

    def __init__(self, session):
        self.session = session

    @transactional('Toggle favorite')
    def toggle(self, user_id, resource_id):
        """Flip the favorite for (user, resource) and return {isFavorited, favoriteCount}"""
        resource = lock_resource(self.session, resource_id)

        existing = self.session.query(Favorite).filter_by(user_id=user_id, resource_id=resource_id).first()
        if existing:
            self.session.delete(existing)
        else:
            self.session.add(Favorite(user_id=user_id, resource_id=resource_id))
        self.session.flush()

        count = recount_favorites(self.session, resource)
        logger.info(f"User {user_id} {'removed' if existing else 'added'} favorite {resource_id}")
        return {'isFavorited': existing is None, 'favoriteCount': count}

    def status(self, resource_id, user_id=None):
        resource = self.session.get(Resource, resource_id)
        if resource is None:
            raise NotFoundError('Resource not found')
        is_favorited = False
        if user_id is not None:
            is_favorited = self.session.query(Favorite).filter_by(
                user_id=user_id, resource_id=resource_id
            ).first() is not None
        return {'isFavorited': is_favorited, 'favoriteCount': resource.favorite_count or 0}

    def user_favorites(self, user_id):
        """Resources the user has favorited, most recent first"""
        resources = self.session.query(Resource).join(Favorite, Favorite.resource_id == Resource.id).filter(
            Favorite.user_id == user_id
        ).order_by(Favorite.created_at.desc(), Favorite.id.desc()).all()
        return [normalize_resource(r) for r in resources]
