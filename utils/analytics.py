"""
Admin analytics: demographic and geographic breakdowns of the user base

Every request scans the whole users table. That is fine at the expected data
volume but will need pre-aggregation if the user base grows large.
"""

import logging
from collections import Counter, OrderedDict
from sqlalchemy import func

from models import User, Resource
from utils.zipcodes import derive_state

logger = logging.getLogger(__name__)

UNKNOWN_STATE = 'Unknown'

# Output key -> column on the user row
DIMENSIONS = OrderedDict([
    ('ageGroups', 'age_group'),
    ('genders', 'gender'),
    ('raceEthnicity', 'race_ethnicity'),
    ('sexualOrientation', 'sexual_orientation'),
])


def percentage(count, total):
    return round(count / total * 100, 1) if total else 0.0


def ranked(counter):
    """Counter items ordered by count descending, label ascending"""
    return sorted(counter.items(), key=lambda item: (-item[1], str(item[0])))


def breakdown(counter, total):
    return [{'label': label, 'count': count, 'percentage': percentage(count, total)}
            for label, count in ranked(counter)]


def user_state(state, zipcode):
    """Explicit state when present, otherwise derived from the zipcode"""
    if state and state.strip():
        return state.strip().upper()
    if zipcode and str(zipcode).strip():
        return derive_state(zipcode) or UNKNOWN_STATE
    return None


def _interests(value):
    if not isinstance(value, list):
        return []
    # A user listing a tag twice still counts once for it
    return list(dict.fromkeys(v for v in value if isinstance(v, str) and v))


class AnalyticsService:
    """Dashboard aggregates for admins and business representatives"""

    def __init__(self, session):
        self.session = session

    def totals(self):
        users = self.session.query(func.count(User.id)).scalar() or 0
        active = self.session.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar() or 0
        return {
            'users': users,
            'activeUsers': active,
            'frozenUsers': users - active,
            'resources': self.session.query(func.count(Resource.id)).scalar() or 0,
        }

    def _rows(self):
        return self.session.query(
            User.age_group, User.gender, User.race_ethnicity, User.sexual_orientation,
            User.resource_interests, User.zipcode, User.state,
        ).all()

    def user_analytics(self):
        """
        Build the dashboard payload

        Returns:
            dict with totals, demographics (per dimension: label, count,
            percentage of users reporting that dimension) and
            geographicDistribution (per state: count, percentage of located
            users, and the same dimensions counted within the state)
        """
        rows = self._rows()

        counters = {key: Counter() for key in DIMENSIONS}
        counters['resourceInterests'] = Counter()
        reporting = Counter()
        interest_users = 0

        states = Counter()
        by_state = {}

        for row in rows:
            values = {key: getattr(row, column) for key, column in DIMENSIONS.items()}
            interests = _interests(row.resource_interests)

            for key, value in values.items():
                if value:
                    counters[key][value] += 1
                    reporting[key] += 1
            if interests:
                interest_users += 1
                counters['resourceInterests'].update(interests)

            state = user_state(row.state, row.zipcode)
            if state is None:
                continue
            states[state] += 1
            nested = by_state.setdefault(state, {key: Counter() for key in list(DIMENSIONS) + ['resourceInterests']})
            for key, value in values.items():
                if value:
                    nested[key][value] += 1
            nested['resourceInterests'].update(interests)

        reporting['resourceInterests'] = interest_users
        demographics = {key: breakdown(counter, reporting[key]) for key, counter in counters.items()}

        located = sum(states.values())
        geographic = [{
            'state': state,
            'count': count,
            'percentage': percentage(count, located),
            'demographics': {key: OrderedDict(ranked(counter)) for key, counter in by_state[state].items()},
        } for state, count in ranked(states)]

        logger.info(f"Analytics computed over {len(rows)} users, {located} located in {len(states)} states")
        return {
            'totals': self.totals(),
            'demographics': demographics,
            'geographicDistribution': geographic,
        }
