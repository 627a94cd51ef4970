from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash

db = SQLAlchemy()

ROLE_USER = 'user'
ROLE_ADMIN = 'admin'
ROLE_BUSINESS_REP = 'business_rep'
ROLES = (ROLE_USER, ROLE_ADMIN, ROLE_BUSINESS_REP)

CATEGORIES = ('SOCIAL', 'MENTAL', 'PHYSICAL')

RATING_UP = 1
RATING_DOWN = -1

RECOMMENDATION_PENDING = 'pending'
RECOMMENDATION_APPROVED = 'approved'
RECOMMENDATION_REJECTED = 'rejected'


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(120))
    role = db.Column(db.String(20), nullable=False, default=ROLE_USER)
    is_active = db.Column(db.Boolean, nullable=False, default=True)  # False = frozen by an admin
    is_email_verified = db.Column(db.Boolean, default=False)
    managed_resource_id = db.Column(db.Integer, db.ForeignKey('resources.id'), nullable=True)

    # Demographics
    age_group = db.Column(db.String(50))
    gender = db.Column(db.String(50))
    race_ethnicity = db.Column(db.String(100))
    sexual_orientation = db.Column(db.String(50))
    zipcode = db.Column(db.String(10))
    state = db.Column(db.String(2))
    resource_interests = db.Column(db.JSON, default=list)

    # Password-change verification
    otp_secret = db.Column(db.String(255))
    otp_expiry = db.Column(db.DateTime)
    otp_purpose = db.Column(db.String(20))  # flow that issued the code
    otp_attempts = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = db.Column(db.DateTime)

    # Relationships
    managed_resource = db.relationship('Resource', foreign_keys=[managed_resource_id], backref='managers')
    favorites = db.relationship('Favorite', backref='user', lazy=True, cascade='all, delete-orphan')
    ratings = db.relationship('Rating', backref='user', lazy=True, cascade='all, delete-orphan')
    reviews = db.relationship('Review', backref='user', lazy=True, cascade='all, delete-orphan')

    def set_password(self, password):
        """Set password hash"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Check password against hash"""
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.role == ROLE_ADMIN

    @property
    def is_business_rep(self):
        return self.role == ROLE_BUSINESS_REP

    def __repr__(self):
        return f'<User {self.email} role={self.role}>'


class Resource(db.Model):
    """A listed community service or organization"""
    __tablename__ = 'resources'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False, default='')
    category = db.Column(db.JSON, default=list)  # subset of CATEGORIES
    contact = db.Column(db.JSON, default=dict)  # phone / email / website
    address = db.Column(db.JSON, default=dict)  # street / city / state / zip
    zip_code = db.Column(db.String(10), index=True)  # copy of address['zip'] for exact-match search
    latitude = db.Column(db.Float)
    longitude = db.Column(db.Float)
    operating_hours = db.Column(db.JSON, default=dict)  # weekday -> {open, close}
    eligibility_criteria = db.Column(db.Text)
    services_provided = db.Column(db.JSON, default=list)
    target_audience = db.Column(db.JSON, default=list)  # age ranges, e.g. "16-18"
    accessibility_features = db.Column(db.JSON, default=list)
    cost = db.Column(db.String(100))
    tags = db.Column(db.JSON, default=list)
    verified = db.Column(db.Boolean, default=False)
    profile_photo_url = db.Column(db.String(500))
    banner_image_url = db.Column(db.String(500))

    # Cached aggregates, recomputed from the detail tables on every mutation
    favorite_count = db.Column(db.Integer, nullable=False, default=0)
    upvote_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    favorites = db.relationship('Favorite', backref='resource', lazy=True, cascade='all, delete-orphan')
    ratings = db.relationship('Rating', backref='resource', lazy=True, cascade='all, delete-orphan')
    reviews = db.relationship('Review', backref='resource', lazy=True, cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Resource {self.id} {self.name}>'


class Favorite(db.Model):
    __tablename__ = 'favorites'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    resource_id = db.Column(db.Integer, db.ForeignKey('resources.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (db.UniqueConstraint('user_id', 'resource_id', name='uq_favorite_user_resource'),)

    def __repr__(self):
        return f'<Favorite user_id={self.user_id} resource_id={self.resource_id}>'


class Rating(db.Model):
    __tablename__ = 'ratings'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    resource_id = db.Column(db.Integer, db.ForeignKey('resources.id'), nullable=False)
    rating = db.Column(db.Integer, nullable=False)  # RATING_UP or RATING_DOWN
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (db.UniqueConstraint('user_id', 'resource_id', name='uq_rating_user_resource'),)

    def __repr__(self):
        return f'<Rating user_id={self.user_id} resource_id={self.resource_id} rating={self.rating}>'


class Review(db.Model):
    __tablename__ = 'reviews'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    resource_id = db.Column(db.Integer, db.ForeignKey('resources.id'), nullable=False)
    content = db.Column(db.String(1000), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ResourceRecommendation(db.Model):
    """User-submitted suggestion for a new resource, triaged by admins"""
    __tablename__ = 'resource_recommendations'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    type = db.Column(db.String(20), nullable=False)  # 'state' or 'national'
    state = db.Column(db.String(50))  # required iff type == 'state'
    description = db.Column(db.Text, nullable=False, default='')
    category = db.Column(db.JSON, default=list)
    note = db.Column(db.Text, nullable=False)
    contact = db.Column(db.JSON, default=dict)
    address = db.Column(db.JSON, default=dict)
    submitted_by = db.Column(db.String(120))
    email = db.Column(db.String(120))
    status = db.Column(db.String(20), nullable=False, default=RECOMMENDATION_PENDING)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<ResourceRecommendation {self.id} {self.name} status={self.status}>'
