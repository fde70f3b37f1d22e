from datetime import datetime
from enum import Enum
from flask_security import UserMixin, RoleMixin
from foodshare.extensions import db
from foodshare.geo import parse_point

# Association table for many-to-many relationship between users and roles
roles_users = db.Table('roles_users',
    db.Column('user_id', db.Integer(), db.ForeignKey('user.id')),
    db.Column('role_id', db.Integer(), db.ForeignKey('role.id'))
)

# ========== Enums ==========

class RoleEnum(str, Enum):
    """Roles a profile can hold"""
    DONOR = 'donor'
    RECEIVER = 'receiver'
    ADMIN = 'admin'

    @classmethod
    def all(cls):
        return [role.value for role in cls]

    @classmethod
    def self_service(cls):
        """Roles a visitor may pick at signup"""
        return [cls.DONOR.value, cls.RECEIVER.value]

class DonationStatus(str, Enum):
    """Donation lifecycle: pending -> accepted -> picked -> verified"""
    PENDING = 'pending'
    ACCEPTED = 'accepted'
    PICKED = 'picked'
    VERIFIED = 'verified'

    @classmethod
    def all(cls):
        return [status.value for status in cls]

    @classmethod
    def editable_statuses(cls):
        """Statuses in which the donor may still edit or delete"""
        return [cls.PENDING.value]

    @classmethod
    def can_transition(cls, current, target):
        """Only single forward steps are allowed"""
        order = cls.all()
        current, target = cls(current).value, cls(target).value
        return order.index(target) == order.index(current) + 1

class DonorType(str, Enum):
    INDIVIDUAL = 'individual'
    RESTAURANT = 'restaurant'
    CATERER = 'caterer'
    CANTEEN = 'canteen'

    @classmethod
    def all(cls):
        return [t.value for t in cls]

class FoodType(str, Enum):
    VEG = 'veg'
    NON_VEG = 'non-veg'

    @classmethod
    def all(cls):
        return [t.value for t in cls]

class FoodCategory(str, Enum):
    PERISHABLE = 'perishable'
    NON_PERISHABLE = 'non-perishable'

    @classmethod
    def all(cls):
        return [c.value for c in cls]

class ReportStatus(str, Enum):
    PENDING = 'pending'
    RESOLVED = 'resolved'
    DISMISSED = 'dismissed'

    @classmethod
    def all(cls):
        return [status.value for status in cls]

class ReportType(str, Enum):
    USER = 'user'
    DONATION = 'donation'

class OrganizationStatus(str, Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'

    @classmethod
    def all(cls):
        return [status.value for status in cls]

class OrganizationType(str, Enum):
    NGO = 'ngo'
    VOLUNTEER = 'volunteer'

    @classmethod
    def all(cls):
        return [t.value for t in cls]

# ========== Identity ==========

class Role(db.Model, RoleMixin):
    id = db.Column(db.Integer(), primary_key=True)
    name = db.Column(db.String(80), unique=True)
    description = db.Column(db.String(255))

    def __repr__(self):
        return f'<Role {self.name}>'

class User(db.Model, UserMixin):
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password = db.Column(db.String(255))
    active = db.Column(db.Boolean(), default=True)
    fs_uniquifier = db.Column(db.String(255), unique=True, nullable=False)
    confirmed_at = db.Column(db.DateTime())
    created_at = db.Column(db.DateTime(), default=datetime.utcnow)

    # Relationships
    roles = db.relationship('Role', secondary=roles_users, backref=db.backref('users', lazy='dynamic'))
    profile = db.relationship('Profile', backref='user', uselist=False, cascade='all, delete-orphan',
                              foreign_keys='Profile.user_id')
    donations = db.relationship('Donation', backref='donor', lazy='dynamic', foreign_keys='Donation.donor_id')

    @property
    def primary_role(self):
        """The role that decides which dashboard the user lands on"""
        names = {role.name for role in self.roles}
        for role in (RoleEnum.ADMIN, RoleEnum.DONOR, RoleEnum.RECEIVER):
            if role.value in names:
                return role.value
        return None

    @property
    def display_name(self):
        if self.profile and self.profile.name:
            return self.profile.name
        return self.email

    def __repr__(self):
        return f'<User {self.email}>'

class Profile(db.Model):
    """Public-facing details for a user; role lives on the user's roles"""
    __tablename__ = 'profiles'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), unique=True, nullable=False)
    name = db.Column(db.String(120), nullable=False, default='')
    organization = db.Column(db.String(200))
    phone = db.Column(db.String(30))
    avatar_url = db.Column(db.String(500))
    is_verified = db.Column(db.Boolean(), default=False, nullable=False)
    verified_at = db.Column(db.DateTime())
    verified_by_id = db.Column(db.Integer, db.ForeignKey('user.id'))
    is_flagged = db.Column(db.Boolean(), default=False, nullable=False)
    created_at = db.Column(db.DateTime(), default=datetime.utcnow)
    updated_at = db.Column(db.DateTime(), default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def role(self):
        return self.user.primary_role if self.user else None

    def __repr__(self):
        return f'<Profile {self.name} ({self.role})>'

# ========== Donations ==========

class Donation(db.Model):
    __tablename__ = 'donations'

    id = db.Column(db.Integer, primary_key=True)
    donor_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    donor_type = db.Column(db.String(20), nullable=False, default=DonorType.INDIVIDUAL.value)
    food_type = db.Column(db.String(20), nullable=False, default=FoodType.VEG.value)
    category = db.Column(db.String(20), nullable=False, default=FoodCategory.PERISHABLE.value)
    quantity = db.Column(db.Float, nullable=False, default=0)
    description = db.Column(db.Text)
    items = db.Column(db.Text)
    pickup_address = db.Column(db.String(300))
    location = db.Column(db.String(64), nullable=False, default='(0,0)')  # "(lng,lat)"
    pickup_time_start = db.Column(db.Time)
    pickup_time_end = db.Column(db.Time)
    contact_person = db.Column(db.String(120))
    contact_number = db.Column(db.String(30))
    image_url = db.Column(db.String(500))  # absolute URL or storage key
    expiry_time = db.Column(db.DateTime())
    consent = db.Column(db.Boolean(), nullable=False, default=False)
    status = db.Column(
        db.String(20),
        nullable=False,
        default=DonationStatus.PENDING.value,
        index=True
    )
    accepted_by_id = db.Column(db.Integer, db.ForeignKey('user.id'))
    accepted_at = db.Column(db.DateTime())
    created_at = db.Column(db.DateTime(), default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime(), default=datetime.utcnow, onupdate=datetime.utcnow)

    accepted_by = db.relationship('User', foreign_keys=[accepted_by_id])

    @property
    def point(self):
        """Parsed pickup point, None when the stored text is malformed"""
        return parse_point(self.location)

    @property
    def has_coordinates(self):
        point = self.point
        return point is not None and not point.is_origin

    def is_editable(self):
        return self.status in DonationStatus.editable_statuses()

    def __repr__(self):
        return f'<Donation {self.id} {self.status} by {self.donor_id}>'

# ========== Moderation ==========

class Report(db.Model):
    __tablename__ = 'reports'

    id = db.Column(db.Integer, primary_key=True)
    reporter_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    reported_user_id = db.Column(db.Integer, db.ForeignKey('user.id'))
    donation_id = db.Column(db.Integer, db.ForeignKey('donations.id', ondelete='SET NULL'))
    report_type = db.Column(db.String(20), nullable=False, default=ReportType.DONATION.value)
    reason = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=ReportStatus.PENDING.value)
    resolved_at = db.Column(db.DateTime())
    resolved_by_id = db.Column(db.Integer, db.ForeignKey('user.id'))
    created_at = db.Column(db.DateTime(), default=datetime.utcnow)

    reporter = db.relationship('User', foreign_keys=[reporter_id])
    reported_user = db.relationship('User', foreign_keys=[reported_user_id])

    def __repr__(self):
        return f'<Report {self.id} {self.report_type} {self.status}>'

class Organization(db.Model):
    __tablename__ = 'organizations'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    type = db.Column(db.String(20), nullable=False, default=OrganizationType.NGO.value)
    status = db.Column(db.String(20), nullable=False, default=OrganizationStatus.PENDING.value)
    contact_person = db.Column(db.String(120))
    email = db.Column(db.String(255))
    submitted_by_id = db.Column(db.Integer, db.ForeignKey('user.id'))
    approved_by_id = db.Column(db.Integer, db.ForeignKey('user.id'))
    approved_at = db.Column(db.DateTime())
    created_at = db.Column(db.DateTime(), default=datetime.utcnow)

    def __repr__(self):
        return f'<Organization {self.name} {self.status}>'

class DailyMetrics(db.Model):
    __tablename__ = 'metrics'

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, unique=True, nullable=False)
    food_saved_kg = db.Column(db.Float, nullable=False, default=0)
    people_served = db.Column(db.Integer, nullable=False, default=0)
    emissions_prevented_kg = db.Column(db.Float, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(), default=datetime.utcnow, onupdate=datetime.utcnow)

    @classmethod
    def for_date(cls, day):
        """Metrics row for ``day``; an unsaved all-zero row when nothing was recorded"""
        row = cls.query.filter_by(date=day).first()
        if row is None:
            row = cls(date=day, food_saved_kg=0, people_served=0, emissions_prevented_kg=0)
        return row

    def __repr__(self):
        return f'<DailyMetrics {self.date}>'
