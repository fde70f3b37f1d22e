"""
Donation lifecycle manager.

A donation moves pending -> accepted -> picked -> verified and never
backwards. Donors may edit or delete their own donations only while they are
pending; receivers race to accept and the first committed write wins. Every
status guard is part of the UPDATE/DELETE predicate, so the row count of the
write is the source of truth, not the record read beforehand.
"""
import logging
import math
from contextlib import contextmanager
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta, time
from enum import Enum
from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from foodshare.errors import (
    AuthorizationError, BackendError, BackendReason, ConflictError, DonationNotFound,
    FoodShareError, LifecycleReason, ValidationError, ValidationReason
)
from foodshare.feed import ChangeEvent, INSERT, UPDATE, DELETE
from foodshare.geo import GeoPoint, ORIGIN, format_point
from foodshare.models import (
    Donation, DonationStatus, DonorType, FoodCategory, FoodType, RoleEnum, User
)
from foodshare.utils import is_storage_key

IMMINENT_WITHIN = timedelta(hours=2)


class Urgency(str, Enum):
    EXPIRED = 'expired'
    IMMINENT = 'imminent'
    NORMAL = 'normal'


@dataclass
class DonationDraft:
    """Unvalidated donation as submitted by the donor form."""
    donor_type: str = DonorType.INDIVIDUAL.value
    food_type: str = FoodType.VEG.value
    category: str = FoodCategory.PERISHABLE.value
    quantity: Optional[float] = 0
    items: str = ''
    description: str = ''
    pickup_address: str = ''
    location: Optional[GeoPoint] = None
    pickup_time_start: Optional[time] = None
    pickup_time_end: Optional[time] = None
    expiry_time: Optional[datetime] = None
    contact_person: str = ''
    contact_number: str = ''
    image_url: Optional[str] = None
    consent: bool = False


@dataclass(frozen=True)
class ValidatedDonation:
    donor_type: str
    food_type: str
    category: str
    quantity: float
    items: str
    description: str
    pickup_address: str
    location: GeoPoint
    pickup_time_start: Optional[time]
    pickup_time_end: Optional[time]
    expiry_time: Optional[datetime]
    contact_person: str
    contact_number: str
    image_url: Optional[str]
    consent: bool = field(default=True)

    def to_record(self):
        """Column values for the donations table"""
        values = asdict(self)
        values['location'] = format_point(self.location)
        return values


@dataclass(frozen=True)
class DeleteResult:
    donation_id: int
    image_released: bool = False
    warning: Optional[str] = None


def compute_urgency(expiry, now=None, imminent_within=IMMINENT_WITHIN):
    """Display urgency for an expiry timestamp. Expiry never changes the status."""
    if expiry is None:
        return Urgency.NORMAL
    now = now or datetime.now()
    if expiry < now:
        return Urgency.EXPIRED
    if expiry - now <= imminent_within:
        return Urgency.IMMINENT
    return Urgency.NORMAL


def format_expiry(expiry, now=None):
    if expiry is None:
        return ''
    now = now or datetime.now()
    # Half-hours round up, so 30 minutes left still reads "1 hours"
    hours = math.floor((expiry - now).total_seconds() / 3600 + 0.5)
    if hours < 0:
        return 'Expired'
    if hours < 1:
        return 'Expiring soon'
    if hours < 24:
        return f'Expires in {hours} hours'
    return f'Expires in {math.floor(hours / 24 + 0.5)} days'


class DonationLifecycle:
    """Validates donations and moves them through their statuses."""

    def __init__(self, session, storage=None, feed=None, logger=None, imminent_within=IMMINENT_WITHIN):
        self.session = session
        self.storage = storage
        self.feed = feed
        self.logger = logger or logging.getLogger(__name__)
        self.imminent_within = imminent_within

    # ========== Validation ==========

    def validate_for_submit(self, draft):
        if not draft.consent:
            raise ValidationError(ValidationReason.MISSING_CONSENT)

        address = (draft.pickup_address or '').strip()
        point = draft.location
        has_point = point is not None and point.is_valid() and not point.is_origin
        if not has_point and not address:
            raise ValidationError(ValidationReason.NO_PICKUP_LOCATION)

        quantity = float(draft.quantity or 0)
        if not math.isfinite(quantity):
            raise ValidationError(ValidationReason.INVALID_QUANTITY)
        if quantity < 0:
            raise ValidationError(ValidationReason.NEGATIVE_QUANTITY)

        for value, allowed in ((draft.donor_type, DonorType.all()),
                               (draft.food_type, FoodType.all()),
                               (draft.category, FoodCategory.all())):
            if value not in allowed:
                raise ValidationError(ValidationReason.INVALID_CHOICE)

        return ValidatedDonation(
            donor_type=draft.donor_type,
            food_type=draft.food_type,
            category=draft.category,
            quantity=quantity,
            items=(draft.items or '').strip(),
            description=(draft.description or '').strip(),
            pickup_address=address,
            location=point if has_point else ORIGIN,
            pickup_time_start=draft.pickup_time_start,
            pickup_time_end=draft.pickup_time_end,
            expiry_time=draft.expiry_time,
            contact_person=(draft.contact_person or '').strip(),
            contact_number=(draft.contact_number or '').strip(),
            image_url=draft.image_url or None,
        )

    # ========== Donor operations ==========

    def create(self, validated, donor_id):
        self._require_role(donor_id, RoleEnum.DONOR)
        donation = Donation(donor_id=donor_id, status=DonationStatus.PENDING.value, **validated.to_record())
        with self._writing('create'):
            self.session.add(donation)
        self.logger.info(f'Donation {donation.id} created by user {donor_id}')
        self._publish(INSERT, donation.id, DonationStatus.PENDING.value)
        return donation.id

    def update(self, donation_id, validated, caller_id):
        donation = self._get_owned_pending(donation_id, caller_id)
        previous_image = donation.image_url
        values = validated.to_record()
        values['updated_at'] = datetime.utcnow()

        with self._writing('update', donation_id):
            rows = self._owned_pending(donation_id, caller_id).update(values, synchronize_session=False)
            if rows == 0:
                raise ConflictError(LifecycleReason.NOT_EDITABLE)

        self.logger.info(f'Donation {donation_id} updated by user {caller_id}')
        if previous_image and previous_image != values['image_url']:
            self.release_image(previous_image)
        self._publish(UPDATE, donation_id, DonationStatus.PENDING.value)

    def delete(self, donation_id, caller_id):
        donation = self._get_owned_pending(donation_id, caller_id)
        image_key = donation.image_url
        # The bulk delete bypasses the identity map
        self.session.expunge(donation)

        with self._writing('delete', donation_id):
            rows = self._owned_pending(donation_id, caller_id).delete(synchronize_session=False)
            if rows == 0:
                raise ConflictError(LifecycleReason.NOT_EDITABLE)

        self.logger.info(f'Donation {donation_id} deleted by user {caller_id}')
        warning = self.release_image(image_key)
        self._publish(DELETE, donation_id)
        return DeleteResult(
            donation_id=donation_id,
            image_released=is_storage_key(image_key) and self.storage is not None and warning is None,
            warning=warning
        )

    # ========== Receiver operations ==========

    def accept(self, donation_id, receiver_id):
        self._require_role(receiver_id, RoleEnum.RECEIVER)
        self._transition(
            donation_id,
            DonationStatus.ACCEPTED,
            conflict=LifecycleReason.ALREADY_TAKEN,
            accepted_by_id=receiver_id,
            accepted_at=datetime.utcnow()
        )
        self.logger.info(f'Donation {donation_id} accepted by user {receiver_id}')

    def urgency(self, donation, now=None):
        return compute_urgency(donation.expiry_time, now, self.imminent_within)

    # ========== Internals ==========

    def _transition(self, donation_id, target, conflict=LifecycleReason.NOT_EDITABLE, **values):
        """Single forward step, conditional on the record still being in the previous status."""
        target = DonationStatus(target)
        expected = next((s for s in DonationStatus if DonationStatus.can_transition(s, target)), None)
        if expected is None:
            raise ConflictError(conflict)
        values.update(status=target.value, updated_at=datetime.utcnow())

        with self._writing(f'transition to {target.value}', donation_id):
            rows = self.session.query(Donation).filter(
                Donation.id == donation_id,
                Donation.status == expected.value
            ).update(values, synchronize_session=False)
            if rows == 0:
                self.session.rollback()
                if self.session.get(Donation, donation_id) is None:
                    raise DonationNotFound()
                raise ConflictError(conflict)

        self._publish(UPDATE, donation_id, target.value)

    def _owned_pending(self, donation_id, caller_id):
        return self.session.query(Donation).filter(
            Donation.id == donation_id,
            Donation.donor_id == caller_id,
            Donation.status.in_(DonationStatus.editable_statuses())
        )

    def _get_owned_pending(self, donation_id, caller_id):
        donation = self.session.get(Donation, donation_id)
        if donation is None:
            raise DonationNotFound()
        if donation.donor_id != caller_id:
            raise AuthorizationError(LifecycleReason.NOT_OWNER)
        if not donation.is_editable():
            raise ConflictError(LifecycleReason.NOT_EDITABLE)
        return donation

    def _require_role(self, user_id, role):
        user = self.session.get(User, user_id) if user_id is not None else None
        if user is None or not user.active or not user.has_role(role.value):
            self.logger.warning(f'User {user_id} tried a {role.value} action without the role')
            raise AuthorizationError(LifecycleReason.ROLE_MISMATCH)

    @contextmanager
    def _writing(self, action, donation_id=None):
        try:
            yield
            self.session.commit()
        except FoodShareError:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            self.logger.error(f'Donation {action} failed (id={donation_id}): {e}', exc_info=True)
            raise BackendError(BackendReason.DATABASE) from e

    def release_image(self, image_key):
        """Best-effort removal of a stored image. Returns a warning message on failure."""
        if not is_storage_key(image_key) or self.storage is None:
            return None
        try:
            self.storage.remove(image_key)
        except Exception as e:
            self.logger.warning(f'Orphaned storage object {image_key}: {e}')
            return f'Image {image_key} could not be removed: {e}'
        return None

    def _publish(self, op, donation_id, status=None):
        if self.feed is None:
            return
        try:
            self.feed.publish(ChangeEvent(op=op, donation_id=donation_id, status=status))
        except Exception as e:
            self.logger.warning(f'Change feed publish failed for donation {donation_id}: {e}')


def get_lifecycle():
    """Lifecycle manager wired to the current app's session, storage and change feed."""
    from foodshare.extensions import db
    from foodshare.feed import get_change_feed
    from foodshare.storage import get_storage

    return DonationLifecycle(
        db.session,
        storage=get_storage(),
        feed=get_change_feed(),
        logger=current_app.logger,
        imminent_within=timedelta(hours=current_app.config.get('DONATION_IMMINENT_HOURS', 2))
    )
