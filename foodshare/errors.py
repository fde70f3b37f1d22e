"""
Error taxonomy shared by the lifecycle manager, services and routes.

Every error carries a ``reason`` (an enum member, stable for tests and
logs) and a user-facing ``message`` that routes flash verbatim.
"""
from enum import Enum

from flask_babel import lazy_gettext as _l


class ValidationReason(str, Enum):
    MISSING_CONSENT = 'missing_consent'
    NO_PICKUP_LOCATION = 'no_pickup_location'
    NEGATIVE_QUANTITY = 'negative_quantity'
    INVALID_QUANTITY = 'invalid_quantity'
    INVALID_CHOICE = 'invalid_choice'


class LifecycleReason(str, Enum):
    NOT_FOUND = 'not_found'
    NOT_OWNER = 'not_owner'
    NOT_EDITABLE = 'not_editable'
    ALREADY_TAKEN = 'already_taken'
    ROLE_MISMATCH = 'role_mismatch'


class BackendReason(str, Enum):
    DATABASE = 'database'
    STORAGE = 'storage'


_MESSAGES = {
    ValidationReason.MISSING_CONSENT: _l('Please confirm the food safety declaration before submitting.'),
    ValidationReason.NO_PICKUP_LOCATION: _l('Please provide either your location or a pickup address.'),
    ValidationReason.NEGATIVE_QUANTITY: _l('Quantity cannot be negative.'),
    ValidationReason.INVALID_QUANTITY: _l('Please enter the quantity as a number of kilograms.'),
    ValidationReason.INVALID_CHOICE: _l('Please pick a valid option.'),
    LifecycleReason.NOT_FOUND: _l('This donation no longer exists.'),
    LifecycleReason.NOT_OWNER: _l('You can only change your own donations.'),
    LifecycleReason.NOT_EDITABLE: _l('Only pending donations can be changed.'),
    LifecycleReason.ALREADY_TAKEN: _l('Sorry, this donation has already been accepted.'),
    LifecycleReason.ROLE_MISMATCH: _l('Your account is not allowed to do that.'),
    BackendReason.DATABASE: _l('Something went wrong while saving. Please try again.'),
    BackendReason.STORAGE: _l('The image could not be stored. Please try again.'),
}


class FoodShareError(Exception):
    """Base class for all application errors"""

    def __init__(self, reason, message=None):
        super().__init__(reason.value)
        self.reason = reason
        self.message = message or _MESSAGES.get(reason, reason.value)

    def __str__(self):
        return str(self.message)


class ValidationError(FoodShareError):
    """Draft rejected before anything is written"""


class LifecycleError(FoodShareError):
    """A donation mutation was refused"""


class AuthorizationError(LifecycleError):
    """Caller does not own the record or lacks the required role"""


class ConflictError(LifecycleError):
    """Record status no longer matches the state the write expected"""


class DonationNotFound(LifecycleError):

    def __init__(self, message=None):
        super().__init__(LifecycleReason.NOT_FOUND, message)


class BackendError(FoodShareError):
    """Database or storage failure; surfaced with a generic message"""
