from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileAllowed
from flask_security.forms import RegisterForm
from flask_babel import lazy_gettext as _l
from wtforms import (
    StringField, TextAreaField, SelectField, FloatField, BooleanField, HiddenField, TimeField
)
from wtforms.fields import DateTimeLocalField
from wtforms.validators import DataRequired, Email, Length, Optional, URL

from foodshare.config import Config
from foodshare.geo import LocationLookup, LocationState
from foodshare.lifecycle import DonationDraft
from foodshare.models import DonorType, FoodType, FoodCategory, OrganizationType, RoleEnum
from foodshare.utils import sanitize_text, sanitize_html

IMAGE_EXTENSIONS = sorted(Config.ALLOWED_EXTENSIONS)

DONOR_TYPE_CHOICES = [
    (DonorType.INDIVIDUAL.value, _l('Individual')),
    (DonorType.RESTAURANT.value, _l('Restaurant')),
    (DonorType.CATERER.value, _l('Caterer')),
    (DonorType.CANTEEN.value, _l('Canteen')),
]
FOOD_TYPE_CHOICES = [
    (FoodType.VEG.value, _l('Vegetarian')),
    (FoodType.NON_VEG.value, _l('Non-vegetarian')),
]
CATEGORY_CHOICES = [
    (FoodCategory.PERISHABLE.value, _l('Perishable')),
    (FoodCategory.NON_PERISHABLE.value, _l('Non-perishable')),
]
ROLE_CHOICES = [
    (RoleEnum.DONOR.value, _l('Donor')),
    (RoleEnum.RECEIVER.value, _l('Receiver (NGO / volunteer)')),
]
ORGANIZATION_TYPE_CHOICES = [
    (OrganizationType.NGO.value, _l('NGO')),
    (OrganizationType.VOLUNTEER.value, _l('Volunteer group')),
]


class SignupForm(RegisterForm):
    """Flask-Security registration plus the profile fields collected at signup"""
    name = StringField(_l('Full name'), validators=[DataRequired(), Length(min=2, max=120)])
    role = SelectField(_l('I want to'), choices=ROLE_CHOICES, default=RoleEnum.DONOR.value,
                       validators=[DataRequired()])
    organization = StringField(_l('Organization'), validators=[Optional(), Length(max=200)])
    phone = StringField(_l('Phone'), validators=[Optional(), Length(max=30)])


class DonationForm(FlaskForm):
    donor_type = SelectField(_l('Donor type'), choices=DONOR_TYPE_CHOICES, default=DonorType.INDIVIDUAL.value)
    food_type = SelectField(_l('Food type'), choices=FOOD_TYPE_CHOICES, default=FoodType.VEG.value)
    category = SelectField(_l('Category'), choices=CATEGORY_CHOICES, default=FoodCategory.PERISHABLE.value)
    quantity = FloatField(_l('Quantity (kg)'), validators=[Optional()], default=0)
    items = StringField(_l('Items (comma separated)'), validators=[Optional(), Length(max=1000)])
    description = TextAreaField(_l('Description'), validators=[Optional(), Length(max=2000)])
    pickup_address = StringField(_l('Pickup address'), validators=[Optional(), Length(max=300)])

    # Filled in by the browser's geolocation script
    location_state = HiddenField(default=LocationState.REQUESTING.value)
    latitude = HiddenField()
    longitude = HiddenField()
    location_failure = HiddenField()

    pickup_time_start = TimeField(_l('Pickup from'), validators=[Optional()])
    pickup_time_end = TimeField(_l('Pickup until'), validators=[Optional()])
    expiry_time = DateTimeLocalField(_l('Best before'), format='%Y-%m-%dT%H:%M', validators=[Optional()])
    contact_person = StringField(_l('Contact person'), validators=[Optional(), Length(max=120)])
    contact_number = StringField(_l('Contact number'), validators=[Optional(), Length(max=30)])
    image = FileField(_l('Photo'), validators=[Optional(), FileAllowed(IMAGE_EXTENSIONS, _l('Images only'))])
    image_link = StringField(_l('Or an image URL'), validators=[Optional(), URL(), Length(max=500)])
    consent = BooleanField(_l('I confirm this food is safe to eat and was stored properly'))

    def location_lookup(self):
        return LocationLookup.from_form(
            self.location_state.data,
            lat=self.latitude.data,
            lng=self.longitude.data,
            failure=self.location_failure.data
        )

    def to_draft(self, image_url=None):
        """Build the draft handed to the lifecycle manager. ``image_url`` is the stored key or link."""
        lookup = self.location_lookup()
        return DonationDraft(
            donor_type=self.donor_type.data,
            food_type=self.food_type.data,
            category=self.category.data,
            quantity=self.quantity.data,
            items=sanitize_text(self.items.data or ''),
            description=sanitize_html(self.description.data or ''),
            pickup_address=sanitize_text(self.pickup_address.data or ''),
            location=lookup.point if lookup.state is LocationState.RESOLVED else None,
            pickup_time_start=self.pickup_time_start.data,
            pickup_time_end=self.pickup_time_end.data,
            expiry_time=self.expiry_time.data,
            contact_person=sanitize_text(self.contact_person.data or ''),
            contact_number=sanitize_text(self.contact_number.data or ''),
            image_url=image_url,
            consent=bool(self.consent.data)
        )

    def load_donation(self, donation):
        """Prefill hidden geolocation fields so an edit keeps the stored point."""
        point = donation.point
        if donation.has_coordinates:
            self.location_state.data = LocationState.RESOLVED.value
            self.latitude.data = str(point.lat)
            self.longitude.data = str(point.lng)


class ProfileForm(FlaskForm):
    name = StringField(_l('Name'), validators=[DataRequired(), Length(min=2, max=120)])
    organization = StringField(_l('Organization'), validators=[Optional(), Length(max=200)])
    phone = StringField(_l('Phone'), validators=[Optional(), Length(max=30)])
    avatar = FileField(_l('Avatar'), validators=[Optional(), FileAllowed(IMAGE_EXTENSIONS, _l('Images only'))])


class OrganizationForm(FlaskForm):
    name = StringField(_l('Organization name'), validators=[DataRequired(), Length(min=2, max=200)])
    type = SelectField(_l('Type'), choices=ORGANIZATION_TYPE_CHOICES, default=OrganizationType.NGO.value)
    contact_person = StringField(_l('Contact person'), validators=[Optional(), Length(max=120)])
    email = StringField(_l('Email'), validators=[Optional(), Email(), Length(max=255)])


class ReportForm(FlaskForm):
    reason = TextAreaField(_l('What is wrong with this donation?'),
                           validators=[DataRequired(), Length(min=5, max=1000)])
