"""
Context processors for templates
"""
from datetime import datetime, timedelta

from flask import current_app
from flask_babel import gettext as _
from flask_security import current_user

from foodshare.lifecycle import compute_urgency, format_expiry, Urgency
from foodshare.utils import get_image_url


def register_context_processors(app):
    """Register context processors for templates"""
    @app.context_processor
    def inject_helpers():
        def urgency(donation):
            return compute_urgency(donation.expiry_time, datetime.now(), timedelta(hours=current_app.config.get('DONATION_IMMINENT_HOURS', 2)))

        role = current_user.primary_role if current_user.is_authenticated else None
        return dict(
            _=_,
            get_image_url=get_image_url,
            format_expiry=format_expiry,
            urgency=urgency,
            Urgency=Urgency,
            current_role=role,
            config=current_app.config
        )
