"""Profile store: one profile per user, role kept on the user's Flask-Security roles."""
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from foodshare.errors import BackendError, BackendReason
from foodshare.extensions import db
from foodshare.models import Profile, RoleEnum
from foodshare.utils import sanitize_text


class ProfileNotFound(LookupError):
    pass


_EDITABLE_FIELDS = ('name', 'organization', 'phone', 'avatar_url')


def get_profile(user_id):
    profile = Profile.query.filter_by(user_id=user_id).first()
    if profile is None:
        raise ProfileNotFound(user_id)
    return profile


def upsert_profile(user, **fields):
    """Create or update the profile for ``user``. Unknown keys are ignored."""
    profile = user.profile
    if profile is None:
        profile = Profile(user_id=user.id, name='')
        db.session.add(profile)

    for key in _EDITABLE_FIELDS:
        if key not in fields:
            continue
        value = fields[key]
        if key != 'avatar_url':
            value = sanitize_text(value.strip()) if value else None
        setattr(profile, key, value)
    if not profile.name:
        profile.name = user.email.split('@')[0]

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Error saving profile for user {user.id}: {e}', exc_info=True)
        raise BackendError(BackendReason.DATABASE) from e
    current_app.logger.info(f'Profile saved for user {user.id}')
    return profile


def assign_role(user, role_name):
    """Give a freshly registered user its self-service role."""
    from foodshare.extensions import user_datastore

    if role_name not in RoleEnum.self_service():
        role_name = RoleEnum.DONOR.value
    role = user_datastore.find_or_create_role(name=role_name)
    if not user.has_role(role):
        user_datastore.add_role_to_user(user, role)
    return role
