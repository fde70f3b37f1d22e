from flask import Blueprint, render_template, redirect, url_for, flash
from flask_babel import gettext as _
from flask_security import current_user, login_required

from foodshare.errors import BackendError
from foodshare.forms import ProfileForm
from foodshare.services.profiles import upsert_profile
from foodshare.utils import discard_upload, store_upload

bp = Blueprint('profile', __name__, url_prefix='/profile')


@bp.route('', methods=['GET', 'POST'])
@login_required
def edit():
    profile = current_user.profile
    form = ProfileForm(obj=profile)

    if form.validate_on_submit():
        fields = {
            'name': form.name.data,
            'organization': form.organization.data,
            'phone': form.phone.data,
        }
        previous_avatar = profile.avatar_url if profile else None
        uploaded = None
        try:
            if form.avatar.data:
                uploaded = store_upload(form.avatar.data, 'avatars')
                fields['avatar_url'] = uploaded
            upsert_profile(current_user, **fields)
        except BackendError as e:
            discard_upload(uploaded)
            flash(e.message, 'error')
        else:
            if uploaded and previous_avatar != uploaded:
                discard_upload(previous_avatar)
            flash(_('Profile updated.'), 'success')
            return redirect(url_for('profile.edit'))

    return render_template('profile.html', form=form, profile=profile)
