from dataclasses import replace

from flask import Blueprint, render_template, redirect, url_for, flash, abort
from flask_babel import gettext as _
from flask_security import current_user

from foodshare.core.decorators import role_required
from foodshare.errors import BackendError, LifecycleError, ValidationError, LifecycleReason
from foodshare.extensions import db
from foodshare.forms import DonationForm
from foodshare.lifecycle import get_lifecycle
from foodshare.models import Donation, DonationStatus, RoleEnum
from foodshare.utils import store_upload, is_absolute_url

bp = Blueprint('donor', __name__, url_prefix='/donor')


@bp.route('')
@role_required(RoleEnum.DONOR.value)
def dashboard():
    donations = Donation.query.filter_by(donor_id=current_user.id).order_by(Donation.created_at.desc()).all()
    stats = {status: 0 for status in DonationStatus.all()}
    for donation in donations:
        stats[donation.status] = stats.get(donation.status, 0) + 1
    stats['total_kg'] = sum(donation.quantity or 0 for donation in donations)
    return render_template('donor/dashboard.html', donations=donations, stats=stats)


@bp.route('/donations/new', methods=['GET', 'POST'])
@role_required(RoleEnum.DONOR.value)
def new_donation():
    form = DonationForm()
    if not form.is_submitted() and current_user.profile:
        form.contact_person.data = current_user.profile.name
        form.contact_number.data = current_user.profile.phone
    return _save_donation(form)


@bp.route('/donations/<int:id>/edit', methods=['GET', 'POST'])
@role_required(RoleEnum.DONOR.value)
def edit_donation(id):
    donation = db.get_or_404(Donation, id)
    if donation.donor_id != current_user.id:
        abort(403)
    if not donation.is_editable():
        flash(LifecycleError(LifecycleReason.NOT_EDITABLE).message, 'warning')
        return redirect(url_for('donor.dashboard'))

    form = DonationForm(obj=donation)
    if not form.is_submitted():
        form.load_donation(donation)
        if is_absolute_url(donation.image_url):
            form.image_link.data = donation.image_url
    return _save_donation(form, donation)


@bp.route('/donations/<int:id>/delete', methods=['POST'])
@role_required(RoleEnum.DONOR.value)
def delete_donation(id):
    try:
        get_lifecycle().delete(id, current_user.id)
        flash(_('Donation deleted.'), 'success')
    except (LifecycleError, BackendError) as e:
        flash(e.message, 'error')
    return redirect(url_for('donor.dashboard'))


def _save_donation(form, donation=None):
    """Shared create/update flow: validate the draft, store a new photo, then write."""
    lookup = form.location_lookup() if form.is_submitted() else None
    if form.validate_on_submit():
        lifecycle = get_lifecycle()
        image_url = donation.image_url if donation else None
        if form.image_link.data:
            image_url = form.image_link.data.strip()
        uploaded = None
        try:
            validated = lifecycle.validate_for_submit(form.to_draft(image_url))
            # Upload only once the draft is known to be acceptable
            if form.image.data:
                uploaded = store_upload(form.image.data, 'donations')
                validated = replace(validated, image_url=uploaded)

            if donation is None:
                lifecycle.create(validated, current_user.id)
                flash(_('Donation listed. Receivers nearby can now see it.'), 'success')
            else:
                lifecycle.update(donation.id, validated, current_user.id)
                flash(_('Donation updated.'), 'success')
            return redirect(url_for('donor.dashboard'))
        except ValidationError as e:
            flash(e.message, 'error')
        except LifecycleError as e:
            lifecycle.release_image(uploaded)
            flash(e.message, 'error')
            return redirect(url_for('donor.dashboard'))
        except BackendError as e:
            lifecycle.release_image(uploaded)
            flash(e.message, 'error')

    return render_template(
        'donor/form.html',
        form=form,
        donation=donation,
        location_message=lookup.message if lookup else None
    )
