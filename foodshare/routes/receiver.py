from flask import Blueprint, render_template, redirect, url_for, flash, request
from flask_babel import gettext as _
from flask_security import current_user
from sqlalchemy import or_

from foodshare.core.decorators import role_required
from foodshare.errors import BackendError, LifecycleError
from foodshare.extensions import db
from foodshare.forms import (
    OrganizationForm, ReportForm, DONOR_TYPE_CHOICES, FOOD_TYPE_CHOICES, CATEGORY_CHOICES
)
from foodshare.lifecycle import get_lifecycle
from foodshare.models import (
    Donation, DonationStatus, DonorType, FoodType, FoodCategory, Organization, Profile, RoleEnum
)
from foodshare.services import moderation
from foodshare.services.notifications import NotificationService
from foodshare.utils import sanitize_text

bp = Blueprint('receiver', __name__, url_prefix='/receiver')


def search_pending(q=None, donor_type=None, food_type=None, category=None):
    """Pending donations matching the receiver's search box and filters, newest first"""
    query = Donation.query.filter(Donation.status == DonationStatus.PENDING.value)

    if q:
        like = f'%{q}%'
        query = query.outerjoin(Profile, Profile.user_id == Donation.donor_id).filter(or_(
            Donation.items.ilike(like),
            Donation.description.ilike(like),
            Donation.pickup_address.ilike(like),
            Profile.organization.ilike(like)
        ))
    if donor_type in DonorType.all():
        query = query.filter(Donation.donor_type == donor_type)
    if food_type in FoodType.all():
        query = query.filter(Donation.food_type == food_type)
    if category in FoodCategory.all():
        query = query.filter(Donation.category == category)

    return query.order_by(Donation.created_at.desc()).all()


@bp.route('')
@role_required(RoleEnum.RECEIVER.value)
def dashboard():
    filters = {
        'q': request.args.get('q', '').strip(),
        'donor_type': request.args.get('donor_type', ''),
        'food_type': request.args.get('food_type', ''),
        'category': request.args.get('category', ''),
    }
    donations = search_pending(**filters)
    accepted = Donation.query.filter_by(accepted_by_id=current_user.id) \
        .order_by(Donation.accepted_at.desc()).limit(20).all()

    return render_template(
        'receiver/dashboard.html',
        donations=donations,
        accepted=accepted,
        filters=filters,
        donor_type_choices=DONOR_TYPE_CHOICES,
        food_type_choices=FOOD_TYPE_CHOICES,
        category_choices=CATEGORY_CHOICES,
        report_form=ReportForm()
    )


@bp.route('/donations/<int:id>/accept', methods=['POST'])
@role_required(RoleEnum.RECEIVER.value)
def accept_donation(id):
    try:
        get_lifecycle().accept(id, current_user.id)
    except (LifecycleError, BackendError) as e:
        flash(e.message, 'error')
        return redirect(url_for('receiver.dashboard'))

    flash(_('Donation accepted. The donor has been notified.'), 'success')
    donation = db.session.get(Donation, id)
    NotificationService.send_donation_accepted(donation, current_user)
    return redirect(url_for('receiver.dashboard'))


@bp.route('/donations/<int:id>/report', methods=['POST'])
@role_required(RoleEnum.RECEIVER.value)
def report_donation(id):
    donation = db.get_or_404(Donation, id)
    form = ReportForm()
    if not form.validate_on_submit():
        for error in form.reason.errors:
            flash(error, 'error')
        return redirect(url_for('receiver.dashboard'))

    try:
        moderation.file_report(current_user.id, sanitize_text(form.reason.data.strip()), donation=donation)
        flash(_('Thank you. An administrator will review your report.'), 'success')
    except BackendError as e:
        flash(e.message, 'error')
    return redirect(url_for('receiver.dashboard'))


@bp.route('/organization', methods=['GET', 'POST'])
@role_required(RoleEnum.RECEIVER.value)
def organization():
    form = OrganizationForm()
    if form.validate_on_submit():
        try:
            moderation.register_organization(
                current_user.id,
                name=sanitize_text(form.name.data.strip()),
                org_type=form.type.data,
                contact_person=sanitize_text(form.contact_person.data or '') or None,
                email=form.email.data or None
            )
            flash(_('Organization submitted for approval.'), 'success')
            return redirect(url_for('receiver.organization'))
        except BackendError as e:
            flash(e.message, 'error')

    organizations = Organization.query.filter_by(submitted_by_id=current_user.id) \
        .order_by(Organization.created_at.desc()).all()
    return render_template('receiver/organization.html', form=form, organizations=organizations)
