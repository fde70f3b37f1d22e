from flask import Blueprint, render_template, redirect, url_for, flash, request, abort
from flask_babel import gettext as _
from flask_security import current_user

from foodshare.core.decorators import role_required
from foodshare.errors import BackendError
from foodshare.models import (
    Donation, DonationStatus, Organization, OrganizationStatus, Profile, Report, ReportStatus, RoleEnum, User
)
from foodshare.services import moderation
from foodshare.services.metrics import metrics_overview

bp = Blueprint('admin', __name__, url_prefix='/admin')

TABS = ('overview', 'users', 'reports', 'organizations')


@bp.route('')
@role_required(RoleEnum.ADMIN.value)
def dashboard():
    tab = request.args.get('tab', 'overview')
    if tab not in TABS:
        tab = 'overview'

    donation_counts = {
        status: Donation.query.filter(Donation.status == status).count()
        for status in DonationStatus.all()
    }
    users = User.query.outerjoin(Profile, Profile.user_id == User.id) \
        .order_by(User.created_at.desc()).all()
    reports = Report.query.order_by(Report.created_at.desc()).all()
    organizations = Organization.query.order_by(Organization.created_at.desc()).all()

    return render_template(
        'admin/dashboard.html',
        tab=tab,
        metrics=metrics_overview(),
        donation_counts=donation_counts,
        users=users,
        reports=reports,
        organizations=organizations,
        pending_reports=sum(1 for r in reports if r.status == ReportStatus.PENDING.value),
        pending_organizations=sum(1 for o in organizations if o.status == OrganizationStatus.PENDING.value)
    )


@bp.route('/users/<int:id>/verify', methods=['POST'])
@role_required(RoleEnum.ADMIN.value)
def verify_user(id):
    verified = request.form.get('verified', '1') != '0'
    try:
        moderation.set_verified(id, current_user.id, verified)
        flash(_('User verified.') if verified else _('Verification removed.'), 'success')
    except BackendError as e:
        flash(e.message, 'error')
    return redirect(url_for('admin.dashboard', tab='users'))


@bp.route('/users/<int:id>/flag', methods=['POST'])
@role_required(RoleEnum.ADMIN.value)
def flag_user(id):
    if id == current_user.id:
        flash(_('You cannot flag your own account.'), 'error')
        return redirect(url_for('admin.dashboard', tab='users'))
    flagged = request.form.get('flagged', '1') != '0'
    try:
        moderation.set_flagged(id, current_user.id, flagged)
        flash(_('User flagged.') if flagged else _('Flag removed.'), 'success')
    except BackendError as e:
        flash(e.message, 'error')
    return redirect(url_for('admin.dashboard', tab='users'))


@bp.route('/reports/<int:id>/<action>', methods=['POST'])
@role_required(RoleEnum.ADMIN.value)
def review_report(id, action):
    statuses = {'resolve': ReportStatus.RESOLVED, 'dismiss': ReportStatus.DISMISSED}
    if action not in statuses:
        abort(404)
    try:
        report = moderation.resolve_report(id, current_user.id, statuses[action])
        flash(_('Report marked as %(status)s.', status=report.status), 'success')
    except BackendError as e:
        flash(e.message, 'error')
    return redirect(url_for('admin.dashboard', tab='reports'))


@bp.route('/organizations/<int:id>/<status>', methods=['POST'])
@role_required(RoleEnum.ADMIN.value)
def review_organization(id, status):
    if status not in (OrganizationStatus.APPROVED.value, OrganizationStatus.REJECTED.value):
        abort(404)
    try:
        organization = moderation.review_organization(id, current_user.id, status)
        flash(_('Organization %(name)s %(status)s.', name=organization.name, status=organization.status), 'success')
    except BackendError as e:
        flash(e.message, 'error')
    return redirect(url_for('admin.dashboard', tab='organizations'))
