import os

from flask import Blueprint, render_template, redirect, url_for, flash, current_app, send_from_directory
from flask_babel import gettext as _
from flask_security import current_user, logout_user

from foodshare.models import Donation, DonationStatus, RoleEnum

bp = Blueprint('main', __name__)

DASHBOARDS = {
    RoleEnum.ADMIN.value: 'admin.dashboard',
    RoleEnum.DONOR.value: 'donor.dashboard',
    RoleEnum.RECEIVER.value: 'receiver.dashboard',
}


@bp.route('/')
def index():
    if current_user.is_authenticated:
        endpoint = DASHBOARDS.get(current_user.primary_role)
        if endpoint:
            return redirect(url_for(endpoint))
        current_app.logger.warning(f'User {current_user.id} has no known role, signing out')
        logout_user()
        flash(_('Your account has no role assigned. Please contact an administrator.'), 'error')

    pending_count = Donation.query.filter(Donation.status == DonationStatus.PENDING.value).count()
    shared_count = Donation.query.filter(Donation.status != DonationStatus.PENDING.value).count()
    return render_template('index.html', pending_count=pending_count, shared_count=shared_count)


@bp.route('/uploads/<path:key>')
def uploaded_file(key):
    """Serve images stored by the local storage provider"""
    upload_folder = os.path.abspath(current_app.config['UPLOAD_FOLDER'])
    return send_from_directory(upload_folder, key)
