"""
Admin moderation actions.

Each action is one field update by a single admin, committed on its own.
"""
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from foodshare.errors import BackendError, BackendReason
from foodshare.extensions import db
from foodshare.models import (
    Organization, OrganizationStatus, Profile, Report, ReportStatus
)


def _commit(action):
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Moderation action {action} failed: {e}', exc_info=True)
        raise BackendError(BackendReason.DATABASE) from e


def set_verified(user_id, admin_id, verified=True):
    profile = Profile.query.filter_by(user_id=user_id).first_or_404()
    profile.is_verified = verified
    profile.verified_at = datetime.utcnow() if verified else None
    profile.verified_by_id = admin_id if verified else None
    _commit('verify')
    current_app.logger.info(f'Admin {admin_id} set verified={verified} on user {user_id}')
    return profile


def set_flagged(user_id, admin_id, flagged=True):
    profile = Profile.query.filter_by(user_id=user_id).first_or_404()
    profile.is_flagged = flagged
    _commit('flag')
    current_app.logger.info(f'Admin {admin_id} set flagged={flagged} on user {user_id}')
    return profile


def resolve_report(report_id, admin_id, status):
    """Move a report to ``resolved`` or ``dismissed``."""
    status = ReportStatus(status)
    if status is ReportStatus.PENDING:
        raise ValueError('A report can only be resolved or dismissed')
    report = db.get_or_404(Report, report_id)
    report.status = status.value
    report.resolved_at = datetime.utcnow()
    report.resolved_by_id = admin_id
    _commit('report')
    current_app.logger.info(f'Admin {admin_id} marked report {report_id} as {status.value}')
    return report


def review_organization(organization_id, admin_id, status):
    """Approve or reject an organization registration."""
    status = OrganizationStatus(status)
    if status is OrganizationStatus.PENDING:
        raise ValueError('An organization can only be approved or rejected')
    organization = db.get_or_404(Organization, organization_id)
    organization.status = status.value
    organization.approved_by_id = admin_id
    organization.approved_at = datetime.utcnow()
    _commit('organization')
    current_app.logger.info(f'Admin {admin_id} marked organization {organization_id} as {status.value}')
    return organization


def file_report(reporter_id, reason, donation=None, reported_user_id=None):
    """Record a report from a receiver against a donation or a user."""
    from foodshare.models import ReportType

    report = Report(
        reporter_id=reporter_id,
        donation_id=donation.id if donation else None,
        reported_user_id=reported_user_id or (donation.donor_id if donation else None),
        report_type=ReportType.DONATION.value if donation else ReportType.USER.value,
        reason=reason,
        status=ReportStatus.PENDING.value
    )
    db.session.add(report)
    _commit('file report')
    current_app.logger.info(f'User {reporter_id} filed report {report.id}')
    return report


def register_organization(submitted_by_id, name, org_type, contact_person=None, email=None):
    organization = Organization(
        name=name,
        type=org_type,
        status=OrganizationStatus.PENDING.value,
        contact_person=contact_person,
        email=email,
        submitted_by_id=submitted_by_id
    )
    db.session.add(organization)
    _commit('register organization')
    current_app.logger.info(f'User {submitted_by_id} registered organization {organization.id}')
    return organization
