"""
Email notifications sent with Flask-Mail.
Sending is best effort: failures are logged and never fail the caller.
"""
from flask import render_template, current_app, url_for
from flask_mail import Message
from flask_babel import gettext as _
from foodshare.extensions import mail


class NotificationService:

    @staticmethod
    def send_email(to, subject, template, **kwargs):
        try:
            msg = Message(
                subject=subject,
                recipients=[to] if isinstance(to, str) else to,
                html=render_template(f'emails/{template}.html', recipient_email=to, **kwargs),
                sender=current_app.config.get('MAIL_DEFAULT_SENDER')
            )
            mail.send(msg)
            if current_app.config.get('MAIL_SUPPRESS_SEND', False):
                current_app.logger.info(f'[EMAIL SUPPRESSED] To: {to}, Subject: {subject}')
            else:
                current_app.logger.info(f'Email sent to {to}: {subject}')
            return True
        except Exception as e:
            current_app.logger.error(f'Error sending email to {to}: {e}', exc_info=True)
            return False

    @staticmethod
    def send_donation_accepted(donation, receiver):
        """Tell the donor who accepted their donation and how to reach them."""
        donor = donation.donor
        if donor is None or not donor.email:
            current_app.logger.warning(f'Donation {donation.id} has no donor email, skipping notification')
            return False

        receiver_profile = receiver.profile
        return NotificationService.send_email(
            to=donor.email,
            subject=_('Your donation was accepted'),
            template='donation_accepted',
            donation=donation,
            donor_name=donor.display_name,
            receiver_name=receiver.display_name,
            receiver_organization=receiver_profile.organization if receiver_profile else None,
            receiver_phone=receiver_profile.phone if receiver_profile else None,
            dashboard_url=url_for('donor.dashboard', _external=True)
        )
