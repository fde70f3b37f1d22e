import io
import os
from datetime import datetime, timedelta

import pytest
from PIL import Image

from foodshare.errors import BackendError, BackendReason
from foodshare.extensions import db, mail
from foodshare.lifecycle import DonationLifecycle
from foodshare.models import Donation, Profile, User
from tests.conftest import login


def _add_donation(app, donor_id, **values):
    with app.app_context():
        donation = Donation(
            donor_id=donor_id,
            donor_type=values.pop('donor_type', 'restaurant'),
            food_type=values.pop('food_type', 'veg'),
            category=values.pop('category', 'perishable'),
            quantity=values.pop('quantity', 4),
            items=values.pop('items', 'bread, soup'),
            pickup_address=values.pop('pickup_address', '1 Orchard Rd'),
            location=values.pop('location', '(103.8198,1.3521)'),
            consent=True,
            status=values.pop('status', 'pending'),
            **values
        )
        db.session.add(donation)
        db.session.commit()
        return donation.id


def _png(name='photo.png'):
    buffer = io.BytesIO()
    Image.new('RGB', (40, 30), (20, 160, 60)).save(buffer, 'PNG')
    buffer.seek(0)
    return buffer, name


def _stored_files(app, prefix):
    folder = os.path.join(app.config['UPLOAD_FOLDER'], prefix)
    return os.listdir(folder) if os.path.isdir(folder) else []


def _donation(app, donation_id):
    with app.app_context():
        donation = db.session.get(Donation, donation_id)
        if donation is not None:
            db.session.expunge(donation)
        return donation


DONATION_FORM = {
    'donor_type': 'restaurant',
    'food_type': 'veg',
    'category': 'perishable',
    'quantity': '3.5',
    'items': 'bread, croissants',
    'description': 'End of day bakery items',
    'pickup_address': '5 Marina Blvd',
    'location_state': 'timed_out',
    'contact_person': 'Ana',
    'contact_number': '+65 5555 0000',
    'consent': 'y',
}


class TestAccessControl:

    @pytest.mark.parametrize('path', ['/donor', '/receiver', '/admin', '/map', '/profile'])
    def test_anonymous_users_are_sent_to_login(self, client, path):
        response = client.get(path)
        assert response.status_code == 302
        assert '/login' in response.headers['Location']

    def test_wrong_role_is_sent_home(self, client, make_user):
        receiver = make_user('ngo@foodshare.org', 'receiver')
        login(client, receiver)
        response = client.get('/donor')
        assert response.status_code == 302
        assert response.headers['Location'].endswith('/')

    @pytest.mark.parametrize('role, dashboard', [
        ('donor', '/donor'), ('receiver', '/receiver'), ('admin', '/admin'),
    ])
    def test_index_redirects_to_dashboard(self, client, make_user, role, dashboard):
        user = make_user(f'{role}@foodshare.org', role)
        login(client, user)
        response = client.get('/')
        assert response.status_code == 302
        assert response.headers['Location'].endswith(dashboard)

    def test_landing_page_for_visitors(self, client):
        response = client.get('/')
        assert response.status_code == 200
        assert b'FoodShare' in response.data


class TestDonorRoutes:

    def test_create_with_address_only_stores_origin(self, app, client, make_user):
        donor = make_user('donor@foodshare.org', 'donor')
        login(client, donor)

        response = client.post('/donor/donations/new', data=DONATION_FORM)

        assert response.status_code == 302
        with app.app_context():
            donation = Donation.query.one()
            assert donation.location == '(0,0)'
            assert donation.status == 'pending'
            assert donation.quantity == 3.5

    def test_create_with_browser_location(self, app, client, make_user):
        donor = make_user('donor@foodshare.org', 'donor')
        login(client, donor)

        data = dict(DONATION_FORM, pickup_address='', location_state='resolved',
                    latitude='1.3521', longitude='103.8198')
        client.post('/donor/donations/new', data=data)

        with app.app_context():
            assert Donation.query.one().location == '(103.8198,1.3521)'

    def test_missing_consent_blocks_submission(self, app, client, make_user):
        donor = make_user('donor@foodshare.org', 'donor')
        login(client, donor)

        data = {k: v for k, v in DONATION_FORM.items() if k != 'consent'}
        response = client.post('/donor/donations/new', data=data)

        assert response.status_code == 200
        assert b'food safety declaration' in response.data
        with app.app_context():
            assert Donation.query.count() == 0

    def test_missing_location_shows_fallback_hint(self, app, client, make_user):
        donor = make_user('donor@foodshare.org', 'donor')
        login(client, donor)

        data = dict(DONATION_FORM, pickup_address='', location_state='failed',
                    location_failure='permission_denied')
        response = client.post('/donor/donations/new', data=data)

        assert response.status_code == 200
        assert b'Location access was denied' in response.data
        with app.app_context():
            assert Donation.query.count() == 0

    def test_dashboard_lists_own_donations_newest_first(self, app, client, make_user):
        donor = make_user('donor@foodshare.org', 'donor')
        other = make_user('other@foodshare.org', 'donor')
        _add_donation(app, donor.id, items='older tray', created_at=datetime.utcnow() - timedelta(hours=1))
        _add_donation(app, donor.id, items='newer tray')
        _add_donation(app, other.id, items='someone else')
        login(client, donor)

        body = client.get('/donor').get_data(as_text=True)

        assert body.index('newer tray') < body.index('older tray')
        assert 'someone else' not in body

    def test_delete_pending(self, app, client, make_user):
        donor = make_user('donor@foodshare.org', 'donor')
        donation_id = _add_donation(app, donor.id)
        login(client, donor)

        client.post(f'/donor/donations/{donation_id}/delete')

        assert _donation(app, donation_id) is None

    def test_accepted_donation_cannot_be_deleted_or_edited(self, app, client, make_user):
        donor = make_user('donor@foodshare.org', 'donor')
        donation_id = _add_donation(app, donor.id, status='accepted')
        login(client, donor)

        response = client.post(f'/donor/donations/{donation_id}/delete', follow_redirects=True)
        assert b'Only pending donations can be changed' in response.data
        assert _donation(app, donation_id) is not None

        response = client.get(f'/donor/donations/{donation_id}/edit')
        assert response.status_code == 302

    def test_edit_someone_elses_donation_is_forbidden(self, app, client, make_user):
        owner = make_user('owner@foodshare.org', 'donor')
        intruder = make_user('intruder@foodshare.org', 'donor')
        donation_id = _add_donation(app, owner.id)
        login(client, intruder)

        assert client.get(f'/donor/donations/{donation_id}/edit').status_code == 403

    def test_non_numeric_quantity_is_rejected_inline(self, app, client, make_user):
        donor = make_user('donor@foodshare.org', 'donor')
        login(client, donor)

        response = client.post('/donor/donations/new', data=dict(DONATION_FORM, quantity='nan'))

        assert response.status_code == 200
        assert b'number of kilograms' in response.data
        with app.app_context():
            assert Donation.query.count() == 0

    def test_photo_is_stored_with_new_donation(self, app, client, make_user):
        donor = make_user('donor@foodshare.org', 'donor')
        login(client, donor)

        client.post('/donor/donations/new', data=dict(DONATION_FORM, image=_png()))

        stored = _stored_files(app, 'donations')
        assert len(stored) == 1
        with app.app_context():
            assert Donation.query.one().image_url == f'donations/{stored[0]}'

    def test_refused_edit_discards_new_photo(self, app, client, make_user, monkeypatch):
        donor = make_user('donor@foodshare.org', 'donor')
        receiver = make_user('ngo@foodshare.org', 'receiver')
        donation_id = _add_donation(app, donor.id)
        update = DonationLifecycle.update

        def accepted_first(self, donation_id, validated, caller_id):
            self.session.query(Donation).filter_by(id=donation_id).update(
                {'status': 'accepted', 'accepted_by_id': receiver.id})
            self.session.commit()
            return update(self, donation_id, validated, caller_id)

        monkeypatch.setattr(DonationLifecycle, 'update', accepted_first)
        login(client, donor)

        response = client.post(f'/donor/donations/{donation_id}/edit',
                               data=dict(DONATION_FORM, image=_png()), follow_redirects=True)

        assert b'Only pending donations can be changed' in response.data
        assert _stored_files(app, 'donations') == []
        assert _donation(app, donation_id).image_url is None

    def test_failed_create_discards_new_photo(self, app, client, make_user, monkeypatch):
        donor = make_user('donor@foodshare.org', 'donor')

        def broken_create(self, validated, donor_id):
            raise BackendError(BackendReason.DATABASE)

        monkeypatch.setattr(DonationLifecycle, 'create', broken_create)
        login(client, donor)

        response = client.post('/donor/donations/new', data=dict(DONATION_FORM, image=_png()))

        assert b'Something went wrong while saving' in response.data
        assert _stored_files(app, 'donations') == []


class TestProfileRoutes:

    def _set_avatar(self, app, user_id, key):
        path = os.path.join(app.config['UPLOAD_FOLDER'], key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'wb') as f:
            f.write(b'old avatar')
        with app.app_context():
            profile = Profile.query.filter_by(user_id=user_id).one()
            profile.avatar_url = key
            db.session.commit()

    def test_new_avatar_replaces_stored_one(self, app, client, make_user):
        donor = make_user('donor@foodshare.org', 'donor')
        self._set_avatar(app, donor.id, 'avatars/old.jpg')
        login(client, donor)

        client.post('/profile', data={'name': 'Donor', 'avatar': _png()})

        stored = _stored_files(app, 'avatars')
        assert len(stored) == 1 and stored[0] != 'old.jpg'
        with app.app_context():
            assert Profile.query.filter_by(user_id=donor.id).one().avatar_url == f'avatars/{stored[0]}'

    def test_failed_save_keeps_old_avatar_and_drops_new(self, app, client, make_user, monkeypatch):
        donor = make_user('donor@foodshare.org', 'donor')
        self._set_avatar(app, donor.id, 'avatars/old.jpg')

        def broken_upsert(user, **fields):
            raise BackendError(BackendReason.DATABASE)

        monkeypatch.setattr('foodshare.routes.profile.upsert_profile', broken_upsert)
        login(client, donor)

        client.post('/profile', data={'name': 'Donor', 'avatar': _png()})

        assert _stored_files(app, 'avatars') == ['old.jpg']


class TestReceiverRoutes:

    def test_dashboard_shows_pending_only_with_search(self, app, client, make_user):
        donor = make_user('donor@foodshare.org', 'donor', organization='Green Bistro')
        receiver = make_user('ngo@foodshare.org', 'receiver')
        _add_donation(app, donor.id, items='vegetable curry')
        _add_donation(app, donor.id, items='chicken rice', food_type='non-veg')
        _add_donation(app, donor.id, items='taken already', status='accepted')
        login(client, receiver)

        body = client.get('/receiver').get_data(as_text=True)
        assert 'vegetable curry' in body and 'chicken rice' in body
        assert 'taken already' not in body

        body = client.get('/receiver?food_type=non-veg').get_data(as_text=True)
        assert 'chicken rice' in body and 'vegetable curry' not in body

        body = client.get('/receiver?q=bistro').get_data(as_text=True)
        assert 'vegetable curry' in body and 'chicken rice' in body

        body = client.get('/receiver?q=curry').get_data(as_text=True)
        assert 'vegetable curry' in body and 'chicken rice' not in body

    def test_accept_race_first_wins_and_donor_is_emailed(self, app, client, make_user):
        donor = make_user('donor@foodshare.org', 'donor')
        first = make_user('first@foodshare.org', 'receiver')
        second = make_user('second@foodshare.org', 'receiver')
        donation_id = _add_donation(app, donor.id)

        login(client, first)
        with mail.record_messages() as outbox:
            client.post(f'/receiver/donations/{donation_id}/accept')
        assert len(outbox) == 1
        assert outbox[0].recipients == ['donor@foodshare.org']

        login(client, second)
        response = client.post(f'/receiver/donations/{donation_id}/accept', follow_redirects=True)
        assert b'already been accepted' in response.data

        donation = _donation(app, donation_id)
        assert donation.status == 'accepted'
        assert donation.accepted_by_id == first.id

    def test_report_donation(self, app, client, make_user):
        donor = make_user('donor@foodshare.org', 'donor')
        receiver = make_user('ngo@foodshare.org', 'receiver')
        donation_id = _add_donation(app, donor.id)
        login(client, receiver)

        client.post(f'/receiver/donations/{donation_id}/report', data={'reason': 'Food looked spoiled'})

        with app.app_context():
            from foodshare.models import Report
            report = Report.query.one()
            assert report.donation_id == donation_id
            assert report.reported_user_id == donor.id
            assert report.status == 'pending'

    def test_register_organization(self, app, client, make_user):
        receiver = make_user('ngo@foodshare.org', 'receiver')
        login(client, receiver)

        client.post('/receiver/organization', data={'name': 'Food Rescue SG', 'type': 'ngo'})

        with app.app_context():
            from foodshare.models import Organization
            organization = Organization.query.one()
            assert organization.status == 'pending'
            assert organization.submitted_by_id == receiver.id


class TestMapApi:

    def test_markers_skip_unusable_locations_and_are_colored(self, app, client, make_user):
        donor = make_user('donor@foodshare.org', 'donor')
        soon = datetime.now() + timedelta(minutes=45)
        later = datetime.now() + timedelta(days=2)
        fresh = _add_donation(app, donor.id, expiry_time=later)
        urgent = _add_donation(app, donor.id, expiry_time=soon, location='(103.85,1.29)')
        taken = _add_donation(app, donor.id, expiry_time=later, status='accepted', location='(103.9,1.33)')
        _add_donation(app, donor.id, location='garbage')
        _add_donation(app, donor.id, location='(0,0)')
        login(client, donor)

        data = client.get('/map/api/donations').get_json()

        colors = {marker['id']: marker['color'] for marker in data['donations']}
        assert colors == {fresh: '#10B981', urgent: '#EF4444', taken: '#6B7280'}

    def test_markers_sorted_by_distance_from_viewer(self, app, client, make_user):
        donor = make_user('donor@foodshare.org', 'donor')
        far = _add_donation(app, donor.id, location='(101.6869,3.139)')
        near = _add_donation(app, donor.id, location='(103.82,1.35)')
        login(client, donor)

        data = client.get('/map/api/donations?lat=1.3521&lng=103.8198').get_json()

        assert [marker['id'] for marker in data['donations']] == [near, far]
        assert data['donations'][0]['distance_km'] < 1


class TestAdminRoutes:

    def test_admin_moderation_actions(self, app, client, make_user):
        admin = make_user('admin@foodshare.org', 'admin')
        donor = make_user('donor@foodshare.org', 'donor')
        login(client, admin)

        assert client.get('/admin').status_code == 200
        client.post(f'/admin/users/{donor.id}/verify')
        client.post(f'/admin/users/{donor.id}/flag')

        with app.app_context():
            profile = Profile.query.filter_by(user_id=donor.id).one()
            assert profile.is_verified and profile.verified_by_id == admin.id
            assert profile.is_flagged

    def test_non_admin_cannot_moderate(self, app, client, make_user):
        donor = make_user('donor@foodshare.org', 'donor')
        target = make_user('target@foodshare.org', 'donor')
        login(client, donor)

        client.post(f'/admin/users/{target.id}/verify')

        with app.app_context():
            assert Profile.query.filter_by(user_id=target.id).one().is_verified is False

    def test_unknown_report_action_is_404(self, client, make_user):
        admin = make_user('admin@foodshare.org', 'admin')
        login(client, admin)
        assert client.post('/admin/reports/1/escalate').status_code == 404


def test_signup_creates_profile_and_role(app, client):
    response = client.post('/signup', data={
        'email': 'newdonor@foodshare.org',
        'password': 'correct-horse-battery',
        'password_confirm': 'correct-horse-battery',
        'name': 'New Donor',
        'role': 'receiver',
        'organization': 'Food Rescue SG',
        'phone': '+65 1234 5678',
    })

    assert response.status_code == 302
    with app.app_context():
        user = User.query.filter_by(email='newdonor@foodshare.org').one()
        assert user.has_role('receiver')
        assert user.profile.name == 'New Donor'
        assert user.profile.organization == 'Food Rescue SG'


def test_signup_cannot_pick_admin_role(app, client):
    client.post('/signup', data={
        'email': 'sneaky@foodshare.org',
        'password': 'correct-horse-battery',
        'password_confirm': 'correct-horse-battery',
        'name': 'Sneaky',
        'role': 'admin',
    })

    with app.app_context():
        assert User.query.filter_by(email='sneaky@foodshare.org').first() is None
