import json
from datetime import datetime, timedelta

from flask import Blueprint, render_template, jsonify, request, current_app, Response, stream_with_context
from flask_security import login_required

from foodshare.feed import get_change_feed
from foodshare.geo import coerce_point, distance_km
from foodshare.lifecycle import compute_urgency, format_expiry, Urgency
from foodshare.models import Donation, DonationStatus
from foodshare.utils import get_image_url

bp = Blueprint('geomap', __name__, url_prefix='/map')

GREY = '#6B7280'
RED = '#EF4444'
GREEN = '#10B981'


def marker_color(donation, urgency):
    if donation.status != DonationStatus.PENDING.value:
        return GREY
    if urgency in (Urgency.EXPIRED, Urgency.IMMINENT):
        return RED
    return GREEN


def build_markers(donations, viewer=None, now=None, imminent_within=timedelta(hours=2)):
    """Marker payloads for donations with a usable point; malformed or origin locations are skipped."""
    now = now or datetime.now()
    markers = []
    for donation in donations:
        point = donation.point
        if point is None:
            current_app.logger.debug(f'Skipping donation {donation.id}: malformed location {donation.location!r}')
            continue
        if point.is_origin:
            continue
        urgency = compute_urgency(donation.expiry_time, now, imminent_within)
        marker = {
            'id': donation.id,
            'lat': point.lat,
            'lng': point.lng,
            'status': donation.status,
            'urgency': urgency.value,
            'color': marker_color(donation, urgency),
            'items': donation.items,
            'food_type': donation.food_type,
            'quantity': donation.quantity,
            'pickup_address': donation.pickup_address,
            'expiry': format_expiry(donation.expiry_time, now),
            'image_url': get_image_url(donation.image_url),
        }
        if viewer is not None:
            marker['distance_km'] = round(distance_km(viewer, point), 2)
        markers.append(marker)

    if viewer is not None:
        markers.sort(key=lambda m: m['distance_km'])
    return markers


@bp.route('')
@login_required
def index():
    lat, lng = current_app.config['MAP_DEFAULT_CENTER']
    return render_template(
        'map/index.html',
        maps_api_key=current_app.config.get('MAPS_API_KEY'),
        default_center={'lat': lat, 'lng': lng},
        geolocation_timeout=current_app.config.get('GEOLOCATION_TIMEOUT_MS', 10000)
    )


@bp.route('/api/donations')
@login_required
def api_donations():
    viewer = coerce_point(request.args.get('lat'), request.args.get('lng'))
    donations = Donation.query.order_by(Donation.created_at.desc()).all()
    markers = build_markers(
        donations,
        viewer=viewer,
        imminent_within=timedelta(hours=current_app.config.get('DONATION_IMMINENT_HOURS', 2))
    )
    return jsonify({'donations': markers, 'count': len(markers)})


@bp.route('/api/stream')
@login_required
def api_stream():
    """Server-sent events carrying donation changes; the page refetches markers on each one."""
    feed = get_change_feed()
    heartbeat = current_app.config.get('CHANGE_FEED_HEARTBEAT', 15)
    logger = current_app.logger

    def generate(subscription):
        with subscription:
            yield 'retry: 5000\n\n'
            while True:
                event = subscription.get(timeout=heartbeat)
                if event is None:
                    yield ': keep-alive\n\n'
                    continue
                payload = {'op': event.op, 'donation_id': event.donation_id, 'status': event.status}
                yield f'event: donation\ndata: {json.dumps(payload)}\n\n'

    logger.debug('Map client subscribed to change feed')
    return Response(
        stream_with_context(generate(feed.subscribe())),
        mimetype='text/event-stream',
        headers={'Cache-Control': 'no-cache', 'X-Accel-Buffering': 'no'}
    )
