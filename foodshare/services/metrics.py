"""Daily impact metrics aggregated from accepted donations."""
from datetime import datetime, date, time, timedelta

from flask import current_app
from sqlalchemy import func

from foodshare.extensions import db
from foodshare.models import DailyMetrics, Donation, DonationStatus


def compute_daily_metrics(day=None, kg_per_person=None, co2_per_kg=None):
    """
    Aggregate donations accepted on ``day`` (UTC) into the metrics row for that day.

    Donations that moved past accepted still count for the day they were accepted.
    """
    day = day or date.today()
    kg_per_person = kg_per_person or current_app.config.get('METRICS_KG_PER_PERSON', 0.5)
    co2_per_kg = co2_per_kg if co2_per_kg is not None else current_app.config.get('METRICS_CO2_PER_KG', 2.5)

    start = datetime.combine(day, time.min)
    end = start + timedelta(days=1)
    food_saved = db.session.query(func.coalesce(func.sum(Donation.quantity), 0.0)).filter(
        Donation.accepted_at >= start,
        Donation.accepted_at < end,
        Donation.status != DonationStatus.PENDING.value
    ).scalar() or 0.0

    metrics = DailyMetrics.for_date(day)
    metrics.food_saved_kg = round(float(food_saved), 2)
    metrics.people_served = int(float(food_saved) / kg_per_person) if kg_per_person else 0
    metrics.emissions_prevented_kg = round(float(food_saved) * co2_per_kg, 2)
    if metrics.id is None:
        db.session.add(metrics)
    db.session.commit()

    current_app.logger.info(
        f'Metrics for {day}: food_saved={metrics.food_saved_kg}kg, '
        f'people_served={metrics.people_served}, emissions={metrics.emissions_prevented_kg}kg'
    )
    return metrics


def metrics_overview():
    """Today's metrics plus all-time totals for the admin overview tab."""
    totals = db.session.query(
        func.coalesce(func.sum(DailyMetrics.food_saved_kg), 0.0),
        func.coalesce(func.sum(DailyMetrics.people_served), 0),
        func.coalesce(func.sum(DailyMetrics.emissions_prevented_kg), 0.0)
    ).one()
    return {
        'today': DailyMetrics.for_date(date.today()),
        'food_saved_kg': float(totals[0]),
        'people_served': int(totals[1]),
        'emissions_prevented_kg': float(totals[2]),
    }
