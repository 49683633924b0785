# physiocare/api/dashboard/advanced_stats.py
from datetime import timedelta

from flask import Blueprint, current_app

from ...schemas import schedule_entry
from ...services.dashboard_aggregator import DashboardInputs, aggregate_dashboard
from ...services.store import get_store
from ...utils.responses import ok
from ...utils.timestamps import day_windows, utcnow

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


def collect_dashboard_inputs(store, now=None):
    """Run every dashboard read against ``store``; the first failure propagates."""
    yesterday_start, today_start, today_end = day_windows(now or utcnow())
    week_start = today_start - timedelta(days=6)

    return DashboardInputs(
        today_start=today_start,
        revenue_today=store.paid_invoice_totals(today_start, today_end),
        revenue_yesterday=store.paid_invoice_totals(yesterday_start, today_start),
        appointments_today=store.count_appointments(today_start, today_end),
        appointments_yesterday=store.count_appointments(yesterday_start, today_start),
        new_patients_today=store.count_patients_created(today_start, today_end),
        cancellations_today=store.count_appointments(today_start, today_end, status="Cancelled"),
        todays_schedule=[
            schedule_entry(a) for a in store.appointments_between(today_start, today_end)
        ],
        birth_dates=store.patient_birth_dates(),
        appointment_days=store.appointment_start_times(week_start, today_end),
    )


@dashboard_bp.route("/advanced-stats", methods=["GET"])
def advanced_stats():
    """
    Today-vs-yesterday clinic statistics
    ---
    tags:
      - Dashboard
    responses:
      200:
        description: Aggregated dashboard figures
        schema:
          type: object
          properties:
            success:
              type: boolean
            data:
              type: object
              properties:
                todaysRevenue:
                  type: number
                appointmentsToday:
                  type: integer
                newPatientsToday:
                  type: integer
                cancellationsToday:
                  type: integer
                trends:
                  type: object
                  properties:
                    revenue:
                      type: integer
                      description: Percent change against yesterday
                    appointments:
                      type: integer
                    newPatients:
                      type: integer
                todaysSchedule:
                  type: array
                  items:
                    type: object
                ageDemographics:
                  type: array
                  description: Counts for <18, 18-30, 31-50, >50
                  items:
                    type: integer
                weeklyAppointments:
                  type: array
                  items:
                    type: object
                    properties:
                      day:
                        type: string
                      count:
                        type: integer
      500:
        description: One of the underlying reads failed
    """
    inputs = collect_dashboard_inputs(get_store())
    stats = aggregate_dashboard(inputs)
    current_app.logger.debug(
        f"Dashboard stats: revenue={stats['todaysRevenue']} appointments={stats['appointmentsToday']}"
    )
    return ok(stats)
