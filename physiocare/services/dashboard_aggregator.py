"""Dashboard statistics.

The dashboard route fetches every row it needs up front and hands them to
``aggregate_dashboard``; nothing here talks to the database.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional

AGE_BUCKETS = ("<18", "18-30", "31-50", ">50")


@dataclass
class DashboardInputs:
    today_start: datetime
    revenue_today: List = field(default_factory=list)
    revenue_yesterday: List = field(default_factory=list)
    appointments_today: int = 0
    appointments_yesterday: int = 0
    new_patients_today: int = 0
    cancellations_today: int = 0
    todays_schedule: List[Dict] = field(default_factory=list)
    birth_dates: List[Optional[date]] = field(default_factory=list)
    appointment_days: List[datetime] = field(default_factory=list)


def sum_revenue(totals: Iterable) -> Decimal:
    return sum((Decimal(str(t)) for t in totals if t is not None), Decimal("0"))


def revenue_trend(today, yesterday) -> float:
    """Percent change against yesterday; 100 when yesterday had nothing."""
    if yesterday > 0:
        return float((today - yesterday) / yesterday * 100)
    return 100.0 if today > 0 else 0.0


def age_on(birth_date: date, today: date) -> int:
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def age_bucket(age: int) -> str:
    if age < 18:
        return "<18"
    if age <= 30:
        return "18-30"
    if age <= 50:
        return "31-50"
    return ">50"


def age_demographics(birth_dates: Iterable[Optional[date]], today: date) -> List[int]:
    counts = dict.fromkeys(AGE_BUCKETS, 0)
    for birth_date in birth_dates:
        if birth_date is None:
            continue
        counts[age_bucket(age_on(birth_date, today))] += 1
    return [counts[bucket] for bucket in AGE_BUCKETS]


def daily_counts(start_times: Iterable[datetime], today: date, days: int = 7) -> List[Dict]:
    """Zero-filled ``{day, count}`` rows for the trailing ``days``, oldest first."""
    first_day = today - timedelta(days=days - 1)
    counts = {first_day + timedelta(days=offset): 0 for offset in range(days)}
    for start in start_times:
        if start is None:
            continue
        day = start.date()
        if day in counts:
            counts[day] += 1
    return [{"day": day.isoformat(), "count": count} for day, count in counts.items()]


def round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def aggregate_dashboard(inputs: DashboardInputs) -> Dict:
    today = inputs.today_start.date()
    todays_revenue = sum_revenue(inputs.revenue_today)
    yesterdays_revenue = sum_revenue(inputs.revenue_yesterday)

    return {
        "todaysRevenue": float(todays_revenue),
        "appointmentsToday": inputs.appointments_today,
        "newPatientsToday": inputs.new_patients_today,
        "cancellationsToday": inputs.cancellations_today,
        "trends": {
            "revenue": round_half_up(revenue_trend(todays_revenue, yesterdays_revenue)),
            "appointments": inputs.appointments_today - inputs.appointments_yesterday,
            "newPatients": inputs.new_patients_today,
        },
        "todaysSchedule": inputs.todays_schedule,
        "ageDemographics": age_demographics(inputs.birth_dates, today),
        "weeklyAppointments": daily_counts(inputs.appointment_days, today),
    }
