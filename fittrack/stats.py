"""Aggregations behind the dashboard, calendar and chart endpoints.

Timestamps are stored as naive UTC; everything that talks about "a day" works
in the user's local time zone and converts the bounds back to UTC for queries.
"""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import current_app

WEEKDAY_SHORT_PT = ["Seg", "Ter", "Qua", "Qui", "Sex", "Sáb", "Dom"]
RECENT_HALF_LIFE_DAYS = 7.0


def resolve_zoneinfo(tz_name: str | None) -> ZoneInfo:
    for candidate in (tz_name, current_app.config.get("DEFAULT_TIME_ZONE"), "UTC"):
        if not candidate:
            continue
        try:
            return ZoneInfo(candidate)
        except (ZoneInfoNotFoundError, ValueError):
            continue
    return ZoneInfo("UTC")


def get_user_zoneinfo(user) -> ZoneInfo:
    tz_name = user.profile.time_zone if user and user.profile else None
    return resolve_zoneinfo(tz_name)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def local_today(tz: ZoneInfo, now_utc: datetime | None = None) -> date:
    return to_local(now_utc or utcnow(), tz).date()


def to_local(value_utc: datetime, tz: ZoneInfo) -> datetime:
    return value_utc.replace(tzinfo=timezone.utc).astimezone(tz)


def local_to_utc(value_local: datetime, tz: ZoneInfo) -> datetime:
    if value_local.tzinfo is None:
        value_local = value_local.replace(tzinfo=tz)
    return value_local.astimezone(timezone.utc).replace(tzinfo=None)


def local_date(value_utc: datetime, tz: ZoneInfo) -> date:
    return to_local(value_utc, tz).date()


def local_day_bounds(target_day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    start = local_to_utc(datetime.combine(target_day, datetime.min.time()), tz)
    end = local_to_utc(datetime.combine(target_day + timedelta(days=1), datetime.min.time()), tz)
    return start, end


def local_range_bounds(first_day: date, last_day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    start, _ = local_day_bounds(first_day, tz)
    _, end = local_day_bounds(last_day, tz)
    return start, end


def weekday_short(day: date) -> str:
    return WEEKDAY_SHORT_PT[day.weekday()]


def bucket_by_local_day(rows, timestamp_attr: str, value_attr: str, tz: ZoneInfo) -> dict[date, float]:
    buckets: dict[date, float] = {}
    for row in rows:
        value = getattr(row, value_attr) or 0
        day = local_date(getattr(row, timestamp_attr), tz)
        buckets[day] = buckets.get(day, 0) + value
    return buckets


def last_n_days(today: date, n: int = 7) -> list[date]:
    return [today - timedelta(days=offset) for offset in range(n - 1, -1, -1)]


def weekly_food_stats(consumed_by_day: dict[date, float], today: date, kcal_goal: int) -> dict:
    daily = []
    week_consumed = 0
    week_balance = 0
    for day in last_n_days(today):
        consumed = int(round(consumed_by_day.get(day, 0)))
        # Days with nothing logged are treated as on-goal instead of a deficit.
        no_log = consumed == 0
        daily.append(
            {
                "date": day.isoformat(),
                "day_name": weekday_short(day),
                "consumed": consumed,
                "goal": kcal_goal,
                "balance": 0 if no_log else consumed - kcal_goal,
                "is_fallback": no_log and day < today,
                "is_over_goal": consumed > kcal_goal,
            }
        )
        week_consumed += consumed
        if not no_log:
            week_balance += consumed - kcal_goal

    return {
        "daily_stats": daily,
        "kcal_goal": kcal_goal,
        "week_total_consumed": week_consumed,
        "week_total_goal": kcal_goal * len(daily),
        "week_balance": week_balance,
    }


def weekly_water_stats(consumed_by_day: dict[date, float], today: date, water_goal: int) -> dict:
    daily = []
    week_consumed = 0
    for day in last_n_days(today):
        consumed = int(consumed_by_day.get(day, 0))
        daily.append(
            {
                "date": day.isoformat(),
                "day_name": weekday_short(day),
                "consumed": consumed,
                "goal": water_goal,
                "progress_pct": round(consumed / water_goal * 100) if water_goal else 0,
                "is_met": consumed >= water_goal,
            }
        )
        week_consumed += consumed

    return {
        "daily_stats": daily,
        "water_goal": water_goal,
        "week_total_consumed": week_consumed,
        "week_total_goal": water_goal * len(daily),
    }


def month_grid_bounds(month_start: date) -> tuple[date, date]:
    next_month = (month_start.replace(day=28) + timedelta(days=4)).replace(day=1)
    month_end = next_month - timedelta(days=1)
    # Sunday-start weeks: date.weekday() is Monday=0 .. Sunday=6.
    grid_start = month_start - timedelta(days=(month_start.weekday() + 1) % 7)
    grid_end = month_end + timedelta(days=(5 - month_end.weekday()) % 7)
    return grid_start, grid_end


def calendar_grid(
    month_start: date,
    today: date,
    selected: date,
    activity_days: set[date],
    weight_days: set[date],
) -> list[list[dict]]:
    grid_start, grid_end = month_grid_bounds(month_start)
    weeks: list[list[dict]] = []
    day = grid_start
    while day <= grid_end:
        if not weeks or len(weeks[-1]) == 7:
            weeks.append([])
        weeks[-1].append(
            {
                "date": day.isoformat(),
                "day": day.day,
                "in_month": day.month == month_start.month and day.year == month_start.year,
                "is_today": day == today,
                "is_selected": day == selected,
                "has_activity": day in activity_days,
                "has_weight": day in weight_days,
            }
        )
        day += timedelta(days=1)
    return weeks


def weight_change(latest_g: int | None, previous_g: int | None, reference_g: int | None, mode: str) -> dict:
    baseline_g = reference_g if mode == "reference" and reference_g is not None else previous_g
    baseline_kind = "reference" if mode == "reference" and reference_g is not None else "previous"
    diff_kg = None
    if latest_g is not None and baseline_g is not None:
        diff_kg = round((latest_g - baseline_g) / 1000, 1)
    return {
        "latest_kg": latest_g / 1000 if latest_g is not None else None,
        "baseline_kg": baseline_g / 1000 if baseline_g is not None else None,
        "baseline": baseline_kind,
        "diff_kg": diff_kg if diff_kg is not None else 0.0,
    }


def weight_series(measurements, tz: ZoneInfo, limit: int = 10) -> list[dict]:
    ordered = sorted(measurements, key=lambda row: row.measured_at)[-limit:]
    return [
        {"date": to_local(row.measured_at, tz).strftime("%d/%m"), "weight": row.weight_g / 1000}
        for row in ordered
    ]


def activity_duration_series(workouts, today: date, tz: ZoneInfo) -> list[dict]:
    minutes = bucket_by_local_day(workouts, "started_at", "duration_min", tz)
    return [
        {"date": day.isoformat(), "day_name": weekday_short(day), "duration": int(minutes.get(day, 0))}
        for day in last_n_days(today)
    ]


def recent_food_items(logs, now_utc: datetime, tz: ZoneInfo, limit: int = 50, half_life_days: float = RECENT_HALF_LIFE_DAYS) -> list[dict]:
    """Distinct (name, quantity) items ranked by exponentially decayed frequency.

    Each occurrence contributes ``0.5 ** (age_days / half_life_days)``; the
    most recent occurrence provides the macros that are returned.
    """
    scored: dict[tuple[str, str], dict] = {}
    for log in logs:
        age_days = max(0.0, (now_utc - log.logged_at).total_seconds() / 86400)
        weight = 0.5 ** (age_days / half_life_days)
        for raw in log.items or []:
            if not isinstance(raw, dict) or not raw.get("name"):
                continue
            key = (str(raw["name"]).strip().lower(), str(raw.get("quantity") or "").strip().lower())
            entry = scored.get(key)
            if entry is None:
                entry = scored[key] = {"score": 0.0, "count": 0, "last_at": log.logged_at, "item": raw}
            entry["score"] += weight
            entry["count"] += 1
            if log.logged_at >= entry["last_at"]:
                entry["last_at"] = log.logged_at
                entry["item"] = raw

    ranked = sorted(scored.values(), key=lambda entry: (entry["score"], entry["last_at"]), reverse=True)
    results = []
    for entry in ranked[:limit]:
        item = entry["item"]
        results.append(
            {
                "name": item.get("name"),
                "quantity": item.get("quantity") or "",
                "calories": item.get("calories") or 0,
                "protein": item.get("protein") or 0,
                "carbs": item.get("carbs") or 0,
                "fat": item.get("fat") or 0,
                "times_logged": entry["count"],
                "score": round(entry["score"], 4),
                "last_logged_at": to_local(entry["last_at"], tz).isoformat(),
            }
        )
    return results
