import json
import math
from datetime import date, datetime, timedelta
from functools import wraps

from flask import Blueprint, current_app, g, jsonify, request, session
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from fittrack import db
from fittrack.activity_catalog import STANDARD_WORKOUT_KEYS, activity_to_payload, seed_activities_if_needed
from fittrack.ai import FoodParseError, parse_food
from fittrack.meals import (
    add_item,
    delete_item,
    meal_totals_for_storage,
    merge_meals,
    normalize_meals,
    registered_food_item,
    update_item_amount,
)
from fittrack.models import (
    Activity,
    FoodDraft,
    FoodLog,
    Profile,
    ProgressPhoto,
    RegisteredFood,
    StepsLog,
    User,
    WaterLog,
    WeightMeasurement,
    Workout,
)
from fittrack.stats import (
    activity_duration_series,
    bucket_by_local_day,
    calendar_grid,
    get_user_zoneinfo,
    last_n_days,
    local_date,
    local_day_bounds,
    local_range_bounds,
    local_to_utc,
    local_today,
    month_grid_bounds,
    recent_food_items,
    resolve_zoneinfo,
    to_local,
    utcnow,
    weekly_food_stats,
    weekly_water_stats,
    weight_change,
    weight_series,
)
from fittrack.storage import upload_progress_photos

bp = Blueprint("main", __name__)

WEIGHT_REFERENCE_MODES = {"previous", "reference"}
RECENT_FOOD_LOOKBACK_DAYS = 60

SAVE_FAILED_MESSAGE = "Erro ao salvar no banco de dados."
DELETE_FAILED_MESSAGE = "Erro ao excluir registro."
PARSE_FAILED_MESSAGE = "Erro ao processar sua refeição."


def parse_int(value):
    return int(value) if value not in (None, "") else None


def parse_float(value):
    if value in (None, ""):
        return None
    if isinstance(value, str):
        value = value.replace(",", ".")
    number = float(value)
    if not math.isfinite(number):
        raise ValueError("Non-finite number.")
    return number


def normalize_text(value):
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if text.lower() in {"none", "null"}:
        return None
    return text


def normalize_email(value: str | None):
    if not value:
        return None
    return value.strip().lower()


def request_data() -> dict:
    if request.is_json:
        body = request.get_json(silent=True)
        return body if isinstance(body, dict) else {}
    return request.form.to_dict()


def error_response(message: str, status: int = 400):
    return jsonify({"ok": False, "error": message}), status


def commit_or_error(message: str = SAVE_FAILED_MESSAGE):
    """Commit the session; on failure roll back, log and return an error reply."""
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Database commit failed for user_id=%s", getattr(g.get("user"), "id", None))
        return error_response(message, 500)
    return None


def get_or_create_profile(user: User):
    profile = user.profile
    if not profile:
        profile = Profile(user_id=user.id)
        db.session.add(profile)
        db.session.commit()
    return profile


def user_tz():
    return get_user_zoneinfo(g.user)


def parse_local_datetime(value, tz) -> datetime | None:
    text = normalize_text(value)
    if not text:
        return None
    return local_to_utc(datetime.fromisoformat(text), tz)


def parse_day_arg(tz) -> date:
    day_str = request.args.get("day")
    if day_str:
        try:
            return date.fromisoformat(day_str)
        except ValueError:
            pass
    return local_today(tz)


def kcal_goal_for(profile: Profile) -> int:
    return profile.kcal_goal or current_app.config["DEFAULT_KCAL_GOAL"]


def water_goal_for(profile: Profile) -> int:
    return profile.water_goal_ml or current_app.config["DEFAULT_WATER_GOAL_ML"]


def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if g.user is None:
            return error_response("Não autorizado.", 401)
        return view(*args, **kwargs)

    return wrapped


@bp.before_app_request
def load_logged_in_user():
    user_id = session.get("user_id")
    g.user = db.session.get(User, user_id) if user_id else None


def iso_local(value: datetime | None, tz):
    if value is None:
        return None
    return to_local(value, tz).isoformat()


def profile_to_payload(profile: Profile) -> dict:
    return {
        "age": profile.age,
        "height_cm": profile.height_cm,
        "desired_weight_kg": profile.desired_weight_g / 1000 if profile.desired_weight_g else None,
        "weight_reference": profile.weight_reference or "previous",
        "kcal_goal": kcal_goal_for(profile),
        "water_goal_ml": water_goal_for(profile),
        "time_zone": resolve_zoneinfo(profile.time_zone).key,
    }


def workout_to_payload(workout: Workout, tz) -> dict:
    activity = workout.activity
    return {
        "id": workout.id,
        "activity_id": workout.activity_id,
        "activity_name": activity.name if activity else None,
        "activity_slug": activity.slug if activity else None,
        "activity_color": activity.color if activity else None,
        "activity_icon": activity.icon if activity else None,
        "duration_min": workout.duration_min or 0,
        "calories": workout.calories or 0,
        "started_at": iso_local(workout.started_at, tz),
        "description": workout.description,
        "details": workout.details or {},
    }


def weight_to_payload(measurement: WeightMeasurement, tz) -> dict:
    return {
        "id": measurement.id,
        "weight_kg": measurement.weight_kg,
        "measured_at": iso_local(measurement.measured_at, tz),
        "is_reference": bool(measurement.is_reference),
    }


def water_to_payload(log: WaterLog, tz) -> dict:
    return {"id": log.id, "amount_ml": log.amount_ml, "logged_at": iso_local(log.logged_at, tz)}


def steps_to_payload(log: StepsLog, tz) -> dict:
    return {"id": log.id, "count": log.count, "logged_at": iso_local(log.logged_at, tz)}


def food_log_to_payload(log: FoodLog, tz) -> dict:
    return {
        "id": log.id,
        "meal_name": log.meal_name,
        "raw_text": log.raw_text,
        "items": log.items or [],
        "total_calories": log.total_calories,
        "total_protein": log.total_protein or 0,
        "total_carbs": log.total_carbs or 0,
        "total_fat": log.total_fat or 0,
        "logged_at": iso_local(log.logged_at, tz),
    }


def registered_food_to_payload(food: RegisteredFood) -> dict:
    return {
        "id": food.id,
        "name": food.name,
        "serving_size": food.serving_size,
        "calories": food.calories,
        "protein": food.protein,
        "carbs": food.carbs,
        "fat": food.fat,
    }


def draft_to_payload(draft: FoodDraft | None) -> dict:
    if draft is None:
        return {"meals": [], "history": [], "raw_text": None}
    return {"meals": draft.meals or [], "history": draft.history or [], "raw_text": draft.raw_text}


def photo_to_payload(photo: ProgressPhoto, tz) -> dict:
    return {
        "id": photo.id,
        "front_url": photo.front_url,
        "back_url": photo.back_url,
        "side_left_url": photo.side_left_url,
        "side_right_url": photo.side_right_url,
        "taken_at": iso_local(photo.taken_at, tz),
    }


# --- auth -----------------------------------------------------------------


@bp.post("/register")
def register():
    data = request_data()
    full_name = (data.get("full_name") or "").strip()
    email = normalize_email(data.get("email"))
    password = data.get("password") or ""
    password_confirm = data.get("password_confirm") or ""

    if not full_name:
        return error_response("Informe seu nome.")
    if not email:
        return error_response("Informe seu e-mail.")
    if len(password) < 8:
        return error_response("A senha deve ter pelo menos 8 caracteres.")
    if password != password_confirm:
        return error_response("A confirmação de senha não confere.")
    if User.query.filter_by(email=email).first():
        return error_response("Já existe uma conta com esse e-mail.", 409)

    user = User(full_name=full_name, email=email, password_hash=generate_password_hash(password))
    db.session.add(user)
    db.session.flush()
    db.session.add(Profile(user_id=user.id))
    failure = commit_or_error()
    if failure:
        return failure

    session.clear()
    session["user_id"] = user.id
    return jsonify({"ok": True, "user": {"id": user.id, "full_name": user.full_name, "email": user.email}}), 201


@bp.post("/login")
def login():
    data = request_data()
    email = normalize_email(data.get("email"))
    password = data.get("password") or ""

    user = User.query.filter_by(email=email).first() if email else None
    if not user or not check_password_hash(user.password_hash, password):
        return error_response("E-mail ou senha inválidos.", 401)

    session.clear()
    session["user_id"] = user.id
    return jsonify({"ok": True, "user": {"id": user.id, "full_name": user.full_name, "email": user.email}})


@bp.post("/logout")
@login_required
def logout():
    session.clear()
    return jsonify({"ok": True})


@bp.get("/me")
@login_required
def me():
    profile = get_or_create_profile(g.user)
    return jsonify(
        {
            "ok": True,
            "user": {
                "id": g.user.id,
                "full_name": g.user.full_name,
                "first_name": g.user.first_name(),
                "email": g.user.email,
                "avatar_url": g.user.avatar_url,
            },
            "profile": profile_to_payload(profile),
        }
    )


# --- profile --------------------------------------------------------------


@bp.route("/profile", methods=["GET", "POST"])
@login_required
def profile():
    profile = get_or_create_profile(g.user)
    if request.method == "GET":
        return jsonify({"ok": True, "profile": profile_to_payload(profile)})

    data = request_data()
    try:
        if "age" in data:
            profile.age = parse_int(data.get("age"))
        if "height_cm" in data:
            profile.height_cm = parse_int(data.get("height_cm"))
        if "desired_weight_kg" in data:
            desired_kg = parse_float(data.get("desired_weight_kg"))
            profile.desired_weight_g = round(desired_kg * 1000) if desired_kg else None
        if "kcal_goal" in data:
            profile.kcal_goal = parse_int(data.get("kcal_goal"))
        if "water_goal_ml" in data:
            profile.water_goal_ml = parse_int(data.get("water_goal_ml"))
    except (TypeError, ValueError):
        return error_response("Valores numéricos inválidos no perfil.")

    if "weight_reference" in data:
        mode = normalize_text(data.get("weight_reference")) or "previous"
        if mode not in WEIGHT_REFERENCE_MODES:
            return error_response("Referência de peso inválida.")
        profile.weight_reference = mode

    if "time_zone" in data:
        tz_name = normalize_text(data.get("time_zone"))
        if tz_name and resolve_zoneinfo(tz_name).key != tz_name:
            return error_response("Fuso horário inválido.")
        profile.time_zone = tz_name

    db.session.add(profile)
    failure = commit_or_error()
    if failure:
        return failure
    return jsonify({"ok": True, "profile": profile_to_payload(profile)})


# --- activities & workouts ------------------------------------------------


@bp.get("/activities")
@login_required
def activities_list():
    seed_activities_if_needed()
    activities = Activity.query.order_by(Activity.name.asc()).all()
    return jsonify({"ok": True, "activities": [activity_to_payload(activity) for activity in activities]})


@bp.post("/workouts")
@login_required
def workout_save():
    data = request_data()
    tz = user_tz()

    activity_id = str(data.get("activityId") or "")
    activity = db.session.get(Activity, int(activity_id)) if activity_id.isdigit() else None
    if activity is None:
        return error_response("Selecione uma atividade válida.")

    try:
        duration = parse_int(data.get("duration"))
        calories = parse_int(data.get("calories"))
        started_at = parse_local_datetime(data.get("startedAt"), tz) or utcnow()
        weight_kg = parse_float(data.get("weight"))
    except (TypeError, ValueError):
        return error_response("Dados do treino inválidos.")

    details = {
        key: value
        for key, value in data.items()
        if key not in STANDARD_WORKOUT_KEYS
    }

    workout = Workout(
        user_id=g.user.id,
        activity_id=activity.id,
        duration_min=duration,
        calories=calories,
        started_at=started_at,
        description=normalize_text(data.get("notes")),
        details=details,
    )
    db.session.add(workout)
    if weight_kg and weight_kg > 0:
        db.session.add(
            WeightMeasurement(user_id=g.user.id, weight_g=round(weight_kg * 1000), measured_at=started_at)
        )

    failure = commit_or_error()
    if failure:
        return failure
    return jsonify({"ok": True, "workout": workout_to_payload(workout, tz)}), 201


@bp.get("/workouts")
@login_required
def workouts_list():
    tz = user_tz()
    selected_day = parse_day_arg(tz)
    start, end = local_day_bounds(selected_day, tz)
    workouts = (
        Workout.query.filter(
            Workout.user_id == g.user.id,
            Workout.started_at >= start,
            Workout.started_at < end,
        )
        .order_by(Workout.started_at.desc())
        .all()
    )
    return jsonify(
        {
            "ok": True,
            "day": selected_day.isoformat(),
            "workouts": [workout_to_payload(workout, tz) for workout in workouts],
            "total_duration": sum(workout.duration_min or 0 for workout in workouts),
        }
    )


@bp.post("/workouts/<int:workout_id>/delete")
@login_required
def workout_delete(workout_id: int):
    workout = Workout.query.filter_by(id=workout_id, user_id=g.user.id).first_or_404()
    db.session.delete(workout)
    failure = commit_or_error(DELETE_FAILED_MESSAGE)
    if failure:
        return failure
    return jsonify({"ok": True})


# --- weight ---------------------------------------------------------------


@bp.post("/weight")
@login_required
def weight_save():
    data = request_data()
    tz = user_tz()
    try:
        weight_kg = parse_float(data.get("weight"))
        measured_at = parse_local_datetime(data.get("date"), tz) or utcnow()
    except (TypeError, ValueError):
        return error_response("Peso inválido.")
    if weight_kg is None or weight_kg <= 0:
        return error_response("Informe um peso maior que zero.")

    measurement = WeightMeasurement(user_id=g.user.id, weight_g=round(weight_kg * 1000), measured_at=measured_at)
    db.session.add(measurement)
    failure = commit_or_error()
    if failure:
        return failure
    return jsonify({"ok": True, "measurement": weight_to_payload(measurement, tz)}), 201


@bp.get("/weight")
@login_required
def weight_list():
    tz = user_tz()
    measurements = (
        WeightMeasurement.query.filter_by(user_id=g.user.id)
        .order_by(WeightMeasurement.measured_at.desc())
        .all()
    )
    return jsonify(
        {
            "ok": True,
            "measurements": [weight_to_payload(row, tz) for row in measurements],
            "series": weight_series(measurements, tz, limit=30),
        }
    )


@bp.post("/weight/<int:measurement_id>/reference")
@login_required
def weight_set_reference(measurement_id: int):
    measurement = WeightMeasurement.query.filter_by(id=measurement_id, user_id=g.user.id).first_or_404()
    WeightMeasurement.query.filter(
        WeightMeasurement.user_id == g.user.id,
        WeightMeasurement.id != measurement.id,
        WeightMeasurement.is_reference.is_(True),
    ).update({"is_reference": False}, synchronize_session=False)
    measurement.is_reference = True
    failure = commit_or_error()
    if failure:
        return failure
    return jsonify({"ok": True, "measurement": weight_to_payload(measurement, user_tz())})


@bp.post("/weight/<int:measurement_id>/delete")
@login_required
def weight_delete(measurement_id: int):
    measurement = WeightMeasurement.query.filter_by(id=measurement_id, user_id=g.user.id).first_or_404()
    db.session.delete(measurement)
    failure = commit_or_error(DELETE_FAILED_MESSAGE)
    if failure:
        return failure
    return jsonify({"ok": True})


# --- water & steps --------------------------------------------------------


@bp.post("/water")
@login_required
def water_save():
    data = request_data()
    tz = user_tz()
    try:
        amount = parse_int(data.get("amount"))
        logged_at = utcnow()
        if normalize_text(data.get("date")) and normalize_text(data.get("time")):
            logged_at = parse_local_datetime(f"{data['date']}T{data['time']}", tz)
    except (TypeError, ValueError):
        return error_response("Quantidade ou horário inválido.")
    if amount is None or amount <= 0:
        return error_response("Informe a quantidade de água em ml.")

    log = WaterLog(user_id=g.user.id, amount_ml=amount, logged_at=logged_at)
    db.session.add(log)
    failure = commit_or_error()
    if failure:
        return failure
    return jsonify({"ok": True, "log": water_to_payload(log, tz)}), 201


@bp.get("/water")
@login_required
def water_list():
    tz = user_tz()
    profile = get_or_create_profile(g.user)
    logs = WaterLog.query.filter_by(user_id=g.user.id).order_by(WaterLog.logged_at.desc()).all()
    today = local_today(tz)
    today_total = sum(log.amount_ml for log in logs if local_date(log.logged_at, tz) == today)
    return jsonify(
        {
            "ok": True,
            "logs": [water_to_payload(log, tz) for log in logs],
            "today_total_ml": today_total,
            "goal_ml": water_goal_for(profile),
        }
    )


@bp.get("/water/stats")
@login_required
def water_stats():
    tz = user_tz()
    profile = get_or_create_profile(g.user)
    today = local_today(tz)
    days = last_n_days(today)
    start, end = local_range_bounds(days[0], days[-1], tz)
    logs = WaterLog.query.filter(
        WaterLog.user_id == g.user.id,
        WaterLog.logged_at >= start,
        WaterLog.logged_at < end,
    ).all()
    consumed = bucket_by_local_day(logs, "logged_at", "amount_ml", tz)
    return jsonify({"ok": True, "stats": weekly_water_stats(consumed, today, water_goal_for(profile))})


@bp.post("/water/<int:log_id>/delete")
@login_required
def water_delete(log_id: int):
    log = WaterLog.query.filter_by(id=log_id, user_id=g.user.id).first_or_404()
    db.session.delete(log)
    failure = commit_or_error(DELETE_FAILED_MESSAGE)
    if failure:
        return failure
    return jsonify({"ok": True})


@bp.post("/steps")
@login_required
def steps_save():
    data = request_data()
    try:
        count = parse_int(data.get("count"))
    except (TypeError, ValueError):
        return error_response("Número de passos inválido.")
    if count is None or count <= 0:
        return error_response("Informe o número de passos.")

    log = StepsLog(user_id=g.user.id, count=count, logged_at=utcnow())
    db.session.add(log)
    failure = commit_or_error()
    if failure:
        return failure
    return jsonify({"ok": True, "log": steps_to_payload(log, user_tz())}), 201


@bp.get("/steps")
@login_required
def steps_list():
    tz = user_tz()
    start, end = local_day_bounds(local_today(tz), tz)
    logs = (
        StepsLog.query.filter(
            StepsLog.user_id == g.user.id,
            StepsLog.logged_at >= start,
            StepsLog.logged_at < end,
        )
        .order_by(StepsLog.logged_at.desc())
        .all()
    )
    return jsonify(
        {
            "ok": True,
            "logs": [steps_to_payload(log, tz) for log in logs],
            "today_total": sum(log.count for log in logs),
            "goal": current_app.config["STEPS_GOAL"],
        }
    )


@bp.post("/steps/<int:log_id>/delete")
@login_required
def steps_delete(log_id: int):
    log = StepsLog.query.filter_by(id=log_id, user_id=g.user.id).first_or_404()
    db.session.delete(log)
    failure = commit_or_error(DELETE_FAILED_MESSAGE)
    if failure:
        return failure
    return jsonify({"ok": True})


# --- food: AI parsing, logs, registered foods ----------------------------


def registered_foods_for_user(user_id: int) -> list[RegisteredFood]:
    return RegisteredFood.query.filter_by(user_id=user_id).order_by(RegisteredFood.name.asc()).all()


def run_food_parse(text: str, history: list[dict]):
    """Run the AI parse and translate failures into JSON error replies."""
    reference_lines = [food.reference_line() for food in registered_foods_for_user(g.user.id)]
    try:
        return parse_food(text, history=history, reference_lines=reference_lines), None
    except FoodParseError as exc:
        return None, error_response(str(exc))
    except Exception:
        current_app.logger.exception("Food parse failed for user_id=%s", g.user.id)
        return None, error_response(PARSE_FAILED_MESSAGE, 500)


def store_food_logs(meals: list[dict], raw_text: str | None, logged_at: datetime) -> list[FoodLog]:
    logs = []
    for meal in meals:
        log = FoodLog(
            user_id=g.user.id,
            meal_name=meal["meal_name"],
            raw_text=raw_text,
            items=meal["items"],
            logged_at=logged_at,
            **meal_totals_for_storage(meal["items"]),
        )
        db.session.add(log)
        logs.append(log)
    return logs


@bp.post("/food/parse")
@login_required
def food_parse():
    data = request_data()
    text = normalize_text(data.get("text"))
    if not text:
        return error_response("Descreva o que você comeu.")
    history = data.get("history") if isinstance(data.get("history"), list) else []

    parsed, failure = run_food_parse(text, history)
    if failure:
        return failure
    return jsonify({"ok": True, "meals": parsed["meals"], "model": parsed["model"]})


@bp.post("/food/save")
@login_required
def food_save():
    data = request_data()
    tz = user_tz()
    meals = normalize_meals(data.get("meals"))
    if not meals:
        return error_response("Nenhuma refeição para salvar.")
    try:
        logged_at = parse_local_datetime(data.get("logged_at"), tz) or utcnow()
    except (TypeError, ValueError):
        return error_response("Data inválida.")

    logs = store_food_logs(meals, normalize_text(data.get("raw_text")), logged_at)
    failure = commit_or_error()
    if failure:
        return failure
    return jsonify({"ok": True, "logs": [food_log_to_payload(log, tz) for log in logs]}), 201


@bp.get("/food")
@login_required
def food_list():
    tz = user_tz()
    profile = get_or_create_profile(g.user)
    selected_day = parse_day_arg(tz)
    start, end = local_day_bounds(selected_day, tz)
    logs = (
        FoodLog.query.filter(
            FoodLog.user_id == g.user.id,
            FoodLog.logged_at >= start,
            FoodLog.logged_at < end,
        )
        .order_by(FoodLog.logged_at.desc())
        .all()
    )
    totals = {
        "calories": sum(log.total_calories for log in logs),
        "protein": sum(log.total_protein or 0 for log in logs),
        "carbs": sum(log.total_carbs or 0 for log in logs),
        "fat": sum(log.total_fat or 0 for log in logs),
    }
    return jsonify(
        {
            "ok": True,
            "day": selected_day.isoformat(),
            "logs": [food_log_to_payload(log, tz) for log in logs],
            "totals": totals,
            "kcal_goal": kcal_goal_for(profile),
        }
    )


@bp.post("/food/<int:log_id>/delete")
@login_required
def food_delete(log_id: int):
    log = FoodLog.query.filter_by(id=log_id, user_id=g.user.id).first_or_404()
    db.session.delete(log)
    failure = commit_or_error(DELETE_FAILED_MESSAGE)
    if failure:
        return failure
    return jsonify({"ok": True, "deleted_log": True})


@bp.post("/food/<int:log_id>/items/<int:item_index>/delete")
@login_required
def food_item_delete(log_id: int, item_index: int):
    log = FoodLog.query.filter_by(id=log_id, user_id=g.user.id).first_or_404()
    items = list(log.items or [])
    if item_index >= len(items):
        return error_response("Item não encontrado.", 404)

    if len(items) <= 1:
        db.session.delete(log)
        failure = commit_or_error(DELETE_FAILED_MESSAGE)
        if failure:
            return failure
        return jsonify({"ok": True, "deleted_log": True})

    remaining = [item for idx, item in enumerate(items) if idx != item_index]
    log.items = remaining
    for field, value in meal_totals_for_storage(remaining).items():
        setattr(log, field, value)
    failure = commit_or_error(DELETE_FAILED_MESSAGE)
    if failure:
        return failure
    return jsonify({"ok": True, "deleted_log": False, "log": food_log_to_payload(log, user_tz())})


@bp.get("/food/stats/week")
@login_required
def food_week_stats():
    tz = user_tz()
    profile = get_or_create_profile(g.user)
    today = local_today(tz)
    days = last_n_days(today)
    start, end = local_range_bounds(days[0], days[-1], tz)
    logs = FoodLog.query.filter(
        FoodLog.user_id == g.user.id,
        FoodLog.logged_at >= start,
        FoodLog.logged_at < end,
    ).all()
    consumed = bucket_by_local_day(logs, "logged_at", "total_calories", tz)
    return jsonify({"ok": True, "stats": weekly_food_stats(consumed, today, kcal_goal_for(profile))})


@bp.get("/food/recent")
@login_required
def food_recent():
    limit_arg = request.args.get("limit") or ""
    limit = max(1, min(int(limit_arg), 200)) if limit_arg.isdigit() else 50
    query = (request.args.get("q") or "").strip().lower()
    now = utcnow()
    logs = (
        FoodLog.query.filter(
            FoodLog.user_id == g.user.id,
            FoodLog.logged_at >= now - timedelta(days=RECENT_FOOD_LOOKBACK_DAYS),
        )
        .order_by(FoodLog.logged_at.desc())
        .all()
    )
    items = recent_food_items(logs, now, user_tz(), limit=limit if not query else 200)
    if query:
        items = [
            item
            for item in items
            if query in str(item["name"]).lower() or query in str(item["quantity"]).lower()
        ][:limit]
    return jsonify({"ok": True, "items": items})


@bp.get("/foods/registered")
@login_required
def registered_foods_list():
    foods = registered_foods_for_user(g.user.id)
    return jsonify({"ok": True, "foods": [registered_food_to_payload(food) for food in foods]})


@bp.post("/foods/registered")
@login_required
def registered_food_save():
    data = request_data()
    name = normalize_text(data.get("name"))
    if not name:
        return error_response("Informe o nome do alimento.")
    try:
        calories = parse_int(data.get("calories"))
        protein = parse_int(data.get("protein")) or 0
        carbs = parse_int(data.get("carbs")) or 0
        fat = parse_int(data.get("fat")) or 0
    except (TypeError, ValueError):
        return error_response("Valores nutricionais inválidos.")
    if calories is None or calories < 0:
        return error_response("Informe as calorias do alimento.")

    food_id = parse_int(data.get("id")) if str(data.get("id") or "").isdigit() else None
    if food_id:
        food = RegisteredFood.query.filter_by(id=food_id, user_id=g.user.id).first_or_404()
        status = 200
    else:
        food = RegisteredFood(user_id=g.user.id)
        status = 201

    food.name = name[:255]
    food.serving_size = normalize_text(data.get("serving_size"))
    food.calories = calories
    food.protein = protein
    food.carbs = carbs
    food.fat = fat
    db.session.add(food)
    failure = commit_or_error("Erro ao registrar alimento.")
    if failure:
        return failure
    return jsonify({"ok": True, "food": registered_food_to_payload(food)}), status


@bp.post("/foods/registered/<int:food_id>/delete")
@login_required
def registered_food_delete(food_id: int):
    food = RegisteredFood.query.filter_by(id=food_id, user_id=g.user.id).first_or_404()
    db.session.delete(food)
    failure = commit_or_error(DELETE_FAILED_MESSAGE)
    if failure:
        return failure
    return jsonify({"ok": True})


# --- food: meal draft -----------------------------------------------------


def current_state_message(meals: list[dict]) -> str:
    return f"Current state: {json.dumps({'meals': meals}, ensure_ascii=False)}"


def get_draft() -> FoodDraft | None:
    return FoodDraft.query.filter_by(user_id=g.user.id).first()


def get_or_create_draft() -> FoodDraft:
    draft = get_draft()
    if draft is None:
        draft = FoodDraft(user_id=g.user.id, meals=[], history=[])
        db.session.add(draft)
    return draft


def save_draft(draft: FoodDraft, meals: list[dict]):
    draft.meals = meals
    db.session.add(draft)
    failure = commit_or_error()
    if failure:
        return failure
    return jsonify({"ok": True, "draft": draft_to_payload(draft)})


def parse_amount():
    data = request_data()
    try:
        return parse_float(data.get("amount"))
    except (TypeError, ValueError):
        return None


@bp.get("/food/draft")
@login_required
def food_draft():
    return jsonify({"ok": True, "draft": draft_to_payload(get_draft())})


@bp.post("/food/draft/parse")
@login_required
def food_draft_parse():
    data = request_data()
    text = normalize_text(data.get("text"))
    if not text:
        return error_response("Descreva o que você comeu.")

    draft = get_or_create_draft()
    meals = draft.meals or []
    turns = list(draft.history or [])
    if meals:
        # Follow-up: earlier requests plus the current (possibly hand-edited) state.
        history = [{"role": "user", "content": draft.raw_text or ""}]
        history.extend(turn for turn in turns if turn.get("role") == "user")
        history.append({"role": "assistant", "content": current_state_message(meals)})
    else:
        history = []

    parsed, failure = run_food_parse(text, history)
    if failure:
        db.session.rollback()
        return failure

    if meals:
        draft.history = turns + [
            {"role": "user", "content": text},
            {"role": "assistant", "content": current_state_message(parsed["meals"])},
        ]
    else:
        draft.raw_text = text
        draft.history = []
    return save_draft(draft, parsed["meals"])


@bp.post("/food/draft/items/<int:meal_index>/<int:item_index>")
@login_required
def food_draft_item_update(meal_index: int, item_index: int):
    draft = get_draft()
    if draft is None:
        return error_response("Nenhuma refeição em edição.", 404)
    amount = parse_amount()
    if amount is None:
        return error_response("Informe a nova quantidade.")
    try:
        meals = update_item_amount(draft.meals or [], meal_index, item_index, amount)
    except IndexError:
        return error_response("Item não encontrado.", 404)
    except ValueError:
        return error_response("Este item não possui uma quantidade numérica para ajustar.")
    return save_draft(draft, meals)


@bp.post("/food/draft/items/<int:meal_index>/<int:item_index>/delete")
@login_required
def food_draft_item_delete(meal_index: int, item_index: int):
    draft = get_draft()
    if draft is None:
        return error_response("Nenhuma refeição em edição.", 404)
    try:
        meals = delete_item(draft.meals or [], meal_index, item_index)
    except IndexError:
        return error_response("Item não encontrado.", 404)
    return save_draft(draft, meals)


@bp.post("/food/draft/registered/<int:food_id>")
@login_required
def food_draft_add_registered(food_id: int):
    food = RegisteredFood.query.filter_by(id=food_id, user_id=g.user.id).first_or_404()
    draft = get_or_create_draft()
    if not draft.raw_text:
        draft.raw_text = "Adicionado de alimentos registrados"
    return save_draft(draft, add_item(draft.meals or [], registered_food_item(food)))


@bp.post("/food/draft/recent")
@login_required
def food_draft_add_recent():
    data = request_data()
    meal_name = normalize_text(data.get("meal_name"))
    if not meal_name:
        return error_response("Dê um nome para esta refeição.")
    incoming = normalize_meals([{"meal_name": meal_name, "items": data.get("items") or []}])
    if not incoming:
        return error_response("Selecione ao menos um item.")

    draft = get_or_create_draft()
    if not draft.raw_text:
        draft.raw_text = "Refeição em edição"
    return save_draft(draft, merge_meals(draft.meals or [], incoming))


@bp.post("/food/draft/save")
@login_required
def food_draft_save():
    draft = get_draft()
    meals = normalize_meals(draft.meals if draft else None)
    if not meals:
        return error_response("Nenhuma refeição para salvar.")

    tz = user_tz()
    logs = store_food_logs(meals, draft.raw_text, utcnow())
    db.session.delete(draft)
    failure = commit_or_error()
    if failure:
        return failure
    return jsonify({"ok": True, "logs": [food_log_to_payload(log, tz) for log in logs]}), 201


@bp.post("/food/draft/clear")
@login_required
def food_draft_clear():
    draft = get_draft()
    if draft is not None:
        db.session.delete(draft)
        failure = commit_or_error(DELETE_FAILED_MESSAGE)
        if failure:
            return failure
    return jsonify({"ok": True, "draft": draft_to_payload(None)})


# --- dashboards -----------------------------------------------------------


def sum_for_day(column, timestamp_column, user_column, start: datetime, end: datetime):
    return (
        db.session.query(func.coalesce(func.sum(column), 0))
        .filter(user_column == g.user.id, timestamp_column >= start, timestamp_column < end)
        .scalar()
    )


@bp.get("/dashboard")
@login_required
def dashboard():
    tz = user_tz()
    profile = get_or_create_profile(g.user)
    today = local_today(tz)
    start, end = local_day_bounds(today, tz)

    latest_weights = (
        WeightMeasurement.query.filter_by(user_id=g.user.id)
        .order_by(WeightMeasurement.measured_at.desc())
        .limit(2)
        .all()
    )
    reference = WeightMeasurement.query.filter_by(user_id=g.user.id, is_reference=True).first()
    latest_g = latest_weights[0].weight_g if latest_weights else None
    previous_g = latest_weights[1].weight_g if len(latest_weights) > 1 else None
    weight = weight_change(
        latest_g,
        previous_g,
        reference.weight_g if reference else None,
        profile.weight_reference or "previous",
    )
    if latest_g is not None and profile.desired_weight_g:
        weight["to_goal_kg"] = round((latest_g - profile.desired_weight_g) / 1000, 1)
    else:
        weight["to_goal_kg"] = None

    todays_workouts = (
        Workout.query.filter(
            Workout.user_id == g.user.id,
            Workout.started_at >= start,
            Workout.started_at < end,
        )
        .order_by(Workout.started_at.desc())
        .all()
    )
    water_total = sum_for_day(WaterLog.amount_ml, WaterLog.logged_at, WaterLog.user_id, start, end)
    steps_total = sum_for_day(StepsLog.count, StepsLog.logged_at, StepsLog.user_id, start, end)
    calories_eaten = sum_for_day(FoodLog.total_calories, FoodLog.logged_at, FoodLog.user_id, start, end)

    return jsonify(
        {
            "ok": True,
            "day": today.isoformat(),
            "user": {"first_name": g.user.first_name(), "avatar_url": g.user.avatar_url},
            "weight": weight,
            "activities": [workout_to_payload(workout, tz) for workout in todays_workouts],
            "total_duration": sum(workout.duration_min or 0 for workout in todays_workouts),
            "water": {"total_ml": int(water_total), "goal_ml": water_goal_for(profile)},
            "steps": {"total": int(steps_total), "goal": current_app.config["STEPS_GOAL"]},
            "food": {"calories": int(calories_eaten), "goal": kcal_goal_for(profile)},
        }
    )


@bp.get("/calendar")
@login_required
def calendar():
    tz = user_tz()
    today = local_today(tz)
    selected_day = parse_day_arg(tz)
    month_arg = request.args.get("month")
    try:
        month_start = datetime.strptime(month_arg, "%Y-%m").date() if month_arg else selected_day.replace(day=1)
    except ValueError:
        month_start = today.replace(day=1)

    grid_start, grid_end = month_grid_bounds(month_start)
    range_start = min(grid_start, selected_day)
    range_end = max(grid_end, selected_day)
    start, end = local_range_bounds(range_start, range_end, tz)

    workouts = (
        Workout.query.filter(
            Workout.user_id == g.user.id,
            Workout.started_at >= start,
            Workout.started_at < end,
        )
        .order_by(Workout.started_at.desc())
        .all()
    )
    weights = (
        WeightMeasurement.query.filter(
            WeightMeasurement.user_id == g.user.id,
            WeightMeasurement.measured_at >= start,
            WeightMeasurement.measured_at < end,
        )
        .order_by(WeightMeasurement.measured_at.desc())
        .all()
    )

    activity_days = {local_date(workout.started_at, tz) for workout in workouts}
    weight_days = {local_date(row.measured_at, tz) for row in weights}
    selected_weight = next((row for row in weights if local_date(row.measured_at, tz) == selected_day), None)

    return jsonify(
        {
            "ok": True,
            "month": month_start.strftime("%Y-%m"),
            "selected_day": selected_day.isoformat(),
            "weeks": calendar_grid(month_start, today, selected_day, activity_days, weight_days),
            "selected": {
                "activities": [
                    workout_to_payload(workout, tz)
                    for workout in workouts
                    if local_date(workout.started_at, tz) == selected_day
                ],
                "weight": weight_to_payload(selected_weight, tz) if selected_weight else None,
            },
        }
    )


@bp.get("/stats")
@login_required
def stats():
    tz = user_tz()
    today = local_today(tz)
    days = last_n_days(today)
    start, end = local_range_bounds(days[0], days[-1], tz)

    weights = WeightMeasurement.query.filter_by(user_id=g.user.id).all()
    week_workouts = Workout.query.filter(
        Workout.user_id == g.user.id,
        Workout.started_at >= start,
        Workout.started_at < end,
    ).all()

    return jsonify(
        {
            "ok": True,
            "weight_series": weight_series(weights, tz, limit=10),
            "activity_series": activity_duration_series(week_workouts, today, tz),
            "week_calories_burned": sum(workout.calories or 0 for workout in week_workouts),
            "week_duration": sum(workout.duration_min or 0 for workout in week_workouts),
        }
    )


# --- progress photos ------------------------------------------------------


@bp.post("/progress-photos")
@login_required
def progress_photos_upload():
    urls = upload_progress_photos(g.user.id, request.files)
    if not any(urls.values()):
        current_app.logger.warning("No progress photos stored for user_id=%s", g.user.id)
        return jsonify({"ok": False, "error": "no_photos"}), 400

    photo = ProgressPhoto(user_id=g.user.id, taken_at=utcnow(), **urls)
    db.session.add(photo)
    failure = commit_or_error()
    if failure:
        return failure
    return jsonify({"ok": True, "photo": photo_to_payload(photo, user_tz())}), 201


@bp.get("/progress-photos")
@login_required
def progress_photos_list():
    tz = user_tz()
    photos = ProgressPhoto.query.filter_by(user_id=g.user.id).order_by(ProgressPhoto.taken_at.desc()).all()
    return jsonify({"ok": True, "photos": [photo_to_payload(photo, tz) for photo in photos]})


@bp.get("/progress-photos/latest")
@login_required
def progress_photos_latest():
    photo = (
        ProgressPhoto.query.filter_by(user_id=g.user.id)
        .order_by(ProgressPhoto.taken_at.desc())
        .first()
    )
    return jsonify({"ok": True, "photo": photo_to_payload(photo, user_tz()) if photo else None})


@bp.app_errorhandler(404)
def not_found(_error):
    return error_response("Registro não encontrado.", 404)


@bp.app_errorhandler(413)
def payload_too_large(_error):
    return error_response("Arquivo muito grande.", 413)


@bp.app_errorhandler(500)
def internal_error(_error):
    db.session.rollback()
    return error_response("Erro interno do servidor.", 500)
