from datetime import datetime

from fittrack import db


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    avatar_url = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    profile = db.relationship("Profile", backref="user", uselist=False, lazy=True)

    def first_name(self):
        if self.full_name and self.full_name.strip():
            return self.full_name.split()[0]
        return "Atleta"


class Profile(db.Model):
    __tablename__ = "profiles"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), unique=True, nullable=False)

    age = db.Column(db.Integer, nullable=True)
    height_cm = db.Column(db.Integer, nullable=True)
    desired_weight_g = db.Column(db.Integer, nullable=True)
    weight_reference = db.Column(db.String(16), nullable=False, default="previous")  # previous | reference
    kcal_goal = db.Column(db.Integer, nullable=True)
    water_goal_ml = db.Column(db.Integer, nullable=True)
    time_zone = db.Column(db.String(64), nullable=True)

    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )


class Activity(db.Model):
    __tablename__ = "activities"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(50), unique=True, nullable=False)  # tennis, running
    icon = db.Column(db.String(50), nullable=True)
    color = db.Column(db.String(100), nullable=True)
    fields = db.Column(db.JSON, nullable=True)  # form field schema
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )


class Workout(db.Model):
    __tablename__ = "workouts"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    activity_id = db.Column(db.Integer, db.ForeignKey("activities.id"), nullable=False, index=True)

    duration_min = db.Column(db.Integer, nullable=True)
    calories = db.Column(db.Integer, nullable=True)
    started_at = db.Column(db.DateTime, index=True, nullable=False)
    description = db.Column(db.Text, nullable=True)
    details = db.Column(db.JSON, nullable=True)  # {"type": "aula"}

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    activity = db.relationship("Activity", backref="workouts", lazy=True)


class WeightMeasurement(db.Model):
    __tablename__ = "weight_measurements"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    weight_g = db.Column(db.Integer, nullable=False)
    measured_at = db.Column(db.DateTime, default=datetime.utcnow, index=True, nullable=False)
    # At most one reference measurement per user, kept by the reference endpoint.
    is_reference = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @property
    def weight_kg(self):
        return round(self.weight_g / 1000, 3)


class WaterLog(db.Model):
    __tablename__ = "water_logs"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    amount_ml = db.Column(db.Integer, nullable=False)
    logged_at = db.Column(db.DateTime, default=datetime.utcnow, index=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class StepsLog(db.Model):
    __tablename__ = "steps_logs"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    count = db.Column(db.Integer, nullable=False)
    logged_at = db.Column(db.DateTime, default=datetime.utcnow, index=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class FoodLog(db.Model):
    __tablename__ = "food_logs"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    meal_name = db.Column(db.String(255), nullable=False)
    raw_text = db.Column(db.Text, nullable=True)
    items = db.Column(db.JSON, nullable=False)  # [{"name", "quantity", "calories", "protein", ...}]

    # Always the rounded sum of items; rewritten together with items.
    total_calories = db.Column(db.Integer, nullable=False, default=0)
    total_protein = db.Column(db.Integer, nullable=True)
    total_carbs = db.Column(db.Integer, nullable=True)
    total_fat = db.Column(db.Integer, nullable=True)

    logged_at = db.Column(db.DateTime, default=datetime.utcnow, index=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class RegisteredFood(db.Model):
    __tablename__ = "registered_foods"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    serving_size = db.Column(db.String(255), nullable=True)  # "100g", "1 xícara"
    calories = db.Column(db.Integer, nullable=False)
    protein = db.Column(db.Integer, nullable=True)
    carbs = db.Column(db.Integer, nullable=True)
    fat = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    def reference_line(self):
        parts = [f"Porção {self.serving_size or '1 porção'}", f"Kcal {self.calories}"]
        if self.carbs is not None:
            parts.append(f"Carbs {self.carbs}")
        if self.protein is not None:
            parts.append(f"Proteínas {self.protein}")
        if self.fat is not None:
            parts.append(f"Gorduras {self.fat}")
        return f"{self.name}: " + ", ".join(parts)


class FoodDraft(db.Model):
    __tablename__ = "food_drafts"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), unique=True, nullable=False)
    raw_text = db.Column(db.Text, nullable=True)
    meals = db.Column(db.JSON, nullable=True)
    history = db.Column(db.JSON, nullable=True)  # [{"role": "user", "content": "..."}]
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )


class ProgressPhoto(db.Model):
    __tablename__ = "progress_photos"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    front_url = db.Column(db.String(500), nullable=True)
    back_url = db.Column(db.String(500), nullable=True)
    side_left_url = db.Column(db.String(500), nullable=True)
    side_right_url = db.Column(db.String(500), nullable=True)
    taken_at = db.Column(db.DateTime, default=datetime.utcnow, index=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
