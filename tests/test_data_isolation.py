import os
import tempfile
import unittest
from datetime import datetime
from pathlib import Path
from uuid import uuid4

from werkzeug.security import generate_password_hash

from fittrack import create_app, db
from fittrack.activity_catalog import seed_activities_if_needed
from fittrack.models import (
    Activity,
    FoodDraft,
    FoodLog,
    Profile,
    ProgressPhoto,
    RegisteredFood,
    User,
    WaterLog,
    WeightMeasurement,
    Workout,
)


class DataIsolationTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.db_file = Path(tempfile.gettempdir()) / f"fittrack-isolation-{uuid4().hex}.db"
        cls.app = create_app(
            {
                "TESTING": True,
                "SECRET_KEY": "test-secret",
                "SQLALCHEMY_DATABASE_URI": f"sqlite:///{cls.db_file.as_posix()}",
                "UPLOAD_FOLDER": os.path.join(tempfile.gettempdir(), "fittrack-isolation-uploads"),
            }
        )

        with cls.app.app_context():
            db.drop_all()
            db.create_all()
            seed_activities_if_needed(force=True)

            user1 = User(
                full_name="User One",
                email="user1@example.com",
                password_hash=generate_password_hash("pass12345"),
            )
            user2 = User(
                full_name="User Two",
                email="user2@example.com",
                password_hash=generate_password_hash("pass12345"),
            )
            db.session.add_all([user1, user2])
            db.session.flush()
            db.session.add_all([Profile(user_id=user1.id, time_zone="UTC"), Profile(user_id=user2.id, time_zone="UTC")])

            running = Activity.query.filter_by(slug="running").first()
            when = datetime(2026, 2, 18, 12, 0)

            db.session.add(
                FoodLog(
                    user_id=user1.id,
                    meal_name="U1_SECRET_MEAL",
                    items=[{"name": "U1_ITEM", "quantity": "1 unidade", "calories": 420}],
                    total_calories=420,
                    logged_at=when,
                )
            )
            food_u2 = FoodLog(
                user_id=user2.id,
                meal_name="U2_SECRET_MEAL",
                items=[{"name": "U2_ITEM", "quantity": "1 unidade", "calories": 777}],
                total_calories=777,
                logged_at=when,
            )
            workout_u2 = Workout(
                user_id=user2.id,
                activity_id=running.id,
                duration_min=45,
                started_at=when,
                description="U2_SECRET_RUN",
            )
            weight_u2 = WeightMeasurement(user_id=user2.id, weight_g=99000, measured_at=when)
            water_u2 = WaterLog(user_id=user2.id, amount_ml=300, logged_at=when)
            food_registered_u2 = RegisteredFood(user_id=user2.id, name="U2_PRIVATE_FOOD", calories=50)
            db.session.add_all([food_u2, workout_u2, weight_u2, water_u2, food_registered_u2])
            db.session.add_all(
                [
                    FoodDraft(user_id=user2.id, raw_text="U2_DRAFT", meals=[], history=[]),
                    ProgressPhoto(user_id=user2.id, front_url="https://cdn.example/u2-front.jpg", taken_at=when),
                ]
            )
            db.session.commit()

            cls.user2_food_id = food_u2.id
            cls.user2_workout_id = workout_u2.id
            cls.user2_weight_id = weight_u2.id
            cls.user2_water_id = water_u2.id
            cls.user2_registered_food_id = food_registered_u2.id

    @classmethod
    def tearDownClass(cls):
        with cls.app.app_context():
            db.session.remove()
            db.drop_all()
            db.engine.dispose()
        if cls.db_file.exists():
            try:
                cls.db_file.unlink()
            except PermissionError:
                pass

    def setUp(self):
        self.client = self.app.test_client()
        response = self.client.post(
            "/login",
            data={"email": "user1@example.com", "password": "pass12345"},
        )
        self.assertEqual(response.status_code, 200)

    def test_user_cannot_delete_another_users_records(self):
        for path in (
            f"/food/{self.user2_food_id}/delete",
            f"/food/{self.user2_food_id}/items/0/delete",
            f"/workouts/{self.user2_workout_id}/delete",
            f"/weight/{self.user2_weight_id}/delete",
            f"/water/{self.user2_water_id}/delete",
            f"/foods/registered/{self.user2_registered_food_id}/delete",
        ):
            response = self.client.post(path)
            self.assertEqual(response.status_code, 404, path)

    def test_user_cannot_mark_another_users_weight_as_reference(self):
        response = self.client.post(f"/weight/{self.user2_weight_id}/reference")
        self.assertEqual(response.status_code, 404)

    def test_user_cannot_add_another_users_registered_food_to_draft(self):
        response = self.client.post(f"/food/draft/registered/{self.user2_registered_food_id}")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(self.client.get("/food/draft").get_json()["draft"]["raw_text"], None)

    def test_food_day_only_shows_current_users_logs(self):
        body = self.client.get("/food?day=2026-02-18").get_data(as_text=True)
        self.assertIn("U1_SECRET_MEAL", body)
        self.assertNotIn("U2_SECRET_MEAL", body)

    def test_recent_items_are_user_scoped(self):
        body = self.client.get("/food/recent?limit=200").get_data(as_text=True)
        self.assertNotIn("U2_ITEM", body)

    def test_lists_do_not_expose_other_users_history(self):
        for path in ("/workouts?day=2026-02-18", "/weight", "/water", "/foods/registered", "/progress-photos", "/calendar?month=2026-02&day=2026-02-18"):
            body = self.client.get(path).get_data(as_text=True)
            self.assertNotIn("U2_", body, path)
            self.assertNotIn("99.0", body, path)


if __name__ == "__main__":
    unittest.main()
