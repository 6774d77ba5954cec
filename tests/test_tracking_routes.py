import io
import unittest
from unittest.mock import patch

import httpx

from support import AppTestCase, local_today


class AuthTestCase(AppTestCase):
    def test_endpoints_require_login(self):
        anonymous = self.app.test_client()
        for path in ("/dashboard", "/me", "/food", "/weight", "/calendar"):
            response = anonymous.get(path)
            self.assertEqual(response.status_code, 401, path)
            self.assertFalse(response.get_json()["ok"])

    def test_login_logout_roundtrip(self):
        self.assertEqual(self.client.post("/logout").status_code, 200)
        self.assertEqual(self.client.get("/me").status_code, 401)

        bad = self.client.post("/login", data={"email": self.email, "password": "wrong-pass"})
        self.assertEqual(bad.status_code, 401)

        response = self.client.post("/login", data={"email": self.email.upper(), "password": "pass12345"})
        self.assertEqual(response.status_code, 200)
        me = self.client.get("/me").get_json()
        self.assertEqual(me["user"]["first_name"], "Ana")
        self.assertEqual(me["profile"]["time_zone"], "America/Sao_Paulo")

    def test_duplicate_registration_is_rejected(self):
        response = self.app.test_client().post(
            "/register",
            data={"full_name": "Outra", "email": self.email, "password": "pass12345", "password_confirm": "pass12345"},
        )
        self.assertEqual(response.status_code, 409)

    def test_profile_update_and_validation(self):
        response = self.client.post(
            "/profile",
            json={"kcal_goal": 1800, "desired_weight_kg": "72,5", "weight_reference": "reference"},
        )
        self.assertEqual(response.status_code, 200)
        profile = response.get_json()["profile"]
        self.assertEqual(profile["kcal_goal"], 1800)
        self.assertEqual(profile["desired_weight_kg"], 72.5)
        self.assertEqual(profile["weight_reference"], "reference")

        self.assertEqual(self.client.post("/profile", json={"time_zone": "Marte/Base"}).status_code, 400)
        self.assertEqual(self.client.post("/profile", json={"weight_reference": "first"}).status_code, 400)
        self.assertEqual(self.client.post("/profile", json={"age": "abc"}).status_code, 400)


class WeightTestCase(AppTestCase):
    def _log(self, kg, when):
        response = self.client.post("/weight", data={"weight": kg, "date": when})
        self.assertEqual(response.status_code, 201)
        return response.get_json()["measurement"]["id"]

    def test_only_one_reference_measurement(self):
        first = self._log("82", "2026-01-01T08:00")
        second = self._log("80.5", "2026-01-10T08:00")

        self.client.post(f"/weight/{first}/reference")
        self.client.post(f"/weight/{second}/reference")

        measurements = self.client.get("/weight").get_json()["measurements"]
        flags = {row["id"]: row["is_reference"] for row in measurements}
        self.assertEqual(flags, {first: False, second: True})

    def test_dashboard_weight_change_follows_profile_mode(self):
        reference = self._log("82", "2026-01-01T08:00")
        self._log("80.5", "2026-01-10T08:00")
        self._log("79.9", "2026-01-12T08:00")
        self.client.post(f"/weight/{reference}/reference")

        weight = self.client.get("/dashboard").get_json()["weight"]
        self.assertEqual(weight["latest_kg"], 79.9)
        self.assertEqual(weight["baseline"], "previous")
        self.assertEqual(weight["diff_kg"], -0.6)

        self.client.post("/profile", json={"weight_reference": "reference", "desired_weight_kg": 75})
        weight = self.client.get("/dashboard").get_json()["weight"]
        self.assertEqual(weight["baseline"], "reference")
        self.assertEqual(weight["diff_kg"], -2.1)
        self.assertEqual(weight["to_goal_kg"], 4.9)

    def test_invalid_weight_and_delete(self):
        self.assertEqual(self.client.post("/weight", data={"weight": "0"}).status_code, 400)
        self.assertEqual(self.client.post("/weight", data={"weight": "pesado"}).status_code, 400)
        self.assertEqual(self.client.post("/weight", data={"weight": "inf"}).status_code, 400)

        measurement_id = self._log("70", "2026-02-01T07:30")
        self.assertEqual(self.client.post(f"/weight/{measurement_id}/delete").status_code, 200)
        self.assertEqual(self.client.get("/weight").get_json()["measurements"], [])


class WorkoutTestCase(AppTestCase):
    def _tennis_id(self):
        activities = self.client.get("/activities").get_json()["activities"]
        self.assertEqual({row["slug"] for row in activities}, {"tennis", "swimming", "running"})
        return next(row["id"] for row in activities if row["slug"] == "tennis")

    def test_workout_keeps_extra_fields_and_logs_weight(self):
        today = local_today().isoformat()
        response = self.client.post(
            "/workouts",
            json={
                "activityId": self._tennis_id(),
                "duration": "60",
                "calories": "450",
                "startedAt": f"{today}T10:00",
                "notes": "Saque melhorando",
                "type": "aula",
                "weight": "78,4",
            },
        )
        self.assertEqual(response.status_code, 201)
        workout = response.get_json()["workout"]
        self.assertEqual(workout["details"], {"type": "aula"})
        self.assertEqual(workout["activity_slug"], "tennis")
        self.assertEqual(workout["description"], "Saque melhorando")

        weights = self.client.get("/weight").get_json()["measurements"]
        self.assertEqual([row["weight_kg"] for row in weights], [78.4])

        listing = self.client.get(f"/workouts?day={today}").get_json()
        self.assertEqual(listing["total_duration"], 60)

        dashboard = self.client.get("/dashboard").get_json()
        self.assertEqual(len(dashboard["activities"]), 1)
        self.assertEqual(dashboard["total_duration"], 60)

        stats = self.client.get("/stats").get_json()
        self.assertEqual(stats["activity_series"][-1]["duration"], 60)
        self.assertEqual(stats["week_calories_burned"], 450)
        self.assertEqual(stats["weight_series"][-1]["weight"], 78.4)

        calendar = self.client.get(f"/calendar?month={today[:7]}&day={today}").get_json()
        self.assertTrue(all(len(week) == 7 for week in calendar["weeks"]))
        marked = [day for week in calendar["weeks"] for day in week if day["date"] == today]
        self.assertTrue(marked[0]["has_activity"])
        self.assertTrue(marked[0]["has_weight"])
        self.assertTrue(marked[0]["is_selected"])
        self.assertEqual(len(calendar["selected"]["activities"]), 1)

        self.assertEqual(self.client.post(f"/workouts/{workout['id']}/delete").status_code, 200)
        self.assertEqual(self.client.get(f"/workouts?day={today}").get_json()["workouts"], [])

    def test_workout_requires_known_activity(self):
        response = self.client.post("/workouts", json={"activityId": 999, "duration": "30"})
        self.assertEqual(response.status_code, 400)

    def test_calendar_returns_selected_day_details(self):
        activities = self.client.get("/activities").get_json()["activities"]
        running_id = next(row["id"] for row in activities if row["slug"] == "running")
        self.client.post(
            "/workouts",
            json={"activityId": running_id, "duration": "40", "calories": "380", "startedAt": "2026-03-10T18:30"},
        )
        self.client.post("/weight", data={"weight": "70.2", "date": "2026-03-10T07:00"})

        calendar = self.client.get("/calendar?month=2026-03&day=2026-03-10").get_json()
        self.assertEqual(calendar["month"], "2026-03")
        self.assertEqual(calendar["weeks"][0][0]["date"], "2026-03-01")
        selected = calendar["selected"]
        self.assertEqual([row["activity_slug"] for row in selected["activities"]], ["running"])
        self.assertEqual(selected["activities"][0]["duration_min"], 40)
        self.assertEqual(selected["activities"][0]["started_at"], "2026-03-10T18:30:00-03:00")
        self.assertEqual(selected["weight"]["weight_kg"], 70.2)

        other_day = self.client.get("/calendar?month=2026-03&day=2026-03-11").get_json()["selected"]
        self.assertEqual(other_day["activities"], [])
        self.assertIsNone(other_day["weight"])


class WaterAndStepsTestCase(AppTestCase):
    def test_water_totals_and_weekly_stats(self):
        today = local_today().isoformat()
        self.assertEqual(self.client.post("/water", data={"amount": "250", "date": today, "time": "08:00"}).status_code, 201)
        self.assertEqual(self.client.post("/water", data={"amount": "500"}).status_code, 201)
        self.assertEqual(self.client.post("/water", data={"amount": "-1"}).status_code, 400)

        water = self.client.get("/water").get_json()
        self.assertEqual(water["today_total_ml"], 750)
        self.assertEqual(water["goal_ml"], 2000)

        stats = self.client.get("/water/stats").get_json()["stats"]
        self.assertEqual(stats["daily_stats"][-1]["consumed"], 750)
        self.assertEqual(stats["week_total_consumed"], 750)

        log_id = water["logs"][0]["id"]
        self.assertEqual(self.client.post(f"/water/{log_id}/delete").status_code, 200)
        self.assertEqual(len(self.client.get("/water").get_json()["logs"]), 1)

    def test_steps_totals(self):
        self.client.post("/steps", data={"count": "3000"})
        self.client.post("/steps", data={"count": "4500"})

        steps = self.client.get("/steps").get_json()
        self.assertEqual(steps["today_total"], 7500)
        self.assertEqual(steps["goal"], 10000)
        self.assertEqual(self.client.get("/dashboard").get_json()["steps"]["total"], 7500)

        self.assertEqual(self.client.post(f"/steps/{steps['logs'][0]['id']}/delete").status_code, 200)
        self.assertIn(self.client.get("/steps").get_json()["today_total"], (3000, 4500))


class ProgressPhotoTestCase(AppTestCase):
    def test_failed_remote_upload_is_skipped(self):
        self.app.config["STORAGE_URL"] = "https://storage.example.test"
        self.addCleanup(self.app.config.__setitem__, "STORAGE_URL", None)
        request = httpx.Request("POST", "https://storage.example.test")

        with patch("fittrack.storage.httpx.post", side_effect=httpx.ConnectError("offline", request=request)) as post:
            with self.assertLogs(self.app.logger, level="ERROR"):
                response = self.client.post(
                    "/progress-photos",
                    data={"front": (io.BytesIO(b"fake-jpeg-bytes"), "frente.jpg")},
                    content_type="multipart/form-data",
                )

        self.assertEqual(post.call_count, 1)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"], "no_photos")
        self.assertIsNone(self.client.get("/progress-photos/latest").get_json()["photo"])

    def test_remote_upload_returns_public_url(self):
        self.app.config["STORAGE_URL"] = "https://storage.example.test"
        self.addCleanup(self.app.config.__setitem__, "STORAGE_URL", None)

        with patch("fittrack.storage.httpx.post") as post:
            response = self.client.post(
                "/progress-photos",
                data={"sideLeft": (io.BytesIO(b"fake-png"), "lado.png")},
                content_type="multipart/form-data",
            )

        self.assertEqual(response.status_code, 201)
        url = response.get_json()["photo"]["side_left_url"]
        self.assertTrue(url.startswith(f"https://storage.example.test/storage/v1/object/public/progress-photos/{self.user_id}/"))
        self.assertTrue(url.endswith("-side-left.png"))
        self.assertIn("/storage/v1/object/progress-photos/", post.call_args.args[0])

    def test_upload_without_files_is_rejected(self):
        response = self.client.post("/progress-photos", data={}, content_type="multipart/form-data")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()["error"], "no_photos")

    def test_partial_upload_is_stored_locally(self):
        response = self.client.post(
            "/progress-photos",
            data={
                "front": (io.BytesIO(b"fake-jpeg-bytes"), "frente.jpg"),
                "back": (io.BytesIO(b"not an image"), "notes.txt"),
            },
            content_type="multipart/form-data",
        )
        self.assertEqual(response.status_code, 201)
        photo = response.get_json()["photo"]
        self.assertTrue(photo["front_url"].startswith("/static/uploads/"))
        self.assertIsNone(photo["back_url"])

        latest = self.client.get("/progress-photos/latest").get_json()["photo"]
        self.assertEqual(latest["id"], photo["id"])
        self.assertEqual(len(self.client.get("/progress-photos").get_json()["photos"]), 1)


if __name__ == "__main__":
    unittest.main()
