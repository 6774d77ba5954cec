import os
import shutil
import tempfile
import unittest
from datetime import datetime
from pathlib import Path
from uuid import uuid4
from zoneinfo import ZoneInfo

from fittrack import create_app, db

TEST_TIME_ZONE = "America/Sao_Paulo"


def local_today():
    return datetime.now(ZoneInfo(TEST_TIME_ZONE)).date()


class AppTestCase(unittest.TestCase):
    """Fresh SQLite database per test class and a freshly registered user per test."""

    @classmethod
    def setUpClass(cls):
        cls.work_dir = Path(tempfile.mkdtemp(prefix="fittrack-test-"))
        cls.db_file = cls.work_dir / f"fittrack-{uuid4().hex}.db"
        config = {
            "TESTING": True,
            "SECRET_KEY": "test-secret",
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{cls.db_file.as_posix()}",
            "UPLOAD_FOLDER": os.fspath(cls.work_dir / "uploads"),
            "DEFAULT_TIME_ZONE": TEST_TIME_ZONE,
            "OPENAI_API_KEY": "test-key",
            "AI_FOOD_MODELS": ["model-a", "model-b"],
            "STORAGE_URL": None,
        }
        cls.app = create_app(config)

        with cls.app.app_context():
            db.drop_all()
            db.create_all()

    @classmethod
    def tearDownClass(cls):
        with cls.app.app_context():
            db.session.remove()
            db.drop_all()
            db.engine.dispose()
        shutil.rmtree(cls.work_dir, ignore_errors=True)

    def setUp(self):
        self.client = self.app.test_client()
        self.email = f"user-{uuid4().hex[:10]}@example.com"
        response = self.client.post(
            "/register",
            data={
                "full_name": "Ana Souza",
                "email": self.email,
                "password": "pass12345",
                "password_confirm": "pass12345",
            },
        )
        self.assertEqual(response.status_code, 201)
        self.user_id = response.get_json()["user"]["id"]
