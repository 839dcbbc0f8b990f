import os

os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["DEV_MODE"] = "true"
os.environ["REGISTRATION_ENABLED"] = "true"
os.environ["JWT_SECRET"] = "test-secret-with-at-least-32-characters"
os.environ["HASH_ROUNDS"] = "4"
os.environ["RATE_LIMIT_PER_MIN"] = "0"

from datetime import datetime, timedelta

from delivery_api.config import Settings

TEST_SECRET = os.environ["JWT_SECRET"]


def make_settings(**overrides) -> Settings:
    values = {"jwt_secret": TEST_SECRET, "hash_rounds": 4, "app_base_url": "http://app.test"}
    values.update(overrides)
    return Settings(**values)


class RecordingMailer:
    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.sent: list[tuple[str, str, str]] = []

    def send(self, to: str, subject: str, html_body: str) -> bool:
        self.sent.append((to, subject, html_body))
        return self.result


class FailingMailer:
    def send(self, to: str, subject: str, html_body: str) -> bool:
        raise ConnectionError("smtp down")


class FakeClock:
    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2026, 1, 10, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)
