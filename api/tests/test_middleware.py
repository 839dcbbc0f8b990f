import unittest

import helpers  # noqa: F401

import fakeredis
from fastapi import FastAPI
from fastapi.testclient import TestClient

from delivery_api.middleware import RateLimitMiddleware


def build_app(client) -> FastAPI:
    app = FastAPI()

    @app.post("/auth/login")
    @app.post("/login")
    @app.post("/register")
    def auth_route() -> dict:
        return {"ok": True}

    @app.get("/users/me")
    def profile() -> dict:
        return {"ok": True}

    app.add_middleware(
        RateLimitMiddleware,
        limit_per_minute=100,
        redis_url="redis://unused:6379/0",
        auth_limit_per_minute=3,
        client=client,
    )
    return app


class RateLimitTests(unittest.TestCase):
    def statuses(self, path: str, method: str = "post", times: int = 5) -> list[int]:
        client = TestClient(build_app(fakeredis.FakeRedis()))
        return [getattr(client, method)(path).status_code for _ in range(times)]

    def test_auth_prefix_uses_strict_limit(self) -> None:
        self.assertEqual(self.statuses("/auth/login"), [200, 200, 200, 429, 429])

    def test_legacy_auth_paths_use_strict_limit(self) -> None:
        for path in ("/login", "/register"):
            with self.subTest(path=path):
                self.assertEqual(self.statuses(path), [200, 200, 200, 429, 429])

    def test_legacy_paths_share_the_auth_bucket(self) -> None:
        client = TestClient(build_app(fakeredis.FakeRedis()))
        for _ in range(3):
            self.assertEqual(client.post("/auth/login").status_code, 200)
        self.assertEqual(client.post("/login").status_code, 429)
        self.assertEqual(client.get("/users/me").status_code, 200)

    def test_other_paths_use_general_limit(self) -> None:
        self.assertEqual(set(self.statuses("/users/me", method="get")), {200})

    def test_is_auth_path(self) -> None:
        for path in ("/auth/login", "/login", "/register/", "/verify-email"):
            self.assertTrue(RateLimitMiddleware.is_auth_path(path), path)
        for path in ("/users/me", "/health", "/loginx"):
            self.assertFalse(RateLimitMiddleware.is_auth_path(path), path)


if __name__ == "__main__":
    unittest.main()
