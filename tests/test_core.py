"""Tests for the hasher, result mapping, pagination, configuration, health checks and migrations."""

import logging
import math
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from fastapi.testclient import TestClient
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError

from app.config import Settings
from app.database import Database
from app.errors import STATUS_BY_ERROR, ErrorKind, Result
from app.repositories.user import MAX_PAGE, clamp_limit, clamp_page, parse_user_id
from app.schemas.users import Pagination, UserData
from app.services.passwords import PasswordHasher


class TestPasswordHasher:
    def test_hash_and_verify(self):
        hasher = PasswordHasher(rounds=4)
        digest = hasher.hash("secret1")
        assert digest != "secret1"
        assert hasher.verify("secret1", digest)
        assert not hasher.verify("secret2", digest)

    def test_hashes_are_salted(self):
        hasher = PasswordHasher(rounds=4)
        assert hasher.hash("secret1") != hasher.hash("secret1")

    def test_work_factor(self):
        assert PasswordHasher().rounds == 12
        assert PasswordHasher(rounds=5).hash("secret1").startswith("$2b$05$")

    @pytest.mark.parametrize("digest", ["", None, "not-a-bcrypt-hash", "$2b$04$short"])
    def test_verify_malformed_digest(self, digest):
        assert PasswordHasher(rounds=4).verify("secret1", digest) is False


class TestResult:
    def test_every_error_kind_has_a_status(self):
        assert set(STATUS_BY_ERROR) == set(ErrorKind)

    def test_status_codes(self):
        assert Result.fail(ErrorKind.VALIDATION, "x").status_code == 400
        assert Result.fail(ErrorKind.DUPLICATE_EMAIL, "x").status_code == 409
        assert Result.fail(ErrorKind.NOT_FOUND, "x").status_code == 404
        assert Result.fail(ErrorKind.INVALID_REFERENCE, "x").status_code == 400
        assert Result.fail(ErrorKind.AUTHENTICATION_FAILURE, "x").status_code == 401
        assert Result.fail(ErrorKind.UNEXPECTED, "x").status_code == 500

    def test_ok_result(self):
        result = Result.ok("value")
        assert result.success
        with pytest.raises(ValueError):
            _ = result.status_code


class TestPagination:
    @pytest.mark.parametrize("total", [0, 1, 9, 10, 11, 99, 100, 101, 250])
    @pytest.mark.parametrize("limit", [1, 7, 10, 100])
    def test_pagination_fields(self, total, limit):
        for page in range(1, max(math.ceil(total / limit), 1) + 2):
            p = Pagination.build(page, limit, total)
            assert p.pages == math.ceil(total / limit)
            assert p.has_next == (page * limit < total)
            assert p.has_prev == (page > 1)

    def test_serialized_with_camel_case(self):
        dumped = Pagination.build(1, 10, 11).model_dump(by_alias=True)
        assert dumped == {"page": 1, "limit": 10, "total": 11, "pages": 2, "hasNext": True, "hasPrev": False}

    def test_clamping(self):
        assert clamp_limit(1000) == 100
        assert clamp_limit(0) == 1
        assert clamp_limit(-5) == 1
        assert clamp_limit(25) == 25
        assert clamp_page(0) == 1
        assert clamp_page(3) == 3
        assert clamp_page(10**18) == MAX_PAGE


class TestUserData:
    def test_user_data_has_no_password(self):
        assert "password" not in UserData.model_fields
        assert "password_hash" not in UserData.model_fields

    def test_parse_user_id(self):
        assert parse_user_id("0" * 32) == "0" * 32
        assert parse_user_id("not-an-id") is None
        assert parse_user_id("") is None


class TestSettings:
    def test_defaults_are_valid(self, settings: Settings):
        assert settings.validate() == []

    def test_invalid_port(self, settings: Settings):
        settings.PORT = "abc"
        assert any("PORT" in e for e in settings.validate())
        settings.PORT = "70000"
        assert any("PORT" in e for e in settings.validate())

    def test_invalid_rounds(self, settings: Settings):
        settings.BCRYPT_ROUNDS = 2
        assert any("BCRYPT_ROUNDS" in e for e in settings.validate())

    def test_missing_database_url(self, settings: Settings):
        settings.DATABASE_URL = ""
        assert any("DATABASE_URL" in e for e in settings.validate())

    def test_cors_origins(self, settings: Settings):
        settings.CORS_ORIGINS = "https://a.example, https://b.example"
        assert settings.cors_origins == ["https://a.example", "https://b.example"]


class TestHealthCheck:
    def test_welcome_routes(self, client: TestClient):
        assert client.get("/").json() == {"message": "Welcome to the User Accounts API"}
        assert client.get("/hello").json() == {"message": "Hello, world!"}

    def test_ping(self, client: TestClient):
        response = client.get("/ping")
        assert response.status_code == 200
        assert response.json() == {"pong": "it worked!"}

    def test_health_check(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["database"] == "connected"

    def test_security_headers(self, client: TestClient):
        response = client.get("/ping")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"

    def test_unknown_route_uses_error_envelope(self, client: TestClient):
        response = client.get("/nope")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Not Found"}

    def test_health_check_database_down(self, client: TestClient, app, monkeypatch):
        def unreachable():
            raise OperationalError("SELECT 1", {}, Exception("unable to open database file"))

        monkeypatch.setattr(app.state.database, "ping", unreachable)
        response = client.get("/health")
        assert response.status_code == 503
        assert response.json() == {"status": "unavailable", "database": "disconnected"}


def _failing_commit():
    raise OperationalError("COMMIT", {}, Exception("disk I/O error"))


class TestStorageFaults:
    """Database failures surface as 500s without leaking driver detail."""

    def test_update_storage_fault(self, client: TestClient, test_user: dict, db_session, monkeypatch, caplog):
        monkeypatch.setattr(db_session, "commit", _failing_commit)
        with caplog.at_level(logging.ERROR, logger="user_accounts"):
            response = client.put(f"/profile/{test_user['id']}", json={"name": "Renamed User"})

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Database error during update"}
        assert "disk I/O error" in caplog.text

    def test_update_storage_fault_rolls_back(self, client: TestClient, test_user: dict, db_session, monkeypatch):
        monkeypatch.setattr(db_session, "commit", _failing_commit)
        client.put(f"/profile/{test_user['id']}", json={"name": "Renamed User"})
        monkeypatch.undo()

        assert client.get(f"/profile/{test_user['id']}").json()["data"]["user"]["name"] == "Test User"

    def test_unhandled_error_is_a_bare_500(self, lenient_client: TestClient, test_user: dict, db_session, monkeypatch):
        monkeypatch.setattr(db_session, "commit", _failing_commit)
        response = lenient_client.post("/forget-password", json={"email": "test@example.com"})

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Internal server error"}
        assert "disk I/O error" not in response.text


class TestMigrations:
    def test_upgrade_creates_user_table(self, tmp_path):
        root = Path(__file__).resolve().parent.parent
        settings = Settings()
        settings.DATABASE_URL = f"sqlite:///{tmp_path / 'migrated.db'}"
        settings.DEBUG = False

        config = Config(str(root / "alembic.ini"))
        config.set_main_option("script_location", str(root / "alembic"))
        config.attributes["settings"] = settings
        command.upgrade(config, "head")

        database = Database(settings)
        try:
            inspector = inspect(database.engine)
            assert "user" in inspector.get_table_names()
            columns = {column["name"] for column in inspector.get_columns("user")}
            assert {"email", "password_hash", "reset_password_token", "created_at"} <= columns
            unique = [index for index in inspector.get_indexes("user") if index["column_names"] == ["email"]]
            assert unique and unique[0]["unique"]
        finally:
            database.dispose()
