import os

import pytest

from squasher.envfile import load_env_file
from squasher.envfile import parse_env_file
from squasher.exceptions import EnvFileException


def _env_file(tmp_path, content):
    path = tmp_path / ".env"
    path.write_text(content)
    return path


def test_parse_env_file(tmp_path):
    path = _env_file(
        tmp_path,
        """
# database settings
DB_HOST=db.example.com
export DB_NAME=shop
DB_PASSWORD="pa ss # not a comment"
DB_USER='shop_admin'
FLYWAY_URL=jdbc:postgresql://db:5432/shop?sslmode=require
DB_SCHEMA=public  # inline comment
EMPTY=
""",
    )

    assert parse_env_file(path) == {
        "DB_HOST": "db.example.com",
        "DB_NAME": "shop",
        "DB_PASSWORD": "pa ss # not a comment",
        "DB_USER": "shop_admin",
        "FLYWAY_URL": "jdbc:postgresql://db:5432/shop?sslmode=require",
        "DB_SCHEMA": "public",
        "EMPTY": "",
    }


@pytest.mark.parametrize("line", ["DB_HOST", "1DB=x", "DB HOST=x"])
def test_parse_env_file_invalid_line(tmp_path, line):
    path = _env_file(tmp_path, f"DB_NAME=shop\n{line}\n")

    with pytest.raises(EnvFileException) as excinfo:
        parse_env_file(path)

    assert ":2:" in excinfo.value.detail


def test_load_env_file_overrides_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("DB_NAME", "old")
    path = _env_file(tmp_path, "DB_NAME=shop\nDB_USER=shop_admin\n")

    loaded = load_env_file(str(path))

    assert loaded == {"DB_NAME": "shop", "DB_USER": "shop_admin"}
    assert os.environ["DB_NAME"] == "shop"
    assert os.environ["DB_USER"] == "shop_admin"


def test_load_env_file_missing(tmp_path):
    with pytest.raises(EnvFileException):
        load_env_file(str(tmp_path / "missing.env"))
