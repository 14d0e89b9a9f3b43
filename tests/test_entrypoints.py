from __future__ import annotations

import importlib
import sys

import pytest

import manage


def test_manage_main_invokes_execute_from_command_line(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    called = {}

    def _fake_execute(argv: list[str]) -> None:
        called["argv"] = argv

    monkeypatch.setattr(
        "django.core.management.execute_from_command_line",
        _fake_execute,
    )
    monkeypatch.setattr(sys, "argv", ["manage.py", "check"])

    manage.main()

    assert called["argv"] == ["manage.py", "check"]


def test_asgi_application_importable() -> None:
    module = importlib.import_module("config.asgi")
    module = importlib.reload(module)
    assert module.application is not None


def test_wsgi_application_importable() -> None:
    module = importlib.import_module("config.wsgi")
    module = importlib.reload(module)
    assert module.application is not None


def test_mypy_settings_importable(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("DJANGO_SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///mypy.sqlite3")

    module = importlib.import_module("config.mypy_settings")
    module = importlib.reload(module)

    assert module.DEBUG is False
    assert module.USE_TZ is True


def test_celery_app_registers_ndvi_task() -> None:
    from django.conf import settings

    import config
    from config.celery import app

    app.loader.import_default_modules()

    assert config.celery_app is app
    assert app.main == "vineyard_analytics"
    assert app.conf.broker_url == settings.CELERY_BROKER_URL
    assert "ndvi.tasks.run_vegetation_index_task" in app.tasks


def test_app_configs_connect_signal_receivers() -> None:
    from django.db.models.signals import post_save

    from vineyard.models import LaborLog, VineyardBlock

    assert post_save.has_listeners(LaborLog)
    assert post_save.has_listeners(VineyardBlock)
