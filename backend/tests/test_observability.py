"""Tests ensuring observability wiring is safe by default."""
from __future__ import annotations

import importlib


def test_app_import_succeeds_when_opik_is_disabled(monkeypatch) -> None:
    monkeypatch.setenv("OPIK_ENABLED", "false")
    monkeypatch.delenv("OPIK_API_KEY", raising=False)

    import journalmate.core.config as core_config
    import journalmate.observability.client as client_module
    import journalmate.main as main_module

    importlib.reload(core_config)
    importlib.reload(client_module)
    reloaded_app = importlib.reload(main_module)

    assert hasattr(reloaded_app, "app")
    assert client_module.get_opik_client() is None


def test_opik_without_api_key_stays_disabled(monkeypatch) -> None:
    from journalmate.observability import client as client_module

    monkeypatch.setattr(client_module.settings, "opik_enabled", True)
    monkeypatch.setattr(client_module.settings, "opik_api_key", None)
    client_module.reset_opik()
    try:
        assert client_module.init_opik() is None
    finally:
        client_module.reset_opik()
