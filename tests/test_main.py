import pytest

from sbanken_ynab import main as main_module
from sbanken_ynab.config import Settings
from sbanken_ynab.app.bank_integration.providers import AuthenticationError
from tests.helpers.fake_apis import v2_transaction


@pytest.fixture(autouse=True)
def no_logging_setup(monkeypatch):
    monkeypatch.setattr(main_module, "configure_logging", lambda *args, **kwargs: None)


def test_main_returns_zero_on_success(settings, monkeypatch):
    calls = []

    async def fake_run_sync(s):
        calls.append(s)
        return {'status': 'success'}

    monkeypatch.setattr(main_module, "run_sync", fake_run_sync)

    assert main_module.main(settings) == 0
    assert calls == [settings]


def test_main_returns_one_and_logs_on_failure(settings, monkeypatch, caplog):
    caplog.set_level("ERROR", logger="sbanken_ynab")

    async def fake_run_sync(s):
        raise AuthenticationError("Token request failed: invalid_client")

    monkeypatch.setattr(main_module, "run_sync", fake_run_sync)

    assert main_module.main(settings) == 1
    assert "Sync failed: Token request failed: invalid_client" in caplog.text


def test_run_sync_end_to_end(settings, monkeypatch, sbanken_api, ynab_api):
    sbanken_api.transactions = [v2_transaction("TX-1", "REMA 1000", -89.9)]

    real_provider = main_module.SbankenProvider
    real_client = main_module.YNABClient
    monkeypatch.setattr(main_module, "SbankenProvider", lambda s: real_provider(s, transport=sbanken_api.transport))
    monkeypatch.setattr(main_module, "YNABClient", lambda s: real_client(s, transport=ynab_api.transport))

    assert main_module.main(settings) == 0
    assert main_module.main(settings) == 0

    assert ynab_api.create_attempts == 1
    assert settings.database_path.exists()


def test_main_returns_one_on_missing_configuration(monkeypatch, caplog):
    caplog.set_level("ERROR", logger="sbanken_ynab")
    for name in ("SBANKEN_CLIENT_ID", "SBANKEN_CLIENT_SECRET", "SBANKEN_ACCOUNT_ID",
                 "YNAB_ACCESS_TOKEN", "YNAB_BUDGET_NAME", "YNAB_ACCOUNT_NAME"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(main_module, "get_settings", lambda: Settings(_env_file=None))

    assert main_module.main() == 1
    assert "Invalid configuration" in caplog.text
    assert "sbanken_client_id" in caplog.text
