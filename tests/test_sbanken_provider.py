import base64
from datetime import datetime
from decimal import Decimal

import pytest

from sbanken_ynab.app.bank_integration.providers import (
    AuthenticationError,
    SbankenProvider,
    TransactionFetchError,
)
from tests.helpers.fake_apis import FakeSbankenApi, make_settings, v1_transaction, v2_transaction


@pytest.mark.asyncio
async def test_authenticate_uses_discovered_token_endpoint(tmp_path, sbanken_api):
    settings = make_settings(tmp_path, sbanken_client_id="my client", sbanken_client_secret="s3cr+t")
    provider = SbankenProvider(settings, transport=sbanken_api.transport)

    token = await provider.authenticate()

    assert token.access_token == "sbanken-token"
    assert sbanken_api.paths() == [
        "/identityserver/.well-known/openid-configuration",
        "/identityserver/connect/token",
    ]

    token_request = sbanken_api.requests[1]
    expected = base64.b64encode(b"my+client:s3cr%2Bt").decode()
    assert token_request.headers["Authorization"] == f"Basic {expected}"
    assert token_request.content == b"grant_type=client_credentials"


@pytest.mark.asyncio
async def test_authenticate_rejected_credentials(settings, sbanken_api):
    sbanken_api.token_error = {"error": "invalid_client", "error_description": "Bad client credentials"}
    provider = SbankenProvider(settings, transport=sbanken_api.transport)

    with pytest.raises(AuthenticationError, match="Bad client credentials"):
        await provider.authenticate()


@pytest.mark.asyncio
async def test_authenticate_discovery_failure(settings, sbanken_api):
    sbanken_api.discovery_status = 503
    provider = SbankenProvider(settings, transport=sbanken_api.transport)

    with pytest.raises(AuthenticationError, match="Discovery failed"):
        await provider.authenticate()

    assert sbanken_api.paths() == ["/identityserver/.well-known/openid-configuration"]


@pytest.mark.asyncio
async def test_fetch_transactions_v2_archive(settings):
    api = FakeSbankenApi(transactions=[
        v2_transaction("TX-1", "OLDER", -10.0, "2023-01-01T00:00:00"),
        v2_transaction("TX-2", "NEWER", 25.5, "2023-01-03T00:00:00"),
    ])
    provider = SbankenProvider(settings, transport=api.transport)

    transactions = await provider.fetch_transactions("sbanken-token", "ACC1", length=250)

    request = api.requests[-1]
    assert request.url.host == "publicapi.sbanken.no"
    assert request.url.path == "/apibeta/api/v2/Transactions/archive/ACC1"
    assert request.url.params["length"] == "250"
    assert request.headers["Authorization"] == "Bearer sbanken-token"
    assert "customerId" not in request.headers

    assert [t.transaction_id for t in transactions] == ["TX-2", "TX-1"]
    assert transactions[0].amount == Decimal("25.5")
    assert transactions[0].accounting_date == datetime(2023, 1, 3)


@pytest.mark.asyncio
async def test_fetch_transactions_v1_sends_customer_id(tmp_path):
    settings = make_settings(tmp_path, sbanken_api_version="v1", sbanken_customer_id="01017012345")
    api = FakeSbankenApi(transactions=[v1_transaction("KIWI", -12.0, is_reservation=True)])
    provider = SbankenProvider(settings, transport=api.transport)

    transactions = await provider.fetch_transactions("sbanken-token", "ACC1", length=100)

    request = api.requests[-1]
    assert request.url.host == "api.sbanken.no"
    assert request.url.path == "/exec.bank/api/v1/Transactions/ACC1"
    assert request.url.params["length"] == "100"
    assert request.headers["customerId"] == "01017012345"
    assert transactions[0].is_reservation is True
    assert transactions[0].transaction_id is None


def test_v1_requires_customer_id(tmp_path):
    settings = make_settings(tmp_path, sbanken_api_version="v1", sbanken_customer_id=None)

    with pytest.raises(ValueError, match="customer_id"):
        SbankenProvider(settings)


@pytest.mark.asyncio
async def test_fetch_transactions_http_error(settings, sbanken_api):
    sbanken_api.transactions_status = 500
    provider = SbankenProvider(settings, transport=sbanken_api.transport)

    with pytest.raises(TransactionFetchError, match="500"):
        await provider.fetch_transactions("sbanken-token", "ACC1", length=250)


@pytest.mark.asyncio
async def test_fetch_transactions_malformed_json(settings, sbanken_api):
    sbanken_api.transactions_body = "<html>not json</html>"
    provider = SbankenProvider(settings, transport=sbanken_api.transport)

    with pytest.raises(TransactionFetchError):
        await provider.fetch_transactions("sbanken-token", "ACC1", length=250)


@pytest.mark.asyncio
async def test_fetch_transactions_missing_fields(settings):
    api = FakeSbankenApi(transactions=[{"text": "no date or amount"}])
    provider = SbankenProvider(settings, transport=api.transport)

    with pytest.raises(TransactionFetchError, match="Malformed"):
        await provider.fetch_transactions("sbanken-token", "ACC1", length=250)


@pytest.mark.asyncio
async def test_fetch_transactions_v1_error_in_body(settings, sbanken_api):
    sbanken_api.transactions_body = '{"isError": true, "errorMessage": "Account not found"}'
    provider = SbankenProvider(settings, transport=sbanken_api.transport)

    with pytest.raises(TransactionFetchError, match="Account not found"):
        await provider.fetch_transactions("sbanken-token", "ACC1", length=250)


@pytest.mark.asyncio
async def test_fetch_accounts(settings, sbanken_api):
    provider = SbankenProvider(settings, transport=sbanken_api.transport)

    accounts = await provider.fetch_accounts("sbanken-token")

    assert sbanken_api.requests[-1].url.path == "/apibeta/api/v2/Accounts"
    assert [(a.account_id, a.name) for a in accounts] == [("ACC1", "Brukskonto")]
