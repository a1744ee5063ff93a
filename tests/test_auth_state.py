from __future__ import annotations

import httpx

from stocksim.broker.models import Credentials
from stocksim.config.credentials import (
    API_KEY_STORAGE_KEY,
    DEFAULT_PAPER_API_KEY,
    SECRET_KEY_STORAGE_KEY,
)
from stocksim.state.auth import (
    AUTH_STORAGE_KEY,
    INVALID_CREDENTIALS_MESSAGE,
    AuthState,
    AuthStatus,
)

from conftest import json_response

ACCOUNT = {"id": "a1", "cash": "1000", "portfolio_value": "1000", "last_equity": "1000"}


def _accepting(valid_key: str):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.headers["APCA-API-KEY-ID"] == valid_key:
            return json_response(ACCOUNT)
        return httpx.Response(401, text='{"message":"unauthorized"}')
    return handler


def test_login_with_valid_credentials(make_client, storage):
    client = make_client(_accepting("GOOD"))
    auth = AuthState(client, storage)
    statuses = []
    auth.statusChanged.connect(statuses.append)

    assert auth.login(Credentials("GOOD", "SECRET", paper_trading=False)) is True

    assert auth.is_authenticated
    assert auth.is_paper_trading is False
    assert auth.error is None
    assert auth.is_loading is False
    assert statuses == ["authenticating", "authenticated"]
    assert storage.load(API_KEY_STORAGE_KEY) == "GOOD"
    assert storage.load(AUTH_STORAGE_KEY) == {"is_authenticated": True, "is_paper_trading": False}


def test_login_with_invalid_credentials_clears_store(make_client, storage):
    client = make_client(_accepting("GOOD"))
    auth = AuthState(client, storage)

    assert auth.login(Credentials("BAD", "SECRET")) is False

    assert auth.status is AuthStatus.UNAUTHENTICATED
    assert auth.error == INVALID_CREDENTIALS_MESSAGE
    assert storage.load(API_KEY_STORAGE_KEY) is None
    assert storage.load(SECRET_KEY_STORAGE_KEY) is None
    assert client.credentials.api_key == DEFAULT_PAPER_API_KEY
    assert not auth.has_custom_credentials()


def test_logout_clears_credentials(make_client, storage):
    client = make_client(_accepting("GOOD"))
    auth = AuthState(client, storage)
    auth.login(Credentials("GOOD", "SECRET"))

    auth.logout()

    assert auth.status is AuthStatus.UNAUTHENTICATED
    assert auth.error is None
    assert not auth.has_custom_credentials()
    assert storage.load(AUTH_STORAGE_KEY)["is_authenticated"] is False


def test_check_auth_verifies_stored_credentials(make_client, storage):
    storage.save(API_KEY_STORAGE_KEY, "GOOD")
    storage.save(SECRET_KEY_STORAGE_KEY, "SECRET")
    auth = AuthState(make_client(_accepting("GOOD")), storage)

    assert auth.check_auth() is True
    assert auth.is_authenticated


def test_check_auth_failure_is_silent(make_client, storage):
    storage.save(AUTH_STORAGE_KEY, {"is_authenticated": True, "is_paper_trading": True})
    auth = AuthState(make_client(_accepting("GOOD")), storage)
    assert auth.is_authenticated  # restored from the previous session

    assert auth.check_auth() is False

    assert auth.status is AuthStatus.UNAUTHENTICATED
    assert auth.error is None
    assert auth.is_loading is False


def test_check_auth_transport_failure_is_silent(make_client, storage):
    def handler(request):
        raise httpx.ConnectError("offline", request=request)

    auth = AuthState(make_client(handler), storage)
    assert auth.check_auth() is False
    assert auth.error is None


def test_loading_signal_brackets_login(make_client, storage):
    auth = AuthState(make_client(_accepting("GOOD")), storage)
    loading = []
    auth.loadingChanged.connect(loading.append)

    auth.login(Credentials("GOOD", "SECRET"))

    assert loading == [True, False]
