"""Shared test fixtures for the paynym-wallet test suite."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from paynym_wallet.bip47.payment_code import decode_payment_code
from paynym_wallet.bip47.signature import verify_message
from paynym_wallet.cache.memory import MemoryStore
from paynym_wallet.config.settings import DirectoryConfig
from paynym_wallet.directory.client import DirectoryClient, RetryPolicy
from paynym_wallet.wallet.account import Bip47Account
from paynym_wallet.wallet.port import NotificationTransaction

from vectors import ALICE_SEED, BOB_SEED, TEST_BASE_URL


# ---------------------------------------------------------------------------
# Wallet double
# ---------------------------------------------------------------------------


class FakeWallet(Bip47Account):
    """Bip47Account with scripted notification-transaction behaviour."""

    def __init__(self, seed: bytes, *, enabled: bool = True) -> None:
        super().__init__(seed, enabled=enabled)
        self.notifications: dict[str, NotificationTransaction] = {}
        self.next_notification: NotificationTransaction | None = NotificationTransaction(
            txid="ab" * 32, raw_hex="0100"
        )
        self.broadcast_error: Exception | None = None
        self.broadcasted: list[NotificationTransaction] = []
        self.synced: list[str] = []
        self.created_for: list[str] = []

    def get_notification_transaction(self, code: str) -> NotificationTransaction | None:
        return self.notifications.get(code)

    async def sync_receiver_addresses(self, code: str) -> None:
        self.synced.append(code)

    async def create_notification_transaction(self, code: str) -> NotificationTransaction | None:
        self.created_for.append(code)
        return self.next_notification

    async def broadcast_transaction(self, tx: NotificationTransaction) -> None:
        if self.broadcast_error is not None:
            raise self.broadcast_error
        self.broadcasted.append(tx)


@pytest.fixture
def alice_wallet() -> FakeWallet:
    return FakeWallet(ALICE_SEED)


@pytest.fixture
def bob_wallet() -> FakeWallet:
    return FakeWallet(BOB_SEED)


@pytest.fixture
async def memory_store():
    store = MemoryStore()
    await store.connect()
    yield store
    await store.close()


# ---------------------------------------------------------------------------
# Directory double
# ---------------------------------------------------------------------------


class DirectoryStub:
    """In-process Paynym directory served through ``httpx.MockTransport``.

    Accounts are registered with :meth:`add_nym`; every request is recorded
    in ``calls`` as ``(path, body, headers)``.
    """

    def __init__(self) -> None:
        self.accounts: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, dict[str, Any], httpx.Headers]] = []
        self.tokens: dict[str, str] = {}
        self.follows: list[tuple[str, str]] = []
        self.claimed_codes: list[str] = []
        self._counter = 0

    def add_nym(
        self,
        nym_id: str,
        codes: list[tuple[str, bool]],
        *,
        following: list[str] | None = None,
        followers: list[str] | None = None,
        include_following: bool = True,
    ) -> dict[str, Any]:
        account: dict[str, Any] = {
            "nymID": nym_id,
            "nymName": f"+{nym_id}",
            "codes": [{"code": c, "claimed": claimed, "segwit": False} for c, claimed in codes],
            "followers": [{"nymId": n} for n in followers or []],
        }
        if include_following:
            account["following"] = [{"nymId": n} for n in following or []]
        self.accounts[nym_id] = account
        for code, _ in codes:
            self.accounts[code] = account
        return account

    def _code_for_token(self, token: str) -> str | None:
        for code, issued in self.tokens.items():
            if issued == token:
                return code
        return None

    def _issue_token(self, code: str) -> str:
        self._counter += 1
        token = f"tok{self._counter:04d}-{code[-6:]}"
        self.tokens[code] = token
        return token

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api/v1")
        body = json.loads(request.content) if request.content else {}
        self.calls.append((path, body, request.headers))

        if path == "/create":
            code = body["code"]
            if code in self.accounts:
                account = self.accounts[code]
                claimed = account["codes"][0]["claimed"]
                return httpx.Response(200, json={
                    "claimed": claimed, "nymID": account["nymID"],
                    "nymName": account["nymName"], "segwit": False,
                    "token": self._issue_token(code),
                })
            account = self.add_nym(f"nym{len(self.accounts)}", [(code, False)])
            return httpx.Response(201, json={
                "claimed": False, "nymID": account["nymID"],
                "nymName": account["nymName"], "segwit": False,
                "token": self._issue_token(code),
            })

        if path == "/token":
            if body.get("code") not in self.accounts:
                return httpx.Response(404, json={"message": "code not found"})
            return httpx.Response(200, json={"token": self._issue_token(body["code"])})

        if path == "/nym":
            account = self.accounts.get(body.get("nym", ""))
            if account is None:
                return httpx.Response(404, json={"message": "nym not found"})
            return httpx.Response(200, json=account)

        code = self._code_for_token(request.headers.get("auth-token", ""))
        if code is None:
            return httpx.Response(401, json={"message": "bad token"})
        token = request.headers["auth-token"]
        address = decode_payment_code(code).notification_address()
        if not verify_message(token, body.get("signature", ""), address):
            return httpx.Response(401, json={"message": "bad signature"})

        if path == "/claim":
            self.accounts[code]["codes"][0]["claimed"] = True
            self.claimed_codes.append(code)
            return httpx.Response(200, json={"claimed": code, "token": self._issue_token(code)})

        if path == "/follow":
            if body["target"] not in self.accounts:
                return httpx.Response(404, json={"message": "target not found"})
            self.follows.append((code, body["target"]))
            return httpx.Response(200, json={
                "follower": self.accounts[code]["nymID"],
                "following": self.accounts[body["target"]]["nymID"],
                "token": self._issue_token(code),
            })

        if path == "/unfollow":
            pair = (code, body["target"])
            if pair not in self.follows:
                return httpx.Response(400, json={"message": "not following"})
            self.follows.remove(pair)
            return httpx.Response(200, json={
                "follower": self.accounts[code]["nymID"],
                "unfollowing": self.accounts[body["target"]]["nymID"],
                "token": self._issue_token(code),
            })

        return httpx.Response(404, json={"message": "no such endpoint"})

    def paths(self) -> list[str]:
        return [path for path, _, _ in self.calls]


@pytest.fixture
def directory_stub() -> DirectoryStub:
    return DirectoryStub()


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def make_directory(sleeps):
    """Factory building a connected DirectoryClient over a mock handler."""
    def _make(handler, **kwargs) -> DirectoryClient:
        async def fake_sleep(seconds: float) -> None:
            sleeps.append(seconds)

        kwargs.setdefault("retry", RetryPolicy())
        client = DirectoryClient(
            DirectoryConfig(base_url=TEST_BASE_URL), sleep=fake_sleep, **kwargs
        )
        client._client = httpx.AsyncClient(
            transport=httpx.MockTransport(handler), base_url=TEST_BASE_URL
        )
        return client

    return _make
