#!/usr/bin/env python3
"""Paynym Tool — payment codes and directory access from the command line.

    # Show the payment code and notification address of a mnemonic
    python -m paynym_wallet.tools.paynym_tool code "<mnemonic>"

    # Look up a nym by payment code, nymID or +nymName
    python -m paynym_wallet.tools.paynym_tool lookup <code|nym>

    # Register and claim the mnemonic's payment code
    python -m paynym_wallet.tools.paynym_tool claim "<mnemonic>"

    # Sign a directory token with the notification key
    python -m paynym_wallet.tools.paynym_tool sign "<mnemonic>" <token>

    # Drop cached directory summaries
    python -m paynym_wallet.tools.paynym_tool clear-cache

Settings come from ``PAYNYM_*`` environment variables (``PAYNYM_TESTNET=1``
switches to testnet derivation).
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from paynym_wallet.config.settings import AppConfig
from paynym_wallet.directory.models import DirectoryResult, ErrorKind
from paynym_wallet.errors.paynym_errors import PaynymError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from paynym_wallet.directory.client import DirectoryClient


def _account(config: AppConfig, words: str):
    from paynym_wallet.wallet.account import Bip47Account

    return Bip47Account.from_mnemonic(words, testnet=config.testnet, enabled=True)


def _failure(action: str, result: DirectoryResult) -> str:
    return f"{action} failed ({result.error_kind}, {result.status_code}): {result.message}"


@asynccontextmanager
async def _open_directory(config: AppConfig) -> AsyncIterator[DirectoryClient]:
    """Connect a directory client backed by the configured store and metrics."""
    from paynym_wallet.cache.client import StoreClient
    from paynym_wallet.directory.cache import DirectoryCache
    from paynym_wallet.directory.client import DirectoryClient
    from paynym_wallet.metrics.collector import DirectoryMetrics

    metrics = DirectoryMetrics() if config.metrics.enabled else None
    store = StoreClient(config.cache)
    await store.connect()
    client = DirectoryClient(
        config.directory,
        cache=DirectoryCache.from_config(store, config.directory, metrics=metrics),
        metrics=metrics,
    )
    await client.connect()
    try:
        yield client
    finally:
        await client.close()
        await store.close()


def _cmd_code(config: AppConfig, words: str) -> None:
    """Print the payment code and notification address."""
    account = _account(config, words)
    key_pair = account.get_notification_key_pair()
    print(f"Network:              {'TESTNET' if config.testnet else 'MAINNET'}")
    print(f"Payment code:         {account.get_payment_code()}")
    print(f"Notification address: {key_pair.address}")


def _cmd_lookup(config: AppConfig, nym: str) -> None:
    """Print the directory record for a nym."""

    async def _run() -> None:
        async with _open_directory(config) as client:
            result = await client.nym(nym)
            if not result.ok or result.value is None:
                print(_failure("Lookup", result))
                sys.exit(1)
            account = result.value
            print(f"nymID:     {account.nym_id}")
            print(f"nymName:   {account.nym_name}")
            print(f"Followers: {len(account.followers)}")
            print(f"Following: {len(account.following)}")
            print("Codes:")
            for code in account.codes:
                flags = ", ".join(
                    name for name, on in (("claimed", code.claimed), ("segwit", code.segwit)) if on
                )
                print(f"  {code.code}  [{flags or 'unclaimed'}]")

    asyncio.run(_run())


def _cmd_claim(config: AppConfig, words: str) -> None:
    """Register the payment code with the directory and claim it."""
    from paynym_wallet.orchestrator.claim import ClaimOrchestrator

    account = _account(config, words)

    async def _run() -> None:
        async with _open_directory(config) as client:
            orchestrator = ClaimOrchestrator(account, client)
            created = await orchestrator.register()
            if not created.ok or created.value is None:
                print(_failure("Registration", created))
                sys.exit(1)
            print(f"Nym: {created.value.nym_name} ({created.value.nym_id})")
            if created.value.claimed:
                print("Already claimed.")
                return
            result = await orchestrator.claim()
            if not result.ok:
                print(_failure("Claim", result))
                sys.exit(1)
            print("Claimed.")

    asyncio.run(_run())


def _cmd_clear_cache(config: AppConfig) -> None:
    """Drop cached directory summaries from the configured store."""

    async def _run() -> None:
        async with _open_directory(config) as client:
            removed = await client.clear_cache()
            print(f"Removed {removed} cached directory entries.")

    asyncio.run(_run())


def _cmd_sign(config: AppConfig, words: str, token: str) -> None:
    """Sign ``token`` and print the Base64 signature."""
    from paynym_wallet.bip47.signature import ClaimSignatureEngine

    account = _account(config, words)
    print(ClaimSignatureEngine(account).sign_with_wallet(token))


def main() -> None:
    """CLI entry point."""
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    config = AppConfig()
    logging.basicConfig(level=logging.DEBUG if config.debug else logging.WARNING)
    cmd = sys.argv[1].lower()
    args = sys.argv[2:]

    try:
        _dispatch(config, cmd, args)
    except PaynymError as exc:
        print(f"Error ({ErrorKind.from_error(exc)}): {exc.message}")
        sys.exit(1)


def _dispatch(config: AppConfig, cmd: str, args: list[str]) -> None:
    if cmd == "clear-cache":
        _cmd_clear_cache(config)
    elif cmd in ("code", "lookup", "claim") and not args:
        print(f"Usage: paynym_tool {cmd} <{'nym' if cmd == 'lookup' else 'mnemonic'}>")
        sys.exit(1)
    elif cmd == "code":
        _cmd_code(config, args[0])
    elif cmd == "lookup":
        _cmd_lookup(config, args[0])
    elif cmd == "claim":
        _cmd_claim(config, args[0])
    elif cmd == "sign":
        if len(args) < 2:
            print('Usage: paynym_tool sign "<mnemonic>" <token>')
            sys.exit(1)
        _cmd_sign(config, args[0], args[1])
    else:
        print(f"Unknown command: {cmd}")
        print(__doc__)
        sys.exit(1)


if __name__ == "__main__":
    main()
