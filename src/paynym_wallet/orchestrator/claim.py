"""Claim orchestration — register, claim and follow on the Paynym directory.

Every authenticated call follows the same three steps: fetch a fresh token
for the wallet's payment code, sign it with the notification key, and send
token plus signature. Tokens rotate on each authenticated call, so one is
never reused across operations.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import TYPE_CHECKING

from paynym_wallet.bip47.signature import ClaimSignatureEngine
from paynym_wallet.errors.definitions import (
    ErrClaimInProgress,
    ErrFeatureDisabled,
    ErrNoPaymentCode,
)

if TYPE_CHECKING:
    from paynym_wallet.directory.client import DirectoryClient
    from paynym_wallet.directory.models import (
        CreatedNym,
        DirectoryResult,
        NymClaim,
        NymFollow,
        NymToken,
        NymUnfollow,
    )
    from paynym_wallet.wallet.port import PaymentCodeWallet

logger = logging.getLogger(__name__)

_CREATED = 201


class ClaimOrchestrator:
    """Drives the directory flows for one wallet.

    Usage::

        orchestrator = ClaimOrchestrator(wallet, directory)
        created = await orchestrator.register()
        if created.ok and not created.value.claimed:
            result = await orchestrator.claim()
    """

    def __init__(
        self,
        wallet: PaymentCodeWallet,
        directory: DirectoryClient,
        *,
        signer: ClaimSignatureEngine | None = None,
    ) -> None:
        self._wallet = wallet
        self._directory = directory
        self._signer = signer or ClaimSignatureEngine(wallet)
        self._claim_lock = asyncio.Lock()

    @property
    def claim_in_progress(self) -> bool:
        return self._claim_lock.locked()

    def _payment_code(self) -> str:
        if not self._wallet.is_feature_enabled():
            raise ErrFeatureDisabled
        code = self._wallet.get_payment_code()
        if not code:
            raise ErrNoPaymentCode
        return code

    async def register(self) -> DirectoryResult[CreatedNym]:
        """Create (or fetch) the wallet's directory entry.

        A freshly created entry (201) is always reported as unclaimed; for an
        existing entry (200) the server's ``claimed`` flag is kept.
        """
        result = await self._directory.create(self._payment_code())
        if result.status_code == _CREATED and result.value is not None and result.value.claimed:
            return dataclasses.replace(
                result, value=dataclasses.replace(result.value, claimed=False)
            )
        return result

    async def claim(self) -> DirectoryResult[NymToken] | DirectoryResult[NymClaim]:
        """Prove ownership of the wallet's payment code.

        Returns:
            The claim result, or the failing token result unchanged.

        Raises:
            PaynymError: ``ErrClaimInProgress`` if a claim is already running,
                ``ErrFeatureDisabled`` / ``ErrNoPaymentCode`` on precondition
                failures.
        """
        if self._claim_lock.locked():
            raise ErrClaimInProgress
        async with self._claim_lock:
            code = self._payment_code()
            token_result = await self._directory.token(code)
            if not token_result.ok or token_result.value is None:
                logger.error("Claim aborted, token request failed: %s", token_result.message)
                return token_result

            token = token_result.value.token
            signature = self._signer.sign_with_wallet(token)
            claim_result = await self._directory.claim(token, signature)
            if not claim_result.ok:
                logger.error("Claim rejected (%d): %s", claim_result.status_code, claim_result.message)
                return claim_result

            logger.info("Claimed payment code %s...", code[:12])
            await self._directory.get_cached(code, force_refresh=True)
            return claim_result

    async def is_claimed(self, code: str | None = None) -> bool:
        """Whether the nym owning ``code`` (default: this wallet's) is claimed."""
        result = await self._directory.nym(code or self._payment_code())
        return bool(result.ok and result.value is not None and result.value.claimed)

    async def follow(self, target: str) -> DirectoryResult[NymToken] | DirectoryResult[NymFollow]:
        """Follow ``target`` (nymID, nymName or payment code)."""
        token_result = await self._directory.token(self._payment_code())
        if not token_result.ok or token_result.value is None:
            logger.error("Follow aborted, token request failed: %s", token_result.message)
            return token_result
        token = token_result.value.token
        result = await self._directory.follow(token, self._signer.sign_with_wallet(token), target)
        if not result.ok:
            logger.error("Follow of %s failed: %s", target[:12], result.message)
        return result

    async def unfollow(
        self, target: str
    ) -> DirectoryResult[NymToken] | DirectoryResult[NymUnfollow]:
        """Stop following ``target``."""
        token_result = await self._directory.token(self._payment_code())
        if not token_result.ok or token_result.value is None:
            logger.error("Unfollow aborted, token request failed: %s", token_result.message)
            return token_result
        token = token_result.value.token
        result = await self._directory.unfollow(token, self._signer.sign_with_wallet(token), target)
        if not result.ok:
            logger.error("Unfollow of %s failed: %s", target[:12], result.message)
        return result

    async def follow_if_claimed(
        self, target: str
    ) -> DirectoryResult[NymToken] | DirectoryResult[NymFollow] | None:
        """Follow ``target`` only when both nyms are claimed.

        Returns:
            The follow outcome, or None when skipped.
        """
        if not self._wallet.is_feature_enabled():
            return None
        if not await self.is_claimed():
            logger.debug("Own nym not claimed, skipping follow of %s", target[:12])
            return None
        if not await self.is_claimed(target):
            logger.debug("Nym %s not claimed, skipping follow", target[:12])
            return None
        return await self.follow(target)
