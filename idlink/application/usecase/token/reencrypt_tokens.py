"""Re-encrypt stored tokens use case."""

import logfire
from pydantic import BaseModel

from idlink.application.usecase.base import BaseUseCase
from idlink.domain.error import DecryptionError
from idlink.domain.repository import LinkedIdentityRepository
from idlink.domain.service import CryptoBox
from idlink.domain.value import LinkedIdentityId


class ReencryptTokensRequest(BaseModel):
    """Re-encryption pass options."""

    batch_size: int = 200
    dry_run: bool = False


class ReencryptTokensResponse(BaseModel):
    """Re-encryption pass counts."""

    scanned: int = 0
    reencrypted: int = 0
    unreadable: int = 0


class ReencryptTokensUseCase(
    BaseUseCase[ReencryptTokensRequest, ReencryptTokensResponse]
):
    """Use case for moving stored tokens onto the current key.

    Rewrites legacy-format envelopes and envelopes under a previous key.
    Unreadable envelopes are counted and left untouched.
    """

    def __init__(
        self,
        linked_identity_repository: LinkedIdentityRepository,
        crypto_box: CryptoBox,
    ) -> None:
        """Initialize re-encrypt tokens use case.

        Args:
            linked_identity_repository: Linked identity persistence port
            crypto_box: Token encryption
        """
        self.linked_identity_repository = linked_identity_repository
        self.crypto_box = crypto_box

    def _migrate(self, envelope: str | None) -> str | None:
        if envelope is None or not self.crypto_box.needs_reencryption(envelope):
            return envelope
        return self.crypto_box.reencrypt(envelope)

    async def execute(self, request: ReencryptTokensRequest) -> ReencryptTokensResponse:
        scanned = reencrypted = unreadable = 0
        after: LinkedIdentityId | None = None

        with logfire.span("reencrypt_tokens.execute", dry_run=request.dry_run):
            while True:
                page = await self.linked_identity_repository.find_page(
                    after, request.batch_size
                )
                if not page:
                    break
                after = page[-1].id

                for identity in page:
                    scanned += 1
                    try:
                        access = self._migrate(identity.encrypted_access_token)
                        refresh = self._migrate(identity.encrypted_refresh_token)
                    except DecryptionError:
                        unreadable += 1
                        logfire.warn(
                            "Stored token unreadable",
                            identity_id=str(identity.id),
                            provider=identity.provider.value,
                        )
                        continue

                    if (
                        access == identity.encrypted_access_token
                        and refresh == identity.encrypted_refresh_token
                    ):
                        continue

                    reencrypted += 1
                    if not request.dry_run:
                        await self.linked_identity_repository.update_tokens(
                            identity.id,
                            access,
                            refresh,
                            identity.token_expires_at,
                        )

            logfire.info(
                "Token re-encryption completed",
                scanned=scanned,
                reencrypted=reencrypted,
                unreadable=unreadable,
                dry_run=request.dry_run,
            )
            return ReencryptTokensResponse(
                scanned=scanned, reencrypted=reencrypted, unreadable=unreadable
            )
