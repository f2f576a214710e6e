"""Provider token maintenance use cases."""

from .reencrypt_tokens import ReencryptTokensUseCase
from .refresh_tokens import RefreshTokensUseCase
from .sweep_tokens import SweepTokensUseCase

__all__ = ["ReencryptTokensUseCase", "RefreshTokensUseCase", "SweepTokensUseCase"]
