"""Authentication use cases."""

from .initiate_login import InitiateLoginUseCase
from .link_provider import LinkProviderUseCase
from .login import LoginUseCase

__all__ = ["InitiateLoginUseCase", "LinkProviderUseCase", "LoginUseCase"]
