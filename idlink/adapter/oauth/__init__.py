"""Identity provider OAuth clients."""

from .apple import AppleOAuthClient, MockAppleOAuthClient, RealAppleOAuthClient
from .google import GoogleOAuthClient, MockGoogleOAuthClient, RealGoogleOAuthClient
from .instagram import (
    InstagramOAuthClient,
    MockInstagramOAuthClient,
    RealInstagramOAuthClient,
)

__all__ = [
    "AppleOAuthClient",
    "GoogleOAuthClient",
    "InstagramOAuthClient",
    "MockAppleOAuthClient",
    "MockGoogleOAuthClient",
    "MockInstagramOAuthClient",
    "RealAppleOAuthClient",
    "RealGoogleOAuthClient",
    "RealInstagramOAuthClient",
]
