"""Domain layer errors."""

from idlink.domain.value.types import AuthProvider, ConflictKind


class DomainError(Exception):
    """Base domain error."""

    pass


class ValidationError(DomainError):
    """Malformed PKCE or state input.

    Always recoverable: the caller restarts the authorization flow.
    """

    pass


class ConflictError(DomainError):
    """An identity or email collision prevents linking.

    Terminal for this attempt.
    """

    def __init__(self, kind: ConflictKind, provider: AuthProvider, message: str):
        self.kind = kind
        self.provider = provider
        super().__init__(message)


class DecryptionError(DomainError):
    """Ciphertext is corrupt, tampered with, or encrypted under another key."""

    pass


class PersistenceError(DomainError):
    """Storage layer failure."""

    pass


class DuplicateIdentityError(PersistenceError):
    """The (provider, provider_user_id) unique constraint was violated."""

    def __init__(self, provider: AuthProvider, provider_user_id: str):
        self.provider = provider
        self.provider_user_id = provider_user_id
        super().__init__(
            f"{provider.value} identity {provider_user_id} is already linked"
        )


class DuplicateAccountError(PersistenceError):
    """The account email unique constraint was violated."""

    def __init__(self, email: str):
        self.email = email
        super().__init__("Account email already in use")


class NotLinkedError(DomainError):
    """Raised when unlinking a provider the account does not have."""

    def __init__(self, account_id: str, provider: AuthProvider):
        self.account_id = account_id
        self.provider = provider
        super().__init__(f"Provider {provider.value} is not linked to account {account_id}")


class WouldRemoveAllAuthMethodsError(DomainError):
    """Raised when an unlink would leave an account with no way to sign in."""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(
            "Cannot unlink all authentication methods. Please set a password first."
        )


class NotFoundError(DomainError):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class ProviderNotConfiguredError(DomainError):
    """Raised when a provider has no credentials configured."""

    def __init__(self, provider: AuthProvider):
        self.provider = provider
        super().__init__(f"Provider {provider.value} not configured")
