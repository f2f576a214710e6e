"""Base service class for domain services."""


class Service:
    """Base class for domain services.

    Services hold the identity rules that span accounts, linked identities
    and the audit trail; they receive their ports through the constructor.
    """

    pass
