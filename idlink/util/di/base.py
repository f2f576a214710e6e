"""Base classes for dependency injection providers."""

from typing import ClassVar, Literal

from dishka import Provider

# Components with a mock twin under tests/di:
#   oauth        provider HTTP clients (Google, Apple, Instagram)
#   persistence  session, repositories and the state/challenge stores
Component = Literal["oauth", "persistence"]


class ProviderBase(Provider):
    """Base for all idlink DI providers.

    Attributes:
        __mock_component__: Component this provider implements, or None for
            providers that are never swapped
        __is_mock__: True for the test implementation of a component
    """

    __mock_component__: ClassVar[Component | None] = None
    __is_mock__: ClassVar[bool] = False
