"""Utility layer errors."""


class UtilError(Exception):
    """Base utility error."""

    pass


class ConfigurationError(UtilError):
    """Configuration is missing or inconsistent."""

    pass


class MissingSecretError(ConfigurationError):
    """A secret still holds its placeholder value."""

    def __init__(self, setting: str, environment: str):
        self.setting = setting
        self.environment = environment
        super().__init__(f"{setting} must be set in {environment}")
