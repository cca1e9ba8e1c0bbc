"""
Onboarding errors.

Invalid answers are not errors: they are reported in-band as a
ValidationOutcome and a re-asked question.
"""


class OnboardingError(Exception):
    """Base class for all onboarding errors."""


class ConfigError(OnboardingError, ValueError):
    """Field configuration is malformed."""


class ConfigurationMissing(OnboardingError):
    """No fields were configured before starting a session."""

    def __init__(self, message: str = "No fields configured. Please call configure_fields() first."):
        super().__init__(message)


class NoActiveSession(OnboardingError):
    """The operation needs a session that does not exist."""

    def __init__(self, message: str = "No active session. Please start a session first."):
        super().__init__(message)


class ProviderError(OnboardingError):
    """The generative provider call failed (transport, auth, quota, ...)."""

    def __init__(self, message: str, provider: str = ""):
        super().__init__(message)
        self.provider = provider
