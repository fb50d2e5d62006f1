"""Exception hierarchy for the OpenTofu backend bootstrap.

Every failure the bootstrap can surface derives from
``BackendBootstrapError`` so the CLI can report them uniformly and exit with
status ``1``. ``ApplyDeclined`` is deliberately outside that hierarchy: it
signals an operator choice rather than a failure.

Exceptions
----------
BackendBootstrapError
ValidationError
ConfigurationError
ProvisioningError
QueryError
InitializationError
ApplyError
DescriptorError
ApplyDeclined

Examples
--------
>>> raise ValidationError("project_name is required")
"""

from __future__ import annotations


class BackendBootstrapError(Exception):
    """Base error for backend bootstrap operations.

    Parameters
    ----------
    message
        Human-readable error message describing the failure.
    """


class ValidationError(BackendBootstrapError):
    """Raised when user input is missing or invalid.

    Always raised before any remote call is attempted.

    Examples
    --------
    >>> raise ValidationError("project and environment names exceed 30 characters")
    """


class ConfigurationError(BackendBootstrapError):
    """Raised when local tooling or remote credentials are unusable."""


class ProvisioningError(BackendBootstrapError):
    """Raised when the CloudFormation deploy fails."""


class QueryError(BackendBootstrapError):
    """Raised when an expected stack output is missing or empty."""


class InitializationError(BackendBootstrapError):
    """Raised when ``tofu init`` fails against the new backend."""


class ApplyError(BackendBootstrapError):
    """Raised when a confirmed ``tofu apply`` fails."""


class DescriptorError(BackendBootstrapError):
    """Raised when ``backend-info.json`` cannot be written."""


class ApplyDeclined(Exception):
    """Signal that the operator chose not to run ``tofu apply``.

    Parameters
    ----------
    answer
        The confirmation answer that was given.
    """

    def __init__(self, answer: str) -> None:
        super().__init__(f"apply declined (answer: {answer!r})")
        self.answer = answer
