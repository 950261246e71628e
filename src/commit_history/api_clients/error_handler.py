"""Provider Error Handler for the Commit History API client.

Provides classification of transport failures and provider error responses
into a typed exception hierarchy, the retryability decision used by the retry
policy, and a user guidance system for errors surfaced on the console.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, cast

import httpx

logger = logging.getLogger(__name__)

DEFAULT_THROTTLING_CODES = ("ThrottlingException",)

AUTH_ERROR_CODES = {
    "AccessDeniedException",
    "ExpiredTokenException",
    "InvalidSignatureException",
    "MissingAuthenticationTokenException",
    "UnrecognizedClientException",
}


@dataclass
class UserGuidance:
    """User guidance information for provider errors."""

    error_type: str
    troubleshooting_steps: List[str]
    contact_info: Optional[str] = None
    additional_notes: List[str] = field(default_factory=list)

    def format_for_console(self) -> str:
        """Format guidance for rich console output."""
        content = []
        content.append(f"[bold red]Error Type:[/bold red] {self.error_type}")
        content.append("")
        content.append("[bold yellow]Troubleshooting Steps:[/bold yellow]")

        for i, step in enumerate(self.troubleshooting_steps, 1):
            content.append(f"{i}. {step}")

        if self.additional_notes:
            content.append("")
            content.append("[bold blue]Additional Notes:[/bold blue]")
            for note in self.additional_notes:
                content.append(f"• {note}")

        if self.contact_info:
            content.append("")
            content.append(f"[bold green]Support:[/bold green] {self.contact_info}")

        return "\n".join(content)


class ProviderError(Exception):
    """Base exception for errors returned by or while reaching the provider."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.status_code = status_code
        self.is_retryable: bool = False


class ThrottlingError(ProviderError):
    """Exception raised when the provider signals a rate limit was exceeded."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, error_code=error_code, status_code=status_code)
        self.is_retryable = True


class ProviderAuthenticationError(ProviderError):
    """Exception raised when credentials are missing, invalid or insufficient."""

    pass


class ResourceNotFoundError(ProviderError):
    """Exception raised when a repository, branch or commit does not exist."""

    pass


class ProviderConnectionError(ProviderError):
    """Exception raised for connection-related transport failures."""

    pass


class ProviderTimeoutError(ProviderError):
    """Exception raised when a provider request times out."""

    pass


class ProviderResponseError(ProviderError):
    """Exception raised when a provider response cannot be interpreted."""

    pass


class ProviderConfigurationError(ProviderError):
    """Exception raised when the AWS region or profile cannot be resolved."""

    pass


def parse_error_code(raw: Optional[str]) -> Optional[str]:
    """Extract the bare error code from a provider ``__type`` value.

    ``com.amazonaws.codecommit#ThrottlingException`` and
    ``ThrottlingException:http://internal.amazon.com/`` both yield
    ``ThrottlingException``.
    """
    if not raw:
        return None
    code = raw.split("#")[-1].split(":")[0].strip()
    return code or None


class UserGuidanceProvider:
    """Provides user guidance for different provider error scenarios."""

    def __init__(self):
        self._guidance_mapping = {
            ThrottlingError: self._get_throttling_guidance,
            ProviderAuthenticationError: self._get_authentication_guidance,
            ResourceNotFoundError: self._get_not_found_guidance,
            ProviderConnectionError: self._get_connection_error_guidance,
            ProviderTimeoutError: self._get_timeout_guidance,
            ProviderConfigurationError: self._get_configuration_guidance,
        }

    def get_guidance(self, error: Exception) -> UserGuidance:
        """Get user guidance for a specific error."""
        guidance_func = self._guidance_mapping.get(
            type(error), self._get_generic_guidance
        )
        return cast(UserGuidance, guidance_func(error))

    def _get_throttling_guidance(self, error: ThrottlingError) -> UserGuidance:
        return UserGuidance(
            error_type="Provider Throttling",
            troubleshooting_steps=[
                "The provider rejected requests because of its rate limit",
                "Increase retry.max_attempts or retry.base_delay in the config",
                "Reduce traversal.max_workers to lower the request rate",
            ],
            additional_notes=[
                "Throttling is temporary and resolves after waiting",
            ],
        )

    def _get_authentication_guidance(
        self, error: ProviderAuthenticationError
    ) -> UserGuidance:
        return UserGuidance(
            error_type="Authentication Error",
            troubleshooting_steps=[
                "Verify AWS credentials are available in the environment or ~/.aws",
                "Check provider.profile names a profile with valid credentials",
                "Confirm the identity is allowed to read the repositories",
            ],
            contact_info="Contact your account administrator for access issues",
        )

    def _get_not_found_guidance(self, error: ResourceNotFoundError) -> UserGuidance:
        return UserGuidance(
            error_type="Resource Not Found",
            troubleshooting_steps=[
                "Check the repository and branch names for typos",
                "Run `commit-history repos` to list the repositories you can access",
            ],
        )

    def _get_connection_error_guidance(
        self, error: ProviderConnectionError
    ) -> UserGuidance:
        return UserGuidance(
            error_type="Network Connection Error",
            troubleshooting_steps=[
                "Verify the provider endpoint URL is correct",
                "Check network connectivity and proxy settings",
                "Check your firewall settings",
            ],
        )

    def _get_timeout_guidance(self, error: ProviderTimeoutError) -> UserGuidance:
        return UserGuidance(
            error_type="Network Timeout Error",
            troubleshooting_steps=[
                "Check your network connection speed and stability",
                "Increase provider.timeout in the config",
            ],
        )

    def _get_configuration_guidance(
        self, error: ProviderConfigurationError
    ) -> UserGuidance:
        return UserGuidance(
            error_type="AWS Configuration Error",
            troubleshooting_steps=[
                "Set provider.region in the config or export AWS_REGION",
                "Check provider.profile exists in ~/.aws/config",
            ],
        )

    def _get_generic_guidance(self, error: Exception) -> UserGuidance:
        return UserGuidance(
            error_type="Provider Error",
            troubleshooting_steps=[
                "Re-run with -vv for detailed logs",
                "Check the error log in .commit-history/",
            ],
        )


class ProviderErrorHandler:
    """Handles provider error classification and retryability decisions."""

    def __init__(self, throttling_codes: Optional[Iterable[str]] = None):
        self.guidance_provider = UserGuidanceProvider()
        self.throttling_codes = set(throttling_codes or DEFAULT_THROTTLING_CODES)
        self._connection_error_patterns = [
            r"connection.*refused",
            r"connection.*reset",
            r"name.*resolution",
            r"network.*is.*unreachable",
        ]

    def classify_network_error(self, error: Exception) -> None:
        """Classify an httpx transport exception and raise a provider error.

        Raises:
            ProviderTimeoutError: For any httpx timeout
            ProviderConnectionError: For connection and other transport errors
        """
        if isinstance(error, httpx.TimeoutException):
            raise ProviderTimeoutError(f"Request to provider timed out: {error}")

        error_message = str(error).lower()
        if isinstance(error, httpx.ConnectError) and any(
            re.search(pattern, error_message)
            for pattern in self._connection_error_patterns
        ):
            raise ProviderConnectionError(
                "Cannot connect to provider endpoint. Check the URL and network."
            )
        raise ProviderConnectionError(f"Provider transport error: {error}")

    def classify_error_response(self, response: httpx.Response) -> ProviderError:
        """Build the provider error matching an unsuccessful HTTP response."""
        status_code = response.status_code
        body: Dict[str, Any] = {}
        try:
            decoded = response.json()
            if isinstance(decoded, dict):
                body = decoded
        except (json.JSONDecodeError, ValueError):
            body = {}

        error_code = parse_error_code(
            body.get("__type") or response.headers.get("x-amzn-ErrorType")
        )
        detail = (
            body.get("message")
            or body.get("Message")
            or response.text
            or f"HTTP {status_code}"
        )
        message = f"{error_code or f'HTTP {status_code}'}: {detail}"

        if error_code in self.throttling_codes or status_code == 429:
            return ThrottlingError(
                message, error_code=error_code, status_code=status_code
            )
        if error_code in AUTH_ERROR_CODES or status_code in (401, 403):
            return ProviderAuthenticationError(
                message, error_code=error_code, status_code=status_code
            )
        if (error_code and error_code.endswith("DoesNotExistException")) or (
            status_code == 404
        ):
            return ResourceNotFoundError(
                message, error_code=error_code, status_code=status_code
            )
        return ProviderError(message, error_code=error_code, status_code=status_code)

    def is_error_retryable(self, error: Exception) -> bool:
        """Determine if an error is retryable.

        Only throttling is transient. Server errors, timeouts and connection
        failures are reported to the caller without retry.
        """
        if isinstance(error, ThrottlingError):
            return True
        if isinstance(error, ProviderError) and error.error_code:
            return error.error_code in self.throttling_codes
        return False

    def get_guidance(self, error: Exception) -> UserGuidance:
        return self.guidance_provider.get_guidance(error)
