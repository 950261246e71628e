"""CodeCommit API Client.

Speaks the CodeCommit JSON 1.1 protocol over a synchronous httpx session and
maps responses to the history engine's data models. Every request is signed
with AWS SigV4; the region and credentials come from the standard AWS
configuration chain through botocore. Transport failures and provider error
responses are classified by ``ProviderErrorHandler``.
"""

import json
import logging
import threading
from typing import Any, Dict, List, Optional

import botocore.session
import httpx
from botocore.auth import SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials
from botocore.exceptions import BotoCoreError

from ..config import ProviderConfig
from ..history.models import Branch, CommitNode, Repository
from .error_handler import (
    ProviderAuthenticationError,
    ProviderConfigurationError,
    ProviderErrorHandler,
    ProviderResponseError,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "codecommit"
TARGET_PREFIX = "CodeCommit_20150413"
CONTENT_TYPE = "application/x-amz-json-1.1"


class CodeCommitClient:
    """Provider client for the AWS CodeCommit API."""

    def __init__(
        self,
        config: ProviderConfig,
        transport: Optional[httpx.BaseTransport] = None,
        credentials: Optional[Credentials] = None,
    ):
        """Initialize the client.

        Region and credentials are resolved on the first request.

        Args:
            config: Provider configuration section
            transport: Optional httpx transport, used to route requests
                through a custom transport layer
            credentials: Explicit AWS credentials; the default chain (or
                ``config.profile``) is used when omitted
        """
        self.config = config
        self._transport = transport
        self._credentials = credentials
        self._region: Optional[str] = config.region
        self._endpoint: Optional[str] = None
        self._session: Optional[httpx.Client] = None
        self._resolve_lock = threading.Lock()
        self._error_handler = ProviderErrorHandler(config.throttling_error_codes)

    def _resolve_aws_settings(self) -> None:
        """Resolve region, endpoint and credentials once.

        Raises:
            ProviderConfigurationError: If the region or profile is unusable
            ProviderAuthenticationError: If no credentials can be found
        """
        with self._resolve_lock:
            if self._endpoint is not None:
                return
            try:
                aws_session = botocore.session.Session(profile=self.config.profile)
                region = self._region or aws_session.get_config_variable("region")
                credentials = self._credentials or aws_session.get_credentials()
            except BotoCoreError as e:
                raise ProviderConfigurationError(
                    f"Cannot load AWS configuration: {e}"
                ) from e

            if not region:
                raise ProviderConfigurationError(
                    "No AWS region configured; set provider.region or AWS_REGION"
                )
            if credentials is None:
                raise ProviderAuthenticationError(
                    "No AWS credentials found in the environment, shared "
                    "config files or instance metadata"
                )

            self._region = region
            self._credentials = credentials
            self._endpoint = self.config.endpoint_for(region)
            logger.debug(f"Using CodeCommit endpoint {self._endpoint} ({region})")

    @property
    def endpoint(self) -> str:
        """The resolved endpoint URL."""
        self._resolve_aws_settings()
        assert self._endpoint is not None
        return self._endpoint

    @property
    def session(self) -> httpx.Client:
        """Get or create the HTTP session."""
        if self._session is None or self._session.is_closed:
            self._session = httpx.Client(
                base_url=self.endpoint,
                timeout=httpx.Timeout(self.config.timeout),
                transport=self._transport,
                follow_redirects=True,
            )
        return self._session

    def _signed_headers(self, operation: str, body: bytes) -> Dict[str, str]:
        """Build the SigV4-signed headers for one request."""
        assert self._credentials is not None and self._region is not None
        aws_request = AWSRequest(
            method="POST",
            url=f"{self.endpoint}/",
            data=body,
            headers={
                "Content-Type": CONTENT_TYPE,
                "X-Amz-Target": f"{TARGET_PREFIX}.{operation}",
            },
        )
        SigV4Auth(
            self._credentials.get_frozen_credentials(), SERVICE_NAME, self._region
        ).add_auth(aws_request)
        return dict(aws_request.headers.items())

    def _call(self, operation: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Invoke a single provider operation and return the decoded body.

        Raises:
            ProviderConfigurationError: If the AWS region cannot be resolved
            ProviderAuthenticationError: If credentials are missing or rejected
            ProviderTimeoutError: If the request times out
            ProviderConnectionError: If the endpoint cannot be reached
            ThrottlingError: If the provider rate limited the request
            ResourceNotFoundError: If the named resource does not exist
            ProviderResponseError: If the response body is not a JSON object
            ProviderError: For any other provider error response
        """
        body = json.dumps(payload).encode("utf-8")
        session = self.session
        headers = self._signed_headers(operation, body)
        logger.debug(f"{operation} request: {payload}")

        try:
            response = session.post("/", content=body, headers=headers)
        except httpx.TransportError as e:
            self._error_handler.classify_network_error(e)
            raise  # classify_network_error always raises

        if response.status_code >= 400:
            error = self._error_handler.classify_error_response(response)
            logger.debug(f"{operation} failed: {error}")
            raise error

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderResponseError(
                f"{operation} returned invalid JSON: {e}",
                status_code=response.status_code,
            ) from e
        if not isinstance(data, dict):
            raise ProviderResponseError(
                f"{operation} returned unexpected payload type: {type(data).__name__}",
                status_code=response.status_code,
            )
        return data

    def _paginate(
        self, operation: str, payload: Dict[str, Any], items_key: str
    ) -> List[Any]:
        """Collect all pages of a list operation by following nextToken."""
        items: List[Any] = []
        request = dict(payload)
        while True:
            body = self._call(operation, request)
            items.extend(body.get(items_key) or [])
            next_token = body.get("nextToken")
            if not next_token:
                return items
            request = dict(payload, nextToken=next_token)

    def list_repositories(self) -> List[Repository]:
        """List all repositories visible to the caller's credentials."""
        entries = self._paginate("ListRepositories", {}, "repositories")
        try:
            return [
                Repository(name=entry["repositoryName"], id=entry["repositoryId"])
                for entry in entries
            ]
        except (KeyError, TypeError) as e:
            raise ProviderResponseError(f"Invalid ListRepositories response: {e}")

    def list_branches(self, repository_name: str) -> List[str]:
        """List branch names of a repository."""
        names = self._paginate(
            "ListBranches", {"repositoryName": repository_name}, "branches"
        )
        return [str(name) for name in names]

    def get_branch(self, repository_name: str, branch_name: str) -> Branch:
        """Get a branch and its head commit id."""
        body = self._call(
            "GetBranch",
            {"repositoryName": repository_name, "branchName": branch_name},
        )
        branch_data = body.get("branch")
        if not isinstance(branch_data, dict):
            raise ProviderResponseError(
                f"GetBranch response for {branch_name} has no branch object"
            )
        return Branch(
            name=branch_data.get("branchName") or branch_name,
            head_commit_id=branch_data.get("commitId") or None,
        )

    def get_commit(self, repository_name: str, commit_id: str) -> CommitNode:
        """Get a single commit object."""
        body = self._call(
            "GetCommit",
            {"repositoryName": repository_name, "commitId": commit_id},
        )
        commit_data = body.get("commit")
        if not isinstance(commit_data, dict):
            raise ProviderResponseError(
                f"GetCommit response for {commit_id} has no commit object"
            )

        author = commit_data.get("author") or {}
        try:
            return CommitNode(
                id=commit_data.get("commitId") or commit_id,
                parent_ids=list(commit_data.get("parents") or []),
                author_name=author.get("name"),
                author_date=author.get("date"),
                message=commit_data.get("message") or "",
            )
        except ValueError as e:
            raise ProviderResponseError(
                f"Invalid GetCommit response for {commit_id}: {e}"
            ) from e

    def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.is_closed:
            self._session.close()

    def __enter__(self) -> "CodeCommitClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

