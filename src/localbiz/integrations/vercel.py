"""Vercel REST client for deploying generated websites.

Every generated website is a single static ``index.html``. Deployment
creates (or reuses) one Vercel project per business and variation, uploads
the file base64-encoded, then polls the deployment until it is READY, fails
or the wait times out.

Two implementations share the ``HostingDeployer`` protocol:

- ``VercelClient`` talks to api.vercel.com with ``requests``.
- ``SyntheticVercelClient`` returns ``*.mock-deploy.local`` URLs without
  network access, used whenever no token is configured.

Usage:
    >>> deployer = create_deployer(token=None)
    >>> project = await deployer.create_project("Classic Cuts", variation=1)
    >>> result = await deployer.deploy_website(project.project_id, html)
    >>> result.url
    'https://classic-cuts-v1.mock-deploy.local'
"""

import asyncio
import base64
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable

import requests

from ..exceptions import (
    LocalBizError,
    NotFoundError,
    ServiceError,
    TransientServiceError,
    classify_http_error,
)
from ..utils.rate_limiter import TokenBucket
from ..utils.retry import retry_with_backoff
from ..utils.text import sanitize_project_name

logger = logging.getLogger(__name__)

# Constants
API_BASE = "https://api.vercel.com"
MOCK_DOMAIN = "mock-deploy.local"
REQUEST_TIMEOUT_SECONDS = 30
MAX_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 2.0
POLL_INTERVAL_SECONDS = 3.0
DEPLOY_TIMEOUT_SECONDS = 120.0
DEFAULT_REQUESTS_PER_SECOND = 5.0

STATUS_HINTS = {
    401: "Invalid Vercel token, check VERCEL_TOKEN",
    403: "Insufficient permissions for this Vercel team or project",
    404: "Resource not found",
    429: "Rate limited by Vercel",
}


class DeploymentStatus(str, Enum):
    """Vercel deployment ready states."""

    QUEUED = "QUEUED"
    INITIALIZING = "INITIALIZING"
    BUILDING = "BUILDING"
    READY = "READY"
    ERROR = "ERROR"
    CANCELED = "CANCELED"

    @property
    def is_terminal(self) -> bool:
        return self in (DeploymentStatus.READY, DeploymentStatus.ERROR, DeploymentStatus.CANCELED)

    @classmethod
    def parse(cls, value: Optional[str]) -> "DeploymentStatus":
        """Parse a readyState, treating unknown states as still building."""
        try:
            return cls((value or "").upper())
        except ValueError:
            return cls.BUILDING


@dataclass
class ProjectInfo:
    """A hosting project.

    Attributes:
        project_id: Vercel project id.
        name: Project name.
        subdomain: Subdomain the project is served under.
    """

    project_id: str
    name: str
    subdomain: str

    def to_dict(self) -> dict[str, Any]:
        return {"project_id": self.project_id, "name": self.name, "subdomain": self.subdomain}


@dataclass
class DeploymentResult:
    """Outcome of one deployment.

    Attributes:
        success: True if the deployment reached READY.
        url: Public URL of the deployment.
        deployment_id: Vercel deployment id.
        status: Last observed ready state.
        error: Failure description when ``success`` is False.
    """

    success: bool
    url: Optional[str] = None
    deployment_id: Optional[str] = None
    status: DeploymentStatus = DeploymentStatus.QUEUED
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "success": self.success,
            "url": self.url,
            "deployment_id": self.deployment_id,
            "status": self.status.value,
            "error": self.error,
        }


@runtime_checkable
class HostingDeployer(Protocol):
    """Hosting capability used by the deployment service."""

    def is_in_mock_mode(self) -> bool:
        ...

    async def create_project(self, business_name: str, variation: int = 1) -> ProjectInfo:
        ...

    async def get_project(self, name_or_id: str) -> Optional[ProjectInfo]:
        ...

    async def deploy_website(
        self, project_id: str, html: str, label: Optional[str] = None
    ) -> DeploymentResult:
        ...

    async def get_deployment_status(self, deployment_id: str) -> DeploymentStatus:
        ...

    async def delete_project(self, project_id: str) -> bool:
        ...


def project_name_for(business_name: str, variation: int = 1) -> str:
    """Project name for a business and variation, e.g. "classic-cuts-v1"."""
    return f"{sanitize_project_name(business_name) or 'site'}-v{variation}"


class VercelClient:
    """Live client for the Vercel REST API.

    Blocking ``requests`` calls run in the default executor. Uploads are
    retried with exponential backoff on transient failures.

    Attributes:
        token: Vercel API token.
        team_id: Optional team id sent as the ``teamId`` query parameter.
        poll_interval: Seconds between deployment status checks.
        deploy_timeout: Seconds to wait for a deployment to finish.
        rate_limiter: Token bucket taken before every API request, polls included.
    """

    def __init__(
        self,
        token: str,
        team_id: Optional[str] = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        deploy_timeout: float = DEPLOY_TIMEOUT_SECONDS,
        max_attempts: int = MAX_ATTEMPTS,
        retry_delay: float = RETRY_DELAY_SECONDS,
        session: Optional[requests.Session] = None,
        requests_per_second: float = DEFAULT_REQUESTS_PER_SECOND,
    ) -> None:
        """Initialize the client.

        Raises:
            ValueError: If no token is provided.
        """
        if not token:
            raise ValueError("Vercel token required")

        self.token = token
        self.team_id = team_id or None
        self.poll_interval = poll_interval
        self.deploy_timeout = deploy_timeout
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._session = session or requests.Session()
        self.rate_limiter = TokenBucket(
            capacity=max(1.0, requests_per_second), refill_rate=requests_per_second
        )
        logger.info("VercelClient initialized%s", f" (team {team_id})" if team_id else "")

    def is_in_mock_mode(self) -> bool:
        return False

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Send one API request and return the decoded JSON body.

        Raises:
            TransientServiceError: On timeouts, connection errors, 429 and 5xx.
            NotFoundError: On 404.
            PermanentServiceError: On any other error status.
        """
        params = {"teamId": self.team_id} if self.team_id else None
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }

        try:
            response = self._session.request(
                method,
                f"{API_BASE}{path}",
                params=params,
                headers=headers,
                json=payload,
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        except requests.exceptions.Timeout as e:
            raise TransientServiceError(
                f"{operation} timed out", operation=operation
            ) from e
        except requests.exceptions.RequestException as e:
            raise TransientServiceError(
                f"{operation} failed: {e}", operation=operation
            ) from e

        if response.status_code >= 400:
            try:
                message = response.json().get("error", {}).get("message", "")
            except ValueError:
                message = response.text[:500]
            message = STATUS_HINTS.get(response.status_code, message or response.reason)
            raise classify_http_error(response.status_code, message, operation)

        if not response.content:
            return {}
        return response.json()

    async def _call(
        self,
        method: str,
        path: str,
        operation: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        await self.rate_limiter.acquire()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, lambda: self._request(method, path, operation, payload)
        )

    @staticmethod
    def _to_project(data: dict[str, Any]) -> ProjectInfo:
        return ProjectInfo(project_id=data["id"], name=data["name"], subdomain=data["name"])

    async def create_project(self, business_name: str, variation: int = 1) -> ProjectInfo:
        """Create the project for a business variation, reusing it if it exists.

        Raises:
            ServiceError: If the project cannot be created or fetched.
        """
        name = project_name_for(business_name, variation)
        try:
            data = await self._call(
                "POST",
                "/v9/projects",
                "createProject",
                {"name": name, "framework": None, "publicSource": False},
            )
            logger.info("Created Vercel project %s", name)
            return self._to_project(data)
        except ServiceError as e:
            if e.status_code != 409:
                raise
            logger.debug("Project %s already exists, fetching it", name)

        project = await self.get_project(name)
        if project is None:
            raise ServiceError(f"Project {name} exists but could not be fetched", operation="getProject")
        return project

    async def get_project(self, name_or_id: str) -> Optional[ProjectInfo]:
        """Fetch a project by name or id, or None if it does not exist."""
        try:
            data = await self._call("GET", f"/v9/projects/{name_or_id}", "getProject")
        except NotFoundError:
            return None
        return self._to_project(data)

    async def deploy_website(
        self, project_id: str, html: str, label: Optional[str] = None
    ) -> DeploymentResult:
        """Upload ``html`` as the project's production index.html and wait for it.

        Failures come back as an unsuccessful result rather than an
        exception, including a deployment that is still running when the
        timeout expires.

        Args:
            project_id: Target project id.
            html: Complete HTML document.
            label: Name used in log messages.

        Returns:
            DeploymentResult with the final status.
        """
        payload = {
            "name": project_id,
            "files": [
                {
                    "file": "index.html",
                    "data": base64.b64encode(html.encode("utf-8")).decode("ascii"),
                    "encoding": "base64",
                }
            ],
            "projectSettings": {"framework": None},
            "target": "production",
        }

        try:
            data = await retry_with_backoff(
                self._call,
                "POST",
                "/v13/deployments",
                "createDeployment",
                payload,
                max_attempts=self.max_attempts,
                base_delay=self.retry_delay,
            )
        except LocalBizError as e:
            logger.error("Deployment of %s failed: %s", label or project_id, e)
            return DeploymentResult(success=False, status=DeploymentStatus.ERROR, error=str(e))

        deployment_id = data.get("id")
        if not deployment_id or not data.get("url"):
            logger.error("Deployment of %s returned no id or url", label or project_id)
            return DeploymentResult(
                success=False,
                deployment_id=deployment_id,
                status=DeploymentStatus.ERROR,
                error="Vercel response missing deployment id or url",
            )
        url = f"https://{data['url']}"
        logger.info("Deployment %s created for %s, waiting until ready", deployment_id, label or project_id)

        status = await self._wait_for_deployment(deployment_id)
        if status == DeploymentStatus.READY:
            return DeploymentResult(
                success=True, url=url, deployment_id=deployment_id, status=status
            )
        return DeploymentResult(
            success=False,
            url=url,
            deployment_id=deployment_id,
            status=status,
            error=f"Deployment finished with status {status.value}",
        )

    async def _wait_for_deployment(self, deployment_id: str) -> DeploymentStatus:
        """Poll until a terminal state; ERROR if the timeout expires first."""
        deadline = time.monotonic() + self.deploy_timeout

        while True:
            try:
                status = await self.get_deployment_status(deployment_id)
            except NotFoundError:
                return DeploymentStatus.ERROR
            except TransientServiceError as e:
                logger.warning("Status check for %s failed: %s", deployment_id, e)
                status = DeploymentStatus.BUILDING
            except ServiceError as e:
                logger.error("Status check for %s failed: %s", deployment_id, e)
                return DeploymentStatus.ERROR

            if status.is_terminal:
                return status
            if time.monotonic() >= deadline:
                logger.error(
                    "Deployment %s not ready after %.0fs", deployment_id, self.deploy_timeout
                )
                return DeploymentStatus.ERROR
            await asyncio.sleep(self.poll_interval)

    async def get_deployment_status(self, deployment_id: str) -> DeploymentStatus:
        data = await self._call("GET", f"/v13/deployments/{deployment_id}", "getDeployment")
        return DeploymentStatus.parse(data.get("readyState"))

    async def delete_project(self, project_id: str) -> bool:
        """Delete a project; False if it did not exist or could not be deleted."""
        try:
            await self._call("DELETE", f"/v9/projects/{project_id}", "deleteProject")
        except LocalBizError as e:
            logger.warning("Could not delete project %s: %s", project_id, e)
            return False
        logger.info("Deleted Vercel project %s", project_id)
        return True


class SyntheticVercelClient:
    """Offline deployer that reports every deployment READY immediately."""

    def __init__(self) -> None:
        logger.info("Deployer running in mock mode")

    def is_in_mock_mode(self) -> bool:
        return True

    async def create_project(self, business_name: str, variation: int = 1) -> ProjectInfo:
        name = project_name_for(business_name, variation)
        return ProjectInfo(project_id=f"mock_{name}", name=name, subdomain=name)

    async def get_project(self, name_or_id: str) -> Optional[ProjectInfo]:
        name = name_or_id.removeprefix("mock_")
        return ProjectInfo(project_id=f"mock_{name}", name=name, subdomain=name)

    async def deploy_website(
        self, project_id: str, html: str, label: Optional[str] = None
    ) -> DeploymentResult:
        name = sanitize_project_name(project_id.removeprefix("mock_")) or "site"
        return DeploymentResult(
            success=True,
            url=f"https://{name}.{MOCK_DOMAIN}",
            deployment_id=f"mock_deploy_{name}",
            status=DeploymentStatus.READY,
        )

    async def get_deployment_status(self, deployment_id: str) -> DeploymentStatus:
        return DeploymentStatus.READY

    async def delete_project(self, project_id: str) -> bool:
        return True


def create_deployer(
    token: Optional[str] = None,
    team_id: Optional[str] = None,
    poll_interval: float = POLL_INTERVAL_SECONDS,
    deploy_timeout: float = DEPLOY_TIMEOUT_SECONDS,
    max_attempts: int = MAX_ATTEMPTS,
    retry_delay: float = RETRY_DELAY_SECONDS,
    requests_per_second: float = DEFAULT_REQUESTS_PER_SECOND,
) -> HostingDeployer:
    """Build the live Vercel client when a token is given, else the synthetic one."""
    if token:
        return VercelClient(
            token,
            team_id=team_id,
            poll_interval=poll_interval,
            deploy_timeout=deploy_timeout,
            max_attempts=max_attempts,
            retry_delay=retry_delay,
            requests_per_second=requests_per_second,
        )
    return SyntheticVercelClient()
