# deploy_engine/infrastructure/http/provisioning_client.py
"""Provisioning backend client for stack submission and service updates."""

import logging
import threading
from datetime import datetime
from typing import Optional

import requests
from pydantic import BaseModel

from deploy_engine.core.errors import ChangeSetEmptyError, ProvisioningError
from deploy_engine.core.models import ServiceStatus, SubmitOptions
from deploy_engine.orchestrator.collaborators import ServiceForceUpdater, StackBackend
from deploy_engine.orchestrator.waiter import StabilityWaiter

logger = logging.getLogger(__name__)


CHANGE_SET_EMPTY_CODE = "ChangeSetEmpty"


class ServiceStateResponse(BaseModel):
    """Service state payload returned by the backend."""
    desired_count: int
    running_count: int
    deployment_count: int = 1
    last_updated_at: datetime

    def to_status(self) -> ServiceStatus:
        return ServiceStatus(
            desired_count=self.desired_count,
            running_count=self.running_count,
            deployment_count=self.deployment_count,
            last_updated_at=self.last_updated_at,
        )


class ProvisioningClient(StackBackend, ServiceForceUpdater):
    """Client for communicating with the provisioning backend."""

    def __init__(
        self,
        backend_url: str,
        waiter: StabilityWaiter,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize client.

        Args:
            backend_url: Base URL of the backend (e.g., "http://10.0.1.10:9100")
            waiter: Stability waiter used after a force update
            timeout: Request timeout in seconds
            session: Optional requests session (shared connection pool)
        """
        self.base_url = backend_url.rstrip('/')
        self.timeout = timeout
        self.waiter = waiter
        self._http = session or requests.Session()

    def _service_url(self, app: str, env: str, svc: str) -> str:
        return f"{self.base_url}/apps/{app}/envs/{env}/services/{svc}"

    def _send(self, method: str, url: str, operation: str, **kwargs) -> requests.Response:
        try:
            return getattr(self._http, method)(url, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            raise ProvisioningError(f"{operation}: timeout after {self.timeout}s") from e
        except requests.exceptions.ConnectionError as e:
            raise ProvisioningError(
                f"{operation}: cannot connect to provisioning backend at {self.base_url}"
            ) from e

    def _error_detail(self, response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text
        if isinstance(body, dict):
            return body.get("detail") or body.get("message") or response.text
        return response.text

    # -------------------------
    # STACKS
    # -------------------------

    def submit_stack(
        self,
        stack_name: str,
        document: str,
        artifact_bucket: str,
        options: SubmitOptions,
    ) -> None:
        """
        Create or update a stack.

        Raises:
            ChangeSetEmptyError: If the backend computed no changes
            ProvisioningError: For any other failure
        """
        logger.info(f"[provisioning] submitting stack {stack_name} to {self.base_url}")

        payload = {
            "template": document,
            "artifact_bucket": artifact_bucket,
            "disable_rollback": options.disable_rollback,
        }

        response = self._send(
            "put",
            f"{self.base_url}/stacks/{stack_name}",
            f"submit stack {stack_name}",
            json=payload,
        )

        if response.status_code == 409:
            try:
                body = response.json()
            except ValueError:
                body = {}
            if isinstance(body, dict) and body.get("code") == CHANGE_SET_EMPTY_CODE:
                raise ChangeSetEmptyError(stack_name, body.get("change_set", ""))

        if response.status_code not in (200, 201, 202):
            raise ProvisioningError(
                f"submit stack {stack_name} [{response.status_code}]: {self._error_detail(response)}"
            )

        logger.info(f"[provisioning] stack {stack_name} updated")

    # -------------------------
    # SERVICES
    # -------------------------

    def service_status(self, app: str, env: str, svc: str) -> ServiceStatus:
        response = self._send("get", self._service_url(app, env, svc), f"describe service {svc}")
        if response.status_code != 200:
            raise ProvisioningError(
                f"describe service {svc} [{response.status_code}]: {self._error_detail(response)}"
            )
        return ServiceStateResponse.model_validate(response.json()).to_status()

    def last_updated_at(self, app: str, env: str, svc: str) -> datetime:
        return self.service_status(app, env, svc).last_updated_at

    def force_update_service(
        self,
        app: str,
        env: str,
        svc: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        """
        Restart the service's tasks and wait until it is stable again.

        Raises:
            StabilityTimeoutError: If the service does not settle in time
            DeployCancelledError: If cancel_event is set during the wait
            ProvisioningError: If the restart request or a status check fails
        """
        response = self._send(
            "post",
            f"{self._service_url(app, env, svc)}/force-update",
            f"force update service {svc}",
        )
        if response.status_code not in (200, 202):
            raise ProvisioningError(
                f"force update service {svc} [{response.status_code}]: {self._error_detail(response)}"
            )

        logger.info(f"[provisioning] restart issued for {svc} in {env}, waiting for stability")

        self.waiter.wait(
            lambda: self.service_status(app, env, svc).is_stable(),
            cancel_event=cancel_event,
            description=f"service {svc} in {env}",
        )
