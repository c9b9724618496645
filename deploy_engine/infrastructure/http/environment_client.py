# deploy_engine/infrastructure/http/environment_client.py
"""Client for environment and application lookups."""

import logging
from typing import Any, Dict, List, Optional

import requests

from deploy_engine.core.errors import AliasNotCoveredByCertError
from deploy_engine.orchestrator.collaborators import (
    AliasCertValidator,
    AppVersionGetter,
    CustomResourcesUploader,
    EndpointGetter,
    PublicCIDRBlocksGetter,
    TopicLister,
)

logger = logging.getLogger(__name__)


ALIAS_NOT_COVERED_CODE = "AliasNotCovered"


class EnvironmentClientError(RuntimeError):
    pass


class EnvironmentClient(
    EndpointGetter,
    PublicCIDRBlocksGetter,
    TopicLister,
    AliasCertValidator,
    AppVersionGetter,
):
    """Reads environment topology and application metadata from the backend."""

    def __init__(
        self,
        backend_url: str,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = backend_url.rstrip('/')
        self.timeout = timeout
        self._http = session or requests.Session()

    def _get(self, path: str) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self._http.get(url, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise EnvironmentClientError(f"GET {path}: timeout after {self.timeout}s") from e
        except requests.exceptions.ConnectionError as e:
            raise EnvironmentClientError(f"cannot connect to backend at {self.base_url}") from e

        if response.status_code != 200:
            raise EnvironmentClientError(f"GET {path} [{response.status_code}]: {response.text}")
        return response.json()

    def _post(self, path: str, payload: Dict[str, Any]) -> requests.Response:
        try:
            return self._http.post(f"{self.base_url}{path}", json=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise EnvironmentClientError(f"POST {path}: {e}") from e

    def service_discovery_endpoint(self, app: str, env: str) -> str:
        return self._get(f"/apps/{app}/envs/{env}")["service_discovery_endpoint"]

    def public_cidr_blocks(self, app: str, env: str) -> List[str]:
        return list(self._get(f"/apps/{app}/envs/{env}/public-cidr-blocks")["cidr_blocks"])

    def list_deployed_topics(self, app: str, env: str) -> List[str]:
        return list(self._get(f"/apps/{app}/envs/{env}/topics")["topic_arns"])

    def version(self, app: str) -> str:
        return self._get(f"/apps/{app}")["version"]

    def validate_cert_aliases(self, aliases: List[str], cert_arns: List[str]) -> None:
        response = self._post(
            "/certificates/validate-aliases",
            {"aliases": aliases, "certificate_arns": cert_arns},
        )
        if response.status_code == 200:
            return
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if 400 <= response.status_code < 500 and body.get("code") == ALIAS_NOT_COVERED_CODE:
            raise AliasNotCoveredByCertError(body.get("alias") or ",".join(aliases), cert_arns)
        raise EnvironmentClientError(body.get("detail") or response.text)


class CustomResourcesClient(CustomResourcesUploader):
    """Uploads a request-driven service's custom resources to the artifact bucket."""

    def __init__(
        self,
        backend_url: str,
        app: str,
        bucket: str,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = backend_url.rstrip('/')
        self.app = app
        self.bucket = bucket
        self.timeout = timeout
        self._http = session or requests.Session()

    def upload_request_driven_custom_resources(self, workload: str) -> Dict[str, str]:
        logger.info(f"[custom-resources] uploading for {workload} to bucket {self.bucket}")
        try:
            response = self._http.post(
                f"{self.base_url}/apps/{self.app}/custom-resources",
                json={"workload": workload, "bucket": self.bucket},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise EnvironmentClientError(f"upload custom resources: {e}") from e

        if response.status_code not in (200, 201):
            raise EnvironmentClientError(
                f"upload custom resources [{response.status_code}]: {response.text}"
            )
        return dict(response.json()["urls"])
