from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ApplicationRequest(BaseModel):
    name: str
    domain: str = ""
    version: str = ""


class EnvironmentRequest(BaseModel):
    name: str
    region: str = ""
    import_cert_arns: List[str] = Field(default_factory=list)


class ArtifactsRequest(BaseModel):
    addons_url: Optional[str] = None
    env_file_arn: Optional[str] = None
    image_digest: Optional[str] = None
    root_user_arn: Optional[str] = None


class DeployOptionsRequest(BaseModel):
    force_new_update: bool = False
    disable_rollback: bool = False


class DeployRequest(BaseModel):
    manifest: Dict[str, Any]
    application: ApplicationRequest
    environment: EnvironmentRequest
    artifact_bucket: str
    artifacts: ArtifactsRequest = Field(default_factory=ArtifactsRequest)
    options: DeployOptionsRequest = Field(default_factory=DeployOptionsRequest)


class DeployResponse(BaseModel):
    outcome: str
    stack_name: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    history: List[str]
