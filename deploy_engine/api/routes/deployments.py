import logging

from fastapi import APIRouter, Depends, HTTPException

from deploy_engine.api.container import get_deployer_factory
from deploy_engine.api.schemas.deployment import DeployRequest, DeployResponse
from deploy_engine.core.errors import (
    DeployError,
    ForceUpdateTimeoutError,
    QueryError,
    ValidationError,
)
from deploy_engine.core.models import (
    AppRegionalResources,
    Application,
    DeployOptions,
    DeployWorkloadInput,
    Environment,
    StackRuntimeConfiguration,
)
from deploy_engine.manifest.schemas import parse_manifest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/deployments", tags=["deployments"])


@router.post("/", response_model=DeployResponse)
def deploy_workload(
    request: DeployRequest,
    build_deployer=Depends(get_deployer_factory),
):
    application = Application(
        name=request.application.name,
        domain=request.application.domain,
        version=request.application.version,
    )
    resources = AppRegionalResources(s3_bucket=request.artifact_bucket)

    try:
        deploy_input = DeployWorkloadInput(
            manifest=parse_manifest(request.manifest),
            application=application,
            environment=Environment(
                name=request.environment.name,
                app_name=application.name,
                region=request.environment.region,
                import_cert_arns=list(request.environment.import_cert_arns),
            ),
            resources=resources,
            artifacts=StackRuntimeConfiguration(**request.artifacts.model_dump()),
            options=DeployOptions(**request.options.model_dump()),
        )
        result = build_deployer(application, resources).deploy_workload(deploy_input)

    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except QueryError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except ForceUpdateTimeoutError as e:
        raise HTTPException(status_code=504, detail={"error": str(e), "guidance": e.guidance})
    except DeployError as e:
        logger.error(f"[api] deploy failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return DeployResponse(
        outcome=result.outcome.value,
        stack_name=result.stack_name,
        started_at=result.details["started_at"],
        finished_at=result.details.get("finished_at"),
        history=result.details["history"],
    )
