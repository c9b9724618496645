# deploy_engine/orchestrator/deployer.py
"""Workload deployer - builds, submits and reconciles a workload stack."""

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from deploy_engine.core.errors import (
    ChangeSetEmptyError,
    DeployCancelledError,
    DeployError,
    DeployFailedError,
    ForceUpdateFailedError,
    ForceUpdateTimeoutError,
    ProvisioningError,
    StabilityTimeoutError,
    StackRenderError,
)
from deploy_engine.core.models import (
    DeployResult,
    DeployState,
    DeployWorkloadInput,
    SubmitOptions,
)
from deploy_engine.core.state_machine import DeployRun, DeployStateMachine
from deploy_engine.orchestrator.collaborators import (
    Collaborators,
    ServiceForceUpdater,
    StackBackend,
    StackTemplateRenderer,
)
from deploy_engine.orchestrator.stack_config import StackConfiguration, new_stack_builder

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def status_command(workload: str, env: str) -> str:
    return f"svc status --name {workload} --env {env}"


class WorkloadDeployer:
    """
    Deploys one workload into one environment.

    Flow:
    1. Record the invocation start time
    2. Build the stack configuration for the workload kind
    3. Render and submit the stack
    4. On an empty change set with force update requested:
       a. Skip if the service was updated at or after the start time
       b. Otherwise force a restart and wait for stability

    The deployer keeps no per-call state on the instance, so one deployer can
    serve concurrent deploys of distinct (workload, environment) pairs.
    """

    def __init__(
        self,
        *,
        collaborators: Collaborators,
        renderer: StackTemplateRenderer,
        stack_backend: StackBackend,
        force_updater: ServiceForceUpdater,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self._collaborators = collaborators
        self._renderer = renderer
        self._stack_backend = stack_backend
        self._force_updater = force_updater
        self._now = now or _utcnow

    def deploy_workload(
        self,
        deploy_input: DeployWorkloadInput,
        cancel_event: Optional[threading.Event] = None,
    ) -> DeployResult:
        started_at = _as_utc(self._now())

        config = new_stack_builder(deploy_input, self._collaborators).stack_configuration(
            deploy_input.artifacts
        )
        run = DeployRun(stack_name=config.stack_name, started_at=started_at)

        logger.info(
            f"[deployer] deploying {config.workload} to {config.env} "
            f"(stack {config.stack_name}, force={deploy_input.options.force_new_update})"
        )

        change_set_empty = self._submit(run, config, deploy_input)

        if not change_set_empty:
            return self._result(run)

        if not deploy_input.options.force_new_update:
            logger.info(f"[deployer] no changes for {config.stack_name}, nothing to do")
            DeployStateMachine.finish(run, now=self._now())
            return self._result(run)

        return self._force_update(run, config, cancel_event)

    # -------------------------
    # SUBMIT
    # -------------------------

    def _submit(self, run: DeployRun, config: StackConfiguration, deploy_input: DeployWorkloadInput) -> bool:
        """Submit the stack. Returns True when the change set was empty."""
        try:
            document = self._renderer.render(config)
        except Exception as e:
            DeployStateMachine.transition(run, DeployState.FAILED, now=self._now(), error_message=str(e))
            raise StackRenderError(f"render stack template for {config.workload}: {e}") from e

        DeployStateMachine.transition(run, DeployState.SUBMITTED, now=self._now())
        try:
            self._stack_backend.submit_stack(
                config.stack_name,
                document,
                deploy_input.resources.s3_bucket,
                SubmitOptions(disable_rollback=deploy_input.options.disable_rollback),
            )
        except ChangeSetEmptyError:
            DeployStateMachine.transition(run, DeployState.CHANGE_SET_EMPTY, now=self._now())
            return True
        except Exception as e:
            DeployStateMachine.transition(run, DeployState.FAILED, now=self._now(), error_message=str(e))
            logger.error(f"[deployer] deploy of {config.stack_name} failed: {e}")
            raise DeployFailedError(f"deploy failed: {e}") from e

        DeployStateMachine.transition(run, DeployState.APPLIED, now=self._now())
        logger.info(f"[deployer] ✅ stack {config.stack_name} applied")
        return False

    # -------------------------
    # FORCE UPDATE
    # -------------------------

    def _force_update(
        self,
        run: DeployRun,
        config: StackConfiguration,
        cancel_event: Optional[threading.Event],
    ) -> DeployResult:
        DeployStateMachine.transition(run, DeployState.CHECKING_STALENESS, now=self._now())

        try:
            last_updated = self._force_updater.last_updated_at(config.app, config.env, config.workload)
        except Exception as e:
            DeployStateMachine.transition(run, DeployState.FAILED, now=self._now(), error_message=str(e))
            raise ProvisioningError(
                f"get the last updated deployment time for {config.workload}: {e}"
            ) from e

        last_updated = _as_utc(last_updated)
        if last_updated >= run.started_at:
            logger.info(
                f"[deployer] {config.workload} in {config.env} already updated at "
                f"{last_updated.isoformat()}, skipping force update"
            )
            DeployStateMachine.transition(run, DeployState.SKIPPED, now=self._now())
            return self._result(run, last_updated_at=last_updated)

        DeployStateMachine.transition(run, DeployState.FORCE_UPDATING, now=self._now())
        logger.info(f"[deployer] forcing an update for service {config.workload} from {config.env}")

        try:
            self._force_updater.force_update_service(
                config.app, config.env, config.workload, cancel_event=cancel_event
            )
        except StabilityTimeoutError as e:
            DeployStateMachine.transition(run, DeployState.TIMED_OUT, now=self._now(), error_message=str(e))
            guidance = (
                f'Run "{status_command(config.workload, config.env)}" to check for the fail reason.'
            )
            logger.error(
                f"[deployer] failed to force an update for service {config.workload} "
                f"from {config.env}: {e}. {guidance}"
            )
            raise ForceUpdateTimeoutError(
                f"force an update for service {config.workload}: {e}", guidance=guidance
            ) from e
        except DeployCancelledError:
            DeployStateMachine.transition(run, DeployState.FAILED, now=self._now(), error_message="cancelled")
            logger.warning(f"[deployer] force update of {config.workload} cancelled")
            raise
        except Exception as e:
            DeployStateMachine.transition(run, DeployState.FAILED, now=self._now(), error_message=str(e))
            logger.error(
                f"[deployer] failed to force an update for service {config.workload} "
                f"from {config.env}: {e}"
            )
            raise ForceUpdateFailedError(
                f"force an update for service {config.workload}: {e}"
            ) from e

        DeployStateMachine.transition(run, DeployState.COMPLETED, now=self._now())
        logger.info(f"[deployer] ✅ forced an update for service {config.workload} from {config.env}")
        return self._result(run, last_updated_at=last_updated)

    def _result(self, run: DeployRun, **details) -> DeployResult:
        if not run.is_finished():
            raise DeployError(f"deploy of {run.stack_name} ended in non-terminal state {run.state.value}")
        return DeployResult(
            outcome=run.state,
            stack_name=run.stack_name,
            details={
                "started_at": run.started_at,
                "finished_at": run.finished_at,
                "history": [state.value for state, _ in run.history],
                **details,
            },
        )
