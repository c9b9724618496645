# deploy_engine/core/errors.py

# -----------------------------
# Base Errors
# -----------------------------

class DeployError(Exception):
    """Base class for all deploy engine errors."""
    pass


# -----------------------------
# Validation Errors
# -----------------------------

class ValidationError(DeployError):
    """Invalid manifest or workload configuration. Never retried."""
    pass


class ManifestValidationError(ValidationError):
    pass


class AliasValidationError(ValidationError):
    """Alias rejected for the application's domain posture."""
    pass


class NoDomainAssociatedError(AliasValidationError):
    def __init__(self, field: str = "http.alias"):
        self.field = field
        super().__init__(
            f"cannot specify {field} when application is not associated with a domain"
        )


class IncompatibleAppVersionError(AliasValidationError):
    def __init__(self, least_version: str):
        self.least_version = least_version
        super().__init__(
            f"alias is not compatible with application versions below {least_version}"
        )


class UnsupportedAliasScopeError(AliasValidationError):
    """Alias falls in a hosted zone level that cannot be used yet."""

    def __init__(self, alias: str, scope: str):
        self.alias = alias
        self.scope = scope
        if scope == "root":
            message = f"{alias} is a root domain alias, which is not supported yet"
        else:
            message = f"{alias} is an {scope} alias, which is not supported yet"
        super().__init__(message)


class UnsupportedHostedZoneError(AliasValidationError):
    def __init__(self, alias: str, domain: str):
        self.alias = alias
        self.domain = domain
        super().__init__(
            f'alias "{alias}" is not supported in hosted zones not managed for domain {domain}'
        )


class NLBAliasWithImportedCertError(AliasValidationError):
    def __init__(self, env_name: str):
        self.env_name = env_name
        super().__init__(
            f"cannot specify nlb.alias when env {env_name} imports one or more certificates"
        )


class MissingAliasForImportedCertError(AliasValidationError):
    def __init__(self, workload: str, env_name: str):
        self.workload = workload
        self.env_name = env_name
        super().__init__(
            f"cannot deploy service {workload} without http.alias "
            f"to environment {env_name} with certificate imported"
        )


class AliasNotCoveredByCertError(AliasValidationError):
    """Alias is not among the names of the environment's imported certificates."""

    def __init__(self, alias: str, cert_arns):
        self.alias = alias
        self.cert_arns = list(cert_arns)
        super().__init__(f"{alias} is not a valid domain against {','.join(self.cert_arns)}")


class TopicNotFoundError(ValidationError):
    def __init__(self, topic: str, env_name: str):
        self.topic = topic
        self.env_name = env_name
        super().__init__(f"topic {topic} does not exist in environment {env_name}")


# -----------------------------
# Collaborator Query Errors
# -----------------------------

class QueryError(DeployError):
    """A lookup against the environment or application failed."""
    pass


class EnvironmentQueryError(QueryError):
    pass


class ApplicationQueryError(QueryError):
    pass


# -----------------------------
# Provisioning Errors
# -----------------------------

class ProvisioningError(DeployError):
    pass


class ChangeSetEmptyError(ProvisioningError):
    """The backend computed no infrastructure change for the stack."""

    def __init__(self, stack_name: str, change_set: str = ""):
        self.stack_name = stack_name
        self.change_set = change_set
        super().__init__(
            f"change set with name {change_set or 'unknown'} for stack {stack_name} has no changes"
        )


class StackRenderError(ProvisioningError):
    pass


class DeployFailedError(ProvisioningError):
    pass


class ForceUpdateFailedError(ProvisioningError):
    pass


# -----------------------------
# Stability / Lifecycle Errors
# -----------------------------

class StabilityTimeoutError(DeployError):
    """Service did not become stable within the retry budget."""

    def __init__(self, max_attempts: int):
        self.max_attempts = max_attempts
        super().__init__(f"max retries {max_attempts} exceeded")


class ForceUpdateTimeoutError(DeployError):
    """Force update issued but the service never settled."""

    def __init__(self, message: str, guidance: str):
        self.guidance = guidance
        super().__init__(message)


class DeployCancelledError(DeployError):
    pass


class InvalidStateTransition(DeployError):
    pass
