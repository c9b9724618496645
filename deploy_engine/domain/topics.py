"""Topic ARN parsing and subscription resolution."""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Set, Union

from deploy_engine.core.errors import TopicNotFoundError


@dataclass(frozen=True)
class Topic:
    """A deployed topic, named ``<app>-<env>-<workload>-<name>`` by convention."""
    arn: str
    app: str
    env: str
    workload: str
    name: str

    @property
    def resource_name(self) -> str:
        return topic_resource_name(self.app, self.env, self.workload, self.name)


@dataclass(frozen=True)
class NotATopicARN:
    arn: str
    reason: str


def topic_resource_name(app: str, env: str, workload: str, name: str) -> str:
    return f"{app}-{env}-{workload}-{name}"


def parse_topic_arn(
    arn: str,
    app: str,
    env: str,
    workload: Optional[str] = None,
) -> Union[Topic, NotATopicARN]:
    """
    Parse a provider ARN into a Topic owned by the given app and environment.

    ARNs look like ``arn:<partition>:<service>:<region>:<account>:<resource>``.
    The resource must start with ``<app>-<env>-``. Without a workload hint the
    remainder is split on its first hyphen, so workloads with hyphens in their
    name need the hint to be attributed correctly.
    """
    parts = arn.split(":", 5)
    if len(parts) != 6 or parts[0] != "arn":
        return NotATopicARN(arn=arn, reason="not an ARN")

    resource = parts[5]
    prefix = f"{app}-{env}-"
    if not resource.startswith(prefix):
        return NotATopicARN(arn=arn, reason=f"not in environment {env} of app {app}")
    remainder = resource[len(prefix):]

    if workload is not None:
        if not remainder.startswith(f"{workload}-"):
            return NotATopicARN(arn=arn, reason=f"not published by {workload}")
        name = remainder[len(workload) + 1:]
    else:
        workload, _, name = remainder.partition("-")

    if not workload or not name:
        return NotATopicARN(arn=arn, reason="missing workload or topic name")

    return Topic(arn=arn, app=app, env=env, workload=workload, name=name)


def deployed_topic_names(topic_arns: Iterable[str], app: str, env: str) -> Set[str]:
    names = set()
    for arn in topic_arns:
        parsed = parse_topic_arn(arn, app, env)
        if isinstance(parsed, Topic):
            names.add(parsed.resource_name)
    return names


def validate_topics_exist(
    subscriptions: Optional[Sequence],
    topic_arns: Iterable[str],
    app: str,
    env: str,
) -> None:
    """
    Ensure every subscription targets a topic deployed in this environment.

    Raises:
        TopicNotFoundError: for the first subscription, in input order,
            whose topic is missing.
    """
    if not subscriptions:
        return

    deployed = deployed_topic_names(topic_arns, app, env)
    for subscription in subscriptions:
        wanted = topic_resource_name(app, env, subscription.service, subscription.name)
        if wanted not in deployed:
            raise TopicNotFoundError(wanted, env)
