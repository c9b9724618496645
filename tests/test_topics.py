#tests\test_topics.py

"""Test topic ARN parsing and subscription resolution."""

import pytest

from deploy_engine.core.errors import TopicNotFoundError
from deploy_engine.domain.topics import (
    NotATopicARN,
    Topic,
    deployed_topic_names,
    parse_topic_arn,
    validate_topics_exist,
)
from deploy_engine.manifest.schemas import TopicSubscription


ARN_PREFIX = "arn:aws:sns:us-west-2:012345678012"


class TestParseTopicARN:
    """Test parsing provider ARNs into topics."""

    def test_parse_topic(self):
        """Test <app>-<env>-<workload>-<name> resource names."""
        topic = parse_topic_arn(f"{ARN_PREFIX}:app-env-database-events", "app", "env")

        assert isinstance(topic, Topic)
        assert topic.workload == "database"
        assert topic.name == "events"
        assert topic.resource_name == "app-env-database-events"

    def test_topic_name_may_contain_hyphens(self):
        """Test everything after the workload is the topic name."""
        topic = parse_topic_arn(f"{ARN_PREFIX}:app-env-database-order-events", "app", "env")

        assert topic.workload == "database"
        assert topic.name == "order-events"

    def test_workload_hint_for_hyphenated_workload(self):
        """Test a workload hint attributes hyphenated workload names."""
        topic = parse_topic_arn(
            f"{ARN_PREFIX}:app-env-order-api-created", "app", "env", workload="order-api"
        )

        assert topic.workload == "order-api"
        assert topic.name == "created"

    def test_workload_hint_mismatch(self):
        """Test a topic from another publisher is rejected under a hint."""
        parsed = parse_topic_arn(f"{ARN_PREFIX}:app-env-database-events", "app", "env", workload="api")

        assert isinstance(parsed, NotATopicARN)

    def test_other_environment_rejected(self):
        """Test a topic from a different environment is not this env's topic."""
        parsed = parse_topic_arn(f"{ARN_PREFIX}:app-prod-database-events", "app", "env")

        assert isinstance(parsed, NotATopicARN)
        assert "not in environment env" in parsed.reason

    def test_prefix_is_case_sensitive(self):
        """Test app and env prefixes match case-sensitively."""
        parsed = parse_topic_arn(f"{ARN_PREFIX}:App-env-database-events", "app", "env")

        assert isinstance(parsed, NotATopicARN)

    @pytest.mark.parametrize("arn", [
        "app-env-database-events",
        "arn:aws:sns:us-west-2:app-env-database-events",
        f"{ARN_PREFIX}:app-env-database",
        f"{ARN_PREFIX}:app-env-",
    ])
    def test_malformed_arns(self, arn):
        """Test ARNs without a workload and name are not topics."""
        assert isinstance(parse_topic_arn(arn, "app", "env"), NotATopicARN)

    def test_deployed_topic_names_skips_foreign_arns(self):
        """Test only this environment's topics are collected."""
        names = deployed_topic_names(
            [
                f"{ARN_PREFIX}:app-env-database-events",
                f"{ARN_PREFIX}:app-prod-database-events",
                "garbage",
            ],
            "app",
            "env",
        )

        assert names == {"app-env-database-events"}


class TestValidateTopicsExist:
    """Test subscription resolution against deployed topics."""

    @pytest.fixture
    def topic_arns(self):
        return [
            f"{ARN_PREFIX}:app-env-database-events",
            f"{ARN_PREFIX}:app-env-database-orders",
            f"{ARN_PREFIX}:app-env-api-created",
        ]

    def test_no_subscriptions(self, topic_arns):
        """Test empty or missing subscriptions always resolve."""
        assert validate_topics_exist(None, topic_arns, "app", "env") is None
        assert validate_topics_exist([], [], "app", "env") is None

    def test_all_topics_exist(self, topic_arns):
        """Test subscriptions to deployed topics resolve."""
        subscriptions = [
            TopicSubscription(name="events", service="database"),
            TopicSubscription(name="created", service="api"),
        ]

        validate_topics_exist(subscriptions, topic_arns, "app", "env")

    def test_missing_topic(self, topic_arns):
        """Test a subscription to an undeployed topic fails."""
        subscriptions = [TopicSubscription(name="deleted", service="api")]

        with pytest.raises(TopicNotFoundError) as exc:
            validate_topics_exist(subscriptions, topic_arns, "app", "env")

        assert exc.value.topic == "app-env-api-deleted"
        assert str(exc.value) == "topic app-env-api-deleted does not exist in environment env"

    def test_topic_in_other_environment_does_not_count(self):
        """Test a same-named topic in another environment does not satisfy the subscription."""
        subscriptions = [TopicSubscription(name="events", service="database")]

        with pytest.raises(TopicNotFoundError):
            validate_topics_exist(
                subscriptions, [f"{ARN_PREFIX}:app-prod-database-events"], "app", "env"
            )

    def test_first_missing_topic_reported(self, topic_arns):
        """Test subscriptions are checked in declaration order."""
        subscriptions = [
            TopicSubscription(name="events", service="database"),
            TopicSubscription(name="refunds", service="payments"),
            TopicSubscription(name="deleted", service="api"),
        ]

        with pytest.raises(TopicNotFoundError) as exc:
            validate_topics_exist(subscriptions, topic_arns, "app", "env")

        assert exc.value.topic == "app-env-payments-refunds"

    def test_hyphenated_workload_subscription(self):
        """Test subscriptions to a publisher with a hyphenated name resolve."""
        subscriptions = [TopicSubscription(name="created", service="order-api")]

        validate_topics_exist(
            subscriptions, [f"{ARN_PREFIX}:app-env-order-api-created"], "app", "env"
        )
