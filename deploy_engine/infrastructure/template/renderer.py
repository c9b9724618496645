import json

from deploy_engine.orchestrator.collaborators import StackTemplateRenderer


class JsonStackTemplateRenderer(StackTemplateRenderer):
    """Renders a stack configuration as canonical JSON (sorted keys, no whitespace)."""

    def render(self, config) -> str:
        return json.dumps(config.to_dict(), sort_keys=True, separators=(",", ":"), default=str)
