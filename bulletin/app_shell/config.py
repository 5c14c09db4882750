import logging
import os

from bulletin.rules.models import Rules

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Operational configuration is incomplete."""


def validate_ops_rules(rules: Rules) -> None:
    """
    Validate operational requirements before startup.

    Raises:
        ConfigError: required environment variables are missing, or the
            Brevo provider is selected without its API key or sender.
    """
    missing = [name for name in rules.ops.required_env if name not in os.environ]

    if rules.provider.name == "brevo":
        if rules.provider.api_key_env not in os.environ:
            missing.append(rules.provider.api_key_env)
        if rules.provider.sender_id is None:
            raise ConfigError("provider.sender_id is required when provider.name is brevo")

    if missing:
        raise ConfigError(
            f"Missing required environment variables: {', '.join(sorted(set(missing)))}"
        )

    logger.info("Configuration validated (provider=%s)", rules.provider.name)
