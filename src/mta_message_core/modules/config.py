"""Configuration loading and validation."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from .bounce_classifier import to_pair
from .errors import ConfigError
from .header_codec import DEFAULT_MAX_LINE_LENGTH, DEFAULT_MTA_NAME, ESCALATED_MAX_LINE_LENGTH

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FoldingConfig:
    """Header folding width used when rewriting outbound headers."""

    max_line_length: int = DEFAULT_MAX_LINE_LENGTH


@dataclass(frozen=True)
class ForwardingConfig:
    """Event forwarding endpoint; forwarding is off without a URL."""

    url: str | None = None
    timeout: int = 30


@dataclass(frozen=True)
class AppConfig:
    """Application configuration."""

    mta_name: str = DEFAULT_MTA_NAME
    folding: FoldingConfig = field(default_factory=FoldingConfig)
    forwarding: ForwardingConfig = field(default_factory=ForwardingConfig)
    provider_rules: tuple = ()


def load_config(config_path):
    """Load and validate configuration from a JSON file.

    A missing file yields the defaults.

    Raises
    ------
    ConfigError
        If the file is unreadable, not JSON, or holds invalid values.
    """
    path = Path(config_path).resolve()
    if not path.exists():
        logger.debug("Config file not found: %s; using defaults", config_path)
        return AppConfig()

    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"Failed to read config {path}: {exc}") from exc

    folding_raw = raw.get("folding", {})
    max_line_length = folding_raw.get("max_line_length", DEFAULT_MAX_LINE_LENGTH)
    if not isinstance(max_line_length, int) or not 3 < max_line_length <= ESCALATED_MAX_LINE_LENGTH:
        raise ConfigError(f"folding.max_line_length must be an integer in 4..{ESCALATED_MAX_LINE_LENGTH}")

    forwarding_raw = raw.get("forwarding", {})
    forwarding = ForwardingConfig(
        url=forwarding_raw.get("url") or None,
        timeout=forwarding_raw.get("timeout", 30),
    )

    provider_rules = []
    for i, rule in enumerate(raw.get("provider_rules", [])):
        for key in ("marker", "bounce_type", "bounce_code"):
            if not rule.get(key):
                raise ConfigError(f"provider_rules[{i}] missing required field: {key}")
        try:
            pair = to_pair((rule["bounce_type"], rule["bounce_code"]))
        except KeyError as exc:
            raise ConfigError(f"provider_rules[{i}] has unknown value {exc}") from exc
        provider_rules.append((rule["marker"], pair))

    return AppConfig(
        mta_name=raw.get("mta_name", DEFAULT_MTA_NAME),
        folding=FoldingConfig(max_line_length=max_line_length),
        forwarding=forwarding,
        provider_rules=tuple(provider_rules),
    )
