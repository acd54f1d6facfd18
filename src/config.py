"""Webhook router configuration.

Settings come from, lowest priority first: field defaults, the ``webhook``
and ``redis_streams`` sections of a YAML config file (with a sibling
``*.local.yaml`` merged on top), a ``.env`` file, environment variables.
Several settings accept more than one name; each alias group below lists
its names in resolution order and the first one present wins.
"""

import logging
from pathlib import Path
from typing import Any, Literal, Mapping, Optional, Sequence

import yaml
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from src.utils import deep_merge
from src.verifiers.base import Verifier
from src.verifiers.hmac_verifier import DEFAULT_SIGNATURE_HEADER, HMACVerifier
from src.verifiers.stripe import DEFAULT_TOLERANCE, StripeVerifier

logger = logging.getLogger(__name__)

# Config file keys accepted for each setting, first match wins.
CONFIG_ALIASES: dict[str, tuple[str, ...]] = {
    "secret": ("secret", "webhook_secret", "stripe_webhook_secret"),
    "verifier": ("verifier", "provider"),
    "signature_header": ("signature_header", "header"),
    "signature_prefix": ("signature_prefix", "prefix"),
    "tolerance": ("tolerance", "tolerance_seconds"),
    "host": ("host",),
    "port": ("port",),
    "path": ("path", "route"),
    "redis_url": ("redis_url", "url"),
    "stream": ("stream", "stream_name"),
    "group": ("group", "consumer_group"),
    "consumer": ("consumer", "consumer_name"),
    "block_ms": ("block_ms",),
}


def resolve_alias(mapping: Mapping[str, Any], candidates: Sequence[str]) -> Any:
    """Return the value of the first candidate key present and not None."""
    for key in candidates:
        if mapping.get(key) is not None:
            return mapping[key]
    return None


class WebhookSettings(BaseSettings):
    """Settings for the HTTP server, the verifier and the stream consumer."""

    model_config = SettingsConfigDict(
        env_prefix="WEBHOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Verification
    secret: str = Field(
        default="",
        validation_alias=AliasChoices("WEBHOOK_SECRET", "STRIPE_WEBHOOK_SECRET"),
        description="Signing secret shared with the webhook sender",
    )
    verifier: Literal["hmac", "stripe"] = Field(default="hmac", description="Signature scheme")
    signature_header: str = Field(default=DEFAULT_SIGNATURE_HEADER, description="Header carrying the HMAC signature")
    signature_prefix: str = Field(default="", description="Prefix before the hex digest, e.g. 'sha256='")
    tolerance: int = Field(default=DEFAULT_TOLERANCE, ge=0, description="Stripe timestamp tolerance in seconds (0 disables)")

    # HTTP server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, ge=1, le=65535, description="Server port")
    path: str = Field(default="/webhook", description="Webhook endpoint path")

    # Redis Streams consumer
    redis_url: str = Field(
        default="redis://localhost:6379",
        validation_alias=AliasChoices("WEBHOOK_REDIS_URL", "REDIS_URL"),
    )
    stream: str = Field(default="webhooks")
    group: str = Field(default="webhook-routers")
    consumer: str = Field(default="consumer-1")
    block_ms: int = Field(default=5000, ge=0)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Values from the config file arrive as init kwargs; the environment beats them.
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def load_config(path: str) -> dict:
    """Load a YAML config file, merging ``<name>.local.yaml`` over it if present."""
    config_path = Path(path)
    if not config_path.exists():
        return {}
    with open(config_path) as f:
        cfg = yaml.safe_load(f) or {}
    local = config_path.with_suffix(".local.yaml")
    if local.exists():
        with open(local) as f:
            local_cfg = yaml.safe_load(f) or {}
        deep_merge(cfg, local_cfg)
        logger.info(f"Merged local overrides from {local}")
    return cfg


def settings_from_config(cfg: Mapping[str, Any]) -> dict[str, Any]:
    """Flatten the ``webhook`` and ``redis_streams`` sections into setting names."""
    sections = [cfg.get("redis_streams") or {}, cfg.get("webhook") or {}]
    values: dict[str, Any] = {}
    for name, candidates in CONFIG_ALIASES.items():
        for section in sections:
            value = resolve_alias(section, candidates)
            if value is not None:
                values[name] = value
    return values


def load_settings(path: Optional[str] = "config.yaml", **overrides: Any) -> WebhookSettings:
    """Build settings from a config file, the environment and explicit overrides.

    Args:
        path: YAML config path; missing files are skipped
        **overrides: Values that beat every other source (e.g. CLI flags)

    Returns:
        WebhookSettings instance
    """
    values = settings_from_config(load_config(path)) if path else {}
    settings = WebhookSettings(**values)
    explicit = {k: v for k, v in overrides.items() if v is not None}
    if explicit:
        settings = settings.model_copy(update=explicit)
    return settings


def verifier_from_settings(settings: WebhookSettings) -> Verifier:
    """Create the verifier selected by ``settings.verifier``.

    Raises:
        ValueError: If no secret is configured
    """
    if not settings.secret:
        raise ValueError("No webhook secret configured (set WEBHOOK_SECRET)")
    if settings.verifier == "stripe":
        return StripeVerifier(settings.secret, tolerance=settings.tolerance)
    return HMACVerifier(
        settings.secret,
        header=settings.signature_header,
        prefix=settings.signature_prefix,
    )
