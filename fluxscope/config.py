"""Configuration loading from environment variables."""

from __future__ import annotations

import os
import re

from fluxscope.models.config import FluxScopeConfig, GraphConfig, KubeConfig, LogConfig, MetricsConfig

_DNS_LABEL = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"FLUXSCOPE_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    raw = _env(key, str(default))
    try:
        val = int(raw)
    except ValueError:
        raise ValueError(f"Invalid integer for FLUXSCOPE_{key}: {raw!r}") from None
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_namespace(value: str) -> str:
    if len(value) > 63 or not _DNS_LABEL.match(value):
        raise ValueError(f"Invalid namespace: {value!r}")
    return value


def load_config() -> FluxScopeConfig:
    """Load configuration from FLUXSCOPE_* environment variables."""
    return FluxScopeConfig(
        default_namespace=_validate_namespace(_env("NAMESPACE", "flux-system")),
        kube=KubeConfig(
            context=_env("KUBE_CONTEXT", ""),
            config_file=_env("KUBECONFIG", ""),
            request_timeout=_env_int("REQUEST_TIMEOUT", 30, min_val=1, max_val=300),
        ),
        graph=GraphConfig(
            workload_concurrency=_env_int("WORKLOAD_CONCURRENCY", 4, min_val=1, max_val=32),
        ),
        metrics=MetricsConfig(
            port=_env_int("METRICS_PORT", 0, min_val=0, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
            json=_env_bool("LOG_JSON", True),
        ),
    )
