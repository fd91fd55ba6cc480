"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class KubeConfig:
    """Kubernetes client configuration."""

    context: str = ""
    config_file: str = ""
    request_timeout: int = 30


@dataclass
class GraphConfig:
    """Graph builder configuration."""

    workload_concurrency: int = 4


@dataclass
class MetricsConfig:
    """Prometheus exposition configuration. Port 0 disables the endpoint."""

    port: int = 0


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"
    json: bool = True


@dataclass
class FluxScopeConfig:
    """Top-level fluxscope configuration."""

    default_namespace: str = "flux-system"
    kube: KubeConfig = field(default_factory=KubeConfig)
    graph: GraphConfig = field(default_factory=GraphConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    log: LogConfig = field(default_factory=LogConfig)
