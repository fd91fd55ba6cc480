"""Application bootstrap for fluxscope.

Wires the components in dependency order:
    config -> logging -> metrics -> K8s client

and exposes the three read operations the CLI (or an embedding UI) calls.
``stop()`` closes the K8s client and is safe to call more than once.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fluxscope.config import load_config
from fluxscope.errors import FluxScopeError
from fluxscope.graph.builder import build_resource_graph
from fluxscope.inventory.decoder import extract_inventory, group_inventory
from fluxscope.inventory.helm_storage import decode_release_inventory
from fluxscope.kube.client import KubeClient
from fluxscope.kube.resolver import fetch_object
from fluxscope.models.config import FluxScopeConfig
from fluxscope.models.kinds import FluxKind, parse_kind
from fluxscope.observability.logging import get_logger, setup_logging
from fluxscope.observability.metrics import start_metrics_server
from fluxscope.trace.tracer import trace_object

if TYPE_CHECKING:
    import structlog

    from fluxscope.graph.models import ResourceGraph
    from fluxscope.inventory.models import InventoryGroups
    from fluxscope.trace.models import TraceResult


class _ComponentError(FluxScopeError):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class FluxScopeApp:
    """Owns the configuration and the K8s client for one session.

    A pre-built ``client`` can be injected (tests, embedding); the app then
    leaves closing it to the caller.
    """

    def __init__(self, config: FluxScopeConfig | None = None, client: KubeClient | None = None) -> None:
        self.config = config
        self._client = client
        self._owns_client = client is None
        self._metrics_started = False
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def client(self) -> KubeClient:
        if self._client is None:
            raise RuntimeError("FluxScopeApp.start() has not been called")
        return self._client

    async def __aenter__(self) -> FluxScopeApp:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        # --- 1. Configuration -------------------------------------------
        if self.config is None:
            self.config = load_config()

        # --- 2. Logging -------------------------------------------------
        setup_logging(self.config.log.level, json_output=self.config.log.json)
        self._log = get_logger("app")
        self._log.debug("fluxscope starting", version=_fluxscope_version())

        # --- 3. Metrics -------------------------------------------------
        if not self._metrics_started:
            try:
                self._metrics_started = start_metrics_server(self.config.metrics.port)
            except OSError as exc:
                raise _ComponentError("metrics", exc) from exc

        # --- 4. Kubernetes client ----------------------------------------
        if self._client is None:
            await self._start_k8s_client()

    async def _start_k8s_client(self) -> None:
        assert self.config is not None
        kube = self.config.kube
        try:
            self._client = await KubeClient.from_environment(
                context=kube.context or None,
                config_file=kube.config_file or None,
                request_timeout=kube.request_timeout,
            )
        except Exception as exc:
            raise _ComponentError("k8s_client", exc) from exc

    async def stop(self) -> None:
        if self._client is None or not self._owns_client:
            return
        log = self._log or get_logger("app")
        client, self._client = self._client, None
        try:
            await client.close()
        except Exception as exc:  # noqa: BLE001
            log.debug("k8s client close raised (non-fatal)", error=str(exc))

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def _namespace(self, namespace: str | None) -> str:
        if namespace:
            return namespace
        return self.config.default_namespace if self.config else "flux-system"

    async def trace(self, kind: str, name: str, namespace: str | None = None) -> TraceResult:
        return await trace_object(self.client, kind, self._namespace(namespace), name)

    async def graph(self, kind: str, name: str, namespace: str | None = None) -> ResourceGraph:
        concurrency = self.config.graph.workload_concurrency if self.config else 4
        return await build_resource_graph(
            self.client,
            kind,
            self._namespace(namespace),
            name,
            workload_concurrency=concurrency,
        )

    async def inventory(self, kind: str, name: str, namespace: str | None = None) -> InventoryGroups:
        """Grouped inventory of one Flux object, read from Helm storage for HelmReleases if needed."""
        obj = await fetch_object(self.client, kind, self._namespace(namespace), name)
        entries = extract_inventory(obj)
        if not entries and parse_kind(kind) is FluxKind.HELM_RELEASE:
            entries = await decode_release_inventory(self.client, obj)
        return group_inventory(entries)


def _fluxscope_version() -> str:
    from fluxscope import __version__

    return __version__
