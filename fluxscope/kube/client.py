"""Kubernetes API access over kubernetes-asyncio.

KubeClient is the only place fluxscope talks to the API server. It returns
plain ``dict`` objects in the wire (camelCase) shape so that every consumer
can treat Flux custom resources and built-in kinds the same way.

Error mapping:
    ApiException 404        -> NotFoundError
    any other ApiException  -> KubeAPIError
    transport failures      -> KubeAPIError
"""

from __future__ import annotations

import asyncio
import base64
import binascii
from typing import Any

import aiohttp
import kubernetes_asyncio.config as k8s_config  # type: ignore[import-untyped]
from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from fluxscope.errors import DataIntegrityError, KubeAPIError, NotFoundError
from fluxscope.models.coordinates import ResourceCoordinate
from fluxscope.models.kinds import BUILTIN_KINDS
from fluxscope.observability.logging import get_logger
from fluxscope.observability.metrics import api_reads_total

_log = get_logger("kube.client")

# kind -> (typed API attribute, read method)
_TYPED_READS: dict[str, tuple[str, str]] = {
    "Service": ("core", "read_namespaced_service"),
    "ConfigMap": ("core", "read_namespaced_config_map"),
    "Secret": ("core", "read_namespaced_secret"),
    "Pod": ("core", "read_namespaced_pod"),
    "Namespace": ("core", "read_namespace"),
    "Deployment": ("apps", "read_namespaced_deployment"),
    "StatefulSet": ("apps", "read_namespaced_stateful_set"),
    "DaemonSet": ("apps", "read_namespaced_daemon_set"),
    "ReplicaSet": ("apps", "read_namespaced_replica_set"),
    "Job": ("batch", "read_namespaced_job"),
    "CronJob": ("batch", "read_namespaced_cron_job"),
}


async def load_api_client(context: str | None = None, config_file: str | None = None) -> k8s_client.ApiClient:
    """Build an ApiClient from in-cluster config, falling back to kubeconfig."""
    configuration = k8s_client.Configuration()
    try:
        # load_incluster_config() is synchronous in kubernetes-asyncio
        k8s_config.load_incluster_config(client_configuration=configuration)
        _log.info("k8s client configured from in-cluster service account")
    except k8s_config.ConfigException:
        await k8s_config.load_kube_config(
            config_file=config_file,
            context=context,
            client_configuration=configuration,
        )
        _log.info("k8s client configured from kubeconfig", context=context or "current")
    return k8s_client.ApiClient(configuration=configuration)


class KubeClient:
    """Read-only access to the objects fluxscope walks.

    ``request_timeout`` (seconds) is passed to every call as
    ``_request_timeout``; ``None`` leaves the library default in place.
    """

    def __init__(self, api_client: k8s_client.ApiClient, request_timeout: float | None = None) -> None:
        self._api_client = api_client
        self._request_timeout = request_timeout
        self._custom = k8s_client.CustomObjectsApi(api_client)
        self._typed: dict[str, Any] = {
            "core": k8s_client.CoreV1Api(api_client),
            "apps": k8s_client.AppsV1Api(api_client),
            "batch": k8s_client.BatchV1Api(api_client),
        }

    @classmethod
    async def from_environment(
        cls,
        context: str | None = None,
        config_file: str | None = None,
        request_timeout: float | None = None,
    ) -> KubeClient:
        api_client = await load_api_client(context=context, config_file=config_file)
        return cls(api_client, request_timeout=request_timeout)

    async def close(self) -> None:
        await self._api_client.close()

    async def __aenter__(self) -> KubeClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, coordinate: ResourceCoordinate) -> dict[str, Any]:
        """Read one object at *coordinate* and return it as a dict."""
        try:
            if coordinate.kind in _TYPED_READS and coordinate.api_version == BUILTIN_KINDS[coordinate.kind].api_version:
                obj = await self._read_typed(coordinate)
            elif coordinate.group == "":
                obj = await self._read_core(coordinate)
            else:
                obj = await self._read_custom(coordinate)
        except ApiException as exc:
            if exc.status == 404:
                api_reads_total.labels(kind=coordinate.kind, outcome="not_found").inc()
                raise NotFoundError(coordinate) from exc
            api_reads_total.labels(kind=coordinate.kind, outcome="error").inc()
            raise KubeAPIError(
                f"reading {coordinate.kind} {coordinate.display_name} failed: {exc.reason}",
                status=exc.status,
                reason=str(exc.reason or ""),
            ) from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            api_reads_total.labels(kind=coordinate.kind, outcome="error").inc()
            raise KubeAPIError(f"reading {coordinate.kind} {coordinate.display_name} failed: {exc}") from exc

        api_reads_total.labels(kind=coordinate.kind, outcome="ok").inc()
        obj.setdefault("apiVersion", coordinate.api_version)
        obj.setdefault("kind", coordinate.kind)
        return obj

    async def get_workload(self, kind: str, namespace: str, name: str) -> dict[str, Any]:
        """Typed read of a Deployment, StatefulSet, DaemonSet, Job or CronJob."""
        spec = BUILTIN_KINDS.get(kind)
        if spec is None or kind not in _TYPED_READS:
            raise KubeAPIError(f"{kind} is not a readable workload kind")
        coordinate = ResourceCoordinate(spec.group, spec.version, kind, spec.plural, namespace, name)
        return await self.get(coordinate)

    async def get_secret_data(self, namespace: str, name: str) -> dict[str, bytes]:
        """Return a Secret's data with the API's base64 transport layer removed."""
        spec = BUILTIN_KINDS["Secret"]
        secret = await self.get(ResourceCoordinate(spec.group, spec.version, "Secret", spec.plural, namespace, name))
        decoded: dict[str, bytes] = {}
        for key, value in (secret.get("data") or {}).items():
            try:
                decoded[key] = base64.b64decode(value)
            except (binascii.Error, ValueError) as exc:
                raise DataIntegrityError(f"Secret {namespace}/{name} key {key!r} is not valid base64") from exc
        return decoded

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _call_kwargs(self) -> dict[str, Any]:
        if self._request_timeout is None:
            return {}
        return {"_request_timeout": self._request_timeout}

    async def _read_typed(self, coordinate: ResourceCoordinate) -> dict[str, Any]:
        api_name, method_name = _TYPED_READS[coordinate.kind]
        read = getattr(self._typed[api_name], method_name)
        if coordinate.namespace:
            result = await read(coordinate.name, coordinate.namespace, **self._call_kwargs())
        else:
            result = await read(coordinate.name, **self._call_kwargs())
        return self._api_client.sanitize_for_serialization(result)

    async def _read_custom(self, coordinate: ResourceCoordinate) -> dict[str, Any]:
        if coordinate.namespace:
            result = await self._custom.get_namespaced_custom_object(
                coordinate.group,
                coordinate.version,
                coordinate.namespace,
                coordinate.plural,
                coordinate.name,
                **self._call_kwargs(),
            )
        else:
            result = await self._custom.get_cluster_custom_object(
                coordinate.group,
                coordinate.version,
                coordinate.plural,
                coordinate.name,
                **self._call_kwargs(),
            )
        return dict(result)

    async def _read_core(self, coordinate: ResourceCoordinate) -> dict[str, Any]:
        """Read a core-group kind with no typed method (ReplicationController, ...)."""
        if coordinate.namespace:
            path = "/api/{version}/namespaces/{namespace}/{plural}/{name}"
        else:
            path = "/api/{version}/{plural}/{name}"
        path_params = {
            "version": coordinate.version,
            "namespace": coordinate.namespace,
            "plural": coordinate.plural,
            "name": coordinate.name,
        }
        response = await self._api_client.call_api(
            path,
            "GET",
            path_params=path_params,
            header_params={"Accept": "application/json"},
            auth_settings=["BearerToken"],
            _preload_content=False,
            _return_http_data_only=True,
            **self._call_kwargs(),
        )
        try:
            if not 200 <= response.status <= 299:
                raise ApiException(status=response.status, reason=response.reason)
            return dict(await response.json())
        finally:
            response.release()
