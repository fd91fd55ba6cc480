"""Recover a HelmRelease inventory from Helm's own release storage.

helm-controller leaves ``status.inventory`` empty on most versions, but Helm
stores every release revision in a Secret named
``sh.helm.release.v1.<release>.v<revision>`` in the storage namespace. The
``release`` key holds base64 text of an (optionally gzipped) JSON document
whose ``manifest`` field is the rendered multi-document YAML.

Decode failures past the point where the Secret was found raise
DataIntegrityError: a release record that exists but cannot be read means
the release itself is broken.
"""

from __future__ import annotations

import base64
import binascii
import gzip
import json
import zlib
from typing import TYPE_CHECKING, Any

import yaml

from fluxscope.errors import DataIntegrityError
from fluxscope.inventory.models import InventoryEntry
from fluxscope.observability.logging import get_logger
from fluxscope.observability.metrics import release_decode_failures_total

if TYPE_CHECKING:
    from fluxscope.kube.client import KubeClient

_log = get_logger("inventory.helm_storage")

GZIP_MAGIC = b"\x1f\x8b\x08"
RELEASE_KEY = "release"
_DOCUMENT_SEPARATOR = "---\n"


def storage_secret_name(release_name: str, version: int) -> str:
    return f"sh.helm.release.v1.{release_name}.v{version}"


def decode_release_payload(payload: bytes) -> dict[str, Any]:
    """Decode the ``release`` value of a Helm storage Secret.

    base64 -> gzip (only when the magic bytes are present) -> JSON. The
    result must carry a string ``manifest``.
    """
    try:
        raw = base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise DataIntegrityError("release record is not valid base64") from exc

    if raw[:3] == GZIP_MAGIC:
        try:
            raw = gzip.decompress(raw)
        except (OSError, EOFError, zlib.error) as exc:
            raise DataIntegrityError("release record has a corrupt gzip stream") from exc

    try:
        release = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DataIntegrityError("release record is not valid JSON") from exc

    if not isinstance(release, dict) or not isinstance(release.get("manifest"), str):
        raise DataIntegrityError("release record has no manifest")
    return release


def parse_manifest(manifest: str, default_namespace: str) -> list[InventoryEntry]:
    """Turn a rendered Helm manifest into inventory entries.

    Documents that fail to parse as YAML are logged and skipped. A parsed
    document without ``kind`` or ``metadata.name`` raises DataIntegrityError.
    """
    entries: list[InventoryEntry] = []
    for raw_doc in manifest.split(_DOCUMENT_SEPARATOR):
        doc = raw_doc.strip()
        if not doc:
            continue
        try:
            resource = yaml.safe_load(doc)
        except yaml.YAMLError as exc:
            _log.warning("skipping unparseable manifest document", error=str(exc))
            continue
        if resource is None:
            # comment-only document, e.g. "# Source: chart/templates/empty.yaml"
            continue
        if not isinstance(resource, dict):
            raise DataIntegrityError(f"manifest document is not a mapping: {doc[:80]!r}")

        kind = resource.get("kind")
        metadata = resource.get("metadata")
        if not isinstance(kind, str) or not kind:
            raise DataIntegrityError("manifest document is missing kind")
        if not isinstance(metadata, dict) or not isinstance(metadata.get("name"), str):
            raise DataIntegrityError(f"manifest {kind} is missing metadata.name")

        entries.append(
            InventoryEntry(
                kind=kind,
                name=metadata["name"],
                namespace=metadata.get("namespace") or default_namespace,
                api_version=resource.get("apiVersion") or "v1",
            )
        )
    return entries


def _crds_enabled(spec: dict[str, Any]) -> bool:
    for section in ("install", "upgrade"):
        policy = (spec.get(section) or {}).get("crds")
        if policy is True or (isinstance(policy, str) and policy != "Skip"):
            return True
    return False


async def decode_release_inventory(client: KubeClient, release: dict[str, Any]) -> list[InventoryEntry]:
    """Inventory of a HelmRelease read from its latest Helm storage Secret.

    Returns an empty list when the release targets a remote cluster
    (``spec.kubeConfig``) or has not recorded a storage namespace or history.
    """
    metadata = release.get("metadata") or {}
    spec = release.get("spec") or {}
    status = release.get("status") or {}
    log = _log.bind(helmrelease=f"{metadata.get('namespace', '')}/{metadata.get('name', '')}")

    if spec.get("kubeConfig") is not None:
        log.debug("skipping remote-cluster release")
        return []

    storage_namespace = status.get("storageNamespace")
    history = status.get("history") or []
    if not storage_namespace or not history:
        log.debug("release has no storage namespace or history")
        return []

    latest = history[0] if isinstance(history[0], dict) else {}
    release_name = latest.get("name")
    version = latest.get("version")
    if not isinstance(release_name, str) or not isinstance(version, int):
        log.debug("latest history entry lacks name or version")
        return []
    release_namespace = latest.get("namespace") or metadata.get("namespace") or ""

    secret_name = storage_secret_name(release_name, version)
    data = await client.get_secret_data(storage_namespace, secret_name)
    payload = data.get(RELEASE_KEY)
    if payload is None:
        release_decode_failures_total.inc()
        raise DataIntegrityError(f"Secret {storage_namespace}/{secret_name} has no '{RELEASE_KEY}' key")

    try:
        decoded = decode_release_payload(payload)
        entries = parse_manifest(decoded["manifest"], release_namespace)
    except DataIntegrityError:
        release_decode_failures_total.inc()
        raise

    if _crds_enabled(spec):
        # CRDs installed from the chart's crds/ directory are not in the manifest.
        log.debug("CRD expansion from release records is not implemented")

    log.debug("decoded release inventory", secret=secret_name, entries=len(entries))
    return entries
