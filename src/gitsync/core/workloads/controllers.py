"""
Workload controllers found in manifest files.

Every supported workload kind is exposed through the same small capability
interface (name, namespace, kind, pod spec) so that checks over pod specs
do not care whether they look at a Deployment or a CronJob.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

import yaml

logger = logging.getLogger(__name__)


class SupportedController(str, Enum):
    """Workload kinds that carry a pod template."""

    DEPLOYMENTS = "Deployments"
    STATEFUL_SETS = "StatefulSets"
    DAEMON_SETS = "DaemonSets"
    JOBS = "Jobs"
    CRON_JOBS = "CronJobs"
    REPLICATION_CONTROLLERS = "ReplicationControllers"


# Manifest "kind" -> controller kind
MANIFEST_KINDS: dict[str, SupportedController] = {
    "Deployment": SupportedController.DEPLOYMENTS,
    "StatefulSet": SupportedController.STATEFUL_SETS,
    "DaemonSet": SupportedController.DAEMON_SETS,
    "Job": SupportedController.JOBS,
    "CronJob": SupportedController.CRON_JOBS,
    "ReplicationController": SupportedController.REPLICATION_CONTROLLERS,
}

# Where each kind keeps its pod template
_POD_TEMPLATE_PATHS: dict[SupportedController, tuple[str, ...]] = {
    SupportedController.CRON_JOBS: ("spec", "jobTemplate", "spec", "template"),
}
_DEFAULT_POD_TEMPLATE_PATH = ("spec", "template")


class WorkloadController(Protocol):
    """Capabilities shared by every workload kind."""

    def name(self) -> str: ...

    def namespace(self) -> str: ...

    def kind(self) -> SupportedController: ...

    def pod_spec(self) -> dict[str, Any]: ...


def _lookup(manifest: dict[str, Any], path: tuple[str, ...]) -> dict[str, Any]:
    node: Any = manifest
    for key in path:
        if not isinstance(node, dict):
            return {}
        node = node.get(key) or {}
    return node if isinstance(node, dict) else {}


def pod_template(manifest: dict[str, Any], kind: SupportedController) -> dict[str, Any]:
    """Pod template of a workload manifest ({} when absent)."""
    return _lookup(manifest, _POD_TEMPLATE_PATHS.get(kind, _DEFAULT_POD_TEMPLATE_PATH))


@dataclass(frozen=True)
class Workload:
    """One workload manifest viewed through the controller capabilities."""

    controller_kind: SupportedController
    manifest: dict[str, Any] = field(compare=False)

    def name(self) -> str:
        return str(_lookup(self.manifest, ("metadata",)).get("name", ""))

    def namespace(self) -> str:
        return str(_lookup(self.manifest, ("metadata",)).get("namespace", ""))

    def kind(self) -> SupportedController:
        return self.controller_kind

    def pod_spec(self) -> dict[str, Any]:
        return _lookup(pod_template(self.manifest, self.controller_kind), ("spec",))


@dataclass
class ResourceProvider:
    """Workload manifests grouped by controller kind."""

    resources: dict[SupportedController, list[dict[str, Any]]] = field(default_factory=dict)

    @classmethod
    def from_manifests(cls, manifests: Iterable[dict[str, Any]]) -> ResourceProvider:
        provider = cls()
        for manifest in manifests:
            kind = MANIFEST_KINDS.get(str(manifest.get("kind", "")))
            if kind is None:
                continue
            provider.resources.setdefault(kind, []).append(manifest)
        return provider

    def of_kind(self, kind: SupportedController) -> list[dict[str, Any]]:
        return list(self.resources.get(kind, []))


def load_resources(paths: Iterable[Path]) -> ResourceProvider:
    """
    Parse YAML manifest files (multi-document) into a ResourceProvider.

    Typically fed with the absolute paths returned by
    Checkout.changed_files(). Non-mapping documents are skipped.

    Raises:
        yaml.YAMLError: If a file is not valid YAML.
    """
    manifests: list[dict[str, Any]] = []
    for path in paths:
        with Path(path).open() as f:
            for document in yaml.safe_load_all(f):
                if isinstance(document, dict):
                    manifests.append(document)
                elif document is not None:
                    logger.debug("Skipping non-mapping document in %s", path)
    return ResourceProvider.from_manifests(manifests)


def load_controllers_by_kind(
    kind: SupportedController, resources: ResourceProvider
) -> list[WorkloadController]:
    """
    Controllers of one kind.

    Raises:
        ValueError: If `resources` holds no workload of that kind.
    """
    controllers: list[WorkloadController] = [
        Workload(controller_kind=kind, manifest=manifest) for manifest in resources.of_kind(kind)
    ]
    if not controllers:
        raise ValueError(f"Controller type ({kind.value}) does not have a generator")
    return controllers
