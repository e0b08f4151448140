"""
Workload controllers read from manifest files.

Example:
    >>> from gitsync.core.workloads import SupportedController, load_resources
    >>> absolute, _ = checkout.changed_files(ctx, "HEAD~1")
    >>> resources = load_resources(absolute)
    >>> for controller in load_controllers_by_kind(SupportedController.DEPLOYMENTS, resources):
    ...     print(controller.name(), controller.pod_spec().get("containers"))
"""

from .controllers import (
    ResourceProvider,
    SupportedController,
    Workload,
    WorkloadController,
    load_controllers_by_kind,
    load_resources,
    pod_template,
)

__all__ = [
    "ResourceProvider",
    "SupportedController",
    "Workload",
    "WorkloadController",
    "load_controllers_by_kind",
    "load_resources",
    "pod_template",
]
