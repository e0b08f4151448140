"""Tests for workload controllers read from manifests."""

from pathlib import Path

import pytest

from gitsync.core.workloads import (
    ResourceProvider,
    SupportedController,
    Workload,
    load_controllers_by_kind,
    load_resources,
    pod_template,
)

DEPLOYMENT = {
    "apiVersion": "apps/v1",
    "kind": "Deployment",
    "metadata": {"name": "app", "namespace": "dev"},
    "spec": {"template": {"spec": {"containers": [{"name": "app", "image": "app:1"}]}}},
}

CRON_JOB = {
    "apiVersion": "batch/v1",
    "kind": "CronJob",
    "metadata": {"name": "nightly"},
    "spec": {
        "schedule": "0 0 * * *",
        "jobTemplate": {
            "spec": {"template": {"spec": {"containers": [{"name": "job", "image": "job:1"}]}}}
        },
    },
}


class TestWorkload:
    """Tests for the Workload capability view."""

    def test_deployment(self):
        workload = Workload(SupportedController.DEPLOYMENTS, DEPLOYMENT)
        assert workload.name() == "app"
        assert workload.namespace() == "dev"
        assert workload.kind() is SupportedController.DEPLOYMENTS
        assert workload.pod_spec()["containers"][0]["image"] == "app:1"

    def test_cron_job_template_path(self):
        workload = Workload(SupportedController.CRON_JOBS, CRON_JOB)
        assert workload.namespace() == ""
        assert workload.pod_spec()["containers"][0]["name"] == "job"

    def test_missing_template(self):
        manifest = {"kind": "Job", "metadata": {"name": "empty"}}
        assert pod_template(manifest, SupportedController.JOBS) == {}
        assert Workload(SupportedController.JOBS, manifest).pod_spec() == {}


class TestResourceProvider:
    """Tests for grouping manifests by kind."""

    def test_groups_known_kinds(self):
        service = {"kind": "Service", "metadata": {"name": "svc"}}
        provider = ResourceProvider.from_manifests([DEPLOYMENT, CRON_JOB, service])

        assert provider.of_kind(SupportedController.DEPLOYMENTS) == [DEPLOYMENT]
        assert provider.of_kind(SupportedController.CRON_JOBS) == [CRON_JOB]
        assert provider.of_kind(SupportedController.DAEMON_SETS) == []

    def test_load_resources_multi_document(self, tmp_path: Path):
        path = tmp_path / "all.yaml"
        path.write_text(
            "apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: cfg\n"
            "---\n"
            "apiVersion: apps/v1\nkind: StatefulSet\nmetadata:\n  name: db\n"
            "spec:\n  template:\n    spec:\n      containers: []\n"
            "---\n"
        )
        provider = load_resources([path])
        [stateful_set] = provider.of_kind(SupportedController.STATEFUL_SETS)
        assert stateful_set["metadata"]["name"] == "db"


class TestLoadControllersByKind:
    """Tests for load_controllers_by_kind."""

    def test_returns_controllers(self):
        provider = ResourceProvider.from_manifests([DEPLOYMENT])
        [controller] = load_controllers_by_kind(SupportedController.DEPLOYMENTS, provider)
        assert controller.name() == "app"

    def test_unsupported_kind(self):
        provider = ResourceProvider.from_manifests([DEPLOYMENT])
        with pytest.raises(ValueError, match=r"Controller type \(DaemonSets\)"):
            load_controllers_by_kind(SupportedController.DAEMON_SETS, provider)

    def test_from_checkout_changes(self, checkout, ctx):
        absolute, _ = checkout.changed_files(ctx, "HEAD~1")
        provider = load_resources(absolute)
        [controller] = load_controllers_by_kind(SupportedController.DEPLOYMENTS, provider)
        assert controller.namespace() == "dev"
        assert controller.pod_spec()["containers"][0]["image"] == (
            "registry.example.com/app:1.0.0"
        )
