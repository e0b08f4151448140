"""
Custom resource definitions the agent installs before syncing.

The table is built on demand and returned as an immutable tuple, so
nothing depends on import order to populate it.
"""

from __future__ import annotations

from typing import Any

import yaml

C7N_HELM_RELEASE_CRD = """\
apiVersion: apiextensions.k8s.io/v1beta1
kind: CustomResourceDefinition
metadata:
  name: c7nhelmreleases.choerodon.io
spec:
  group: choerodon.io
  names:
    kind: C7NHelmRelease
    listKind: C7NHelmReleaseList
    plural: c7nhelmreleases
    singular: c7nhelmrelease
  scope: Namespaced
  version: v1alpha1
"""


def crd_manifests() -> tuple[str, ...]:
    """YAML documents for every CRD, in installation order."""
    return (C7N_HELM_RELEASE_CRD,)


def crd_names() -> tuple[str, ...]:
    """metadata.name of every CRD in crd_manifests()."""
    names = []
    for manifest in crd_manifests():
        document: dict[str, Any] = yaml.safe_load(manifest)
        names.append(document["metadata"]["name"])
    return tuple(names)
