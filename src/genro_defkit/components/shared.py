# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Shared helpers reused across component definitions.

Volume mounts, image pull secrets and ports show up in most workload
definitions; these functions build the matching helpers and collection
operations so every definition produces the same shapes.

Usage:
    >>> tpl = Template('webservice')
    >>> volume_mounts = tpl.param('volumeMounts')
    >>> mounts = container_mounts_helper(tpl, volume_mounts)
    >>> tpl.output.set_if(IsSet(volume_mounts),
    ...                   'spec.template.spec.containers[0].volumeMounts', mounts)
"""

from __future__ import annotations

import warnings

from ..collection import CollectionOp, each
from ..helpers import HelperVar
from ..rules import FieldMap, Format, IsSet, Nested, OptionalRef, Ref
from ..template import Template
from ..values import Value

#: Volume mount buckets, in output order.
VOLUME_MOUNT_SOURCES = ('pvc', 'configMap', 'secret', 'emptyDir', 'hostPath')


# ==================== Volume Mounts ====================


def container_mounts_helper(tpl: Template, volume_mounts: Value) -> HelperVar:
    """Container volumeMounts: [{name, mountPath, subPath?}] from every bucket."""
    return (
        tpl.helper('containerMountsArray')
        .from_fields(volume_mounts, *VOLUME_MOUNT_SOURCES)
        .pick('name', 'mountPath')
        .pick_if(IsSet('subPath'), 'subPath')
        .build()
    )


def container_mounts_deduped_helper(tpl: Template, volume_mounts: Value) -> HelperVar:
    """Container volumeMounts with duplicate names removed.

    Deprecated: mounting the same volume at several paths is valid, so
    container mounts should not be deduplicated. Use
    container_mounts_helper(); only pod volumes need deduplication.
    """
    warnings.warn(
        "container_mounts_deduped_helper is deprecated, use container_mounts_helper",
        DeprecationWarning,
        stacklevel=2,
    )
    mounts = (
        tpl.helper('mountsArray')
        .from_fields(volume_mounts, *VOLUME_MOUNT_SOURCES)
        .pick('name', 'mountPath')
        .pick_if(IsSet('subPath'), 'subPath')
        .build()
    )
    return tpl.helper('deDupMountsArray').from_helper(mounts).dedupe('name').build()


def pod_volume_mappings() -> dict[str, FieldMap]:
    """Per-bucket field maps turning mounts into pod volume specs."""
    return {
        'pvc': FieldMap({
            'name': Ref('name'),
            'persistentVolumeClaim': Nested({'claimName': Ref('claimName')}),
        }),
        'configMap': FieldMap({
            'name': Ref('name'),
            'configMap': Nested({
                'name': Ref('cmName'),
                'defaultMode': Ref('defaultMode'),
                'items': OptionalRef('items'),
            }),
        }),
        'secret': FieldMap({
            'name': Ref('name'),
            'secret': Nested({
                'secretName': Ref('secretName'),
                'defaultMode': Ref('defaultMode'),
                'items': OptionalRef('items'),
            }),
        }),
        'emptyDir': FieldMap({
            'name': Ref('name'),
            'emptyDir': Nested({'medium': Ref('medium')}),
        }),
        'hostPath': FieldMap({
            'name': Ref('name'),
            'hostPath': Nested({'path': Ref('path')}),
        }),
    }


def pod_volumes_helper(tpl: Template, volume_mounts: Value) -> HelperVar:
    """Pod volumes: each bucket mapped to its own volume source shape."""
    return (
        tpl.helper('volumesList')
        .from_fields(volume_mounts, *VOLUME_MOUNT_SOURCES)
        .map_by_source(pod_volume_mappings())
        .build()
    )


def pod_volumes_deduped_helper(tpl: Template, volume_mounts: Value) -> HelperVar:
    """Pod volumes with duplicate names removed (first wins).

    Registers both 'volumesList' and 'deDupVolumesList' on tpl.
    """
    volumes = pod_volumes_helper(tpl, volume_mounts)
    return tpl.helper('deDupVolumesList').from_helper(volumes).dedupe('name').build()


# ==================== Image Pull Secrets ====================


def image_pull_secrets_transform(image_pull_secrets: Value) -> CollectionOp:
    """['a', 'b'] -> [{name: 'a'}, {name: 'b'}]."""
    return each(image_pull_secrets).wrap('name')


# ==================== Ports ====================


def container_ports_transform(ports: Value) -> CollectionOp:
    """{port, name?, protocol} -> {containerPort, name, protocol}.

    The name defaults to 'port-<port>'.
    """
    return each(ports).map(FieldMap({
        'containerPort': Ref('port'),
        'name': Ref('name') | Format('port-%v', Ref('port')),
        'protocol': Ref('protocol'),
    }))


def service_ports_transform(ports: Value) -> CollectionOp:
    """{port, name?, protocol} -> {port, targetPort, name, protocol}.

    port and targetPort fall back to containerPort; the name defaults to
    'port-<port>'.
    """
    port = Ref('port') | Ref('containerPort')
    return each(ports).map(FieldMap({
        'port': port,
        'targetPort': port,
        'name': Ref('name') | Format('port-%v', port),
        'protocol': Ref('protocol'),
    }))
