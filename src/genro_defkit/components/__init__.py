# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Components - shared helpers and parameter types for workload definitions."""

from .shared import (
    VOLUME_MOUNT_SOURCES,
    container_mounts_deduped_helper,
    container_mounts_helper,
    container_ports_transform,
    image_pull_secrets_transform,
    pod_volume_mappings,
    pod_volumes_deduped_helper,
    pod_volumes_helper,
    service_ports_transform,
)
from .types import (
    ConfigMapMount,
    EmptyDirMount,
    Env,
    EnvValueFrom,
    ExecProbe,
    HealthProbe,
    HostAlias,
    HostPathMount,
    HTTPGetProbe,
    HTTPHeader,
    KeyRef,
    Port,
    PVCMount,
    ResourceLimit,
    SecretMount,
    TCPSocketProbe,
    VolumeItem,
    VolumeMounts,
    default_health_probe,
    to_values,
)

__all__ = [
    'VOLUME_MOUNT_SOURCES',
    'container_mounts_helper',
    'container_mounts_deduped_helper',
    'pod_volume_mappings',
    'pod_volumes_helper',
    'pod_volumes_deduped_helper',
    'image_pull_secrets_transform',
    'container_ports_transform',
    'service_ports_transform',
    'to_values',
    'default_health_probe',
    'KeyRef',
    'EnvValueFrom',
    'Env',
    'Port',
    'VolumeItem',
    'PVCMount',
    'ConfigMapMount',
    'SecretMount',
    'EmptyDirMount',
    'HostPathMount',
    'VolumeMounts',
    'ExecProbe',
    'HTTPHeader',
    'HTTPGetProbe',
    'TCPSocketProbe',
    'HealthProbe',
    'HostAlias',
    'ResourceLimit',
]
