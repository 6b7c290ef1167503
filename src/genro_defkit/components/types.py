# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Typed configuration records for the built-in components.

These dataclasses describe the parameter shapes the shared helpers read.
They are a convenience for building configuration in Python: to_values()
turns any of them into the camelCase tree a template is rendered with,
leaving out fields that are None.

Example:
    >>> mounts = VolumeMounts(pvc=[PVCMount('data', '/data', claim_name='data-pvc')])
    >>> mounts.to_values()
    {'pvc': [{'name': 'data', 'mountPath': '/data', 'claimName': 'data-pvc'}]}
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any


def _key(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(part[:1].upper() + part[1:] for part in rest)


def to_values(obj: Any) -> Any:
    """Convert dataclasses (recursively) into plain camelCase data."""
    if is_dataclass(obj) and not isinstance(obj, type):
        result: dict[str, Any] = {}
        for f in fields(obj):
            value = getattr(obj, f.name)
            if value is None:
                continue
            result[_key(f.name)] = to_values(value)
        return result
    if isinstance(obj, (list, tuple)):
        return [to_values(item) for item in obj]
    if isinstance(obj, dict):
        return {key: to_values(value) for key, value in obj.items()}
    return obj


class _Values:
    """Mixin adding to_values() to the records below."""

    def to_values(self) -> Any:
        return to_values(self)


# ==================== Environment ====================


@dataclass
class KeyRef(_Values):
    """A key of a Secret or ConfigMap."""

    name: str
    key: str


@dataclass
class EnvValueFrom(_Values):
    secret_key_ref: KeyRef | None = None
    config_map_key_ref: KeyRef | None = None


@dataclass
class Env(_Values):
    """An environment variable, given directly or from a source."""

    name: str
    value: str | None = None
    value_from: EnvValueFrom | None = None


# ==================== Ports ====================


@dataclass
class Port(_Values):
    """A port; container_port defaults to port when not given."""

    port: int
    container_port: int | None = None
    name: str | None = None
    protocol: str = 'TCP'
    expose: bool = False
    node_port: int | None = None


# ==================== Volumes ====================


@dataclass
class VolumeItem(_Values):
    """Key-to-path mapping for ConfigMap or Secret volumes."""

    key: str
    path: str
    mode: int = 0o644


@dataclass
class PVCMount(_Values):
    name: str
    mount_path: str
    sub_path: str | None = None
    claim_name: str = ''


@dataclass
class ConfigMapMount(_Values):
    name: str
    mount_path: str
    sub_path: str | None = None
    default_mode: int = 0o644
    cm_name: str = ''
    items: list[VolumeItem] | None = None


@dataclass
class SecretMount(_Values):
    name: str
    mount_path: str
    sub_path: str | None = None
    default_mode: int = 0o644
    secret_name: str = ''
    items: list[VolumeItem] | None = None


@dataclass
class EmptyDirMount(_Values):
    name: str
    mount_path: str
    sub_path: str | None = None
    medium: str = ''


@dataclass
class HostPathMount(_Values):
    name: str
    mount_path: str
    sub_path: str | None = None
    path: str = ''


@dataclass
class VolumeMounts(_Values):
    """Volume mounts grouped by kind, one bucket per volume source."""

    pvc: list[PVCMount] | None = None
    config_map: list[ConfigMapMount] | None = None
    secret: list[SecretMount] | None = None
    empty_dir: list[EmptyDirMount] | None = None
    host_path: list[HostPathMount] | None = None


# ==================== Probes ====================


@dataclass
class ExecProbe(_Values):
    command: list[str] = field(default_factory=list)


@dataclass
class HTTPHeader(_Values):
    name: str
    value: str


@dataclass
class HTTPGetProbe(_Values):
    path: str
    port: int
    host: str | None = None
    scheme: str = 'HTTP'
    http_headers: list[HTTPHeader] | None = None


@dataclass
class TCPSocketProbe(_Values):
    port: int


@dataclass
class HealthProbe(_Values):
    """Container health probe: one handler plus timing thresholds."""

    exec: ExecProbe | None = None
    http_get: HTTPGetProbe | None = None
    tcp_socket: TCPSocketProbe | None = None
    initial_delay_seconds: int = 0
    period_seconds: int = 10
    timeout_seconds: int = 1
    success_threshold: int = 1
    failure_threshold: int = 3


def default_health_probe() -> HealthProbe:
    """A probe with the Kubernetes default timings and no handler."""
    return HealthProbe()


# ==================== Misc ====================


@dataclass
class HostAlias(_Values):
    ip: str
    hostnames: list[str] = field(default_factory=list)


@dataclass
class ResourceLimit(_Values):
    cpu: str | None = None
    memory: str | None = None
