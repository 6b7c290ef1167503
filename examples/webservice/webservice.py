# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Webservice definition - a Deployment plus Service built from parameters.

This example shows how a component definition is assembled with defkit:
parameters are referenced, never read, while the template is built; the
helpers and collections only produce values once the template is rendered
against a concrete configuration.

Instead of hand-writing the same loops in every definition:

    volumes = []
    for kind in ('pvc', 'configMap', ...):
        for mount in params.get('volumeMounts', {}).get(kind, []):
            ...

You declare the mapping once:

    volumes = pod_volumes_deduped_helper(tpl, tpl.param('volumeMounts'))
    deployment.set_if(IsSet(volume_mounts), 'spec.template.spec.volumes', volumes)
"""

from genro_defkit import IsSet, Template
from genro_defkit.components import (
    ConfigMapMount,
    EmptyDirMount,
    Port,
    PVCMount,
    VolumeMounts,
    container_mounts_helper,
    container_ports_transform,
    image_pull_secrets_transform,
    pod_volumes_deduped_helper,
    service_ports_transform,
)

CONTAINER = 'spec.template.spec.containers[0]'


def webservice() -> Template:
    """Build the webservice template."""
    tpl = Template('webservice', base={
        'apiVersion': 'apps/v1',
        'kind': 'Deployment',
    })

    name = tpl.param('name')
    image = tpl.param('image')
    ports = tpl.param('ports')
    volume_mounts = tpl.param('volumeMounts')
    pull_secrets = tpl.param('imagePullSecrets')

    container_mounts = container_mounts_helper(tpl, volume_mounts)
    pod_volumes = pod_volumes_deduped_helper(tpl, volume_mounts)

    deployment = tpl.output
    deployment.set('metadata.name', name)
    deployment.set('spec.selector.matchLabels.app', name)
    deployment.set('spec.template.metadata.labels.app', name)
    deployment.set(f'{CONTAINER}.name', name)
    deployment.set(f'{CONTAINER}.image', image)
    deployment.set_if(IsSet(ports), f'{CONTAINER}.ports', container_ports_transform(ports))
    deployment.set_if(IsSet(volume_mounts), f'{CONTAINER}.volumeMounts', container_mounts)
    deployment.set_if(IsSet(volume_mounts), 'spec.template.spec.volumes', pod_volumes)
    deployment.set_if(
        IsSet(pull_secrets),
        'spec.template.spec.imagePullSecrets',
        image_pull_secrets_transform(pull_secrets),
    )

    service = tpl.outputs('service', base={'apiVersion': 'v1', 'kind': 'Service'})
    service.set_if(IsSet(ports), 'metadata.name', name)
    service.set_if(IsSet(ports), 'spec.selector.app', name)
    service.set_if(IsSet(ports), 'spec.ports', service_ports_transform(ports))

    return tpl


# ==================== Demo ====================

if __name__ == '__main__':
    parameters = {
        'name': 'nginx',
        'image': 'nginx:1.21-alpine',
        'ports': [
            Port(80, name='http').to_values(),
            Port(443).to_values(),
        ],
        'imagePullSecrets': ['registry-cred'],
        'volumeMounts': VolumeMounts(
            pvc=[PVCMount('data', '/usr/share/nginx/html', claim_name='nginx-data')],
            config_map=[
                ConfigMapMount('config', '/etc/nginx/conf.d', cm_name='nginx-config'),
                ConfigMapMount('config', '/etc/nginx/nginx.conf',
                               sub_path='nginx.conf', cm_name='nginx-config'),
            ],
            empty_dir=[EmptyDirMount('cache', '/var/cache/nginx')],
        ).to_values(),
    }

    print(webservice().to_yaml(parameters))
