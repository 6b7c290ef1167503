# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Values package - Read-only configuration trees.

The package is organized into:
- core: Value handles, ValueTree snapshots, path parsing and ABSENT
- loading: freezing/thawing of plain data and YAML sources

Example:
    >>> from genro_defkit.values import ValueTree
    >>> tree = ValueTree({'config': {'name': 'MyApp'}})
    >>> tree['config.name']
    'MyApp'
"""

from .core import ABSENT, Deferred, Value, ValueTree, as_tree, format_path, parse_path
from .loading import freeze, load_yaml, load_yaml_file, thaw

__all__ = [
    "ABSENT",
    "Deferred",
    "Value",
    "ValueTree",
    "as_tree",
    "format_path",
    "parse_path",
    "freeze",
    "thaw",
    "load_yaml",
    "load_yaml_file",
]
