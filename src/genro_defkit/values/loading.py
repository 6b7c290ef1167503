# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Loading functions for value trees.

Configuration data is frozen when it is bound to a ValueTree: mappings
become read-only proxies and sequences become tuples. Rendered output is
thawed back to plain dicts and lists.

YAML sources are parsed with PyYAML's safe loader.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from types import MappingProxyType
from typing import Any, TYPE_CHECKING

import yaml

if TYPE_CHECKING:
    from .core import ValueTree


def freeze(data: Any) -> Any:
    """Return a deep read-only copy of plain configuration data.

    Args:
        data: Nested dicts, lists, tuples and scalars.

    Returns:
        The same shape with every mapping wrapped in a MappingProxyType
        and every list or tuple converted to a tuple.

    Example:
        >>> frozen = freeze({'ports': [{'port': 80}]})
        >>> frozen['ports'][0]['port']
        80
    """
    if isinstance(data, Mapping):
        return MappingProxyType({key: freeze(value) for key, value in data.items()})
    if isinstance(data, (list, tuple)):
        return tuple(freeze(item) for item in data)
    return data


def thaw(data: Any) -> Any:
    """Return a mutable deep copy of frozen data (dicts and lists)."""
    if isinstance(data, Mapping):
        return {key: thaw(value) for key, value in data.items()}
    if isinstance(data, tuple):
        return [thaw(item) for item in data]
    return data


def load_yaml(text: str) -> ValueTree:
    """Parse a YAML document into a ValueTree.

    Args:
        text: YAML source. An empty document gives an empty tree.

    Returns:
        A ValueTree bound to the parsed data.

    Raises:
        TypeError: If the document is a scalar rather than a map or list.
        yaml.YAMLError: If the text is not valid YAML.
    """
    from .core import ValueTree

    data = yaml.safe_load(text)
    if data is None:
        return ValueTree()
    if not isinstance(data, (dict, list)):
        raise TypeError(
            f"YAML source must be a mapping or a sequence, not {type(data).__name__}"
        )
    return ValueTree(data)


def load_yaml_file(path: str | Path) -> ValueTree:
    """Read a YAML file into a ValueTree. See load_yaml()."""
    return load_yaml(Path(path).read_text(encoding='utf-8'))
