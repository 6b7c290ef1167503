# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Template - a component definition assembled in Python.

The template is the "cover" object tying everything together: it hands
out parameter references, owns the helper registry and the output
documents, and renders them all against one configuration snapshot.

Example:
    >>> tpl = Template('webservice')
    >>> mounts = tpl.param('volumeMounts')
    >>> container_mounts = (
    ...     tpl.helper('containerMountsArray')
    ...     .from_fields(mounts, 'pvc', 'emptyDir')
    ...     .pick('name', 'mountPath')
    ...     .build()
    ... )
    >>> deployment = tpl.output
    >>> deployment.set('spec.template.spec.containers[0].image', tpl.param('image'))
    >>> deployment.set_if(IsSet(mounts),
    ...                   'spec.template.spec.containers[0].volumeMounts',
    ...                   container_mounts)
    >>> print(tpl.to_yaml({'image': 'nginx'}))
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

import yaml

from .document import Document
from .exceptions import DefinitionError, DuplicateHelperError
from .helpers import HelperBuilder, HelperVar
from .values import Value, as_tree

logger = logging.getLogger(__name__)


class Template:
    """A component definition: parameters in, documents out.

    Args:
        name: Template name, used in log messages.
        base: Static content of the primary output document.
    """

    __slots__ = ('_name', '_helpers', '_output', '_outputs')

    def __init__(self, name: str = 'template', base: Mapping[str, Any] | None = None) -> None:
        self._name = name
        self._helpers: dict[str, HelperVar] = {}
        self._output = Document('output', base=base)
        self._outputs: dict[str, Document] = {}

    def __repr__(self) -> str:
        return (
            f"Template({self._name!r}, helpers={list(self._helpers)}, "
            f"outputs={list(self._outputs)})"
        )

    @property
    def name(self) -> str:
        return self._name

    # ==================== Parameters ====================

    @property
    def parameter(self) -> Value:
        """Unbound reference to the root of the parameters."""
        return Value()

    def param(self, path: str) -> Value:
        """Unbound reference to one parameter, resolved at render time."""
        return Value(path=path)

    # ==================== Helpers ====================

    def helper(self, name: str) -> HelperBuilder:
        """Open a builder for a helper registered on this template.

        Names are checked when the helper is built: building the same
        definition twice gives back the registered helper, while a
        different definition under a taken name raises DuplicateHelperError.
        """
        return HelperBuilder(name, template=self)

    def _register_helper(self, helper: HelperVar) -> HelperVar:
        registered = self._helpers.get(helper.name)
        if registered is not None:
            if registered == helper:
                logger.debug("Template '%s' reuses helper '%s'", self._name, helper.name)
                return registered
            raise DuplicateHelperError(
                f"Template '{self._name}' already has a helper named '{helper.name}'"
            )
        self._helpers[helper.name] = helper
        return helper

    @property
    def helpers(self) -> Mapping[str, HelperVar]:
        """Read-only view of the registered helpers, in build order."""
        return MappingProxyType(self._helpers)

    def get_helper(self, name: str) -> HelperVar:
        """Return a registered helper.

        Raises:
            KeyError: If no helper has that name.
        """
        return self._helpers[name]

    # ==================== Outputs ====================

    @property
    def output(self) -> Document:
        """The primary output document."""
        return self._output

    def outputs(self, name: str, base: Mapping[str, Any] | None = None) -> Document:
        """Return the auxiliary output document name, creating it if needed."""
        if not isinstance(name, str) or not name:
            raise DefinitionError(f"Invalid output name {name!r}")
        document = self._outputs.get(name)
        if document is None:
            document = Document(name, base=base)
            self._outputs[name] = document
        elif base is not None:
            raise DefinitionError(
                f"Output '{name}' already exists, its base cannot be replaced"
            )
        return document

    # ==================== Rendering ====================

    def evaluate_helpers(self, values: Any = None) -> dict[str, list[Any]]:
        """Evaluate every registered helper against one snapshot."""
        tree = as_tree(values)
        return {name: helper.evaluate(tree) for name, helper in self._helpers.items()}

    def render(self, values: Any = None) -> dict[str, Any]:
        """Render all documents against one configuration snapshot.

        Returns:
            {'output': {...}, 'outputs': {name: {...}, ...}}
        """
        tree = as_tree(values)
        result = {
            'output': self._output.render(tree),
            'outputs': {name: doc.render(tree) for name, doc in self._outputs.items()},
        }
        logger.debug(
            "Template '%s' rendered: output + %d auxiliary output(s)",
            self._name, len(self._outputs),
        )
        return result

    def to_yaml(self, values: Any = None) -> str:
        """Render to a multi-document YAML stream.

        The primary output comes first, auxiliary outputs follow in
        creation order.
        """
        rendered = self.render(values)
        documents = [rendered['output'], *rendered['outputs'].values()]
        return '---\n'.join(
            yaml.safe_dump(doc, default_flow_style=False, sort_keys=False)
            for doc in documents
        )
