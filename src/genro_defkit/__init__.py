# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Genro-Defkit - Declarative field mapping and template composition.

Turns multi-source configuration trees into normalized, ordered output
collections (volume lists, port lists, ...) through declarative field
maps, bucket extraction, fallback chains and stable deduplication.
"""

__version__ = "0.1.0"

from .collection import CollectionOp, each
from .document import Document
from .exceptions import (
    DefinitionError,
    DefkitError,
    DuplicateHelperError,
    FrozenHelperError,
    HelperSourceError,
    InvalidRuleError,
    MissingSourceMappingError,
)
from .extract import Record, from_fields
from .helpers import HelperBuilder, HelperVar
from .rules import (
    Condition,
    FieldMap,
    FieldRule,
    Format,
    IsSet,
    Nested,
    Not,
    OptionalRef,
    Or,
    Ref,
)
from .template import Template
from .values import ABSENT, Value, ValueTree, load_yaml, load_yaml_file

__all__ = [
    # Values
    "ABSENT",
    "Value",
    "ValueTree",
    "load_yaml",
    "load_yaml_file",
    # Rules
    "FieldRule",
    "Ref",
    "OptionalRef",
    "Or",
    "Format",
    "Nested",
    "FieldMap",
    "Condition",
    "IsSet",
    "Not",
    # Pipelines
    "Record",
    "from_fields",
    "HelperBuilder",
    "HelperVar",
    "CollectionOp",
    "each",
    # Output
    "Document",
    "Template",
    # Exceptions
    "DefkitError",
    "DefinitionError",
    "InvalidRuleError",
    "HelperSourceError",
    "MissingSourceMappingError",
    "DuplicateHelperError",
    "FrozenHelperError",
]
