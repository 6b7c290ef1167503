# Copyright 2025 Softwell S.r.l. - Genropy Team
# SPDX-License-Identifier: Apache-2.0

"""Defkit exceptions."""

from __future__ import annotations


class DefkitError(Exception):
    """Base exception for defkit errors."""

    pass


class DefinitionError(DefkitError):
    """Raised when a mapping or pipeline definition is structurally invalid.

    Definition errors are detected while a template is being assembled,
    never while it is rendered.
    """

    pass


class InvalidRuleError(DefinitionError):
    """Raised when a FieldMap contains something that is not a valid rule."""

    pass


class HelperSourceError(DefinitionError):
    """Raised when a helper has no input, or more than one input."""

    pass


class MissingSourceMappingError(DefinitionError):
    """Raised when map_by_source lacks an entry for a declared bucket."""

    def __init__(self, helper: str, missing: list[str]) -> None:
        self.helper = helper
        self.missing = list(missing)
        super().__init__(
            f"Helper '{helper}' has no field mapping for bucket(s): "
            f"{', '.join(self.missing)}"
        )


class DuplicateHelperError(DefinitionError):
    """Raised when a helper name is registered twice on the same template."""

    pass


class FrozenHelperError(DefinitionError):
    """Raised when a helper builder is modified after build()."""

    pass
