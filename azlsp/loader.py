"""Lookup of resource and function definitions in a schema directory."""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Optional

from .index import FunctionDefinition, PathLike, SchemaIndex
from .resource_types import ResourceFunctionType, ResourceType

_log = logging.getLogger(__name__)

INDEX_FILE = "index.json"


class SchemaLoader:
    """Loads the schema index under ``root`` once and answers lookups against it."""

    def __init__(self, root: PathLike) -> None:
        self._root = Path(root)
        self._schema: Optional[SchemaIndex] = None
        self._lock = threading.Lock()

    def get_schema(self) -> Optional[SchemaIndex]:
        """Return the schema index, or None if it cannot be loaded."""
        with self._lock:
            if self._schema is None:
                try:
                    raw = (self._root / INDEX_FILE).read_bytes()
                except OSError as exc:
                    _log.error("failed to load schema index: %s", exc)
                    return None
                try:
                    self._schema = SchemaIndex.from_json(json.loads(raw), self._root)
                except ValueError as exc:
                    _log.error("failed to unmarshal schema index: %s", exc)
                    return None
            for resource in self._schema.resources.values():
                if resource.definitions:
                    try:
                        resource.definitions[0].get_definition()
                    except (OSError, ValueError):
                        pass
            return self._schema

    def _require_schema(self) -> SchemaIndex:
        schema = self.get_schema()
        if schema is None:
            raise RuntimeError("failed to load azure schema index")
        return schema

    def get_api_versions(self, resource_type: str) -> list[str]:
        """Sorted api-versions known for a resource type, matched case-insensitively."""
        schema = self.get_schema()
        if schema is None:
            return []
        wanted = resource_type.casefold()
        return sorted(
            definition.api_version
            for key, resource in schema.resources.items()
            if key.casefold() == wanted
            for definition in resource.definitions
        )

    def get_resource_definition_by_resource_type(self, azure_resource_type: str) -> ResourceType:
        """Look up a definition given as ``<resource type>@<api-version>``."""
        parts = azure_resource_type.split("@")
        if len(parts) != 2:
            raise ValueError(f"input {azure_resource_type} is invalid")
        return self.get_resource_definition(parts[0], parts[1])

    def get_resource_definition(self, resource_type: str, api_version: str) -> ResourceType:
        schema = self._require_schema()
        wanted = resource_type.casefold()
        for key, resource in schema.resources.items():
            if key.casefold() != wanted:
                continue
            for definition in resource.definitions:
                if definition.api_version == api_version:
                    return definition.get_definition()
        raise LookupError(
            f"failed to find resource type {resource_type} api-version {api_version} "
            "in azure schema index"
        )

    def list_resource_functions(
        self, resource_type: str, api_version: str
    ) -> list[FunctionDefinition]:
        schema = self._require_schema()
        wanted = resource_type.casefold()
        return [
            definition
            for key, function in schema.functions.items()
            if key.casefold() == wanted
            for definition in function.definitions
            if definition.api_version == api_version
        ]

    def get_resource_function(
        self, resource_type: str, api_version: str, name: str
    ) -> Optional[ResourceFunctionType]:
        """Return the named function, or None if there is none that loads."""
        for definition in self.list_resource_functions(resource_type, api_version):
            try:
                loaded = definition.get_definition()
            except (OSError, ValueError):
                continue
            if loaded.name == name:
                return loaded
        return None