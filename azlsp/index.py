"""The schema index: where each resource and function type lives among the type files."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Type, TypeVar, Union

from .resource_types import ResourceFunctionType, ResourceType, Schema
from .schema_types import TypeBase

PathLike = Union[str, "os.PathLike[str]"]

_T = TypeVar("_T", bound=TypeBase)


@dataclass(frozen=True)
class TypeLocation:
    """A type's position: a types file relative to the schema root and an index into it."""

    location: str
    index: int

    def _load(self, root: PathLike, expected: Type[_T]) -> _T:
        path = Path(root) / self.location
        schema = Schema.loads(path.read_bytes())
        if 0 <= self.index < len(schema.types):
            found = schema.types[self.index]
            if isinstance(found, expected):
                return found
        raise ValueError("index invalid or the type is not a resource type")

    def load_resource_type_definition(self, root: PathLike) -> ResourceType:
        """Read the types file under ``root`` and return the resource type at the index."""
        return self._load(root, ResourceType)

    def load_function_type_definition(self, root: PathLike) -> ResourceFunctionType:
        """Read the types file under ``root`` and return the function type at the index."""
        return self._load(root, ResourceFunctionType)


def _parse_location(value: Any) -> TypeLocation:
    if not isinstance(value, Mapping):
        raise ValueError(f"type location must be an object, got {value!r}")
    location = value.get("RelativePath")
    index = value.get("Index")
    if location is None:
        location = ""
    if index is None:
        index = 0
    if not isinstance(location, str):
        raise ValueError(f"RelativePath must be a string, got {location!r}")
    if isinstance(index, bool) or not isinstance(index, int):
        raise ValueError(f"Index must be an integer, got {index!r}")
    return TypeLocation(location=location, index=index)


@dataclass
class ResourceDefinition:
    """One api-version of a resource type, loaded from its types file on first use."""

    location: TypeLocation
    api_version: str
    root: Path
    definition: Optional[ResourceType] = field(default=None, compare=False, repr=False)

    def get_definition(self) -> ResourceType:
        if self.definition is None:
            self.definition = self.location.load_resource_type_definition(self.root)
        return self.definition


@dataclass
class FunctionDefinition:
    """One function of a resource type at an api-version, loaded on first use."""

    location: TypeLocation
    api_version: str
    root: Path
    definition: Optional[ResourceFunctionType] = field(default=None, compare=False, repr=False)

    def get_definition(self) -> ResourceFunctionType:
        if self.definition is None:
            self.definition = self.location.load_function_type_definition(self.root)
        return self.definition


@dataclass
class Resource:
    definitions: list[ResourceDefinition] = field(default_factory=list)


@dataclass
class Function:
    definitions: list[FunctionDefinition] = field(default_factory=list)


@dataclass
class SchemaIndex:
    """All known resource types and resource functions, keyed by resource type."""

    resources: dict[str, Resource] = field(default_factory=dict)
    functions: dict[str, Function] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Any, root: PathLike) -> "SchemaIndex":
        """Build the index from parsed ``index.json`` content; type files live under ``root``."""
        if isinstance(data, (str, bytes)):
            data = json.loads(data)
        if not isinstance(data, Mapping):
            raise ValueError(f"schema index must be an object, got {type(data).__name__}")
        raw_resources = data.get("Resources")
        raw_functions = data.get("Functions")
        if raw_resources is None:
            raise ValueError("resources block is nil")
        if raw_functions is None:
            raise ValueError("functions block is nil")
        if not isinstance(raw_resources, Mapping) or not isinstance(raw_functions, Mapping):
            raise ValueError("resources and functions blocks must be objects")

        base = Path(root)
        index = cls()
        for key, value in raw_resources.items():
            resource_type, sep, api_version = key.partition("@")
            if not sep:
                raise ValueError(f"api-version is not specified, type: {key}")
            resource = index.resources.setdefault(resource_type, Resource())
            resource.definitions.append(
                ResourceDefinition(
                    location=_parse_location(value), api_version=api_version, root=base
                )
            )

        for name, versions in raw_functions.items():
            if not isinstance(versions, Mapping):
                raise ValueError(f"functions of {name} must be an object, got {versions!r}")
            for api_version, locations in versions.items():
                function = index.functions.setdefault(name, Function())
                if locations is None:
                    continue
                if not isinstance(locations, list):
                    raise ValueError(f"function locations must be a list, got {locations!r}")
                function.definitions.extend(
                    FunctionDefinition(
                        location=_parse_location(item), api_version=api_version, root=base
                    )
                    for item in locations
                )
        return index