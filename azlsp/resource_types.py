"""Discriminated object, resource and resource function types, and the schema that links them."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Sequence

from .schema_types import (
    ArrayType,
    BuiltInType,
    ObjectProperty,
    ObjectType,
    StringLiteralType,
    TypeBase,
    TypeBaseKind,
    TypeReference,
    UnionType,
    ValidationError,
    _int,
    _mismatch,
    _not_match_any_values,
    _properties_from_json,
    _reference,
    _reject_unknown,
    _should_define,
    _should_not_define_read_only,
    _string,
    _type_name,
)


@dataclass
class DiscriminatedObjectType(TypeBase):
    """An object whose shape is chosen by the value of its discriminator property."""

    name: str = ""
    discriminator: str = ""
    base_properties: dict[str, ObjectProperty] = field(default_factory=dict)
    elements: dict[str, TypeReference] = field(default_factory=dict)

    def _element(self, key: str) -> Optional[TypeBase]:
        reference = self.elements.get(key)
        return reference.type if reference is not None else None

    def get_write_only(self, body: Any) -> Any:
        if body is None or not isinstance(body, dict):
            return None
        result: dict[str, Any] = {}
        for key, prop in self.base_properties.items():
            target = prop.resolved_type
            if key in body and not prop.is_read_only() and target is not None:
                result[key] = target.get_write_only(body[key])
        if self.discriminator not in body:
            return None
        discriminator = body[self.discriminator]
        if not isinstance(discriminator, str):
            return None
        element = self._element(discriminator)
        if element is None:
            return None
        extra = element.get_write_only(body)
        if not isinstance(extra, dict):
            return None
        result.update(extra)
        return result

    def validate(self, body: Any, path: str) -> list[ValidationError]:
        if body is None:
            return []
        if not isinstance(body, dict):
            return [_mismatch(path, "object", _type_name(body))]
        errors: list[ValidationError] = []
        other: dict[str, Any] = {}
        for key, value in body.items():
            prop = self.base_properties.get(key)
            if prop is None:
                other[key] = value
                continue
            child = f"{path}.{key}"
            if prop.is_read_only():
                errors.append(_should_not_define_read_only(child))
            elif prop.resolved_type is not None:
                errors.extend(prop.resolved_type.validate(value, child))

        for key, prop in self.base_properties.items():
            if prop.is_required() and body.get(key) is None:
                errors.append(_should_define(f"{path}.{key}"))

        discriminator_path = f"{path}.{self.discriminator}"
        if self.discriminator not in other:
            errors.append(_should_define(discriminator_path))
            return errors

        discriminator = other[self.discriminator]
        if not isinstance(discriminator, str):
            errors.append(_mismatch(discriminator_path, "string", _type_name(discriminator)))
            return errors

        reference = self.elements.get(discriminator)
        if reference is None:
            errors.append(
                _not_match_any_values(discriminator_path, discriminator, list(self.elements))
            )
        elif reference.type is not None:
            errors.extend(reference.type.validate(other, path))
        return errors

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "DiscriminatedObjectType":
        _reject_unknown(
            data,
            ("Name", "Discriminator", "BaseProperties", "Elements"),
            "discriminated object type",
        )
        result = cls(name=_string(data, "Name"), discriminator=_string(data, "Discriminator"))
        if data.get("BaseProperties") is not None:
            result.base_properties = _properties_from_json(data["BaseProperties"])
        indexes = data.get("Elements")
        if indexes is not None:
            if not isinstance(indexes, dict):
                raise ValueError(f"Elements must be an object of type indexes, got {indexes!r}")
            for key, index in indexes.items():
                if isinstance(index, bool) or not isinstance(index, int):
                    raise ValueError(f"Elements must hold type indexes, got {index!r}")
                result.elements[key] = TypeReference(type_index=index)
        return result


class ScopeType(enum.IntEnum):
    UNKNOWN = 0
    TENANT = 1 << 0
    MANAGEMENT_GROUP = 1 << 1
    SUBSCRIPTION = 1 << 2
    RESOURCE_GROUP = 1 << 3
    EXTENSION = 1 << 4

    def __str__(self) -> str:
        return _SCOPE_LABELS[self]


_SCOPE_LABELS = {
    ScopeType.UNKNOWN: "Unknown",
    ScopeType.TENANT: "Tenant",
    ScopeType.MANAGEMENT_GROUP: "ManagementGroup",
    ScopeType.SUBSCRIPTION: "Subscription",
    ScopeType.RESOURCE_GROUP: "ResourceGroup",
    ScopeType.EXTENSION: "Extension",
}


class ResourceTypeFlag(enum.IntEnum):
    NONE = 0
    READ_ONLY = 1 << 0


@dataclass
class ResourceType(TypeBase):
    """A deployable resource: its name, allowed scopes and body type."""

    name: str = ""
    scope_types: list[ScopeType] = field(default_factory=list)
    body: Optional[TypeReference] = None
    flags: list[ResourceTypeFlag] = field(default_factory=list)

    def _body(self) -> Optional[TypeBase]:
        return self.body.type if self.body is not None else None

    def get_write_only(self, body: Any) -> Any:
        if body is None:
            return None
        target = self._body()
        return target.get_write_only(body) if target is not None else None

    def validate(self, body: Any, path: str) -> list[ValidationError]:
        if body is None:
            return []
        target = self._body()
        return target.validate(body, path) if target is not None else []

    def is_read_only(self) -> bool:
        return ResourceTypeFlag.READ_ONLY in self.flags

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "ResourceType":
        _reject_unknown(
            data, ("Name", "ScopeType", "ReadOnlyScopes", "Body", "Flags"), "resource type"
        )
        result = cls(name=_string(data, "Name"), body=_reference(data, "Body"))
        scope_bits = _int(data, "ScopeType")
        if scope_bits is not None:
            result.scope_types = [scope for scope in ScopeType if scope_bits & scope]
            if scope_bits == 0:
                result.scope_types.append(ScopeType.UNKNOWN)
        flag_bits = _int(data, "Flags")
        if flag_bits is not None:
            result.flags = [flag for flag in ResourceTypeFlag if flag_bits & flag]
        return result


@dataclass
class ResourceFunctionType(TypeBase):
    """An action that can be invoked on a resource, with its input and output types."""

    name: str = ""
    resource_type: str = ""
    api_version: str = ""
    input: Optional[TypeReference] = None
    output: Optional[TypeReference] = None

    def validate(self, body: Any, path: str) -> list[ValidationError]:
        return []

    def get_write_only(self, body: Any) -> Any:
        return body

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "ResourceFunctionType":
        _reject_unknown(
            data,
            ("Name", "ResourceType", "ApiVersion", "Input", "Output"),
            "resource function type",
        )
        return cls(
            name=_string(data, "Name"),
            resource_type=_string(data, "ResourceType"),
            api_version=_string(data, "ApiVersion"),
            input=_reference(data, "Input"),
            output=_reference(data, "Output"),
        )


_PARSERS: dict[TypeBaseKind, Callable[[Mapping[str, Any]], TypeBase]] = {
    TypeBaseKind.BUILT_IN_TYPE: BuiltInType.from_json,
    TypeBaseKind.OBJECT_TYPE: ObjectType.from_json,
    TypeBaseKind.ARRAY_TYPE: ArrayType.from_json,
    TypeBaseKind.RESOURCE_TYPE: ResourceType.from_json,
    TypeBaseKind.UNION_TYPE: UnionType.from_json,
    TypeBaseKind.STRING_LITERAL_TYPE: StringLiteralType.from_json,
    TypeBaseKind.DISCRIMINATED_OBJECT_TYPE: DiscriminatedObjectType.from_json,
    TypeBaseKind.RESOURCE_FUNCTION_TYPE: ResourceFunctionType.from_json,
}


def _resolve(reference: Optional[TypeReference], types: Sequence[TypeBase]) -> None:
    if reference is None:
        return
    if not 0 <= reference.type_index < len(types):
        raise ValueError(f"type index {reference.type_index} is out of range")
    reference.update_type(types)


def _references(item: TypeBase) -> list[Optional[TypeReference]]:
    if isinstance(item, ObjectType):
        return [item.additional_properties, *(p.type for p in item.properties.values())]
    if isinstance(item, ArrayType):
        return [item.item_type]
    if isinstance(item, ResourceType):
        return [item.body]
    if isinstance(item, UnionType):
        return list(item.elements)
    if isinstance(item, DiscriminatedObjectType):
        return [*item.elements.values(), *(p.type for p in item.base_properties.values())]
    if isinstance(item, ResourceFunctionType):
        return [item.input, item.output]
    return []


@dataclass
class Schema:
    """The list of types held in one schema types file, with references resolved."""

    types: list[TypeBase] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Sequence[Mapping[str, Any]]) -> "Schema":
        if not isinstance(data, list):
            raise ValueError(f"schema must be a list of types, got {type(data).__name__}")
        types: list[TypeBase] = []
        for entry in data:
            if not isinstance(entry, dict):
                raise ValueError(f"schema entry must be an object, got {entry!r}")
            for kind in TypeBaseKind:
                value = entry.get(kind.value)
                if value is None:
                    continue
                if not isinstance(value, dict):
                    raise ValueError(f"type body must be an object, got {value!r}")
                types.append(_PARSERS[kind](value))
                break
        for item in types:
            for reference in _references(item):
                _resolve(reference, types)
        return cls(types=types)

    @classmethod
    def loads(cls, text: str | bytes) -> "Schema":
        return cls.from_json(json.loads(text))