"""Type definitions of the resource schema: built-in, literal, array, union and object types."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence


class ValidationError(Exception):
    """A problem found while checking a request body against a schema type."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(message)
        self.path = path
        self.message = message

    def __repr__(self) -> str:
        return f"ValidationError(path={self.path!r}, message={self.message!r})"


def _type_name(value: Any) -> str:
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    if value is None:
        return "null"
    return type(value).__name__


def _mismatch(path: str, expected: str, actual: str) -> ValidationError:
    return ValidationError(path, f"`{path}` is invalid, expect `{expected}` but got `{actual}`")


def _should_define(path: str) -> ValidationError:
    return ValidationError(path, f"`{path}` is required, but no definition was found")


def _should_not_define(path: str, options: Sequence[str]) -> ValidationError:
    return ValidationError(
        path,
        f"`{path}` is not expected here. Do you mean {', '.join(f'`{o}`' for o in options)}?",
    )


def _should_not_define_read_only(path: str) -> ValidationError:
    return ValidationError(path, f"`{path}` is not expected here, it's read only")


def _not_match_any(path: str) -> ValidationError:
    return ValidationError(path, f"`{path}` is not a valid value, it matches none of the allowed types")


def _not_match_any_values(path: str, value: str, options: Sequence[str]) -> ValidationError:
    joined = ", ".join(f"`{o}`" for o in options)
    return ValidationError(
        path, f"`{path}`'s value `{value}` is invalid. The supported values are [{joined}]"
    )


def _reject_unknown(data: Mapping[str, Any], known: Iterable[str], what: str) -> None:
    allowed = set(known)
    for key in data:
        if key not in allowed:
            raise ValueError(f"unmarshalling {what}, unrecognized key: {key}")


def _reference(data: Mapping[str, Any], key: str) -> Optional["TypeReference"]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be a type index, got {value!r}")
    return TypeReference(type_index=value)


def _string(data: Mapping[str, Any], key: str, default: str = "") -> str:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string, got {value!r}")
    return value


def _int(data: Mapping[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    return value


class TypeBase(ABC):
    """A schema type that can check a body and strip it to its writable parts."""

    @abstractmethod
    def validate(self, body: Any, path: str) -> list[ValidationError]:
        """Return the problems found in ``body``, located relative to ``path``."""

    @abstractmethod
    def get_write_only(self, body: Any) -> Any:
        """Return ``body`` with everything the service would not accept removed."""


class TypeBaseKind(str, enum.Enum):
    """The key under which each type is stored in a schema types file."""

    BUILT_IN_TYPE = "1"
    OBJECT_TYPE = "2"
    ARRAY_TYPE = "3"
    RESOURCE_TYPE = "4"
    UNION_TYPE = "5"
    STRING_LITERAL_TYPE = "6"
    DISCRIMINATED_OBJECT_TYPE = "7"
    RESOURCE_FUNCTION_TYPE = "8"


@dataclass
class TypeReference:
    """A reference to another type by its index in the schema's type list."""

    type_index: int
    type: Optional[TypeBase] = field(default=None, repr=False, compare=False)

    def update_type(self, types: Sequence[Optional[TypeBase]]) -> None:
        """Resolve the index against ``types``."""
        self.type = types[self.type_index]


class BuiltInTypeKind(enum.IntEnum):
    ANY = 1
    NULL = 2
    BOOL = 3
    INT = 4
    STRING = 5
    OBJECT = 6
    ARRAY = 7
    RESOURCE_REF = 8

    def __str__(self) -> str:
        return _KIND_LABELS[self]


_KIND_LABELS = {
    BuiltInTypeKind.ANY: "any",
    BuiltInTypeKind.NULL: "null",
    BuiltInTypeKind.BOOL: "bool",
    BuiltInTypeKind.INT: "int",
    BuiltInTypeKind.STRING: "string",
    BuiltInTypeKind.OBJECT: "object",
    BuiltInTypeKind.ARRAY: "array",
    BuiltInTypeKind.RESOURCE_REF: "resource reference",
}


def _kind_label(kind: int) -> str:
    try:
        return str(BuiltInTypeKind(kind))
    except ValueError:
        return ""


@dataclass
class BuiltInType(TypeBase):
    kind: int

    def get_write_only(self, body: Any) -> Any:
        return body

    def validate(self, body: Any, path: str) -> list[ValidationError]:
        if body is None:
            return []
        expected = _kind_label(self.kind)
        if isinstance(body, str):
            if self.kind != BuiltInTypeKind.STRING:
                return [_mismatch(path, expected, "string")]
        elif isinstance(body, bool):
            if self.kind != BuiltInTypeKind.BOOL:
                return [_mismatch(path, expected, "bool")]
        elif isinstance(body, (int, float)):
            if self.kind != BuiltInTypeKind.INT:
                return [_mismatch(path, expected, "number")]
        elif isinstance(body, dict):
            if self.kind != BuiltInTypeKind.OBJECT:
                return [_mismatch(path, expected, "object")]
        elif isinstance(body, list):
            if self.kind != BuiltInTypeKind.STRING:
                return [_mismatch(path, expected, "array")]
        return []

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "BuiltInType":
        kind = _int(data, "Kind")
        return cls(kind=0 if kind is None else kind)


@dataclass
class StringLiteralType(TypeBase):
    value: str

    def get_write_only(self, body: Any) -> Any:
        return body

    def validate(self, body: Any, path: str) -> list[ValidationError]:
        if body is None:
            return []
        if isinstance(body, str):
            if body != self.value:
                return [_mismatch(path, self.value, body)]
            return []
        return [_mismatch(path, "string", _type_name(body))]

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "StringLiteralType":
        return cls(value=_string(data, "Value"))


@dataclass
class ArrayType(TypeBase):
    item_type: Optional[TypeReference] = None

    def _item(self) -> Optional[TypeBase]:
        return self.item_type.type if self.item_type is not None else None

    def get_write_only(self, body: Any) -> Any:
        if body is None or not isinstance(body, list):
            return None
        item = self._item()
        if item is None:
            return []
        return [item.get_write_only(value) for value in body]

    def validate(self, body: Any, path: str) -> list[ValidationError]:
        if body is None:
            return []
        if not isinstance(body, list):
            return [_mismatch(path, "array", _type_name(body))]
        item = self._item()
        if item is None:
            return []
        errors: list[ValidationError] = []
        for index, value in enumerate(body):
            errors.extend(item.validate(value, f"{path}.{index}"))
        return errors

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "ArrayType":
        _reject_unknown(data, ("ItemType",), "array type")
        return cls(item_type=_reference(data, "ItemType"))


@dataclass
class UnionType(TypeBase):
    elements: list[TypeReference] = field(default_factory=list)

    def get_write_only(self, body: Any) -> Any:
        return body

    def validate(self, body: Any, path: str) -> list[ValidationError]:
        if body is None:
            return []
        if any(
            element.type is not None and not element.type.validate(body, path)
            for element in self.elements
        ):
            return []
        options = [
            element.type.value
            for element in self.elements
            if isinstance(element.type, StringLiteralType)
        ]
        if not options:
            return [_not_match_any(path)]
        value = body if isinstance(body, str) else ""
        return [_not_match_any_values(path, value, options)]

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "UnionType":
        _reject_unknown(data, ("Elements",), "union type")
        indexes = data.get("Elements")
        if indexes is None:
            return cls()
        if not isinstance(indexes, list):
            raise ValueError(f"Elements must be a list of type indexes, got {indexes!r}")
        elements = []
        for index in indexes:
            if isinstance(index, bool) or not isinstance(index, int):
                raise ValueError(f"Elements must be a list of type indexes, got {index!r}")
            elements.append(TypeReference(type_index=index))
        return cls(elements=elements)


class ObjectPropertyFlag(enum.IntEnum):
    NONE = 0
    REQUIRED = 1 << 0
    READ_ONLY = 1 << 1
    WRITE_ONLY = 1 << 2
    DEPLOY_TIME_CONSTANT = 1 << 3


@dataclass
class ObjectProperty:
    type: Optional[TypeReference] = None
    flags: list[ObjectPropertyFlag] = field(default_factory=list)
    description: Optional[str] = None

    @property
    def resolved_type(self) -> Optional[TypeBase]:
        return self.type.type if self.type is not None else None

    def is_required(self) -> bool:
        return ObjectPropertyFlag.REQUIRED in self.flags

    def is_read_only(self) -> bool:
        return ObjectPropertyFlag.READ_ONLY in self.flags

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "ObjectProperty":
        _reject_unknown(data, ("Description", "Flags", "Type"), "object property")
        prop = cls(type=_reference(data, "Type"))
        if data.get("Description") is not None:
            prop.description = _string(data, "Description")
        bits = _int(data, "Flags")
        if bits is not None:
            prop.flags = [flag for flag in ObjectPropertyFlag if bits & flag]
        return prop


def _properties_from_json(value: Any) -> dict[str, ObjectProperty]:
    if not isinstance(value, dict):
        raise ValueError(f"properties must be an object, got {value!r}")
    return {key: ObjectProperty.from_json(prop) for key, prop in value.items()}


@dataclass
class ObjectType(TypeBase):
    name: str = ""
    properties: dict[str, ObjectProperty] = field(default_factory=dict)
    additional_properties: Optional[TypeReference] = None

    def _additional(self) -> Optional[TypeBase]:
        if self.additional_properties is None:
            return None
        return self.additional_properties.type

    def get_write_only(self, body: Any) -> Any:
        if body is None or not isinstance(body, dict):
            return None
        result: dict[str, Any] = {}
        for key, prop in self.properties.items():
            target = prop.resolved_type
            if key in body and not prop.is_read_only() and target is not None:
                result[key] = target.get_write_only(body[key])
        additional = self._additional()
        if additional is not None:
            extra = additional.get_write_only(body)
            if isinstance(extra, dict):
                result.update(extra)
        return result

    def validate(self, body: Any, path: str) -> list[ValidationError]:
        if body is None:
            return []
        if not isinstance(body, dict):
            return [_mismatch(path, "object", _type_name(body))]
        errors: list[ValidationError] = []
        additional = self._additional()
        for key, value in body.items():
            child = f"{path}.{key}"
            prop = self.properties.get(key)
            if prop is not None:
                if prop.is_read_only():
                    errors.append(_should_not_define_read_only(child))
                elif prop.resolved_type is not None:
                    errors.extend(prop.resolved_type.validate(value, child))
            elif additional is not None:
                errors.extend(additional.validate(value, child))
            else:
                options = [f"{path}.{name}" for name in self.properties]
                errors.append(_should_not_define(child, options))
        for key, prop in self.properties.items():
            if prop.is_required() and body.get(key) is None:
                if path == "" and key == "name":
                    continue
                errors.append(_should_define(f"{path}.{key}"))
        return errors

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "ObjectType":
        _reject_unknown(data, ("Name", "Properties", "AdditionalProperties"), "object type")
        result = cls(
            name=_string(data, "Name"),
            additional_properties=_reference(data, "AdditionalProperties"),
        )
        if data.get("Properties") is not None:
            result.properties = _properties_from_json(data["Properties"])
        return result