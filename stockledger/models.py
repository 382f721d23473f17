"""Data models, JSON binding and field validation."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields


class BindError(ValueError):
    """A request body could not be decoded into a model."""


class ValidationError(ValueError):
    """A model failed its field rules."""

    def __init__(self, model_name, failures):
        self.failures = list(failures)
        super().__init__("\n".join(
            f"Key: '{model_name}.{name}' Error:Field validation for '{name}' failed on the '{tag}' tag"
            for name, tag in self.failures
        ))


def _field(json_name, kind, rules="", *, optional=False, item=None):
    default = None if optional or kind is list else kind()
    return field(default=default, metadata={
        "json": json_name, "kind": kind, "rules": rules, "optional": optional, "item": item,
    })


@dataclass
class Category:
    id: int = _field("id", int, "required,min=1")
    name: str = _field("name", str, "required,min=2,max=100")
    description: str = _field("description", str, "required,min=2,max=100")

    def to_dict(self):
        return {"id": self.id, "name": self.name, "description": self.description}


@dataclass
class AllCategories:
    categories: list[Category] | None = _field("Categories", list, item=Category)

    def to_dict(self):
        items = None if self.categories is None else [c.to_dict() for c in self.categories]
        return {"Categories": items}


@dataclass
class CreateCategoryRequest:
    name: str = _field("name", str, "required,min=2,max=100")
    description: str = _field("description", str, "max=500")


@dataclass
class UpdateCategoryRequest:
    name: str | None = _field("name", str, "omitempty,min=2,max=100", optional=True)
    description: str | None = _field("description", str, "omitempty,max=500", optional=True)


@dataclass
class Product:
    id: int = _field("id", int, "required,min=1")
    name: str = _field("name", str, "required,min=2,max=100")
    amount: int = _field("amount", int, "required,min=0")
    category_id: int = _field("category_id", int, "required,min=1")

    def to_dict(self):
        return {"id": self.id, "name": self.name, "amount": self.amount, "category_id": self.category_id}


@dataclass
class ProductsCategory:
    category: str = _field("Category", str, "required,min=2,max=100")
    products: list[Product] | None = _field("Products", list, item=Product)

    def to_dict(self):
        items = None if self.products is None else [p.to_dict() for p in self.products]
        return {"Category": self.category, "Products": items}


@dataclass
class CreateProductRequest:
    name: str = _field("name", str, "required,min=2,max=100")
    amount: int = _field("amount", int, "required,min=0")
    category_id: int = _field("category_id", int, "required,min=1")


@dataclass
class UpdateProductRequest:
    name: str | None = _field("name", str, "omitempty,min=2,max=100", optional=True)
    amount: int | None = _field("amount", int, "omitempty,min=0", optional=True)
    category_id: int | None = _field("category_id", int, "omitempty,min=1", optional=True)


def _reject_constant(name):
    raise ValueError(f"invalid JSON constant {name!r}")


def _convert(meta, value):
    kind, key = meta["kind"], meta["json"]
    if kind is list:
        if not isinstance(value, list):
            raise BindError(f"field {key!r} expects an array")
        return [_from_json(meta["item"], entry) for entry in value]
    if kind is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise BindError(f"field {key!r} expects an integer")
        if not -(2**63) <= value < 2**63:
            raise BindError(f"field {key!r} is out of range")
        return value
    if not isinstance(value, str):
        raise BindError(f"field {key!r} expects a string")
    return value


def _from_json(model, data):
    if data is None:
        return model()
    if not isinstance(data, dict):
        raise BindError(f"cannot bind JSON {type(data).__name__} into {model.__name__}")
    specs = fields(model)
    exact = {s.metadata["json"]: s for s in specs}
    folded = {s.metadata["json"].casefold(): s for s in specs}
    values = {}
    for key, value in data.items():
        spec = exact.get(key) or folded.get(key.casefold())
        if spec is None:
            continue
        if value is None:
            if spec.metadata["optional"] or spec.metadata["kind"] is list:
                values[spec.name] = None
            continue
        values[spec.name] = _convert(spec.metadata, value)
    return model(**values)


def bind(model, body):
    """Decode a JSON body into ``model``; an empty body gives its zero values.

    Unknown keys are ignored and keys match field names without regard to case.
    """
    if not body:
        return model()
    try:
        if isinstance(body, (bytes, bytearray)):
            body = bytes(body).decode("utf-8")
        data = json.loads(body, parse_constant=_reject_constant)
    except ValueError as exc:
        raise BindError(f"syntax error: {exc}") from exc
    return _from_json(model, data)


def _failed_tag(value, meta):
    kind = meta.get("kind")
    for rule in filter(None, meta.get("rules", "").split(",")):
        name, _, arg = rule.partition("=")
        if name == "omitempty":
            if value is None or (not meta["optional"] and value == kind()):
                return None
        elif name == "required":
            if value is None or value == kind():
                return "required"
        elif value is not None:
            size = len(value) if isinstance(value, (str, list)) else value
            if (name == "min" and size < int(arg)) or (name == "max" and size > int(arg)):
                return name
    return None


def validate(obj):
    """Check every field rule of ``obj``; return it or raise ValidationError."""
    failures = [
        (spec.name, tag)
        for spec in fields(obj)
        if (tag := _failed_tag(getattr(obj, spec.name), spec.metadata)) is not None
    ]
    if failures:
        raise ValidationError(type(obj).__name__, failures)
    return obj