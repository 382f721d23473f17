"""HTTP-agnostic request handlers for categories and products."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Callable, TypeVar

from .context import logger_from_context
from .errors import DuplicateError, NotFoundError
from .models import (
    BindError,
    CreateCategoryRequest,
    CreateProductRequest,
    UpdateCategoryRequest,
    UpdateProductRequest,
    ValidationError,
    bind,
    validate,
)
from .repository import Repository

_ID_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT_MIN = -(2**63)
_INT_MAX = 2**63 - 1

T = TypeVar("T")


@dataclass(frozen=True)
class Response:
    """Status code and JSON-serialisable body of a handled request."""

    status: int
    body: Any


def _error(status: HTTPStatus, message: str) -> Response:
    return Response(int(status), {"err": message})


def _log(level: int, message: str, **fields: Any) -> None:
    logger_from_context().log(level, message, extra=fields)


def _parse_id(raw: str | None) -> int:
    text = "" if raw is None else raw
    if not _ID_PATTERN.fullmatch(text):
        raise ValueError(f'invalid id: parsing "{text}": invalid syntax')
    value = int(text)
    if not _INT_MIN <= value <= _INT_MAX:
        raise ValueError(f'invalid id: parsing "{text}": value out of range')
    return value


class Handler:
    """Turns request input into repository calls and JSON responses."""

    def __init__(self, repository: Repository) -> None:
        self._repository = repository

    def health(self) -> Response:
        return Response(int(HTTPStatus.OK), {"message": " OK"})

    # Categories

    def get_categories_all(self) -> Response:
        try:
            categories = self._repository.get_categories_all()
        except Exception as exc:
            _log(logging.ERROR, "An error occurred while accessing the database", err=str(exc))
            return _error(HTTPStatus.INTERNAL_SERVER_ERROR, "Server error")
        return Response(int(HTTPStatus.OK), categories.to_dict())

    def get_category_by_id(self, raw_id: str | None) -> Response:
        return self._get(
            self._repository.get_category,
            raw_id,
            "Category",
            "Category not found",
            "Invalid category ID",
        )

    def create_category(self, body: str | bytes | None) -> Response:
        try:
            category = bind(CreateCategoryRequest, body)
        except BindError as exc:
            _log(logging.ERROR, "Invalid JSON received", err=str(exc))
            return _error(HTTPStatus.BAD_REQUEST, "Invalid JSON format")
        try:
            validate(category)
        except ValidationError as exc:
            _log(logging.ERROR, "Validation failed", err=str(exc))
            return _error(HTTPStatus.BAD_REQUEST, "Invalid request data")

        try:
            new_id = self._repository.create_category(category)
        except DuplicateError as exc:
            _log(
                logging.WARNING,
                "Duplicate category attempt",
                category_name=category.name,
                err=str(exc),
            )
            return _error(
                HTTPStatus.CONFLICT,
                f"Category with name '{category.name}' already exists",
            )
        except Exception as exc:
            _log(logging.ERROR, "An error occurred while accessing the database", err=str(exc))
            return _error(HTTPStatus.INTERNAL_SERVER_ERROR, "Server error")
        return Response(int(HTTPStatus.CREATED), {"Id category": new_id})

    def update_category(self, raw_id: str | None, body: str | bytes | None) -> Response:
        return self._update(
            UpdateCategoryRequest, self._repository.update_category, raw_id, body, "Category"
        )

    def delete_category(self, raw_id: str | None) -> Response:
        return self._delete(self._repository.delete_category, raw_id, "Category")

    # Products

    def get_product(self, raw_id: str | None) -> Response:
        return self._get(
            self._repository.get_product,
            raw_id,
            "Product",
            "Product not found",
            "Invalid product ID",
        )

    def get_products_category(self, raw_id: str | None) -> Response:
        return self._get(
            self._repository.get_products_category,
            raw_id,
            "ProductsCategory",
            "Category not found or empty",
            "Invalid category ID",
        )

    def create_product(self, body: str | bytes | None) -> Response:
        try:
            product = bind(CreateProductRequest, body)
        except BindError as exc:
            _log(logging.ERROR, "Invalid JSON received", err=str(exc))
            return _error(HTTPStatus.BAD_REQUEST, "Invalid JSON format")
        try:
            validate(product)
        except ValidationError as exc:
            _log(logging.ERROR, "Validation failed", err=str(exc))
            return _error(HTTPStatus.BAD_REQUEST, "Invalid request data")

        try:
            exists = self._repository.category_exists(product.category_id)
        except Exception as exc:
            _log(logging.ERROR, "An error occurred while accessing the database", err=str(exc))
            return _error(HTTPStatus.INTERNAL_SERVER_ERROR, "Server error")
        if not exists:
            _log(logging.ERROR, "Not found Category", category_id=product.category_id)
            return _error(HTTPStatus.NOT_FOUND, "Not found category")

        try:
            new_id = self._repository.create_product(product)
        except DuplicateError as exc:
            _log(
                logging.WARNING,
                "Duplicate product attempt",
                product_name=product.name,
                err=str(exc),
            )
            return _error(
                HTTPStatus.CONFLICT,
                f"Product with name '{product.name}' already exists",
            )
        except Exception as exc:
            _log(logging.ERROR, "An error occurred while accessing the database", err=str(exc))
            return _error(HTTPStatus.INTERNAL_SERVER_ERROR, "Server error")
        return Response(int(HTTPStatus.CREATED), {"Id product": new_id})

    def update_product(self, raw_id: str | None, body: str | bytes | None) -> Response:
        return self._update(
            UpdateProductRequest, self._repository.update_product, raw_id, body, "Product"
        )

    def delete_product(self, raw_id: str | None) -> Response:
        return self._delete(self._repository.delete_product, raw_id, "Product")

    # Shared flows

    def _get(
        self,
        fetch: Callable[[int], Any],
        raw_id: str | None,
        entity: str,
        not_found_message: str,
        invalid_id_message: str,
    ) -> Response:
        try:
            entity_id = _parse_id(raw_id)
        except ValueError as exc:
            _log(logging.INFO, "Invalid ID", entity=entity, input=raw_id, error=str(exc))
            return _error(HTTPStatus.BAD_REQUEST, invalid_id_message)

        try:
            found = fetch(entity_id)
        except NotFoundError:
            _log(logging.WARNING, "Entity not found", entity=entity, id=entity_id)
            return _error(HTTPStatus.NOT_FOUND, not_found_message)
        except Exception as exc:
            _log(
                logging.ERROR,
                "Database error",
                operation="Get" + entity,
                id=entity_id,
                error=str(exc),
            )
            return _error(HTTPStatus.INTERNAL_SERVER_ERROR, "Server error")
        return Response(int(HTTPStatus.OK), found.to_dict())

    def _update(
        self,
        model: type[T],
        apply: Callable[[int, T], None],
        raw_id: str | None,
        body: str | bytes | None,
        entity: str,
    ) -> Response:
        try:
            entity_id = _parse_id(raw_id)
        except ValueError as exc:
            _log(logging.INFO, "Invalid id", entity=entity, error=str(exc))
            return _error(HTTPStatus.BAD_REQUEST, "Invalid id")

        try:
            request = bind(model, body)
        except BindError as exc:
            _log(logging.ERROR, "Invalid JSON received", entity=entity, error=str(exc))
            return _error(HTTPStatus.BAD_REQUEST, "Invalid JSON format")
        try:
            validate(request)
        except ValidationError as exc:
            _log(logging.ERROR, "Validation failed", entity=entity, error=str(exc))
            return _error(HTTPStatus.BAD_REQUEST, "Invalid request data")

        try:
            apply(entity_id, request)
        except NotFoundError as exc:
            _log(logging.ERROR, "Entity not found", entity=entity, id=entity_id, error=str(exc))
            return _error(HTTPStatus.NOT_FOUND, "Not found")
        except Exception as exc:
            _log(
                logging.ERROR,
                "Database error",
                entity=entity,
                operation="update",
                id=entity_id,
                error=str(exc),
            )
            return _error(HTTPStatus.INTERNAL_SERVER_ERROR, "Server error")
        return Response(int(HTTPStatus.OK), {"Request Status": "Changes completed"})

    def _delete(
        self, remove: Callable[[int], None], raw_id: str | None, entity: str
    ) -> Response:
        try:
            entity_id = _parse_id(raw_id)
        except ValueError as exc:
            _log(logging.ERROR, "Invalid ID", err=str(exc))
            return _error(HTTPStatus.BAD_REQUEST, "Invalid ID")

        try:
            remove(entity_id)
        except NotFoundError as exc:
            _log(logging.ERROR, "Not found id", err=str(exc))
            return _error(HTTPStatus.NOT_FOUND, "Not found")
        except Exception as exc:
            _log(logging.ERROR, "An error occurred while accessing the database", err=str(exc))
            return _error(HTTPStatus.INTERNAL_SERVER_ERROR, "Server error")
        return Response(int(HTTPStatus.OK), {"message": entity + " deleted"})