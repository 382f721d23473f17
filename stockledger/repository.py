"""Storage of categories and products."""

from __future__ import annotations

import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from os import PathLike
from typing import Iterator

from .errors import (
    ConnectionFailedError,
    DuplicateError,
    InvalidDataError,
    NotFoundError,
)
from .models import (
    AllCategories,
    Category,
    CreateCategoryRequest,
    CreateProductRequest,
    Product,
    ProductsCategory,
    UpdateCategoryRequest,
    UpdateProductRequest,
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS categories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    description TEXT NOT NULL DEFAULT ''
);
CREATE TABLE IF NOT EXISTS products (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    amount INTEGER NOT NULL DEFAULT 0,
    category_id INTEGER NOT NULL REFERENCES categories(id) ON DELETE CASCADE
);
"""

_UPDATE_PRODUCT = """
UPDATE products
SET
    name = COALESCE(NULLIF(?, ''), name),
    amount = COALESCE(NULLIF(?, 0), amount),
    category_id = COALESCE(NULLIF(?, 0), category_id)
WHERE id = ?
"""


class Repository(ABC):
    """Operations the handlers need from storage.

    Lookups of missing rows raise NotFoundError; inserts that clash with an
    existing name raise DuplicateError.
    """

    @abstractmethod
    def get_category(self, category_id: int) -> Category: ...

    @abstractmethod
    def get_categories_all(self) -> AllCategories: ...

    @abstractmethod
    def create_category(self, category: CreateCategoryRequest) -> int: ...

    @abstractmethod
    def update_category(self, category_id: int, update: UpdateCategoryRequest) -> None: ...

    @abstractmethod
    def delete_category(self, category_id: int) -> None: ...

    @abstractmethod
    def get_product(self, product_id: int) -> Product: ...

    @abstractmethod
    def get_products_category(self, category_id: int) -> ProductsCategory: ...

    @abstractmethod
    def create_product(self, product: CreateProductRequest) -> int: ...

    @abstractmethod
    def update_product(self, product_id: int, update: UpdateProductRequest) -> None: ...

    @abstractmethod
    def delete_product(self, product_id: int) -> None: ...

    @abstractmethod
    def category_exists(self, category_id: int) -> bool: ...


class SqliteRepository(Repository):
    """Repository backed by an SQLite database file (or ``:memory:``)."""

    def __init__(self, path: str | PathLike[str]) -> None:
        self.path = str(path)
        self._lock = threading.RLock()
        try:
            self._conn = sqlite3.connect(self.path, check_same_thread=False)
            self._conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as exc:
            raise ConnectionFailedError(f"connection failed: {exc}") from exc

    def __enter__(self) -> SqliteRepository:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                with self._conn:
                    yield self._conn
            except sqlite3.IntegrityError as exc:
                if "UNIQUE constraint failed" in str(exc):
                    raise DuplicateError(f"duplicate entry: {exc}") from exc
                raise InvalidDataError(f"invalid data: {exc}") from exc
            except sqlite3.Error as exc:
                raise ConnectionFailedError(f"connection failed: {exc}") from exc

    def create_schema(self) -> None:
        """Create the tables if they do not exist yet."""
        with self._lock:
            try:
                self._conn.executescript(_SCHEMA)
            except sqlite3.Error as exc:
                raise ConnectionFailedError(f"connection failed: {exc}") from exc

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def get_category(self, category_id: int) -> Category:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT id, name, description FROM categories WHERE id = ?",
                (category_id,),
            ).fetchone()
        if row is None:
            raise NotFoundError()
        return Category(id=row[0], name=row[1], description=row[2])

    def get_categories_all(self) -> AllCategories:
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT id, name, description FROM categories ORDER BY id"
            ).fetchall()
        categories = [Category(id=i, name=n, description=d) for i, n, d in rows]
        return AllCategories(categories=categories or None)

    def create_category(self, category: CreateCategoryRequest) -> int:
        try:
            with self._transaction() as conn:
                cursor = conn.execute(
                    "INSERT INTO categories (name, description) VALUES (?, ?)",
                    (category.name, category.description),
                )
                return int(cursor.lastrowid)
        except DuplicateError as exc:
            raise DuplicateError(
                f"duplicate entry: category '{category.name}' already exists"
            ) from exc

    def update_category(self, category_id: int, update: UpdateCategoryRequest) -> None:
        with self._transaction() as conn:
            current = self.get_category(category_id)
            name = update.name if update.name is not None else current.name
            description = (
                update.description if update.description is not None else current.description
            )
            cursor = conn.execute(
                "UPDATE categories SET name = ?, description = ? WHERE id = ?",
                (name, description, category_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError()

    def delete_category(self, category_id: int) -> None:
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM categories WHERE id = ?", (category_id,))
            if cursor.rowcount == 0:
                raise NotFoundError()

    def get_product(self, product_id: int) -> Product:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT id, name, amount, category_id FROM products WHERE id = ?",
                (product_id,),
            ).fetchone()
        if row is None:
            raise NotFoundError()
        return Product(id=row[0], name=row[1], amount=row[2], category_id=row[3])

    def get_products_category(self, category_id: int) -> ProductsCategory:
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT c.name, p.id, p.name, p.amount, p.category_id
                FROM categories c
                LEFT JOIN products p ON c.id = p.category_id
                WHERE c.id = ?
                ORDER BY p.id
                """,
                (category_id,),
            ).fetchall()
        if not rows or not rows[0][0]:
            raise NotFoundError()
        products = [
            Product(id=pid, name=name, amount=amount, category_id=cid)
            for _, pid, name, amount, cid in rows
            if pid is not None
        ]
        return ProductsCategory(category=rows[0][0], products=products or None)

    def create_product(self, product: CreateProductRequest) -> int:
        try:
            with self._transaction() as conn:
                cursor = conn.execute(
                    "INSERT INTO products (name, amount, category_id) VALUES (?, ?, ?)",
                    (product.name, product.amount, product.category_id),
                )
                return int(cursor.lastrowid)
        except DuplicateError as exc:
            raise DuplicateError(
                f"duplicate entry: products  '{product.name}' already exists"
            ) from exc

    def update_product(self, product_id: int, update: UpdateProductRequest) -> None:
        """Apply the given fields; an empty name or a zero amount or category keeps the old value."""
        with self._transaction() as conn:
            cursor = conn.execute(
                _UPDATE_PRODUCT,
                (update.name, update.amount, update.category_id, product_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError()

    def delete_product(self, product_id: int) -> None:
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM products WHERE id = ?", (product_id,))
            if cursor.rowcount == 0:
                raise NotFoundError()

    def category_exists(self, category_id: int) -> bool:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT EXISTS(SELECT 1 FROM categories WHERE id = ?)", (category_id,)
            ).fetchone()
        return bool(row[0])