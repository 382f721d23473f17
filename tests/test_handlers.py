import logging
from unittest.mock import Mock

import pytest

from stockledger.context import with_logger
from stockledger.errors import ConnectionFailedError, DuplicateError, NotFoundError
from stockledger.handlers import Handler, Response
from stockledger.models import (
    AllCategories,
    Category,
    CreateCategoryRequest,
    CreateProductRequest,
    Product,
    ProductsCategory,
    UpdateCategoryRequest,
    UpdateProductRequest,
)
from stockledger.repository import Repository


@pytest.fixture
def repo():
    return Mock(spec=Repository)


@pytest.fixture
def handler(repo):
    return Handler(repo)


class _ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


# Health

def test_health(handler):
    assert handler.health() == Response(200, {"message": " OK"})


# Create category

def test_create_category_valid(handler, repo):
    repo.create_category.return_value = 3
    resp = handler.create_category('{"name": "Name", "description": "Description"}')
    assert resp == Response(201, {"Id category": 3})
    repo.create_category.assert_called_once_with(
        CreateCategoryRequest(name="Name", description="Description")
    )


def test_create_category_empty_name(handler, repo):
    resp = handler.create_category('{"name": "", "description": "Invalid"}')
    assert resp == Response(400, {"err": "Invalid request data"})
    repo.create_category.assert_not_called()


def test_create_category_database_error(handler, repo):
    repo.create_category.side_effect = ConnectionFailedError()
    resp = handler.create_category(b'{"name": "Books", "description": "description"}')
    assert resp == Response(500, {"err": "Server error"})


def test_create_category_invalid_json(handler, repo):
    resp = handler.create_category('{"name": "Books",')
    assert resp == Response(400, {"err": "Invalid JSON format"})
    repo.create_category.assert_not_called()


def test_create_category_duplicate(handler, repo):
    repo.create_category.side_effect = DuplicateError()
    resp = handler.create_category('{"name": "Books", "description": "description"}')
    assert resp == Response(409, {"err": "Category with name 'Books' already exists"})


def test_create_category_duplicate_is_logged_as_warning(handler, repo):
    repo.create_category.side_effect = DuplicateError()
    logger = logging.Logger("handlers-test", logging.DEBUG)
    sink = _ListHandler()
    logger.addHandler(sink)
    with with_logger(logger):
        handler.create_category('{"name": "Books"}')
    assert [(r.levelno, r.getMessage()) for r in sink.records] == [
        (logging.WARNING, "Duplicate category attempt")
    ]


# Create product

def test_create_product_valid(handler, repo):
    repo.category_exists.return_value = True
    repo.create_product.return_value = 3
    resp = handler.create_product('{"name": "Name", "amount": 5, "category_id": 1}')
    assert resp == Response(201, {"Id product": 3})
    repo.category_exists.assert_called_once_with(1)
    repo.create_product.assert_called_once_with(
        CreateProductRequest(name="Name", amount=5, category_id=1)
    )


def test_create_product_malformed_json(handler, repo):
    resp = handler.create_product('{"name": "", "amount": , "category_id": }')
    assert resp == Response(400, {"err": "Invalid JSON format"})
    repo.category_exists.assert_not_called()


def test_create_product_zero_amount_fails_required_rule(handler, repo):
    resp = handler.create_product('{"name": "Name", "amount": 0, "category_id": 1}')
    assert resp == Response(400, {"err": "Invalid request data"})
    repo.create_product.assert_not_called()


def test_create_product_category_not_found(handler, repo):
    repo.category_exists.return_value = False
    resp = handler.create_product('{"name": "Name", "amount": 1, "category_id": 999}')
    assert resp == Response(404, {"err": "Not found category"})
    repo.category_exists.assert_called_once_with(999)
    repo.create_product.assert_not_called()


def test_create_product_database_error(handler, repo):
    repo.category_exists.return_value = True
    repo.create_product.side_effect = ConnectionFailedError()
    resp = handler.create_product('{"name": "Name", "amount": 1, "category_id": 1}')
    assert resp == Response(500, {"err": "Server error"})


def test_create_product_category_check_error(handler, repo):
    repo.category_exists.side_effect = ConnectionFailedError()
    resp = handler.create_product('{"name": "Name", "amount": 1, "category_id": 1}')
    assert resp == Response(500, {"err": "Server error"})
    repo.create_product.assert_not_called()


def test_create_product_duplicate(handler, repo):
    repo.category_exists.return_value = True
    repo.create_product.side_effect = DuplicateError()
    resp = handler.create_product('{"name": "Pen", "amount": 1, "category_id": 1}')
    assert resp == Response(409, {"err": "Product with name 'Pen' already exists"})


# Get all categories

def test_get_categories_all_valid(handler, repo):
    repo.get_categories_all.return_value = AllCategories(
        categories=[
            Category(id=1, name="Bolls", description="Bolls Description"),
            Category(id=2, name="R", description="R 00000000000000"),
        ]
    )
    resp = handler.get_categories_all()
    assert resp == Response(
        200,
        {
            "Categories": [
                {"id": 1, "name": "Bolls", "description": "Bolls Description"},
                {"id": 2, "name": "R", "description": "R 00000000000000"},
            ]
        },
    )


def test_get_categories_all_error(handler, repo):
    repo.get_categories_all.side_effect = ConnectionFailedError()
    assert handler.get_categories_all() == Response(500, {"err": "Server error"})


# Get single entities

def test_get_category_by_id_success(handler, repo):
    repo.get_category.return_value = Category(
        id=1, name="Bolls", description="Bolls Description"
    )
    resp = handler.get_category_by_id("1")
    assert resp == Response(
        200, {"id": 1, "name": "Bolls", "description": "Bolls Description"}
    )
    repo.get_category.assert_called_once_with(1)


def test_get_category_by_id_not_found(handler, repo):
    repo.get_category.side_effect = NotFoundError()
    assert handler.get_category_by_id("999") == Response(404, {"err": "Category not found"})
    repo.get_category.assert_called_once_with(999)


@pytest.mark.parametrize("raw", ["abc", "", " 1", "1.5", "99999999999999999999"])
def test_get_category_by_id_invalid(handler, repo, raw):
    assert handler.get_category_by_id(raw) == Response(400, {"err": "Invalid category ID"})
    repo.get_category.assert_not_called()


def test_get_category_by_id_accepts_sign(handler, repo):
    repo.get_category.return_value = Category(id=5, name="Pens", description="Blue")
    resp = handler.get_category_by_id("+5")
    assert resp.status == 200
    repo.get_category.assert_called_once_with(5)


def test_get_category_by_id_database_error(handler, repo):
    repo.get_category.side_effect = ConnectionFailedError()
    assert handler.get_category_by_id("1") == Response(500, {"err": "Server error"})


def test_get_product_success(handler, repo):
    repo.get_product.return_value = Product(id=1, name="Bolls", amount=1, category_id=1)
    resp = handler.get_product("1")
    assert resp == Response(
        200, {"id": 1, "name": "Bolls", "amount": 1, "category_id": 1}
    )


def test_get_product_not_found(handler, repo):
    repo.get_product.side_effect = NotFoundError()
    assert handler.get_product("999") == Response(404, {"err": "Product not found"})


def test_get_product_invalid_id(handler, repo):
    assert handler.get_product("x") == Response(400, {"err": "Invalid product ID"})


def test_get_products_category_success(handler, repo):
    repo.get_products_category.return_value = ProductsCategory(
        category="Bolls",
        products=[
            Product(id=1, name="Bolls", amount=1, category_id=1),
            Product(id=2, name="R", amount=1, category_id=1),
        ],
    )
    resp = handler.get_products_category("1")
    assert resp == Response(
        200,
        {
            "Category": "Bolls",
            "Products": [
                {"id": 1, "name": "Bolls", "amount": 1, "category_id": 1},
                {"id": 2, "name": "R", "amount": 1, "category_id": 1},
            ],
        },
    )


def test_get_products_category_not_found(handler, repo):
    repo.get_products_category.side_effect = NotFoundError()
    assert handler.get_products_category("999") == Response(
        404, {"err": "Category not found or empty"}
    )


def test_get_products_category_invalid_id(handler, repo):
    assert handler.get_products_category("nan") == Response(
        400, {"err": "Invalid category ID"}
    )


# Delete

@pytest.mark.parametrize(
    "method, repo_method, entity",
    [
        ("delete_category", "delete_category", "Category"),
        ("delete_product", "delete_product", "Product"),
    ],
)
def test_delete_success(handler, repo, method, repo_method, entity):
    resp = getattr(handler, method)("1")
    assert resp == Response(200, {"message": f"{entity} deleted"})
    getattr(repo, repo_method).assert_called_once_with(1)


@pytest.mark.parametrize("method", ["delete_category", "delete_product"])
def test_delete_not_found(handler, repo, method):
    getattr(repo, method).side_effect = NotFoundError()
    assert getattr(handler, method)("999") == Response(404, {"err": "Not found"})
    getattr(repo, method).assert_called_once_with(999)


@pytest.mark.parametrize("method", ["delete_category", "delete_product"])
def test_delete_invalid_id(handler, repo, method):
    assert getattr(handler, method)("invalid") == Response(400, {"err": "Invalid ID"})
    getattr(repo, method).assert_not_called()


@pytest.mark.parametrize("method", ["delete_category", "delete_product"])
def test_delete_database_error(handler, repo, method):
    getattr(repo, method).side_effect = ConnectionFailedError()
    assert getattr(handler, method)("1") == Response(500, {"err": "Server error"})


# Update category

def test_update_category_success(handler, repo):
    resp = handler.update_category(
        "1", '{"name": "New Category", "description": "New Description"}'
    )
    assert resp == Response(200, {"Request Status": "Changes completed"})
    repo.update_category.assert_called_once_with(
        1, UpdateCategoryRequest(name="New Category", description="New Description")
    )


def test_update_category_not_found(handler, repo):
    repo.update_category.side_effect = NotFoundError()
    resp = handler.update_category("999", '{"name": "Not Found Category"}')
    assert resp == Response(404, {"err": "Not found"})
    repo.update_category.assert_called_once_with(
        999, UpdateCategoryRequest(name="Not Found Category")
    )


def test_update_category_invalid_id(handler, repo):
    resp = handler.update_category("invalid", '{"name": "Test"}')
    assert resp == Response(400, {"err": "Invalid id"})
    repo.update_category.assert_not_called()


def test_update_category_invalid_json(handler, repo):
    resp = handler.update_category("1", '{"name": "Test", invalid}')
    assert resp == Response(400, {"err": "Invalid JSON format"})
    repo.update_category.assert_not_called()


def test_update_category_validation_failure(handler, repo):
    resp = handler.update_category("1", '{"name": "A"}')
    assert resp == Response(400, {"err": "Invalid request data"})
    repo.update_category.assert_not_called()


def test_update_category_database_error(handler, repo):
    repo.update_category.side_effect = ConnectionFailedError()
    resp = handler.update_category("1", '{"name": "Valid"}')
    assert resp == Response(500, {"err": "Server error"})


# Update product

def test_update_product_success(handler, repo):
    resp = handler.update_product(
        "2", '{"name": "Updated Product", "amount": 10, "category_id": 3}'
    )
    assert resp == Response(200, {"Request Status": "Changes completed"})
    repo.update_product.assert_called_once_with(
        2, UpdateProductRequest(name="Updated Product", amount=10, category_id=3)
    )


def test_update_product_not_found(handler, repo):
    repo.update_product.side_effect = NotFoundError()
    resp = handler.update_product("888", '{"name": "Ghost Product"}')
    assert resp == Response(404, {"err": "Not found"})
    repo.update_product.assert_called_once_with(
        888, UpdateProductRequest(name="Ghost Product")
    )


def test_update_product_invalid_id(handler, repo):
    resp = handler.update_product("nan", '{"name": "Test"}')
    assert resp == Response(400, {"err": "Invalid id"})
    repo.update_product.assert_not_called()


def test_update_product_invalid_json(handler, repo):
    resp = handler.update_product("1", "{invalid json}")
    assert resp == Response(400, {"err": "Invalid JSON format"})
    repo.update_product.assert_not_called()


def test_update_product_negative_amount_rejected(handler, repo):
    resp = handler.update_product("1", '{"amount": -1}')
    assert resp == Response(400, {"err": "Invalid request data"})
    repo.update_product.assert_not_called()


def test_update_product_database_error(handler, repo):
    repo.update_product.side_effect = ConnectionFailedError()
    resp = handler.update_product("1", '{"amount": 4}')
    assert resp == Response(500, {"err": "Server error"})