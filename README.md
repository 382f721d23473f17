# stockledger

A small HTTP service for keeping account of products and the categories they
belong to. It keeps its data in an SQLite database, speaks JSON, and logs as
JSON lines on standard output.

## Installing

```
pip install .
```

To run the test suite as well:

```
pip install ".[test]"
pytest
```

## Running

The `stockledger` command takes no options besides `--help`; it is configured
entirely from the environment:

| Variable             | Default | Meaning                                                  |
|----------------------|---------|----------------------------------------------------------|
| `PORT`               | `8080`  | Port to listen on (all interfaces), 1 to 65535           |
| `LOGGER_LEVEL`       | `INFO`  | One of `DEBUG`, `INFO`, `WARN`, `ERROR`                  |
| `DATABASE_URL`       | none    | SQLite database: a file path or `sqlite:///path` (required) |
| `SHUTTING_DOWN_TIME` | `5`     | Seconds allowed for a graceful shutdown, 5 to 600        |

Start it with:

```
DATABASE_URL=./stock.db stockledger
```

In `sqlite:///stock.db` the path is `stock.db`; use `sqlite:////abs/stock.db`
for an absolute path. Any other URL scheme is refused.

On start-up the tables are created if they do not exist yet. The server stops
cleanly on `SIGINT` or `SIGTERM`, waiting at most `SHUTTING_DOWN_TIME` seconds.
If the configuration is missing or invalid, or the database cannot be opened,
the program prints the problem and exits with a non-zero status.

## Endpoints

| Method   | Path                        | Purpose                                  |
|----------|-----------------------------|------------------------------------------|
| `GET`    | `/health`                   | Liveness check: `{"message": " OK"}`     |
| `GET`    | `/categories`               | List all categories                      |
| `POST`   | `/categories`               | Create a category                        |
| `GET`    | `/categories/<id>`          | Fetch one category                       |
| `PATCH`  | `/categories/<id>`          | Change a category's name or description  |
| `DELETE` | `/categories/<id>`          | Remove a category and its products       |
| `GET`    | `/categories/<id>/products` | A category's name and all its products   |
| `POST`   | `/products`                 | Create a product                         |
| `GET`    | `/products/<id>`            | Fetch one product                        |
| `PATCH`  | `/products/<id>`            | Change a product's fields                |
| `DELETE` | `/products/<id>`            | Remove a product                         |

### Request bodies

A request body must be sent as `application/json`; keys are matched to field
names without regard to case and unknown keys are ignored.

Creating a category needs a `name` of 2 to 100 characters; `description` is
optional, up to 500 characters:

```
{"name": "Books", "description": "Paper and bound"}
```

Creating a product needs a `name` of 2 to 100 characters, an `amount` greater
than zero and the `category_id` of an existing category:

```
{"name": "Notebook", "amount": 12, "category_id": 1}
```

A `PATCH` body carries only the fields to change; the rest keep their values.
For a product, an empty `name` or an `amount` or `category_id` of `0` also
leaves that field as it was.

Category names are unique, and so are product names.

### Responses

Successful creation answers `201` with the new identifier, for example
`{"Id category": 3}` or `{"Id product": 7}`. Reads answer `200` with the
object, for example `{"id": 1, "name": "Books", "description": "..."}` or
`{"Categories": [...]}`; an empty list comes back as `null`. Updates answer
`{"Request Status": "Changes completed"}` and deletions
`{"message": "Category deleted"}` or `{"message": "Product deleted"}`.

Errors come back as `{"err": "..."}`:

- `400` for malformed JSON, a body that is not `application/json`, data that
  fails validation, or a non-numeric id;
- `404` when the category or product does not exist (including creating a
  product in an unknown category);
- `409` when a category or product of that name already exists;
- `500` for any other storage error, such as moving a product to a category
  that does not exist.

Unknown paths and methods answer `{"message": "Not Found"}` or
`{"message": "Method Not Allowed"}` with the matching status.

### Logging

Every log line is one JSON object with `time`, `level`, `msg` and the record's
fields. After each request a `request handled` line gives `method`, `path`,
`ip`, `status` and `duration` (nanoseconds). Lines written while a request is
being handled carry a `request_id`.

## Using it as a library

- `stockledger.handlers.Handler(repository)` wraps any
  `stockledger.repository.Repository`. Its methods (`get_category_by_id`,
  `create_product`, `update_category` and so on) take the id as the raw path
  text and the body as bytes or text, and return a `Response` with `status`
  and a JSON-serialisable `body`.
- `stockledger.repository.SqliteRepository(path)` is the bundled storage; call
  `create_schema()` once, and use it as a context manager or call `close()`.
  Missing rows raise `stockledger.errors.NotFoundError`, name clashes
  `DuplicateError`.
- `stockledger.server.create_app(handler, logger)` builds the Flask
  application with all routes; `Server(logger, config, repository)` serves it
  with `start()` and stops it with `shutdown(timeout)`.
- `stockledger.config.load(environ)` returns a `Configuration` or raises
  `ConfigError`; `stockledger.logger.new_logger(level, stream)` makes the JSON
  logger.
- `stockledger.models.bind(model, body)` and `validate(obj)` decode and check
  request bodies, raising `BindError` or `ValidationError`.
- `stockledger.middleware.RequestLogger(app, logger)` is the WSGI middleware
  that tags requests and logs them; `stockledger.context.logger_from_context()`
  returns the current request's logger.

## What it does not do

- It stores data only in SQLite; no other database server is supported.
- Schema handling is limited to creating the two tables when missing; there
  are no versioned migrations.
- There is no authentication, paging or search.