"""HTTP routing and the server that runs it."""

import json
import logging
import threading

from flask import Flask, request
from werkzeug.exceptions import HTTPException
from werkzeug.serving import make_server

from .context import logger_from_context
from .handlers import Handler
from .middleware import RequestLogger

_JSON_MIME = "application/json"


def create_app(handler, logger):
    """Build the Flask application with all routes and request logging."""
    app = Flask(__name__)

    def send(body, status):
        return app.response_class(json.dumps(body, ensure_ascii=False) + "\n", status=status, mimetype=_JSON_MIME)

    def reply(response):
        return send(response.body, response.status)

    def with_body(call):
        body = request.get_data()
        if body and not (request.content_type or "").startswith(_JSON_MIME):
            logger_from_context().error("Invalid JSON received", extra={"err": "Unsupported Media Type"})
            return send({"err": "Invalid JSON format"}, 400)
        return reply(call(body))

    routes = [
        ("/categories", "GET", "get_categories_all", lambda: reply(handler.get_categories_all())),
        ("/categories/<raw_id>", "GET", "get_category_by_id",
         lambda raw_id: reply(handler.get_category_by_id(raw_id))),
        ("/categories", "POST", "create_category", lambda: with_body(handler.create_category)),
        ("/categories/<raw_id>", "PATCH", "update_category",
         lambda raw_id: with_body(lambda body: handler.update_category(raw_id, body))),
        ("/categories/<raw_id>", "DELETE", "delete_category",
         lambda raw_id: reply(handler.delete_category(raw_id))),
        ("/products/<raw_id>", "GET", "get_product", lambda raw_id: reply(handler.get_product(raw_id))),
        ("/categories/<raw_id>/products", "GET", "get_products_category",
         lambda raw_id: reply(handler.get_products_category(raw_id))),
        ("/products", "POST", "create_product", lambda: with_body(handler.create_product)),
        ("/products/<raw_id>", "PATCH", "update_product",
         lambda raw_id: with_body(lambda body: handler.update_product(raw_id, body))),
        ("/products/<raw_id>", "DELETE", "delete_product", lambda raw_id: reply(handler.delete_product(raw_id))),
        ("/health", "GET", "health", lambda: reply(handler.health())),
    ]
    for rule, method, endpoint, view in routes:
        app.add_url_rule(rule, endpoint, view, methods=[method])

    @app.errorhandler(HTTPException)
    def _http_error(exc):
        return send({"message": exc.name}, exc.code or 500)

    @app.errorhandler(Exception)
    def _internal_error(exc):
        logger_from_context().error("Unhandled error", extra={"err": str(exc)})
        return send({"message": "Internal Server Error"}, 500)

    app.wsgi_app = RequestLogger(app.wsgi_app, logger)
    return app


class Server:
    """HTTP server serving the application on the configured port."""

    def __init__(self, logger, config, repository):
        self.logger = logger
        self.port = config.port
        self.addr = f":{config.port}"
        self.repository = repository
        self.app = create_app(Handler(repository), logger)
        self._lock = threading.Lock()
        self._httpd = None
        self._stopping = False

    def start(self):
        """Serve requests until shut down; errors such as a busy port propagate."""
        self.logger.info("Starting server", extra={"addr": self.addr})
        # Access lines are written by the request middleware instead.
        logging.getLogger("werkzeug").setLevel(logging.WARNING)
        with self._lock:
            if self._stopping:
                return
            self._httpd = httpd = make_server("0.0.0.0", self.port, self.app, threaded=True)
        try:
            httpd.serve_forever()
        finally:
            httpd.server_close()

    def shutdown(self, timeout=None):
        """Stop accepting requests; raise TimeoutError if that takes too long."""
        self.logger.info("Shutting down server")
        with self._lock:
            self._stopping = True
            httpd = self._httpd
        if httpd is None:
            return
        stopper = threading.Thread(target=httpd.shutdown, daemon=True)
        stopper.start()
        stopper.join(timeout)
        if stopper.is_alive():
            raise TimeoutError("server shutdown did not finish in time")