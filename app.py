import asyncio
import logging

from ariadne.explorer import ExplorerGraphiQL
from configuration import (
    get_debug,
    get_forward_authorization,
    get_introspection_backoff,
    get_introspection_retries,
    get_port,
    get_remote_schemas,
    get_remote_timeout,
    get_request_timeout,
    get_sentry_enabled,
)
from demo.authors import author_schema
from demo.chirps import chirp_schema
from demo.links import link_extensions
from errors import StartupError
from executors.remote import forward_authorization
from flask import Flask, jsonify, redirect, request, url_for
from gateway import build_gateway, get_gateway, init_gateway
from healthcheck import HealthCheck
from os import getenv
from werkzeug.exceptions import HTTPException


logging.basicConfig(
    format="%(asctime)s %(process)d,%(threadName)s %(filename)s:%(lineno)d [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)

EXPLORER_HTML = ExplorerGraphiQL(title="Schema stitching gateway").html(None)


def load_sentry():
    if get_sentry_enabled():
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=getenv("SENTRY_DSN"),
            integrations=[FlaskIntegration()],
        )


def load_gateway():
    """Builds the unified schema; the gateway does not serve without it."""
    try:
        gateway = asyncio.run(
            build_gateway(
                local_schemas=[chirp_schema(), author_schema()],
                remote_schemas=get_remote_schemas(),
                extensions=link_extensions,
                debug=get_debug(),
                request_timeout=get_request_timeout(),
                timeout=get_remote_timeout(),
                retries=get_introspection_retries(),
                backoff=get_introspection_backoff(),
                headers=forward_authorization if get_forward_authorization() else None,
            )
        )
    except StartupError as error:
        logger.critical(f"Gateway startup aborted: {error}")
        raise
    init_gateway(gateway)
    return gateway


def gateway_available():
    if get_gateway() is None:
        return False, "Unified schema is not loaded"
    return True, "Unified schema is loaded"


def init_app():
    app = Flask(__name__)
    app.config["DEBUG"] = get_debug()

    health = HealthCheck()
    health.add_check(gateway_available)
    app.add_url_rule("/health", "healthcheck", view_func=lambda: health.run())

    @app.route("/graphql", methods=["GET"])
    def graphql_explorer():
        return EXPLORER_HTML, 200

    @app.route("/graphiql", methods=["GET"])
    def graphiql():
        return redirect(url_for("graphql_explorer"))

    @app.route("/graphql", methods=["POST"])
    async def graphql_server():
        data = request.get_json(silent=True)
        success, result = await get_gateway().handle_request(
            data, request._get_current_object()
        )
        status_code = 200 if success else 400
        return jsonify(result), status_code

    @app.errorhandler(HTTPException)
    def http_exception(exception):
        return jsonify(message=exception.description), exception.code

    @app.errorhandler(Exception)
    def exception(exception):
        logger.exception(
            f"{exception.__class__.__name__}: {exception}", exc_info=exception
        )
        return jsonify(message=f"{exception.__class__.__name__}: {exception}"), 500

    return app


load_sentry()
load_gateway()
app = init_app()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=get_port())
