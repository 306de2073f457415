import asyncio
import logging

from ariadne import format_error, graphql
from delegation.query_builder import ReservedNamesRule
from delegation.resolvers import RequestScope
from merging.merger import merge
from schemas.descriptor import SchemaRegistry
from schemas.remote import create_remote_schemas


logger = logging.getLogger(__name__)

_gateway = None


def log_unhandled_exception(loop, context):
    logger.error(
        f"Unhandled exception in event loop: {context.get('message')}",
        exc_info=context.get("exception"),
    )


class Gateway:
    """Serves queries against the unified schema."""

    def __init__(self, unified_schema, debug=False, request_timeout=None):
        self.unified_schema = unified_schema
        self.debug = debug
        self.request_timeout = request_timeout

    @property
    def schema(self):
        return self.unified_schema.schema

    async def handle_request(self, data, context=None):
        """Executes a GraphQL-over-HTTP payload, returns (success, result).

        Invalid queries are reported in the result's errors, never raised.
        """
        asyncio.get_running_loop().set_exception_handler(log_unhandled_exception)
        scope = RequestScope(context)
        try:
            success, result = await asyncio.wait_for(
                graphql(
                    self.schema,
                    data,
                    context_value=scope,
                    debug=self.debug,
                    logger=__name__,
                    validation_rules=[ReservedNamesRule],
                ),
                timeout=self.request_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Request cancelled after {self.request_timeout}s "
                f"with {scope.delegation_count} sub-queries sent"
            )
            return False, {
                "data": None,
                "errors": [
                    {"message": f"Request timed out after {self.request_timeout}s"}
                ],
            }
        if scope.errors:
            result.setdefault("errors", []).extend(
                format_error(error, self.debug) for error in scope.errors
            )
        return success, result

    async def handle_query(self, query, variables=None, context=None, operation_name=None):
        data = {"query": query, "variables": variables or {}}
        if operation_name:
            data["operationName"] = operation_name
        _, result = await self.handle_request(data, context)
        return result


async def build_gateway(
    local_schemas=(),
    remote_schemas=None,
    extensions=(),
    debug=False,
    request_timeout=None,
    **remote_options,
):
    """Registers every schema, introspects the remote ones and merges them.

    :param remote_schemas: {name: uri} of the endpoints to introspect
    :param extensions: FieldExtensions, or a callable returning them for the registry
    :raises StartupError: when a schema cannot be introspected or merged
    """
    asyncio.get_running_loop().set_exception_handler(log_unhandled_exception)
    registry = SchemaRegistry(local_schemas)
    for descriptor in await create_remote_schemas(remote_schemas or {}, **remote_options):
        registry.register(descriptor)
    if callable(extensions):
        extensions = extensions(registry)
    unified_schema = merge(registry.descriptors(), extensions)
    logger.info(
        f"Unified schema built from {', '.join(d.name for d in registry)} "
        f"with {len(unified_schema.extensions)} extension fields"
    )
    return Gateway(unified_schema, debug=debug, request_timeout=request_timeout)


def init_gateway(gateway):
    global _gateway
    _gateway = gateway


def get_gateway():
    global _gateway
    return _gateway
