import asyncio
import logging

import requests

from errors import IntrospectionError
from executors.remote import RemoteExecutor
from graphql import GraphQLError, build_client_schema, get_introspection_query, print_schema
from schemas.descriptor import SchemaDescriptor


logger = logging.getLogger(__name__)


async def introspect_schema(uri, session, timeout=10, retries=3, backoff=0.5):
    """Fetches the type system of a remote endpoint and returns it as SDL.

    Connection errors, timeouts and 5xx answers are retried with exponential
    backoff; everything else fails immediately.
    """
    payload = {"query": get_introspection_query(descriptions=True)}
    failure = None
    for attempt in range(retries + 1):
        try:
            response = await asyncio.to_thread(
                session.post, uri, json=payload, timeout=timeout
            )
        except (requests.ConnectionError, requests.Timeout) as error:
            failure = f"endpoint unreachable: {error}"
        except requests.RequestException as error:
            raise IntrospectionError(uri, str(error)) from error
        else:
            if response.status_code < 500:
                return _parse_introspection(uri, response)
            failure = f"HTTP {response.status_code}"
        if attempt < retries:
            delay = backoff * 2**attempt
            logger.warning(
                f"Introspection of {uri} failed ({failure}), retrying in {delay}s"
            )
            await asyncio.sleep(delay)
    raise IntrospectionError(uri, failure)


def _parse_introspection(uri, response):
    if not response.ok:
        raise IntrospectionError(uri, f"HTTP {response.status_code}")
    try:
        result = response.json()
    except ValueError as error:
        raise IntrospectionError(uri, "response is not JSON") from error
    if not isinstance(result, dict):
        raise IntrospectionError(uri, "response is not a GraphQL result")
    if errors := result.get("errors"):
        messages = [
            error.get("message", str(error)) if isinstance(error, dict) else str(error)
            for error in errors
        ]
        raise IntrospectionError(uri, "; ".join(messages))
    data = result.get("data")
    if not isinstance(data, dict) or not isinstance(data.get("__schema"), dict):
        raise IntrospectionError(uri, "response has no __schema")
    try:
        schema = build_client_schema(data)
    except (GraphQLError, KeyError, TypeError, ValueError) as error:
        raise IntrospectionError(
            uri, f"malformed introspection payload: {error}"
        ) from error
    return print_schema(schema)


async def create_remote_schema(
    name, uri, session=None, timeout=10, retries=3, backoff=0.5, headers=None
):
    session = session or requests.Session()
    type_defs = await introspect_schema(
        uri, session, timeout=timeout, retries=retries, backoff=backoff
    )
    logger.info(f"Introspected remote schema '{name}' at {uri}")
    return SchemaDescriptor(
        name,
        type_defs,
        RemoteExecutor(uri, session=session, timeout=timeout, headers=headers),
    )


async def create_remote_schemas(remote_schemas, **kwargs):
    """Introspects all endpoints of a {name: uri} mapping concurrently."""
    return list(
        await asyncio.gather(
            *[
                create_remote_schema(name, uri, **kwargs)
                for name, uri in remote_schemas.items()
            ]
        )
    )
