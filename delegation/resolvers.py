import asyncio
import json
import logging

from ariadne.types import SchemaBindable
from collections.abc import Mapping
from delegation.query_builder import REQUIRED_PREFIX, SubQueryBuilder
from errors import DelegationExecutionError
from graphql import (
    FieldNode,
    FragmentSpreadNode,
    GraphQLError,
    GraphQLObjectType,
    InlineFragmentNode,
    default_field_resolver,
    is_non_null_type,
)


logger = logging.getLogger(__name__)


class RequestScope:
    """State private to one incoming request.

    Holds the client context, forwarded unchanged to every executor, the
    sub-queries already sent, so identical sub-queries run only once, and the
    sub-query errors to report alongside the gateway's own errors.
    """

    def __init__(self, context=None):
        self.context = context
        self.errors = []
        self._delegations = {}

    def report(self, error):
        self.errors.append(error)

    def execute(self, descriptor, query, variables, memoize=True):
        if not memoize:
            return descriptor.executor.execute(query, variables, self.context)
        key = (descriptor.name, query, json.dumps(variables, sort_keys=True, default=str))
        if key not in self._delegations:
            self._delegations[key] = asyncio.ensure_future(
                descriptor.executor.execute(query, variables, self.context)
            )
        return self._delegations[key]

    @property
    def delegation_count(self):
        return len(self._delegations)


async def _execute(descriptor, query, variables, info, memoize=True):
    if isinstance(info.context, RequestScope):
        return await info.context.execute(descriptor, query, variables, memoize)
    return await descriptor.executor.execute(query, variables, info.context)


def _error_message(error):
    if isinstance(error, dict):
        return error.get("message", str(error))
    return str(error)


def _response_key(node):
    return node.alias.value if node.alias else node.name.value


def _selected_fields(selections, fragments):
    for selection in selections:
        if isinstance(selection, FieldNode):
            yield selection
        elif isinstance(selection, InlineFragmentNode):
            yield from _selected_fields(selection.selection_set.selections, fragments)
        elif isinstance(selection, FragmentSpreadNode):
            fragment = fragments.get(selection.name.value)
            if fragment is not None:
                yield from _selected_fields(fragment.selection_set.selections, fragments)


def field_nodes_at(info, path):
    """Finds the client's field nodes for a response path below the current field."""
    nodes = list(info.field_nodes)
    for key in path:
        if isinstance(key, int):
            continue
        selections = [
            selection
            for node in nodes
            if node.selection_set
            for selection in node.selection_set.selections
        ]
        nodes = [
            node
            for node in _selected_fields(selections, info.fragments)
            if _response_key(node) == key
        ]
        if not nodes:
            return list(info.field_nodes)
    return nodes


def _nested_path(error, field_name):
    path = error.get("path") if isinstance(error, dict) else None
    if path and len(path) > 1 and path[0] == field_name:
        return list(path[1:])
    return None


def _client_error(error, info, nested_path):
    """Rebuilds a sub-query error at its position in the client's response."""
    nested_path = nested_path or []
    return GraphQLError(
        _error_message(error),
        nodes=field_nodes_at(info, nested_path),
        path=info.path.as_list() + nested_path,
        extensions=error.get("extensions") if isinstance(error, dict) else None,
    )


def extract_result(result, field_name, info):
    """Returns the root field value of a sub-query result.

    Errors of the sub-query are reported at their path in the client's
    response, next to the data the sub-query did return. The field fails as a
    whole when its value is missing and the errors cannot be placed below it,
    when it cannot be null, or when there is no RequestScope to report to.
    """
    data = result.get("data")
    value = data.get(field_name) if isinstance(data, dict) else None
    errors = result.get("errors") or []
    if not errors:
        return value
    messages = "; ".join(_error_message(error) for error in errors)
    scope = info.context if isinstance(info.context, RequestScope) else None
    nested_paths = [_nested_path(error, field_name) for error in errors]
    if scope is None or (
        value is None
        and (
            is_non_null_type(info.return_type)
            or any(path is None for path in nested_paths)
        )
    ):
        raise DelegationExecutionError(messages, errors)
    logger.warning(f"Sub-query for '{field_name}' returned errors: {messages}")
    for error, nested_path in zip(errors, nested_paths):
        scope.report(_client_error(error, info, nested_path))
    return value


async def delegate_to_schema(
    descriptor, operation, field_name, info, extensions, arguments=None
):
    argument_types = None
    if arguments is not None:
        root_type = (
            info.schema.mutation_type
            if operation == "mutation"
            else info.schema.query_type
        )
        field = root_type.fields[field_name]
        unknown = set(arguments) - set(field.args)
        if unknown:
            raise DelegationExecutionError(
                f"'{field_name}' has no argument(s) {', '.join(sorted(unknown))}"
            )
        argument_types = {name: field.args[name].type for name in arguments}
    query, variables = SubQueryBuilder(info, extensions).build(
        operation, field_name, arguments=arguments, argument_types=argument_types
    )
    result = await _execute(
        descriptor, query, variables, info, memoize=operation == "query"
    )
    return extract_result(result, field_name, info)


def required_values(parent, paths):
    """Reads the values selected for an extension's required fields."""
    values = {}
    for path in paths:
        head, *rest = path.split(".")
        key = f"{REQUIRED_PREFIX}{head}"
        if not isinstance(parent, Mapping) or key not in parent:
            raise DelegationExecutionError(
                f"Required field '{path}' is missing from the parent value"
            )
        value = parent[key]
        for segment in rest:
            value = value.get(segment) if isinstance(value, Mapping) else None
        values[path] = value
    return values


class OwnFieldResolver:
    """Resolves a root field by delegating it to the schema that owns it."""

    def __init__(self, descriptor, operation, extensions):
        self.descriptor = descriptor
        self.operation = operation
        self.extensions = extensions

    async def __call__(self, parent, info, **kwargs):
        return await delegate_to_schema(
            self.descriptor, self.operation, info.field_name, info, self.extensions
        )


class DelegationResolver:
    """Resolves a field added by a FieldExtension through another schema."""

    def __init__(self, extension, descriptor, extensions):
        self.extension = extension
        self.descriptor = descriptor
        self.extensions = extensions

    async def __call__(self, parent, info, **kwargs):
        required = required_values(parent, self.extension.required)
        if any(value is None for value in required.values()):
            return None
        delegate = self.extension.delegate
        arguments = delegate.args(required, kwargs)
        try:
            return await delegate_to_schema(
                self.descriptor,
                delegate.operation,
                delegate.field_name,
                info,
                self.extensions,
                arguments=arguments,
            )
        except DelegationExecutionError as error:
            logger.warning(
                f"Delegating {self.extension.type_name}.{self.extension.field_name} "
                f"to '{self.descriptor.name}' failed: {error}"
            )
            raise


def resolve_from_parent(parent, info, **kwargs):
    """Reads a field from a delegated result by its response key.

    Sub-queries keep the client's aliases, so the value sits under the alias
    rather than under the field name.
    """
    if not isinstance(parent, Mapping):
        return default_field_resolver(parent, info, **kwargs)
    key = info.path.key
    return parent[key] if key in parent else parent.get(info.field_name)


class StitchedFallbackResolvers(SchemaBindable):
    def bind_to_schema(self, schema):
        for type_object in schema.type_map.values():
            if not isinstance(type_object, GraphQLObjectType):
                continue
            if type_object.name.startswith("__"):
                continue
            for field in type_object.fields.values():
                if field.resolve is None:
                    field.resolve = resolve_from_parent
