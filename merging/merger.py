from ariadne import MutationType, ObjectType, QueryType, make_executable_schema
from dataclasses import dataclass, field
from delegation.resolvers import (
    DelegationResolver,
    OwnFieldResolver,
    StitchedFallbackResolvers,
)
from errors import (
    DuplicateSchemaError,
    ExtensionFieldCollisionError,
    InvalidRequiredFieldError,
    MergeError,
    RootFieldCollisionError,
    TypeCollisionError,
    UnknownExtensionTargetError,
)
from graphql import (
    GraphQLObjectType,
    GraphQLSchema,
    ListTypeNode,
    NonNullTypeNode,
    get_named_type,
    get_nullable_type,
    is_leaf_type,
    is_list_type,
    is_specified_scalar_type,
    parse_type,
    print_type,
)
from merging.signatures import type_signature
from types import MappingProxyType
from typing import Any, Callable, Mapping, Tuple


ROOT_TYPE_NAMES = {"query": "Query", "mutation": "Mutation"}


def _pass_arguments(required, args):
    return dict(args)


@dataclass(frozen=True)
class Delegation:
    """Which root field of which schema resolves an extension field.

    ``args`` receives the required field values (by dotted path) and the
    arguments of the extension field, and returns the root field arguments.
    """

    schema: str
    field_name: str
    args: Callable[[Mapping[str, Any], Mapping[str, Any]], Mapping[str, Any]] = (
        _pass_arguments
    )
    operation: str = "query"


@dataclass(frozen=True)
class FieldExtension:
    type_name: str
    field_name: str
    return_type: str
    delegate: Delegation
    required: Tuple[str, ...] = ()
    arguments: str = ""

    @property
    def type_defs(self):
        return (
            f"extend type {self.type_name} {{\n"
            f"  {self.field_name}{self.arguments}: {self.return_type}\n"
            f"}}"
        )


@dataclass(frozen=True)
class UnifiedSchema:
    schema: GraphQLSchema
    type_defs: str
    descriptors: Mapping[str, Any]
    root_owners: Mapping[Tuple[str, str], str]
    extensions: Mapping[Tuple[str, str], FieldExtension] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def owner_of(self, operation, field_name):
        return self.descriptors[self.root_owners[(operation, field_name)]]

    def extension_for(self, type_name, field_name):
        return self.extensions.get((type_name, field_name))


def _unique_descriptors(descriptors):
    unique = {}
    for descriptor in descriptors:
        known = unique.get(descriptor.name)
        if known is not None and known is not descriptor:
            raise DuplicateSchemaError(descriptor.name)
        unique[descriptor.name] = descriptor
    return unique


def _root_types(schema):
    return {"query": schema.query_type, "mutation": schema.mutation_type}


def _collect(descriptors):
    types, root_fields = {}, {operation: {} for operation in ROOT_TYPE_NAMES}
    for descriptor in descriptors.values():
        schema = descriptor.schema
        root_types = _root_types(schema)
        root_names = {
            root_type.name
            for root_type in [*root_types.values(), schema.subscription_type]
            if root_type is not None
        }
        for name, named_type in schema.type_map.items():
            if name.startswith("__") or name in root_names:
                continue
            if is_specified_scalar_type(named_type):
                continue
            if name in ROOT_TYPE_NAMES.values():
                raise MergeError(
                    f"Schema '{descriptor.name}' uses the root type name '{name}' "
                    f"for a non-root type"
                )
            if name in types:
                known, owner = types[name]
                if type_signature(known) != type_signature(named_type):
                    raise TypeCollisionError(name, owner, descriptor.name)
                continue
            types[name] = (named_type, descriptor.name)
        for operation, root_type in root_types.items():
            if root_type is None:
                continue
            for field_name, root_field in root_type.fields.items():
                if field_name in root_fields[operation]:
                    raise RootFieldCollisionError(
                        ROOT_TYPE_NAMES[operation],
                        field_name,
                        root_fields[operation][field_name][1],
                        descriptor.name,
                    )
                root_fields[operation][field_name] = (root_field, descriptor.name)
    return types, root_fields


def _target_fields(extension, types, root_fields):
    for operation, type_name in ROOT_TYPE_NAMES.items():
        if extension.type_name == type_name:
            if not root_fields[operation]:
                break
            return {name: entry[0] for name, entry in root_fields[operation].items()}
    target = types.get(extension.type_name)
    if target is None:
        raise UnknownExtensionTargetError(
            f"Cannot extend '{extension.type_name}': no schema defines it"
        )
    target_type = target[0]
    if not isinstance(target_type, GraphQLObjectType):
        raise UnknownExtensionTargetError(
            f"Cannot extend '{extension.type_name}': it is not an object type"
        )
    return target_type.fields


def _validate_required(extension, fields):
    for path in extension.required:
        current_fields, field_type = fields, None
        for segment in path.split("."):
            if current_fields is None or segment not in current_fields:
                raise InvalidRequiredFieldError(extension.type_name, path)
            field_type = get_named_type(current_fields[segment].type)
            current_fields = getattr(field_type, "fields", None)
        if not is_leaf_type(field_type):
            raise InvalidRequiredFieldError(extension.type_name, path)


def _validate_extension(extension, types, root_fields, descriptors, seen):
    fields = _target_fields(extension, types, root_fields)
    key = (extension.type_name, extension.field_name)
    if extension.field_name in fields or key in seen:
        raise ExtensionFieldCollisionError(*key)
    return_type = get_named_type_name(extension.return_type)
    if return_type not in types and not _is_builtin_scalar(return_type):
        raise UnknownExtensionTargetError(
            f"'{extension.type_name}.{extension.field_name}' returns unknown type "
            f"'{return_type}'"
        )
    _validate_required(extension, fields)
    delegate = extension.delegate
    if delegate.schema not in descriptors:
        raise UnknownExtensionTargetError(
            f"'{extension.type_name}.{extension.field_name}' delegates to unknown "
            f"schema '{delegate.schema}'"
        )
    owner = root_fields.get(delegate.operation, {}).get(delegate.field_name)
    if owner is None or owner[1] != delegate.schema:
        raise UnknownExtensionTargetError(
            f"Schema '{delegate.schema}' has no {delegate.operation} field "
            f"'{delegate.field_name}'"
        )
    if _is_list_reference(extension.return_type) != is_list_type(
        get_nullable_type(owner[0].type)
    ):
        raise MergeError(
            f"'{extension.type_name}.{extension.field_name}: {extension.return_type}' "
            f"does not match the shape of '{delegate.field_name}: {owner[0].type}' "
            f"in schema '{delegate.schema}'"
        )


def get_named_type_name(type_reference):
    type_node = parse_type(type_reference)
    while not hasattr(type_node, "name"):
        type_node = type_node.type
    return type_node.name.value


def _is_list_reference(type_reference):
    type_node = parse_type(type_reference)
    if isinstance(type_node, NonNullTypeNode):
        type_node = type_node.type
    return isinstance(type_node, ListTypeNode)


def _is_builtin_scalar(name):
    return name in ("String", "Int", "Float", "Boolean", "ID")


def _print_root_type(operation, root_fields):
    return print_type(
        GraphQLObjectType(
            ROOT_TYPE_NAMES[operation],
            {name: entry[0] for name, entry in root_fields[operation].items()},
        )
    )


def merge(descriptors, extensions=()):
    """Composes the descriptors and field extensions into one executable schema.

    Types with the same name must have the same shape in every schema; root
    fields are merged into single Query and Mutation types and must not
    collide. Raises a MergeError subclass when the schemas cannot be composed.
    """
    descriptors = _unique_descriptors(descriptors)
    types, root_fields = _collect(descriptors)
    if not root_fields["query"]:
        raise MergeError("None of the schemas defines a query field")

    seen = {}
    for extension in extensions:
        _validate_extension(extension, types, root_fields, descriptors, seen)
        seen[(extension.type_name, extension.field_name)] = extension
    extension_map = MappingProxyType(seen)

    type_defs = "\n\n".join(
        [print_type(named_type) for named_type, _ in types.values()]
        + [
            _print_root_type(operation, root_fields)
            for operation in ROOT_TYPE_NAMES
            if root_fields[operation]
        ]
        + [extension.type_defs for extension in extension_map.values()]
    )

    bindables = {"Query": QueryType()}
    if root_fields["mutation"]:
        bindables["Mutation"] = MutationType()
    root_owners = {}
    for operation, type_name in ROOT_TYPE_NAMES.items():
        for field_name, (_, owner) in root_fields[operation].items():
            root_owners[(operation, field_name)] = owner
            bindables[type_name].set_field(
                field_name,
                OwnFieldResolver(descriptors[owner], operation, extension_map),
            )
    for extension in extension_map.values():
        if extension.type_name not in bindables:
            bindables[extension.type_name] = ObjectType(extension.type_name)
        bindables[extension.type_name].set_field(
            extension.field_name,
            DelegationResolver(
                extension, descriptors[extension.delegate.schema], extension_map
            ),
        )

    schema = make_executable_schema(
        type_defs, *bindables.values(), StitchedFallbackResolvers()
    )
    return UnifiedSchema(
        schema=schema,
        type_defs=type_defs,
        descriptors=MappingProxyType(dict(descriptors)),
        root_owners=MappingProxyType(root_owners),
        extensions=extension_map,
    )
