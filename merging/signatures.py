from graphql import (
    GraphQLEnumType,
    GraphQLInputObjectType,
    GraphQLInterfaceType,
    GraphQLObjectType,
    GraphQLUnionType,
)


def _arguments_signature(arguments):
    return tuple(
        sorted(
            (name, str(argument.type), repr(argument.default_value))
            for name, argument in arguments.items()
        )
    )


def type_signature(named_type):
    """Describes the shape of a named type, ignoring descriptions and ordering.

    Two types with the same name can be merged when their signatures are equal.
    """
    kind = type(named_type).__name__
    if isinstance(named_type, (GraphQLObjectType, GraphQLInterfaceType)):
        return (
            kind,
            tuple(sorted(interface.name for interface in named_type.interfaces)),
            tuple(
                sorted(
                    (name, str(field.type), _arguments_signature(field.args))
                    for name, field in named_type.fields.items()
                )
            ),
        )
    if isinstance(named_type, GraphQLInputObjectType):
        return (
            kind,
            tuple(
                sorted(
                    (name, str(field.type), repr(field.default_value))
                    for name, field in named_type.fields.items()
                )
            ),
        )
    if isinstance(named_type, GraphQLEnumType):
        return kind, tuple(sorted(named_type.values))
    if isinstance(named_type, GraphQLUnionType):
        return kind, tuple(sorted(member.name for member in named_type.types))
    return (kind,)
