import uuid

from ariadne.types import SchemaBindable
from graphql import (
    GraphQLEnumType,
    GraphQLInterfaceType,
    GraphQLList,
    GraphQLNonNull,
    GraphQLObjectType,
    GraphQLScalarType,
    GraphQLUnionType,
)


MOCK_SCALARS = {
    "Int": lambda: 42,
    "Float": lambda: 4.2,
    "String": lambda: "Hello World",
    "Boolean": lambda: True,
    "ID": lambda: str(uuid.uuid4()),
}
MOCK_LIST_LENGTH = 2


def mock_value(schema, field_type):
    if isinstance(field_type, GraphQLNonNull):
        return mock_value(schema, field_type.of_type)
    if isinstance(field_type, GraphQLList):
        return [
            mock_value(schema, field_type.of_type) for _ in range(MOCK_LIST_LENGTH)
        ]
    if isinstance(field_type, GraphQLScalarType):
        return MOCK_SCALARS.get(field_type.name, MOCK_SCALARS["String"])()
    if isinstance(field_type, GraphQLEnumType):
        return next(iter(field_type.values.values())).value
    if isinstance(field_type, (GraphQLInterfaceType, GraphQLUnionType)):
        possible_types = schema.get_possible_types(field_type)
        return {"__typename": possible_types[0].name} if possible_types else None
    return {}


def resolve_mock(parent, info, **kwargs):
    if isinstance(parent, dict) and info.field_name in parent:
        return parent[info.field_name]
    return mock_value(info.schema, info.return_type)


class MockResolvers(SchemaBindable):
    """Gives every field that has no resolver a value made up from its type."""

    def bind_to_schema(self, schema):
        for type_object in schema.type_map.values():
            if not isinstance(type_object, GraphQLObjectType):
                continue
            if type_object.name.startswith("__"):
                continue
            for field in type_object.fields.values():
                if field.resolve is None:
                    field.resolve = resolve_mock
