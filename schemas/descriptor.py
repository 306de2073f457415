from ariadne import gql, make_executable_schema
from dataclasses import dataclass
from errors import DuplicateSchemaError
from executors.local import LocalExecutor
from functools import cached_property
from graphql import build_schema
from schemas.mocks import MockResolvers
from typing import Any


@dataclass(frozen=True)
class SchemaDescriptor:
    name: str
    type_defs: str
    executor: Any

    @cached_property
    def schema(self):
        return build_schema(self.type_defs)


def make_local_schema(name, type_defs, *bindables, mocks=False, debug=False):
    """Builds a descriptor executed in-process.

    :param type_defs: SDL of the schema
    :param bindables: ariadne bindables (ObjectType, QueryType, ...) with the resolvers
    :param mocks: made up values for every field without a resolver
    """
    type_defs = gql(type_defs)
    bindables = list(bindables)
    if mocks:
        bindables.append(MockResolvers())
    schema = make_executable_schema(type_defs, *bindables)
    return SchemaDescriptor(name, type_defs, LocalExecutor(schema, debug=debug))


class SchemaRegistry:
    def __init__(self, descriptors=None):
        self._descriptors = {}
        for descriptor in descriptors or []:
            self.register(descriptor)

    def register(self, descriptor):
        if descriptor.name in self._descriptors:
            raise DuplicateSchemaError(descriptor.name)
        self._descriptors[descriptor.name] = descriptor
        return descriptor

    def get(self, name):
        return self._descriptors.get(name)

    def descriptors(self):
        return list(self._descriptors.values())

    def __contains__(self, name):
        return name in self._descriptors

    def __iter__(self):
        return iter(self._descriptors.values())

    def __len__(self):
        return len(self._descriptors)
