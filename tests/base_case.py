import unittest

from ariadne import ObjectType, QueryType
from gateway import Gateway
from merging.merger import Delegation, FieldExtension, merge
from schemas.descriptor import SchemaDescriptor, make_local_schema


CHIRPS = {
    "1": {"id": "1", "text": "Stitching schemas today", "authorId": "10"},
    "2": {"id": "2", "text": "Still stitching", "authorId": "10"},
    "3": {"id": "3", "text": "Hello from Grace", "authorId": "11"},
}

USERS = {
    "10": {"id": "10", "email": "ada@example.com"},
    "11": {"id": "11", "email": "grace@example.com"},
}


class RecordingExecutor:
    def __init__(self, executor):
        self.executor = executor
        self.calls = []

    async def execute(self, query, variables=None, context=None, operation_name=None):
        self.calls.append({"query": query, "variables": variables, "context": context})
        return await self.executor.execute(query, variables, context, operation_name)


class FailingExecutor:
    def __init__(self, message="Service unavailable"):
        self.message = message
        self.calls = []

    async def execute(self, query, variables=None, context=None, operation_name=None):
        self.calls.append({"query": query, "variables": variables, "context": context})
        return {"data": None, "errors": [{"message": self.message}]}


class BaseCase(unittest.IsolatedAsyncioTestCase):
    chirp_type_defs = """
        type Chirp {
            id: ID!
            text: String
            authorId: ID!
        }

        type Query {
            chirpById(id: ID!): Chirp
            chirpsByAuthorId(authorId: ID!): [Chirp]
        }
    """

    author_type_defs = """
        type User {
            id: ID!
            email: String
        }

        type Query {
            userById(id: ID!): User
        }
    """

    def chirp_schema(self):
        query = QueryType()

        @query.field("chirpById")
        def resolve_chirp_by_id(*_, id):
            return CHIRPS.get(id)

        @query.field("chirpsByAuthorId")
        def resolve_chirps_by_author_id(*_, authorId):
            return [chirp for chirp in CHIRPS.values() if chirp["authorId"] == authorId]

        return self.recorded(make_local_schema("chirps", self.chirp_type_defs, query))

    def author_schema(self):
        query = QueryType()
        user = ObjectType("User")

        @query.field("userById")
        def resolve_user_by_id(*_, id):
            return USERS.get(id)

        @user.field("email")
        def resolve_email(obj, *_):
            if obj["id"] == "11":
                raise ValueError("Email address is private")
            return obj["email"]

        return self.recorded(
            make_local_schema("authors", self.author_type_defs, query, user)
        )

    @staticmethod
    def recorded(descriptor):
        return SchemaDescriptor(
            descriptor.name, descriptor.type_defs, RecordingExecutor(descriptor.executor)
        )

    @staticmethod
    def link_extensions():
        return [
            FieldExtension(
                "User",
                "chirps",
                "[Chirp]",
                Delegation(
                    "chirps",
                    "chirpsByAuthorId",
                    lambda required, args: {"authorId": required["id"]},
                ),
                required=("id",),
            ),
            FieldExtension(
                "Chirp",
                "author",
                "User",
                Delegation(
                    "authors",
                    "userById",
                    lambda required, args: {"id": required["authorId"]},
                ),
                required=("authorId",),
            ),
        ]

    def setUp(self):
        self.chirps = self.chirp_schema()
        self.authors = self.author_schema()

    def create_gateway(self, *descriptors, **kwargs):
        descriptors = descriptors or (self.chirps, self.authors)
        return Gateway(merge(descriptors, self.link_extensions()), **kwargs)

    def error_paths(self, result):
        return [error["path"] for error in result.get("errors", [])]
