from schemas.descriptor import make_local_schema


AUTHOR_TYPE_DEFS = """
    type User {
        id: ID!
        email: String
    }

    type Query {
        userById(id: ID!): User
    }
"""


def author_schema():
    return make_local_schema("authors", AUTHOR_TYPE_DEFS, mocks=True)
