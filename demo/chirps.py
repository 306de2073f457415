from schemas.descriptor import make_local_schema


CHIRP_TYPE_DEFS = """
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


def chirp_schema():
    return make_local_schema("chirps", CHIRP_TYPE_DEFS, mocks=True)
