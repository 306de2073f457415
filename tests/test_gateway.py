import asyncio
import json

from errors import IntrospectionError, TypeCollisionError
from gateway import Gateway, build_gateway
from merging.merger import merge
from schemas.descriptor import SchemaDescriptor
from tests.base_case import BaseCase
from unittest.mock import AsyncMock, patch


class SlowExecutor:
    async def execute(self, query, variables=None, context=None, operation_name=None):
        await asyncio.sleep(5)
        return {"data": None}


class GatewayTest(BaseCase):
    async def test_single_schema_query_matches_direct_query(self):
        gateway = self.create_gateway()
        query = """
            query ($authorId: ID!) {
                chirpsByAuthorId(authorId: $authorId) { id text authorId }
                chirpById(id: "3") { text }
            }
        """

        direct = await self.chirps.executor.execute(query, {"authorId": "10"})
        stitched = await gateway.handle_query(query, {"authorId": "10"})

        self.assertEqual(direct, stitched)
        self.assertEqual(json.dumps(direct), json.dumps(stitched))

    async def test_invalid_query_is_reported_not_raised(self):
        gateway = self.create_gateway()

        success, result = await gateway.handle_request(
            {"query": '{ chirpById(id: "1") { likes } }'}
        )

        self.assertFalse(success)
        self.assertEqual(1, len(result["errors"]))
        self.assertIn("likes", result["errors"][0]["message"])
        self.assertEqual([], self.chirps.executor.calls)

    async def test_invalid_payload_is_reported_not_raised(self):
        gateway = self.create_gateway()

        success, result = await gateway.handle_request(None)

        self.assertFalse(success)
        self.assertEqual(1, len(result["errors"]))

    async def test_request_timeout(self):
        chirps = SchemaDescriptor("chirps", self.chirp_type_defs, SlowExecutor())
        gateway = Gateway(merge([chirps]), request_timeout=0.05)

        success, result = await gateway.handle_request(
            {"query": '{ chirpById(id: "1") { text } }'}
        )

        self.assertFalse(success)
        self.assertIsNone(result["data"])
        self.assertIn("timed out", result["errors"][0]["message"])

    async def test_build_gateway(self):
        remote = SchemaDescriptor(
            "weather",
            "type Weather { temperature: Float } type Query { weather(place: String!): Weather }",
            None,
        )
        with patch(
            "gateway.create_remote_schemas", AsyncMock(return_value=[remote])
        ) as create_remote_schemas:
            gateway = await build_gateway(
                local_schemas=[self.chirps, self.authors],
                remote_schemas={"weather": "https://weather.example.com/graphql"},
                extensions=lambda registry: self.link_extensions(),
                timeout=3,
            )

        create_remote_schemas.assert_awaited_once_with(
            {"weather": "https://weather.example.com/graphql"}, timeout=3
        )
        self.assertEqual(
            {"chirps", "authors", "weather"},
            set(gateway.unified_schema.descriptors),
        )
        self.assertIn("author", gateway.schema.get_type("Chirp").fields)

    async def test_build_gateway_fails_on_introspection_error(self):
        with patch(
            "gateway.create_remote_schemas",
            AsyncMock(side_effect=IntrospectionError("https://down.example.com", "HTTP 502")),
        ):
            with self.assertRaises(IntrospectionError):
                await build_gateway(
                    local_schemas=[self.chirps],
                    remote_schemas={"down": "https://down.example.com"},
                )

    async def test_build_gateway_fails_on_collision(self):
        users = SchemaDescriptor(
            "users", "type User { id: ID! } type Query { me: User }", None
        )

        with self.assertRaises(TypeCollisionError):
            await build_gateway(local_schemas=[self.authors, users])
