import requests
import unittest

from errors import IntrospectionError
from executors.remote import RemoteExecutor, forward_authorization
from graphql import build_schema, introspection_from_schema
from schemas.remote import create_remote_schema, create_remote_schemas
from unittest.mock import MagicMock


WEATHER_TYPE_DEFS = """
    type Weather {
        temperature: Float
        description: String
    }

    type Location {
        city: String
    }

    type Query {
        weather(place: String!): Weather
        location(place: String!): Location
    }
"""

URI = "https://weather.example.com/graphql"


def json_response(payload, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.json.return_value = payload
    return response


class RemoteSchemaTest(unittest.IsolatedAsyncioTestCase):
    introspection = {"data": introspection_from_schema(build_schema(WEATHER_TYPE_DEFS))}

    def session(self, *responses):
        session = MagicMock()
        session.post.side_effect = list(responses)
        return session

    async def test_successful_introspection(self):
        session = self.session(json_response(self.introspection))

        descriptor = await create_remote_schema("weather", URI, session=session)

        self.assertEqual("weather", descriptor.name)
        self.assertIn("weather", descriptor.schema.query_type.fields)
        self.assertIsNotNone(descriptor.schema.get_type("Location"))
        self.assertIsInstance(descriptor.executor, RemoteExecutor)
        self.assertEqual(URI, descriptor.executor.uri)
        self.assertIs(session, descriptor.executor.session)
        self.assertIn("__schema", session.post.call_args.kwargs["json"]["query"])

    async def test_introspection_errors(self):
        session = self.session(
            json_response({"errors": [{"message": "Introspection is disabled"}]})
        )

        with self.assertRaises(IntrospectionError) as context:
            await create_remote_schema("weather", URI, session=session)
        self.assertIn("Introspection is disabled", str(context.exception))

    async def test_introspection_without_json(self):
        response = json_response(None)
        response.json.side_effect = ValueError("Expecting value")
        session = self.session(response)

        with self.assertRaises(IntrospectionError):
            await create_remote_schema("weather", URI, session=session)

    async def test_introspection_without_schema(self):
        session = self.session(json_response({"data": {"weather": None}}))

        with self.assertRaises(IntrospectionError):
            await create_remote_schema("weather", URI, session=session)

    async def test_malformed_introspection(self):
        session = self.session(json_response(
            {"data": {"__schema": {"queryType": {"name": "Query"}, "types": []}}}
        ))

        with self.assertRaises(IntrospectionError):
            await create_remote_schema("weather", URI, session=session)

    async def test_client_error_is_not_retried(self):
        session = self.session(json_response({}, status_code=404))

        with self.assertRaises(IntrospectionError):
            await create_remote_schema("weather", URI, session=session, backoff=0)
        self.assertEqual(1, session.post.call_count)

    async def test_transient_failures_are_retried(self):
        session = self.session(
            requests.ConnectionError("Connection refused"),
            json_response({}, status_code=503),
            json_response(self.introspection),
        )

        descriptor = await create_remote_schema(
            "weather", URI, session=session, retries=2, backoff=0
        )

        self.assertIn("location", descriptor.schema.query_type.fields)
        self.assertEqual(3, session.post.call_count)

    async def test_unreachable_endpoint(self):
        session = self.session(*[requests.Timeout("Timed out")] * 3)

        with self.assertRaises(IntrospectionError) as context:
            await create_remote_schema(
                "weather", URI, session=session, retries=2, backoff=0
            )
        self.assertEqual(URI, context.exception.uri)
        self.assertEqual(3, session.post.call_count)

    async def test_create_remote_schemas(self):
        session = MagicMock()
        session.post.return_value = json_response(self.introspection)

        descriptors = await create_remote_schemas(
            {"weather": URI, "forecast": "https://forecast.example.com/graphql"},
            session=session,
        )

        self.assertEqual(["weather", "forecast"], [d.name for d in descriptors])


class RemoteExecutorTest(unittest.IsolatedAsyncioTestCase):
    async def test_execute(self):
        session = MagicMock()
        session.post.return_value = json_response({"data": {"weather": None}})
        executor = RemoteExecutor(URI, session=session, timeout=5)

        result = await executor.execute(
            "query ($place: String!) { weather(place: $place) { temperature } }",
            {"place": "Ghent"},
        )

        self.assertEqual({"data": {"weather": None}}, result)
        session.post.assert_called_once_with(
            URI,
            json={
                "query": "query ($place: String!) { weather(place: $place) { temperature } }",
                "variables": {"place": "Ghent"},
            },
            headers={},
            timeout=5,
        )

    async def test_headers_are_derived_from_context(self):
        session = MagicMock()
        session.post.return_value = json_response({"data": {}})
        executor = RemoteExecutor(URI, session=session, headers=forward_authorization)

        await executor.execute(
            "{ __typename }", context={"headers": {"Authorization": "Bearer abc"}}
        )

        self.assertEqual(
            {"Authorization": "Bearer abc"}, session.post.call_args.kwargs["headers"]
        )

    async def test_network_failure_becomes_error_result(self):
        session = MagicMock()
        session.post.side_effect = requests.ConnectionError("Connection reset")
        executor = RemoteExecutor(URI, session=session)

        result = await executor.execute("{ __typename }")

        self.assertIsNone(result["data"])
        self.assertIn("Connection reset", result["errors"][0]["message"])

    async def test_malformed_response_becomes_error_result(self):
        session = MagicMock()
        session.post.return_value = json_response(["not", "graphql"], status_code=502)
        executor = RemoteExecutor(URI, session=session)

        result = await executor.execute("{ __typename }")

        self.assertIsNone(result["data"])
        self.assertIn("502", result["errors"][0]["message"])

    def test_forward_authorization_without_header(self):
        self.assertEqual({}, forward_authorization({"headers": {}}))
        self.assertEqual({}, forward_authorization(None))
