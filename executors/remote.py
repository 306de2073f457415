import asyncio
import logging

import requests


logger = logging.getLogger(__name__)


def forward_authorization(context):
    """Copies the Authorization header of the incoming request, if there is one."""
    headers = getattr(context, "headers", None)
    if headers is None and isinstance(context, dict):
        headers = context.get("headers")
    if not headers or not headers.get("Authorization"):
        return {}
    return {"Authorization": headers.get("Authorization")}


class RemoteExecutor:
    """Forwards queries to a remote GraphQL endpoint.

    One requests.Session is kept per remote schema so connections are pooled
    and reused by every delegated query. Requests are sent from a worker
    thread so the event loop keeps resolving other fields meanwhile.
    """

    def __init__(self, uri, session=None, timeout=10, headers=None):
        self.uri = uri
        self.session = session or requests.Session()
        self.timeout = timeout
        self.headers = headers

    async def execute(self, query, variables=None, context=None, operation_name=None):
        payload = {"query": query, "variables": variables or {}}
        if operation_name:
            payload["operationName"] = operation_name
        headers = self.headers(context) if self.headers else {}
        try:
            response = await asyncio.to_thread(
                self.session.post,
                self.uri,
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as error:
            logger.warning(f"Request to {self.uri} failed: {error}")
            return self._error_result(f"Request to {self.uri} failed: {error}")
        try:
            result = response.json()
        except ValueError:
            return self._error_result(
                f"{self.uri} answered {response.status_code} without a JSON body"
            )
        if not isinstance(result, dict) or not (
            "data" in result or "errors" in result
        ):
            return self._error_result(
                f"{self.uri} answered {response.status_code} with a malformed GraphQL response"
            )
        return result

    @staticmethod
    def _error_result(message):
        return {"data": None, "errors": [{"message": message}]}
