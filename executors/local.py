from ariadne import graphql


class LocalExecutor:
    """Runs queries against an in-process executable schema."""

    def __init__(self, schema, debug=False):
        self.schema = schema
        self.debug = debug

    async def execute(self, query, variables=None, context=None, operation_name=None):
        data = {"query": query, "variables": variables or {}}
        if operation_name:
            data["operationName"] = operation_name
        _, result = await graphql(
            self.schema, data, context_value=context, debug=self.debug
        )
        return result
