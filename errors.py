class GatewayError(Exception):
    pass


class StartupError(GatewayError):
    """Raised while composing the unified schema; the gateway cannot start."""


class IntrospectionError(StartupError):
    def __init__(self, uri, message):
        super().__init__(f"Introspection of {uri} failed: {message}")
        self.uri = uri


class DuplicateSchemaError(StartupError):
    def __init__(self, name):
        super().__init__(f"A schema named '{name}' is already registered")
        self.name = name


class MergeError(StartupError):
    pass


class TypeCollisionError(MergeError):
    def __init__(self, type_name, first_schema, second_schema):
        super().__init__(
            f"Type '{type_name}' is defined differently in schemas "
            f"'{first_schema}' and '{second_schema}'"
        )
        self.type_name = type_name


class RootFieldCollisionError(MergeError):
    def __init__(self, operation, field_name, first_schema, second_schema):
        super().__init__(
            f"Root field '{operation}.{field_name}' is defined in both "
            f"'{first_schema}' and '{second_schema}'"
        )
        self.field_name = field_name


class UnknownExtensionTargetError(MergeError):
    pass


class ExtensionFieldCollisionError(MergeError):
    def __init__(self, type_name, field_name):
        super().__init__(f"Type '{type_name}' already has a field '{field_name}'")
        self.type_name = type_name
        self.field_name = field_name


class InvalidRequiredFieldError(MergeError):
    def __init__(self, type_name, path):
        super().__init__(f"Required field '{path}' does not exist on '{type_name}'")
        self.type_name = type_name
        self.path = path


class DelegationExecutionError(GatewayError):
    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = errors or []
