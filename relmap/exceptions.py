from typing import Any


class RelMapError(Exception):
    """Base class for all RelMap errors."""


class ConfigurationError(RelMapError):
    """Raised when entity or relationship metadata is ambiguous or inconsistent."""

    def __init__(self, type_name: str, reason: str):
        self.type_name = type_name
        self.reason = reason
        super().__init__(f"Invalid mapping for '{type_name}': {reason}")


class RegistryFrozenError(ConfigurationError):
    """Raised when a descriptor is registered after the registry has been frozen."""

    def __init__(self, type_name: str):
        super().__init__(type_name, "the mapping registry is frozen and accepts no further registrations")


class DuplicateRegistrationError(RelMapError):
    """Raised when the same record type is registered twice."""

    def __init__(self, type_name: str):
        self.type_name = type_name
        super().__init__(f"Record type '{type_name}' is already registered.")


class UnknownTypeError(RelMapError):
    """Raised when a record type is not registered."""

    def __init__(self, type_name: str):
        self.type_name = type_name
        super().__init__(f"Record type '{type_name}' is not registered.")


class NoSuchRelationshipError(RelMapError):
    """Raised when a field is not a relationship field of the given record type."""

    def __init__(self, type_name: str, field_name: str):
        self.type_name = type_name
        self.field_name = field_name
        super().__init__(f"Record type '{type_name}' has no relationship field '{field_name}'.")


class NotFoundError(RelMapError):
    """Raised when no row exists for the requested primary key."""

    def __init__(self, type_name: str, primary_key: Any):
        self.type_name = type_name
        self.primary_key = primary_key
        super().__init__(f"No '{type_name}' row found with primary key {primary_key!r}.")


class DanglingReferenceError(RelMapError):
    """Raised on lazy resolution when a stored foreign key points to a missing row."""

    def __init__(self, type_name: str, key: Any):
        self.type_name = type_name
        self.key = key
        super().__init__(f"Reference to '{type_name}' with key {key!r} points to a row that no longer exists.")


class TransactionRequiredError(RelMapError):
    """Raised when a write is attempted outside an active transaction."""

    def __init__(self, operation: str):
        super().__init__(f"'{operation}' requires an active transaction. Call begin_transaction() first.")


class DetachedEntityError(RelMapError):
    """Raised when an entity that already carries a primary key is persisted by a session that does not manage it."""

    def __init__(self, type_name: str, primary_key: Any):
        self.type_name = type_name
        self.primary_key = primary_key
        super().__init__(f"'{type_name}' with primary key {primary_key!r} is not managed by this session.")


class SessionNotSetError(RelMapError):
    """Raised when the mapping session is not set."""

    def __init__(self):
        super().__init__("Mapping session is not set.")


class EnvNotFoundError(RelMapError):
    """Raised when a required environment variable is not found."""

    def __init__(self, env_var_name: str):
        super().__init__(f"Environment variable '{env_var_name}' not found.")
