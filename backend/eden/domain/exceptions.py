"""Domain-specific exceptions — framework-independent."""


class EntityNotFoundError(Exception):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, entity_id: int | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id '{entity_id}' not found")


class EntityValidationError(Exception):
    """Raised when a collection fails the schema registered for its key."""

    def __init__(self, key: str, reason: str, index: int | None = None):
        self.key = key
        self.reason = reason
        self.index = index
        location = f" at index {index}" if index is not None else ""
        super().__init__(f"Invalid '{key}' collection{location}: {reason}")


class StorageError(Exception):
    """Raised when the key/value backend cannot serialize or persist a value.

    Covers quota exhaustion, unserializable payloads and driver failures.
    """

    def __init__(self, operation: str, key: str, message: str):
        self.operation = operation
        self.key = key
        self.message = message
        super().__init__(f"Storage {operation} failed for key '{key}': {message}")


class RemoteServiceError(Exception):
    """Raised when the homelab API cannot be reached or answers badly."""

    def __init__(self, endpoint: str, message: str):
        self.endpoint = endpoint
        self.message = message
        super().__init__(f"[{endpoint}] {message}")


class RemoteTimeoutError(RemoteServiceError):
    """Raised when a single request attempt exceeds its timeout."""

    def __init__(self, endpoint: str, timeout: float):
        self.timeout = timeout
        super().__init__(endpoint, f"timed out after {timeout:g}s")


class RemoteHTTPError(RemoteServiceError):
    """Raised when the homelab API answers with a non-2xx status."""

    def __init__(self, endpoint: str, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(endpoint, f"HTTP {status_code}: {message}")


class ReconciliationParseError(Exception):
    """Raised when a cross-context change payload cannot be parsed."""

    def __init__(self, key: str, message: str):
        self.key = key
        self.message = message
        super().__init__(f"Unparseable change for key '{key}': {message}")


class InvalidTransitionError(Exception):
    """Raised when the connection state machine is asked for an illegal move."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition connection from '{current}' to '{target}'")
