class EngineError(Exception):
    """Base class for all engine errors."""
    pass

class UnknownNodeTypeError(EngineError):
    """Raised when a node type is not registered."""
    pass

class UnknownLoadOptionsMethodError(EngineError):
    """Raised when a node package does not provide the requested options loader."""
    pass

class ManifestError(EngineError):
    """Raised when a node package manifest is missing, malformed or inconsistent."""
    pass

class NodeValidationError(EngineError, ValueError):
    """Raised when a node rejects its configuration before execution."""

    def __init__(self, node_id: str, errors: list):
        self.node_id = node_id
        self.errors = errors
        super().__init__(f"Configuration validation failed for {node_id}: {', '.join(errors)}")

class CredentialNotFoundError(EngineError):
    """Raised when no usable credential of the requested type is available."""

    def __init__(self, credential_type: str, detail: str = "no credential configured"):
        self.credential_type = credential_type
        super().__init__(f"Credential '{credential_type}' not found: {detail}")
