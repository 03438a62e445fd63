from onemail.workflows.engine.definitions import WorkflowItem
from onemail.workflows.engine.errors import (
    CredentialNotFoundError,
    EngineError,
    ManifestError,
    NodeValidationError,
    UnknownLoadOptionsMethodError,
    UnknownNodeTypeError,
)

__all__ = [
    "WorkflowItem",
    "EngineError",
    "CredentialNotFoundError",
    "ManifestError",
    "NodeValidationError",
    "UnknownLoadOptionsMethodError",
    "UnknownNodeTypeError",
]
