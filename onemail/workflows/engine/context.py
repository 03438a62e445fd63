from typing import Any, Dict, List, Optional, Union
from onemail.credentials.service import get_active_credential
from onemail.workflows.engine.definitions import WorkflowItem
from onemail.workflows.engine.expressions.resolver import ExpressionResolver
from onemail.workflows.engine.runtime.http import HTTPRuntime

_MISSING = object()


class RequestHelpers:
    """HTTP helpers handed to node code, bound to the package's request defaults."""

    def __init__(self, http: HTTPRuntime):
        self.http = http

    async def request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        return await self.http.request(method, url, headers=headers, body=body, params=params)


class NodeContext:
    """
    Execution context for a node.

    Gives node code access to its parameters (with expressions resolved
    against the current item), to credentials and to HTTP helpers. The same
    class serves option loaders, where `config` holds the parameters the user
    has filled in so far and there is no input item.
    """

    def __init__(
        self,
        execution_id: str,
        workflow_id: str,
        node_id: str,
        config: Dict[str, Any],
        input_data: Optional[List[WorkflowItem]] = None,
        credentials: Optional[Dict[str, Union[str, Dict[str, Any]]]] = None,
        http: Optional[HTTPRuntime] = None,
        env: Optional[Dict[str, str]] = None,
        item_index: int = 0,
    ):
        self.execution_id = execution_id
        self.workflow_id = workflow_id
        self.node_id = node_id
        self.raw_config = config
        self.input_data = input_data or []
        self.credentials = credentials or {}
        self.http = http or HTTPRuntime()
        self.helpers = RequestHelpers(self.http)
        self.env = env or {}
        self.item_index = item_index

        item = self.input_data[item_index] if item_index < len(self.input_data) else None

        # Structure:
        # {{ input.field }}   -> JSON of the current item
        # {{ env.NAME }}      -> environment values
        # {{ execution.id }}
        self.expr_context = {
            "input": item.json_data if item else {},
            "env": self.env,
            "execution": {
                "id": execution_id,
                "workflow_id": workflow_id
            }
        }

        self.resolver = ExpressionResolver(self.expr_context)
        self._resolved: Optional[Dict[str, Any]] = None

    def for_item(self, item_index: int) -> "NodeContext":
        """Return a context whose expressions resolve against another input item."""
        return NodeContext(
            execution_id=self.execution_id,
            workflow_id=self.workflow_id,
            node_id=self.node_id,
            config=self.raw_config,
            input_data=self.input_data,
            credentials=self.credentials,
            http=self.http,
            env=self.env,
            item_index=item_index,
        )

    def resolve_config(self) -> Dict[str, Any]:
        """
        Returns the configuration dictionary with all expressions resolved.
        """
        if self._resolved is None:
            self._resolved = self.resolver.resolve(self.raw_config)
        return self._resolved

    def get_node_parameter(self, name: str, default: Any = _MISSING) -> Any:
        """
        Read a resolved parameter. Dotted names walk into collections,
        e.g. "contactFieldsUi.contactFields".
        """
        value: Any = self.resolve_config()
        for part in name.split("."):
            if isinstance(value, dict) and part in value:
                value = value[part]
            elif default is not _MISSING:
                return default
            else:
                raise KeyError(f"Node parameter '{name}' is not set")
        return value

    async def get_credentials(self, credential_type: str) -> Dict[str, Any]:
        """Credential data for `credential_type`, looked up on every call."""
        return await get_active_credential(credential_type, self.credentials.get(credential_type))
