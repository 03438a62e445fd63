from enum import Enum
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, model_validator

# --- Enums ---
class NodeCategory(str, Enum):
    TRIGGER = "TRIGGER"
    ACTION = "ACTION"
    LOGIC = "LOGIC"
    UTILITY = "UTILITY"

# --- Routing ---
class RoutingRequest(BaseModel):
    """
    Request fragment contributed by a property or a selected option.
    String values may contain expressions, e.g. {{ value }}.
    """
    method: Optional[str] = None
    url: Optional[str] = None
    body: Optional[Dict[str, Any]] = None
    qs: Optional[Dict[str, Any]] = None
    headers: Optional[Dict[str, str]] = None

class RoutingSend(BaseModel):
    # Names of functions in backend/execute.py, run in order before sending
    preSend: List[str] = []

class Routing(BaseModel):
    request: Optional[RoutingRequest] = None
    send: Optional[RoutingSend] = None

class RequestDefaults(BaseModel):
    baseURL: str = ""
    headers: Dict[str, str] = {}

# --- Models ---
class DisplayConfiguration(BaseModel):
    """
    Configuration for hiding/showing fields.
    """
    show: Optional[Dict[str, List[Any]]] = None
    hide: Optional[Dict[str, List[Any]]] = None

    def matches(self, parameters: Dict[str, Any]) -> bool:
        """True when the field is visible for the given parameter values."""
        for name, allowed in (self.show or {}).items():
            if parameters.get(name) not in allowed:
                return False
        for name, hidden in (self.hide or {}).items():
            if parameters.get(name) in hidden:
                return False
        return True

class TypeOptions(BaseModel):
    """
    Advanced options for specific input types.
    """
    loadOptionsMethod: Optional[str] = None
    loadOptionsDependsOn: Optional[List[str]] = None
    multipleValues: bool = False
    rows: Optional[int] = None

class SelectOption(BaseModel):
    label: str
    value: Any
    description: Optional[str] = None
    action: Optional[str] = None
    routing: Optional[Routing] = None

class CollectionOption(BaseModel):
    """A named group of fields inside a fixedCollection input."""
    name: str
    label: str
    values: List['NodeInput']

class NodeInput(BaseModel):
    """
    Definition of a single input field in the node.
    """
    name: str
    type: str # string, number, boolean, options, fixedCollection, json
    label: str
    default: Optional[Any] = None
    description: Optional[str] = None
    required: bool = False
    placeholder: Optional[str] = None
    noDataExpression: bool = False

    # Select choices OR the groups of a fixedCollection
    options: Optional[List[Union[SelectOption, CollectionOption]]] = None

    displayOptions: Optional[DisplayConfiguration] = None
    typeOptions: Optional[TypeOptions] = None
    routing: Optional[Routing] = None

    def is_visible(self, parameters: Dict[str, Any]) -> bool:
        return self.displayOptions is None or self.displayOptions.matches(parameters)

    def selected_option(self, value: Any) -> Optional[SelectOption]:
        for option in self.options or []:
            if isinstance(option, SelectOption) and option.value == value:
                return option
        return None

    def iter_fields(self):
        """Yield this field and every field nested in its collections."""
        yield self
        for option in self.options or []:
            if isinstance(option, CollectionOption):
                for field in option.values:
                    yield from field.iter_fields()

class NodeOutput(BaseModel):
    name: str
    type: str
    label: Optional[str] = None
    description: Optional[str] = None

class CredentialAuthentication(BaseModel):
    # Header templates rendered with {{ credentials.<field> }}
    headers: Dict[str, str] = {}

class CredentialReference(BaseModel):
    name: str
    required: bool = False
    authenticate: Optional[CredentialAuthentication] = None

class NodeManifest(BaseModel):
    """
    Node Manifest Definition, as read from manifest.json.
    """
    model_config = ConfigDict(extra="ignore")

    id: str
    version: int = 1
    nodeVersion: str = "1.0.0"

    name: Optional[str] = None
    displayName: Optional[str] = None

    description: str
    category: NodeCategory
    group: List[str] = []
    subtitle: Optional[str] = None
    defaults: Dict[str, Any] = {}

    icon: Optional[str] = None
    icon_svg: Optional[str] = None

    inputs: List[NodeInput] = []
    outputs: List[NodeOutput] = []

    credentials: List[CredentialReference] = []
    requestDefaults: RequestDefaults = Field(default_factory=RequestDefaults)
    tags: List[str] = []
    author: str = "One Mail"

    @model_validator(mode="after")
    def _fill_names(self):
        if self.name is None:
            self.name = self.id
        if not self.displayName:
            self.displayName = self.name
        return self

    def load_options_methods(self) -> List[str]:
        methods = []
        for field in self.iter_fields():
            if field.typeOptions and field.typeOptions.loadOptionsMethod:
                methods.append(field.typeOptions.loadOptionsMethod)
        return methods

    def pre_send_hooks(self) -> List[str]:
        hooks = []
        for field in self.iter_fields():
            routings = [field.routing] + [
                o.routing for o in field.options or [] if isinstance(o, SelectOption)
            ]
            for routing in routings:
                if routing and routing.send:
                    hooks.extend(routing.send.preSend)
        return hooks

    def iter_fields(self):
        for node_input in self.inputs:
            yield from node_input.iter_fields()

    def get_credential(self, name: str) -> Optional[CredentialReference]:
        return next((c for c in self.credentials if c.name == name), None)

CollectionOption.model_rebuild()
NodeInput.model_rebuild()
