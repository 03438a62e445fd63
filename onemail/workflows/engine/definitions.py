from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field

class WorkflowItem(BaseModel):
    """
    Standard unit of data passed between nodes.

    Ensures that binary data (files) are always separated from JSON data.
    """
    model_config = ConfigDict(populate_by_name=True)

    json_data: Dict[str, Any] = Field(default_factory=dict, alias="json")
    binary_data: Dict[str, Any] = Field(default_factory=dict, alias="binary")
    paired_item: Optional[int] = Field(None, alias="pairedItem") # Index of the input item this came from
