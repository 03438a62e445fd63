"""
Node Registry - Package-Based System

This registry discovers and manages all workflow nodes from the node_packages directory.
"""

import logging
from typing import Any, Dict, List, Optional, Union
from pathlib import Path

import httpx

from onemail.config import settings
from onemail.workflows.engine.definitions import WorkflowItem
from onemail.workflows.engine.nodes.loader import NodePackageLoader, NodePackage, initialize_node_loader

logger = logging.getLogger(__name__)


class NodeRegistry:
    """
    Central registry for all workflow nodes.

    Nodes are loaded dynamically from node_packages/ on first use.
    """

    _loader: Optional[NodePackageLoader] = None
    _initialized: bool = False

    @classmethod
    def initialize(cls, packages_dir: Optional[Path] = None):
        """
        Initialize the node registry by discovering all node packages.

        Args:
            packages_dir: Path to node_packages directory (default: NODE_PACKAGES_DIR or auto-detect)
        """
        if cls._initialized:
            logger.warning("NodeRegistry already initialized")
            return

        if packages_dir is None and settings.NODE_PACKAGES_DIR:
            packages_dir = Path(settings.NODE_PACKAGES_DIR)
        if packages_dir is None:
            # Auto-detect: <repo>/onemail/workflows/engine/nodes/registry.py -> <repo>/node_packages
            packages_dir = Path(__file__).resolve().parents[4] / "node_packages"

        logger.info(f"Initializing NodeRegistry from: {packages_dir}")
        cls._loader = initialize_node_loader(packages_dir)
        cls._initialized = True
        logger.info(f"NodeRegistry initialized with {len(cls._loader.loaded_nodes)} nodes")

    @classmethod
    def get_node(cls, node_type: str) -> Optional[NodePackage]:
        """
        Get a node package by its ID (e.g., "onemail.automation").
        """
        cls._ensure_initialized()
        return cls._loader.get_node(node_type)

    @classmethod
    def list_nodes(cls) -> Dict[str, Dict[str, Any]]:
        """
        List all available nodes with their metadata, keyed by node ID.
        """
        cls._ensure_initialized()
        return {node["id"]: node for node in cls._loader.list_nodes()}

    @classmethod
    async def load_options(
        cls,
        node_id: str,
        method: str,
        parameters: Optional[Dict[str, Any]] = None,
        credentials: Optional[Dict[str, Union[str, Dict[str, Any]]]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> List[Dict[str, Any]]:
        """
        Populate a dropdown by running the node's loadOptionsMethod `method`.
        """
        cls._ensure_initialized()
        return await cls._loader.load_options(node_id, method, parameters, credentials, transport)

    @classmethod
    async def execute_node(
        cls,
        node_id: str,
        config: Dict[str, Any],
        inputs: Optional[List[WorkflowItem]] = None,
        credentials: Optional[Dict[str, Union[str, Dict[str, Any]]]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> List[WorkflowItem]:
        """
        Execute a node.

        Args:
            node_id: Node ID to execute
            config: Node parameters
            inputs: Items from previous nodes
            credentials: Credential type -> stored credential ID or credential data
            transport: httpx transport override

        Returns:
            Output items
        """
        cls._ensure_initialized()
        return await cls._loader.execute_node(node_id, config, inputs, credentials, transport)

    @classmethod
    def reload_node(cls, node_id: str) -> bool:
        """
        Reload a specific node (for development/hot-reload).
        """
        cls._ensure_initialized()
        return cls._loader.reload_node(node_id)

    @classmethod
    def reload_all(cls, packages_dir: Optional[Path] = None):
        """Reload all nodes from disk"""
        cls._initialized = False
        cls.initialize(packages_dir)

    @classmethod
    def _ensure_initialized(cls):
        """Ensure registry is initialized"""
        if not cls._initialized:
            cls.initialize()
