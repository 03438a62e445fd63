"""
Node Package Loader

Dynamically loads workflow nodes from the node_packages directory.

A node package is a directory holding:
- manifest.json        declarative description (fields, routing, credentials)
- backend/execute.py   option loaders, preSend hooks, optional execute()/validate()
- frontend/icon.svg    optional icon
"""

import json
import importlib.util
import logging
import uuid
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, Dict, List, Optional, Union
from dataclasses import dataclass

import httpx
from pydantic import ValidationError

from onemail.config import settings
from onemail.workflows.engine.context import NodeContext
from onemail.workflows.engine.definitions import WorkflowItem
from onemail.workflows.engine.error_handler import ErrorClassifier
from onemail.workflows.engine.errors import (
    ManifestError,
    NodeValidationError,
    UnknownLoadOptionsMethodError,
    UnknownNodeTypeError,
)
from onemail.workflows.engine.expressions.resolver import ExpressionResolver
from onemail.workflows.engine.nodes.schema import NodeManifest
from onemail.workflows.engine.routing import RoutingExecutor
from onemail.workflows.engine.runtime.http import HTTPRuntime

logger = logging.getLogger(__name__)


@dataclass
class NodePackage:
    """Represents a loaded node package"""
    id: str
    name: str
    version: str
    manifest: Dict[str, Any]
    schema: NodeManifest
    module: ModuleType
    execute_fn: Optional[Callable] = None
    validate_fn: Optional[Callable] = None
    package_dir: Path = None

    def get_function(self, name: str) -> Optional[Callable]:
        fn = getattr(self.module, name, None)
        return fn if callable(fn) else None


class NodePackageLoader:
    """
    Loads and manages packaged workflow nodes from the filesystem.

    Usage:
        loader = NodePackageLoader(Path("node_packages"))
        loader.discover_nodes()
        options = await loader.load_options("onemail.automation", "get_automations")
        items = await loader.execute_node("onemail.automation", config)
    """

    def __init__(self, packages_dir: Path, env: Optional[Dict[str, str]] = None):
        """
        Initialize the node loader.

        Args:
            packages_dir: Root directory containing node packages
            env: Values exposed to manifest expressions as {{ env.NAME }},
                 added to the ONEMAIL_BASE_URL setting
        """
        self.packages_dir = Path(packages_dir)
        self.env = {"ONEMAIL_BASE_URL": settings.ONEMAIL_BASE_URL, **(env or {})}
        self.loaded_nodes: Dict[str, NodePackage] = {}

    def discover_nodes(self) -> List[NodePackage]:
        """
        Scan the packages directory (at any depth) and load all valid node packages.

        Returns:
            List of successfully loaded NodePackage objects
        """
        nodes = []

        if not self.packages_dir.exists():
            logger.warning(f"Node packages directory {self.packages_dir} does not exist")
            return nodes

        for manifest_path in sorted(self.packages_dir.rglob("manifest.json")):
            package_dir = manifest_path.parent
            if any(part.startswith("_") for part in package_dir.relative_to(self.packages_dir).parts):
                continue

            try:
                node_package = self._load_node_package(package_dir)
                nodes.append(node_package)
                self.loaded_nodes[node_package.id] = node_package
                logger.info(f"Loaded node: {node_package.name} v{node_package.version} ({node_package.id})")
            except Exception as e:
                logger.error(f"Failed to load node {package_dir.name}: {e}", exc_info=True)

        logger.info(f"Loaded {len(nodes)} workflow nodes")
        return nodes

    def _load_node_package(self, package_dir: Path) -> NodePackage:
        """
        Load a single node package from its directory.

        Raises:
            ManifestError: If the manifest is invalid or references missing functions
        """
        try:
            with open(package_dir / "manifest.json", "r", encoding="utf-8") as f:
                manifest = json.load(f)
        except json.JSONDecodeError as e:
            raise ManifestError(f"{package_dir.name}/manifest.json is not valid JSON: {e}") from e

        try:
            schema = NodeManifest.model_validate(manifest)
        except ValidationError as e:
            raise ManifestError(f"{package_dir.name}/manifest.json is invalid: {e}") from e

        execute_module_path = package_dir / "backend" / "execute.py"
        if not execute_module_path.exists():
            raise ManifestError(f"Missing backend/execute.py in {package_dir.name}")

        # Named under onemail.* so module loggers share the package handler
        module_name = f"onemail.node_packages.{schema.id}.execute"
        spec = importlib.util.spec_from_file_location(module_name, execute_module_path)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)

        self._check_references(schema, module, package_dir)

        icon_path = package_dir / "frontend" / "icon.svg"
        if icon_path.exists():
            try:
                manifest["icon_svg"] = icon_path.read_text("utf-8")
                schema.icon_svg = manifest["icon_svg"]
            except OSError as e:
                logger.warning(f"Failed to read icon.svg for {schema.id}: {e}")

        return NodePackage(
            id=schema.id,
            name=schema.name,
            version=schema.nodeVersion,
            manifest=manifest,
            schema=schema,
            module=module,
            execute_fn=getattr(module, "execute", None),
            validate_fn=getattr(module, "validate", None),
            package_dir=package_dir
        )

    def _check_references(self, schema: NodeManifest, module: ModuleType, package_dir: Path) -> None:
        """Every function named in the manifest must exist in backend/execute.py."""
        missing = [
            name
            for name in schema.load_options_methods() + schema.pre_send_hooks()
            if not callable(getattr(module, name, None))
        ]
        if missing:
            raise ManifestError(
                f"{package_dir.name}: backend/execute.py does not define {', '.join(sorted(set(missing)))}"
            )

        has_routing = any(field.routing for field in schema.iter_fields()) or any(
            getattr(option, "routing", None) for field in schema.iter_fields() for option in field.options or []
        )
        if not has_routing and not callable(getattr(module, "execute", None)):
            raise ManifestError(f"{package_dir.name}: needs routing in manifest.json or an execute() function")

    def _build_context(
        self,
        node_package: NodePackage,
        config: Dict[str, Any],
        inputs: Optional[List[WorkflowItem]],
        credentials: Optional[Dict[str, Union[str, Dict[str, Any]]]],
        transport: Optional[httpx.AsyncBaseTransport],
    ) -> NodeContext:
        defaults = node_package.schema.requestDefaults
        resolver = ExpressionResolver({"env": self.env})
        http = HTTPRuntime(
            base_url=resolver.resolve(defaults.baseURL),
            headers=resolver.resolve(defaults.headers),
            transport=transport,
        )
        return NodeContext(
            execution_id=str(uuid.uuid4()),
            workflow_id="standalone",
            node_id=node_package.id,
            config=config,
            input_data=inputs,
            credentials=credentials,
            http=http,
            env=self.env,
        )

    def _require(self, node_id: str) -> NodePackage:
        node_package = self.loaded_nodes.get(node_id)
        if not node_package:
            raise UnknownNodeTypeError(f"Node '{node_id}' not found. Available: {list(self.loaded_nodes.keys())}")
        return node_package

    async def load_options(
        self,
        node_id: str,
        method: str,
        parameters: Optional[Dict[str, Any]] = None,
        credentials: Optional[Dict[str, Union[str, Dict[str, Any]]]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> List[Dict[str, Any]]:
        """
        Run one of a node's option loaders.

        Args:
            node_id: ID of the node package
            method: Name of a loadOptionsMethod declared in its manifest
            parameters: Values the user has filled in so far

        Returns:
            List of {name, value[, description]} dicts
        """
        node_package = self._require(node_id)
        if method not in node_package.schema.load_options_methods():
            raise UnknownLoadOptionsMethodError(f"Node '{node_id}' has no options method '{method}'")

        context = self._build_context(node_package, parameters or {}, None, credentials, transport)
        try:
            return await node_package.get_function(method)(context)
        except Exception as e:
            self._log_failure(f"{node_id}.{method}", e)
            raise

    async def execute_node(
        self,
        node_id: str,
        config: Dict[str, Any],
        inputs: Optional[List[WorkflowItem]] = None,
        credentials: Optional[Dict[str, Union[str, Dict[str, Any]]]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> List[WorkflowItem]:
        """
        Execute a loaded node package with the given configuration.

        Args:
            node_id: ID of the node to execute (e.g., "onemail.automation")
            config: Node parameters
            inputs: Items from the previous node
            credentials: Credential type -> stored credential ID or credential data
            transport: httpx transport override, used by tests

        Returns:
            Output items

        Raises:
            UnknownNodeTypeError: If the node is not loaded
            NodeValidationError: If validate() rejects the configuration
            Exception: Whatever the node or the remote API raised, unchanged
        """
        node_package = self._require(node_id)

        if node_package.validate_fn:
            validation_result = await node_package.validate_fn(config)
            if not validation_result.get("valid", True):
                errors = validation_result.get("errors", ["Validation failed"])
                raise NodeValidationError(node_id, errors)

        context = self._build_context(node_package, config, inputs, credentials, transport)

        try:
            if node_package.execute_fn:
                return await node_package.execute_fn(context)

            hooks = {name: node_package.get_function(name) for name in node_package.schema.pre_send_hooks()}
            return await RoutingExecutor(node_package.schema, hooks).execute(context)
        except Exception as e:
            self._log_failure(node_id, e)
            raise

    def _log_failure(self, where: str, error: Exception) -> None:
        error_context = ErrorClassifier.classify(error)
        logger.error(f"{where} failed [{error_context.category.value}]: {error_context.message}")
        if error_context.suggestion:
            logger.info(f"Suggestion: {error_context.suggestion}")

    def get_node(self, node_id: str) -> Optional[NodePackage]:
        """Get a loaded node package by ID"""
        return self.loaded_nodes.get(node_id)

    def list_nodes(self) -> List[Dict[str, Any]]:
        """
        Get a list of all loaded node packages with their metadata.
        """
        return [
            {
                "id": node.id,
                "name": node.name,
                "displayName": node.schema.displayName,
                "version": node.version,
                "category": node.schema.category.value,
                "description": node.schema.description,
                "credentials": [c.name for c in node.schema.credentials],
                "loadOptionsMethods": node.schema.load_options_methods(),
                "inputs": node.manifest.get("inputs", []),
                "outputs": node.manifest.get("outputs", []),
                "author": node.schema.author,
                "tags": node.schema.tags
            }
            for node in self.loaded_nodes.values()
        ]

    def reload_node(self, node_id: str) -> bool:
        """
        Reload a specific node package (useful for development).
        """
        node = self.loaded_nodes.get(node_id)
        if not node or not node.package_dir:
            return False

        try:
            new_node = self._load_node_package(node.package_dir)
            self.loaded_nodes[node_id] = new_node
            logger.info(f"Reloaded node: {node_id}")
            return True
        except Exception as e:
            logger.error(f"Failed to reload node {node_id}: {e}")
            return False


def initialize_node_loader(packages_dir: Path, env: Optional[Dict[str, str]] = None) -> NodePackageLoader:
    """Create a loader and discover the packages below `packages_dir`"""
    node_loader = NodePackageLoader(packages_dir, env=env)
    node_loader.discover_nodes()
    return node_loader
