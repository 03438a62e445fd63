"""
Workflow Nodes Package

Dynamic package-based node system. Nodes are loaded from the node_packages/
directory as self-contained packages; import NodeRegistry from
onemail.workflows.engine.nodes.registry.
"""
