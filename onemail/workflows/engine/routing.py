"""
Declarative Request Routing

Builds and sends the HTTP request of a node whose manifest declares its
request through `routing` blocks instead of an execute() function.

Order for each input item:
1. Start from the manifest's requestDefaults
2. Merge routing of every visible input, in declaration order
   (the selected option's routing for option inputs, then the input's own)
3. Add credential authentication headers
4. Run preSend hooks in the order they were collected
5. Send, and emit the response body as one output item
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from onemail.workflows.engine.context import NodeContext
from onemail.workflows.engine.definitions import WorkflowItem
from onemail.workflows.engine.expressions.resolver import ExpressionResolver
from onemail.workflows.engine.nodes.schema import NodeManifest, Routing

logger = logging.getLogger(__name__)


@dataclass
class RequestOptions:
    """The outgoing request. preSend hooks receive it and may mutate it."""
    method: str = "GET"
    url: str = ""
    base_url: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    body: Dict[str, Any] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)


PreSendHook = Callable[[NodeContext, RequestOptions], Awaitable[RequestOptions]]


class RoutingExecutor:
    """
    Executes a declarative node.

    Usage:
        executor = RoutingExecutor(manifest, hooks={"enrich": enrich})
        items = await executor.execute(context)
    """

    def __init__(self, manifest: NodeManifest, hooks: Optional[Dict[str, PreSendHook]] = None):
        self.manifest = manifest
        self.hooks = hooks or {}

    async def execute(self, context: NodeContext) -> List[WorkflowItem]:
        """Send one request per input item, or a single one when there is no input."""
        count = max(len(context.input_data), 1)
        results = []

        for index in range(count):
            item_context = context.for_item(index)
            request, hook_names = await self.build_request(item_context)

            for name in hook_names:
                logger.debug(f"Running preSend hook {name} for {self.manifest.id}")
                request = await self.hooks[name](item_context, request)

            response = await item_context.http.request(
                request.method,
                request.url,
                headers=request.headers,
                body=request.body,
                params=request.params,
                base_url=request.base_url,
            )

            results.append(WorkflowItem(
                json=response if isinstance(response, dict) else {"data": response},
                pairedItem=index if context.input_data else None,
            ))

        return results

    async def build_request(self, context: NodeContext) -> Tuple[RequestOptions, List[str]]:
        """
        Assemble the request for the context's current item.

        Returns the request and the names of the preSend hooks to run on it.
        """
        # Unset inputs take their manifest default, so display rules see them
        parameters = {
            **{node_input.name: node_input.default for node_input in self.manifest.inputs},
            **context.resolve_config(),
        }
        request = RequestOptions(headers=dict(self.manifest.requestDefaults.headers))
        hook_names: List[str] = []

        for node_input in self.manifest.inputs:
            if not node_input.is_visible(parameters):
                continue

            value = parameters[node_input.name]
            routings = []
            option = node_input.selected_option(value)
            if option and option.routing:
                routings.append(option.routing)
            if node_input.routing:
                routings.append(node_input.routing)

            resolver = ExpressionResolver({
                **context.expr_context,
                "parameter": parameters,
                "value": value,
            })
            for routing in routings:
                self._apply(request, routing, resolver)
                if routing.send:
                    hook_names.extend(routing.send.preSend)

        await self._authenticate(context, request)
        return request, hook_names

    def _apply(self, request: RequestOptions, routing: Routing, resolver: ExpressionResolver) -> None:
        fragment = routing.request
        if fragment is None:
            return
        if fragment.method:
            request.method = fragment.method.upper()
        if fragment.url:
            request.url = resolver.resolve(fragment.url)
        if fragment.body:
            request.body.update(resolver.resolve(fragment.body))
        if fragment.qs:
            request.params.update(resolver.resolve(fragment.qs))
        if fragment.headers:
            request.headers.update(resolver.resolve(fragment.headers))

    async def _authenticate(self, context: NodeContext, request: RequestOptions) -> None:
        for reference in self.manifest.credentials:
            if reference.authenticate is None:
                continue
            if not reference.required and reference.name not in context.credentials:
                continue
            credentials = await context.get_credentials(reference.name)
            resolver = ExpressionResolver({"credentials": credentials})
            request.headers.update(
                {k: str(v) for k, v in resolver.resolve(reference.authenticate.headers).items()}
            )
