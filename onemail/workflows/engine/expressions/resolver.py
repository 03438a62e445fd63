import logging
import re
from typing import Any, Dict

from jinja2 import Undefined
from jinja2.sandbox import SandboxedEnvironment

logger = logging.getLogger(__name__)

# "{{ parameter.uuid }}" with nothing around it
_SINGLE_EXPRESSION = re.compile(r"^\s*\{\{(.*)\}\}\s*$", re.S)


class ExpressionResolver:
    """
    Resolves expressions in node parameters and routing templates.
    Uses Jinja2 syntax (e.g. {{ parameter.email }}) with a restricted sandbox.
    """

    def __init__(self, context: Dict[str, Any]):
        self.env = SandboxedEnvironment()
        self.context = context

    def resolve(self, value: Any) -> Any:
        """
        Recursively resolve expressions in the given value.

        Args:
            value: The value to resolve (string, dict, list, or primitive)

        Returns:
            Resolved value
        """
        if isinstance(value, str):
            return self._resolve_string(value)
        elif isinstance(value, dict):
            return {k: self.resolve(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [self.resolve(v) for v in value]
        else:
            return value

    def _resolve_string(self, value: str) -> Any:
        """
        Resolve a single string value if it contains an expression.

        A string holding exactly one expression evaluates to the native value,
        so "{{ value }}" can yield a list or dict. Anything else renders to text.
        """
        if "{{" not in value or "}}" not in value:
            return value

        try:
            match = _SINGLE_EXPRESSION.match(value)
            if match and "{{" not in match.group(1) and "}}" not in match.group(1):
                expression = self.env.compile_expression(match.group(1).strip())
                result = expression(**self.context)
                return None if isinstance(result, Undefined) else result

            template = self.env.from_string(value)
            return template.render(**self.context)
        except Exception as e:
            # Unresolvable expressions are left as written
            logger.warning(f"Expression resolution failed for '{value}': {e}")
            return value
