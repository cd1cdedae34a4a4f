"""Built-in tools: task completion, calculator, web search and page fetch."""

from __future__ import annotations

import ast
import math
import operator as op
from datetime import UTC, datetime
from typing import Any

import httpx
from bs4 import BeautifulSoup

from heavy.tools.registry import ToolRegistry
from heavy.utils.config import AppConfig, SearchConfig
from heavy.utils.logging import get_logger

logger = get_logger(__name__)

JINA_SEARCH_API = "https://s.jina.ai/"

COMPLETION_TOOL_NAME = "mark_task_complete"


# ============================================================================
# mark_task_complete
# ============================================================================

MARK_TASK_COMPLETE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "task_summary": {
            "type": "string",
            "description": "Brief summary of what was accomplished",
        },
        "completion_message": {
            "type": "string",
            "description": "Message to show the user that the task is complete",
        },
    },
    "required": ["task_summary", "completion_message"],
}


def mark_task_complete(task_summary: str, completion_message: str) -> dict[str, Any]:
    """Signal that the agent has finished its subtask."""
    return {
        "status": "completed",
        "task_summary": task_summary,
        "completion_message": completion_message,
        "timestamp": datetime.now(UTC).isoformat(),
    }


# ============================================================================
# calculate
# ============================================================================

CALCULATE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "expression": {
            "type": "string",
            "description": (
                "Mathematical expression to evaluate "
                "(e.g., '2 + 3 * 4', 'sqrt(16)', 'sin(pi/2)')"
            ),
        },
    },
    "required": ["expression"],
}

_BINARY_OPS = {
    ast.Add: op.add,
    ast.Sub: op.sub,
    ast.Mult: op.mul,
    ast.Div: op.truediv,
    ast.FloorDiv: op.floordiv,
    ast.Mod: op.mod,
    ast.Pow: op.pow,
}

_UNARY_OPS = {
    ast.UAdd: op.pos,
    ast.USub: op.neg,
}

_MAX_FACTORIAL = 1000


def _factorial(n: Any) -> int:
    if isinstance(n, int) and n > _MAX_FACTORIAL:
        raise ValueError(f"factorial argument too large (max {_MAX_FACTORIAL})")
    return math.factorial(n)


_FUNCTIONS = {
    "abs": abs,
    "round": round,
    "min": min,
    "max": max,
    "sqrt": math.sqrt,
    "exp": math.exp,
    "log": math.log,
    "log10": math.log10,
    "log2": math.log2,
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
    "asin": math.asin,
    "acos": math.acos,
    "atan": math.atan,
    "floor": math.floor,
    "ceil": math.ceil,
    "factorial": _factorial,
}

_CONSTANTS = {
    "pi": math.pi,
    "e": math.e,
    "tau": math.tau,
}

# Guards against expressions like 9**9**9
_MAX_EXPONENT = 10000
# Integer results stay below int-to-str digit limits
_MAX_RESULT_BITS = 10000


def _check_int_size(op_node: ast.operator, left: Any, right: Any) -> None:
    if not (isinstance(left, int) and isinstance(right, int)):
        return
    if isinstance(op_node, ast.Pow):
        if abs(left) > 1 and right > 0 and abs(left).bit_length() * right > _MAX_RESULT_BITS:
            raise ValueError("Result too large")
    elif isinstance(op_node, ast.Mult):
        if left.bit_length() + right.bit_length() > _MAX_RESULT_BITS:
            raise ValueError("Result too large")


def _evaluate(node: ast.AST) -> Any:
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)):
        if isinstance(node.value, bool):
            raise ValueError("Booleans are not allowed")
        return node.value
    if isinstance(node, ast.Name):
        if node.id in _CONSTANTS:
            return _CONSTANTS[node.id]
        raise ValueError(f"Unknown name: {node.id}")
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_evaluate(node.operand))
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        left = _evaluate(node.left)
        right = _evaluate(node.right)
        if isinstance(node.op, ast.Pow) and abs(right) > _MAX_EXPONENT:
            raise ValueError("Exponent too large")
        _check_int_size(node.op, left, right)
        return _BINARY_OPS[type(node.op)](left, right)
    if isinstance(node, ast.Call) and isinstance(node.func, ast.Name):
        func = _FUNCTIONS.get(node.func.id)
        if func is None or node.keywords:
            raise ValueError(f"Unsupported function: {node.func.id}")
        return func(*(_evaluate(arg) for arg in node.args))
    raise ValueError(f"Unsupported expression: {type(node).__name__}")


def calculate(expression: str) -> dict[str, Any]:
    """Evaluate an arithmetic expression without ``eval``.

    Raises:
        ValueError: On syntax errors or disallowed constructs.
        ZeroDivisionError: On division by zero.
    """
    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except SyntaxError as e:
        raise ValueError(f"Invalid expression: {e.msg}") from e

    result = _evaluate(tree.body)
    return {"success": True, "expression": expression, "result": result}


# ============================================================================
# search_web / browse_link
# ============================================================================

SEARCH_WEB_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "query": {
            "type": "string",
            "description": "Search query to find information on the web",
        },
        "max_results": {
            "type": "integer",
            "description": "Maximum number of search results to return",
            "default": 5,
        },
    },
    "required": ["query"],
}

BROWSE_LINK_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "url": {
            "type": "string",
            "description": "The URL of the page to read",
        },
    },
    "required": ["url"],
}


class WebTools:
    """HTTP-backed tools sharing one search configuration.

    A custom ``httpx.AsyncClient`` may be injected (tests pass one built on
    ``httpx.MockTransport``); otherwise a short-lived client is opened per call.
    """

    def __init__(
        self,
        settings: SearchConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or SearchConfig()
        self._client = client

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._client is not None:
            response = await self._client.request(method, url, **kwargs)
        else:
            async with httpx.AsyncClient(
                timeout=self._settings.request_timeout, follow_redirects=True
            ) as client:
                response = await client.request(method, url, **kwargs)
        response.raise_for_status()
        return response

    async def search_web(self, query: str, max_results: int = 5) -> dict[str, Any]:
        """Search the web through the Jina Search API.

        Raises:
            RuntimeError: If no API key is configured.
            httpx.HTTPError: On transport or HTTP status failures.
        """
        if not self._settings.api_key:
            raise RuntimeError("JINA_API_KEY is not configured")

        limit = max(1, min(max_results, self._settings.max_results))
        headers = {
            "Authorization": f"Bearer {self._settings.api_key}",
            "Accept": "application/json",
            "X-Retain-Images": "none",
        }
        response = await self._request(
            "POST", JINA_SEARCH_API, headers=headers, json={"q": query, "num": limit}
        )
        data = response.json()

        results = []
        for item in (data.get("data") or [])[:limit]:
            results.append(
                {
                    "title": item.get("title", ""),
                    "url": item.get("url", ""),
                    "description": item.get("description", ""),
                    "content": (item.get("content") or "")[
                        : self._settings.max_page_chars
                    ],
                }
            )

        logger.debug("Web search finished", query=query, results=len(results))
        return {"query": query, "results": results, "total_results": len(results)}

    async def browse_link(self, url: str) -> dict[str, Any]:
        """Fetch a page and return its visible text.

        Raises:
            ValueError: If the URL is not http(s).
            httpx.HTTPError: On transport or HTTP status failures.
        """
        if not url.startswith(("http://", "https://")):
            raise ValueError(f"Unsupported URL scheme: {url}")

        response = await self._request(
            "GET", url, headers={"User-Agent": self._settings.user_agent}
        )

        content_type = response.headers.get("content-type", "")
        if "html" in content_type:
            soup = BeautifulSoup(response.text, "html.parser")
            for tag in soup(["script", "style", "noscript"]):
                tag.decompose()
            title = soup.title.get_text(strip=True) if soup.title else ""
            text = " ".join(soup.get_text(separator=" ").split())
        else:
            title = ""
            text = response.text.strip()

        limit = self._settings.max_page_chars
        logger.debug("Page fetched", url=url, chars=len(text))
        return {
            "url": str(response.url),
            "title": title,
            "content": text[:limit],
            "truncated": len(text) > limit,
        }


def register_builtin_tools(
    registry: ToolRegistry,
    settings: SearchConfig | None = None,
    client: httpx.AsyncClient | None = None,
) -> ToolRegistry:
    """Register the four built-in tools on ``registry``."""
    web = WebTools(settings, client=client)

    registry.register(
        "search_web",
        SEARCH_WEB_SCHEMA,
        web.search_web,
        description="Search the web for current information",
    )
    registry.register(
        "browse_link",
        BROWSE_LINK_SCHEMA,
        web.browse_link,
        description="Fetch a web page and return its readable text",
    )
    registry.register(
        "calculate",
        CALCULATE_SCHEMA,
        calculate,
        description="Perform mathematical calculations and evaluations",
    )
    registry.register(
        COMPLETION_TOOL_NAME,
        MARK_TASK_COMPLETE_SCHEMA,
        mark_task_complete,
        description=(
            "Call this when the task is fully complete and your findings "
            "have been written in your reply"
        ),
    )
    return registry


def create_default_registry(config: AppConfig | None = None) -> ToolRegistry:
    """Build a registry with every built-in tool."""
    settings = config.search if config else None
    return register_builtin_tools(ToolRegistry(), settings)
