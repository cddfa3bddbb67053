"""
extendOutputFunction support.

compile_function() turns the user's source text into a callable once per run;
apply_function() invokes it once per processed page and merges its result into
every item scraped from that page.

Accepted source forms:
  - a single expression evaluating to a callable, e.g. `lambda page: {"x": 1}`
  - one or more statements; the last top-level `def` / `async def` is the
    transform, earlier ones are helpers
  - `plugin:package.module:attr` to load an installed callable instead of
    evaluating any source text

NOTE:
Source text is executed with full interpreter rights. Prefer the plugin form
anywhere the run input is not fully trusted.
"""

from __future__ import annotations

import ast
import importlib
import inspect
import logging
import operator
import textwrap
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Dict, List, Union

from .errors import CompileError, InvalidTransformResultError, NotAFunctionError

logger = logging.getLogger(__name__)

TransformFunction = Callable[[Any], Union[Dict[str, Any], Awaitable[Dict[str, Any]]]]

PLUGIN_PREFIX = "plugin:"
_FILENAME = "<extendOutputFunction>"


def _load_plugin(ref: str) -> Any:
    module_name, _, attr = ref.partition(":")
    module_name, attr = module_name.strip(), attr.strip()
    if not module_name or not attr:
        raise CompileError(f"Plugin reference must look like 'package.module:function', got {ref!r}")
    try:
        module = importlib.import_module(module_name)
        return operator.attrgetter(attr)(module)
    except (ImportError, AttributeError) as e:
        raise CompileError(f"extendOutputFunction plugin {ref!r} could not be loaded! Error: {e}") from e


def _evaluate(source: str) -> Any:
    text = textwrap.dedent(source).strip()
    tree = ast.parse(text, filename=_FILENAME)
    namespace: Dict[str, Any] = {"__name__": "extend_output_function"}

    if len(tree.body) == 1 and isinstance(tree.body[0], ast.Expr):
        expr = ast.Expression(body=tree.body[0].value)
        return eval(compile(expr, _FILENAME, "eval"), namespace)

    exec(compile(tree, _FILENAME, "exec"), namespace)
    defs = [node.name for node in tree.body if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef))]
    if not defs:
        return None
    return namespace[defs[-1]]


def compile_function(source_text: str) -> TransformFunction:
    """
    Compile extendOutputFunction source into a callable.

    Raises CompileError when the source cannot be parsed or evaluated and
    NotAFunctionError when it does not produce a callable.
    """
    if source_text.strip().startswith(PLUGIN_PREFIX):
        fn = _load_plugin(source_text.strip()[len(PLUGIN_PREFIX):])
    else:
        try:
            fn = _evaluate(source_text)
        except Exception as e:
            raise CompileError(f"extendOutputFunction is not valid Python! Error: {e!r}") from e

    if not callable(fn):
        raise NotAFunctionError("extendOutputFunction is not a function! Please fix it or use just default output!")
    return fn


async def apply_function(page: Any, transform: TransformFunction, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Run `transform(page)` and shallow-merge its result into every item.

    - user function raises -> logged, nothing merged, items kept
    - result is not a mapping -> InvalidTransformResultError (stop the run)
    - result keys win over item keys; `items` is updated in place and returned
    """
    user_result: Any = {}
    try:
        user_result = transform(page)
        if inspect.isawaitable(user_result):
            user_result = await user_result
    except Exception as e:
        logger.error(
            "extendOutputFunction crashed! Pushing default output. "
            "Please fix your function if you want to update the output. Error: %r",
            e,
        )
        user_result = {}

    if not isinstance(user_result, Mapping):
        err = InvalidTransformResultError(type(user_result).__name__)
        logger.error("%s", err)
        raise err

    for i, item in enumerate(items):
        items[i] = {**item, **user_result}

    return items
