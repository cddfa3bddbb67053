import asyncio
import textwrap

import pytest

from scrapekit.errors import CompileError, InvalidTransformResultError, NotAFunctionError
from scrapekit.extend_output import apply_function, compile_function


def _apply(fn, items, page=None):
    return asyncio.run(apply_function(page, fn, items))


def test_compile_lambda():
    fn = compile_function("lambda page: {'score': 5}")
    assert fn(None) == {"score": 5}


def test_compile_def_uses_last_function():
    source = textwrap.dedent(
        """
        def _helper(x):
            return x * 2

        async def extend(page):
            return {"double": _helper(page)}
        """
    )
    fn = compile_function(source)
    assert asyncio.run(fn(4)) == {"double": 8}


@pytest.mark.parametrize("source", ["lambda page: {", "def f(:\n  pass", "1 / 0", "undefined_name"])
def test_compile_error(source):
    with pytest.raises(CompileError):
        compile_function(source)


@pytest.mark.parametrize("source", ["42", "{'a': 1}", "x = 1", ""])
def test_not_a_function(source):
    with pytest.raises(NotAFunctionError):
        compile_function(source)


def test_plugin_reference():
    fn = compile_function("plugin:json:dumps")
    assert fn({"a": 1}) == '{"a": 1}'


@pytest.mark.parametrize("ref", ["plugin:no_such_module_xyz:fn", "plugin:json:no_such_attr", "plugin:json"])
def test_plugin_reference_errors(ref):
    with pytest.raises(CompileError):
        compile_function(ref)


def test_merge_overrides_existing_fields():
    items = [{"title": "a", "score": 1}, {"title": "b"}]
    out = _apply(lambda page: {"score": 5}, items)
    assert out is items
    assert items == [{"title": "a", "score": 5}, {"title": "b", "score": 5}]


def test_async_transform_receives_page():
    async def fn(page):
        await asyncio.sleep(0)
        return {"page": page}

    assert _apply(fn, [{"x": 1}], page="ctx") == [{"x": 1, "page": "ctx"}]


def test_transform_called_once_per_page():
    calls = []

    def fn(page):
        calls.append(page)
        return {}

    _apply(fn, [{}, {}, {}], page="p")
    assert calls == ["p"]


def test_crashing_transform_keeps_items(caplog):
    def fn(page):
        raise RuntimeError("boom")

    items = [{"title": "a"}]
    assert _apply(fn, items) == [{"title": "a"}]
    assert "extendOutputFunction crashed" in caplog.text


def test_crashing_async_transform_keeps_items():
    async def fn(page):
        raise ValueError("later boom")

    assert _apply(fn, [{"title": "a"}]) == [{"title": "a"}]


@pytest.mark.parametrize("result", [[{"score": 5}], None, "text", 3])
def test_non_mapping_result_is_fatal(result):
    items = [{"title": "a"}]
    with pytest.raises(InvalidTransformResultError):
        _apply(lambda page: result, items)
    assert items == [{"title": "a"}]
