"""
Tests for the load-once cache and the parser registry.
"""
import threading
import time
import pytest

from statement_parser.core.cache import LoadOnceCache
from statement_parser.core.errors import ParserNotFoundError, StatementParserError, TemplateNotFoundError
from statement_parser.core.registry import ParserRegistry
from statement_parser.parsers import column_csv, table_pdf


class TestLoadOnceCache:

    def test_concurrent_first_access_loads_once(self):
        calls = []

        def slow_loader(key):
            calls.append(key)
            time.sleep(0.05)
            return key.upper()

        cache = LoadOnceCache(slow_loader)
        barrier = threading.Barrier(8)
        results = []

        def worker():
            barrier.wait()
            results.append(cache.get("icici"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert calls == ["icici"]
        assert results == ["ICICI"] * 8

    def test_failed_load_not_cached(self):
        attempts = []

        def flaky(key):
            attempts.append(key)
            if len(attempts) == 1:
                raise OSError("store unavailable")
            return "ok"

        cache = LoadOnceCache(flaky)
        with pytest.raises(OSError):
            cache.get("a")
        assert "a" not in cache
        assert cache.get("a") == "ok"

    def test_invalidate_calls_hooks(self):
        seen = []
        cache = LoadOnceCache(lambda key: object())
        cache.on_invalidate(seen.append)

        first = cache.get("a")
        cache.get("b")
        cache.invalidate("a")
        assert cache.get("a") is not first
        assert len(cache) == 2

        cache.clear()
        assert len(cache) == 0
        assert seen == ["a", None]


class TestParserRegistry:

    def test_builtin_parsers(self):
        registry = ParserRegistry()

        assert set(registry.list_available()) == {"table_pdf_v1", "column_csv_v1", "dbs_pdf_v1", "icici_pdf_v1"}
        assert registry.get_parser_factory("icici_pdf_v1") is table_pdf.create_parser
        assert registry.get_parser_factory("column_csv_v1") is column_csv.create_parser

    def test_unknown_parser(self):
        with pytest.raises(ParserNotFoundError) as excinfo:
            ParserRegistry().get_parser_factory("hsbc_pdf_v9")

        assert isinstance(excinfo.value, TemplateNotFoundError)
        assert "not found" in str(excinfo.value)
        assert "table_pdf_v1" in excinfo.value.available

    def test_factory_loaded_once(self):
        loads = []

        def loader():
            loads.append(1)
            return lambda config: config

        registry = ParserRegistry(loaders={"custom_v1": loader})
        registry.get_parser_factory("custom_v1")
        registry.get_parser_factory("custom_v1")
        assert len(loads) == 1

        registry.clear_cache()
        registry.get_parser_factory("custom_v1")
        assert len(loads) == 2

    def test_load_failure(self):
        def broken():
            raise ImportError("missing module")

        registry = ParserRegistry(loaders={"broken_v1": broken})
        with pytest.raises(StatementParserError, match="Failed to load parser: broken_v1"):
            registry.get_parser_factory("broken_v1")

    def test_register(self):
        registry = ParserRegistry(loaders={})
        assert not registry.is_available("custom_v1")

        registry.register("custom_v1", lambda: (lambda config: "parser"))
        assert registry.is_available("custom_v1")
        assert registry.get_parser_factory("custom_v1")({}) == "parser"
