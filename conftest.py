"""Shared pytest fixtures for both services."""

import json
from typing import Any, Dict, List, Optional, Set

import pytest

from service_notifier.app.events.models import parse_event
from service_revalidation.app.invalidation.invalidator import InMemoryPathInvalidator
from service_revalidation.app.tags.registry import DEFAULT_TAG_PATHS, PathSpec, TagRegistry


TEST_SECRET = "test-revalidate-secret"
TEST_STOREFRONT_URL = "http://storefront.test"


class RecordingLogger:
    """Logger double capturing every record with its bound context."""

    def __init__(self, records: Optional[List[Dict[str, Any]]] = None, context: Optional[Dict[str, Any]] = None):
        self.records = records if records is not None else []
        self._context = dict(context or {})

    def bind(self, **values) -> "RecordingLogger":
        return RecordingLogger(self.records, {**self._context, **values})

    def _log(self, level: str, event: str, **values):
        self.records.append({"level": level, **self._context, **values, "event": event})

    def debug(self, event: str, **values):
        self._log("debug", event, **values)

    def info(self, event: str, **values):
        self._log("info", event, **values)

    def warning(self, event: str, **values):
        self._log("warning", event, **values)

    def error(self, event: str, **values):
        self._log("error", event, **values)

    def events(self, level: Optional[str] = None) -> List[str]:
        return [r["event"] for r in self.records if level is None or r["level"] == level]


class FaultyInvalidator(InMemoryPathInvalidator):
    """In-memory invalidator that faults on selected routes."""

    def __init__(self, fail_on: Set[str]):
        super().__init__()
        self.fail_on = set(fail_on)

    async def invalidate(self, spec: PathSpec) -> None:
        if spec.route_pattern in self.fail_on:
            self.calls += 1
            raise RuntimeError(f"cache engine rejected {spec.route_pattern}")
        await super().invalidate(spec)


@pytest.fixture
def secret() -> str:
    return TEST_SECRET


@pytest.fixture
def storefront_url() -> str:
    return TEST_STOREFRONT_URL


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def recording_logger_factory():
    return RecordingLogger


@pytest.fixture
def memory_invalidator() -> InMemoryPathInvalidator:
    return InMemoryPathInvalidator()


@pytest.fixture
def faulty_invalidator_factory():
    return FaultyInvalidator


@pytest.fixture
def registry_with_banners() -> TagRegistry:
    """Built-in tags plus a second known tag with its own paths."""
    return TagRegistry({
        **DEFAULT_TAG_PATHS,
        "banners": (
            PathSpec("/[countryCode]/(main)/banners"),
            PathSpec("/[countryCode]/(main)/promotions/[slug]"),
        ),
    })


@pytest.fixture
def make_event():
    def _make(name: str = "product.updated", product_id: str = "prod_01", **extra):
        return parse_event({"name": name, "data": {"id": product_id, **extra}})
    return _make


@pytest.fixture
def make_payload():
    def _make(product_id: str = "prod_01", envelope: Optional[str] = None) -> bytes:
        data = {"id": product_id, "handle": "linen-shirt"}
        if envelope:
            return json.dumps({"name": envelope, "data": data}).encode()
        return json.dumps(data).encode()
    return _make
