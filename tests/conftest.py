"""Pytest fixtures: product factory, fake HTTP session and controllable executors."""

from concurrent.futures import Executor, Future

import pytest
import requests

from core.models import Product
from fetchers import openfoodfacts


def _complete(future, fn, args, kwargs):
    try:
        result = fn(*args, **kwargs)
    except Exception as exc:
        future.set_exception(exc)
    else:
        future.set_result(result)


class ImmediateExecutor(Executor):
    """Runs each task inline at submit time."""

    def submit(self, fn, /, *args, **kwargs):
        future = Future()
        _complete(future, fn, args, kwargs)
        return future


class DeferredExecutor(Executor):
    """Holds tasks until the test decides which one finishes first."""

    def __init__(self):
        self.tasks = []

    def submit(self, fn, /, *args, **kwargs):
        future = Future()
        self.tasks.append((future, fn, args, kwargs))
        return future

    def run(self, index):
        future, fn, args, kwargs = self.tasks[index]
        _complete(future, fn, args, kwargs)
        return future

    def run_all(self):
        for index in range(len(self.tasks)):
            if not self.tasks[index][0].done():
                self.run(index)


class DummyResponse:
    def __init__(self, payload=None, status_code=200, bad_json=False):
        self.payload = payload
        self.status_code = status_code
        self.bad_json = bad_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def json(self):
        if self.bad_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self.payload


class FakeHTTP:
    """Routes SESSION.get calls by URL suffix and records every request."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, suffix, response):
        self.routes[suffix] = response

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": dict(params or {}), "timeout": timeout})
        for suffix, response in self.routes.items():
            if url.endswith(suffix):
                if isinstance(response, Exception):
                    raise response
                return response
        raise AssertionError(f"Unexpected request to {url}")


@pytest.fixture
def fake_http(monkeypatch):
    http = FakeHTTP()
    monkeypatch.setattr(openfoodfacts.SESSION, "get", http.get)
    return http


@pytest.fixture
def immediate_executor():
    return ImmediateExecutor()


@pytest.fixture
def deferred_executor():
    return DeferredExecutor()


@pytest.fixture
def make_product():
    counter = {"n": 0}

    def _make(name="Product", **kwargs):
        counter["n"] += 1
        kwargs.setdefault("product_id", f"p{counter['n']}")
        return Product(name=name, **kwargs)

    return _make
