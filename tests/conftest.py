import pytest
from unittest.mock import MagicMock

from coursepilot import create_app


@pytest.fixture
def app():
    app = create_app('testing')
    app.testing = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def llm():
    """Model client double with credentials configured."""
    mock_llm = MagicMock()
    mock_llm.has_credentials = True
    return mock_llm


class FakeQuery:
    """Records a chained Supabase query and returns canned rows on execute()."""

    def __init__(self, table, store):
        self.table = table
        self.store = store
        self.calls = []

    def __getattr__(self, name):
        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return method

    def execute(self):
        self.store.executed.append((self.table, self.calls))
        result = MagicMock()
        handler = self.store.handlers.get(self.table)
        result.data = handler(self.calls) if handler else []
        return result


class FakeSupabase:
    """
    Minimal stand-in for a Supabase client.

    ``handlers`` maps a table name to a callable receiving the recorded calls
    and returning the rows ``execute()`` should yield.
    """

    def __init__(self, handlers=None):
        self.handlers = handlers or {}
        self.executed = []

    def table(self, name):
        return FakeQuery(name, self)

    def calls_for(self, table, operation):
        return [
            calls for name, calls in self.executed
            if name == table and any(call[0] == operation for call in calls)
        ]


def echo_writes(calls):
    """Handler returning the rows passed to insert/upsert."""
    for name, args, _ in calls:
        if name in ('insert', 'upsert'):
            rows = args[0]
            return rows if isinstance(rows, list) else [rows]
    return []
