import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from school_portal.core.database import _engine_kwargs
from school_portal.core.exceptions import OperationTimeoutError, RecordStoreError
from school_portal.utils.record_store import _store_error


def test_postgres_calls_are_bounded():
    kwargs = _engine_kwargs("postgresql://portal@db/portal", timeout=5)

    assert kwargs["pool_timeout"] == 5
    assert kwargs["connect_args"]["connect_timeout"] == 5
    assert kwargs["connect_args"]["options"] == "-c statement_timeout=5000"


def test_sqlite_file_uses_busy_timeout_and_pool_timeout():
    kwargs = _engine_kwargs("sqlite:///data/portal.db", timeout=2.5)

    assert kwargs["pool_timeout"] == 2.5
    assert kwargs["connect_args"] == {"check_same_thread": False, "timeout": 2.5}


@pytest.mark.parametrize("url", ["sqlite://", "sqlite:///:memory:"])
def test_in_memory_sqlite_has_no_pool_timeout(url):
    assert "pool_timeout" not in _engine_kwargs(url, timeout=5)


@pytest.mark.parametrize(
    "exc",
    [
        OperationalError("INSERT", {}, Exception("canceling statement due to statement timeout")),
        OperationalError("SELECT", {}, Exception("database is locked")),
        PoolTimeoutError("QueuePool limit of size 5 overflow 10 reached"),
    ],
)
def test_driver_timeouts_map_to_operation_timeout(exc):
    assert isinstance(_store_error("insert", exc), OperationTimeoutError)


def test_other_driver_errors_map_to_record_store_error():
    exc = OperationalError("INSERT", {}, Exception("disk I/O error"))
    assert isinstance(_store_error("insert", exc), RecordStoreError)
