"""
Tests for the Kubernetes retry policy.
"""
from unittest.mock import AsyncMock

import pytest
from kubernetes_asyncio.client import ApiException

from keycloak_operator.utils.retry import (
    CONFLICT,
    NOT_FOUND,
    backoff_delay,
    is_retryable_k8s_error,
    retry_on_k8s_error,
)


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    sleep = AsyncMock()
    monkeypatch.setattr("keycloak_operator.utils.retry.asyncio.sleep", sleep)
    return sleep


def test_is_retryable_k8s_error():
    assert is_retryable_k8s_error(ApiException(status=503)) is True
    assert is_retryable_k8s_error(ApiException(status=429)) is True
    assert is_retryable_k8s_error(ApiException(status=404)) is False
    assert is_retryable_k8s_error(ValueError("boom")) is False


def test_backoff_delay_doubles_up_to_limit():
    assert [backoff_delay(attempt, 1.0, 5.0) for attempt in range(5)] == [1.0, 2.0, 4.0, 5.0, 5.0]


@pytest.mark.asyncio
async def test_retries_transient_errors_with_backoff(no_sleep):
    call = AsyncMock(side_effect=[ApiException(status=503), ApiException(status=503), "ok"])

    @retry_on_k8s_error(max_retries=3, initial_delay=1.0, max_delay=10.0)
    async def read():
        return await call()

    assert await read() == "ok"
    assert call.await_count == 3
    assert [c.args[0] for c in no_sleep.await_args_list] == [1.0, 2.0]


@pytest.mark.asyncio
async def test_gives_up_after_max_retries():
    call = AsyncMock(side_effect=ApiException(status=500))

    @retry_on_k8s_error(max_retries=2)
    async def read():
        return await call()

    with pytest.raises(ApiException):
        await read()
    assert call.await_count == 3


@pytest.mark.asyncio
async def test_does_not_retry_client_errors(no_sleep):
    call = AsyncMock(side_effect=ApiException(status=403))

    @retry_on_k8s_error(max_retries=3)
    async def read():
        return await call()

    with pytest.raises(ApiException):
        await read()
    assert call.await_count == 1
    no_sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_tolerated_status_resolves_to_none(no_sleep):
    call = AsyncMock(side_effect=ApiException(status=NOT_FOUND, reason="Not Found"))

    @retry_on_k8s_error(tolerate=(NOT_FOUND,))
    async def read():
        return await call()

    assert await read() is None
    assert call.await_count == 1
    no_sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_tolerated_status_after_transient_error():
    call = AsyncMock(side_effect=[ApiException(status=504), ApiException(status=CONFLICT)])

    @retry_on_k8s_error(tolerate=(CONFLICT,))
    async def create():
        return await call()

    assert await create() is None
    assert call.await_count == 2


@pytest.mark.asyncio
async def test_untolerated_status_still_raises():
    call = AsyncMock(side_effect=ApiException(status=CONFLICT))

    @retry_on_k8s_error(tolerate=(NOT_FOUND,))
    async def create():
        return await call()

    with pytest.raises(ApiException):
        await create()
