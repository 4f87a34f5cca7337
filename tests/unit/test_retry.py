from unittest.mock import AsyncMock, MagicMock

import pytest

from ember_agents.infrastructure import RetryConfig, execute_with_retry

NO_WAIT = RetryConfig(max_retries=3, base_delay=0)


@pytest.mark.asyncio
async def test_retries_until_success():
    func = AsyncMock(side_effect=[ConnectionError("reset"), "ok"])
    on_retry = MagicMock()

    assert await execute_with_retry(func, "arg", config=NO_WAIT, on_retry=on_retry) == "ok"
    assert func.await_count == 2
    on_retry.assert_called_once()


@pytest.mark.asyncio
async def test_last_error_is_raised_when_attempts_run_out():
    func = AsyncMock(side_effect=TimeoutError("slow"))

    with pytest.raises(TimeoutError):
        await execute_with_retry(func, config=NO_WAIT)
    assert func.await_count == 3


@pytest.mark.asyncio
async def test_fallback_response_and_non_retryable_errors():
    failing = AsyncMock(side_effect=ConnectionError("down"))
    assert await execute_with_retry(failing, config=NO_WAIT, fallback_response="cached") == "cached"

    broken = AsyncMock(side_effect=KeyError("x"))
    with pytest.raises(KeyError):
        await execute_with_retry(broken, config=NO_WAIT)
    assert broken.await_count == 1


def test_delay_is_capped():
    config = RetryConfig(base_delay=1, max_delay=5)

    assert config.delay_for(0) == 1
    assert config.delay_for(1) == 2
    assert config.delay_for(10) == 5
