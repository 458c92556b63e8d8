import asyncio

from folderhub.server.services.coordination import LocalCoordinationService


async def test_key_expiry() -> None:
    service = LocalCoordinationService()
    await service.set_value("foo", "bar", ttl=1)
    await service.set_value("forever", "value")

    assert await service.get_value("foo") == "bar"

    await asyncio.sleep(1.1)
    assert await service.get_value("foo") is None
    assert await service.get_value("forever") == "value"


async def test_pop_and_delete() -> None:
    service = LocalCoordinationService()
    await service.set_value("a", "1")
    await service.set_value("b", "2")

    assert await service.pop_value("a") == "1"
    assert await service.pop_value("a") is None

    await service.delete_value("b")
    await service.delete_value("missing")
    assert await service.get_value("b") is None


async def test_lock_serializes_tasks() -> None:
    service = LocalCoordinationService()
    events: list[str] = []

    async def worker(name: str) -> None:
        async with service.lock("tree:1"):
            events.append(f"{name}-start")
            await asyncio.sleep(0.01)
            events.append(f"{name}-end")

    await asyncio.gather(worker("first"), worker("second"))

    assert events == ["first-start", "first-end", "second-start", "second-end"]


async def test_locks_are_per_key() -> None:
    service = LocalCoordinationService()

    async with service.lock("tree:1"):
        # A different key is not blocked
        await asyncio.wait_for(_hold(service, "tree:2"), timeout=1)


async def _hold(service: LocalCoordinationService, key: str) -> None:
    async with service.lock(key):
        pass


async def test_writes_sweep_expired_keys() -> None:
    service = LocalCoordinationService()
    await service.set_value("user:1", "a", ttl=1)
    await service.set_value("user:2", "b")

    await asyncio.sleep(1.1)
    await service.set_value("user:3", "c", ttl=60)

    assert set(service._store) == {"user:2", "user:3"}


async def test_idle_locks_are_dropped() -> None:
    service = LocalCoordinationService()
    started = asyncio.Event()

    async def waiter() -> None:
        started.set()
        async with service.lock("tree:1"):
            pass

    async with service.lock("tree:1"):
        task = asyncio.create_task(waiter())
        await started.wait()
        await asyncio.sleep(0)
        assert "tree:1" in service._locks

    await task
    assert service._locks == {}

    await asyncio.gather(*(_hold(service, f"tree:{i}") for i in range(5)))
    assert service._locks == {}
