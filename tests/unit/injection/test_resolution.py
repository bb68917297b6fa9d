import asyncio

import pytest

from wiring.injection import (
    CacheMissError,
    CircularDependencyError,
    Container,
    ContainerSettings,
    FactoryFailedError,
    ResolverProtocol,
    Scope,
)
from wiring.injection.resolution import ResolutionStack, current_frame


class FakeService:
    pass


class FakeRepository:
    pass


class FakeHandler:
    def __init__(self, repository):
        self.repository = repository


@pytest.mark.asyncio
async def test_factory_receives_resolver_handle(container):
    seen = []

    def make(resolver):
        seen.append(resolver)
        return FakeService()

    container.register(FakeService, Scope.TRANSIENT, make)
    await container.resolve(FakeService)

    assert isinstance(seen[0], ResolverProtocol)
    assert not hasattr(seen[0], "register")


@pytest.mark.asyncio
async def test_dependencies_are_injected(container):
    async def make_handler(resolver):
        return FakeHandler(await resolver.resolve(FakeRepository))

    container.register(FakeRepository, Scope.SINGLETON, lambda r: FakeRepository())
    container.register(FakeHandler, Scope.TRANSIENT, make_handler)

    handler = await container.resolve(FakeHandler)
    assert handler.repository is await container.resolve(FakeRepository)


@pytest.mark.asyncio
async def test_concurrent_singleton_race_constructs_once(container):
    calls = 0

    async def make(resolver):
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        return FakeService()

    container.register(FakeService, Scope.SINGLETON, make)

    instances = await asyncio.gather(
        *(container.resolve(FakeService) for _ in range(50))
    )

    assert calls == 1
    assert all(instance is instances[0] for instance in instances)
    metrics = container.get_metrics()
    assert metrics.total_resolutions == 50
    assert metrics.cache_hits == 49


@pytest.mark.asyncio
async def test_concurrent_lazy_race_constructs_once(container):
    calls = 0

    async def make(resolver):
        nonlocal calls
        calls += 1
        await asyncio.sleep(0)
        return FakeService()

    container.register(FakeService, Scope.LAZY, make)
    instances = await asyncio.gather(
        *(container.resolve(FakeService) for _ in range(10))
    )
    assert calls == 1
    assert len({id(instance) for instance in instances}) == 1


@pytest.mark.asyncio
async def test_failed_factory_commits_nothing(container):
    attempts = 0

    def make(resolver):
        nonlocal attempts
        attempts += 1
        if attempts == 1:
            raise ValueError("first attempt fails")
        return FakeService()

    container.register(FakeService, Scope.SINGLETON, make)

    with pytest.raises(FactoryFailedError) as exc:
        await container.resolve(FakeService)
    assert exc.value.key is FakeService
    assert isinstance(exc.value.cause, ValueError)
    assert exc.value.__cause__ is exc.value.cause

    with pytest.raises(CacheMissError):
        container.resolve_cached_only(FakeService)

    instance = await container.resolve(FakeService)
    assert isinstance(instance, FakeService)
    assert container.resolve_cached_only(FakeService) is instance


@pytest.mark.asyncio
async def test_waiters_retry_after_failed_first_attempt(container):
    attempts = 0

    async def make(resolver):
        nonlocal attempts
        attempts += 1
        await asyncio.sleep(0.01)
        if attempts == 1:
            raise RuntimeError("transient failure")
        return FakeService()

    container.register(FakeService, Scope.SINGLETON, make)

    results = await asyncio.gather(
        container.resolve(FakeService),
        container.resolve(FakeService),
        return_exceptions=True,
    )

    assert isinstance(results[0], FactoryFailedError)
    assert isinstance(results[1], FakeService)
    assert attempts == 2


@pytest.mark.asyncio
async def test_innermost_factory_failure_is_reported(container):
    def make_repository(resolver):
        raise ConnectionError("database down")

    async def make_handler(resolver):
        return FakeHandler(await resolver.resolve(FakeRepository))

    container.register(FakeRepository, Scope.SINGLETON, make_repository)
    container.register(FakeHandler, Scope.TRANSIENT, make_handler)

    with pytest.raises(FactoryFailedError) as exc:
        await container.resolve(FakeHandler)

    error = exc.value
    assert error.key is FakeRepository
    assert isinstance(error.cause, ConnectionError)
    assert error.context["dependency_chain"] == ["FakeHandler", "FakeRepository"]
    assert error.context["error_type"] == "ConnectionError"
    assert set(error.context["container_registrations"]) == {
        "FakeRepository",
        "FakeHandler",
    }
    assert error.context["active_scopes"] == []
    assert error.context["factory_name"] == "make_repository"


@pytest.mark.asyncio
async def test_cancellation_releases_the_slot(container):
    attempts = 0
    never = asyncio.Event()

    async def make(resolver):
        nonlocal attempts
        attempts += 1
        if attempts == 1:
            await never.wait()
        return FakeService()

    container.register(FakeService, Scope.SINGLETON, make)

    task = asyncio.create_task(container.resolve(FakeService))
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    with pytest.raises(CacheMissError):
        container.resolve_cached_only(FakeService)

    instance = await asyncio.wait_for(container.resolve(FakeService), timeout=5)
    assert isinstance(instance, FakeService)
    assert attempts == 2


@pytest.mark.asyncio
async def test_resolution_frame_is_visible_inside_factories(container):
    frames = []

    def make_repository(resolver):
        frames.append(current_frame())
        return FakeRepository()

    async def make_handler(resolver):
        return FakeHandler(await resolver.resolve(FakeRepository))

    container.register(FakeRepository, Scope.TRANSIENT, make_repository)
    container.register(FakeHandler, Scope.TRANSIENT, make_handler)

    await container.resolve(FakeHandler)

    assert frames[0].keys == (FakeHandler, FakeRepository)
    assert frames[0].caller is FakeHandler
    assert current_frame() is None


@pytest.mark.asyncio
async def test_container_resolve_inside_factory_joins_the_chain(container):
    async def make_service(resolver):
        # Resolving through the container instead of the handle
        return await container.resolve(FakeService)

    container.register(FakeService, Scope.TRANSIENT, make_service)

    with pytest.raises(CircularDependencyError) as exc:
        await container.resolve(FakeService)
    assert exc.value.cycle_path == [FakeService, FakeService]


def test_resolution_stack_links():
    root = ResolutionStack("a")
    child = ResolutionStack("b", root)
    grandchild = ResolutionStack("c", child)

    assert grandchild.keys == ("a", "b", "c")
    assert "a" in grandchild
    assert "c" not in child
    assert len(grandchild) == 3
    assert grandchild.descends_from(root)
    assert grandchild.descends_from(grandchild)
    assert not root.descends_from(child)
    assert root.caller is None


@pytest.mark.asyncio
async def test_metrics_hit_rate_and_memory(container):
    container.register(FakeService, Scope.SINGLETON, lambda r: FakeService())
    await container.resolve(FakeService)
    await container.resolve(FakeService)

    metrics = container.get_metrics()
    assert metrics.total_resolutions == 2
    assert metrics.cache_hits == 1
    assert metrics.cache_misses == 1
    assert metrics.cache_hit_rate == 0.5
    assert metrics.memory_usage == 1.0
    assert metrics.average_resolution_time >= 0.0


@pytest.mark.asyncio
async def test_metrics_can_be_disabled():
    container = Container(ContainerSettings(enable_performance_metrics=False))
    container.register(FakeService, Scope.SINGLETON, lambda r: FakeService())
    await container.resolve(FakeService)

    assert container.get_metrics().total_resolutions == 0


@pytest.mark.asyncio
async def test_cached_only_misses_are_not_counted(container):
    container.register(FakeService, Scope.SINGLETON, lambda r: FakeService())

    with pytest.raises(CacheMissError):
        container.resolve_cached_only(FakeService)
    assert container.get_metrics().total_resolutions == 0

    instance = await container.resolve(FakeService)
    assert container.resolve_cached_only(FakeService) is instance
    metrics = container.get_metrics()
    assert metrics.total_resolutions == 2
    assert metrics.cache_hits == 1
    assert metrics.failed_resolutions == 0


@pytest.mark.asyncio
async def test_task_spawned_by_factory_resolves_after_factory_returns(container):
    spawned = []

    def make(resolver):
        async def later():
            await asyncio.sleep(0.01)
            return (
                await container.resolve(FakeService),
                await resolver.resolve(FakeService),
            )

        spawned.append(asyncio.create_task(later()))
        return FakeService()

    container.register(FakeService, Scope.SINGLETON, make)
    service = await container.resolve(FakeService)

    through_container, through_handle = await spawned[0]
    assert through_container is service
    assert through_handle is service
    assert container.get_dependency_graph().edges == frozenset()


@pytest.mark.asyncio
@pytest.mark.parametrize("housekeeping", ["end_scope", "cleanup"])
async def test_housekeeping_during_lock_handoff_keeps_singleton_unique(
    container, housekeeping
):
    attempts = 0
    late = []
    container.begin_scope("unrelated")

    def interrupt():
        if housekeeping == "end_scope":
            container.end_scope("unrelated")
        else:
            container.cleanup()
        late.append(asyncio.ensure_future(container.resolve(FakeService)))

    async def make(resolver):
        nonlocal attempts
        attempts += 1
        await asyncio.sleep(0.01)
        if attempts == 1:
            # Runs before the waiting resolver is handed the slot
            asyncio.get_running_loop().call_soon(interrupt)
            raise RuntimeError("first attempt fails")
        return FakeService()

    container.register(FakeService, Scope.SINGLETON, make)

    first, second = await asyncio.gather(
        container.resolve(FakeService),
        container.resolve(FakeService),
        return_exceptions=True,
    )
    third = await late[0]

    assert isinstance(first, FactoryFailedError)
    assert isinstance(second, FakeService)
    assert third is second
    assert attempts == 2
