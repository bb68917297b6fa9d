import pytest

from wiring.injection import (
    CacheMissError,
    Container,
    ContainerDisposedError,
    ContainerSettings,
    DependencyLifetime,
    FactoryFailedError,
    NotRegisteredError,
    Scope,
    ValidationError,
)


class FakeService:
    def __init__(self):
        self.value = 42


class FakeDisposable:
    def __init__(self):
        self.disposed = False

    def dispose(self):
        self.disposed = True


class FakeAsyncDisposable:
    def __init__(self):
        self.disposed = False

    async def dispose(self):
        self.disposed = True


class Str:
    pass


class Len:
    pass


@pytest.mark.asyncio
async def test_singleton_registration_and_resolution(container):
    container.register(FakeService, Scope.SINGLETON, lambda r: FakeService())
    instance1 = await container.resolve(FakeService)
    instance2 = await container.resolve(FakeService)
    assert instance1 is instance2
    assert instance1.value == 42


@pytest.mark.asyncio
async def test_transient_registration_and_resolution(container):
    container.register(FakeService, Scope.TRANSIENT, lambda r: FakeService())
    inst1 = await container.resolve(FakeService)
    inst2 = await container.resolve(FakeService)
    assert inst1 is not inst2


@pytest.mark.asyncio
async def test_async_factory(container):
    async def make(resolver):
        return FakeService()

    container.register(FakeService, Scope.SINGLETON, make)
    instance = await container.resolve(FakeService)
    assert isinstance(instance, FakeService)


@pytest.mark.asyncio
async def test_scope_given_as_string(container):
    registration = container.register("greeting", "singleton", lambda r: "hi")
    assert registration.scope is Scope.SINGLETON
    assert await container.resolve("greeting") == "hi"


@pytest.mark.asyncio
async def test_end_to_end_example(container):
    container.register(Str, Scope.SINGLETON, lambda r: "Hello, World!")

    async def length(resolver):
        return len(await resolver.resolve(Str))

    container.register(Len, Scope.TRANSIENT, length)

    assert await container.resolve(Len) == 13
    assert container.get_metrics().total_resolutions == 2


@pytest.mark.asyncio
async def test_missing_registration(container):
    with pytest.raises(NotRegisteredError) as exc:
        await container.resolve(FakeService)
    assert exc.value.key is FakeService
    assert exc.value.context["service_key"] == "FakeService"


@pytest.mark.asyncio
async def test_missing_registration_is_not_counted(container):
    with pytest.raises(NotRegisteredError):
        await container.resolve(FakeService)
    assert container.get_metrics().total_resolutions == 0


def test_registration_metadata(container):
    container.register(
        FakeService,
        Scope.SCOPED,
        lambda r: FakeService(),
        lifetime=DependencyLifetime.REQUEST,
        dependencies=[Str],
    )
    registration = container.get_registration(FakeService)
    assert registration.scope is Scope.SCOPED
    assert registration.lifetime is DependencyLifetime.REQUEST
    assert registration.dependencies == (Str,)
    assert registration.registered_at.tzinfo is not None
    assert container.is_registered(FakeService)
    assert not container.is_registered(Str)
    assert container.get_registration(Str) is None
    assert container.registered_services_count == 1
    assert container.registered_keys() == [FakeService]


def test_register_rejects_non_callable_factory(container):
    with pytest.raises(TypeError):
        container.register(FakeService, Scope.SINGLETON, 42)


@pytest.mark.asyncio
async def test_reregistration_keeps_cached_instance(container):
    container.register(FakeService, Scope.SINGLETON, lambda r: "first")
    assert await container.resolve(FakeService) == "first"

    container.register(FakeService, Scope.SINGLETON, lambda r: "second")
    assert container.registered_services_count == 1
    assert await container.resolve(FakeService) == "first"

    container.cleanup()
    assert await container.resolve(FakeService) == "second"


@pytest.mark.asyncio
async def test_resolve_cached_only(container):
    container.register(FakeService, Scope.SINGLETON, lambda r: FakeService())
    with pytest.raises(CacheMissError):
        container.resolve_cached_only(FakeService)

    instance = await container.resolve(FakeService)
    assert container.resolve_cached_only(FakeService) is instance


@pytest.mark.asyncio
async def test_resolve_cached_only_transient_always_misses(container):
    container.register(FakeService, Scope.TRANSIENT, lambda r: FakeService())
    await container.resolve(FakeService)
    with pytest.raises(CacheMissError) as exc:
        container.resolve_cached_only(FakeService)
    assert exc.value.key is FakeService


def test_resolve_cached_only_unregistered(container):
    with pytest.raises(NotRegisteredError):
        container.resolve_cached_only(FakeService)


def test_resolve_cached_only_scoped_without_scope(container):
    container.register(FakeService, Scope.SCOPED, lambda r: FakeService())
    with pytest.raises(CacheMissError):
        container.resolve_cached_only(FakeService)


@pytest.mark.asyncio
async def test_create_with_async_configurator():
    async def configure(c):
        c.register(Str, Scope.SINGLETON, lambda r: "Hello, World!")

    container = await Container.create(configure)
    assert await container.resolve(Str) == "Hello, World!"


@pytest.mark.asyncio
async def test_create_with_sync_configurator():
    container = await Container.create(
        lambda c: c.register(Str, Scope.SINGLETON, lambda r: "sync"),
        settings=ContainerSettings(),
    )
    assert await container.resolve(Str) == "sync"


@pytest.mark.asyncio
async def test_preload_skips_transient_lazy_and_scoped(container):
    built = []

    def factory(name):
        def make(resolver):
            built.append(name)
            return name

        return make

    container.register("single", Scope.SINGLETON, factory("single"))
    container.register("lazy", Scope.LAZY, factory("lazy"))
    container.register("transient", Scope.TRANSIENT, factory("transient"))
    container.register("scoped", Scope.SCOPED, factory("scoped"))

    loaded = await container.preload()

    assert loaded == ["single"]
    assert built == ["single"]
    assert container.resolve_cached_only("single") == "single"
    with pytest.raises(CacheMissError):
        container.resolve_cached_only("lazy")


@pytest.mark.asyncio
async def test_preload_includes_scoped_inside_scope(container):
    container.register("scoped", Scope.SCOPED, lambda r: object())
    async with container.scope("request"):
        assert await container.preload() == ["scoped"]
        container.resolve_cached_only("scoped")


@pytest.mark.asyncio
async def test_preload_skips_failures(container):
    def broken(resolver):
        raise RuntimeError("boom")

    container.register("broken", Scope.SINGLETON, broken)
    container.register("ok", Scope.SINGLETON, lambda r: "ok")

    assert await container.preload() == ["ok"]


@pytest.mark.asyncio
async def test_preload_strict_raises():
    container = Container(ContainerSettings.strict())

    def broken(resolver):
        raise RuntimeError("boom")

    container.register("broken", Scope.SINGLETON, broken)
    with pytest.raises(FactoryFailedError):
        await container.preload()


@pytest.mark.asyncio
async def test_validate_dependencies_passes(container):
    container.register(Str, Scope.SINGLETON, lambda r: "x")
    container.register(Len, Scope.TRANSIENT, lambda r: 1, dependencies=[Str])
    container.validate_dependencies()


def test_validate_dependencies_reports_unregistered(container):
    container.register(Len, Scope.TRANSIENT, lambda r: 1, dependencies=[Str])
    with pytest.raises(ValidationError) as exc:
        container.validate_dependencies()
    assert exc.value.problems == ["Len depends on unregistered Str"]


@pytest.mark.asyncio
async def test_cleanup_clears_caches_and_metrics(container):
    container.register(FakeService, Scope.SINGLETON, lambda r: FakeService())
    first = await container.resolve(FakeService)

    container.cleanup()

    metrics = container.get_metrics()
    assert metrics.total_resolutions == 0
    assert metrics.memory_usage == 0.0
    assert container.is_registered(FakeService)
    assert await container.resolve(FakeService) is not first


@pytest.mark.asyncio
async def test_dispose_calls_dispose_on_cached_instances(container):
    container.register(FakeDisposable, Scope.SINGLETON, lambda r: FakeDisposable())
    container.register(
        FakeAsyncDisposable, Scope.SINGLETON, lambda r: FakeAsyncDisposable()
    )
    sync_instance = await container.resolve(FakeDisposable)
    async_instance = await container.resolve(FakeAsyncDisposable)

    await container.dispose()

    assert sync_instance.disposed
    assert async_instance.disposed
    assert container.is_disposed


@pytest.mark.asyncio
async def test_operations_fail_after_dispose(container):
    container.register(FakeService, Scope.SINGLETON, lambda r: FakeService())
    await container.dispose()

    with pytest.raises(ContainerDisposedError) as exc:
        await container.resolve(FakeService)
    assert exc.value.operation == "resolve"

    with pytest.raises(ContainerDisposedError):
        container.register(FakeService, Scope.SINGLETON, lambda r: FakeService())
    with pytest.raises(ContainerDisposedError):
        container.begin_scope("late")

    # Disposing twice is a no-op
    await container.dispose()


@pytest.mark.asyncio
async def test_use_context_manager_disposes(container):
    container.register(FakeDisposable, Scope.SINGLETON, lambda r: FakeDisposable())
    async with container.use() as c:
        instance = await c.resolve(FakeDisposable)
    assert instance.disposed
    assert container.is_disposed
