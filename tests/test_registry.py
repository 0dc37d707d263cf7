import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Protocol

import pytest

from polycodec.exceptions import (
    FactoryProductError,
    InterfaceNotImplementedError,
    NoFactoryFoundError,
    RegistryDuplicateError,
    RegistryFrozenError,
    RegistrationError,
    UnhashableDiscriminatorError,
)
from polycodec.registry import (
    FactoryRegistry,
    RegistryKey,
    default_registry,
    get_registry,
    lookup,
    register,
    type_label,
    use_registry,
)


class Shape(ABC):
    @abstractmethod
    def area(self) -> float: ...


class Square(Shape):
    def __init__(self):
        self.side = 0.0

    def area(self) -> float:
        return self.side ** 2


class Circle(Shape):
    def __init__(self):
        self.radius = 0.0

    def area(self) -> float:
        return 3.14159 * self.radius ** 2


class Unrelated:
    pass


@dataclass(frozen=True)
class FrozenPoint:
    x: int = 0


class Named(Protocol):
    name: str


class ByKind:
    field_name = "kind"


class ByVariant:
    field_name = "variant"


def test_register_and_lookup_returns_working_factory():
    registry = FactoryRegistry()
    key = registry.register(Shape, "square", Square)

    assert key == RegistryKey(Shape, str, None, "square")
    factory = registry.lookup(Shape, "square")
    first, second = factory(), factory()
    assert isinstance(first, Square)
    assert first is not second
    assert len(registry) == 1


def test_duplicate_key_is_rejected_regardless_of_factory():
    registry = FactoryRegistry()
    registry.register(Shape, "square", Square)

    with pytest.raises(RegistryDuplicateError) as excinfo:
        registry.register(Shape, "square", Circle)

    assert str(excinfo.value) == f"value 'square' already registered for registry[I: {type_label(Shape)}, X: str]"
    assert isinstance(registry.lookup(Shape, "square")(), Square)
    assert registry.count() == 1


def test_duplicate_message_names_selector():
    registry = FactoryRegistry()
    registry.register(Shape, "square", Square, selector=ByKind)

    with pytest.raises(RegistryDuplicateError, match=rf"F: {type_label(ByKind)}"):
        registry.register(Shape, "square", Square, selector=ByKind)


def test_factory_must_be_callable():
    registry = FactoryRegistry()
    with pytest.raises(FactoryProductError, match="factory must be callable"):
        registry.register(Shape, "square", Square())
    assert registry.count() == 0


@pytest.mark.parametrize("product", [42, "text", None, (1, 2), FrozenPoint()])
def test_factory_must_return_mutable_instance(product):
    registry = FactoryRegistry()
    with pytest.raises(FactoryProductError, match="factory must return a mutable instance"):
        registry.register(Shape, "square", lambda: product)
    assert registry.count() == 0


def test_factory_returning_plain_value_message():
    registry = FactoryRegistry()
    with pytest.raises(FactoryProductError) as excinfo:
        registry.register(int, "answer", lambda: 42)
    assert str(excinfo.value) == "factory must return a mutable instance, got int"


def test_factory_product_must_implement_interface():
    registry = FactoryRegistry()
    with pytest.raises(InterfaceNotImplementedError) as excinfo:
        registry.register(Shape, "square", Unrelated)

    assert excinfo.value.interface is Shape
    assert excinfo.value.concrete is Unrelated
    assert isinstance(excinfo.value, TypeError)


def test_non_runtime_checkable_protocol_is_rejected():
    registry = FactoryRegistry()
    with pytest.raises(InterfaceNotImplementedError, match="cannot be checked at runtime"):
        registry.register(Named, "x", Unrelated)


def test_unhashable_discriminator_is_rejected():
    registry = FactoryRegistry()
    with pytest.raises(UnhashableDiscriminatorError):
        registry.register(Shape, ["square"], Square)
    assert registry.count() == 0


def test_lookup_miss_names_key():
    registry = FactoryRegistry()
    with pytest.raises(NoFactoryFoundError) as excinfo:
        registry.lookup(Shape, "hexagon")

    assert str(excinfo.value) == f"no factory found in registry[I: {type_label(Shape)}, X: str] and X value 'hexagon'"
    assert excinfo.value.key == RegistryKey(Shape, str, None, "hexagon")
    assert isinstance(excinfo.value, LookupError)


def test_lookup_of_unhashable_value_is_a_miss():
    registry = FactoryRegistry()
    registry.register(Shape, "square", Square)

    with pytest.raises(NoFactoryFoundError, match=r"unhashable X value \['square'\]") as excinfo:
        registry.lookup(Shape, ["square"])

    assert excinfo.value.key == RegistryKey(Shape, list, None, ["square"])


def test_selectors_partition_the_value_space():
    registry = FactoryRegistry()
    registry.register(Shape, "a", Square)
    registry.register(Shape, "a", Circle, selector=ByKind)
    registry.register(Shape, "a", Square, selector=ByVariant)

    assert isinstance(registry.lookup(Shape, "a")(), Square)
    assert isinstance(registry.lookup(Shape, "a", selector=ByKind)(), Circle)
    assert isinstance(registry.lookup(Shape, "a", selector=ByVariant)(), Square)
    assert registry.count() == 3


def test_discriminator_type_is_part_of_the_key():
    registry = FactoryRegistry()
    registry.register(Shape, 1, Square)
    registry.register(Shape, 1, Circle, discriminator_type=float)

    assert isinstance(registry.lookup(Shape, 1)(), Square)
    assert isinstance(registry.lookup(Shape, 1, discriminator_type=float)(), Circle)


def test_reset_clears_everything():
    registry = FactoryRegistry()
    registry.register(Shape, "square", Square)
    registry.register(Shape, "circle", Circle)

    registry.reset()

    assert registry.count() == 0
    registry.register(Shape, "square", Circle)
    assert isinstance(registry.lookup(Shape, "square")(), Circle)


def test_frozen_registry_rejects_mutation():
    registry = FactoryRegistry(name="frozen")
    registry.register(Shape, "square", Square)
    registry.freeze()

    assert registry.frozen
    with pytest.raises(RegistryFrozenError):
        registry.register(Shape, "circle", Circle)
    with pytest.raises(RegistryFrozenError):
        registry.reset()
    assert isinstance(registry.lookup(Shape, "square")(), Square)


def test_keys_can_be_filtered_by_interface():
    registry = FactoryRegistry()
    registry.register(Shape, "square", Square)
    registry.register(Unrelated, "u", Unrelated)

    assert registry.keys(interface=Shape) == (RegistryKey(Shape, str, None, "square"),)
    assert len(registry.keys()) == 2
    assert RegistryKey(Unrelated, str, None, "u") in registry


def test_registration_errors_share_a_base():
    registry = FactoryRegistry()
    registry.register(Shape, "square", Square)
    for call in (
        lambda: registry.register(Shape, "square", Square),
        lambda: registry.register(Shape, "x", lambda: 1),
        lambda: registry.register(Shape, "y", Unrelated),
    ):
        with pytest.raises(RegistrationError):
            call()


def test_module_level_helpers_use_active_registry():
    scoped = FactoryRegistry(name="scoped")

    with use_registry(scoped):
        assert get_registry() is scoped
        register(Shape, "square", Square)
        assert isinstance(lookup(Shape, "square")(), Square)

    assert get_registry() is default_registry
    assert scoped.count() == 1
    assert default_registry.count() == 0
    with pytest.raises(NoFactoryFoundError):
        lookup(Shape, "square")


def test_concurrent_registration_on_disjoint_keys():
    registry = FactoryRegistry()
    values = [f"shape-{i}" for i in range(200)]

    with ThreadPoolExecutor(max_workers=16) as pool:
        keys = list(pool.map(lambda v: registry.register(Shape, v, Square), values))

    assert len(set(keys)) == 200
    assert registry.count() == 200


def test_concurrent_duplicate_registration_has_one_winner():
    registry = FactoryRegistry()
    barrier = threading.Barrier(8)
    outcomes = []

    def attempt():
        barrier.wait()
        try:
            registry.register(Shape, "contested", Square)
            outcomes.append("ok")
        except RegistryDuplicateError:
            outcomes.append("dup")

    threads = [threading.Thread(target=attempt) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("ok") == 1
    assert outcomes.count("dup") == 7


def test_concurrent_lookups_return_the_right_type():
    registry = FactoryRegistry()
    for i in range(50):
        registry.register(Shape, f"sq-{i}", Square)
        registry.register(Shape, f"ci-{i}", Circle)

    def check(i):
        prefix, expected = ("sq", Square) if i % 2 else ("ci", Circle)
        return isinstance(registry.lookup(Shape, f"{prefix}-{i % 50}")(), expected)

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(check, range(1000)))

    assert all(results)


@pytest.mark.asyncio
async def test_async_wrappers():
    registry = FactoryRegistry()
    await registry.aregister(Shape, "square", Square)

    factory = await registry.alookup(Shape, "square")
    assert isinstance(factory(), Square)
    assert await registry.acount() == 1

    await registry.areset()
    assert registry.count() == 0
