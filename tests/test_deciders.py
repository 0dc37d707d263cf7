from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import pytest
from pydantic import BaseModel, ConfigDict

from polycodec import JsonCodec
from polycodec.deciders import Decider, FieldDecider, RegistryDecider, SelfDecider
from polycodec.exceptions import (
    DiscriminatorFieldMissingError,
    NoFactoryFoundError,
    RegistryCorruptionError,
)
from polycodec.registry import FactoryRegistry, register_type, type_label


class Vehicle(ABC):
    @abstractmethod
    def wheels(self) -> int: ...


@dataclass
class Car(Vehicle):
    type: str = ""
    brand: str = ""

    def wheels(self) -> int:
        return 4


@dataclass
class Bike(Vehicle):
    type: str = ""

    def wheels(self) -> int:
        return 2


class VehicleKind(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = ""


class ByType:
    field_name = "type"


class VehicleOrder(BaseModel):
    wants_car: bool = False

    def decide(self) -> Vehicle:
        return Car() if self.wants_car else Bike()


def test_registry_decider_builds_registered_type():
    registry = FactoryRegistry()
    register_type(Car, Vehicle, VehicleKind(type="car"), registry=registry)

    decider = RegistryDecider(Vehicle, VehicleKind, registry=registry)
    first = decider.decide(VehicleKind(type="car"))
    second = decider.decide(VehicleKind(type="car"))

    assert isinstance(first, Car)
    assert first is not second


def test_registry_decider_miss():
    decider = RegistryDecider(Vehicle, VehicleKind, registry=FactoryRegistry())

    with pytest.raises(NoFactoryFoundError) as excinfo:
        decider.decide(VehicleKind(type="boat"))

    assert str(excinfo.value) == (
        f"no factory found in registry[I: {type_label(Vehicle)}, X: {type_label(VehicleKind)}] "
        f"and X value VehicleKind(type='boat')"
    )


def test_registry_decider_reports_corrupted_entry():
    registry = FactoryRegistry()
    key = registry.make_key(Vehicle, VehicleKind(type="car"))
    registry._store[key] = "invalid_registry_type"

    decider = RegistryDecider(Vehicle, VehicleKind, registry=registry)
    with pytest.raises(RegistryCorruptionError) as excinfo:
        decider.decide(VehicleKind(type="car"))

    assert str(excinfo.value) == (
        f"registry[I: {type_label(Vehicle)}, X: {type_label(VehicleKind)}] entry should be a factory "
        f"but is: str for X value VehicleKind(type='car')"
    )
    assert excinfo.value.entry == "invalid_registry_type"


def test_registry_decider_reads_discriminator_shape():
    decider = RegistryDecider(Vehicle, VehicleKind)
    kind = decider.read_discriminator(b'{"type": "car", "brand": "volvo"}', JsonCodec())
    assert kind == VehicleKind(type="car")


def test_registry_decider_uses_active_registry_when_none_given():
    decider = RegistryDecider(Vehicle, VehicleKind)
    register_type(Bike, Vehicle, VehicleKind(type="bike"))

    assert isinstance(decider.decide(VehicleKind(type="bike")), Bike)


def test_field_decider_resolves_through_selector():
    registry = FactoryRegistry()
    register_type(Car, Vehicle, "car", selector=ByType, registry=registry)

    decider = FieldDecider(Vehicle, ByType, registry=registry)
    assert decider.field_name == "type"
    assert isinstance(decider.decide({"type": "car", "brand": "volvo"}), Car)


def test_field_decider_ignores_plain_registrations():
    registry = FactoryRegistry()
    register_type(Car, Vehicle, "car", registry=registry)

    decider = FieldDecider(Vehicle, ByType, registry=registry)
    with pytest.raises(NoFactoryFoundError) as excinfo:
        decider.decide({"type": "car"})

    assert f"F: {type_label(ByType)}" in str(excinfo.value)


def test_field_decider_missing_field():
    decider = FieldDecider(Vehicle, ByType, registry=FactoryRegistry())

    with pytest.raises(DiscriminatorFieldMissingError) as excinfo:
        decider.decide({"value": "x"})

    assert str(excinfo.value) == "discriminator field type not found in map {'value': 'x'}"
    assert excinfo.value.field == "type"
    assert excinfo.value.mapping == {"value": "x"}


def test_field_decider_requires_field_name():
    class NoName:
        pass

    with pytest.raises(TypeError):
        FieldDecider(Vehicle, NoName)


def test_field_decider_reads_map():
    decider = FieldDecider(Vehicle, ByType)
    assert decider.read_discriminator(b'{"type": "car", "brand": "volvo"}', JsonCodec()) == {
        "type": "car",
        "brand": "volvo",
    }


def test_self_decider_delegates_to_shape():
    decider = SelfDecider(Vehicle, VehicleOrder)

    assert isinstance(decider.decide(VehicleOrder(wants_car=True)), Car)
    assert isinstance(decider.decide(VehicleOrder()), Bike)


def test_self_decider_requires_decide():
    with pytest.raises(TypeError):
        SelfDecider(Vehicle, VehicleKind)


def test_custom_decider_subclass():
    class WheelCount(Decider[Vehicle, int]):
        def __init__(self):
            super().__init__(Vehicle, int)

        def decide(self, discriminator: int) -> Vehicle | None:
            return {2: Bike, 4: Car}.get(discriminator, lambda: None)()

    decider = WheelCount()
    assert isinstance(decider.decide(4), Car)
    assert decider.decide(3) is None
    assert decider.kind == "custom"


def test_deciders_compare_by_configuration():
    registry = FactoryRegistry()
    assert RegistryDecider(Vehicle, VehicleKind, registry=registry) == RegistryDecider(
        Vehicle, VehicleKind, registry=registry
    )
    assert RegistryDecider(Vehicle, VehicleKind) != FieldDecider(Vehicle, ByType)
    assert "FieldDecider" in repr(FieldDecider(Vehicle, ByType))


class LooseKind(BaseModel):
    type: str = ""


def test_registry_decider_rejects_unhashable_shape():
    with pytest.raises(TypeError, match="unhashable"):
        RegistryDecider(Vehicle, LooseKind)


def test_field_decider_with_unhashable_value_is_a_miss():
    registry = FactoryRegistry()
    register_type(Car, Vehicle, "car", selector=ByType, registry=registry)
    decider = FieldDecider(Vehicle, ByType, Any, registry=registry)

    discriminator = decider.read_discriminator(b'{"type": ["car"], "brand": "volvo"}', JsonCodec())
    with pytest.raises(NoFactoryFoundError, match="unhashable"):
        decider.decide(discriminator)


def test_discriminator_from_parsed_payload():
    codec = JsonCodec()
    assert RegistryDecider(Vehicle, VehicleKind).discriminator_from({"type": "car"}, codec) == VehicleKind(type="car")
    assert FieldDecider(Vehicle, ByType).discriminator_from(None, codec) == {}
