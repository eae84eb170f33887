from typing import Protocol

import pytest

from servicebind import ConfigureKey, ContractViolationError, Lifetime, PostConfigureKey, ServiceDescriptor


class Base: ...


class Derived(Base): ...


def make_base(_):
    return Derived()


def test_factory_descriptor_defaults_implementation_type_to_service_type():
    d = ServiceDescriptor.scoped(Base, make_base)
    assert d.implementation_type is Base
    assert d.lifetime is Lifetime.SCOPED


def test_instance_descriptor_is_singleton_with_instance_type():
    inst = Derived()
    d = ServiceDescriptor.from_instance(Base, inst)
    assert d.lifetime is Lifetime.SINGLETON
    assert d.implementation_type is Derived
    assert d.instance is inst
    assert d.factory is None


def test_descriptors_with_same_fields_are_equal_and_share_hash():
    a = ServiceDescriptor.singleton(Base, make_base, Derived)
    b = ServiceDescriptor.singleton(Base, make_base, Derived)
    assert a == b
    assert hash(a) == hash(b)
    assert {a: 1}[b] == 1


def test_descriptors_differing_in_lifetime_are_not_equal():
    assert ServiceDescriptor.singleton(Base, make_base) != ServiceDescriptor.transient(Base, make_base)


def test_instance_descriptors_compare_instances_by_identity():
    class Value:
        def __eq__(self, other):
            return True

        __hash__ = None  # unhashable on purpose

    v1, v2 = Value(), Value()
    a = ServiceDescriptor.from_instance(Value, v1)
    assert a == ServiceDescriptor.from_instance(Value, v1)
    assert a != ServiceDescriptor.from_instance(Value, v2)
    hash(a)


def test_descriptor_is_immutable():
    d = ServiceDescriptor.transient(Base, make_base)
    with pytest.raises(AttributeError):
        d.lifetime = Lifetime.SINGLETON


def test_both_instance_and_factory_raises():
    with pytest.raises(ValueError, match="not both"):
        ServiceDescriptor(Base, Base, Lifetime.SINGLETON, instance=Base(), factory=make_base)


def test_neither_instance_nor_factory_raises():
    with pytest.raises(ValueError, match="must be provided"):
        ServiceDescriptor(Base, Base, Lifetime.SINGLETON)


def test_instance_on_scoped_descriptor_raises():
    with pytest.raises(ValueError, match="singleton"):
        ServiceDescriptor(Base, Base, Lifetime.SCOPED, instance=Base())


def test_object_service_type_raises():
    with pytest.raises(ValueError):
        ServiceDescriptor.transient(object, lambda _: object())


def test_implementation_must_subclass_service_type():
    class Unrelated: ...

    with pytest.raises(TypeError):
        ServiceDescriptor.singleton(Base, make_base, Unrelated)

    with pytest.raises(TypeError):
        ServiceDescriptor.from_instance(Base, Unrelated())


def test_protocol_service_type_skips_subclass_validation():
    class SupportsRun(Protocol):
        def run(self) -> None: ...

    class Runner:
        def run(self) -> None: ...

    d = ServiceDescriptor.transient(SupportsRun, lambda _: Runner(), Runner)
    assert d.implementation_type is Runner


def test_string_service_type_is_allowed():
    d = ServiceDescriptor.singleton("db", lambda _: object())
    assert d.service_type == "db"


def test_configure_keys_derive_from_service_type():
    d = ServiceDescriptor.transient(Base, make_base)
    assert d.configure_key == ConfigureKey(Base)
    assert d.post_configure_key == PostConfigureKey(Base)
    assert d.configure_key != d.post_configure_key


def test_copy_with_replaces_factory_only():
    d = ServiceDescriptor.scoped(Base, make_base, Derived)

    def other(_):
        return Derived()

    copy = d.copy_with(factory=other)
    assert copy.factory is other
    assert copy.service_type is Base
    assert copy.implementation_type is Derived
    assert copy.lifetime is Lifetime.SCOPED
    assert d.factory is make_base


def test_copy_with_instance_requires_singleton():
    inst = Derived()
    copy = ServiceDescriptor.singleton(Base, make_base, Derived).copy_with_instance(inst)
    assert copy.instance is inst
    assert copy.factory is None

    with pytest.raises(ContractViolationError):
        ServiceDescriptor.transient(Base, make_base).copy_with_instance(inst)


def test_repr_names_types_and_lifetime():
    text = repr(ServiceDescriptor.singleton(Base, make_base, Derived))
    assert "Base" in text
    assert "Derived" in text
    assert "singleton" in text
