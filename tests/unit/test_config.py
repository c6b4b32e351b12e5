from dataclasses import FrozenInstanceError

import pytest

from resourcekit.config import OperationChecks, ResourceConfig
from resourcekit.db.memory import MemoryCollection
from resourcekit.hooks import FieldUniquenessPolicy, Operation, PassthroughBodyTransformer


def _config(**kwargs):
    kwargs.setdefault("name", "Widgets")
    kwargs.setdefault("route_prefix", "/widgets")
    kwargs.setdefault("collection", MemoryCollection())
    return ResourceConfig(**kwargs)


@pytest.mark.parametrize("prefix", ["widgets", "/widgets", "/widgets/", " widgets "])
def test_route_prefix_is_normalised(prefix):
    assert _config(route_prefix=prefix).route_prefix == "/widgets"


@pytest.mark.parametrize("prefix", ["", "/", None])
def test_empty_route_prefix_rejected(prefix):
    with pytest.raises(ValueError):
        _config(route_prefix=prefix)


def test_defaults():
    config = _config()
    assert config.logging is False
    assert config.identifier_field(Operation.GET_BY_ID) == "id"
    assert config.middlewares_for(Operation.CREATE) == ()
    assert isinstance(config.body_transformer(Operation.CREATE), PassthroughBodyTransformer)
    assert config.checks_for(Operation.LIST).search_fields == ()


def test_operation_keys_accept_strings_and_alias():
    config = _config(
        checks={"GET_ALL": {"search_fields": ["name"]}, "create": OperationChecks(unique_fields=["name"])},
    )
    assert config.checks_for(Operation.LIST).search_fields == ("name",)
    uniqueness = config.checks_for(Operation.CREATE).uniqueness
    assert isinstance(uniqueness, FieldUniquenessPolicy)
    assert uniqueness.fields == ("name",)


def test_identifier_override_per_operation():
    config = _config(id_field="slug", checks={Operation.DELETE: OperationChecks(id_field="code")})
    assert config.identifier_field(Operation.GET_BY_ID) == "slug"
    assert config.identifier_field(Operation.DELETE) == "code"


def test_config_is_read_only():
    config = _config(middlewares={Operation.CREATE: [lambda: None]})
    with pytest.raises(TypeError):
        config.middlewares[Operation.DELETE] = ()
    with pytest.raises(FrozenInstanceError):
        config.name = "Other"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"query_transformers": {Operation.CREATE: lambda q, c: (q, True)}},
        {"body_transformers": {Operation.LIST: lambda b, c: (b, True)}},
        {"checks": {Operation.LIST: OperationChecks(unique_fields=["name"])}},
        {"checks": {Operation.CREATE: OperationChecks(search_fields=["name"])}},
        {"checks": {Operation.UPDATE: OperationChecks(filter_rewriter=lambda f, c: f)}},
        {"checks": {"PATCH": OperationChecks()}},
    ],
)
def test_misplaced_hooks_rejected(kwargs):
    with pytest.raises(ValueError):
        _config(**kwargs)


def test_non_callable_middleware_rejected():
    with pytest.raises(TypeError):
        _config(middlewares={Operation.CREATE: ["nope"]})
