"""Unit tests for adapter value types."""

import pytest

from supastorj.adapters import (
    BackendKind,
    PortMapping,
    ServiceDescriptor,
)
from supastorj.registry import POSTGRES_META


class TestPortMapping:
    @pytest.mark.parametrize(
        ("spec", "expected"),
        [
            ("5432", PortMapping(5432)),
            (5432, PortMapping(5432)),
            ("15432:5432", PortMapping(5432, 15432)),
            ("127.0.0.1:8000:8000", PortMapping(8000, 8000, "tcp", "127.0.0.1")),
            ("53:53/udp", PortMapping(53, 53, "udp")),
        ],
    )
    def test_parse(self, spec: str | int, expected: PortMapping) -> None:
        assert PortMapping.parse(spec) == expected

    def test_expands_compose_variables(self) -> None:
        mapping = PortMapping.parse(
            "${STORAGE_PORT:-5000}:5000", {"STORAGE_PORT": "9"}
        )

        assert mapping == PortMapping(5000, 9)

    def test_uses_compose_default_when_unset(self) -> None:
        expected = PortMapping(5000, 5000)
        assert PortMapping.parse("${STORAGE_PORT:-5000}:5000") == expected

    def test_rejects_non_numeric_port(self) -> None:
        with pytest.raises(ValueError, match="invalid literal"):
            _ = PortMapping.parse("${UNSET}:5000")

    def test_str(self) -> None:
        assert str(PortMapping(5000, 8080)) == "8080->5000/tcp"
        assert str(PortMapping(53, protocol="udp")) == "53/udp"


class TestServiceDescriptor:
    def test_container_handle_follows_compose_naming(self) -> None:
        descriptor = ServiceDescriptor.for_container("storage", "stack")

        assert descriptor.kind is BackendKind.CONTAINER
        assert descriptor.runtime_handle == "stack-storage-1"
        assert descriptor.project == "stack"

    def test_is_immutable(self) -> None:
        descriptor = ServiceDescriptor.for_container("storage", "stack")

        with pytest.raises(AttributeError):
            descriptor.name = "other"  # pyright: ignore[reportAttributeAccessIssue]


class TestProductionService:
    def test_effective_port_default(self) -> None:
        assert POSTGRES_META.effective_port() == 5001

    def test_effective_port_override(self) -> None:
        assert POSTGRES_META.effective_port({"PG_META_PORT": "6001"}) == 6001

    def test_blank_override_is_ignored(self) -> None:
        assert POSTGRES_META.effective_port({"PG_META_PORT": ""}) == 5001
