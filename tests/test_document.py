"""Tests for the serve config document model."""

from __future__ import annotations

import json

import pytest

from hostserve.core.exceptions import MalformedDocumentError
from hostserve.serve.document import (
    HandlerKind,
    HTTPSPortHandler,
    PathHandler,
    ProxyHandler,
    ServeConfig,
    TCPForwardHandler,
    TextHandler,
    WebServerConfig,
    handler_from_dict,
    tcp_handler_from_dict,
)


def _full_config() -> ServeConfig:
    return ServeConfig(
        tcp={443: HTTPSPortHandler()},
        web={
            "foo:443": WebServerConfig(
                handlers={
                    "/": ProxyHandler("http://127.0.0.1:3000"),
                    "/docs/": PathHandler("/srv/docs"),
                    "/hello": TextHandler("Hello, world!"),
                }
            )
        },
        allow_ingress={"foo:443": True},
    )


class TestHTTPHandlers:
    """Tests for the HTTP handler variants."""

    def test_kinds_and_values(self) -> None:
        assert PathHandler("/srv").kind is HandlerKind.PATH
        assert ProxyHandler("http://127.0.0.1").kind is HandlerKind.PROXY
        assert TextHandler("hi").kind is HandlerKind.TEXT
        assert TextHandler("hi").value == "hi"

    def test_to_dict(self) -> None:
        assert PathHandler("/srv").to_dict() == {"Path": "/srv"}
        assert ProxyHandler("http://127.0.0.1:3000").to_dict() == {"Proxy": "http://127.0.0.1:3000"}
        assert TextHandler("hi").to_dict() == {"Text": "hi"}

    def test_variants_with_same_value_differ(self) -> None:
        assert PathHandler("x") != TextHandler("x")

    def test_from_dict(self) -> None:
        assert handler_from_dict({"Proxy": "http://127.0.0.1:3000"}) == ProxyHandler(
            "http://127.0.0.1:3000"
        )
        assert handler_from_dict({"Text": "hi", "Path": ""}) == TextHandler("hi")
        assert handler_from_dict({"Text": ""}) == TextHandler("")

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"Path": "/a", "Text": "b"},
            {"Proxy": 3000},
            {"Redirect": "/x"},
            ["Path", "/a"],
            None,
        ],
    )
    def test_from_dict_rejects_malformed(self, data: object) -> None:
        with pytest.raises(MalformedDocumentError):
            handler_from_dict(data)


class TestTCPPortHandlers:
    """Tests for the TCP port handler variants."""

    def test_https_to_dict(self) -> None:
        assert HTTPSPortHandler().to_dict() == {"HTTPS": True}

    def test_forward_to_dict(self) -> None:
        assert TCPForwardHandler("127.0.0.1:5432").to_dict() == {"TCPForward": "127.0.0.1:5432"}
        assert TCPForwardHandler("127.0.0.1:5432", terminate_tls="foo").to_dict() == {
            "TCPForward": "127.0.0.1:5432",
            "TerminateTLS": "foo",
        }

    def test_equality(self) -> None:
        assert HTTPSPortHandler() == HTTPSPortHandler()
        assert TCPForwardHandler("127.0.0.1:1") != TCPForwardHandler("127.0.0.1:1", "foo")

    def test_from_dict(self) -> None:
        assert tcp_handler_from_dict({"HTTPS": True}) == HTTPSPortHandler()
        assert tcp_handler_from_dict(
            {"TCPForward": "127.0.0.1:8443", "TerminateTLS": "foo"}
        ) == TCPForwardHandler("127.0.0.1:8443", "foo")
        assert tcp_handler_from_dict(
            {"HTTPS": False, "TCPForward": "127.0.0.1:22", "TerminateTLS": ""}
        ) == TCPForwardHandler("127.0.0.1:22")

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"HTTPS": False},
            {"HTTPS": True, "TCPForward": "127.0.0.1:22"},
            {"HTTPS": True, "TerminateTLS": "foo"},
            {"HTTPS": "yes"},
            {"TCPForward": 22},
            {"Forward": "127.0.0.1:22"},
        ],
    )
    def test_from_dict_rejects_malformed(self, data: dict) -> None:
        with pytest.raises(MalformedDocumentError):
            tcp_handler_from_dict(data)


class TestServeConfig:
    """Tests for ServeConfig serialization, cloning and equality."""

    def test_empty_config_serializes_to_empty_object(self) -> None:
        assert ServeConfig().to_dict() == {}
        assert ServeConfig().to_json(indent=None) == "{}"

    def test_to_dict_shape(self) -> None:
        data = _full_config().to_dict()

        assert data == {
            "TCP": {"443": {"HTTPS": True}},
            "Web": {
                "foo:443": {
                    "Handlers": {
                        "/": {"Proxy": "http://127.0.0.1:3000"},
                        "/docs/": {"Path": "/srv/docs"},
                        "/hello": {"Text": "Hello, world!"},
                    }
                }
            },
            "AllowIngress": {"foo:443": True},
        }

    def test_empty_maps_are_kept(self) -> None:
        """Test that an empty map is distinct from an absent one."""
        config = ServeConfig(allow_ingress={})

        assert config.to_dict() == {"AllowIngress": {}}
        assert config != ServeConfig()

    def test_from_json_round_trip(self) -> None:
        config = _full_config()
        assert ServeConfig.from_json(config.to_json()) == config

    def test_from_json_null_is_empty(self) -> None:
        assert ServeConfig.from_json("null") == ServeConfig()

    def test_from_dict_integer_port_keys(self) -> None:
        config = ServeConfig.from_dict({"TCP": {443: {"HTTPS": True}}})
        assert config.tcp == {443: HTTPSPortHandler()}

    def test_from_dict_keeps_false_ingress(self) -> None:
        config = ServeConfig.from_dict({"AllowIngress": {"foo:443": False, "bar:443": True}})
        assert config.allow_ingress == {"foo:443": False, "bar:443": True}
        assert not config.is_ingress_allowed("foo:443")
        assert config.to_dict() == {"AllowIngress": {"foo:443": False, "bar:443": True}}

    def test_empty_text_handler_round_trip(self) -> None:
        config = ServeConfig(web={"foo:443": WebServerConfig(handlers={"/": TextHandler("")})})
        assert ServeConfig.from_json(config.to_json()) == config

    def test_from_dict_web_without_handlers(self) -> None:
        config = ServeConfig.from_dict({"Web": {"foo:443": {}}})
        assert config.web == {"foo:443": WebServerConfig()}

    @pytest.mark.parametrize(
        "text",
        [
            "not json",
            "[]",
            '"string"',
            '{"Unknown": {}}',
            '{"TCP": {"0": {"HTTPS": true}}}',
            '{"TCP": {"65536": {"HTTPS": true}}}',
            '{"TCP": {"https": {"HTTPS": true}}}',
            '{"TCP": []}',
            '{"Web": {"foo:443": {"Handlers": {"/": {}}}}}',
            '{"Web": {"foo:443": {"Handlers": []}}}',
            '{"Web": {"foo:443": {"Extra": 1}}}',
            '{"AllowIngress": {"foo:443": "yes"}}',
            '{"AllowIngress": ["foo:443"]}',
        ],
    )
    def test_from_json_rejects_malformed(self, text: str) -> None:
        with pytest.raises(MalformedDocumentError):
            ServeConfig.from_json(text)

    def test_clone_is_deep(self) -> None:
        original = _full_config()
        clone = original.clone()

        assert clone == original
        assert clone is not original

        assert clone.web is not None
        clone.web["foo:443"].handlers["/new"] = TextHandler("x")  # type: ignore[index]
        clone.tcp = None

        assert original == _full_config()
        assert clone != original

    def test_is_ingress_allowed(self) -> None:
        assert _full_config().is_ingress_allowed("foo:443")
        assert not _full_config().is_ingress_allowed("bar:443")
        assert not ServeConfig().is_ingress_allowed("foo:443")

    def test_to_json_is_valid_json(self) -> None:
        assert json.loads(_full_config().to_json())["TCP"] == {"443": {"HTTPS": True}}
