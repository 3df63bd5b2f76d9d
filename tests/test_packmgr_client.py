"""Tests for PackageManagerClient against an in-process httpx transport."""

from __future__ import annotations

import base64
from pathlib import Path
from typing import Callable

import httpx
import pytest

from adapters.packmgr import PackageManagerClient, command_params, package_path
from core.config import AppSettings
from core.domain.models import OperationKind, ServiceTarget
from core.errors import CommandError, ParseError, ProtocolError
from tests.listing_samples import listing_xml, package_xml

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def target() -> ServiceTarget:
    return ServiceTarget(host="aem.local", port=4502, user="admin", password="s3cret", group_id="my_packages")


@pytest.fixture
def seen() -> list[httpx.Request]:
    return []


def make_client(target: ServiceTarget, seen: list[httpx.Request], handler: Handler) -> PackageManagerClient:
    def _record(request: httpx.Request) -> httpx.Response:
        request.read()
        seen.append(request)
        return handler(request)

    return PackageManagerClient(target, AppSettings(), transport=httpx.MockTransport(_record))


def ok_json(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"success": True, "msg": "Package deleted"})


def test_list_packages_queries_listing_endpoint_with_basic_auth(
    target: ServiceTarget, seen: list[httpx.Request]
) -> None:
    body = listing_xml(package_xml("site-content", "1.0", "site-content-1.0.zip"))
    client = make_client(target, seen, lambda r: httpx.Response(200, text=body))

    records = client.list_packages("site-content")

    assert [r.download_name for r in records] == ["site-content-1.0.zip"]
    (request,) = seen
    assert request.method == "GET"
    assert request.url.scheme == "http"
    assert request.url.host == "aem.local"
    assert request.url.port == 4502
    assert request.url.path == "/crx/packmgr/service.jsp"
    assert request.url.params["cmd"] == "ls"
    expected = base64.b64encode(b"admin:s3cret").decode()
    assert request.headers["Authorization"] == f"Basic {expected}"


def test_list_packages_raises_protocol_error_on_bad_status_code(
    target: ServiceTarget, seen: list[httpx.Request]
) -> None:
    body = listing_xml(package_xml("site-content", "1.0", "site-content-1.0.zip"), code="500")
    client = make_client(target, seen, lambda r: httpx.Response(200, text=body))

    with pytest.raises(ProtocolError) as excinfo:
        client.list_packages("site-content")

    assert excinfo.value.actual == "500"
    assert "/crx/packmgr/service.jsp" in excinfo.value.endpoint
    assert len(seen) == 1


def test_list_packages_raises_protocol_error_on_http_failure(
    target: ServiceTarget, seen: list[httpx.Request]
) -> None:
    client = make_client(target, seen, lambda r: httpx.Response(401, text="Unauthorized"))

    with pytest.raises(ProtocolError, match="HTTP 401"):
        client.list_packages("site-content")


def test_list_packages_raises_protocol_error_on_transport_error(
    target: ServiceTarget, seen: list[httpx.Request]
) -> None:
    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(target, seen, boom)

    with pytest.raises(ProtocolError, match="connection refused"):
        client.list_packages("site-content")


def test_list_packages_raises_parse_error_on_garbage(
    target: ServiceTarget, seen: list[httpx.Request]
) -> None:
    client = make_client(target, seen, lambda r: httpx.Response(200, text="not markup at all"))

    with pytest.raises(ParseError):
        client.list_packages("site-content")


@pytest.mark.parametrize(
    ("method_name", "cmd"),
    [("delete", "delete"), ("activate", "replicate"), ("uninstall", "uninstall"), ("install", "install")],
)
def test_commands_post_to_group_qualified_path(
    target: ServiceTarget, seen: list[httpx.Request], method_name: str, cmd: str
) -> None:
    client = make_client(target, seen, ok_json)

    getattr(client, method_name)("site-content-1.0.zip")

    (request,) = seen
    assert request.method == "POST"
    assert request.url.path == "/crx/packmgr/service/.json/etc/packages/my_packages/site-content-1.0.zip"
    assert dict(request.url.params) == {"cmd": cmd}
    assert request.headers["Authorization"].startswith("Basic ")


def test_install_recursive_adds_separate_query_parameter(
    target: ServiceTarget, seen: list[httpx.Request]
) -> None:
    client = make_client(target, seen, ok_json)

    client.install("site-content-1.0.zip", recursive=True)

    (request,) = seen
    assert dict(request.url.params) == {"cmd": "install", "recursive": "true"}


def test_command_params_only_install_takes_recursive() -> None:
    assert command_params(OperationKind.INSTALL, recursive=True) == {"cmd": "install", "recursive": "true"}
    assert command_params(OperationKind.INSTALL) == {"cmd": "install"}
    assert command_params(OperationKind.DELETE, recursive=True) == {"cmd": "delete"}
    assert command_params(OperationKind.ACTIVATE) == {"cmd": "replicate"}


def test_package_path_encodes_segments() -> None:
    assert package_path("my_packages", "a b&c.zip") == (
        "/crx/packmgr/service/.json/etc/packages/my_packages/a%20b%26c.zip"
    )
    assert package_path("/com/example/", "x.zip") == "/crx/packmgr/service/.json/etc/packages/com/example/x.zip"


def test_command_http_error_raises_command_error(target: ServiceTarget, seen: list[httpx.Request]) -> None:
    client = make_client(target, seen, lambda r: httpx.Response(500, json={"success": False, "msg": "boom"}))

    with pytest.raises(CommandError) as excinfo:
        client.delete("site-content-1.0.zip")

    assert excinfo.value.status_code == 500
    assert excinfo.value.operation == "Delete"
    assert "site-content-1.0.zip" in excinfo.value.url
    assert "boom" in str(excinfo.value)


def test_command_success_false_raises_command_error(target: ServiceTarget, seen: list[httpx.Request]) -> None:
    client = make_client(
        target, seen, lambda r: httpx.Response(200, json={"success": False, "msg": "Package not found"})
    )

    with pytest.raises(CommandError, match="Package not found"):
        client.install("missing.zip")


def test_command_non_json_success_body_is_accepted(target: ServiceTarget, seen: list[httpx.Request]) -> None:
    client = make_client(target, seen, lambda r: httpx.Response(200, text="<html>ok</html>"))

    client.activate("site-content-1.0.zip")

    assert len(seen) == 1


def test_command_transport_error_raises_command_error(
    target: ServiceTarget, seen: list[httpx.Request]
) -> None:
    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = make_client(target, seen, boom)

    with pytest.raises(CommandError, match="timed out"):
        client.uninstall("site-content-1.0.zip")


def test_upload_posts_multipart_package_field(
    target: ServiceTarget, seen: list[httpx.Request], tmp_path: Path
) -> None:
    artifact = tmp_path / "site-content-2.0.zip"
    artifact.write_bytes(b"PK\x03\x04fake-zip-bytes")
    client = make_client(target, seen, lambda r: httpx.Response(200, json={"success": True, "msg": "Uploaded"}))

    client.upload(artifact)

    (request,) = seen
    assert request.method == "POST"
    assert request.url.path == "/crx/packmgr/service/.json"
    assert dict(request.url.params) == {"cmd": "upload"}
    assert request.headers["Content-Type"].startswith("multipart/form-data")
    body = request.content
    assert b'name="package"' in body
    assert b'filename="site-content-2.0.zip"' in body
    assert b"fake-zip-bytes" in body


def test_upload_missing_file_raises_command_error_without_request(
    target: ServiceTarget, seen: list[httpx.Request], tmp_path: Path
) -> None:
    client = make_client(target, seen, ok_json)

    with pytest.raises(CommandError, match="not found"):
        client.upload(tmp_path / "nope.zip")

    assert seen == []


def test_client_is_a_context_manager(target: ServiceTarget, seen: list[httpx.Request]) -> None:
    with make_client(target, seen, ok_json) as client:
        client.delete("x.zip")

    assert len(seen) == 1
    assert client._client.is_closed
