"""Tests for the Typer CLI wired to in-memory fakes."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable

import pytest
from typer.testing import CliRunner

from cli.main import CliState, app
from core.config import AppSettings
from core.domain.models import PackageRecord, ServiceTarget
from core.errors import ProtocolError
from tests.fakes.artifact_store import FakeArtifactStore
from tests.fakes.package_service import FakePackageService

MakeRecord = Callable[..., PackageRecord]

runner = CliRunner()


class _Wiring:
    def __init__(self, service: FakePackageService) -> None:
        self.service = service
        self.artifacts = FakeArtifactStore()
        self.targets: list[ServiceTarget] = []

    def state(self) -> CliState:
        def service_factory(target: ServiceTarget, settings: AppSettings) -> FakePackageService:
            self.targets.append(target)
            return self.service

        return CliState(
            settings=AppSettings(artifact_dir=Path("/srv/packages")),
            service_factory=service_factory,
            artifact_factory=lambda settings: self.artifacts,
        )


def invoke(wiring: _Wiring, *args: str):  # type: ignore[no-untyped-def]
    return runner.invoke(app, ["--log-level", "WARNING", *args], obj=wiring.state())


def test_upload_converges_and_closes_service(make_record: MakeRecord) -> None:
    wiring = _Wiring(FakePackageService([make_record("1.0"), make_record("1.1")]))

    result = invoke(wiring, "upload", "site-content", "/srv/packages/site-content-2.0.zip", "--version", "2.0")

    assert result.exit_code == 0, result.output
    assert wiring.service.calls_of("delete") == ["site-content-1.0.zip", "site-content-1.1.zip"]
    assert wiring.service.calls_of("upload") == ["/srv/packages/site-content-2.0.zip"]
    assert wiring.service.closed
    assert "Done" in result.output


def test_upload_up_to_date_reports_noop(make_record: MakeRecord) -> None:
    wiring = _Wiring(FakePackageService([make_record("2.0")]))

    result = invoke(wiring, "upload", "site-content", "/srv/packages/site-content-2.0.zip", "-v", "2.0")

    assert result.exit_code == 0, result.output
    assert wiring.service.calls == []
    assert "Up to date" in result.output


def test_upload_dry_run_makes_no_changes(make_record: MakeRecord) -> None:
    wiring = _Wiring(FakePackageService([make_record("1.0")]))

    result = invoke(
        wiring, "upload", "site-content", "/srv/packages/site-content-2.0.zip", "-v", "2.0", "--dry-run"
    )

    assert result.exit_code == 0, result.output
    assert wiring.service.calls == []
    assert "dry run" in result.output


def test_install_defaults_file_path_and_honours_recursive(make_record: MakeRecord) -> None:
    wiring = _Wiring(FakePackageService([make_record("2.0")]))

    result = invoke(wiring, "install", "site-content", "site-content-2.0.zip", "-v", "2.0", "--recursive")

    assert result.exit_code == 0, result.output
    assert wiring.service.calls == [("install", "site-content-2.0.zip")]
    assert wiring.service.install_flags == [True]
    assert wiring.targets[0].recursive is True


def test_connection_overrides_reach_the_target() -> None:
    wiring = _Wiring(FakePackageService())

    result = invoke(
        wiring, "--host", "publish.internal", "--port", "4503", "--group", "acme", "activate", "site-content-2.0.zip"
    )

    assert result.exit_code == 0, result.output
    (target,) = wiring.targets
    assert target.base_url == "http://publish.internal:4503"
    assert target.group_id == "acme"
    assert wiring.service.calls == [("activate", "site-content-2.0.zip")]


def test_delete_removes_remote_and_local_copy() -> None:
    wiring = _Wiring(FakePackageService())

    result = invoke(wiring, "delete", "site-content-2.0.zip")

    assert result.exit_code == 0, result.output
    assert wiring.service.calls == [("delete", "site-content-2.0.zip")]
    assert wiring.artifacts.removed == [Path("/srv/packages/site-content-2.0.zip")]


def test_uninstall_issues_single_command() -> None:
    wiring = _Wiring(FakePackageService())

    result = invoke(wiring, "uninstall", "site-content-2.0.zip")

    assert result.exit_code == 0, result.output
    assert wiring.service.calls == [("uninstall", "site-content-2.0.zip")]


def test_list_prints_and_exports_records(make_record: MakeRecord, tmp_path: Path) -> None:
    wiring = _Wiring(FakePackageService([make_record("1.0", download_name="sc-1.zip")]))
    out = tmp_path / "records.json"

    result = invoke(wiring, "list", "site-content", "--output", str(out))

    assert result.exit_code == 0, result.output
    assert "sc-1.zip" in result.output
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload[0]["download_name"] == "sc-1.zip"
    assert payload[0]["version"] == "1.0"


def test_list_without_matches() -> None:
    wiring = _Wiring(FakePackageService())

    result = invoke(wiring, "list", "site-content")

    assert result.exit_code == 0, result.output
    assert "No remote packages" in result.output


def test_core_errors_exit_with_status_1() -> None:
    class FailingService(FakePackageService):
        def list_packages(self, package_name: str) -> list[PackageRecord]:
            raise ProtocolError("Invalid response (500)", endpoint="http://x/ls", expected="200", actual="500")

    wiring = _Wiring(FailingService())

    result = invoke(wiring, "install", "site-content", "site-content-2.0.zip", "-v", "2.0")

    assert result.exit_code == 1
    assert "PROTOCOL_ERROR" in result.output
    assert wiring.service.closed


def test_out_of_range_port_exits_with_status_2() -> None:
    wiring = _Wiring(FakePackageService())

    result = invoke(wiring, "--port", "70000", "activate", "site-content-2.0.zip")

    assert result.exit_code == 2, result.output
    assert "CONFIG_ERROR" in result.output
    assert wiring.targets == []
    assert wiring.service.calls == []


def test_invalid_env_setting_exits_with_status_2(monkeypatch: pytest.MonkeyPatch) -> None:
    wiring = _Wiring(FakePackageService())
    state = wiring.state()
    state.settings = None
    monkeypatch.setenv("CRX_PKGSYNC_PORT", "not-a-port")

    result = runner.invoke(app, ["activate", "site-content-2.0.zip"], obj=state)

    assert result.exit_code == 2, result.output
    assert "CRX_PKGSYNC_" in result.output
    assert wiring.service.calls == []


def test_invalid_version_pattern_exits_with_status_2() -> None:
    wiring = _Wiring(FakePackageService())

    result = invoke(
        wiring,
        "install",
        "site-content",
        "site-content-2.0.zip",
        "--properties-file",
        "META-INF/vault/properties.xml",
        "--version-pattern",
        "no-group",
    )

    assert result.exit_code == 2
    assert wiring.service.calls == []
