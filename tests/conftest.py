"""Shared pytest fixtures and test helpers for soltrctl tests."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Callable, Generator, Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

import pytest
import structlog
from click.testing import CliRunner

from soltrctl.config.settings import SoltrSettings
from soltrctl.infrastructure.capabilities import KNOWN_TOOLS, Capabilities
from soltrctl.infrastructure.host import Host
from soltrctl.services.telemetry import _active, disable_telemetry


class FakeRunner:
    """Records every command instead of running it.

    ``respond()`` registers canned results by argv prefix; the most recent
    matching registration wins. Unmatched commands succeed with no output.
    """

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.envs: list[dict[str, str]] = []
        self.captured: list[bool] = []
        self._responses: list[tuple[tuple[str, ...], dict[str, Any]]] = []

    def respond(
        self,
        *prefix: str,
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
        exc: BaseException | None = None,
    ) -> None:
        self._responses.append(
            (prefix, {"stdout": stdout, "stderr": stderr, "returncode": returncode, "exc": exc})
        )

    def fail(self, *prefix: str, returncode: int = 1, stderr: str = "") -> None:
        self.respond(*prefix, returncode=returncode, stderr=stderr)

    def run(
        self,
        argv: Sequence[str],
        *,
        capture: bool = False,
        env: Mapping[str, str] | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        args = list(argv)
        self.calls.append(args)
        self.envs.append(dict(env or {}))
        self.captured.append(capture)

        canned: dict[str, Any] = {"stdout": "", "stderr": "", "returncode": 0, "exc": None}
        for prefix, response in reversed(self._responses):
            if tuple(args[: len(prefix)]) == prefix:
                canned = response
                break

        if canned["exc"] is not None:
            raise canned["exc"]
        proc = subprocess.CompletedProcess(
            args, canned["returncode"], canned["stdout"], canned["stderr"]
        )
        if check and proc.returncode != 0:
            raise subprocess.CalledProcessError(
                proc.returncode, args, output=proc.stdout, stderr=proc.stderr
            )
        return proc

    def commands(self, *prefix: str) -> list[list[str]]:
        """Recorded calls whose argv starts with *prefix*."""
        return [c for c in self.calls if tuple(c[: len(prefix)]) == prefix]

    def ran(self, *prefix: str) -> bool:
        return bool(self.commands(*prefix))


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's config and legacy env vars out of every test."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for name in ("SOLTRCTL_CONFIG", "NIX_FLAKE_PATH", "QUIET", "VERBOSE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("soltrctl.config.discovery.SYSTEM_CONFIG_DIR", tmp_path / "etc-soltrctl")


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """CLI invocations reconfigure the root logger around CliRunner streams."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    soltr_level = logging.getLogger("soltrctl").level
    yield
    root.handlers = handlers
    root.setLevel(level)
    logging.getLogger("soltrctl").setLevel(soltr_level)
    structlog.contextvars.clear_contextvars()


@pytest.fixture(autouse=True)
def _reset_telemetry() -> Generator[None]:
    """``-v`` on the CLI enables telemetry for the whole thread."""
    yield
    disable_telemetry()
    _active.set(None)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def paths(tmp_path: Path) -> dict[str, Path]:
    """Host file locations, all under tmp_path."""
    containers = tmp_path / "containers"
    containers.mkdir()
    return {
        "flake": tmp_path / "flake",
        "profile": tmp_path / "profile",
        "local_share": tmp_path / "local-share",
        "policy": containers / "policy.json",
        "marker": containers / ".soltros-trust-relaxed",
        "os_release": tmp_path / "os-release",
    }


@pytest.fixture
def settings(paths: dict[str, Path]) -> SoltrSettings:
    """Settings pointing every host path into tmp_path."""
    return SoltrSettings.from_cli(
        nix={"flake_path": paths["flake"], "profile_path": paths["profile"]},
        desktop={"local_share": paths["local_share"]},
        policy={"path": paths["policy"], "marker_path": paths["marker"]},
        system={"os_release_path": paths["os_release"]},
    )


@pytest.fixture
def make_host(
    settings: SoltrSettings, fake_runner: FakeRunner
) -> Callable[..., Host]:
    """Factory for a Host around the fake runner.

    All known tools are available and the process runs as root unless
    overridden.
    """

    def _make(
        *,
        tools: Iterable[str] = KNOWN_TOOLS,
        env: Mapping[str, str] | None = None,
        is_root: bool = True,
        plugins: bool = False,
        host_settings: SoltrSettings | None = None,
    ) -> Host:
        host = Host(
            host_settings or settings,
            runner=fake_runner,  # type: ignore[arg-type]
            capabilities=Capabilities(frozenset(tools)),
            env=env if env is not None else {},
            is_root=is_root,
        )
        if plugins:
            host.init_plugins(discover=False)
        return host

    return _make


@pytest.fixture
def host(make_host: Callable[..., Host]) -> Host:
    return make_host()


@pytest.fixture
def cli_env(
    paths: dict[str, Path],
    fake_runner: FakeRunner,
    monkeypatch: pytest.MonkeyPatch,
) -> FakeRunner:
    """Route the real CLI through the fake runner with every tool available.

    Host paths are set through ``SOLTRCTL_*`` env vars. Returns the runner
    so tests can register responses and inspect calls.
    """
    monkeypatch.setenv("SOLTRCTL_NIX__FLAKE_PATH", str(paths["flake"]))
    monkeypatch.setenv("SOLTRCTL_NIX__PROFILE_PATH", str(paths["profile"]))
    monkeypatch.setenv("SOLTRCTL_DESKTOP__LOCAL_SHARE", str(paths["local_share"]))
    monkeypatch.setenv("SOLTRCTL_POLICY__PATH", str(paths["policy"]))
    monkeypatch.setenv("SOLTRCTL_POLICY__MARKER_PATH", str(paths["marker"]))
    monkeypatch.setenv("SOLTRCTL_SYSTEM__OS_RELEASE_PATH", str(paths["os_release"]))
    monkeypatch.setenv("SOLTRCTL_SYSTEM__USE_SUDO", "false")
    set_tools(monkeypatch, KNOWN_TOOLS)
    monkeypatch.setattr("soltrctl.infrastructure.host.CommandRunner", lambda: fake_runner)
    return fake_runner


def set_tools(monkeypatch: pytest.MonkeyPatch, tools: Iterable[str]) -> None:
    """Make ``Capabilities.discover()`` report exactly *tools*."""
    caps = Capabilities(frozenset(tools))
    monkeypatch.setattr(Capabilities, "discover", lambda *args, **kwargs: caps)


@pytest.fixture
def tools(monkeypatch: pytest.MonkeyPatch) -> Callable[[Iterable[str]], None]:
    """Override the tools the CLI discovers (use after ``cli_env``)."""
    return lambda names: set_tools(monkeypatch, names)
