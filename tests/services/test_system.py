"""Tests for SystemService."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from soltrctl.config.settings import SoltrSettings
from soltrctl.domain.images import Channel
from soltrctl.domain.policy import PolicyMode
from soltrctl.infrastructure.host import Host
from soltrctl.services.policy import TrustPolicyWriter, render_policy
from soltrctl.services.system import SystemService


def _step(result: Any, name: str) -> dict[str, Any]:
    return next(s for s in result.data["steps"] if s["name"] == name)


class TestUpdate:
    def test_runs_every_step(
        self, host: Host, fake_runner: Any, paths: dict[str, Path]
    ) -> None:
        paths["flake"].mkdir()
        result = SystemService(host).update()
        assert result.ok
        assert result.warnings == []
        assert fake_runner.calls == [
            ["bootc", "upgrade"],
            ["flatpak", "update", "-y"],
            ["distrobox", "upgrade", "--all"],
            ["nix", "flake", "update", "--flake", str(paths["flake"])],
            ["nix", "profile", "upgrade", ".*"],
        ]

    def test_continues_after_failure(self, host: Host, fake_runner: Any) -> None:
        fake_runner.fail("flatpak")
        result = SystemService(host).update()
        assert result.ok
        assert _step(result, "flatpak")["ok"] is False
        assert _step(result, "distrobox")["ok"] is True
        assert fake_runner.ran("nix", "profile", "upgrade")
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("flatpak: ")

    def test_skips_missing_tools(self, make_host: Callable[..., Host], fake_runner: Any) -> None:
        result = SystemService(make_host(tools={"flatpak"})).update()
        assert fake_runner.calls == [["flatpak", "update", "-y"]]
        assert _step(result, "bootc")["skipped"] is True
        assert _step(result, "nix")["skipped"] is True

    def test_skips_flake_update_without_flake_dir(self, host: Host) -> None:
        result = SystemService(host).update()
        assert _step(result, "nix-flake")["skipped"] is True
        assert _step(result, "nix-profile")["ok"] is True

    def test_relaxed_trust_upgrades_under_restrictive_policy(
        self,
        host: Host,
        fake_runner: Any,
        settings: SoltrSettings,
        paths: dict[str, Path],
    ) -> None:
        permissive = render_policy(PolicyMode.PERMISSIVE, settings.policy)
        paths["policy"].write_text(permissive)
        paths["marker"].touch()
        seen: list[bool] = []
        original_run = fake_runner.run

        def run(argv: Any, **kwargs: Any) -> Any:
            if argv[:2] == ["bootc", "upgrade"]:
                seen.append(paths["marker"].exists())
            return original_run(argv, **kwargs)

        fake_runner.run = run
        result = SystemService(host).update()
        assert _step(result, "bootc")["ok"] is True
        assert seen == [False]
        assert paths["policy"].read_text() == permissive
        assert paths["marker"].exists()

    def test_relaxed_trust_without_write_access_skips_upgrade(
        self,
        host: Host,
        fake_runner: Any,
        settings: SoltrSettings,
        paths: dict[str, Path],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        permissive = render_policy(PolicyMode.PERMISSIVE, settings.policy)
        paths["policy"].write_text(permissive)
        paths["marker"].touch()
        monkeypatch.setattr(TrustPolicyWriter, "writable", lambda self: False)
        result = SystemService(host).update()
        assert result.ok
        assert _step(result, "bootc")["ok"] is False
        assert fake_runner.commands("bootc") == []
        assert any("sudo soltrctl system update" in w for w in result.warnings)
        assert _step(result, "flatpak")["ok"] is True
        assert paths["policy"].read_text() == permissive
        assert paths["marker"].exists()


class TestClean:
    def test_steps(self, make_host: Callable[..., Host], fake_runner: Any) -> None:
        result = SystemService(make_host(is_root=False)).clean()
        assert result.ok
        assert fake_runner.calls == [
            ["sudo", "rpm-ostree", "cleanup", "-p"],
            ["flatpak", "uninstall", "--unused", "-y"],
            ["sudo", "journalctl", "--vacuum-time=7d"],
        ]

    def test_failure_is_warning(self, host: Host, fake_runner: Any) -> None:
        fake_runner.fail("rpm-ostree")
        result = SystemService(host).clean()
        assert result.ok
        assert _step(result, "rpm-ostree")["ok"] is False
        assert fake_runner.ran("journalctl")


class TestRebase:
    @pytest.mark.parametrize(
        ("channel", "desktop", "image"),
        [
            (Channel.STABLE, "kde", "ghcr.io/soltros/soltros-os_lts:latest"),
            (Channel.STABLE, "Plasma", "ghcr.io/soltros/soltros-os_lts:latest"),
            (Channel.UNSTABLE, "kde", "ghcr.io/soltros/soltros-os:latest"),
            (Channel.UNSTABLE, "gnome", "ghcr.io/soltros/soltros-os-unstable_gnome:latest"),
            (Channel.STABLE, "cosmic", "ghcr.io/soltros/soltros-lts_cosmic:latest"),
        ],
    )
    def test_switches_image(
        self, host: Host, fake_runner: Any, channel: Channel, desktop: str, image: str
    ) -> None:
        result = SystemService(host).rebase(channel, desktop)
        assert result.ok
        assert result.data["image"] == image
        assert result.data["reboot_required"] is True
        assert fake_runner.calls[0] == ["bootc", "switch", image]

    def test_installs_os_release(
        self, host: Host, fake_runner: Any, paths: dict[str, Path]
    ) -> None:
        paths["os_release"].write_text('NAME="Fedora"\n')
        SystemService(host).rebase(Channel.STABLE, "kde")
        target = str(paths["os_release"])
        assert fake_runner.commands("cp") == [["cp", "-p", target, f"{target}.bak"]]
        installs = fake_runner.commands("install")
        assert len(installs) == 1
        assert installs[0][:7] == ["install", "-o", "root", "-g", "root", "-m", "0644"]
        assert installs[0][-1] == target
        assert fake_runner.commands("restorecon") == [["restorecon", target]]

    def test_symlinked_os_release_replaced(
        self, host: Host, fake_runner: Any, paths: dict[str, Path], tmp_path: Path
    ) -> None:
        real = tmp_path / "usr-os-release"
        real.write_text('NAME="Fedora"\n')
        paths["os_release"].symlink_to(real)
        SystemService(host).rebase(Channel.STABLE, "kde")
        assert fake_runner.commands("rm") == [["rm", "-f", str(paths["os_release"])]]

    def test_unknown_desktop(self, host: Host, fake_runner: Any) -> None:
        result = SystemService(host).rebase(Channel.STABLE, "xfce")
        assert result.error is not None
        assert result.error.code == "VALIDATION_ERROR"
        assert "xfce" in result.error.message
        assert fake_runner.calls == []

    def test_missing_bootc(self, make_host: Callable[..., Host]) -> None:
        result = SystemService(make_host(tools=set())).rebase(Channel.STABLE, "kde")
        assert result.error is not None
        assert result.error.code == "MISSING_TOOL"

    def test_switch_failure(self, host: Host, fake_runner: Any) -> None:
        fake_runner.fail("bootc", "switch")
        result = SystemService(host).rebase(Channel.UNSTABLE, "kde")
        assert result.error is not None
        assert result.error.code == "EXTERNAL_COMMAND_FAILED"
        assert result.error.detail["hint"] == "Check your network connection and retry"
        assert not fake_runner.ran("install")

    def test_os_release_failure_is_warning(self, host: Host, fake_runner: Any) -> None:
        fake_runner.fail("install")
        result = SystemService(host).rebase(Channel.STABLE, "kde")
        assert result.ok
        assert len(result.warnings) == 1
        assert "Could not update" in result.warnings[0]


class TestContainers:
    def test_lists(self, host: Host, fake_runner: Any) -> None:
        fake_runner.respond("distrobox", "list", stdout="ID | NAME\n")
        result = SystemService(host).containers()
        assert result.ok
        assert result.data["output"] == "ID | NAME\n"

    def test_toolbox(self, host: Host, fake_runner: Any) -> None:
        SystemService(host).containers("toolbox")
        assert fake_runner.calls == [["toolbox", "list"]]

    def test_unknown_tool(self, host: Host) -> None:
        result = SystemService(host).containers("docker")
        assert result.error is not None
        assert result.error.code == "VALIDATION_ERROR"

    def test_missing_tool(self, make_host: Callable[..., Host]) -> None:
        result = SystemService(make_host(tools=set())).containers()
        assert result.error is not None
        assert result.error.code == "MISSING_TOOL"
