"""Tests for the built-in desktop refresh plugin."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from soltrctl.infrastructure.host import Host
from soltrctl.plugins.builtins.desktop import DesktopRefreshPlugin


def test_returns_refresh_report(make_host: Callable[..., Host], fake_runner: Any) -> None:
    host = make_host(env={"XDG_CURRENT_DESKTOP": "KDE"})
    report = DesktopRefreshPlugin(host).post_profile_change(op="install", target="firefox")
    assert report is not None
    assert report["desktop"] == "kde"
    assert fake_runner.ran("kbuildsycoca6")


def test_dispatched_through_host(make_host: Callable[..., Host], fake_runner: Any) -> None:
    host = make_host(plugins=True)
    assert host.plugin_manager is not None
    reports = host.plugin_manager.hook.post_profile_change(op="remove", target="firefox")
    assert len(reports) == 1
    assert fake_runner.commands("xdg-desktop-menu") == [["xdg-desktop-menu", "forceupdate"]]


def test_ignores_policy_changes(make_host: Callable[..., Host], fake_runner: Any) -> None:
    host = make_host(plugins=True)
    assert host.plugin_manager is not None
    host.plugin_manager.hook.post_policy_change(mode="permissive", backup_path=None)
    assert fake_runner.calls == []
