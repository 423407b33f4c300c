"""Package-manager verbs, argument binding, and identifier validation.

Every ``soltrctl nix`` verb declares its arity here. Binding is uniform:
a missing required argument is fatal, surplus arguments are dropped with
a warning and the first argument is used.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Literal

PACKAGE_NAME_RE = re.compile(r"^[A-Za-z0-9._-]+$")

Arity = Literal["none", "one", "optional"]


class Verb(StrEnum):
    """Closed set of package-manager verbs."""

    INSTALL = "install"
    REMOVE = "remove"
    LIST = "list"
    SEARCH = "search"
    INFO = "info"
    UPGRADE = "upgrade"
    UPDATE = "update"
    HISTORY = "history"
    ROLLBACK = "rollback"
    CLEAN = "clean"


@dataclass(frozen=True)
class VerbSpec:
    """Argument contract for a single verb."""

    verb: Verb
    arity: Arity
    placeholder: str = ""
    missing_message: str = ""
    summary: str = ""

    def usage(self, prog: str) -> str:
        """Usage line for this verb, e.g. ``Usage: soltrctl nix install <package>``."""
        if self.arity == "none":
            return f"Usage: {prog} {self.verb}"
        if self.arity == "optional":
            return f"Usage: {prog} {self.verb} [{self.placeholder}]"
        return f"Usage: {prog} {self.verb} <{self.placeholder}>"


VERB_SPECS: dict[Verb, VerbSpec] = {
    Verb.INSTALL: VerbSpec(
        Verb.INSTALL,
        "one",
        "package",
        "Package name is required",
        "Install a package from the configured flake",
    ),
    Verb.REMOVE: VerbSpec(
        Verb.REMOVE,
        "one",
        "identifier",
        "Package identifier (name, index, or path) is required",
        "Remove an installed package (by name, index, or store path)",
    ),
    Verb.LIST: VerbSpec(Verb.LIST, "none", summary="List installed packages"),
    Verb.SEARCH: VerbSpec(
        Verb.SEARCH,
        "one",
        "query",
        "Search query is required",
        "Search for packages in nixpkgs",
    ),
    Verb.INFO: VerbSpec(
        Verb.INFO,
        "one",
        "package",
        "Package name is required",
        "Show information about a package",
    ),
    Verb.UPGRADE: VerbSpec(Verb.UPGRADE, "none", summary="Upgrade all installed packages"),
    Verb.UPDATE: VerbSpec(Verb.UPDATE, "none", summary="Update the flake lock file"),
    Verb.HISTORY: VerbSpec(Verb.HISTORY, "none", summary="Show profile history"),
    Verb.ROLLBACK: VerbSpec(
        Verb.ROLLBACK,
        "optional",
        "generation",
        summary="Roll back to the previous (or given) generation",
    ),
    Verb.CLEAN: VerbSpec(Verb.CLEAN, "none", summary="Run garbage collection"),
}


class MissingArgumentError(ValueError):
    """A verb that needs an argument was invoked without one."""

    def __init__(self, spec: VerbSpec) -> None:
        super().__init__(spec.missing_message)
        self.spec = spec


@dataclass(frozen=True)
class Invocation:
    """A verb bound to its (at most one) argument."""

    verb: Verb
    argument: str | None = None
    ignored: tuple[str, ...] = field(default_factory=tuple)

    @property
    def surplus_warning(self) -> str | None:
        """Warning text naming the ignored extras, or None."""
        if not self.ignored:
            return None
        extras = " ".join(self.ignored)
        if VERB_SPECS[self.verb].arity == "none":
            return f"'{self.verb}' command takes no arguments, ignoring: {extras}"
        return f"Extra arguments ignored: {extras}"


def bind_arguments(verb: Verb, args: Sequence[str]) -> Invocation:
    """Bind positional *args* to *verb* according to its arity.

    Raises:
        MissingArgumentError: the verb requires an argument and none was given.
    """
    spec = VERB_SPECS[verb]
    if spec.arity == "none":
        return Invocation(verb, None, tuple(args))
    if not args:
        if spec.arity == "one":
            raise MissingArgumentError(spec)
        return Invocation(verb, None, ())
    return Invocation(verb, args[0], tuple(args[1:]))


def validate_package_name(name: str) -> None:
    """Check a package name before it is interpolated into a flake reference.

    Raises:
        ValueError: empty, contains whitespace, or uses characters
            outside ``[A-Za-z0-9._-]``.
    """
    if not name:
        msg = "Package name cannot be empty"
        raise ValueError(msg)
    if any(ch.isspace() for ch in name):
        msg = "Package name cannot contain spaces"
        raise ValueError(msg)
    if not PACKAGE_NAME_RE.fullmatch(name):
        msg = (
            "Invalid package name format. "
            "Use only letters, numbers, dots, dashes, and underscores"
        )
        raise ValueError(msg)


def flake_reference(flake_path: str, name: str) -> str:
    """Build ``<flake>#<name>`` after validating *name*."""
    validate_package_name(name)
    return f"{flake_path}#{name}"
