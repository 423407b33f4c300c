"""Tests for verb arity binding and package-name validation."""

from __future__ import annotations

import pytest

from soltrctl.domain.packages import (
    VERB_SPECS,
    MissingArgumentError,
    Verb,
    bind_arguments,
    flake_reference,
    validate_package_name,
)

ONE_ARG_VERBS = [v for v, spec in VERB_SPECS.items() if spec.arity == "one"]
NO_ARG_VERBS = [v for v, spec in VERB_SPECS.items() if spec.arity == "none"]


class TestVerbSpecs:
    def test_every_verb_has_a_spec(self) -> None:
        assert set(VERB_SPECS) == set(Verb)

    def test_arity_table(self) -> None:
        assert set(ONE_ARG_VERBS) == {Verb.INSTALL, Verb.REMOVE, Verb.SEARCH, Verb.INFO}
        assert VERB_SPECS[Verb.ROLLBACK].arity == "optional"
        assert set(NO_ARG_VERBS) == {
            Verb.LIST,
            Verb.UPGRADE,
            Verb.UPDATE,
            Verb.HISTORY,
            Verb.CLEAN,
        }

    @pytest.mark.parametrize("verb", list(Verb))
    def test_usage_names_the_verb(self, verb: Verb) -> None:
        usage = VERB_SPECS[verb].usage("soltrctl nix")
        assert usage.startswith(f"Usage: soltrctl nix {verb.value}")

    def test_usage_placeholders(self) -> None:
        assert VERB_SPECS[Verb.INSTALL].usage("p") == "Usage: p install <package>"
        assert VERB_SPECS[Verb.ROLLBACK].usage("p") == "Usage: p rollback [generation]"
        assert VERB_SPECS[Verb.LIST].usage("p") == "Usage: p list"


class TestBindArguments:
    @pytest.mark.parametrize("verb", ONE_ARG_VERBS)
    def test_missing_required_argument(self, verb: Verb) -> None:
        with pytest.raises(MissingArgumentError) as exc_info:
            bind_arguments(verb, [])
        assert exc_info.value.spec.verb is verb
        assert str(exc_info.value)

    @pytest.mark.parametrize("verb", ONE_ARG_VERBS)
    def test_surplus_uses_first_argument(self, verb: Verb) -> None:
        invocation = bind_arguments(verb, ["first", "a", "b"])
        assert invocation.argument == "first"
        assert invocation.ignored == ("a", "b")
        assert invocation.surplus_warning == "Extra arguments ignored: a b"

    @pytest.mark.parametrize("verb", NO_ARG_VERBS)
    def test_no_arg_verb_ignores_everything(self, verb: Verb) -> None:
        invocation = bind_arguments(verb, ["a", "b"])
        assert invocation.argument is None
        assert invocation.surplus_warning == (
            f"'{verb.value}' command takes no arguments, ignoring: a b"
        )

    def test_exact_arity_has_no_warning(self) -> None:
        assert bind_arguments(Verb.INSTALL, ["firefox"]).surplus_warning is None
        assert bind_arguments(Verb.LIST, []).surplus_warning is None

    def test_rollback_optional(self) -> None:
        assert bind_arguments(Verb.ROLLBACK, []).argument is None
        invocation = bind_arguments(Verb.ROLLBACK, ["42", "43"])
        assert invocation.argument == "42"
        assert invocation.ignored == ("43",)


class TestValidatePackageName:
    @pytest.mark.parametrize("name", ["firefox", "nodejs_22", "python3.12", "gnome-tweaks"])
    def test_valid(self, name: str) -> None:
        validate_package_name(name)

    @pytest.mark.parametrize(
        ("name", "message"),
        [
            ("", "cannot be empty"),
            ("fire fox", "cannot contain spaces"),
            ("fire\tfox", "cannot contain spaces"),
            ("../etc/passwd", "Invalid package name format"),
            ("nixpkgs#firefox", "Invalid package name format"),
            ("foo;rm", "Invalid package name format"),
        ],
    )
    def test_invalid(self, name: str, message: str) -> None:
        with pytest.raises(ValueError, match=message):
            validate_package_name(name)

    def test_flake_reference(self) -> None:
        assert flake_reference("/home/u/flake", "firefox") == "/home/u/flake#firefox"

    def test_flake_reference_validates(self) -> None:
        with pytest.raises(ValueError):
            flake_reference("/home/u/flake", "a/b")
