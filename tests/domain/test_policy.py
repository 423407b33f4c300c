"""Tests for trust-policy document building, parsing, and classification."""

from __future__ import annotations

import json

import pytest

from soltrctl.config.models import SIGNED_REPOSITORIES, SOLTROS_REGISTRY
from soltrctl.domain.policy import (
    INSECURE_ACCEPT_ANYTHING,
    MATCH_REPOSITORY,
    REJECT,
    SIGSTORE_SIGNED,
    PolicyMode,
    build_permissive_policy,
    build_policy,
    build_restrictive_policy,
    detect_mode,
    parse_policy,
)

KEY = "/etc/pki/containers/soltros.pub"


class TestPermissive:
    def test_shape(self) -> None:
        data = json.loads(build_permissive_policy(SOLTROS_REGISTRY).to_json())
        assert data["default"] == [{"type": INSECURE_ACCEPT_ANYTHING}]
        assert data["transports"]["docker"] == {
            SOLTROS_REGISTRY: [{"type": INSECURE_ACCEPT_ANYTHING}]
        }
        assert data["transports"]["docker-daemon"] == {"": [{"type": INSECURE_ACCEPT_ANYTHING}]}

    def test_detected_as_permissive(self) -> None:
        assert detect_mode(build_permissive_policy(SOLTROS_REGISTRY)) is PolicyMode.PERMISSIVE


class TestRestrictive:
    def test_signed_rule_per_repository(self) -> None:
        data = json.loads(build_restrictive_policy(SIGNED_REPOSITORIES, KEY).to_json())
        docker = data["transports"]["docker"]
        assert set(docker) == set(SIGNED_REPOSITORIES)
        for rules in docker.values():
            assert rules == [
                {
                    "type": SIGSTORE_SIGNED,
                    "keyPath": KEY,
                    "signedIdentity": {"type": MATCH_REPOSITORY},
                }
            ]

    def test_default_accepts_unlisted(self) -> None:
        data = json.loads(build_restrictive_policy(SIGNED_REPOSITORIES, KEY).to_json())
        assert data["default"] == [{"type": INSECURE_ACCEPT_ANYTHING}]

    def test_reject_unlisted(self) -> None:
        doc = build_restrictive_policy(SIGNED_REPOSITORIES, KEY, reject_unlisted=True)
        assert doc.default[0].type == REJECT
        assert detect_mode(doc) is PolicyMode.RESTRICTIVE

    def test_requires_repositories(self) -> None:
        with pytest.raises(ValueError, match="At least one"):
            build_restrictive_policy([], KEY)

    def test_to_json_formatting(self) -> None:
        text = build_restrictive_policy(SIGNED_REPOSITORIES, KEY).to_json()
        assert text.endswith("}\n")
        assert '\n    "default"' in text


class TestBuildPolicy:
    def test_dispatches_on_mode(self) -> None:
        kwargs = {"registry": SOLTROS_REGISTRY, "repositories": SIGNED_REPOSITORIES, "key_path": KEY}
        assert detect_mode(build_policy(PolicyMode.PERMISSIVE, **kwargs)) is PolicyMode.PERMISSIVE
        assert detect_mode(build_policy(PolicyMode.RESTRICTIVE, **kwargs)) is PolicyMode.RESTRICTIVE


class TestParsePolicy:
    def test_round_trips_written_document(self) -> None:
        doc = build_restrictive_policy(SIGNED_REPOSITORIES, KEY)
        assert parse_policy(doc.to_json()) == doc

    @pytest.mark.parametrize(
        ("text", "message"),
        [
            ("{not json", "not valid JSON"),
            ("[]", "must be a JSON object"),
            ('{"transports": {}}', "malformed"),
            ('{"default": []}', "malformed"),
        ],
    )
    def test_rejects(self, text: str, message: str) -> None:
        with pytest.raises(ValueError, match=message):
            parse_policy(text)

    def test_keeps_unknown_rule_fields(self) -> None:
        text = json.dumps(
            {
                "default": [{"type": "reject"}],
                "transports": {"docker": {"quay.io": [{"type": "signedBy", "keyType": "GPGKeys"}]}},
            }
        )
        doc = parse_policy(text)
        assert detect_mode(doc) is None


def test_reject_default_without_signatures_is_unknown() -> None:
    doc = parse_policy('{"default": [{"type": "reject"}]}')
    assert detect_mode(doc) is None
