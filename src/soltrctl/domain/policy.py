"""Container trust-policy documents (``containers-policy.json(5)``).

Two documents are produced:

- *permissive*: accept anything, with an explicit accept rule for the
  SoltrOS registry. Used transiently to bootstrap trust.
- *restrictive*: every configured repository is pinned to a sigstore
  signature check against a fixed public key, and the pulled image's
  identity must match its repository. Unlisted images are accepted or
  rejected depending on ``reject_unlisted``.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, ValidationError

INSECURE_ACCEPT_ANYTHING = "insecureAcceptAnything"
REJECT = "reject"
SIGSTORE_SIGNED = "sigstoreSigned"
MATCH_REPOSITORY = "matchRepository"


class PolicyMode(StrEnum):
    """Trust states this tool writes."""

    PERMISSIVE = "permissive"
    RESTRICTIVE = "restrictive"


class SignedIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = MATCH_REPOSITORY


class PolicyRequirement(BaseModel):
    """One rule in a requirement list."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    type: str
    key_path: str | None = Field(default=None, alias="keyPath")
    signed_identity: SignedIdentity | None = Field(default=None, alias="signedIdentity")


class TrustPolicyDocument(BaseModel):
    """Top-level policy document; ``default`` must be present and non-empty."""

    model_config = ConfigDict(frozen=True, extra="allow")

    default: list[PolicyRequirement] = Field(min_length=1)
    transports: dict[str, dict[str, list[PolicyRequirement]]] = Field(default_factory=dict)

    def to_json(self) -> str:
        """Serialize with the on-disk key names, 4-space indent, trailing newline."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        return json.dumps(data, indent=4) + "\n"


def _accept() -> PolicyRequirement:
    return PolicyRequirement(type=INSECURE_ACCEPT_ANYTHING)


def _daemon_transport() -> dict[str, list[PolicyRequirement]]:
    return {"": [_accept()]}


def build_permissive_policy(registry: str) -> TrustPolicyDocument:
    """Accept-everything policy scoped to *registry*."""
    return TrustPolicyDocument(
        default=[_accept()],
        transports={
            "docker": {registry: [_accept()]},
            "docker-daemon": _daemon_transport(),
        },
    )


def build_restrictive_policy(
    repositories: Sequence[str],
    key_path: str,
    *,
    reject_unlisted: bool = False,
) -> TrustPolicyDocument:
    """Signature-verified policy for *repositories*.

    Raises:
        ValueError: *repositories* is empty. A restrictive document with no
            signed repositories would leave the system unable to verify its
            own images.
    """
    if not repositories:
        msg = "At least one signed repository is required"
        raise ValueError(msg)
    signed = PolicyRequirement(
        type=SIGSTORE_SIGNED,
        key_path=key_path,
        signed_identity=SignedIdentity(),
    )
    return TrustPolicyDocument(
        default=[PolicyRequirement(type=REJECT) if reject_unlisted else _accept()],
        transports={
            "docker": {repo: [signed] for repo in repositories},
            "docker-daemon": _daemon_transport(),
        },
    )


def build_policy(
    mode: PolicyMode,
    *,
    registry: str,
    repositories: Sequence[str],
    key_path: str,
    reject_unlisted: bool = False,
) -> TrustPolicyDocument:
    """Dispatch to the builder for *mode*."""
    if mode is PolicyMode.PERMISSIVE:
        return build_permissive_policy(registry)
    return build_restrictive_policy(repositories, key_path, reject_unlisted=reject_unlisted)


def parse_policy(text: str) -> TrustPolicyDocument:
    """Parse and shape-check a policy document.

    Raises:
        ValueError: not valid JSON, not an object, or missing ``default``.
    """
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"Policy is not valid JSON: {exc}"
        raise ValueError(msg) from exc
    if not isinstance(raw, dict):
        msg = "Policy must be a JSON object"
        raise ValueError(msg)
    try:
        return TrustPolicyDocument.model_validate(raw)
    except ValidationError as exc:
        msg = f"Policy document is malformed: {exc.error_count()} error(s)"
        raise ValueError(msg) from exc


def detect_mode(document: TrustPolicyDocument) -> PolicyMode | None:
    """Classify a document. Returns None for documents this tool would not write."""
    docker = document.transports.get("docker", {})
    rules = [rule for reqs in docker.values() for rule in reqs]
    has_signed = any(rule.type == SIGSTORE_SIGNED for rule in rules)
    default_type = document.default[0].type

    if has_signed:
        return PolicyMode.RESTRICTIVE
    if default_type == INSECURE_ACCEPT_ANYTHING:
        return PolicyMode.PERMISSIVE
    return None
