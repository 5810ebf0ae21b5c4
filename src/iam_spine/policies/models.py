"""Pydantic models for IAM policy listings and policy versions.

The AWS CLI speaks PascalCase JSON. Models keep the wire names as aliases so
a resolved policy serializes back with exactly the fields the source sent,
plus ``Document`` and ``VersionId`` once its version has been fetched.
"""

from __future__ import annotations

from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    ValidationError,
    model_validator,
)

from iam_spine.core.errors import ParseError


class PolicyVersion(BaseModel):
    """``PolicyVersion`` block of ``aws iam get-policy-version``."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    document: Any = Field(alias="Document")
    version_id: str = Field(alias="VersionId")


class PolicyVersionResponse(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    policy_version: PolicyVersion = Field(alias="PolicyVersion")


class Policy(BaseModel):
    """A managed policy as listed by ``aws iam list-policies``.

    Only the fields the resolver relies on are declared; everything else the
    source returns (``PolicyId``, ``Path``, ``CreateDate``, ...) is kept as
    extra data and written out untouched.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    arn: str | None = Field(default=None, alias="Arn")
    default_version_id: str | None = Field(default=None, alias="DefaultVersionId")
    policy_name: str | None = Field(default=None, alias="PolicyName")
    document: Any = Field(default=None, alias="Document")
    version_id: str | None = Field(default=None, alias="VersionId")

    _source_keys: list[str] = PrivateAttr(default_factory=list)

    @model_validator(mode="wrap")
    @classmethod
    def _remember_key_order(cls, data: Any, handler: Any) -> Policy:
        policy = handler(data)
        if isinstance(data, dict):
            policy._source_keys = list(data)
        return policy

    @property
    def is_eligible(self) -> bool:
        """Both identifiers needed for a version lookup are present."""
        return bool(self.arn) and bool(self.default_version_id)

    @property
    def is_resolved(self) -> bool:
        return "version_id" in self.model_fields_set

    @property
    def display_key(self) -> str:
        """Key in the aggregate document; falls back to the ARN when unnamed."""
        if self.policy_name is not None:
            return self.policy_name
        return self.arn or ""

    def attach_version(self, version: PolicyVersion) -> Policy:
        """Copy the fetched document and version id onto this policy."""
        self.document = version.document
        self.version_id = version.version_id
        return self

    def to_output(self) -> dict[str, Any]:
        """Wire-format dict: source fields in the order they were listed,
        followed by any attached version data.
        """
        dumped = self.model_dump(by_alias=True, exclude_unset=True)
        ordered = {key: dumped.pop(key) for key in self._source_keys if key in dumped}
        ordered.update(dumped)
        return ordered


class PolicyListResponse(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    policies: list[Policy] = Field(alias="Policies")


def parse_policy_version(payload: str | bytes) -> PolicyVersion:
    """Decode a ``get-policy-version`` payload.

    Raises:
        ParseError: Payload is not JSON or lacks ``PolicyVersion.Document`` /
            ``PolicyVersion.VersionId``.
    """
    try:
        return PolicyVersionResponse.model_validate_json(payload).policy_version
    except ValidationError as e:
        raise ParseError(
            f"Malformed policy version payload: {e.error_count()} validation error(s)",
            cause=e,
        ) from e


def parse_policy_list(payload: str | bytes) -> list[Policy]:
    """Decode a ``list-policies`` payload into :class:`Policy` objects.

    Raises:
        ParseError: Payload is not JSON or lacks a ``Policies`` list.
    """
    try:
        return PolicyListResponse.model_validate_json(payload).policies
    except ValidationError as e:
        raise ParseError(
            f"Malformed policy list payload: {e.error_count()} validation error(s)",
            cause=e,
        ) from e
