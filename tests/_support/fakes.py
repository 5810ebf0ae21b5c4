"""In-memory collaborators for exercising the resolution engine without the AWS CLI."""

from __future__ import annotations

import json
from collections import defaultdict
from typing import Any

from iam_spine.policies.models import Policy


# =============================================================================
# Collaborator fakes
# =============================================================================


def make_policy(name: str, *, arn: str | None = "auto", version: str | None = "v1", **extra: Any) -> Policy:
    """Listing entry as returned by ``aws iam list-policies``."""
    data: dict[str, Any] = {"PolicyName": name, "PolicyId": f"ANPA{name.upper()}", "Path": "/"}
    if arn == "auto":
        arn = f"arn:aws:iam::aws:policy/{name}"
    if arn is not None:
        data["Arn"] = arn
    if version is not None:
        data["DefaultVersionId"] = version
    data.update(extra)
    return Policy.model_validate(data)


def version_payload(arn: str, version_id: str) -> str:
    """A well-formed ``get-policy-version`` payload for ``arn``."""
    return json.dumps(
        {
            "PolicyVersion": {
                "Document": {
                    "Version": "2012-10-17",
                    "Statement": [{"Effect": "Allow", "Action": "*", "Resource": arn}],
                },
                "VersionId": version_id,
                "IsDefaultVersion": True,
            }
        }
    )


class FakeSource:
    """Policy source serving a fixed listing."""

    def __init__(self, policies: list[Policy] | None = None, error: Exception | None = None):
        self._policies = policies or []
        self._error = error
        self.calls = 0

    async def list_policies(self) -> list[Policy]:
        self.calls += 1
        if self._error is not None:
            raise self._error
        return [p.model_copy(deep=True) for p in self._policies]


class FakeLookup:
    """Version lookup with per-ARN scripted failures.

    ``failures[arn]`` is how many calls fail before the lookup succeeds;
    ``payloads[arn]`` overrides the returned payload.
    """

    def __init__(
        self,
        failures: dict[str, int] | None = None,
        payloads: dict[str, str] | None = None,
    ):
        self.failures = failures or {}
        self.payloads = payloads or {}
        self.calls: dict[str, int] = defaultdict(int)

    async def get_policy_version(self, arn: str, version_id: str) -> str:
        self.calls[arn] += 1
        if self.calls[arn] <= self.failures.get(arn, 0):
            raise ConnectionError(f"throttled: {arn}")
        if arn in self.payloads:
            return self.payloads[arn]
        return version_payload(arn, version_id)


class RecordingReporter:
    """Status reporter that keeps every line."""

    def __init__(self) -> None:
        self.lines: list[tuple[str, str]] = []

    def info(self, message: str) -> None:
        self.lines.append(("info", message))

    def success(self, message: str) -> None:
        self.lines.append(("success", message))

    def error(self, message: str) -> None:
        self.lines.append(("error", message))

    def messages(self, kind: str) -> list[str]:
        return [m for k, m in self.lines if k == kind]

