"""AWS CLI collaborators: the policy source and the version lookup.

Both shell out to the ``aws`` executable with
``asyncio.create_subprocess_exec`` so lookups suspend instead of blocking the
event loop. Credentials, region and profile come from the CLI's own
configuration chain.

    aws iam list-policies --scope AWS --output json
    aws iam get-policy-version --policy-arn <arn> --version-id <id> --output json
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from iam_spine.core.errors import (
    MissingConfigError,
    NetworkError,
    SourceUnavailableError,
)
from iam_spine.core.logging import get_logger
from iam_spine.policies.models import Policy, parse_policy_list

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommandOutput:
    returncode: int
    stdout: str
    stderr: str

    @property
    def failed(self) -> bool:
        return self.returncode != 0


@dataclass
class AwsCli:
    """Thin async runner for ``aws`` sub-commands."""

    executable: str = "aws"

    async def run(self, *args: str) -> CommandOutput:
        cmd = [self.executable, *args, "--output", "json"]
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise MissingConfigError(
                "aws_executable",
                f"AWS CLI not found: {self.executable} ({exc})",
            ) from exc

        stdout, stderr = await process.communicate()
        output = CommandOutput(
            returncode=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )
        logger.debug(
            "aws_cli.exited",
            command=" ".join(cmd[:3]),
            returncode=output.returncode,
            stdout_bytes=len(stdout),
        )
        return output


class AwsCliPolicySource:
    """Lists managed policies with ``aws iam list-policies``.

    Any failure here is fatal to the run and is not retried.
    """

    def __init__(self, cli: AwsCli | None = None, scope: str = "AWS") -> None:
        self.cli = cli or AwsCli()
        self.scope = scope

    async def list_policies(self) -> list[Policy]:
        command = f"aws iam list-policies --scope {self.scope}"
        output = await self.cli.run("iam", "list-policies", "--scope", self.scope)

        if output.failed:
            raise SourceUnavailableError(
                f"Listing policies failed (exit {output.returncode}): {output.stderr.strip()}"
            ).with_context(command=command)
        if not output.stdout.strip() and output.stderr.strip():
            raise SourceUnavailableError(
                f"Listing policies returned no data: {output.stderr.strip()}"
            ).with_context(command=command)

        policies = parse_policy_list(output.stdout)
        logger.info("aws_cli.policies_listed", scope=self.scope, count=len(policies))
        return policies


class AwsCliVersionLookup:
    """Fetches one policy version with ``aws iam get-policy-version``.

    Returns the raw payload; decoding is the resolver's job so that a
    malformed payload is never mistaken for a failed (retryable) call.
    """

    def __init__(self, cli: AwsCli | None = None) -> None:
        self.cli = cli or AwsCli()

    async def get_policy_version(self, arn: str, version_id: str) -> str:
        output = await self.cli.run(
            "iam", "get-policy-version",
            "--policy-arn", arn,
            "--version-id", version_id,
        )
        if output.failed:
            raise NetworkError(
                f"Failed to get ARN {arn}. {output.stderr.strip()}"
            ).with_context(arn=arn, version_id=version_id)
        return output.stdout


__all__ = [
    "AwsCli",
    "AwsCliPolicySource",
    "AwsCliVersionLookup",
    "CommandOutput",
]
