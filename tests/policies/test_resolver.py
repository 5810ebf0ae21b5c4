"""Tests for PolicyResolver: one policy: lookup with retry, parse, attach."""

from __future__ import annotations

import pytest

from iam_spine.core.errors import LookupFailedError, ParseError
from iam_spine.core.result import Err, Ok
from iam_spine.execution.retry import NoRetry
from iam_spine.policies.progress import CountingProgress
from iam_spine.policies.resolver import PolicyResolver
from tests._support.fakes import FakeLookup, make_policy


def _resolver(lookup, strategy, reporter=None, progress=None):
    return PolicyResolver(
        lookup,
        strategy=strategy,
        progress=progress or CountingProgress(),
        reporter=reporter,
    )


class TestSuccess:
    @pytest.mark.asyncio
    async def test_attaches_document(self, no_wait_strategy):
        policy = make_policy("ReadOnlyAccess", version="v9")
        lookup = FakeLookup()
        result = await _resolver(lookup, no_wait_strategy).resolve(policy)

        assert isinstance(result, Ok)
        assert result.value is policy
        assert policy.version_id == "v9"
        assert policy.document["Version"] == "2012-10-17"
        assert lookup.calls[policy.arn] == 1

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failures(self, no_wait_strategy, reporter):
        policy = make_policy("A")
        lookup = FakeLookup(failures={policy.arn: 3})
        result = await _resolver(lookup, no_wait_strategy, reporter).resolve(policy)

        assert result.is_ok()
        assert lookup.calls[policy.arn] == 4
        assert reporter.messages("info") == ["Retrying (1)...", "Retrying (2)...", "Retrying (3)..."]


class TestLookupFailure:
    @pytest.mark.asyncio
    async def test_gives_up_after_four_attempts(self, no_wait_strategy, reporter):
        policy = make_policy("B")
        lookup = FakeLookup(failures={policy.arn: 4})
        result = await _resolver(lookup, no_wait_strategy, reporter).resolve(policy)

        assert isinstance(result, Err)
        assert isinstance(result.error, LookupFailedError)
        assert result.error.attempts == 4
        assert result.error.context.policy_name == "B"
        assert isinstance(result.error.cause, ConnectionError)
        assert lookup.calls[policy.arn] == 4
        assert (
            "Failed to get policy B even after 3 attempts. Skipping it."
            in reporter.messages("error")
        )

    @pytest.mark.asyncio
    async def test_final_error_reported_before_giving_up(self, no_wait_strategy, reporter):
        policy = make_policy("B")
        lookup = FakeLookup(failures={policy.arn: 4})
        await _resolver(lookup, no_wait_strategy, reporter).resolve(policy)

        errors = reporter.messages("error")
        assert errors.count(f"throttled: {policy.arn}") == 4
        assert errors[-2:] == [
            f"throttled: {policy.arn}",
            "Failed to get policy B even after 3 attempts. Skipping it.",
        ]

    @pytest.mark.asyncio
    async def test_record_untouched_on_failure(self, no_wait_strategy):
        policy = make_policy("B")
        await _resolver(FakeLookup(failures={policy.arn: 10}), no_wait_strategy).resolve(policy)
        assert policy.is_resolved is False
        assert "Document" not in policy.to_output()
        assert "VersionId" not in policy.to_output()

    @pytest.mark.asyncio
    async def test_no_retry_strategy(self, reporter):
        policy = make_policy("B")
        lookup = FakeLookup(failures={policy.arn: 1})
        result = await _resolver(lookup, NoRetry(), reporter).resolve(policy)
        assert result.is_err()
        assert lookup.calls[policy.arn] == 1
        assert reporter.messages("info") == []


class TestParseFailure:
    @pytest.mark.asyncio
    async def test_malformed_payload_not_retried(self, no_wait_strategy, reporter):
        policy = make_policy("C")
        lookup = FakeLookup(payloads={policy.arn: "<html>Rate exceeded</html>"})
        result = await _resolver(lookup, no_wait_strategy, reporter).resolve(policy)

        assert isinstance(result, Err)
        assert isinstance(result.error, ParseError)
        assert result.error.context.policy_name == "C"
        assert lookup.calls[policy.arn] == 1
        errors = reporter.messages("error")
        assert "Failed to parse policy C to JSON." in errors
        assert "<html>Rate exceeded</html>" in errors
        assert policy.is_resolved is False


class TestProgress:
    @pytest.mark.asyncio
    async def test_advances_on_every_outcome(self, no_wait_strategy):
        ok, failing, malformed = make_policy("A"), make_policy("B"), make_policy("C")
        lookup = FakeLookup(
            failures={failing.arn: 99},
            payloads={malformed.arn: "{"},
        )
        progress = CountingProgress()
        resolver = _resolver(lookup, no_wait_strategy, progress=progress)
        for policy in (ok, failing, malformed):
            await resolver.task_for(policy)()
        assert progress.current == 3

    @pytest.mark.asyncio
    async def test_advances_even_if_lookup_escapes(self, no_wait_strategy):
        class Abort(BaseException):
            pass

        class Exploding:
            async def get_policy_version(self, arn, version_id):
                raise Abort

        progress = CountingProgress()
        resolver = _resolver(Exploding(), no_wait_strategy, progress=progress)
        with pytest.raises(Abort):
            await resolver.resolve(make_policy("A"))
        assert progress.current == 1
