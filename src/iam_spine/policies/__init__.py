"""IAM policy resolution on top of the iam-spine execution engine.

::

    aws_cli.py     AwsCliPolicySource / AwsCliVersionLookup (subprocess)
    models.py      Policy, PolicyVersion (pydantic, wire aliases)
    protocols.py   PolicySource, VersionLookup, ProgressSink, StatusReporter, OutputSink
    resolver.py    PolicyResolver: one policy: lookup, parse, attach
    pipeline.py    ResolutionPipeline: list, schedule, aggregate, emit
    progress.py    RichProgress / CountingProgress
    reporting.py   ConsoleReporter / NullReporter
    output.py      JsonFileOutput / StdoutOutput
"""

from iam_spine.policies.models import Policy, PolicyVersion
from iam_spine.policies.pipeline import (
    PipelineReport,
    ResolutionPipeline,
    aggregate_policies,
    eligible_policies,
)
from iam_spine.policies.resolver import PolicyResolver

__all__ = [
    "Policy",
    "PolicyVersion",
    "PipelineReport",
    "PolicyResolver",
    "ResolutionPipeline",
    "aggregate_policies",
    "eligible_policies",
]
