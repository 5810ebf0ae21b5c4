"""
iam-spine - resolve AWS managed IAM policy documents in bulk.

Lists every managed policy, fetches each default policy version through the
AWS CLI with bounded concurrency and jittered retries, and emits a single
document keyed by policy name.
"""

__version__ = "0.1.0"
