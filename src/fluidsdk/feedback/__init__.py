"""
Feedback attestation: record building, authorization, hashing and submission.
"""

from fluidsdk.feedback.auth import FeedbackAuth, decode_feedback_auth, sign_feedback_auth
from fluidsdk.feedback.hashing import ZERO_HASH, canonical_json, hash_record
from fluidsdk.feedback.nonce import IndexResolution, NonceResolver
from fluidsdk.feedback.pipeline import FeedbackPipeline, FeedbackResult, FeedbackStage
from fluidsdk.feedback.record import build_feedback_record

__all__ = [
    "FeedbackAuth",
    "FeedbackPipeline",
    "FeedbackResult",
    "FeedbackStage",
    "IndexResolution",
    "NonceResolver",
    "ZERO_HASH",
    "build_feedback_record",
    "canonical_json",
    "decode_feedback_auth",
    "hash_record",
    "sign_feedback_auth",
]
