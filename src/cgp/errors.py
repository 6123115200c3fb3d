"""Gateway error hierarchy.

Every failure the gateway reports is a GatewayError subclass. The class
name doubles as a stable error code, so events and CLI output can carry
the code without depending on message wording.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for all gateway failures."""

    @property
    def code(self) -> str:
        return type(self).__name__


# ---------------------------------------------------------------------------
# Operator registration
# ---------------------------------------------------------------------------

class InvalidOperators(GatewayError):
    """Operator set is empty, unsorted, duplicated, zero-first, or not recognised."""


class InvalidWeights(GatewayError):
    """Weights do not line up with the operators they belong to."""


class InvalidThreshold(GatewayError):
    """Threshold is zero or unreachable with the given weights."""


class DuplicateOperators(GatewayError):
    """The operator-set hash is already registered."""


class ArithmeticOverflow(GatewayError):
    """Epoch counter cannot be incremented."""


# ---------------------------------------------------------------------------
# Proof validation
# ---------------------------------------------------------------------------

class FailedToDecodeProof(GatewayError):
    """Proof bytes are not a valid ABI-encoded proof tuple."""


class InvalidProof(GatewayError):
    """Proof signatures do not authorise the message."""


class SignatureError(GatewayError):
    """Base class for weighted-signature validation failures."""


class InvalidSignature(SignatureError):
    """Signature is malformed or the signer cannot be recovered."""


class MalformedSigners(SignatureError):
    """A recovered signer is not part of the operator set."""


class DuplicateSigners(SignatureError):
    """The same operator signed more than once."""


class LowSignaturesWeight(SignatureError):
    """Accumulated signer weight never reached the threshold."""


# ---------------------------------------------------------------------------
# Batch execution
# ---------------------------------------------------------------------------

class WrongChainId(GatewayError):
    """Batch targets a different chain."""


class CommandIdsLengthMismatch(GatewayError):
    """Command ids, labels, and calls are not the same length."""


class TooManyCalls(GatewayError):
    """Batch exceeds the configured size cap."""


class BadOrigin(GatewayError):
    """Caller origin is not allowed to perform the operation."""


# ---------------------------------------------------------------------------
# Approval and forwarding
# ---------------------------------------------------------------------------

class ContractCallNotApproved(GatewayError):
    """No approval exists for the forwarded call context."""


class ErrorForwarding(GatewayError):
    """The call forwarder failed to deliver an approved call."""


class CannotLookup(GatewayError):
    """Forwarded call bytes could not be resolved to a handler."""
