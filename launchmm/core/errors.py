"""Exception types for the launch engines.

Raised before any state mutation where the failure is detectable up front;
anything raised mid-trade unwinds the trade journal (see `state.journal`).
"""

from __future__ import annotations


class LaunchError(Exception):
    """Base class for every error raised by `launchmm`."""


class AuthorizationError(LaunchError):
    """Caller is not the orchestrator, owner or pool creator it must be."""


class InvariantViolation(LaunchError):
    """A parameter or requested state would break an invariant."""


class ZeroRecipient(InvariantViolation):
    """Fees were allocated to the null address."""


class FeeExemptionInvalid(InvariantViolation):
    """A flat exemption fee above the allowed maximum."""


class ProtocolFeeTooHigh(InvariantViolation):
    """A protocol share above the hard ceiling."""


class CreatorFeeAlreadySet(InvariantViolation):
    """The creator fee allocation may only be set once per pool."""


class UnknownPool(InvariantViolation):
    """The pool was never registered with the hook."""


class PolicyRejection(LaunchError):
    """The action is valid in general but not allowed in the pool's current phase."""


class CannotSellDuringFairLaunch(PolicyRejection):
    """Only native-in trades are accepted while the fair launch window is open."""


class TransferError(LaunchError):
    """A token transfer could not reach its destination."""
