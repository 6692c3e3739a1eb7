"""Launch engines: fair launch, netting, fee waterfall and bid wall."""

from .bid_wall import BidWallEngine, BidWallPosition, wall_range
from .errors import (
    AuthorizationError,
    CannotSellDuringFairLaunch,
    CreatorFeeAlreadySet,
    FeeExemptionInvalid,
    InvariantViolation,
    LaunchError,
    PolicyRejection,
    ProtocolFeeTooHigh,
    TransferError,
    UnknownPool,
    ZeroRecipient,
)
from .events import Emitted, Event, EventBus
from .fair_launch import FairLaunchEngine, FairLaunchFill, quote_at_tick
from .fee_calculators import FeeCalculator, StaticFeeCalculator
from .fees import FeeSplit, FeeWaterfall, decode_referrer, split_waterfall
from .interfaces import Clock, FixedClock, PoolManager, SystemClock
from .netting import InternalNettingPool, NettingResult
from .thresholds import CumulativeThreshold, FixedThreshold, ThresholdPolicy
