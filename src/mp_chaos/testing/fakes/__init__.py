"""Testing fakes – deterministic doubles for randomness, time and sleeping."""
from mp_chaos.kernel.time import SimulatedClock
from mp_chaos.testing.fakes.clock import FAKE_EPOCH, FakeClock
from mp_chaos.testing.fakes.rng import SequenceRandom
from mp_chaos.testing.fakes.sleeper import RecordingSleeper

__all__ = ["FAKE_EPOCH", "FakeClock", "RecordingSleeper", "SequenceRandom", "SimulatedClock"]
