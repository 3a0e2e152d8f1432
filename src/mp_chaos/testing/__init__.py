"""Testing – deterministic fakes and a ready-wired runtime for tests."""
from mp_chaos.testing.fakes import FAKE_EPOCH, FakeClock, RecordingSleeper, SequenceRandom, SimulatedClock
from mp_chaos.testing.runtime import make_runtime

__all__ = ["FAKE_EPOCH", "FakeClock", "RecordingSleeper", "SequenceRandom", "SimulatedClock", "make_runtime"]
