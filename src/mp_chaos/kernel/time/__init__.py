"""Kernel time – clock abstraction."""
from mp_chaos.kernel.time.clock import Clock, SimulatedClock, SystemClock, utc_now

__all__ = ["Clock", "SimulatedClock", "SystemClock", "utc_now"]
