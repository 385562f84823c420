"""
lamportsim: Lamport clocks + Ricart–Agrawala mutual exclusion simulator

N simulated processes share an in-memory message bus and take turns
in a critical section without any coordinator.

Core concepts:
- Every process keeps a Lamport clock: +1 on local events, max(own, received)+1 on receipt
- A process that wants the CS broadcasts REQUEST(timestamp, pid)
- Peers reply at once unless their own pending request has priority
- Deferred replies are flushed when the holder leaves the CS
- Priority is the pair (request_timestamp, pid): ties go to the smaller pid

See DESIGN.md for the layout and design decisions.
"""

__version__ = "0.1.0"
