"""Packet latency simulation.

Deterministic timing and queueing simulation of packets travelling along a
path of hops, for teaching how transmission, propagation, processing and
queuing delay add up.
"""
