"""Core components for latency simulation.

This module contains the delay model, scenario configuration, the packet
simulation engine with its hop queues, and the playback clock.
"""
