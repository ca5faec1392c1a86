"""Traffic generation for latency simulation.

This module provides the Scheduler that decides when packets are sent.
"""
