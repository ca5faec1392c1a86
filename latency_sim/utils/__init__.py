"""Metrics and plotting utilities for latency simulation."""
