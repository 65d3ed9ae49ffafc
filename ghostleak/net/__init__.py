"""Outbound HTTP for probes."""
