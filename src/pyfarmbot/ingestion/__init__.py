"""Ingestion layer.

Converts raw transport deliveries into state-store merges, correlator
resolutions and log events.
"""
