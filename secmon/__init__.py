"""
secmon - Continuous Security Monitor

Alerting and scheduling core for a battery of security checks run against
an external API:
- alerting: throttled, severity-tiered, multi-channel alert delivery
- scheduling: cadence-driven job orchestration with timing statistics
- results: file-backed store for raw check results
"""

__version__ = "0.1.0"
