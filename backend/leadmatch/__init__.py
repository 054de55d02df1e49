"""
LeadMatch - preference-driven lead scoring, matching and synchronization.

Main components:
- matching: scoring engine, provider adapters, rate limiter, sync orchestrator
- services: preference store, lead tracking ledger, imports, notifications
- scheduler: per-API cron jobs and the daily all-user sweep
"""

__version__ = "1.0.0"
