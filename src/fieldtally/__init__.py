"""
fieldtally - cached collector analytics over a spreadsheet row store.

Layers:
- fieldtally.core: errors, result, logging, settings, TTL policy, cache tiers and orchestrator
- fieldtally.execution: retry schedule and per-attempt deadlines
- fieldtally.sources: resilient fetcher, envelope decoding and typed row-store client
- fieldtally.domain: identity resolution, region tags, reconciliation and ranking
- fieldtally.service: the facade screens and the CLI talk to
"""

__version__ = "0.1.0"
