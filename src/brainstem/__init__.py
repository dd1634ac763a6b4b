"""
Brainstem - shared substrate for a fleet of narrow request-handling agents.

Package structure:
- core: Config, policy table, logging, errors, scheduler
- memory: Durable memory store (SQLite + FTS5 + vector search)
- llm: Embedding provider adapter
- cache: Best-effort cache mirror (Redis REST, in-process)
- sync: Cache projection and boot-time restore
- tracing: Provenance traces between agents
- escalation: Human notification routing and health audits
- dispatch: Inter-agent calls and status reporting
- agents: Capability request models and handler service
- interfaces: HTTP surface
"""

__version__ = "0.1.0"
