"""Adapters - Infrastructure implementations of core interfaces.

This package contains all the concrete implementations of the
Protocol interfaces defined in the core module.

Adapters are organized by type:
- db/: Application database connection pool
- provisioning/: Team, provider, and user repositories (PostgreSQL, in-memory)
- integrations/: Integration repositories
- slack/: Slack Web API client
"""
