"""GitHub activity ingestion.

Walks organizations, repositories, commits, pull requests and issues through
the GitHub REST API with full pagination, upserts them into PostgreSQL keyed
by GitHub identifiers, and rolls activity up per user.
"""
