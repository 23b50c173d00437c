"""
Workflow Service application package.

Serves prompts through a cache-aside orchestrator:
- cache: memory or Redis result cache keyed by model and prompt prefix
- config_source: remote configuration documents (GitHub gist)
- runner: Workers AI model invocation
- ledger: append-only record of fresh computations (PostgreSQL or Redis)
"""
