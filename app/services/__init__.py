"""Services layer for Reelay.

Services implement business logic and orchestrate data operations.
Organized by feature:
- credential_store: Per-user delegated credentials
- uploader: Remote fetch, staging and publish pipeline
"""
