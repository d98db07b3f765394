"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- monday: Monday.com GraphQL API and file downloads
- close: Close CRM REST API
- storage: Object storage (R2/S3) for the public mirror

These wrappers translate between external formats and our domain models.
"""
