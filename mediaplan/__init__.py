"""
Media Plan Finance Backend Package.

FastAPI service layer for media plan financial calculations: fee
decomposition, deliverable calculation, monthly proration, line item
grouping for plan exports, timeline layout and delivery vs billing
accrual reconciliation.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, database, and dependencies
    - models: Pydantic schemas and enums
    - services: Calculation engines and supporting services
    - sql: Parameterized SQL queries
"""

__version__ = "1.0.0"
