"""Customer report seeding.

Operator-oriented pipeline that writes a customer's report definitions to the hosted
backend's object storage without embedding secrets in this repo.
"""

__all__: list[str] = [
    "seed_customer_report",
    "storage_writer",
]
