"""Service layer for business logic.

Services hold the ownership and permission rules, the duplicate checks on
inventories and entries, and the enrichment of database rows into API
responses. Routes stay thin and only deal with HTTP.

Layer hierarchy:
    Routes (HTTP) -> Services (Business Logic) -> Repositories (Database)

Services raise the errors in services.exceptions; main.py maps them to
status codes. They never execute SQL directly.
"""
