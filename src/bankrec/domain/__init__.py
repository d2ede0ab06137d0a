"""Domain layer for bankrec application.

Services are imported from their modules (``bankrec.domain.reconciliation``
and friends) rather than re-exported here, so the database layer can import
entities without pulling the services in.
"""
