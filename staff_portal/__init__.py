"""
staff_portal -- submission and review kernel for the staff onboarding portal.

Layers (inner to outer):
    domain/     pure value objects and lifecycle tables, zero I/O
    db/         declarative base, column types, engine, upsert primitive
    models/     SQLAlchemy ORM rows
    services/   write side; flush within the caller's transaction
    selectors/  read side; never mutate

``services.portal_actions.PortalActions`` is the only entry point the web
layer calls.  It owns the transaction and returns ``ActionResult`` values.
"""

__version__ = "0.1.0"
