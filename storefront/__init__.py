"""
Storefront application package.

Layered the same way throughout:

  storefront/repositories/  - data access: one class per aggregate, bound to a
                              SQLAlchemy session supplied by the caller.
  storefront/services/      - business logic: validation, ownership and role
                              checks, workflow state transitions.

``storefront_web.py`` is the integration point: every route handler opens a
session, builds the services it needs through :func:`storefront.services.build`
and renders the result in the ``{success, data, message}`` envelope.
"""

__version__ = '1.0.0'
