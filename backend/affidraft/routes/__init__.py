# Routes package init
"""
AffiDraft Backend: API Routes Package
======================================

Route Inventory:
    - templates.py:     /api/affidavit-templates  (CRUD, export, fill)
    - placeholders.py:  GET /api/placeholders     (built-in catalog)
    - health.py:        GET /health               (service health check)

Routes stay thin: extract request data, call a service, shape the response.
"""
