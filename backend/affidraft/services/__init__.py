# Services package init
"""
AffiDraft Backend: Services Layer
==================================

What:  Business logic between routes (HTTP) and the database (persistence).
How:   Services accept validated request models, drive the editor core and
       the ORM, and return response models.

Service Inventory:
    - TemplateService: versioned template persistence, server-side
      placeholder extraction, PNG export and filling
"""
