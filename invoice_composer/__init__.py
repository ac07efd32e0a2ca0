"""
Invoice Composer.

Compose structured invoice data and turn it into shareable artifacts
(PDF, HTML, print, JSON drafts), with a reusable company profile,
named templates and a debounced session auto-save.

Packages:
    - models: invoice, profile and template records
    - calculation: totals and currency formatting
    - imaging: logo optimization and upload handling
    - storage: key-value backends and persistence stores
    - session: auto-save controller and the editing facade
    - rendering: render tree, preview, print styles, rasterizer
    - export: PDF / HTML / print / draft exports
    - utils: logging, exceptions, helpers

Author: Invoice Composer Team
"""

__version__ = "1.0.0"
