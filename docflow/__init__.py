"""
docflow
=======

Template fill, DOCX->PDF render pipeline and multi-party signature workflow
for generated documents.
"""

__version__ = "0.4.0"
