"""
Document Services
Document lifecycle, versions and content access
"""

from sharegate.services.documents.models import (
    ContentUrl,
    CreatedDocument,
    ReclassifiedDocument,
    SharedDocument,
)
from sharegate.services.documents.service import DocumentService

__all__ = [
    "DocumentService",
    # Models
    "ContentUrl",
    "CreatedDocument",
    "ReclassifiedDocument",
    "SharedDocument",
]
