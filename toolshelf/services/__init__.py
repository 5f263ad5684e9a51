"""
Toolshelf Services Module

Submission intake, review, publication and directory lookups.
"""

from toolshelf.services.audit import BestEffortReviewLog
from toolshelf.services.categories import CategoryService
from toolshelf.services.profiles import ProfileService
from toolshelf.services.publication import PublicationSync, slugify
from toolshelf.services.submissions import SubmissionService, validate_payload
from toolshelf.services.tools import ToolCatalog

__all__ = [
    # Review workflow
    'SubmissionService',
    'validate_payload',
    'BestEffortReviewLog',
    # Publication
    'PublicationSync',
    'slugify',
    # Directory
    'CategoryService',
    'ProfileService',
    'ToolCatalog',
]
