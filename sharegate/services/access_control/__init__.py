"""
Access Control Services
Classification policy, grants, share links, the restricted gate and the evaluator
"""

from sharegate.services.access_control.audit import AuditSink
from sharegate.services.access_control.classification import ClassificationPolicy
from sharegate.services.access_control.evaluator import AccessEvaluator
from sharegate.services.access_control.grants import GrantStore
from sharegate.services.access_control.models import (
    ActivationResult,
    RevocationResult,
    ShareLinkCreated,
)
from sharegate.services.access_control.restricted_gate import RestrictedGate
from sharegate.services.access_control.share_links import ShareLinkEngine, normalize_email

__all__ = [
    "AccessEvaluator",
    "AuditSink",
    "ClassificationPolicy",
    "GrantStore",
    "RestrictedGate",
    "ShareLinkEngine",
    "normalize_email",
    # Models
    "ActivationResult",
    "RevocationResult",
    "ShareLinkCreated",
]
