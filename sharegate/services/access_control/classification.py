"""
Classification Policy
Sharing and gating rules derived from a document's classification tag
"""

from typing import Optional

from sharegate.core.exceptions import PolicyViolationException
from sharegate.models.enums import Action, Classification


class ClassificationPolicy:
    """Pure rules, no I/O"""

    @staticmethod
    def default_shareable(classification: Classification) -> bool:
        return classification != Classification.RESTRICTED

    @staticmethod
    def requires_secondary_auth(classification: Classification) -> bool:
        return classification == Classification.RESTRICTED

    @staticmethod
    def requires_watermark(classification: Classification) -> bool:
        return classification == Classification.CONFIDENTIAL

    @staticmethod
    def has_public_link(classification: Classification) -> bool:
        return classification == Classification.PUBLIC

    @staticmethod
    def share_capability(classification: Classification) -> Optional[Action]:
        """
        Capability a non-owner must hold to share the document

        Public documents can be passed on by anyone who can view them;
        restricted documents cannot be shared at all.
        """
        if classification == Classification.PUBLIC:
            return Action.VIEW
        if classification == Classification.RESTRICTED:
            return None
        return Action.SHARE

    @staticmethod
    def ensure_shareable(classification: Classification) -> None:
        """Raise PolicyViolationException for classifications that cannot be shared"""
        if not ClassificationPolicy.default_shareable(classification):
            raise PolicyViolationException(
                message="Restricted documents cannot be shared",
                details={"classification": classification.value},
            )
