"""
Category to Gmail label mapping
"""
import logging
from types import MappingProxyType
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

INTERESTED = "Interested"
NOT_INTERESTED = "Not interested"
MORE_INFORMATION = "More information"

CATEGORIES = (INTERESTED, NOT_INTERESTED, MORE_INFORMATION)

# Opaque label ids as created in the Gmail account
LABEL_MAPPING: Mapping[str, str] = MappingProxyType({
    INTERESTED: "Label_1",
    NOT_INTERESTED: "Label_2",
    MORE_INFORMATION: "Label_3",
})

# Gmail system label removed to mark a message read
UNREAD_LABEL = "UNREAD"


def resolve_label(category: Optional[str], mapping: Mapping[str, str] = LABEL_MAPPING) -> Optional[str]:
    """
    Look up the label id for a category.

    Args:
        category: Category returned by the classifier
        mapping: Category to label id mapping

    Returns:
        Label id, or None if the category is not mapped
    """
    if category is None:
        return None

    label_id = mapping.get(category)
    if label_id is None:
        logger.warning(f"No label mapped for category: {category!r}")
    return label_id
