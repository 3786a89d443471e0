# SPDX-License-Identifier: Apache-2.0

"""
Institution assignment with geographic fallback.

A complaint goes to an institution scoped to its exact (province, district)
pair, otherwise to any institution in its province. Declared institution
categories are not consulted yet, only geography.
"""

import logging
from typing import Callable, Optional, Union

from models.entities import User
from models.enums import ComplaintCategory
from .errors import NoInstitutionAvailable

logger = logging.getLogger(__name__)

InstitutionLookup = Callable[[], Optional[User]]


def resolve_institution(
    category: Union[ComplaintCategory, str],
    province: str,
    district: str,
    district_lookup: InstitutionLookup,
    province_lookup: InstitutionLookup
) -> User:
    """
    Pick the institution responsible for a new complaint.

    Args:
        category: Complaint category (accepted for future capability filtering)
        province: Complaint province
        district: Complaint district
        district_lookup: Returns an institution scoped to (province, district)
        province_lookup: Returns any institution scoped to the province;
            only called when the district lookup finds nothing

    Returns:
        The responsible institution

    Raises:
        NoInstitutionAvailable: If neither lookup finds an institution
    """
    institution = district_lookup()
    if institution is not None:
        return institution

    institution = province_lookup()
    if institution is not None:
        logger.info(
            "No district institution, falling back to province",
            extra={
                "extra_fields": {
                    "category": getattr(category, "value", category),
                    "province": province,
                    "district": district,
                    "institution_id": institution.id
                }
            }
        )
        return institution

    logger.warning(
        "No institution available for complaint",
        extra={"extra_fields": {"province": province, "district": district}}
    )
    raise NoInstitutionAvailable()
