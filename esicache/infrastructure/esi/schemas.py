"""Payload validation for ESI catalog responses.

Each parser either returns typed records or raises PayloadValidationError,
which the orchestrators record as a page failure.
"""

import logging
from typing import Any, List, Sequence

from pydantic import StrictInt, TypeAdapter, ValidationError

from esicache.domain.errors import PayloadValidationError
from esicache.domain.models.catalog import GroupRecord, NameRecord

logger = logging.getLogger(__name__)

_GROUP_ID_LIST = TypeAdapter(List[StrictInt])
_NAME_LIST = TypeAdapter(List[NameRecord])


def parse_group_ids(payload: Any) -> List[int]:
    try:
        return _GROUP_ID_LIST.validate_python(payload)
    except ValidationError as e:
        raise PayloadValidationError(f"Invalid market group id list: {e.error_count()} errors") from e


def parse_group(payload: Any) -> GroupRecord:
    try:
        return GroupRecord.model_validate(payload)
    except ValidationError as e:
        logger.debug(f"Rejected market group payload: {e}")
        raise PayloadValidationError(f"Invalid market group payload: {e.error_count()} errors") from e


def parse_names(payload: Any) -> List[NameRecord]:
    try:
        return _NAME_LIST.validate_python(payload)
    except ValidationError as e:
        logger.debug(f"Rejected universe names payload: {e}")
        raise PayloadValidationError(f"Invalid universe names payload: {e.error_count()} errors") from e


def parse_group_for(group_id: int, payload: Any) -> GroupRecord:
    """Parses the body of GET markets/groups/{group_id}/.

    A body describing any other group is rejected.
    """
    group = parse_group(payload)
    if group.id != group_id:
        raise PayloadValidationError(
            f"Requested market group {group_id} but the payload describes {group.id}"
        )
    return group


def parse_names_for(page: Sequence[int], payload: Any) -> List[NameRecord]:
    """Parses a /universe/names/ body, rejecting ids that were not requested."""
    records = parse_names(payload)
    unexpected = {record.id for record in records}.difference(page)
    if unexpected:
        raise PayloadValidationError(
            f"Universe names payload contains ids that were not requested: {sorted(unexpected)}"
        )
    return records
