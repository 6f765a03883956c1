"""
Pipeline Stages
===============

Stage model of the transformation state machine and the rules for resuming
a stored packet.

Order of stages for a full run:

    INITIAL -> XML_NORMALIZED -> XSLT_APPLIED -> FUNCTIONS_APPLIED
            -> DESTINATION_FORMATTED -> FORWARDED

Any failure moves the run to ERROR.
"""

from enum import Enum, IntEnum
from typing import List, Optional

from transformation_core.codec.media_types import APPLICATION_XML, same_media_type
from transformation_core.errors import MalformedInputError


class TransformationStage(IntEnum):
    INITIAL = 0
    XML_NORMALIZED = 1
    XSLT_APPLIED = 2
    FUNCTIONS_APPLIED = 3
    DESTINATION_FORMATTED = 4
    FORWARDED = 5
    ERROR = 6


class ProcessingOutcome(str, Enum):
    """Result of reprocessing a stored packet."""
    SUCCESS = "Success"
    FATAL_ERROR = "FatalError"


# Stages a resumed packet can go through; functions and routing are not replayed
RESUMABLE_STAGES = (
    TransformationStage.XML_NORMALIZED,
    TransformationStage.XSLT_APPLIED,
    TransformationStage.DESTINATION_FORMATTED,
)


def infer_starting_stage(channel: str,
                         content_type: Optional[str],
                         destination_type: Optional[str],
                         incoming_channel: str,
                         outgoing_channel: str,
                         packet_id: str = "") -> TransformationStage:
    """
    Decide the first stage to run for a stored packet.

    Args:
        channel: Channel of the packet
        content_type: Content type recorded in the packet metadata
        destination_type: Destination content type of the packet's route
        incoming_channel: Configured incoming channel name
        outgoing_channel: Configured outgoing channel name
        packet_id: Used in the error message

    Returns:
        XML_NORMALIZED, XSLT_APPLIED, DESTINATION_FORMATTED or FORWARDED

    Raises:
        MalformedInputError: If the channel is neither incoming nor outgoing
    """
    if channel == incoming_channel:
        if same_media_type(content_type, APPLICATION_XML):
            return TransformationStage.XSLT_APPLIED
        return TransformationStage.XML_NORMALIZED

    if channel == outgoing_channel:
        if same_media_type(content_type, destination_type):
            return TransformationStage.FORWARDED
        return TransformationStage.DESTINATION_FORMATTED

    raise MalformedInputError(f"Can not determine what to do with the packet {packet_id}.")


def stages_from(start: TransformationStage) -> List[TransformationStage]:
    """Resumable stages at or after ``start``, in order."""
    return [stage for stage in RESUMABLE_STAGES if stage >= start]
