"""User attachment handling for a turn.

Text files are inlined into the user message before it is stored. Images are
stored in the image registry and referenced by number, so the model can look
at them on demand with ``queryImage`` instead of carrying pixels in history.
"""

from __future__ import annotations

import base64
import logging
from typing import List, Optional, Sequence

from ..schemas.domain import Attachment, AttachmentKind
from ..tools.collaborators import ImageRegistry

logger = logging.getLogger(__name__)


def decode_data_url(data: str) -> str:
    """Decode the text payload of a base64 data URL (or bare base64)."""
    payload = data.split(",", 1)[1] if "," in data else data
    return base64.b64decode(payload, validate=True).decode("utf-8")


def inline_file_attachments(content: str, attachments: Optional[Sequence[Attachment]]) -> str:
    """Prepend ``<file name="...">`` blocks for text attachments to ``content``."""
    blocks: List[str] = []
    for attachment in attachments or ():
        if attachment.kind != AttachmentKind.file:
            continue
        try:
            text = decode_data_url(attachment.data)
            blocks.append(f'<file name="{attachment.name}">\n{text}\n</file>')
        except ValueError:
            logger.warning(f"Could not decode attachment {attachment.name}")
            blocks.append(f"[Attached: {attachment.name} (could not read content)]")
    if not blocks:
        return content
    return "\n\n".join(blocks) + (f"\n\n{content}" if content else "")


async def save_image_attachments(
    conversation_id: str,
    attachments: Optional[Sequence[Attachment]],
    images: Optional[ImageRegistry],
) -> List[str]:
    """Save image attachments and return the reference line for each."""
    references: List[str] = []
    for attachment in attachments or ():
        if attachment.kind != AttachmentKind.image:
            continue
        if images is None:
            references.append(f"[Attached: {attachment.name} (failed to save to registry)]")
            continue
        try:
            image_id = await images.save_image(
                conversation_id,
                attachment.data,
                attachment.mime_type,
                "upload",
                {"filename": attachment.name},
            )
            references.append(
                f'[Image #{image_id}: {attachment.name}. Use queryImage({image_id}, "your question") to analyze.]'
            )
            logger.debug(f"Saved user upload as image #{image_id}")
        except Exception as e:
            logger.warning(f"Failed to save image attachment {attachment.name}: {e}")
            references.append(f"[Attached: {attachment.name} (failed to save to registry)]")
    return references
