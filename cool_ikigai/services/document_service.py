# cool_ikigai/services/document_service.py
"""
Renders a composed IkigaiSummary as a downloadable Markdown document.
"""
from dataclasses import dataclass
from typing import Optional
import logging

from cool_ikigai.core.exceptions import DocumentRenderError
from cool_ikigai.core.prompt_manager import PromptManager, PromptType, get_prompt_manager
from cool_ikigai.models.flow_models import IkigaiSummary

logger = logging.getLogger(__name__)


@dataclass
class RenderedDocument:
    filename: str
    media_type: str
    content: bytes


class DocumentService:
    """Document renderer for the final summary"""

    MEDIA_TYPE = "text/markdown; charset=utf-8"

    def __init__(self, prompt_manager: Optional[PromptManager] = None):
        self.prompt_manager = prompt_manager or get_prompt_manager()

    def render(self, summary: IkigaiSummary) -> RenderedDocument:
        """
        Render the summary.

        Raises:
            DocumentRenderError: If the template cannot be filled or encoded
        """
        if summary is None:
            raise DocumentRenderError("No Ikigai summary to render")

        try:
            text = self.prompt_manager.get_prompt(
                PromptType.SUMMARY_DOCUMENT,
                title=self.prompt_manager.get_prompt(PromptType.SUMMARY_DOCUMENT_TITLE),
                date=summary.created_at.strftime("%d/%m/%Y"),
                passions=summary.passions,
                talents=summary.talents,
                world_needs=summary.world_needs,
                monetization=summary.monetization,
                narrative=summary.narrative,
            )
            content = text.encode("utf-8")
        except Exception as e:
            logger.error(f"Document rendering failed: {e}", exc_info=True)
            raise DocumentRenderError(
                f"Failed to render Ikigai document: {e}",
                details={"error_type": type(e).__name__}
            ) from e

        filename = f"ikigai-{summary.created_at.strftime('%Y%m%d')}.md"
        logger.info(f"Rendered {filename} ({len(content)} bytes)")
        return RenderedDocument(filename=filename, media_type=self.MEDIA_TYPE, content=content)
